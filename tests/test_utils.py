"""Unit tests for utility functions."""

from datetime import datetime

import pytest

from favsync.utils import (
    format_duration,
    from_prtime,
    generate_guid,
    hash_string,
    to_prtime,
    url_hash,
)


class TestPRTime:
    """Tests for PRTime conversion."""

    def test_known_value(self):
        """Test conversion of a fixed timestamp."""
        assert to_prtime(datetime.fromtimestamp(1)) == 1_000_000

    def test_now_is_microseconds(self):
        value = to_prtime()
        assert value > 1_500_000_000_000_000

    def test_back_and_forth(self):
        dt = datetime(2024, 5, 17, 12, 30, 15)
        assert from_prtime(to_prtime(dt)) == dt

    @pytest.mark.parametrize("value", [None, 0, 10**30])
    def test_invalid_values(self, value):
        """Missing or out-of-range values yield None."""
        assert from_prtime(value) is None


class TestGenerateGuid:
    """Tests for generate_guid."""

    def test_length_and_alphabet(self):
        guid = generate_guid()
        assert len(guid) == 12
        assert all(c.isalnum() or c in "-_" for c in guid)

    def test_unique(self):
        assert len({generate_guid() for _ in range(50)}) == 50


class TestUrlHash:
    """Tests for the moz_places.url_hash computation."""

    def test_hash_string_single_byte(self):
        assert hash_string(b"") == 0
        assert hash_string(b"a") == (0x9E3779B9 * 0x61) & 0xFFFFFFFF

    def test_hash_string_two_bytes(self):
        first = hash_string(b"a")
        rotated = ((first << 5) | (first >> 27)) & 0xFFFFFFFF
        assert hash_string(b"ab") == (0x9E3779B9 * (rotated ^ 0x62)) & 0xFFFFFFFF

    def test_scheme_in_high_bits(self):
        url = "https://example.com/"
        assert url_hash(url) >> 32 == hash_string(b"https") & 0xFFFF
        assert url_hash(url) & 0xFFFFFFFF == hash_string(url.encode())

    def test_without_scheme(self):
        assert url_hash("example") == hash_string(b"example")

    def test_only_prefix_is_hashed(self):
        base = "http://example.com/" + "a" * 1500
        assert url_hash(base + "tail") == url_hash(base + "other")


class TestFormatDuration:
    """Tests for format_duration."""

    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (0.25, "250 ms"),
            (0, "0 ms"),
            (12.34, "12.3 s"),
            (59.9, "59.9 s"),
            (125, "2 min 5 s"),
            (3600, "60 min 0 s"),
        ],
    )
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected
