"""Utility functions and constants for favsync."""

import secrets
import string
import time
from datetime import datetime
from typing import Optional

# =============================================================================
# Constants for the bookmarks database
# =============================================================================

# File inside a Firefox profile that holds bookmarks
BOOKMARKS_FILE: str = "places.sqlite"

# Well-known id of the root row in moz_bookmarks
ROOT_ROW_ID: int = 1

# Built-in rows all have ids below this value
SYSTEM_ROW_ID_LIMIT: int = 24

# moz_bookmarks.type values
ROW_TYPE_LINK: int = 1
ROW_TYPE_DIRECTORY: int = 2

# =============================================================================
# Constants for the favorites directory
# =============================================================================

# Extension of Internet shortcut files
SHORTCUT_EXTENSION: str = ".url"

# Header line written at the top of every shortcut file
SHORTCUT_HEADER: str = "[InternetShortcut]"

# =============================================================================
# Constants for manifests
# =============================================================================

FAVORITES_MANIFEST_NAME: str = "favsync_favorites_manifest.json"
BOOKMARKS_MANIFEST_NAME: str = "favsync_bookmarks_manifest.json"
MANIFEST_FORMAT_VERSION: int = 1

# =============================================================================
# Path length policy
# =============================================================================

# Maximum length of a mapped favorites path
MAX_PATH_LENGTH: int = 250

# Parent paths longer than this are moved up one level
MAX_PARENT_PATH_LENGTH: int = 240


# =============================================================================
# Timestamp utilities
# =============================================================================


def to_prtime(dt: Optional[datetime] = None) -> int:
    """Convert a datetime to Firefox PRTime (microseconds since the epoch).

    Args:
        dt: Datetime to convert, defaults to now

    Returns:
        Integer microseconds since 1970-01-01

    Examples:
        >>> to_prtime(datetime.fromtimestamp(1))
        1000000
    """
    if dt is None:
        return int(time.time() * 1_000_000)
    return int(dt.timestamp() * 1_000_000)


def from_prtime(value: Optional[int]) -> Optional[datetime]:
    """Convert a Firefox PRTime value to a datetime.

    Args:
        value: Microseconds since the epoch, or None

    Returns:
        Local naive datetime, or None if the value is missing or invalid
    """
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value) / 1_000_000)
    except (ValueError, OverflowError, OSError):
        return None


# =============================================================================
# Identifier utilities
# =============================================================================

_GUID_ALPHABET = string.ascii_letters + string.digits + "-_"


def generate_guid() -> str:
    """Generate a 12 character guid in the style Firefox uses for new rows.

    Returns:
        Random url-safe string of length 12
    """
    return "".join(secrets.choice(_GUID_ALPHABET) for _ in range(12))


_GOLDEN_RATIO_U32 = 0x9E3779B9

# Firefox hashes at most this many characters of a URL
_MAX_CHARS_TO_HASH = 1500


def hash_string(data: bytes) -> int:
    """32-bit string hash used by Firefox (golden ratio, rotate by 5).

    Examples:
        >>> hash_string(b"")
        0
        >>> hash_string(b"a") == (0x9E3779B9 * 0x61) & 0xFFFFFFFF
        True
    """
    h = 0
    for byte in data:
        rotated = ((h << 5) | (h >> 27)) & 0xFFFFFFFF
        h = (_GOLDEN_RATIO_U32 * (rotated ^ byte)) & 0xFFFFFFFF
    return h


def url_hash(url: str) -> int:
    """Compute the moz_places.url_hash value of a URL.

    URI-like strings get a 48-bit hash: the low 16 bits of the scheme hash
    followed by the 32-bit hash of the URL. Strings without a scheme get
    the 32-bit hash only.

    Args:
        url: URL as stored in moz_places.url

    Returns:
        Hash Firefox looks URL rows up by
    """
    data = url.encode("utf-8")
    str_hash = hash_string(data[:_MAX_CHARS_TO_HASH])
    scheme, sep, _ = data.partition(b":")
    if not sep:
        return str_hash
    return ((hash_string(scheme) & 0xFFFF) << 32) + str_hash


def format_duration(seconds: float) -> str:
    """Format a duration for the run summary.

    Args:
        seconds: Elapsed seconds

    Returns:
        Human-readable duration (e.g., "850 ms", "12.3 s", "2 min 5 s")

    Examples:
        >>> format_duration(0.25)
        '250 ms'
        >>> format_duration(125)
        '2 min 5 s'
    """
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    if seconds < 60:
        return f"{seconds:.1f} s"
    minutes, rest = divmod(int(seconds), 60)
    return f"{minutes} min {rest} s"
