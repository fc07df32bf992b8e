"""Tests for .url shortcut files."""

from favsync.shortcut import read_shortcut_url, write_shortcut


class TestShortcut:
    """Tests for reading and writing shortcuts."""

    def test_write_then_read(self, tmp_path):
        path = tmp_path / "site.url"
        write_shortcut(path, "http://example.com/?q=a=b")

        assert path.read_text(encoding="utf-8").splitlines()[0] == (
            "[InternetShortcut]"
        )
        assert read_shortcut_url(path) == "http://example.com/?q=a=b"

    def test_read_ignores_other_keys(self, tmp_path):
        path = tmp_path / "site.url"
        path.write_text(
            "[DEFAULT]\nBASEURL=http://base\n[InternetShortcut]\n"
            "IconIndex=0\nurl=http://target\n",
            encoding="utf-8",
        )
        assert read_shortcut_url(path) == "http://target"

    def test_read_without_url(self, tmp_path):
        path = tmp_path / "broken.url"
        path.write_text("[InternetShortcut]\nIconIndex=0\n", encoding="utf-8")
        assert read_shortcut_url(path) is None
