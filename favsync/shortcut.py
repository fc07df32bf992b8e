"""Reading and writing Internet shortcut (.url) files."""

from pathlib import Path
from typing import Optional

from .utils import SHORTCUT_HEADER


def read_shortcut_url(path: Path) -> Optional[str]:
    """Read the target URL of a shortcut file.

    The first line starting with ``URL=`` (case-insensitive) wins. Other
    sections and keys are ignored.

    Args:
        path: Path to the .url file

    Returns:
        The URL, or None if the file has no URL line
    """
    with open(path, encoding="utf-8", errors="replace") as f:
        for line in f:
            key, sep, value = line.strip().partition("=")
            if sep and key.strip().lower() == "url":
                return value.strip()
    return None


def write_shortcut(path: Path, url: str) -> None:
    """Write a shortcut file pointing at a URL, replacing any existing file."""
    with open(path, "w", encoding="utf-8", newline="\r\n") as f:
        f.write(f"{SHORTCUT_HEADER}\n")
        f.write(f"URL={url}\n")
