"""Shared fixtures: a minimal places.sqlite and a favorites directory."""

import sqlite3
from pathlib import Path

import pytest

PLACES_SCHEMA = """
CREATE TABLE moz_places (
    id INTEGER PRIMARY KEY,
    url LONGVARCHAR,
    title LONGVARCHAR,
    hidden INTEGER DEFAULT 0 NOT NULL,
    guid TEXT
);
CREATE TABLE moz_bookmarks (
    id INTEGER PRIMARY KEY,
    type INTEGER,
    fk INTEGER DEFAULT NULL,
    parent INTEGER,
    position INTEGER,
    title LONGVARCHAR,
    dateAdded INTEGER,
    lastModified INTEGER,
    guid TEXT
);
"""

# Current Firefox: URL rows count their references and carry a lookup hash
MODERN_PLACES_SCHEMA = """
CREATE TABLE moz_places (
    id INTEGER PRIMARY KEY,
    url LONGVARCHAR,
    title LONGVARCHAR,
    hidden INTEGER DEFAULT 0 NOT NULL,
    guid TEXT,
    foreign_count INTEGER DEFAULT 0 NOT NULL,
    url_hash INTEGER DEFAULT 0 NOT NULL
);
CREATE TABLE moz_bookmarks (
    id INTEGER PRIMARY KEY,
    type INTEGER,
    fk INTEGER DEFAULT NULL,
    parent INTEGER,
    position INTEGER,
    title LONGVARCHAR,
    dateAdded INTEGER,
    lastModified INTEGER,
    guid TEXT
);
"""

# (id, type, fk, parent, position, title)
SYSTEM_ROWS = [
    (1, 2, None, 0, 0, ""),
    (2, 2, None, 1, 0, "Bookmarks Menu"),
    (3, 2, None, 1, 1, "Bookmarks Toolbar"),
    (4, 2, None, 1, 2, "Tags"),
    (5, 2, None, 1, 3, "Unsorted Bookmarks"),
]

# Root containers as current Firefox versions store them
MODERN_SYSTEM_ROWS = [
    (1, 2, None, 0, 0, ""),
    (2, 2, None, 1, 0, "menu"),
    (3, 2, None, 1, 1, "toolbar"),
    (4, 2, None, 1, 2, "tags"),
    (5, 2, None, 1, 3, "unfiled"),
    (6, 2, None, 1, 4, "mobile"),
]

MODERN_ROOT_GUIDS = {
    1: "root________",
    2: "menu________",
    3: "toolbar_____",
    4: "tags________",
    5: "unfiled_____",
    6: "mobile______",
}


def create_places_db(path: Path, rows=(), places=(), modern=False) -> Path:
    """Create a places.sqlite with the system rows plus extra rows.

    Args:
        path: Database file to create
        rows: Extra (id, type, fk, parent, position, title) tuples
        places: (id, url) tuples for moz_places
        modern: Use the current Firefox layout (guid-identified root
            containers, foreign_count and url_hash columns)
    """
    conn = sqlite3.connect(path)
    try:
        conn.executescript(MODERN_PLACES_SCHEMA if modern else PLACES_SCHEMA)
        conn.executemany(
            "INSERT INTO moz_bookmarks (id, type, fk, parent, position, title) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (MODERN_SYSTEM_ROWS if modern else SYSTEM_ROWS) + list(rows),
        )
        conn.executemany(
            "INSERT INTO moz_places (id, url, title) VALUES (?, ?, '')", list(places)
        )
        if modern:
            conn.executemany(
                "UPDATE moz_bookmarks SET guid = ? WHERE id = ?",
                [(guid, row_id) for row_id, guid in MODERN_ROOT_GUIDS.items()],
            )
            conn.execute(
                "UPDATE moz_bookmarks SET guid = printf('user%08d', id) "
                "WHERE guid IS NULL"
            )
            conn.execute(
                "UPDATE moz_places SET foreign_count = "
                "(SELECT COUNT(*) FROM moz_bookmarks WHERE fk = moz_places.id)"
            )
        conn.commit()
    finally:
        conn.close()
    return path


def query(db_path: Path, sql: str, params=()) -> list[tuple]:
    """Run a read query against a database file."""
    conn = sqlite3.connect(db_path)
    try:
        return conn.execute(sql, params).fetchall()
    finally:
        conn.close()


def write_url(path: Path, url: str) -> Path:
    """Write a .url shortcut file, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"[InternetShortcut]\nURL={url}\n", encoding="utf-8")
    return path


@pytest.fixture
def profile_dir(tmp_path):
    """Firefox profile directory with a places.sqlite holding only system rows."""
    profile = tmp_path / "profile"
    profile.mkdir()
    create_places_db(profile / "places.sqlite")
    return profile


@pytest.fixture
def favorites_dir(tmp_path):
    """Empty favorites directory."""
    favorites = tmp_path / "favorites"
    favorites.mkdir()
    return favorites
