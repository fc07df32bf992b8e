"""Access to the Firefox bookmarks database (places.sqlite).

Only the moz_bookmarks and moz_places tables are written. Every write is
committed immediately, so each call is atomic on its own.

Firefox maintains moz_places.foreign_count with triggers it creates per
connection, so they do not exist here: the count is adjusted alongside
every bookmark row written or deleted.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Optional, Union
from urllib.parse import quote

from .containers import ROOT_GUID, ROOT_GUIDS
from .exceptions import StoreNotOpenError
from .tree import BookmarkRow, PlaceRow
from .utils import (
    ROW_TYPE_DIRECTORY,
    ROW_TYPE_LINK,
    generate_guid,
    to_prtime,
    url_hash,
)

logger = logging.getLogger(__name__)

BOOKMARKS_TABLE = "moz_bookmarks"
PLACES_TABLE = "moz_places"
_TABLES = (BOOKMARKS_TABLE, PLACES_TABLE)

# Older profiles list the root containers in a table of their own
ROOTS_TABLE = "moz_bookmarks_roots"

_ROOT_NAME_TO_GUID = {name: guid for guid, name in ROOT_GUIDS.items()}
_ROOT_NAME_TO_GUID["places"] = ROOT_GUID


class PlacesDatabase:
    """Thin wrapper around a places.sqlite connection.

    Examples:
        >>> with PlacesDatabase(profile / "places.sqlite") as db:
        ...     rows = db.read_bookmark_rows()
        ...     next_id = db.query_max_id("moz_bookmarks") + 1
    """

    def __init__(
        self,
        db_path: Union[str, Path],
        readonly: bool = False,
        timeout: float = 5.0,
    ):
        """Initialize the database wrapper.

        Args:
            db_path: Path to places.sqlite
            readonly: Open the database read-only
            timeout: Seconds to wait while Firefox holds a lock
        """
        self.db_path = Path(db_path)
        self.readonly = readonly
        self.timeout = timeout
        self.conn: Optional[sqlite3.Connection] = None
        self._columns: dict[str, set[str]] = {}

    def __enter__(self) -> "PlacesDatabase":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self.conn is not None

    def open(self) -> None:
        """Open the connection.

        Raises:
            FileNotFoundError: If the database file does not exist
        """
        if not self.db_path.is_file():
            raise FileNotFoundError(f"Bookmarks database not found: {self.db_path}")
        mode = "ro" if self.readonly else "rw"
        uri = f"file:{quote(self.db_path.as_posix())}?mode={mode}"
        self.conn = sqlite3.connect(uri, uri=True, timeout=self.timeout)
        self.conn.row_factory = sqlite3.Row
        self._columns = {table: self._table_columns(table) for table in _TABLES}
        logger.debug(f"Opened {self.db_path} ({mode})")

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None
            logger.debug(f"Closed {self.db_path}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read_bookmark_rows(self) -> list[BookmarkRow]:
        """Read all link and directory rows (separators are skipped).

        Root containers of profiles that predate row guids get the guid
        their entry in moz_bookmarks_roots stands for.
        """
        c = self._cursor()
        guid_column = "guid" if self._has_column(BOOKMARKS_TABLE, "guid") else "NULL"
        rows = c.execute(
            f"SELECT id, type, fk, parent, position, title, {guid_column} AS guid "
            "FROM moz_bookmarks WHERE type IN (?, ?)",
            (ROW_TYPE_LINK, ROW_TYPE_DIRECTORY),
        ).fetchall()

        root_guids = {
            folder_id: _ROOT_NAME_TO_GUID[name]
            for name, folder_id in self.read_root_ids().items()
            if name in _ROOT_NAME_TO_GUID
        }
        return [
            BookmarkRow(
                id=int(r["id"]),
                type=int(r["type"]),
                parent=r["parent"],
                fk=r["fk"],
                position=r["position"],
                title=r["title"],
                guid=r["guid"] or root_guids.get(int(r["id"])),
            )
            for r in rows
        ]

    def read_root_ids(self) -> dict[str, int]:
        """Read moz_bookmarks_roots (root name to row id), if the table exists."""
        c = self._cursor()
        exists = c.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (ROOTS_TABLE,),
        ).fetchone()
        if not exists:
            return {}
        rows = c.execute(f"SELECT root_name, folder_id FROM {ROOTS_TABLE}").fetchall()
        return {str(r["root_name"]): int(r["folder_id"]) for r in rows}

    def read_place_rows(self) -> list[PlaceRow]:
        """Read the URL rows referenced by bookmarks."""
        c = self._cursor()
        rows = c.execute(
            "SELECT p.id, p.url FROM moz_places p "
            "WHERE p.id IN (SELECT fk FROM moz_bookmarks WHERE fk IS NOT NULL)"
        ).fetchall()
        return [PlaceRow(id=int(r["id"]), url=r["url"] or "") for r in rows]

    def query_max_id(self, table: str) -> int:
        """Return the largest id in a table, 0 if the table is empty."""
        if table not in _TABLES:
            raise ValueError(f"Unknown table: {table}")
        c = self._cursor()
        row = c.execute(f"SELECT COALESCE(MAX(id), 0) AS m FROM {table}").fetchone()
        return int(row["m"])

    def find_place_id(self, url: str) -> Optional[int]:
        c = self._cursor()
        row = c.execute(
            "SELECT id FROM moz_places WHERE url = ? LIMIT 1", (url,)
        ).fetchone()
        return int(row["id"]) if row else None

    def find_bookmark_guid(self, row_id: int) -> Optional[str]:
        if not self._has_column(BOOKMARKS_TABLE, "guid"):
            return None
        c = self._cursor()
        row = c.execute(
            "SELECT guid FROM moz_bookmarks WHERE id = ?", (row_id,)
        ).fetchone()
        return row["guid"] if row else None

    def count_place_references(self, place_id: int) -> int:
        """Count bookmark rows whose foreign key points at a URL row."""
        c = self._cursor()
        row = c.execute(
            "SELECT COUNT(*) AS n FROM moz_bookmarks WHERE fk = ?", (place_id,)
        ).fetchone()
        return int(row["n"])

    def next_position(self, parent_id: int) -> int:
        """Return the position after the last child of a directory."""
        c = self._cursor()
        row = c.execute(
            "SELECT COALESCE(MAX(position), -1) AS p FROM moz_bookmarks "
            "WHERE parent = ?",
            (parent_id,),
        ).fetchone()
        return int(row["p"]) + 1

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_place(self, url: str, title: str, place_id: Optional[int] = None) -> int:
        """Insert a URL row.

        Args:
            url: URL to store
            title: Page title
            place_id: Explicit id, defaults to max(id) + 1

        Returns:
            Id of the new row
        """
        if place_id is None:
            place_id = self.query_max_id(PLACES_TABLE) + 1
        values: dict[str, object] = {
            "id": place_id,
            "url": url,
            "title": title,
            "hidden": 1,
        }
        if self._has_column(PLACES_TABLE, "guid"):
            values["guid"] = generate_guid()
        if self._has_column(PLACES_TABLE, "url_hash"):
            values["url_hash"] = url_hash(url)
        if self._has_column(PLACES_TABLE, "foreign_count"):
            values["foreign_count"] = 0
        self._write([self._insert_statement(PLACES_TABLE, values)])
        logger.debug(f"Inserted URL row {place_id}: {url}")
        return place_id

    def insert_bookmark_row(self, row: BookmarkRow) -> int:
        """Insert a bookmark row.

        The row keeps its id and guid when it has them (title repairs
        re-insert a row under its old id), otherwise max(id) + 1 and a new
        guid are used. The foreign_count of the referenced URL row is
        incremented in the same transaction.

        Returns:
            Id of the inserted row
        """
        row_id = row.id if row.id else self.query_max_id(BOOKMARKS_TABLE) + 1
        values: dict[str, object] = {
            "id": row_id,
            "type": row.type,
            "fk": row.fk,
            "parent": row.parent,
            "position": row.position,
            "title": row.title,
        }
        now = to_prtime()
        for column in ("dateAdded", "lastModified"):
            if self._has_column(BOOKMARKS_TABLE, column):
                values[column] = now
        if self._has_column(BOOKMARKS_TABLE, "guid"):
            values["guid"] = row.guid or generate_guid()

        statements = [self._insert_statement(BOOKMARKS_TABLE, values)]
        if row.fk is not None and self._has_column(PLACES_TABLE, "foreign_count"):
            statements.append(
                (
                    "UPDATE moz_places SET foreign_count = foreign_count + 1 "
                    "WHERE id = ?",
                    (row.fk,),
                )
            )
        self._write(statements)
        logger.debug(f"Inserted bookmark row {row_id}: {row.title!r}")
        return row_id

    def delete_bookmark_row(self, row_id: int) -> None:
        """Delete a bookmark row and release its reference to the URL row."""
        c = self._cursor()
        found = c.execute(
            "SELECT fk FROM moz_bookmarks WHERE id = ?", (row_id,)
        ).fetchone()
        statements = [("DELETE FROM moz_bookmarks WHERE id = ?", (row_id,))]
        if (
            found is not None
            and found["fk"] is not None
            and self._has_column(PLACES_TABLE, "foreign_count")
        ):
            statements.append(
                (
                    "UPDATE moz_places SET foreign_count = MAX(foreign_count - 1, 0) "
                    "WHERE id = ?",
                    (found["fk"],),
                )
            )
        self._write(statements)
        logger.debug(f"Deleted bookmark row {row_id}")

    def delete_place(self, place_id: int) -> None:
        self._write([("DELETE FROM moz_places WHERE id = ?", (place_id,))])
        logger.debug(f"Deleted URL row {place_id}")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _insert_statement(table: str, values: dict[str, object]) -> tuple[str, tuple]:
        columns = ", ".join(values)
        placeholders = ", ".join("?" * len(values))
        return (
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
            tuple(values.values()),
        )

    def _write(self, statements: list[tuple[str, tuple]]) -> None:
        """Run statements in one transaction and commit."""
        if self.readonly:
            raise sqlite3.OperationalError("database opened in readonly mode")
        c = self._cursor()
        try:
            for sql, params in statements:
                c.execute(sql, params)
        except sqlite3.Error:
            self.conn.rollback()
            raise
        self.conn.commit()

    def _has_column(self, table: str, column: str) -> bool:
        return column in self._columns.get(table, set())

    def _table_columns(self, table: str) -> set[str]:
        c = self._cursor()
        return {str(r[1]) for r in c.execute(f"PRAGMA table_info({table})")}

    def _cursor(self) -> sqlite3.Cursor:
        if self.conn is None:
            raise StoreNotOpenError()
        return self.conn.cursor()
