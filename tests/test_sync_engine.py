"""Tests for the sync engine."""

import shutil
import sqlite3
from unittest.mock import Mock, patch

import pytest
from conftest import create_places_db, query, write_url

from favsync.bookmarks import BookmarkStore
from favsync.exceptions import ManifestDeserializationError
from favsync.favorites import FavoriteStore
from favsync.models import StoreKind
from favsync.output import OutputFormatter
from favsync.sync import (
    ManifestStore,
    OperationKind,
    SyncContext,
    SyncEngine,
    SyncMode,
)


@pytest.fixture
def profile(tmp_path):
    """Profile whose bookmarks hold a single link in the menu."""
    path = tmp_path / "profile"
    path.mkdir()
    create_places_db(
        path / "places.sqlite",
        rows=[(12, 1, 101, 2, 0, "News")],
        places=[(101, "http://news.example")],
    )
    return path


@pytest.fixture
def favorites(favorites_dir):
    write_url(favorites_dir / "Links" / "Work" / "site.url", "http://example.com")
    write_url(favorites_dir / "top.url", "http://top.example")
    return favorites_dir


@pytest.fixture
def mock_output():
    """Create a mock output formatter."""
    output = Mock(spec=OutputFormatter)
    output.quiet = True  # Suppress output during tests
    return output


@pytest.fixture
def run(profile, favorites, mock_output):
    """Return a callable performing one sync run."""

    def _run(mode=SyncMode.TWO_WAY, dry_run=False):
        with BookmarkStore(profile, favorites_root=favorites) as bookmarks:
            context = SyncContext(
                bookmarks=bookmarks,
                favorites=FavoriteStore(favorites, use_trash=False),
                manifests=ManifestStore(profile, favorites),
                mode=mode,
            )
            return SyncEngine(mock_output).sync(context, dry_run=dry_run)

    return _run


def bookmark_titles(profile):
    rows = query(profile / "places.sqlite", "SELECT title FROM moz_bookmarks")
    return {title for (title,) in rows}


class TestFirstRun:
    """Tests for the first run without manifests."""

    def test_everything_live_is_merged(self, run, profile, favorites):
        stats = run()

        assert stats["first_run"] is True
        assert stats["adds_to_bookmarks"] == 3
        assert stats["adds_to_favorites"] == 1
        assert stats["applied"] == 4
        assert stats["failed"] == 0
        assert (favorites / "News.url").is_file()
        assert {"Work", "site", "top"} <= bookmark_titles(profile)

    def test_favorites_bar_lands_in_toolbar(self, run, profile):
        run()
        rows = query(
            profile / "places.sqlite",
            "SELECT parent FROM moz_bookmarks WHERE title = 'Work'",
        )
        assert rows == [(3,)]

    def test_manifests_written(self, run, profile, favorites):
        run()
        manifests = ManifestStore(profile, favorites)
        favorite_titles = {n.title for n in manifests.load(StoreKind.FAVORITES)}
        assert {"Links", "Work", "site", "top", "News"} == favorite_titles
        bookmark_nodes = manifests.load(StoreKind.BOOKMARKS)
        assert {"Work", "site", "top", "News"} <= {n.title for n in bookmark_nodes}

    def test_second_run_is_a_no_op(self, run):
        run()
        stats = run()
        assert stats["first_run"] is False
        assert stats["operations"] == []

    def test_dry_run_changes_nothing(self, run, profile, favorites):
        stats = run(dry_run=True)

        assert stats["adds_to_bookmarks"] == 3
        assert "applied" not in stats
        assert not (favorites / "News.url").exists()
        assert bookmark_titles(profile) == {
            "",
            "Bookmarks Menu",
            "Bookmarks Toolbar",
            "Tags",
            "Unsorted Bookmarks",
            "News",
        }
        manifests = ManifestStore(profile, favorites)
        assert not manifests.exists(StoreKind.BOOKMARKS)
        assert not manifests.exists(StoreKind.FAVORITES)


class TestRemovals:
    """Tests for deletions propagating to the other store."""

    def test_deleted_favorite_removes_bookmark(self, run, profile, favorites):
        run()
        (favorites / "top.url").unlink()

        stats = run()
        assert stats["removes_from_bookmarks"] == 1
        assert stats["operations"][0].kind == OperationKind.REMOVE
        assert "top" not in bookmark_titles(profile)

    def test_deleted_bookmark_removes_favorite(self, run, profile, favorites):
        run()
        db = profile / "places.sqlite"
        rows = query(db, "SELECT id FROM moz_bookmarks WHERE title = 'News'")
        with BookmarkStore(profile) as bookmarks:
            bookmarks.db.delete_bookmark_row(rows[0][0])

        stats = run()
        assert stats["removes_from_favorites"] == 1
        assert not (favorites / "News.url").exists()

    def test_deleted_directory_cascades(self, run, profile, favorites):
        """Removing a favorites folder removes the bookmark folder and its content."""
        run()
        shutil.rmtree(favorites / "Links" / "Work")

        stats = run()
        assert stats["removes_from_bookmarks"] == 2
        assert stats["failed"] == 0
        titles = bookmark_titles(profile)
        assert "Work" not in titles
        assert "site" not in titles
        assert "Bookmarks Toolbar" in titles

    def test_removed_on_both_sides_is_dropped(self, run, profile, favorites):
        run()
        (favorites / "News.url").unlink()
        rows = query(
            profile / "places.sqlite",
            "SELECT id FROM moz_bookmarks WHERE title = 'News'",
        )
        with BookmarkStore(profile) as bookmarks:
            bookmarks.db.delete_bookmark_row(rows[0][0])

        assert run()["operations"] == []


class TestPendingOperations:
    """Tests for operations that are not applied."""

    def test_failed_add_is_retried(self, run, favorites):
        with patch.object(
            FavoriteStore, "convert_to_favorite", side_effect=OSError("disk full")
        ):
            stats = run()
        assert stats["failed"] == 1
        assert not (favorites / "News.url").exists()

        stats = run()
        assert stats["adds_to_favorites"] == 1
        assert (favorites / "News.url").is_file()

    def test_locked_database_is_retried(self, run, profile):
        """A database error fails only its own operations."""
        with patch.object(
            BookmarkStore,
            "convert_to_bookmark",
            side_effect=sqlite3.OperationalError("database is locked"),
        ):
            stats = run()
        assert stats["failed"] == 3
        assert stats["applied"] == 1
        assert "top" not in bookmark_titles(profile)

        stats = run()
        assert stats["adds_to_bookmarks"] == 3
        assert stats["failed"] == 0
        assert {"Work", "site", "top"} <= bookmark_titles(profile)

    def test_disabled_direction_is_deferred(self, run, profile, favorites):
        stats = run(mode=SyncMode.TO_BOOKMARKS)

        assert stats["deferred"] == 1
        assert stats["applied"] == 3
        assert not (favorites / "News.url").exists()
        assert "top" in bookmark_titles(profile)

        stats = run(mode=SyncMode.TWO_WAY)
        assert stats["applied"] == 1
        assert (favorites / "News.url").is_file()

    def test_deferred_remove_is_kept(self, run, profile, favorites):
        run()
        (favorites / "top.url").unlink()

        assert run(mode=SyncMode.TO_FAVORITES)["deferred"] == 1
        assert "top" in bookmark_titles(profile)

        run()
        assert "top" not in bookmark_titles(profile)


class TestManifestErrors:
    """Tests for unreadable manifests."""

    def test_corrupt_manifest_aborts_before_changes(self, run, profile, favorites):
        manifests = ManifestStore(profile, favorites)
        manifests.save(StoreKind.BOOKMARKS, [])
        manifests.manifest_path(StoreKind.FAVORITES).write_text("garbage")

        with pytest.raises(ManifestDeserializationError):
            run()
        assert not (favorites / "News.url").exists()
        assert "top" not in bookmark_titles(profile)

    def test_missing_manifest_restarts(self, run, profile, favorites):
        run()
        ManifestStore(profile, favorites).clear(StoreKind.FAVORITES)

        stats = run()
        assert stats["first_run"] is True
        assert stats["operations"] == []


class TestOutput:
    """Tests for user-facing output."""

    def test_plan_and_summary_shown(self, profile, favorites):
        output = Mock(spec=OutputFormatter)
        output.quiet = False
        with BookmarkStore(profile, favorites_root=favorites) as bookmarks:
            context = SyncContext(
                bookmarks=bookmarks,
                favorites=FavoriteStore(favorites, use_trash=False),
                manifests=ManifestStore(profile, favorites),
            )
            with patch("favsync.sync.engine.Progress"):
                SyncEngine(output).sync(context, dry_run=True)

        messages = [call.args[0] for call in output.info.call_args_list]
        assert "No manifests found: this is a first run" in messages
        assert "  + Add bookmarks: 3" in messages
        output.success.assert_called_once_with("Dry run complete!")
