"""CLI interface for favsync."""

import logging
import sqlite3
from pathlib import Path
from typing import Any, Optional

import click

from .backup import BackupManager
from .bookmarks import BookmarkStore
from .config import config
from .exceptions import FavSyncError
from .favorites import FavoriteStore
from .models import StoreKind
from .output import OutputFormatter
from .sync import ManifestStore, SyncContext, SyncEngine, SyncMode

logger = logging.getLogger(__name__)


def resolve_store_paths(
    ctx: Any,
    out: OutputFormatter,
    profile: Optional[Path],
    favorites: Optional[Path],
) -> tuple[Path, Path]:
    """Resolve the profile and favorites directories.

    Explicit options win over environment variables and the stored
    configuration. Exits with code 1 when a path is missing.
    """
    profile = profile or config.get_profile_path()
    favorites = favorites or config.get_favorites_path()

    if profile is None or favorites is None:
        out.error(
            "Store locations are not configured. "
            "Run 'favsync init --profile PATH --favorites PATH' first."
        )
        ctx.exit(1)

    for label, path in (("Profile", profile), ("Favorites", favorites)):
        if not path.is_dir():
            out.error(f"{label} directory does not exist: {path}")
            ctx.exit(1)

    return profile, favorites


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option()
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """favsync - Keep Firefox bookmarks and a Favorites directory in sync."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("favsync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--profile",
    "-p",
    type=click.Path(file_okay=False, path_type=Path),
    required=True,
    help="Firefox profile directory (contains places.sqlite)",
)
@click.option(
    "--favorites",
    "-f",
    type=click.Path(file_okay=False, path_type=Path),
    required=True,
    help="Favorites directory",
)
@click.pass_context
def init(ctx: Any, profile: Path, favorites: Path) -> None:
    """Store the locations of both stores.

    Saves them in ~/.config/favsync/config.json for future runs.
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        config_path = config.save_paths(profile, favorites)
    except FavSyncError as e:
        out.error(f"Initialization failed: {e}")
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(
            {
                "config_file": str(config_path),
                "profile_path": str(profile),
                "favorites_path": str(favorites),
            }
        )
        return

    out.print_summary(
        "Initialization Complete",
        [
            ("Status", "✓ Configuration saved successfully"),
            ("Config file", str(config_path)),
            ("Profile", str(profile)),
            ("Favorites", str(favorites)),
        ],
    )


@main.command()
@click.option(
    "--profile",
    "-p",
    type=click.Path(file_okay=False, path_type=Path),
    help="Firefox profile directory (overrides the configuration)",
)
@click.option(
    "--favorites",
    "-f",
    type=click.Path(file_okay=False, path_type=Path),
    help="Favorites directory (overrides the configuration)",
)
@click.option(
    "--mode",
    "-m",
    type=click.Choice([m.value for m in SyncMode], case_sensitive=False),
    default=SyncMode.TWO_WAY.value,
    help="Conversion direction(s) (default: twoWay)",
)
@click.option(
    "--exclude-bookmark",
    multiple=True,
    help="Bookmark path to exclude, e.g. 'Bookmarks Toolbar/Private'",
)
@click.option(
    "--exclude-favorite",
    multiple=True,
    help="Favorite file or directory to exclude",
)
@click.option(
    "--dry-run", is_flag=True, help="Show what would be synced without syncing"
)
@click.option(
    "--backup/--no-backup",
    default=lambda: config.is_backup_enabled(),
    help="Back up both stores before syncing (default: from configuration)",
)
@click.option(
    "--no-trash",
    is_flag=True,
    help="Delete favorites permanently instead of moving them to the trash",
)
@click.option(
    "--workers",
    type=int,
    default=4,
    help="Number of threads reading shortcut files (default: 4)",
)
@click.pass_context
def sync(
    ctx: Any,
    profile: Optional[Path],
    favorites: Optional[Path],
    mode: str,
    exclude_bookmark: tuple[str, ...],
    exclude_favorite: tuple[str, ...],
    dry_run: bool,
    backup: bool,
    no_trash: bool,
    workers: int,
) -> None:
    """Sync Firefox bookmarks with the Favorites directory.

    Entries added on one side since the last run are created on the other,
    entries deleted on one side are deleted on the other.

    Sync Modes:
      - twoWay: Convert in both directions
      - toBookmarks: Only create/delete Firefox bookmarks
      - toFavorites: Only create/delete favorites

    Examples:
        favsync sync --dry-run
        favsync sync --mode toFavorites
        favsync sync --exclude-bookmark "Bookmarks Toolbar/Private"
    """
    out: OutputFormatter = ctx.obj["out"]

    if workers < 1:
        out.error("Workers must be at least 1")
        ctx.exit(1)

    profile, favorites = resolve_store_paths(ctx, out, profile, favorites)
    sync_mode = SyncMode.from_string(mode)

    try:
        if backup and not dry_run:
            manager = BackupManager(
                config.get_backup_directory(), config.get_backup_max_kept()
            )
            backup_path = manager.create(profile, favorites)
            if not out.quiet:
                out.info(f"Backup written to {backup_path}")

        bookmark_store = BookmarkStore(
            profile,
            favorites_root=favorites,
            exclusions=list(config.get_bookmark_exclusions()) + list(exclude_bookmark),
            readonly=dry_run,
        )
        favorite_store = FavoriteStore(
            favorites,
            exclusions=list(config.get_favorite_exclusions()) + list(exclude_favorite),
            use_trash=not no_trash,
            workers=workers,
        )

        with bookmark_store:
            context = SyncContext(
                bookmarks=bookmark_store,
                favorites=favorite_store,
                manifests=ManifestStore(profile, favorites),
                mode=sync_mode,
            )
            engine = SyncEngine(out)
            stats = engine.sync(context, dry_run=dry_run)

        if out.json_output:
            stats["operations"] = [str(op) for op in stats["operations"]]
            out.output_json(stats)

        if stats.get("failed", 0) > 0:
            if not out.quiet:
                out.warning(
                    f"{stats['failed']} operation(s) failed and will be "
                    "retried on the next run."
                )
            ctx.exit(1)

    except KeyboardInterrupt:
        out.warning("\nSync cancelled by user")
        ctx.exit(130)
    except (FavSyncError, OSError, sqlite3.Error) as e:
        out.error(str(e))
        ctx.exit(1)


@main.command()
@click.option(
    "--profile",
    "-p",
    type=click.Path(file_okay=False, path_type=Path),
    help="Firefox profile directory (overrides the configuration)",
)
@click.option(
    "--favorites",
    "-f",
    type=click.Path(file_okay=False, path_type=Path),
    help="Favorites directory (overrides the configuration)",
)
@click.pass_context
def status(ctx: Any, profile: Optional[Path], favorites: Optional[Path]) -> None:
    """Show manifest locations and entry counts."""
    out: OutputFormatter = ctx.obj["out"]
    profile, favorites = resolve_store_paths(ctx, out, profile, favorites)
    manifests = ManifestStore(profile, favorites)

    rows = []
    try:
        for kind in StoreKind:
            nodes = manifests.load(kind)
            rows.append(
                {
                    "store": kind.label,
                    "manifest": str(manifests.manifest_path(kind)),
                    "entries": "missing" if nodes is None else len(nodes),
                }
            )
    except FavSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    out.output_table(
        rows,
        ["store", "manifest", "entries"],
        {"store": "Store", "manifest": "Manifest", "entries": "Entries"},
    )


@main.command()
@click.option(
    "--profile",
    "-p",
    type=click.Path(file_okay=False, path_type=Path),
    help="Firefox profile directory (overrides the configuration)",
)
@click.option(
    "--favorites",
    "-f",
    type=click.Path(file_okay=False, path_type=Path),
    help="Favorites directory (overrides the configuration)",
)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def reset(
    ctx: Any, profile: Optional[Path], favorites: Optional[Path], yes: bool
) -> None:
    """Delete both manifests so the next sync is a first run."""
    out: OutputFormatter = ctx.obj["out"]
    profile, favorites = resolve_store_paths(ctx, out, profile, favorites)

    if not yes and not click.confirm(
        "Delete both manifests? The next sync will treat every entry as new.",
        default=False,
    ):
        out.warning("Reset cancelled.")
        return

    removed = ManifestStore(profile, favorites).clear()
    if out.json_output:
        out.output_json({"removed": [str(p) for p in removed]})
    elif removed:
        out.success(f"Deleted {len(removed)} manifest(s)")
    else:
        out.info("No manifests to delete")


@main.command(name="backup")
@click.option(
    "--profile",
    "-p",
    type=click.Path(file_okay=False, path_type=Path),
    help="Firefox profile directory (overrides the configuration)",
)
@click.option(
    "--favorites",
    "-f",
    type=click.Path(file_okay=False, path_type=Path),
    help="Favorites directory (overrides the configuration)",
)
@click.option(
    "--directory",
    "-d",
    type=click.Path(file_okay=False, path_type=Path),
    help="Backup directory (overrides the configuration)",
)
@click.pass_context
def backup_command(
    ctx: Any,
    profile: Optional[Path],
    favorites: Optional[Path],
    directory: Optional[Path],
) -> None:
    """Back up places.sqlite and the Favorites directory."""
    out: OutputFormatter = ctx.obj["out"]
    profile, favorites = resolve_store_paths(ctx, out, profile, favorites)

    try:
        manager = BackupManager(
            directory or config.get_backup_directory(),
            config.get_backup_max_kept(),
        )
        backup_path = manager.create(profile, favorites)
    except (FavSyncError, OSError) as e:
        out.error(f"Backup failed: {e}")
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json({"backup": str(backup_path)})
    else:
        out.success(f"Backup written to {backup_path}")


if __name__ == "__main__":
    main()
