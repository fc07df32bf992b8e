"""Pre-sync backups of both stores."""

import logging
import shutil
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Union

from .utils import BOOKMARKS_FILE, BOOKMARKS_MANIFEST_NAME

logger = logging.getLogger(__name__)

BACKUP_DIR_FORMAT = "%Y-%m-%d_%H-%M-%S"
BOOKMARKS_ARCHIVE = "bookmarks.zip"
FAVORITES_ARCHIVE = "favorites"


class BackupManager:
    """Creates timestamped backups and prunes old ones.

    Each backup is a directory named after its creation time holding
    ``bookmarks.zip`` (places.sqlite and the bookmarks manifest) and
    ``favorites.zip`` (the whole favorites directory).
    """

    def __init__(self, backup_dir: Union[str, Path], max_kept: int = 10):
        """Initialize backup manager.

        Args:
            backup_dir: Directory holding all backups
            max_kept: Number of backups to keep
        """
        self.backup_dir = Path(backup_dir)
        self.max_kept = max(1, max_kept)

    def create(
        self, profile_path: Union[str, Path], favorites_path: Union[str, Path]
    ) -> Path:
        """Back up both stores, then prune old backups.

        Args:
            profile_path: Firefox profile directory
            favorites_path: Favorites directory

        Returns:
            Directory of the new backup
        """
        profile_path = Path(profile_path)
        target = self.backup_dir / datetime.now().strftime(BACKUP_DIR_FORMAT)
        suffix = 1
        while target.exists():
            target = target.with_name(f"{target.name.split('.')[0]}.{suffix}")
            suffix += 1
        target.mkdir(parents=True)

        with zipfile.ZipFile(
            target / BOOKMARKS_ARCHIVE, "w", compression=zipfile.ZIP_DEFLATED
        ) as archive:
            for name in (BOOKMARKS_FILE, BOOKMARKS_MANIFEST_NAME):
                source = profile_path / name
                if source.is_file():
                    archive.write(source, arcname=name)

        shutil.make_archive(
            str(target / FAVORITES_ARCHIVE), "zip", root_dir=str(favorites_path)
        )
        logger.debug(f"Created backup {target}")

        self.prune()
        return target

    def list_backups(self) -> list[Path]:
        """Return backup directories, oldest first."""
        if not self.backup_dir.is_dir():
            return []
        return sorted(p for p in self.backup_dir.iterdir() if p.is_dir())

    def prune(self) -> list[Path]:
        """Delete the oldest backups beyond ``max_kept``.

        Returns:
            Deleted backup directories
        """
        backups = self.list_backups()
        excess = backups[: max(0, len(backups) - self.max_kept)]
        for path in excess:
            shutil.rmtree(path)
            logger.debug(f"Pruned backup {path}")
        return excess
