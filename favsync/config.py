"""Persistent configuration for favsync."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from .exceptions import FavSyncConfigError

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "FAVSYNC_CONFIG_DIR"
PROFILE_ENV = "FAVSYNC_PROFILE"
FAVORITES_ENV = "FAVSYNC_FAVORITES"

DEFAULT_BACKUP_MAX_KEPT = 10


class Config:
    """Configuration stored as JSON in the user's config directory.

    Environment variables take precedence over stored store paths.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding config.json. Defaults to
                $FAVSYNC_CONFIG_DIR or ~/.config/favsync
        """
        self._config_dir = config_dir

    @property
    def config_dir(self) -> Path:
        if self._config_dir is not None:
            return self._config_dir
        env_dir = os.environ.get(CONFIG_DIR_ENV)
        if env_dir:
            return Path(env_dir)
        return Path.home() / ".config" / "favsync"

    def get_config_path(self) -> Path:
        return self.config_dir / "config.json"

    def load(self) -> dict[str, Any]:
        """Read the stored configuration.

        Returns:
            Stored values, empty if no configuration exists

        Raises:
            FavSyncConfigError: If the file exists but cannot be read
        """
        path = self.get_config_path()
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise FavSyncConfigError(f"Cannot read config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise FavSyncConfigError(f"Config file {path} must hold a JSON object")
        return data

    def save(self, values: dict[str, Any]) -> Path:
        """Merge values into the stored configuration."""
        data = self.load()
        data.update(values)
        path = self.get_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        logger.debug(f"Saved configuration to {path}")
        return path

    def get(self, key: str, default: Any = None) -> Any:
        return self.load().get(key, default)

    def is_configured(self) -> bool:
        return bool(self.get_profile_path() and self.get_favorites_path())

    def get_profile_path(self) -> Optional[Path]:
        value = os.environ.get(PROFILE_ENV) or self.get("profile_path")
        return Path(value) if value else None

    def get_favorites_path(self) -> Optional[Path]:
        value = os.environ.get(FAVORITES_ENV) or self.get("favorites_path")
        return Path(value) if value else None

    def save_paths(self, profile_path: Path, favorites_path: Path) -> Path:
        """Validate and store the locations of both stores.

        Raises:
            FavSyncConfigError: If either directory does not exist
        """
        for label, path in (("Profile", profile_path), ("Favorites", favorites_path)):
            if not Path(path).is_dir():
                raise FavSyncConfigError(f"{label} directory does not exist: {path}")
        return self.save(
            {
                "profile_path": str(Path(profile_path).resolve()),
                "favorites_path": str(Path(favorites_path).resolve()),
            }
        )

    def get_bookmark_exclusions(self) -> list[str]:
        return list(self.get("bookmark_exclusions") or [])

    def get_favorite_exclusions(self) -> list[str]:
        return list(self.get("favorite_exclusions") or [])

    def is_backup_enabled(self) -> bool:
        return bool(self.get("backup_enabled", False))

    def get_backup_directory(self) -> Path:
        value = self.get("backup_directory")
        return Path(value) if value else self.config_dir / "backup"

    def get_backup_max_kept(self) -> int:
        try:
            return max(1, int(self.get("backup_max_kept", DEFAULT_BACKUP_MAX_KEPT)))
        except (TypeError, ValueError) as e:
            raise FavSyncConfigError(f"Invalid backup_max_kept: {e}") from e


config = Config()
