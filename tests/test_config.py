"""Tests for configuration handling."""

import pytest

from favsync.config import Config
from favsync.exceptions import FavSyncConfigError


@pytest.fixture
def cfg(tmp_path, monkeypatch):
    for name in ("FAVSYNC_CONFIG_DIR", "FAVSYNC_PROFILE", "FAVSYNC_FAVORITES"):
        monkeypatch.delenv(name, raising=False)
    return Config(tmp_path / "config")


class TestConfig:
    """Tests for Config."""

    def test_empty_config(self, cfg):
        assert cfg.load() == {}
        assert not cfg.is_configured()
        assert cfg.get_bookmark_exclusions() == []
        assert not cfg.is_backup_enabled()
        assert cfg.get_backup_max_kept() == 10

    def test_config_dir_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FAVSYNC_CONFIG_DIR", str(tmp_path / "env"))
        assert Config().get_config_path() == tmp_path / "env" / "config.json"

    def test_save_merges(self, cfg):
        cfg.save({"backup_enabled": True})
        cfg.save({"favorite_exclusions": ["Links/Private"]})

        assert cfg.is_backup_enabled()
        assert cfg.get_favorite_exclusions() == ["Links/Private"]

    def test_save_paths(self, cfg, tmp_path):
        cfg.save_paths(tmp_path, tmp_path)
        assert cfg.is_configured()
        assert cfg.get_profile_path() == tmp_path.resolve()

    def test_save_paths_rejects_missing(self, cfg, tmp_path):
        with pytest.raises(FavSyncConfigError, match="Profile"):
            cfg.save_paths(tmp_path / "missing", tmp_path)

    def test_environment_overrides_paths(self, cfg, tmp_path, monkeypatch):
        cfg.save_paths(tmp_path, tmp_path)
        monkeypatch.setenv("FAVSYNC_FAVORITES", "/elsewhere")
        assert str(cfg.get_favorites_path()) == "/elsewhere"

    def test_corrupt_file(self, cfg):
        path = cfg.get_config_path()
        path.parent.mkdir(parents=True)
        path.write_text("{oops")
        with pytest.raises(FavSyncConfigError):
            cfg.load()

    def test_backup_directory_default(self, cfg, tmp_path):
        assert cfg.get_backup_directory() == tmp_path / "config" / "backup"

    def test_invalid_max_kept(self, cfg):
        cfg.save({"backup_max_kept": "many"})
        with pytest.raises(FavSyncConfigError):
            cfg.get_backup_max_kept()
