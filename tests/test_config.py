"""Tests for apitree.config -- XDG paths, atomic writes, profiles, precedence."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from apitree.config import (
    _atomic_write,
    get_config_dir,
    get_data_dir,
    get_profiles_dir,
    list_profiles,
    load_global_config,
    load_profile,
    load_project_config,
    profile_exists,
    resolve_config,
    save_profile,
)
from apitree.exceptions import ConfigError
from apitree.models import GlobalConfig, Profile, RequestConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write a dict as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def _write_global(config: GlobalConfig) -> None:
    _write_json(get_config_dir() / "config.json", config.model_dump(mode="json"))


def _make_profile(name: str = "test", source: str = "https://api.example.com/api.raml") -> Profile:
    return Profile(name=name, source=source)


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPaths:
    def test_config_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("apitree.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
        path = get_config_dir()
        assert path == tmp_path / "cfg" / "apitree"
        assert path.is_dir()

    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("apitree.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        with patch("apitree.config.Path.home", return_value=tmp_path):
            assert get_config_dir() == tmp_path / ".config" / "apitree"

    def test_data_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("apitree.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
        assert get_data_dir() == tmp_path / "data" / "apitree"

    def test_fallback_dirs(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("apitree.config._is_xdg_platform", lambda: False)
        with patch("apitree.config.Path.home", return_value=tmp_path):
            assert get_config_dir() == tmp_path / ".apitree"
            assert get_data_dir() == tmp_path / ".apitree" / "logs"

    def test_profiles_dir_is_inside_config_dir(self, isolated_config: Path) -> None:
        assert get_profiles_dir() == get_config_dir() / "profiles"
        assert get_profiles_dir().is_dir()


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_creates_file_with_content(self, tmp_path: Path) -> None:
        target = tmp_path / "out.json"
        _atomic_write(target, '{"a": 1}')
        assert target.read_text(encoding="utf-8") == '{"a": 1}'

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "out.json"
        target.write_text("old")
        _atomic_write(target, "new")
        assert target.read_text() == "new"

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "out.json"
        _atomic_write(target, "x")
        assert target.read_text() == "x"

    def test_no_temp_files_left_on_error(self, tmp_path: Path) -> None:
        target = tmp_path / "out.json"
        with patch("apitree.config.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError, match="disk full"):
                _atomic_write(target, "data")
        assert list(tmp_path.iterdir()) == []

    def test_unicode_content(self, tmp_path: Path) -> None:
        target = tmp_path / "out.json"
        _atomic_write(target, "Grüße ✓")
        assert target.read_text(encoding="utf-8") == "Grüße ✓"


# ---------------------------------------------------------------------------
# Global config
# ---------------------------------------------------------------------------


class TestGlobalConfig:
    def test_load_returns_defaults_when_missing(self, isolated_config: Path) -> None:
        cfg = load_global_config()
        assert cfg == GlobalConfig()
        assert cfg.request.timeout is None
        assert cfg.request.max_retries == 3

    def test_load_saved_values(self, isolated_config: Path) -> None:
        cfg = GlobalConfig(
            default_profile="example",
            default_headers={"Accept": "application/json"},
            request=RequestConfig(timeout=5.0, max_retries=1),
        )
        _write_global(cfg)
        assert load_global_config() == cfg

    def test_load_invalid_json_raises_config_error(self, isolated_config: Path) -> None:
        (get_config_dir() / "config.json").write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid global config"):
            load_global_config()

    def test_load_invalid_schema_raises_config_error(self, isolated_config: Path) -> None:
        _write_json(get_config_dir() / "config.json", {"request": {"max_retries": "many"}})
        with pytest.raises(ConfigError):
            load_global_config()


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class TestProfiles:
    def test_list_empty(self, isolated_config: Path) -> None:
        assert list_profiles() == []

    def test_save_and_list(self, isolated_config: Path) -> None:
        save_profile(_make_profile("beta"))
        save_profile(_make_profile("alpha"))
        assert list_profiles() == ["alpha", "beta"]
        assert profile_exists("alpha")
        assert not profile_exists("gamma")

    def test_save_and_load_roundtrip(self, isolated_config: Path) -> None:
        profile = Profile(
            name="example",
            source="./api.raml",
            base_uri="http://localhost:8080",
            base_uri_parameters={"version": "v2"},
            headers={"X-Env": "dev"},
        )
        save_profile(profile)
        assert load_profile("example") == profile

    def test_load_nonexistent_raises_config_error(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_profile("missing")

    def test_load_invalid_json_raises_config_error(self, isolated_config: Path) -> None:
        (get_profiles_dir() / "broken.json").write_text("[")
        with pytest.raises(ConfigError, match="Invalid profile 'broken'"):
            load_profile("broken")

    def test_list_profiles_ignores_non_json(self, isolated_config: Path) -> None:
        save_profile(_make_profile())
        (get_profiles_dir() / "notes.txt").write_text("x")
        assert list_profiles() == ["test"]


# ---------------------------------------------------------------------------
# Project-local config
# ---------------------------------------------------------------------------


class TestProjectConfig:
    def test_load_returns_none_when_missing(self, isolated_config: Path) -> None:
        assert load_project_config() is None

    def test_load_valid_project_config(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "apitree.json", {"default_profile": "example"})
        assert load_project_config() == {"default_profile": "example"}

    def test_load_invalid_json_raises_config_error(self, isolated_config: Path) -> None:
        (isolated_config / "apitree.json").write_text("{")
        with pytest.raises(ConfigError, match="Invalid project config"):
            load_project_config()


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestResolveConfig:
    """Test the full precedence chain: CLI > env > project > global > defaults."""

    @pytest.fixture(autouse=True)
    def _isolate(self, isolated_config: Path) -> None:
        self.tmp_path = isolated_config

    def test_defaults_no_profile(self) -> None:
        cfg, profile = resolve_config()
        assert cfg == GlobalConfig()
        assert profile is None

    def test_global_default_profile(self) -> None:
        save_profile(_make_profile("global"))
        save_profile(_make_profile("other"))
        _write_global(GlobalConfig(default_profile="global"))
        _, profile = resolve_config()
        assert profile.name == "global"

    def test_project_overrides_global(self) -> None:
        save_profile(_make_profile("global"))
        save_profile(_make_profile("project"))
        _write_global(GlobalConfig(default_profile="global"))
        _write_json(self.tmp_path / "apitree.json", {"default_profile": "project"})
        _, profile = resolve_config()
        assert profile.name == "project"

    def test_env_overrides_project(self, monkeypatch: pytest.MonkeyPatch) -> None:
        save_profile(_make_profile("project"))
        save_profile(_make_profile("env"))
        _write_json(self.tmp_path / "apitree.json", {"default_profile": "project"})
        monkeypatch.setenv("APITREE_PROFILE", "env")
        _, profile = resolve_config()
        assert profile.name == "env"

    def test_cli_overrides_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        save_profile(_make_profile("env"))
        save_profile(_make_profile("cli"))
        monkeypatch.setenv("APITREE_PROFILE", "env")
        _, profile = resolve_config(cli_profile="cli")
        assert profile.name == "cli"

    def test_base_uri_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        save_profile(Profile(name="p", source="api.raml", base_uri="http://saved"))
        monkeypatch.setenv("APITREE_BASE_URI", "http://env")
        _, profile = resolve_config()
        assert profile.base_uri == "http://env"

    def test_auto_select_single_profile(self) -> None:
        save_profile(_make_profile("only"))
        _, profile = resolve_config()
        assert profile.name == "only"

    def test_auto_select_disabled(self) -> None:
        save_profile(_make_profile("only"))
        _write_global(GlobalConfig(auto_select_single_profile=False))
        _, profile = resolve_config()
        assert profile is None

    def test_auto_select_skipped_when_multiple(self) -> None:
        save_profile(_make_profile("a"))
        save_profile(_make_profile("b"))
        _, profile = resolve_config()
        assert profile is None

    def test_nonexistent_profile_raises_config_error(self) -> None:
        with pytest.raises(ConfigError):
            resolve_config(cli_profile="ghost")
