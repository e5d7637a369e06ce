"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for apitree:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.apitree/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_data_dir` and :func:`get_profiles_dir`.
* **Global config** -- A single :class:`~apitree.models.GlobalConfig` JSON
  file storing request defaults, default headers and plugin settings.
* **Profiles** -- One JSON file per API, each deserialised into a
  :class:`~apitree.models.Profile` naming the description source and its
  base URI overrides.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config and global config.

All file writes go through :func:`_atomic_write` (temp file, then rename).
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from apitree.exceptions import ConfigError
from apitree.models import GlobalConfig, Profile

_APP_NAME = "apitree"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "apitree.json"

ENV_PROFILE = "APITREE_PROFILE"
ENV_BASE_URI = "APITREE_BASE_URI"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True on platforms following the XDG Base Directory spec (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    return Path.home().joinpath(*default_segments)


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/apitree/`` (default ``~/.config/apitree/``).
    On macOS/Windows: ``~/.apitree/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/apitree/`` (default ``~/.local/share/apitree/``).
    On macOS/Windows: ``~/.apitree/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_profiles_dir() -> Path:
    """Return ``<config_dir>/profiles/``, creating it if necessary."""
    path = get_config_dir() / "profiles"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* through a temp file in the same directory.

    ``os.replace`` is an atomic rename on POSIX when source and target share
    a directory. The temp file is removed on any failure.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


def _read_json(path: Path, what: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid {what} at {path}: {exc}") from exc


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration, or defaults when no file exists.

    Raises:
        ConfigError: The file contains invalid JSON or fails validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    data = _read_json(path, "global config")
    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


# --- Profiles ---


def _profile_path(name: str) -> Path:
    return get_profiles_dir() / f"{name}.json"


def list_profiles() -> list[str]:
    """Return the names of all saved profiles, sorted."""
    return sorted(p.stem for p in get_profiles_dir().glob("*.json") if p.is_file())


def load_profile(name: str) -> Profile:
    """Load and validate the profile *name*.

    Raises:
        ConfigError: The profile does not exist, contains invalid JSON, or
            fails validation.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    data = _read_json(path, f"profile '{name}'")
    try:
        return Profile.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid profile '{name}' at {path}: {exc}") from exc


def save_profile(profile: Profile) -> None:
    """Persist *profile* atomically; the file name is ``<profile.name>.json``."""
    data = profile.model_dump(mode="json")
    _atomic_write(_profile_path(profile.name), json.dumps(data, indent=2) + "\n")


def profile_exists(name: str) -> bool:
    return _profile_path(name).is_file()


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load ``./apitree.json``, or return ``None`` when absent.

    Project config typically pins ``default_profile`` for a repository.

    Raises:
        ConfigError: The file contains invalid JSON.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    return _read_json(path, "project config")


# --- Precedence resolution ---


def resolve_config(
    cli_profile: Optional[str] = None,
) -> tuple[GlobalConfig, Optional[Profile]]:
    """Resolve config with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_profile``)
        2. Environment variables (``APITREE_PROFILE``, ``APITREE_BASE_URI``)
        3. Project config (``./apitree.json``)
        4. User config (``~/.config/apitree/config.json``)
        5. Defaults

    When no profile is named anywhere and exactly one profile exists, it is
    selected automatically unless ``auto_select_single_profile`` is off.

    Returns:
        A tuple of ``(global_config, active_profile_or_None)``.
    """
    global_cfg = load_global_config()

    resolved_profile_name: Optional[str] = global_cfg.default_profile
    project = load_project_config()
    if project is not None and project.get("default_profile") is not None:
        resolved_profile_name = project["default_profile"]
    env_profile = os.environ.get(ENV_PROFILE)
    if env_profile:
        resolved_profile_name = env_profile
    if cli_profile is not None:
        resolved_profile_name = cli_profile

    if resolved_profile_name is None and global_cfg.auto_select_single_profile:
        profiles = list_profiles()
        if len(profiles) == 1:
            resolved_profile_name = profiles[0]

    profile: Optional[Profile] = None
    if resolved_profile_name is not None:
        profile = load_profile(resolved_profile_name)

    if profile is not None:
        env_base_uri = os.environ.get(ENV_BASE_URI)
        if env_base_uri:
            profile.base_uri = env_base_uri

    return global_cfg, profile
