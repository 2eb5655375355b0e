"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for clerklite:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.clerklite/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`, :func:`get_profiles_dir`.
* **Global config** -- one :class:`~clerklite.models.GlobalConfig` JSON file
  with the default profile and output preferences.
* **Profiles** -- one JSON file per Clerk instance, each deserialised into a
  :class:`~clerklite.models.Profile`.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, the project-local file, and the global config.

Session and token state is not stored here. It lives in the per-profile
:class:`~clerklite.storage.DiskStorage` under the data directory.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from clerklite.exceptions import ConfigError
from clerklite.models import GlobalConfig, Profile, normalize_domain

_APP_NAME = "clerklite"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "clerklite.json"

ENV_PROFILE = "CLERKLITE_PROFILE"
ENV_DOMAIN = "CLERKLITE_DOMAIN"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(xdg_var: str, xdg_default: tuple[str, ...], fallback: Optional[str]) -> Path:
    """Resolve and create one of the application directories.

    On XDG platforms this is ``$<xdg_var>/clerklite`` (``~/<xdg_default>/clerklite``
    when the variable is unset); elsewhere ``~/.clerklite/<fallback>``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get(xdg_var, "")
        base = Path(env_value) if env_value else Path.home().joinpath(*xdg_default)
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
        if fallback:
            path = path / fallback
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/clerklite/`` (default ``~/.config/clerklite/``).
    On macOS/Windows: ``~/.clerklite/``.
    """
    return _app_dir("XDG_CONFIG_HOME", (".config",), None)


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CACHE_HOME/clerklite/`` (default ``~/.cache/clerklite/``).
    On macOS/Windows: ``~/.clerklite/cache/``.
    """
    return _app_dir("XDG_CACHE_HOME", (".cache",), "cache")


def get_data_dir() -> Path:
    """Return the data directory (session storage, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/clerklite/`` (default ``~/.local/share/clerklite/``).
    On macOS/Windows: ``~/.clerklite/data/``.
    """
    return _app_dir("XDG_DATA_HOME", (".local", "share"), "data")


def get_profiles_dir() -> Path:
    """Return ``<config_dir>/profiles/``, creating it if necessary."""
    path = get_config_dir() / "profiles"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* atomically.

    The content goes to a temporary file in the same directory, is fsynced,
    then renamed over *path* with ``os.replace``. The temporary file is
    removed if anything fails, including ``KeyboardInterrupt``.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    handle = None
    tmp_path: Optional[str] = None
    try:
        handle = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = handle.name
        handle.write(data)
        handle.flush()
        os.fsync(handle.fileno())
        handle.close()
        handle = None
        os.replace(tmp_path, path)
    except BaseException:
        if handle is not None:
            handle.close()
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
    """Load the global configuration.

    Returns:
        The stored :class:`~clerklite.models.GlobalConfig`, or a default
        instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but is not valid JSON or fails
            validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    data = _read_json(path, "global config")
    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically."""
    data = config.model_dump(mode="json")
    atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Profiles ---


def _profile_path(name: str) -> Path:
    return get_profiles_dir() / f"{name}.json"


def list_profiles() -> list[str]:
    """Return the names of all stored profiles, sorted."""
    return sorted(p.stem for p in get_profiles_dir().glob("*.json") if p.is_file())


def profile_exists(name: str) -> bool:
    return _profile_path(name).is_file()


def load_profile(name: str) -> Profile:
    """Load and validate the profile called *name*.

    Raises:
        ConfigError: If the profile is missing, not JSON, or invalid.
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
    """Persist *profile* atomically as ``<profiles_dir>/<profile.name>.json``."""
    data = profile.model_dump(mode="json")
    atomic_write(_profile_path(profile.name), json.dumps(data, indent=2) + "\n")


def delete_profile(name: str) -> None:
    """Delete a stored profile.

    Raises:
        ConfigError: If the profile does not exist.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    path.unlink()


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load ``./clerklite.json`` if present.

    A repository can use it to pin ``default_profile`` or a ``domain``.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    data = _read_json(path, "project config")
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Precedence resolution ---


def adhoc_profile(domain: str) -> Profile:
    """Build an unsaved profile for a bare domain. Its name is the domain itself."""
    domain = normalize_domain(domain)
    return Profile(name=domain, domain=domain)


def resolve_config(
    cli_profile: Optional[str] = None,
    cli_domain: Optional[str] = None,
    cli_format: Optional[str] = None,
) -> tuple[GlobalConfig, Optional[Profile]]:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. CLI flags (``cli_profile``, ``cli_domain``, ``cli_format``)
        2. Environment variables (``CLERKLITE_PROFILE``, ``CLERKLITE_DOMAIN``)
        3. Project config (``./clerklite.json``)
        4. User config (``~/.config/clerklite/config.json``)
        5. Defaults

    A domain without any profile yields an ad hoc profile named after the
    domain, so ``clerklite --domain x.clerk.accounts.dev auth status`` works
    without running ``init`` first.

    Returns:
        ``(global_config, profile_or_None)``.
    """
    global_cfg = load_global_config()
    project = load_project_config() or {}

    profile_name: Optional[str] = global_cfg.default_profile
    if project.get("default_profile"):
        profile_name = project["default_profile"]
    if os.environ.get(ENV_PROFILE):
        profile_name = os.environ[ENV_PROFILE]
    if cli_profile is not None:
        profile_name = cli_profile

    domain: Optional[str] = project.get("domain") or None
    if os.environ.get(ENV_DOMAIN):
        domain = os.environ[ENV_DOMAIN]
    if cli_domain is not None:
        domain = cli_domain

    if profile_name is None and domain is None and global_cfg.auto_select_single_profile:
        profiles = list_profiles()
        if len(profiles) == 1:
            profile_name = profiles[0]

    profile: Optional[Profile] = None
    if profile_name is not None:
        profile = load_profile(profile_name)
        if domain is not None:
            profile.domain = normalize_domain(domain)
    elif domain is not None:
        profile = adhoc_profile(domain)

    if cli_format is not None:
        global_cfg.output.format = cli_format

    return global_cfg, profile
