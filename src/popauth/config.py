"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for popauth:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.popauth/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Settings file** -- A single :class:`~popauth.models.Settings` JSON file
  storing defaults (popup timeout, redirect listener address).
* **Precedence resolution** -- :func:`resolve_settings` merges CLI flags,
  environment variables, and the settings file into the effective settings.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from popauth.exceptions import ConfigError
from popauth.models import Settings

_APP_NAME = "popauth"
_CONFIG_FILENAME = "config.json"

# Environment variable -> Settings field.
_ENV_OVERRIDES = {
    "POPAUTH_POPUP_TIMEOUT_MS": "popup_timeout_ms",
    "POPAUTH_REDIRECT_HOST": "redirect_host",
    "POPAUTH_REDIRECT_PORT": "redirect_port",
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True on platforms that use the XDG Base Directory layout (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/popauth/`` (default ``~/.config/popauth/``).
    On macOS/Windows: ``~/.popauth/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/popauth/`` (default ``~/.local/share/popauth/``).
    On macOS/Windows: ``~/.popauth/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up.
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
        fd = None  # prevent double-close in finally
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


# --- Settings file ---


def settings_path() -> Path:
    """Path to the settings file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_settings() -> Settings:
    """Load settings from the config directory.

    Returns:
        The deserialised :class:`~popauth.models.Settings`. If the file does
        not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            validation.
    """
    path = settings_path()
    if not path.is_file():
        return Settings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Settings.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid settings at {path}: {exc}") from exc


def save_settings(settings: Settings) -> None:
    """Persist settings atomically to the config directory."""
    data = settings.model_dump(mode="json")
    _atomic_write(settings_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_settings(
    cli_timeout_ms: Optional[int] = None,
    cli_redirect_host: Optional[str] = None,
    cli_redirect_port: Optional[int] = None,
) -> Settings:
    """Resolve settings with the full precedence chain.

    Precedence (high to low):
        1. CLI flags
        2. Environment variables (``POPAUTH_POPUP_TIMEOUT_MS``,
           ``POPAUTH_REDIRECT_HOST``, ``POPAUTH_REDIRECT_PORT``)
        3. Settings file (``~/.config/popauth/config.json``)
        4. Defaults

    Raises:
        ConfigError: If the file is invalid or an override does not validate.
    """
    data: dict[str, Any] = load_settings().model_dump()

    for env_var, field_name in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            data[field_name] = value

    cli_values = {
        "popup_timeout_ms": cli_timeout_ms,
        "redirect_host": cli_redirect_host,
        "redirect_port": cli_redirect_port,
    }
    data.update({k: v for k, v in cli_values.items() if v is not None})

    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings override: {exc}") from exc


def settings_sources() -> dict[str, str]:
    """Return where each effective setting comes from, ignoring CLI flags.

    Each field maps to ``"env"`` when its environment variable is set,
    ``"file"`` when the settings file sets it, and ``"default"`` otherwise.

    Raises:
        ConfigError: If the settings file is invalid.
    """
    in_file = load_settings().model_fields_set
    from_env = {field for var, field in _ENV_OVERRIDES.items() if os.environ.get(var)}

    sources: dict[str, str] = {}
    for name in Settings.model_fields:
        if name in from_env:
            sources[name] = "env"
        elif name in in_file:
            sources[name] = "file"
        else:
            sources[name] = "default"
    return sources
