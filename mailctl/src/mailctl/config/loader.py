"""Locate, parse and validate mailctl connection settings.

What:
  Resolve the settings used by every operation (host, store port, SMTP port,
  user, password) from a YAML file, a ``.env`` file, or the process
  environment, and cache the validated result.

Why:
  Settings live outside the application and are easy to get subtly wrong
  (a missing password, a port typed as text). Centralising discovery and
  validation gives the CLI one error type to report and keeps the operations
  layer free of environment lookups.

How:
  An explicit path or ``MAILCTL_CONFIG_PATH`` selects a YAML document parsed
  with ``yaml.safe_load``. Otherwise the first ``.env`` found in the current
  directory or the home directory is read with ``python-dotenv`` and overlaid
  with the process environment, which wins. The resulting mapping is
  validated by :class:`~mailctl.config.schema.MailSettings`.

Interfaces:
  :func:`load_settings`, :func:`get_settings`, :func:`reset_settings`,
  :class:`ConfigError`.

Invariants:
  - Validation failures always surface as :class:`ConfigError` naming the
    offending key.
  - The cache honours explicit ``reload`` requests and different paths.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

import yaml
from dotenv import dotenv_values
from pydantic import ValidationError

from .schema import MailSettings


class ConfigError(Exception):
    """Raised when settings cannot be located, parsed or validated."""


_CONFIG_ENV = "MAILCTL_CONFIG_PATH"

ENV_HOSTNAME = "EMAIL_HOSTNAME"
ENV_IMAP_PORT = "EMAIL_IMAP_PORT"
ENV_SMTP_PORT = "EMAIL_SMTP_PORT"
ENV_USER = "EMAIL_USER"
ENV_PASSWORD = "EMAIL_PASSWORD"
ENV_TIMEOUT = "EMAIL_TIMEOUT"
ENV_VERIFY_TLS = "EMAIL_VERIFY_TLS"

_ENV_FIELDS: Tuple[Tuple[str, str, bool], ...] = (
    (ENV_HOSTNAME, "hostname", True),
    (ENV_IMAP_PORT, "imap_port", True),
    (ENV_SMTP_PORT, "smtp_port", True),
    (ENV_USER, "user", True),
    (ENV_PASSWORD, "password", True),
    (ENV_TIMEOUT, "timeout", False),
    (ENV_VERIFY_TLS, "verify_tls", False),
)
_INT_FIELDS = {"imap_port", "smtp_port"}

_SETTINGS_CACHE: Optional[Tuple[Optional[Path], MailSettings]] = None


def _dotenv_candidates(cwd: Optional[Path] = None, home: Optional[Path] = None) -> Iterable[Path]:
    yield (cwd or Path.cwd()) / ".env"
    yield (home or Path.home()) / ".env"


def _read_env_sources(
    environ: Mapping[str, str],
    *,
    cwd: Optional[Path] = None,
    home: Optional[Path] = None,
) -> Dict[str, Optional[str]]:
    """Merge the first ``.env`` file found with ``environ``."""

    merged: Dict[str, Optional[str]] = {}
    for candidate in _dotenv_candidates(cwd, home):
        if candidate.is_file():
            merged.update(dotenv_values(candidate))
            break
    for key, _, _ in _ENV_FIELDS:
        if key in environ:
            merged[key] = environ[key]
    return merged


def _payload_from_env(values: Mapping[str, Optional[str]]) -> Dict[str, Any]:
    """Convert ``EMAIL_*`` variables into a settings payload.

    Raises:
      ConfigError: If a required variable is missing/blank or a port is not an
        integer.
    """

    payload: Dict[str, Any] = {}
    for key, field_name, required in _ENV_FIELDS:
        raw = values.get(key)
        if raw is None or not str(raw).strip():
            if required:
                raise ConfigError(
                    f"Required environment variable {key} is not set. "
                    "Please create a .env file or set it as an environment variable."
                )
            continue
        value = str(raw).strip()
        if field_name in _INT_FIELDS:
            try:
                payload[field_name] = int(value)
            except ValueError:
                raise ConfigError(
                    f"Environment variable {key} must be a valid integer, but got: {value}"
                ) from None
        else:
            payload[field_name] = value
    return payload


def _payload_from_yaml(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text()
    except FileNotFoundError as exc:
        raise ConfigError(f"Configuration file missing: {path}") from exc
    except OSError as exc:  # pragma: no cover - filesystem surface
        raise ConfigError(f"Unable to read configuration file {path}: {exc}") from exc
    try:
        payload = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"{path} must contain a mapping at the top-level")
    return payload


def _validate(payload: Mapping[str, Any], source: str) -> MailSettings:
    try:
        return MailSettings.model_validate(dict(payload))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        raise ConfigError(f"Invalid settings from {source}: {problems}") from exc


def load_settings(
    path: Optional[Union[Path, str]] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    reload: bool = False,
    cwd: Optional[Path] = None,
    home: Optional[Path] = None,
) -> MailSettings:
    """Resolve, validate and cache the connection settings.

    What:
      Returns the :class:`MailSettings` for this process.

    Why:
      Every CLI command needs the same settings; caching avoids re-reading
      files while ``reload`` gives tests a deterministic refresh.

    How:
      Use the YAML document named by ``path`` or ``MAILCTL_CONFIG_PATH`` when
      present, otherwise the ``.env``/environment chain. Validate and store
      the result in the module cache.

    Args:
      path: Optional YAML settings file.
      environ: Environment mapping; defaults to :data:`os.environ`.
      reload: Bypass the cache.
      cwd: Directory searched first for ``.env`` (defaults to the CWD).
      home: Directory searched second for ``.env`` (defaults to ``~``).

    Returns:
      Validated settings.

    Raises:
      ConfigError: If no valid settings can be assembled.
    """

    global _SETTINGS_CACHE

    env = os.environ if environ is None else environ
    requested: Optional[Path] = Path(path).expanduser() if path is not None else None
    if requested is None and env.get(_CONFIG_ENV):
        requested = Path(env[_CONFIG_ENV]).expanduser()

    if not reload and _SETTINGS_CACHE is not None:
        cached_path, cached = _SETTINGS_CACHE
        if cached_path == requested:
            return cached

    if requested is not None:
        settings = _validate(_payload_from_yaml(requested), str(requested))
    else:
        values = _read_env_sources(env, cwd=cwd, home=home)
        settings = _validate(_payload_from_env(values), "environment")
    _SETTINGS_CACHE = (requested, settings)
    return settings


def get_settings() -> MailSettings:
    """Return the cached settings, loading them on demand."""

    return load_settings()


def reset_settings() -> None:
    """Clear the settings cache."""

    global _SETTINGS_CACHE
    _SETTINGS_CACHE = None


__all__ = [
    "ConfigError",
    "load_settings",
    "get_settings",
    "reset_settings",
    "ENV_HOSTNAME",
    "ENV_IMAP_PORT",
    "ENV_SMTP_PORT",
    "ENV_USER",
    "ENV_PASSWORD",
    "ENV_TIMEOUT",
    "ENV_VERIFY_TLS",
]
