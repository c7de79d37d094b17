"""mailctl configuration package.

What:
  Provide the import surface for settings discovery and validation.

Why:
  Callers (the CLI, tests) should depend on these names rather than on the
  internal module layout.

Interfaces:
  - load_settings / get_settings / reset_settings: resolve and cache the
    connection settings.
  - MailSettings: validated settings model.
  - ConfigError: raised for missing or malformed settings.
"""

from .loader import ConfigError, get_settings, load_settings, reset_settings
from .schema import MailSettings

__all__ = [
    "ConfigError",
    "MailSettings",
    "get_settings",
    "load_settings",
    "reset_settings",
]
