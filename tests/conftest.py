"""Pytest configuration shared by every suite.

What:
  Establish project import paths and keep the settings cache and the
  ``EMAIL_*`` environment isolated between tests.

Why:
  Tests import the ``mailctl`` package straight from the source tree, and
  settings are cached per process; without explicit resets a test could pick
  up the developer's ``.env`` or a previous test's configuration.

How:
  Prepend ``mailctl/src`` to ``sys.path`` when present, then an autouse fixture
  removes the relevant environment variables, points the working directory
  and ``HOME`` at a temporary directory, and clears the cache before and after
  each test.

Interfaces:
  :func:`isolated_settings` (pytest fixture).
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "mailctl" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest

from mailctl.config.loader import reset_settings

_ENV_KEYS = (
    "MAILCTL_CONFIG_PATH",
    "EMAIL_HOSTNAME",
    "EMAIL_IMAP_PORT",
    "EMAIL_SMTP_PORT",
    "EMAIL_USER",
    "EMAIL_PASSWORD",
    "EMAIL_TIMEOUT",
    "EMAIL_VERIFY_TLS",
)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Run every test with an empty settings environment.

    Args:
      monkeypatch: Pytest helper used to scrub the environment.
      tmp_path: Per-test directory used as CWD and ``HOME``.
    """

    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    reset_settings()
    try:
        yield
    finally:
        reset_settings()
