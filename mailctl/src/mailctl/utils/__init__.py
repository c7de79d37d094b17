"""Expose the public utility surface for mailctl.

Interfaces:
  ``get_logger`` and ``JsonLogger``. Logging defaults emit redacted JSON lines
  to ``stderr``.
"""

from .logging import JsonLogger, get_logger, redact

__all__ = ["JsonLogger", "get_logger", "redact"]
