"""JSON event log for mail operations.

What:
  One JSON object per line on ``stderr`` for every connection attempt, folder
  release and operation outcome, with message content and credentials
  masked.

Why:
  :class:`~mailctl.core.operations.MailOperations` turns connection failures
  into ``[]`` or ``False``; the event written where the failure happened is
  the only trace of the cause. ``stdout`` is reserved for the CLI's JSON
  listing, so events never go there.

How:
  :class:`JsonLogger` carries a component name plus bound context fields
  (see :meth:`JsonLogger.bind`). Each event merges ``ts``/``lvl``/``msg``/
  ``component``, the bound fields and the call's keyword fields, then masks
  sensitive keys at any depth of dicts, lists and tuples.

Interfaces:
  :class:`JsonLogger`, :func:`get_logger`, :func:`redact`, :data:`REDACTED`.

Invariants & Safety:
  - ``subject``, ``body`` and ``password`` values never reach the stream.
  - Call fields override bound fields of the same name.
"""
from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

REDACTED = "[redacted]"
SENSITIVE_KEYS = frozenset({"subject", "body", "password"})


def redact(value: Any) -> Any:
    """Return ``value`` with every sensitive mapping key masked."""

    if isinstance(value, Mapping):
        return {
            key: REDACTED if key in SENSITIVE_KEYS else redact(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    return value


@dataclass(frozen=True)
class JsonLogger:
    """Line-oriented JSON logger for one component.

    ``bind`` returns a copy that stamps extra fields on every event, which
    the sessions use to tag all of their events with protocol, host and port.
    """

    stream: Any = field(default_factory=lambda: sys.stderr)
    component: str = "mailctl"
    context: Dict[str, Any] = field(default_factory=dict)

    def bind(self, **fields: Any) -> "JsonLogger":
        return replace(self, context={**self.context, **fields})

    def log(self, level: str, message: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        """Write one event.

        Args:
          level: Severity name; written upper-cased.
          message: snake_case event name such as ``"connect_failed"``.
          extra: Event fields, masked before serialisation.
        """

        payload: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "lvl": level.upper(),
            "msg": message,
            "component": self.component,
        }
        payload.update(redact({**self.context, **(extra or {})}))
        self.stream.write(json.dumps(payload, separators=(",", ":"), default=str) + "\n")
        self.stream.flush()

    def debug(self, message: str, **fields: Any) -> None:
        self.log("DEBUG", message, extra=fields)

    def info(self, message: str, **fields: Any) -> None:
        self.log("INFO", message, extra=fields)

    def warning(self, message: str, **fields: Any) -> None:
        self.log("WARN", message, extra=fields)

    def error(self, message: str, **fields: Any) -> None:
        """Log a failure that was turned into an empty or ``False`` result."""

        self.log("ERROR", message, extra=fields)


def get_logger(component: str) -> JsonLogger:
    return JsonLogger(component=component)


__all__ = ["JsonLogger", "REDACTED", "get_logger", "redact"]
