"""Core domain layer: message models, search predicates and operations.

What:
  Group the protocol-independent pieces of mailctl. Predicates describe which
  messages to touch, models carry what was listed or is about to be sent, and
  :mod:`mailctl.core.operations` orchestrates sessions.

Interfaces:
  Import from the submodules directly (``mailctl.core.predicates``,
  ``mailctl.core.models``, ``mailctl.core.operations``).
"""
