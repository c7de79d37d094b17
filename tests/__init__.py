"""Test package marker for the mailctl suite.

What:
  Marks ``tests`` as a package so ``test_cli`` and the ``unit`` modules
  resolve with distinct import names.

How:
  Exposes nothing. Path setup and settings isolation live in ``conftest.py``.
"""
