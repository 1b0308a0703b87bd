from __future__ import annotations


class ConfigError(ValueError):
    """Invalid invocation settings, detected before any input is read."""


class InputDecodeError(ValueError):
    """Input bytes could not be decoded as text."""
