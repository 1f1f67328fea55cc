"""
Purpose: Project exception hierarchy.
Constraints: Exceptions only; HTTP failures are reported as result objects, not raised.
"""


class WorldOpenerError(Exception):
    """Base class for errors raised by the opener."""


class ConfigError(WorldOpenerError):
    """Configuration could not be loaded or failed validation."""


class BrowserBridgeError(WorldOpenerError):
    """The live browser could not be driven (missing driver, dead session)."""
