"""Errors that leave the module that raised them."""


class ConfigError(Exception):
    """Configuration is missing or invalid; startup must abort."""


class ShutdownError(Exception):
    """The poweroff command could not be run or exited non-zero."""
