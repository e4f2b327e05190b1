"""Exceptions raised by the seasonal tree simulator."""


class ConfigError(ValueError):
    pass


class GestureUnavailableError(RuntimeError):
    """The external gesture predictor could not be loaded."""
