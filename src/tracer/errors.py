"""Exceptions raised while building scenes and cameras."""


class ConfigurationError(ValueError):
    """A material, primitive, camera or render setting is invalid.

    Raised when the object is built, never while tracing.
    """


class DegenerateVectorError(ArithmeticError):
    """A zero-length vector was passed where a direction is required."""
