"""
Exceptions raised by the MVN operator.
"""


class ConfigError(ValueError):
    """Malformed layer parameter record or settings value."""


class ShapeMismatchError(ValueError):
    """Input/output tensors cannot be normalized under the requested row grouping."""
