from __future__ import annotations


class PostprocessError(ValueError):
    """
    Base error for malformed post-processing inputs.

    Subclasses `ValueError` so callers that already guard against bad input
    with `except ValueError` keep working.
    """


class InvalidShapeError(PostprocessError):
    """Raw output buffer does not match the declared (num_anchors, num_channels) contract."""


class InvalidThresholdError(PostprocessError):
    """Confidence or IoU threshold outside [0, 1]."""


def check_threshold(name: str, value: float) -> float:
    value = float(value)
    if not 0.0 <= value <= 1.0:
        raise InvalidThresholdError(f"{name} must be in [0, 1], got {value}")
    return value
