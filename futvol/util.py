import math
from typing import Any

from futvol.errors import InputMissingError, NumericConversionError


def as_float(x: Any, name: str) -> float:
    """Convert x to a finite Python float (float64).

    Raises:
        NumericConversionError: if x cannot be converted or is NaN/infinite.
    """
    try:
        value = float(x)
    except (TypeError, ValueError, OverflowError) as e:
        msg = f"Failed to convert {name}={x!r} to float64."
        raise NumericConversionError(msg) from e

    if not math.isfinite(value):
        msg = f"Expected a finite value for {name}, got {value}."
        raise NumericConversionError(msg)
    return value


def require(x: float | None, name: str) -> float:
    """Return x, or raise InputMissingError if it is None."""
    if x is None:
        msg = f"Expected a value for inputs.{name}, received None."
        raise InputMissingError(msg)
    return x
