"""Error taxonomy for Black-76 pricing and implied volatility."""


class Black76Error(Exception):
    """Base class for failures raised by the pricing engine."""


class InputMissingError(Black76Error):
    """A field required by the operation is None (sigma for pricing, p for solving)."""


class NumericConversionError(Black76Error):
    """A value could not be represented as a finite float64."""


class ConvergenceFailureError(Black76Error):
    """The implied volatility solver did not produce a usable volatility."""


class InvalidDomainError(Black76Error, ValueError):
    """An input lies outside the domain of the model (e.g. t <= 0 or sigma <= 0)."""
