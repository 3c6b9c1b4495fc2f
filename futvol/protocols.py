"""Protocols and data structures for Black-76 pricing and implied volatility."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Protocol, runtime_checkable

from futvol.errors import InvalidDomainError
from futvol.util import as_float

# ---------------------------------------------------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------------------------------------------------


class OptionType(Enum):
    """Option type, valued with the C/P codes used in quote tables."""

    CALL = "C"
    PUT = "P"

    @property
    def sign(self) -> float:
        """+1 for calls and -1 for puts."""
        return 1.0 if self is OptionType.CALL else -1.0

    @classmethod
    def parse(cls, x: "OptionType | str") -> "OptionType":
        """Parse 'C'/'P'/'call'/'put' (case-insensitive) into an OptionType."""
        if isinstance(x, OptionType):
            return x

        code = str(x).strip().upper()
        if code in ("C", "CALL"):
            return cls.CALL
        if code in ("P", "PUT"):
            return cls.PUT

        msg = f"Unknown option type {x!r}; expected 'C', 'P', 'call' or 'put'."
        raise ValueError(msg)

    def __str__(self) -> str:
        return "Call" if self is OptionType.CALL else "Put"


@dataclass(frozen=True, slots=True)
class InputSet:
    """Inputs of a single Black-76 pricing or implied volatility call.

    Attributes:
        option_type: Call or put.
        f: Futures price.
        k: Strike price.
        r: Continuously-compounded risk-free rate (may be negative).
        t: Time to maturity (year fraction).
        p: Observed option price, required when solving for volatility.
        sigma: Volatility, required when pricing.
        shifted: Apply the negative-rate displacement to f and k.
    """

    option_type: OptionType
    f: float
    k: float
    r: float
    t: float
    p: float | None = None
    sigma: float | None = None
    shifted: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "option_type", OptionType.parse(self.option_type))
        for name in ("f", "k", "r", "t"):
            object.__setattr__(self, name, as_float(getattr(self, name), name))
        for name in ("p", "sigma"):
            if getattr(self, name) is not None:
                object.__setattr__(self, name, as_float(getattr(self, name), name))
        object.__setattr__(self, "shifted", bool(self.shifted))

        if self.t <= 0:
            msg = f"Time to maturity must be positive, got t={self.t}."
            raise InvalidDomainError(msg)
        if not self.shifted and (self.f <= 0 or self.k <= 0):
            msg = f"Future and strike must be positive without shift, got f={self.f}, k={self.k}."
            raise InvalidDomainError(msg)

    def with_sigma(self, sigma: float | None) -> "InputSet":
        """Return a copy with a different volatility."""
        return replace(self, sigma=sigma)

    def with_price(self, p: float | None) -> "InputSet":
        """Return a copy with a different observed price."""
        return replace(self, p=p)

    def __str__(self) -> str:
        price = "None" if self.p is None else f"{self.p:.2f}"
        vol = "None" if self.sigma is None else f"{self.sigma:.4f}"
        return "\n".join(
            [
                f"Option type: {self.option_type}",
                f"Future price: {self.f:.2f}",
                f"Strike price: {self.k:.2f}",
                f"Option price: {price}",
                f"Risk-free rate: {self.r:.4f}",
                f"Time to maturity: {self.t:.4f}",
                f"Volatility: {vol}",
            ]
        )


@dataclass(frozen=True, slots=True)
class SolverSettings:
    """Settings of the Newton-Raphson implied volatility solver.

    The tolerance is on the absolute price difference; values between 1e-4 and 1e-3 are a good trade-off.
    """

    tolerance: float = 1e-4
    max_iter: int = 500

    def __post_init__(self) -> None:
        if not self.tolerance > 0:
            msg = f"tolerance must be positive, got {self.tolerance}."
            raise ValueError(msg)
        if self.max_iter < 1:
            msg = f"max_iter must be at least 1, got {self.max_iter}."
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class Greeks:
    """First-order sensitivities. Vega and rho per 1% move, theta per calendar day."""

    delta: float
    gamma: float
    vega: float
    theta: float
    rho: float


# ---------------------------------------------------------------------------------------------------------------------
# Solver protocols
# ---------------------------------------------------------------------------------------------------------------------


@runtime_checkable
class ImpliedVolSolver(Protocol):
    """Implied volatility backend.

    Any callable mapping an InputSet carrying an observed price to a volatility. Failures are raised as
    `futvol.errors.Black76Error` subclasses so callers do not depend on the backend.
    """

    def __call__(self, inputs: InputSet) -> float: ...
