import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field

import numpy as np

from futvol.errors import ConvergenceFailureError
from futvol.models.black76 import SQRT_2PI, price, shift_f_k
from futvol.models.greeks import vega
from futvol.models.jaeckel import RationalSolver
from futvol.protocols import ImpliedVolSolver, InputSet, SolverSettings
from futvol.util import require

logger = logging.getLogger(__name__)

# Modified Corrado-Miller correction: sigma = CM + A + B/x + C*y + D/x^2 + E*y^2 + F*y/x
CM_A = 4.6262753e-1
CM_B = -1.1685192e-2
CM_C = 9.6354185e-4
CM_D = 7.5350225e-5
CM_E = 1.42451645e-5
CM_F = -2.1023769e-5

# Iterates above this are treated as divergence (10,000% volatility).
MAX_SIGMA = 100.0


def corrado_miller_seed(inputs: InputSet) -> float:
    """Initial implied volatility estimate.

    Modified Corrado-Miller estimator from Luciennik, P. *A modified Corrado-Miller implied volatility estimator*
    (2007). The closed form is invalid for some deep in/out-of-the-money or near-expiry quotes, in which case the
    square root argument goes negative and the seed is NaN.

    Raises:
        InputMissingError: if inputs.p is None.
        ConvergenceFailureError: if the seed is not a finite positive number.
    """
    p = np.float64(require(inputs.p, "p"))
    f, k = shift_f_k(inputs)
    f, k, r, t = map(np.float64, (f, k, inputs.r, inputs.t))

    with np.errstate(all="ignore"):
        big_x = k * np.exp(-r * t)
        f_minus_x = f - big_x
        f_plus_x = f + big_x
        one_over_sqrt_t = 1.0 / np.sqrt(t)

        root = np.sqrt((p - f_minus_x / 2.0) ** 2 - f_minus_x**2 / np.pi)
        x = one_over_sqrt_t * (SQRT_2PI / f_plus_x)
        y = p - (f - k) / 2.0 + root

        sigma = (
            one_over_sqrt_t * (SQRT_2PI / f_plus_x) * (p - f_minus_x / 2.0 + root)
            + CM_A
            + CM_B / x
            + CM_C * y
            + CM_D / x**2
            + CM_E * y**2
            + CM_F * y / x
        )

    sigma = float(sigma)
    if not math.isfinite(sigma) or sigma <= 0:
        msg = f"Failed to converge: initial volatility estimate is {sigma} for p={inputs.p}, f={f}, k={k}."
        raise ConvergenceFailureError(msg)

    logger.debug("Corrado-Miller seed sigma=%s", sigma)
    return sigma


def implied_volatility(inputs: InputSet, tolerance: float = 1e-4, max_iter: int = 500) -> float:
    """Implied volatility of the observed price in `inputs.p`.

    Seeds with `corrado_miller_seed` and refines with Newton-Raphson until the absolute price difference is
    within `tolerance`. Lower tolerances need more iterations; 1e-4 to 1e-3 is recommended.

    Args:
        inputs: requires f, k, r, t, p. Any sigma already set is ignored.
        tolerance: Maximum absolute difference between model and observed price.
        max_iter: Maximum number of Newton-Raphson steps.

    Returns: Implied volatility.

    Raises:
        InputMissingError: if inputs.p is None.
        ConvergenceFailureError: if the seed or an iterate is unusable, vega vanishes, or max_iter is exceeded.
    """
    if not tolerance > 0:
        msg = f"tolerance must be positive, got {tolerance}."
        raise ValueError(msg)

    p = require(inputs.p, "p")
    sigma = corrado_miller_seed(inputs)

    for i in range(max_iter):
        candidate = inputs.with_sigma(sigma)
        diff = price(candidate) - p
        logger.debug("Newton-Raphson iteration %d: sigma=%s, diff=%s", i, sigma, diff)

        if abs(diff) <= tolerance:
            return sigma

        v = vega(candidate)
        if v == 0:
            msg = f"Failed to converge: vega vanished at sigma={sigma}."
            raise ConvergenceFailureError(msg)

        # vega is per 1% vol
        sigma -= diff / (v * 100)

        if not math.isfinite(sigma) or sigma <= 0 or sigma > MAX_SIGMA:
            msg = f"Failed to converge: iterate sigma={sigma} after {i + 1} iterations."
            raise ConvergenceFailureError(msg)

    msg = f"Failed to converge within {max_iter} iterations (last sigma={sigma})."
    raise ConvergenceFailureError(msg)


@dataclass(frozen=True)
class NewtonSolver:
    """ImpliedVolSolver backed by `implied_volatility`."""

    settings: SolverSettings = field(default_factory=SolverSettings)

    def __call__(self, inputs: InputSet) -> float:
        return implied_volatility(inputs, tolerance=self.settings.tolerance, max_iter=self.settings.max_iter)


SOLVER_REGISTRY: dict[str, Callable[[SolverSettings], ImpliedVolSolver]] = {
    "newton": NewtonSolver,
    "rational": lambda _: RationalSolver(),
}


def make_solver(name: str, settings: SolverSettings | None = None) -> ImpliedVolSolver:
    """Build an implied volatility solver by name ('newton' or 'rational')."""
    try:
        factory = SOLVER_REGISTRY[name]
    except KeyError:
        msg = f"Unknown solver {name!r}; expected one of {sorted(SOLVER_REGISTRY)}."
        raise ValueError(msg) from None
    return factory(SolverSettings() if settings is None else settings)
