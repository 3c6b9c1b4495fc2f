"""Implied volatility using Jaeckel's "Let's be rational" method.

The algorithm itself lives in `py_lets_be_rational`; this module only marshals an InputSet into its
(price, F, K, T, q) convention and classifies the result, since the library signals failure through sentinel
values or exceptions rather than a typed error.

References:
    Jäckel, P. *Let's be rational* (2016), http://www.jaeckel.org/LetsBeRational.pdf
"""

import math
import sys
from dataclasses import dataclass

import py_lets_be_rational

from futvol.errors import ConvergenceFailureError
from futvol.models.black76 import discount_factor, shift_f_k
from futvol.protocols import InputSet
from futvol.util import require


def implied_volatility_rational(inputs: InputSet) -> float:
    """Implied volatility of the observed price in `inputs.p`.

    The library works on undiscounted prices, so p is divided by the discount factor first. When
    `inputs.shifted` is set the shifted future and strike are passed, matching `futvol.models.black76.price`.

    Raises:
        InputMissingError: if inputs.p is None.
        ConvergenceFailureError: if the library raises, or returns a non-finite, negative or sentinel value.
    """
    p = require(inputs.p, "p")
    f, k = shift_f_k(inputs)
    df = discount_factor(inputs.r, inputs.t)

    try:
        undiscounted = p / df
        sigma = py_lets_be_rational.implied_volatility_from_a_transformed_rational_guess(
            undiscounted, f, k, inputs.t, inputs.option_type.sign
        )
    except Exception as e:
        msg = f"Implied volatility failed to converge: {type(e).__name__} raised for p={p}, f={f}, k={k}."
        raise ConvergenceFailureError(msg) from e

    sigma = float(sigma)
    # float_info.max is the library's "price above maximum" sentinel.
    if not math.isfinite(sigma) or sigma < 0 or sigma >= sys.float_info.max:
        msg = f"Implied volatility failed to converge: got sigma={sigma} for p={p}, f={f}, k={k}."
        raise ConvergenceFailureError(msg)
    return sigma


@dataclass(frozen=True)
class RationalSolver:
    """ImpliedVolSolver backed by `implied_volatility_rational`."""

    def __call__(self, inputs: InputSet) -> float:
        return implied_volatility_rational(inputs)
