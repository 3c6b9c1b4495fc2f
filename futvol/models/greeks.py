"""First-order Black-76 Greeks.

All sensitivities reuse `d1d2` and the shifted (f, k) pair from `futvol.models.black76`, and discount with the
unshifted rate. Conventions: vega and rho per 1% move, theta per calendar day.
"""

import math

from futvol.models.black76 import discount_factor, nd1nd2, nprime_d1, price, shift_f_k
from futvol.protocols import Greeks, InputSet, OptionType
from futvol.util import require

DAYS_PER_YEAR = 365.25


def delta(inputs: InputSet) -> float:
    """Sensitivity of the price to the futures price."""
    nd1, _ = nd1nd2(inputs)
    df = discount_factor(inputs.r, inputs.t)
    return df * nd1 if inputs.option_type is OptionType.CALL else -df * nd1


def gamma(inputs: InputSet) -> float:
    """Sensitivity of delta to the futures price."""
    sigma = require(inputs.sigma, "sigma")
    f, _ = shift_f_k(inputs)
    df = discount_factor(inputs.r, inputs.t)
    return df * nprime_d1(inputs) / (f * sigma * math.sqrt(inputs.t))


def vega(inputs: InputSet) -> float:
    """Sensitivity of the price to a 1% move in volatility."""
    f, _ = shift_f_k(inputs)
    df = discount_factor(inputs.r, inputs.t)
    return 0.01 * df * f * nprime_d1(inputs) * math.sqrt(inputs.t)


def theta(inputs: InputSet) -> float:
    """Price decay over one calendar day."""
    sigma = require(inputs.sigma, "sigma")
    f, _ = shift_f_k(inputs)
    df = discount_factor(inputs.r, inputs.t)
    decay = -df * f * nprime_d1(inputs) * sigma / (2 * math.sqrt(inputs.t))
    return (decay + inputs.r * price(inputs)) / DAYS_PER_YEAR


def rho(inputs: InputSet) -> float:
    """Sensitivity of the price to a 1% move in the risk-free rate."""
    return -0.01 * inputs.t * price(inputs)


def greeks(inputs: InputSet) -> Greeks:
    """All first-order Greeks of the option."""
    return Greeks(
        delta=delta(inputs),
        gamma=gamma(inputs),
        vega=vega(inputs),
        theta=theta(inputs),
        rho=rho(inputs),
    )

