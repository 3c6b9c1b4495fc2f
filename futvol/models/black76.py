import logging
import math
from collections.abc import Sequence

import numpy as np
from numpy.typing import ArrayLike
from scipy.stats import norm

from futvol.errors import InvalidDomainError, NumericConversionError
from futvol.protocols import InputSet, OptionType
from futvol.util import require

logger = logging.getLogger(__name__)

N_MEAN = 0.0
N_STD_DEV = 1.0
SQRT_2PI = math.sqrt(2.0 * math.pi)

# Margin added beyond the most negative of (f, k, r) when shifting.
SHIFT_MARGIN = 0.01


def _finite(x: float, name: str) -> float:
    if not math.isfinite(x):
        msg = f"Non-finite {name}={x} encountered."
        raise NumericConversionError(msg)
    return x


def shift_amount(f: float, k: float, r: float) -> float:
    """Displacement that makes f, k and r strictly positive.

    Implemented from Rognone, L. *Pricing Interest Rate Derivatives in a Negative Yield Environment* (2017):
    theta = |min(f, k, r)| + SHIFT_MARGIN when the minimum is negative, 0 otherwise.
    """
    m = min(f, k, r)
    return abs(m) + SHIFT_MARGIN if m < 0 else 0.0


def shift_f_k(inputs: InputSet) -> tuple[float, float]:
    """Return the (shifted) future and strike used in d1/d2 and the payoff legs."""
    if not inputs.shifted:
        return inputs.f, inputs.k

    shift = shift_amount(inputs.f, inputs.k, inputs.r)
    if shift > 0:
        logger.debug("Shifting f=%s, k=%s by %s", inputs.f, inputs.k, shift)
    return inputs.f + shift, inputs.k + shift


def discount_factor(r: float, t: float) -> float:
    """exp(-r t), raising NumericConversionError when it overflows."""
    try:
        return math.exp(-r * t)
    except OverflowError as e:
        msg = f"Discount factor out of float64 range for r={r}, t={t}."
        raise NumericConversionError(msg) from e


def d1d2(inputs: InputSet) -> tuple[float, float]:
    """Black-76 d1 and d2.

    Args:
        inputs: requires f, k, t, sigma.

    Returns: (d1, d2)
    """
    sigma = require(inputs.sigma, "sigma")
    if sigma <= 0:
        msg = f"Volatility must be positive, got sigma={sigma}."
        raise InvalidDomainError(msg)

    f, k = shift_f_k(inputs)
    if f <= 0 or k <= 0:
        msg = f"Log-normal dynamics need positive future and strike, got f={f}, k={k}."
        raise InvalidDomainError(msg)

    try:
        den = sigma * math.sqrt(inputs.t)
        d1 = (math.log(f / k) + (sigma**2 / 2) * inputs.t) / den
    except OverflowError as e:
        msg = f"d1 out of float64 range for sigma={sigma}, t={inputs.t}."
        raise NumericConversionError(msg) from e
    d2 = d1 - den

    return _finite(d1, "d1"), _finite(d2, "d2")


def norm_cdf(x: float) -> float:
    """Standard normal cumulative distribution function."""
    return _finite(float(norm.cdf(x, loc=N_MEAN, scale=N_STD_DEV)), "N(x)")


def norm_pdf(x: float) -> float:
    """Standard normal probability density function."""
    z = (x - N_MEAN) / N_STD_DEV
    return _finite(math.exp(-0.5 * z * z) / (SQRT_2PI * N_STD_DEV), "n(x)")


def nd1nd2(inputs: InputSet) -> tuple[float, float]:
    """N(d1), N(d2) for calls and N(-d1), N(-d2) for puts."""
    d1, d2 = d1d2(inputs)
    if inputs.option_type is OptionType.PUT:
        d1, d2 = -d1, -d2
    return norm_cdf(d1), norm_cdf(d2)


def nprime_d1(inputs: InputSet) -> float:
    """Standard normal density at d1."""
    d1, _ = d1d2(inputs)
    return norm_pdf(d1)


def nprime_d2(inputs: InputSet) -> float:
    """Standard normal density at d2."""
    _, d2 = d1d2(inputs)
    return norm_pdf(d2)


def price(inputs: InputSet) -> float:
    """Discounted Black-76 price of a European option on a future.

    Args:
        inputs: requires f, k, r, t, sigma.

    Returns: Contract price (non-negative).
    """
    nd1, nd2 = nd1nd2(inputs)
    f, k = shift_f_k(inputs)
    df = discount_factor(inputs.r, inputs.t)

    if inputs.option_type is OptionType.CALL:
        value = df * (nd1 * f - nd2 * k)
    else:
        value = df * (nd2 * k - nd1 * f)

    # Floor only rounding noise; a NaN must not be clamped to zero.
    return max(0.0, _finite(value, "price"))


def black76_price(
    df: ArrayLike,
    f: ArrayLike,
    k: ArrayLike,
    t: ArrayLike,
    sigma: ArrayLike,
    is_call: ArrayLike,
) -> ArrayLike:
    """Black 76 pricing function over arrays.

    Args:
        df: Discount factor
        f: Forward
        k: Strike
        t: Time to maturity (year fraction)
        sigma: Volatility
        is_call: call/put flag

    Returns: Contract price
    """
    df, f, k, t, sigma, is_call = map(np.asarray, (df, f, k, t, sigma, is_call))
    sign = np.where(is_call, 1.0, -1.0)

    d1 = (np.log(f / k) + (sigma**2 / 2) * t) / (sigma * np.sqrt(t))
    d2 = d1 - (sigma * np.sqrt(t))

    return np.maximum(df * sign * (f * norm.cdf(sign * d1) - k * norm.cdf(sign * d2)), 0.0)



def price_batch(inputs: Sequence[InputSet]) -> np.ndarray:
    """Discounted Black-76 prices of many options, evaluated over arrays with `black76_price`.

    Applies the same shift, domain checks and finiteness check as `price`, for the whole batch at once.

    Returns: Contract prices, one per input.
    """
    if len(inputs) == 0:
        return np.empty(0)

    sigma = np.array([require(x.sigma, "sigma") for x in inputs])
    if np.any(sigma <= 0):
        msg = f"Volatility must be positive, got sigma={sigma[sigma <= 0][0]}."
        raise InvalidDomainError(msg)

    f, k = np.array([shift_f_k(x) for x in inputs]).T
    if np.any(f <= 0) or np.any(k <= 0):
        msg = "Log-normal dynamics need positive future and strike after shifting."
        raise InvalidDomainError(msg)

    df = np.array([discount_factor(x.r, x.t) for x in inputs])
    t = np.array([x.t for x in inputs])
    is_call = np.array([x.option_type is OptionType.CALL for x in inputs])

    with np.errstate(all="ignore"):
        variance = sigma**2 * t
    if not np.all(np.isfinite(variance)):
        msg = f"Total variance out of float64 range at positions {np.flatnonzero(~np.isfinite(variance)).tolist()}."
        raise NumericConversionError(msg)

    with np.errstate(all="ignore"):
        values = black76_price(df, f, k, t, sigma, is_call)

    if not np.all(np.isfinite(values)):
        msg = f"Non-finite price at positions {np.flatnonzero(~np.isfinite(values)).tolist()}."
        raise NumericConversionError(msg)
    return values
