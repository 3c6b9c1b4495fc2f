"""Price a strip of futures options and recover their implied volatilities with both solvers."""

import logging

import numpy as np
import pandas as pd

from futvol.data.quotes import implied_vol_quotes, price_quotes
from futvol.protocols import SolverSettings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

future, rate, tau = 100.0, 0.05, 60 / 365.25
strikes = np.arange(80.0, 125.0, 5.0)

# Skewed smile: higher vols on low strikes
df = pd.DataFrame(
    {
        "option_type": np.where(strikes < future, "P", "C"),
        "future": future,
        "strike": strikes,
        "rate": rate,
        "tau": tau,
        "sigma": 0.25 - 0.4 * np.log(strikes / future),
    }
)

quotes = price_quotes(df).rename(columns={"model_price": "price"}).drop(columns="sigma")

newton = implied_vol_quotes(quotes, method="newton", settings=SolverSettings(tolerance=1e-6))
rational = implied_vol_quotes(quotes, method="rational")

result = quotes.assign(
    sigma=df["sigma"],
    iv_newton=newton["iv"],
    iv_rational=rational["iv"],
)
logger.info("\n%s", result.to_string(float_format="{:.6f}".format))
