import logging

import numpy as np
import pandas as pd
from pandera.pandas import Check, Column, DataFrameSchema

from futvol.errors import Black76Error
from futvol.models.black76 import price_batch
from futvol.models.implied_vol import make_solver
from futvol.protocols import InputSet, SolverSettings

logger = logging.getLogger(__name__)


def _positive_unless_shifted(df: pd.DataFrame) -> bool:
    """Check future > 0 and strike > 0 on rows that are not shifted."""
    shifted = df["shifted"] if "shifted" in df.columns else pd.Series(data=False, index=df.index)
    mask = ~shifted.astype(bool)
    return bool(((df.loc[mask, "future"] > 0) & (df.loc[mask, "strike"] > 0)).all())


quotes_schema = DataFrameSchema(
    columns={
        "option_type": Column(str, Check.isin(["C", "P"]), required=True),
        "future": Column(float, required=True),
        "strike": Column(float, required=True),
        "rate": Column(float, required=True),
        "tau": Column(float, Check.gt(0), required=True),
        "price": Column(float, Check.ge(0), required=False, nullable=True),
        "sigma": Column(float, Check.gt(0), required=False, nullable=True),
        "shifted": Column(bool, required=False),
    },
    checks=[
        Check(_positive_unless_shifted, error="future and strike must be positive unless shifted"),
    ],
    coerce=True,
    strict=False,  # allows extra columns
)


def _optional(x: float | None) -> float | None:
    return None if x is None or pd.isna(x) else float(x)


def _to_inputs(row: pd.Series) -> InputSet:
    return InputSet(
        option_type=row["option_type"],
        f=row["future"],
        k=row["strike"],
        r=row["rate"],
        t=row["tau"],
        p=_optional(row.get("price")),
        sigma=_optional(row.get("sigma")),
        shifted=bool(row.get("shifted", False)),
    )


def price_quotes(quotes: pd.DataFrame) -> pd.DataFrame:
    """Price every row of a quotes table.

    Args:
        quotes: Table matching `quotes_schema` with a populated `sigma` column.

    Returns: A validated copy with a `model_price` column.
    """
    df = quotes_schema.validate(quotes.copy())
    prices = price_batch([_to_inputs(row) for _, row in df.iterrows()])
    return df.assign(model_price=prices)


def implied_vol_quotes(
    quotes: pd.DataFrame,
    method: str = "newton",
    settings: SolverSettings | None = None,
) -> pd.DataFrame:
    """Solve the implied volatility of every row of a quotes table.

    Rows whose solve fails get NaN and a warning naming the row index.

    Args:
        quotes: Table matching `quotes_schema` with a populated `price` column.
        method: Solver name, see `futvol.models.implied_vol.SOLVER_REGISTRY`.
        settings: Newton-Raphson settings (ignored by the rational solver).

    Returns: A validated copy with an `iv` column.
    """
    solver = make_solver(method, settings)
    df = quotes_schema.validate(quotes.copy())

    iv = np.full(len(df), np.nan)
    for i, (idx, row) in enumerate(df.iterrows()):
        try:
            iv[i] = solver(_to_inputs(row))
        except Black76Error as e:
            logger.warning("Implied volatility failed for row %s: %s", idx, e)

    return df.assign(iv=iv)
