"""Summary projection of weight vectors for comparison tables and plots."""

from collections.abc import Mapping, Sequence

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict

from ..core.models import OptimizationResult
from ..core.objectives import portfolio_income, portfolio_return, portfolio_volatility
from ..utils.exceptions import SchemaMismatchError


class PortfolioSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    expected_return: float
    risk: float
    income: float | None = None


def _align(values: pd.Series | Sequence[float] | np.ndarray, assets: list[str], name: str):
    if isinstance(values, pd.Series):
        if set(values.index) != set(assets):
            raise SchemaMismatchError(f"{name} is not indexed by the portfolio assets")
        return values.loc[assets].to_numpy(dtype=np.float64)
    arr = np.asarray(values, dtype=np.float64)
    if arr.shape != (len(assets),):
        raise SchemaMismatchError(f"{name} must have one entry per asset")
    return arr


def summarize_portfolio(
    weights: pd.Series | Sequence[float] | np.ndarray,
    mean_returns: pd.Series,
    cov_matrix: pd.DataFrame,
    yields: pd.Series | Sequence[float] | None = None,
) -> PortfolioSummary:
    """Compute expected return, risk and (optionally) income of a weight vector.

    Args:
        weights: Portfolio weights, by asset name or in `mean_returns` order.
        mean_returns (pd.Series): Mean return per asset.
        cov_matrix (pd.DataFrame): Covariance matrix of asset returns.
        yields: Optional income yield per asset. Income is omitted without it.

    Returns:
        PortfolioSummary: ``w'mu``, ``sqrt(w'Cw)`` and ``w'y``.

    """
    assets = mean_returns.index.tolist()
    w = _align(weights, assets, "weights")
    cov = cov_matrix.loc[assets, assets].to_numpy(dtype=np.float64)
    income = None
    if yields is not None:
        income = portfolio_income(w, _align(yields, assets, "yields"))
    return PortfolioSummary(
        expected_return=portfolio_return(w, mean_returns.to_numpy(dtype=np.float64)),
        risk=portfolio_volatility(w, cov),
        income=income,
    )


def risk_return_table(
    results: Mapping[str, OptimizationResult | PortfolioSummary],
) -> pd.DataFrame:
    """Label -> (Risk, Return) frame, the input a risk/return scatter needs."""
    rows = {
        label: {"Risk": result.risk, "Return": result.expected_return}
        for label, result in results.items()
    }
    return pd.DataFrame.from_dict(rows, orient="index", columns=["Risk", "Return"])
