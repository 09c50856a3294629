import logging
from collections.abc import Sequence

import numpy as np
import pandas as pd
from scipy.stats import multivariate_normal

from ..config.config import SimulationConfig
from .schema import ReturnSample

logger = logging.getLogger(__name__)


def _broadcast(value: float | Sequence[float], num_assets: int, name: str) -> np.ndarray:
    arr = np.asarray(value, dtype=np.float64)
    if arr.ndim == 0:
        return np.full(num_assets, float(arr))
    if arr.shape != (num_assets,):
        raise ValueError(f"{name} must be a scalar or have one entry per asset")
    return arr


def simulate_returns(
    assets: Sequence[str],
    num_periods: int | None = None,
    mean_return: float | Sequence[float] | None = None,
    volatility: float | Sequence[float] | None = None,
    correlation: float = 0.0,
    seed: int | None = None,
    config: SimulationConfig | None = None,
) -> ReturnSample:
    """Draw a synthetic multivariate normal return sample.

    Args:
        assets (Sequence[str]): Asset names, one column each.
        num_periods (int, optional): Number of observations. Defaults to the config value.
        mean_return (float | Sequence[float], optional): Per-period mean, scalar or per asset.
        volatility (float | Sequence[float], optional): Per-period standard deviation,
            scalar or per asset.
        correlation (float): Constant pairwise correlation between assets.
        seed (int, optional): Seed for the random generator. The same seed always
            produces the same sample.
        config (SimulationConfig, optional): Defaults for the unspecified arguments.

    Returns:
        ReturnSample: The simulated sample indexed by period start dates.

    """
    config = config or SimulationConfig()
    assets = list(assets)
    num_assets = len(assets)
    if num_assets == 0:
        raise ValueError("At least one asset is required")
    num_periods = config.num_periods if num_periods is None else num_periods
    if num_periods < 1:
        raise ValueError("num_periods must be positive")
    if not -1.0 / max(num_assets - 1, 1) <= correlation <= 1.0:
        raise ValueError("correlation does not give a positive semi-definite covariance")

    if mean_return is None:
        mean_return = config.mean_return
    if volatility is None:
        volatility = config.volatility
    mean_arr = _broadcast(mean_return, num_assets, "mean_return")
    vol_arr = _broadcast(volatility, num_assets, "volatility")

    corr = np.full((num_assets, num_assets), correlation)
    np.fill_diagonal(corr, 1.0)
    cov_arr = corr * np.outer(vol_arr, vol_arr)

    rng = np.random.default_rng(seed)
    draws = multivariate_normal.rvs(mean=mean_arr, cov=cov_arr, size=num_periods, random_state=rng)
    draws = np.asarray(draws, dtype=np.float64).reshape(num_periods, num_assets)

    index = pd.date_range(config.start, periods=num_periods, freq=config.frequency, name="Date")
    logger.debug(
        "Simulated %d periods for %d assets (seed=%s, correlation=%s)",
        num_periods,
        num_assets,
        seed,
        correlation,
    )
    return ReturnSample(returns=pd.DataFrame(draws, index=index, columns=assets))
