"""Ready-made specs for the three analyses compared side by side.

Each function builds a fresh spec from the asset list, so the presets never
share constraint or objective state.
"""

from collections.abc import Sequence

from .models import BoxConstraint, PortfolioSpec, WeightSumConstraint
from .objectives import income_term, max_drawdown_term, mean_term, std_dev_term


def base_spec(assets: Sequence[str], lower: float = 0.0, upper: float = 1.0) -> PortfolioSpec:
    """Fully invested spec with a box on every asset and no objective yet."""
    return PortfolioSpec.create(list(assets)).with_constraint(
        BoxConstraint(lower=lower, upper=upper)
    )


def minimum_variance_spec(
    assets: Sequence[str], lower: float = 0.0, upper: float = 1.0
) -> PortfolioSpec:
    return base_spec(assets, lower, upper).with_objective(std_dev_term())


def markowitz_spec(
    assets: Sequence[str],
    return_multiplier: float = 1.0,
    lower: float = 0.0,
    upper: float = 1.0,
) -> PortfolioSpec:
    """Mean-variance trade-off: maximize ``return_multiplier * w'mu - sqrt(w'Cw)``."""
    return base_spec(assets, lower, upper).with_objectives(
        mean_term(return_multiplier), std_dev_term()
    )


def retirement_spec(
    assets: Sequence[str],
    yields: Sequence[float],
    cash_asset: str,
    min_cash: float = 0.2,
    lower: float = 0.0,
    upper: float = 1.0,
    income_multiplier: float = 1.0,
    risk_multiplier: float = 1.0,
    drawdown_multiplier: float = 1.0,
) -> PortfolioSpec:
    """Income-oriented spec with a cash floor.

    Objectives, each present exactly once: maximize the yield-weighted income,
    minimize standard deviation and minimize maximum drawdown. The drawdown
    term makes this spec a global-search problem.
    """
    if len(yields) != len(assets):
        raise ValueError("yields must have one entry per asset")
    return (
        base_spec(assets, lower, upper)
        .with_constraint(WeightSumConstraint(assets=(cash_asset,), lower=min_cash))
        .with_objectives(
            income_term(yields, multiplier=income_multiplier),
            std_dev_term(risk_multiplier),
            max_drawdown_term(drawdown_multiplier),
        )
    )
