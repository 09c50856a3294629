"""Constrained mean-variance and heuristic portfolio optimization."""

from .analysis.summary import PortfolioSummary, risk_return_table, summarize_portfolio
from .config.config import AppConfig
from .core.models import (
    BoxConstraint,
    ConvergenceStatus,
    CustomTerm,
    OptimizationMethod,
    OptimizationResult,
    PortfolioSpec,
    ReturnMeasure,
    ReturnTerm,
    RiskMeasure,
    RiskTerm,
    Sense,
    WeightSumConstraint,
)
from .core.objectives import income_term, max_drawdown_term, mean_term, std_dev_term
from .core.optimizer import PortfolioOptimizer, optimize
from .core.presets import markowitz_spec, minimum_variance_spec, retirement_spec
from .core.request import OptimizationRequest
from .data.schema import ReturnSample
from .data.simulation import simulate_returns
from .utils.exceptions import (
    DegenerateObjectiveError,
    InfeasibleSpecError,
    NoFeasibleSolutionError,
    OptimizationCancelledError,
    OptimizationError,
    PortfolioConstructorError,
    ProjectionFailedError,
    SchemaMismatchError,
    UnsupportedForMethodError,
)

__all__ = [
    "AppConfig",
    "BoxConstraint",
    "ConvergenceStatus",
    "CustomTerm",
    "DegenerateObjectiveError",
    "InfeasibleSpecError",
    "NoFeasibleSolutionError",
    "OptimizationCancelledError",
    "OptimizationError",
    "OptimizationMethod",
    "OptimizationRequest",
    "OptimizationResult",
    "PortfolioConstructorError",
    "PortfolioOptimizer",
    "PortfolioSpec",
    "PortfolioSummary",
    "ProjectionFailedError",
    "ReturnMeasure",
    "ReturnSample",
    "ReturnTerm",
    "RiskMeasure",
    "RiskTerm",
    "SchemaMismatchError",
    "Sense",
    "UnsupportedForMethodError",
    "WeightSumConstraint",
    "income_term",
    "markowitz_spec",
    "max_drawdown_term",
    "mean_term",
    "minimum_variance_spec",
    "optimize",
    "retirement_spec",
    "risk_return_table",
    "simulate_returns",
    "std_dev_term",
]
