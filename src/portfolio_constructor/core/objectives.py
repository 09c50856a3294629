"""Objective metrics and the combined scalar objective used by the solvers.

Each objective kind is evaluated by one pure function of the weights and the
sample data. `CombinedObjective` sums them into a single minimization target:
risk terms add, return and income terms are negated before being added.
"""

from collections.abc import Callable, Sequence

import numpy as np
import numpy.typing as npt

from ..utils.exceptions import DegenerateObjectiveError
from .models import CustomTerm, ReturnMeasure, ReturnTerm, RiskMeasure, RiskTerm, Sense

# A pluggable objective is any callable that takes a weights array and returns a float.
ObjectiveCallable = Callable[[npt.NDArray[np.float64]], float]


def portfolio_return(
    weights: npt.NDArray[np.float64], mean_returns: npt.NDArray[np.float64]
) -> float:
    """Expected portfolio return (w' mu)."""
    return float(np.dot(weights, mean_returns))


def portfolio_volatility(
    weights: npt.NDArray[np.float64], cov_matrix: npt.NDArray[np.float64]
) -> float:
    """Portfolio standard deviation (sqrt(w' C w)).

    Tiny negative variances from a semi-definite covariance are read as zero.
    """
    variance = float(weights @ cov_matrix @ weights)
    return float(np.sqrt(max(variance, 0.0)))


def volatility_gradient(
    weights: npt.NDArray[np.float64], cov_matrix: npt.NDArray[np.float64]
) -> npt.NDArray[np.float64]:
    cov_w = cov_matrix @ weights
    vol = np.sqrt(max(float(weights @ cov_w), 0.0))
    if vol == 0.0:
        return np.zeros_like(weights)
    return cov_w / vol


def max_drawdown(weights: npt.NDArray[np.float64], returns: npt.NDArray[np.float64]) -> float:
    """Largest peak-to-trough decline of the compounded portfolio value.

    Observations are applied in order starting from a value of 1. The result is
    a non-negative fraction (0.25 means a 25% decline from the running peak).
    """
    portfolio_returns = returns @ weights
    wealth = np.concatenate(([1.0], np.cumprod(1.0 + portfolio_returns)))
    peak = np.maximum.accumulate(wealth)
    drawdown = 1.0 - wealth / peak
    return float(drawdown.max())


def portfolio_income(
    weights: npt.NDArray[np.float64], yields: npt.NDArray[np.float64]
) -> float:
    """Portfolio income yield (w' y)."""
    return float(np.dot(weights, yields))


def income_term(
    yields: Sequence[float], multiplier: float = 1.0, name: str = "income"
) -> CustomTerm:
    """Custom term maximizing the weighted yield of the portfolio."""
    return CustomTerm(
        name=name,
        function=portfolio_income,
        params={"yields": np.array(yields, dtype=np.float64)},
        direction=Sense.MAXIMIZE,
        multiplier=multiplier,
    )


def std_dev_term(multiplier: float = 1.0) -> RiskTerm:
    return RiskTerm(measure=RiskMeasure.STD_DEV, multiplier=multiplier)


def max_drawdown_term(multiplier: float = 1.0) -> RiskTerm:
    return RiskTerm(measure=RiskMeasure.MAX_DRAWDOWN, multiplier=multiplier)


def mean_term(multiplier: float = 1.0) -> ReturnTerm:
    return ReturnTerm(measure=ReturnMeasure.MEAN, multiplier=multiplier)


def _is_smooth(term: RiskTerm | ReturnTerm | CustomTerm) -> bool:
    if isinstance(term, ReturnTerm):
        return True
    return isinstance(term, RiskTerm) and term.measure is RiskMeasure.STD_DEV


def term_labels(terms: Sequence[RiskTerm | ReturnTerm | CustomTerm]) -> list[str]:
    """Unique breakdown labels, suffixing repeated labels with their position."""
    labels: list[str] = []
    for position, term in enumerate(terms):
        label = term.label
        if label in labels:
            label = f"{label}_{position}"
        labels.append(label)
    return labels


class CombinedObjective:
    """Multiplier-weighted sum of objective terms, expressed for minimization.

    The sample data is stored by value (numpy arrays) so evaluation never
    touches caller-owned objects.
    """

    name = "combined"

    def __init__(
        self,
        terms: Sequence[RiskTerm | ReturnTerm | CustomTerm],
        mean_returns: npt.ArrayLike,
        cov_matrix: npt.ArrayLike,
        returns: npt.ArrayLike,
    ) -> None:
        if not terms:
            raise DegenerateObjectiveError("The portfolio spec has no objective terms.")
        if all(term.multiplier == 0 for term in terms):
            raise DegenerateObjectiveError("Every objective multiplier is zero.")
        self.terms = tuple(terms)
        self.labels = term_labels(self.terms)
        self._mean = np.asarray(mean_returns, dtype=np.float64)
        self._cov = np.asarray(cov_matrix, dtype=np.float64)
        self._returns = np.asarray(returns, dtype=np.float64)

    def evaluate_term(
        self, term: RiskTerm | ReturnTerm | CustomTerm, weights: npt.NDArray[np.float64]
    ) -> float:
        if isinstance(term, RiskTerm):
            if term.measure is RiskMeasure.STD_DEV:
                return portfolio_volatility(weights, self._cov)
            return max_drawdown(weights, self._returns)
        if isinstance(term, ReturnTerm):
            return portfolio_return(weights, self._mean)
        return term.evaluate(weights)

    def breakdown(self, weights: npt.NDArray[np.float64]) -> dict[str, float]:
        """Raw value of every term, keyed by label."""
        weights = np.asarray(weights, dtype=np.float64)
        return {
            label: self.evaluate_term(term, weights) for label, term in zip(self.labels, self.terms)
        }

    def __call__(self, weights: npt.NDArray[np.float64]) -> float:
        weights = np.asarray(weights, dtype=np.float64)
        total = 0.0
        for term in self.terms:
            if term.multiplier == 0:
                continue
            total += term.sign * term.multiplier * self.evaluate_term(term, weights)
        return float(total)

    def gradient(self) -> Callable[[np.ndarray], np.ndarray] | None:
        """Analytic gradient when every term is a mean or standard deviation term."""
        if not all(_is_smooth(term) for term in self.terms):
            return None

        def _gradient(weights: np.ndarray) -> np.ndarray:
            weights = np.asarray(weights, dtype=np.float64)
            grad = np.zeros_like(weights)
            for term in self.terms:
                if isinstance(term, ReturnTerm):
                    grad += term.sign * term.multiplier * self._mean
                else:
                    grad += term.sign * term.multiplier * volatility_gradient(weights, self._cov)
            return grad

        return _gradient

    def to_callable(self) -> ObjectiveCallable:
        return self.__call__

