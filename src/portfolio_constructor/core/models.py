"""Pydantic models describing what to optimize and what came out of it.

Constraints and objective terms are closed sets of tagged variants. A
`PortfolioSpec` is frozen: `with_constraint` and `with_objective` build a new
spec instead of extending a shared one, so a base spec can safely seed several
analyses.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Annotated, Any, Literal

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.exceptions import SchemaMismatchError


class RiskMeasure(str, Enum):
    STD_DEV = "std_dev"
    MAX_DRAWDOWN = "max_drawdown"


class ReturnMeasure(str, Enum):
    MEAN = "mean"


class Sense(str, Enum):
    MINIMIZE = "minimize"
    MAXIMIZE = "maximize"


class OptimizationMethod(str, Enum):
    CONVEX = "convex"
    GLOBAL_SEARCH = "global_search"


class ConvergenceStatus(str, Enum):
    CONVERGED = "converged"
    BUDGET_EXHAUSTED = "budget_exhausted"
    NOT_CONVERGED = "not_converged"


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------


class BoxConstraint(BaseModel):
    """Lower/upper bound applied to each asset of `assets` (every asset if None)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["box"] = "box"
    assets: tuple[str, ...] | None = None
    lower: float = 0.0
    upper: float = 1.0


class WeightSumConstraint(BaseModel):
    """Bound on the summed weight of a group of assets."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["weight_sum"] = "weight_sum"
    assets: tuple[str, ...] = Field(min_length=1)
    lower: float = Field(default=0.0, ge=0.0, le=1.0)
    upper: float = Field(default=1.0, ge=0.0, le=1.0)


Constraint = Annotated[BoxConstraint | WeightSumConstraint, Field(discriminator="kind")]


# ---------------------------------------------------------------------------
# Objective terms
# ---------------------------------------------------------------------------


class _ObjectiveTermBase(BaseModel, ABC):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    multiplier: float = 1.0

    @property
    @abstractmethod
    def sense(self) -> Sense:
        raise NotImplementedError

    @property
    @abstractmethod
    def label(self) -> str:
        raise NotImplementedError

    @property
    def sign(self) -> float:
        """+1 for terms that are minimized, -1 for terms that are maximized."""
        return 1.0 if self.sense is Sense.MINIMIZE else -1.0


class RiskTerm(_ObjectiveTermBase):
    kind: Literal["risk"] = "risk"
    measure: RiskMeasure = RiskMeasure.STD_DEV

    @property
    def sense(self) -> Sense:
        return Sense.MINIMIZE

    @property
    def label(self) -> str:
        return self.measure.value


class ReturnTerm(_ObjectiveTermBase):
    kind: Literal["return"] = "return"
    measure: ReturnMeasure = ReturnMeasure.MEAN

    @property
    def sense(self) -> Sense:
        return Sense.MAXIMIZE

    @property
    def label(self) -> str:
        return self.measure.value


class CustomTerm(_ObjectiveTermBase):
    """User objective: `function(weights, **params)` returning a float.

    `params` holds the captured data (e.g. a yield vector) so the term is a
    plain value that can be evaluated on its own.
    """

    kind: Literal["custom"] = "custom"
    name: str
    function: Callable[..., float]
    params: dict[str, Any] = Field(default_factory=dict)
    direction: Sense = Sense.MAXIMIZE

    @property
    def sense(self) -> Sense:
        return self.direction

    @property
    def label(self) -> str:
        return self.name

    def evaluate(self, weights: np.ndarray) -> float:
        return float(self.function(weights, **self.params))


ObjectiveTerm = Annotated[RiskTerm | ReturnTerm | CustomTerm, Field(discriminator="kind")]


# ---------------------------------------------------------------------------
# Portfolio specification
# ---------------------------------------------------------------------------


class PortfolioSpec(BaseModel):
    """Assets, constraints and objective terms of a single analysis."""

    model_config = ConfigDict(frozen=True)

    assets: tuple[str, ...] = Field(min_length=1)
    constraints: tuple[Constraint, ...] = ()
    objectives: tuple[ObjectiveTerm, ...] = ()

    @field_validator("assets")
    @classmethod
    def _unique_assets(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if len(set(v)) != len(v):
            raise ValueError("asset names must be unique")
        return v

    @classmethod
    def create(cls, assets: list[str] | tuple[str, ...]) -> "PortfolioSpec":
        return cls(assets=tuple(assets))

    def unknown_assets(self) -> list[str]:
        """Assets referenced by constraints but missing from the asset set."""
        known = set(self.assets)
        unknown: list[str] = []
        for constraint in self.constraints:
            for asset in constraint.assets or ():
                if asset not in known and asset not in unknown:
                    unknown.append(asset)
        return unknown

    def with_constraint(self, constraint: BoxConstraint | WeightSumConstraint) -> "PortfolioSpec":
        missing = [a for a in (constraint.assets or ()) if a not in self.assets]
        if missing:
            raise SchemaMismatchError(f"Constraint references unknown assets: {missing}")
        return PortfolioSpec(
            assets=self.assets,
            constraints=self.constraints + (constraint,),
            objectives=self.objectives,
        )

    def with_objective(self, term: RiskTerm | ReturnTerm | CustomTerm) -> "PortfolioSpec":
        return PortfolioSpec(
            assets=self.assets,
            constraints=self.constraints,
            objectives=self.objectives + (term,),
        )

    def with_constraints(
        self, *constraints: BoxConstraint | WeightSumConstraint
    ) -> "PortfolioSpec":
        spec = self
        for constraint in constraints:
            spec = spec.with_constraint(constraint)
        return spec

    def with_objectives(self, *terms: RiskTerm | ReturnTerm | CustomTerm) -> "PortfolioSpec":
        spec = self
        for term in terms:
            spec = spec.with_objective(term)
        return spec

    @property
    def box_constraints(self) -> list[BoxConstraint]:
        return [c for c in self.constraints if isinstance(c, BoxConstraint)]

    @property
    def weight_sum_constraints(self) -> list[WeightSumConstraint]:
        return [c for c in self.constraints if isinstance(c, WeightSumConstraint)]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class OptimizationResult(BaseModel):
    """Outcome of a single optimization call.

    `term_values` holds the raw value of each objective term (before sign and
    multiplier). `expected_return` and `risk` are the summary projection of
    `weights` on the sample statistics the optimizer used.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    weights: pd.Series
    objective_value: float
    term_values: dict[str, float]
    expected_return: float
    risk: float
    method: OptimizationMethod
    status: ConvergenceStatus
    iterations: int = 0
    message: str = ""

    @property
    def converged(self) -> bool:
        return self.status is ConvergenceStatus.CONVERGED
