"""Declarative optimization request mirroring the library's configuration surface."""

import threading
from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config.config import AppConfig
from ..data.schema import ReturnSample
from .models import (
    BoxConstraint,
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
from .optimizer import PortfolioOptimizer

ObjectiveKind = Literal["std_dev", "max_drawdown", "mean", "custom"]


class ObjectiveSetting(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: ObjectiveKind
    multiplier: float = 1.0
    function: Callable[..., float] | None = None
    name: str | None = None
    params: dict[str, Any] = Field(default_factory=dict)
    direction: Sense = Sense.MAXIMIZE

    def to_term(self) -> RiskTerm | ReturnTerm | CustomTerm:
        if self.kind == "std_dev":
            return RiskTerm(measure=RiskMeasure.STD_DEV, multiplier=self.multiplier)
        if self.kind == "max_drawdown":
            return RiskTerm(measure=RiskMeasure.MAX_DRAWDOWN, multiplier=self.multiplier)
        if self.kind == "mean":
            return ReturnTerm(measure=ReturnMeasure.MEAN, multiplier=self.multiplier)
        if self.function is None:
            raise ValueError("A custom objective needs a function")
        return CustomTerm(
            name=self.name or getattr(self.function, "__name__", "custom"),
            function=self.function,
            params=self.params,
            direction=self.direction,
            multiplier=self.multiplier,
        )


def _as_bound_dict(value: Any) -> Any:
    # (asset_subset, min, max) tuples are accepted alongside dicts and models
    if isinstance(value, (tuple, list)) and len(value) == 3:
        assets, lower, upper = value
        if isinstance(assets, str):
            assets = (assets,)
        return {"assets": None if assets is None else tuple(assets), "lower": lower, "upper": upper}
    return value


class OptimizationRequest(BaseModel):
    """All inputs of one optimization run, as plain data.

    Example:
        >>> request = OptimizationRequest(
        ...     assets=["Stocks", "Bonds", "Cash"],
        ...     box_constraints=[(None, 0.0, 0.8)],
        ...     weight_sum_constraints=[(["Cash"], 0.2, 1.0)],
        ...     objectives=[{"kind": "std_dev"}],
        ... )

    """

    model_config = ConfigDict(frozen=True)

    assets: list[str] = Field(min_length=1)
    box_constraints: list[BoxConstraint] = Field(default_factory=list)
    weight_sum_constraints: list[WeightSumConstraint] = Field(default_factory=list)
    objectives: list[ObjectiveSetting] = Field(default_factory=list)
    method: OptimizationMethod = OptimizationMethod.CONVEX
    seed: int | None = None

    @field_validator("box_constraints", "weight_sum_constraints", mode="before")
    @classmethod
    def _accept_tuples(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [_as_bound_dict(item) for item in value]
        return value

    def to_spec(self) -> PortfolioSpec:
        spec = PortfolioSpec.create(self.assets)
        spec = spec.with_constraints(*self.box_constraints, *self.weight_sum_constraints)
        return spec.with_objectives(*(setting.to_term() for setting in self.objectives))

    def run(
        self,
        sample: ReturnSample,
        config: AppConfig | None = None,
        cancel_event: threading.Event | None = None,
    ) -> OptimizationResult:
        return PortfolioOptimizer(config).optimize(
            sample,
            self.to_spec(),
            method=self.method,
            seed=self.seed,
            cancel_event=cancel_event,
        )
