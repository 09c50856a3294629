from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import numpy as np

from .constraints import LinearConstraints
from .models import ConvergenceStatus, OptimizationMethod
from .objectives import CombinedObjective


@dataclass(frozen=True)
class OptimizationProblem:
    """Everything a solver needs: the objective, the constraints and the asset order."""

    assets: tuple[str, ...]
    objective: CombinedObjective
    constraints: LinearConstraints
    tolerance: float


@dataclass
class SolverOutcome:
    weights: np.ndarray
    status: ConvergenceStatus
    iterations: int = 0
    message: str = ""
    history: list[float] = field(default_factory=list)


class BaseSolver(ABC):
    method: OptimizationMethod

    @abstractmethod
    def solve(self, problem: OptimizationProblem) -> SolverOutcome:
        raise NotImplementedError
