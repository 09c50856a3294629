"""Derivative-free global search over the bounded simplex.

The search itself is scipy's differential evolution over the box bounds.
Each candidate it proposes is projected onto full investment before being
scored, weight-sum constraints are priced into the fitness, and only
projected candidates satisfying every constraint can become the reported best.
"""

import logging
import math
import threading

import numpy as np
from scipy.optimize import differential_evolution

from ..config.config import GlobalSearchConfig
from ..utils.exceptions import NoFeasibleSolutionError, OptimizationCancelledError
from .constraints import project_onto_bounds, starting_point
from .interfaces import BaseSolver, OptimizationProblem, SolverOutcome
from .models import ConvergenceStatus, OptimizationMethod

logger = logging.getLogger(__name__)


class _Incumbent:
    """Best feasible projected candidate seen so far, plus the stall counter."""

    def __init__(self):
        self.weights: np.ndarray | None = None
        self.value = np.inf
        self.generation_start = np.inf
        self.stalled = 0
        self.history: list[float] = []

    def offer(self, weights: np.ndarray, value: float) -> None:
        if value < self.value:
            self.weights, self.value = weights.copy(), value

    def end_generation(self, convergence_tol: float) -> None:
        self.history.append(self.value)
        improvement = self.generation_start - self.value
        if self.weights is not None and improvement < convergence_tol:
            self.stalled += 1
        else:
            self.stalled = 0
        self.generation_start = self.value


class GlobalSearchSolver(BaseSolver):
    method = OptimizationMethod.GLOBAL_SEARCH

    def __init__(
        self,
        config: GlobalSearchConfig,
        seed: int | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self.config = config
        self.seed = seed
        self.cancel_event = cancel_event

    def solve(self, problem: OptimizationProblem) -> SolverOutcome:
        linear = problem.constraints
        tol = problem.tolerance
        incumbent = _Incumbent()

        def fitness(x: np.ndarray) -> float:
            candidate = self._project(problem, x)
            value = problem.objective(candidate)
            if linear.is_feasible(candidate, tol):
                incumbent.offer(candidate, value)
            return value + self.config.penalty * linear.group_violation(candidate)

        def callback(xk, convergence=None):
            incumbent.end_generation(self.config.convergence_tol)
            self._check_cancelled(len(incumbent.history))
            return incumbent.stalled >= self.config.patience

        self._check_cancelled(0)
        x0 = starting_point(linear, tol, self.config.projection_max_iter)
        if linear.is_feasible(x0, tol):
            incumbent.offer(x0, problem.objective(x0))
        incumbent.generation_start = incumbent.value

        opt = differential_evolution(
            fitness,
            bounds=list(zip(linear.lower, linear.upper)),
            strategy=self.config.strategy,
            maxiter=self.config.max_generations,
            popsize=self._popsize(linear.num_assets),
            tol=self.config.population_tol,
            mutation=self.config.mutation_factor,
            recombination=self.config.crossover_rate,
            seed=self.seed,
            callback=callback,
            polish=False,
            x0=x0,
        )

        if incumbent.weights is None:
            raise NoFeasibleSolutionError(f"No feasible portfolio found in {opt.nit} generations.")

        if opt.success or incumbent.stalled >= self.config.patience:
            status = ConvergenceStatus.CONVERGED
        else:
            status = ConvergenceStatus.BUDGET_EXHAUSTED

        logger.debug(
            "Global search finished after %d generations (status=%s, best=%.6g): %s",
            opt.nit,
            status.value,
            incumbent.value,
            opt.message,
        )
        return SolverOutcome(
            weights=incumbent.weights,
            status=status,
            iterations=int(opt.nit),
            message=f"{status.value} after {opt.nit} generations",
            history=incumbent.history,
        )

    def _popsize(self, num_assets: int) -> int:
        # scipy sizes the population as a multiple of the dimension
        return max(1, math.ceil(self.config.population_size / num_assets))

    def _check_cancelled(self, generation: int) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            logger.info("Global search cancelled at generation %d", generation)
            raise OptimizationCancelledError(f"Cancelled at generation {generation}.")

    def _project(self, problem: OptimizationProblem, candidate: np.ndarray) -> np.ndarray:
        linear = problem.constraints
        return project_onto_bounds(
            candidate,
            linear.lower,
            linear.upper,
            tol=problem.tolerance * 1e-3,
            max_iter=self.config.projection_max_iter,
        )
