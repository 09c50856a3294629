"""Constrained portfolio optimization over a fixed return sample.

This module provides the PortfolioOptimizer class, which validates a return
sample against a portfolio spec, builds the combined objective from the
sample statistics and dispatches to the convex or global search solver.
"""

import logging
import threading

import numpy as np
import pandas as pd

from ..analysis.summary import summarize_portfolio
from ..config.config import AppConfig
from ..data.schema import MIN_OBSERVATIONS, ReturnSample
from ..utils.exceptions import SchemaMismatchError
from .constraints import check_feasibility
from .convex import ConvexSolver
from .global_search import GlobalSearchSolver
from .interfaces import BaseSolver, OptimizationProblem, SolverOutcome
from .models import ConvergenceStatus, OptimizationMethod, OptimizationResult, PortfolioSpec
from .objectives import CombinedObjective

logger = logging.getLogger(__name__)


class PortfolioOptimizer:
    """Finds the weight vector extremizing a spec's combined objective."""

    def __init__(self, config: AppConfig | None = None):
        self.config = config or AppConfig.default()

    def optimize(
        self,
        sample: ReturnSample,
        spec: PortfolioSpec,
        method: OptimizationMethod | str = OptimizationMethod.CONVEX,
        seed: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> OptimizationResult:
        """Optimize `spec` on `sample`.

        Args:
            sample (ReturnSample): Historical or simulated returns of the spec's assets.
            spec (PortfolioSpec): Assets, constraints and objective terms.
            method (OptimizationMethod | str): ``convex`` or ``global_search``.
            seed (int, optional): Seed for the global search. Runs with the same
                seed, sample and spec return identical weights.
            cancel_event (threading.Event, optional): Checked once per generation
                by the global search.

        Returns:
            OptimizationResult: Weights, objective value and per-term breakdown.

        Raises:
            SchemaMismatchError: If the sample does not cover exactly the spec's assets
                or has fewer than two observations.
            InfeasibleSpecError: If the constraints are contradictory.
            DegenerateObjectiveError: If no objective term contributes.
            UnsupportedForMethodError: If the convex method gets a non-convex term.
            ProjectionFailedError: If a candidate cannot be mapped into the bounds.
            NoFeasibleSolutionError: If no feasible portfolio was found.
            OptimizationCancelledError: If `cancel_event` was set during the search.

        """
        method = OptimizationMethod(method)
        sample = self._align_sample(sample, spec)
        linear = check_feasibility(spec, self.config.optimization)

        mean_returns = sample.mean_returns()
        cov_matrix = sample.covariance()
        objective = CombinedObjective(
            spec.objectives,
            mean_returns.to_numpy(),
            cov_matrix.to_numpy(),
            sample.returns.to_numpy(),
        )
        problem = OptimizationProblem(
            assets=spec.assets,
            objective=objective,
            constraints=linear,
            tolerance=self.config.optimization.tolerance,
        )

        logger.info(
            "Optimizing %d assets with %d constraints and %d objective terms (method=%s)",
            len(spec.assets),
            len(spec.constraints),
            len(spec.objectives),
            method.value,
        )
        if method is OptimizationMethod.CONVEX:
            ConvexSolver.check_supported(problem)

        if len(spec.assets) == 1:
            outcome = self._solve_single_asset(problem)
        else:
            outcome = self._make_solver(method, seed, cancel_event).solve(problem)

        return self._create_result(problem, outcome, method, mean_returns, cov_matrix)

    def _make_solver(
        self,
        method: OptimizationMethod,
        seed: int | None,
        cancel_event: threading.Event | None,
    ) -> BaseSolver:
        if method is OptimizationMethod.CONVEX:
            return ConvexSolver(self.config.optimization)
        return GlobalSearchSolver(self.config.global_search, seed=seed, cancel_event=cancel_event)

    @staticmethod
    def _align_sample(sample: ReturnSample, spec: PortfolioSpec) -> ReturnSample:
        if sample.num_observations < MIN_OBSERVATIONS:
            raise SchemaMismatchError(
                f"Return sample needs at least {MIN_OBSERVATIONS} observations, "
                f"got {sample.num_observations}."
            )
        return sample.reindexed(spec.assets)

    @staticmethod
    def _solve_single_asset(problem: OptimizationProblem) -> SolverOutcome:
        # check_feasibility already guarantees lower <= 1 <= upper
        return SolverOutcome(
            weights=np.ones(1),
            status=ConvergenceStatus.CONVERGED,
            message="single asset fully invested",
        )

    @staticmethod
    def _create_result(
        problem: OptimizationProblem,
        outcome: SolverOutcome,
        method: OptimizationMethod,
        mean_returns: pd.Series,
        cov_matrix: pd.DataFrame,
    ) -> OptimizationResult:
        weights = pd.Series(outcome.weights, index=list(problem.assets), name="weight")
        summary = summarize_portfolio(weights, mean_returns, cov_matrix)
        objective_value = problem.objective(outcome.weights)
        logger.info(
            "Optimization finished (status=%s, objective=%.6g, return=%.6g, risk=%.6g)",
            outcome.status.value,
            objective_value,
            summary.expected_return,
            summary.risk,
        )
        return OptimizationResult(
            weights=weights,
            objective_value=objective_value,
            term_values=problem.objective.breakdown(outcome.weights),
            expected_return=summary.expected_return,
            risk=summary.risk,
            method=method,
            status=outcome.status,
            iterations=outcome.iterations,
            message=outcome.message,
        )


def optimize(
    sample: ReturnSample,
    spec: PortfolioSpec,
    method: OptimizationMethod | str = OptimizationMethod.CONVEX,
    seed: int | None = None,
    cancel_event: threading.Event | None = None,
    config: AppConfig | None = None,
) -> OptimizationResult:
    """Functional entry point; see `PortfolioOptimizer.optimize`."""
    return PortfolioOptimizer(config).optimize(
        sample, spec, method=method, seed=seed, cancel_event=cancel_event
    )
