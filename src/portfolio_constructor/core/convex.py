"""Convex solver for mean / standard-deviation objectives under linear constraints."""

import logging

import numpy as np
from scipy.optimize import linprog, minimize

from ..config.config import OptimizationConfig
from ..utils.exceptions import NoFeasibleSolutionError, UnsupportedForMethodError
from .constraints import project_onto_bounds, starting_point
from .interfaces import BaseSolver, OptimizationProblem, SolverOutcome
from .models import ConvergenceStatus, OptimizationMethod, ReturnTerm, RiskMeasure, RiskTerm

logger = logging.getLogger(__name__)

OPTIMIZATION_METHOD = "SLSQP"
LP_METHOD = "highs"


class ConvexSolver(BaseSolver):
    """Solves ``min sum(-lambda_i * w'mu) + sum(k_j * sqrt(w'Cw))`` over the feasible region.

    Objectives made of mean terms only are linear and go to an LP solver.
    Anything with a standard deviation term is solved with SLSQP, which
    tolerates a semi-definite covariance matrix.
    """

    method = OptimizationMethod.CONVEX

    def __init__(self, config: OptimizationConfig):
        self.config = config

    @staticmethod
    def check_supported(problem: OptimizationProblem) -> None:
        unsupported = [
            label
            for label, term in zip(problem.objective.labels, problem.objective.terms)
            if not (
                isinstance(term, ReturnTerm)
                or (isinstance(term, RiskTerm) and term.measure is RiskMeasure.STD_DEV)
            )
        ]
        if unsupported:
            raise UnsupportedForMethodError(
                f"The convex method only handles mean and std_dev terms, got: {unsupported}"
            )

    def solve(self, problem: OptimizationProblem) -> SolverOutcome:
        self.check_supported(problem)
        has_risk = any(
            isinstance(term, RiskTerm) and term.multiplier != 0 for term in problem.objective.terms
        )
        outcome = self._solve_quadratic(problem) if has_risk else self._solve_linear(problem)
        outcome.weights = self._polish(problem, outcome.weights)
        return outcome

    def _solve_linear(self, problem: OptimizationProblem) -> SolverOutcome:
        linear = problem.constraints
        a_ub, b_ub = linear.inequality_system()
        # the objective is linear, so its gradient is its cost vector
        cost = problem.objective.gradient()(np.zeros(linear.num_assets))
        opt = linprog(
            c=cost,
            A_ub=a_ub,
            b_ub=b_ub,
            A_eq=np.ones((1, linear.num_assets)),
            b_eq=np.array([1.0]),
            bounds=list(zip(linear.lower, linear.upper)),
            method=LP_METHOD,
        )
        if opt.status == 2 or opt.x is None:
            raise NoFeasibleSolutionError(
                f"Linear program found no feasible portfolio: {opt.message}"
            )
        status = ConvergenceStatus.CONVERGED if opt.success else ConvergenceStatus.NOT_CONVERGED
        return SolverOutcome(
            weights=np.asarray(opt.x, dtype=np.float64),
            status=status,
            iterations=int(getattr(opt, "nit", 0)),
            message=str(opt.message),
        )

    def _solve_quadratic(self, problem: OptimizationProblem) -> SolverOutcome:
        linear = problem.constraints
        initial_weights = starting_point(linear, problem.tolerance)

        constraints = [self._sum_to_one_constraint()]
        a_ub, b_ub = linear.inequality_system()
        if a_ub is not None:
            constraints.append(self._group_constraint(a_ub, b_ub))

        opt = minimize(
            problem.objective,
            initial_weights,
            method=OPTIMIZATION_METHOD,
            jac=problem.objective.gradient(),
            bounds=tuple(zip(linear.lower, linear.upper)),
            constraints=constraints,
            options={"maxiter": self.config.convex_max_iter, "ftol": self.config.convex_ftol},
        )
        if opt.success:
            status = ConvergenceStatus.CONVERGED
        else:
            logger.warning("SLSQP stopped without converging: %s", opt.message)
            status = ConvergenceStatus.NOT_CONVERGED
        return SolverOutcome(
            weights=np.asarray(opt.x, dtype=np.float64),
            status=status,
            iterations=int(getattr(opt, "nit", 0)),
            message=str(opt.message),
        )

    def _polish(self, problem: OptimizationProblem, weights: np.ndarray) -> np.ndarray:
        """Remove round-off bound violations and reject points that are still infeasible."""
        linear = problem.constraints
        polished = project_onto_bounds(weights, linear.lower, linear.upper, tol=1e-12)
        if not linear.is_feasible(polished, problem.tolerance):
            raise NoFeasibleSolutionError(
                f"Convex solve ended outside the feasible region "
                f"(violation={linear.violation(polished):.3g})."
            )
        return polished

    @staticmethod
    def _sum_to_one_constraint():
        return {
            "type": "eq",
            "fun": lambda w: np.sum(w) - 1,
            "jac": lambda w: np.ones_like(w),
        }

    @staticmethod
    def _group_constraint(a_ub: np.ndarray, b_ub: np.ndarray):
        # SLSQP inequalities are fun(w) >= 0
        return {
            "type": "ineq",
            "fun": lambda w: b_ub - a_ub @ w,
            "jac": lambda w: -a_ub,
        }
