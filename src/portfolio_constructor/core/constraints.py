"""Linear view of a portfolio spec's constraints.

Box constraints collapse into one lower/upper bound per asset (the default
long-only bounds intersected with every box). Weight-sum constraints become
rows of an inequality system ``A_ub @ w <= b_ub``. Full investment is always
the equality ``sum(w) == 1``.
"""

import logging
from dataclasses import dataclass

import numpy as np
from scipy.optimize import linprog

from ..config.config import OptimizationConfig
from ..utils.exceptions import InfeasibleSpecError, ProjectionFailedError, SchemaMismatchError
from .models import PortfolioSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinearConstraints:
    """Bounds and weight-sum inequalities in asset order."""

    lower: np.ndarray
    upper: np.ndarray
    group_matrix: np.ndarray  # one row per weight-sum constraint, 0/1 membership
    group_lower: np.ndarray
    group_upper: np.ndarray

    @property
    def num_assets(self) -> int:
        return len(self.lower)

    def inequality_system(self) -> tuple[np.ndarray | None, np.ndarray | None]:
        """Weight-sum bounds as ``A_ub @ w <= b_ub`` (None when there are no groups)."""
        if len(self.group_matrix) == 0:
            return None, None
        a_ub = np.vstack([self.group_matrix, -self.group_matrix])
        b_ub = np.concatenate([self.group_upper, -self.group_lower])
        return a_ub, b_ub

    def violation(self, weights: np.ndarray) -> float:
        """Total amount by which `weights` breaks the constraints (0 when feasible)."""
        total = abs(float(np.sum(weights)) - 1.0)
        total += float(np.sum(np.clip(self.lower - weights, 0.0, None)))
        total += float(np.sum(np.clip(weights - self.upper, 0.0, None)))
        total += self.group_violation(weights)
        return total

    def group_violation(self, weights: np.ndarray) -> float:
        if len(self.group_matrix) == 0:
            return 0.0
        sums = self.group_matrix @ weights
        below = np.clip(self.group_lower - sums, 0.0, None)
        above = np.clip(sums - self.group_upper, 0.0, None)
        return float(np.sum(below) + np.sum(above))

    def is_feasible(self, weights: np.ndarray, tol: float) -> bool:
        if abs(float(np.sum(weights)) - 1.0) > tol:
            return False
        if np.any(weights < self.lower - tol) or np.any(weights > self.upper + tol):
            return False
        if len(self.group_matrix):
            sums = self.group_matrix @ weights
            if np.any(sums < self.group_lower - tol) or np.any(sums > self.group_upper + tol):
                return False
        return True


def build_linear_constraints(spec: PortfolioSpec, config: OptimizationConfig) -> LinearConstraints:
    """Collapse the spec's constraints into bounds and group rows.

    Raises:
        SchemaMismatchError: If a constraint names an asset outside the spec.

    """
    unknown = spec.unknown_assets()
    if unknown:
        raise SchemaMismatchError(f"Constraints reference unknown assets: {unknown}")

    position = {asset: i for i, asset in enumerate(spec.assets)}
    num_assets = len(spec.assets)
    lower = np.full(num_assets, config.default_lower_bound, dtype=np.float64)
    upper = np.full(num_assets, config.default_upper_bound, dtype=np.float64)

    for box in spec.box_constraints:
        idx = (
            [position[a] for a in box.assets] if box.assets is not None else list(range(num_assets))
        )
        lower[idx] = np.maximum(lower[idx], box.lower)
        upper[idx] = np.minimum(upper[idx], box.upper)

    groups = spec.weight_sum_constraints
    group_matrix = np.zeros((len(groups), num_assets), dtype=np.float64)
    for row, group in enumerate(groups):
        group_matrix[row, [position[a] for a in group.assets]] = 1.0
    group_lower = np.array([g.lower for g in groups], dtype=np.float64)
    group_upper = np.array([g.upper for g in groups], dtype=np.float64)

    return LinearConstraints(lower, upper, group_matrix, group_lower, group_upper)


def check_feasibility(spec: PortfolioSpec, config: OptimizationConfig) -> LinearConstraints:
    """Reject specs whose constraints cannot hold simultaneously.

    Cheap contradictions are reported with a specific message. Whatever
    survives is probed with a zero-objective linear program over the full
    constraint set.

    Returns:
        LinearConstraints: The validated linear view of the spec.

    Raises:
        InfeasibleSpecError: If the constraints are provably unsatisfiable.

    """
    tol = config.tolerance
    linear = build_linear_constraints(spec, config)

    for box in spec.box_constraints:
        if box.lower > box.upper:
            raise InfeasibleSpecError(
                f"Box constraint has lower bound {box.lower} above upper bound {box.upper}."
            )
    crossed = [spec.assets[i] for i in np.flatnonzero(linear.lower > linear.upper + tol)]
    if crossed:
        raise InfeasibleSpecError(f"Box constraints leave no admissible weight for: {crossed}")
    if linear.lower.sum() > 1.0 + tol:
        raise InfeasibleSpecError(
            f"Minimum weights sum to {linear.lower.sum():.6g}, above full investment."
        )
    if linear.upper.sum() < 1.0 - tol:
        raise InfeasibleSpecError(
            f"Maximum weights sum to {linear.upper.sum():.6g}, below full investment."
        )

    for group in spec.weight_sum_constraints:
        if group.lower > group.upper:
            raise InfeasibleSpecError(
                f"Weight-sum constraint on {list(group.assets)} has lower bound {group.lower} "
                f"above upper bound {group.upper}."
            )

    if len(linear.group_matrix):
        _probe_linear_feasibility(linear)

    return linear


def _probe_linear_feasibility(linear: LinearConstraints) -> np.ndarray | None:
    a_ub, b_ub = linear.inequality_system()
    probe = linprog(
        c=np.zeros(linear.num_assets),
        A_ub=a_ub,
        b_ub=b_ub,
        A_eq=np.ones((1, linear.num_assets)),
        b_eq=np.array([1.0]),
        bounds=list(zip(linear.lower, linear.upper)),
        method="highs",
    )
    if probe.status == 2:
        raise InfeasibleSpecError("Weight-sum and box constraints cannot hold simultaneously.")
    if not probe.success:
        logger.warning("Feasibility probe did not finish: %s", probe.message)
        return None
    return probe.x


def feasible_point(linear: LinearConstraints) -> np.ndarray:
    """A weight vector satisfying every constraint, used as a starting point.

    Raises:
        InfeasibleSpecError: If no such point exists.

    """
    point = _probe_linear_feasibility(linear)
    if point is None:
        raise InfeasibleSpecError("Could not construct a feasible starting point.")
    return np.asarray(point, dtype=np.float64)


def project_onto_bounds(
    weights: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray,
    tol: float = 1e-6,
    max_iter: int = 100,
) -> np.ndarray:
    """Map a candidate onto ``{w : sum(w) == 1, lower <= w <= upper}``.

    The candidate is clipped to its bounds, then the shortfall (or excess)
    against full investment is spread evenly over the assets that can still
    move, and the result is clipped again. This repeats until the sum is
    within `tol` of one.

    Raises:
        ProjectionFailedError: If no asset can absorb the residual or the
            iteration cap is reached.

    """
    projected = np.clip(np.asarray(weights, dtype=np.float64), lower, upper)
    for _ in range(max_iter):
        residual = 1.0 - projected.sum()
        if abs(residual) <= tol:
            return projected
        movable = projected < upper if residual > 0 else projected > lower
        if not movable.any():
            raise ProjectionFailedError(
                f"Bounds cannot absorb a residual of {residual:.3g}; the box is infeasible."
            )
        projected[movable] += residual / movable.sum()
        projected = np.clip(projected, lower, upper)
    raise ProjectionFailedError(
        f"Projection did not reach full investment within {max_iter} iterations."
    )


def starting_point(linear: LinearConstraints, tol: float, max_iter: int = 100) -> np.ndarray:
    """Equal weights mapped into the bounds, or an LP vertex if groups reject them."""
    equal = np.full(linear.num_assets, 1.0 / linear.num_assets)
    try:
        candidate = project_onto_bounds(equal, linear.lower, linear.upper, tol, max_iter)
    except ProjectionFailedError:
        candidate = None
    if candidate is not None and linear.is_feasible(candidate, tol):
        return candidate
    return feasible_point(linear)
