"""Custom exception types for the Portfolio Constructor library."""


class PortfolioConstructorError(Exception):
    """Base exception class for this library."""

    pass


class SchemaMismatchError(PortfolioConstructorError):
    """Raised when a return sample and a portfolio spec disagree on the asset set."""

    pass


class InfeasibleSpecError(PortfolioConstructorError):
    """Raised when the constraints of a spec are provably unsatisfiable."""

    pass


class OptimizationError(PortfolioConstructorError):
    """Raised when a portfolio optimization routine fails."""

    pass


class UnsupportedForMethodError(OptimizationError):
    """Raised when an objective or constraint cannot be handled by the chosen method."""

    pass


class DegenerateObjectiveError(OptimizationError):
    """Raised when no objective term contributes to the combined objective."""

    pass


class ProjectionFailedError(OptimizationError):
    """Raised when a candidate cannot be mapped into the bounded simplex."""

    pass


class NoFeasibleSolutionError(OptimizationError):
    """Raised when the search budget is exhausted without a feasible candidate."""

    pass


class OptimizationCancelledError(OptimizationError):
    """Raised when an optimization run is cancelled by the caller."""

    pass
