"""Configuration module for the portfolio constructor library."""

from dataclasses import asdict, dataclass, field
from typing import Any, ClassVar

__all__ = [
    "OptimizationConfig",
    "GlobalSearchConfig",
    "SimulationConfig",
    "AppConfig",
]

DEFAULT_TOLERANCE = 1e-6
DEFAULT_LOWER_BOUND = 0.0
DEFAULT_UPPER_BOUND = 1.0


@dataclass
class OptimizationConfig:
    """Shared optimization parameters.

    `tolerance` is used for every feasibility check (weights summing to one,
    box bounds and weight-sum bounds). The default bounds describe a long-only
    portfolio and are intersected with any box constraint of a spec.
    """

    tolerance: float = DEFAULT_TOLERANCE
    default_lower_bound: float = DEFAULT_LOWER_BOUND
    default_upper_bound: float = DEFAULT_UPPER_BOUND
    convex_max_iter: int = 500
    convex_ftol: float = 1e-12


@dataclass
class GlobalSearchConfig:
    """Differential evolution parameters for the global search method.

    The search stops after `max_generations`, once the best feasible
    objective improves by less than `convergence_tol` for `patience`
    consecutive generations, or when scipy finds the population energies
    converged within `population_tol`. `population_size` is the total number
    of members; it is divided by the number of assets for scipy's `popsize`.
    Weight-sum violations are priced into the fitness with `penalty` per unit
    of violation.
    """

    population_size: int = 60
    max_generations: int = 400
    mutation_factor: float = 0.6
    crossover_rate: float = 0.9
    strategy: str = "best1bin"
    population_tol: float = 1e-10
    convergence_tol: float = 1e-9
    patience: int = 40
    projection_max_iter: int = 100
    penalty: float = 1e4


@dataclass
class SimulationConfig:
    """Defaults for synthetic monthly return samples."""

    num_periods: int = 60
    mean_return: float = 0.01
    volatility: float = 0.05
    frequency: str = "MS"  # month start
    start: str = "2015-01-01"


@dataclass
class AppConfig:
    """Application configuration for the portfolio constructor.

    Groups the optimizer, global search and simulation settings so that a
    single object can be handed to `PortfolioOptimizer` or the simulators.
    """

    optimization: OptimizationConfig = field(default_factory=OptimizationConfig)
    global_search: GlobalSearchConfig = field(default_factory=GlobalSearchConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)

    _instance: ClassVar["AppConfig | None"] = None

    @classmethod
    def get_instance(cls) -> "AppConfig":
        """Get the singleton instance of the AppConfig.

        Returns:
            AppConfig: The application configuration.

        """
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def set_instance(cls, config: "AppConfig"):
        """Explicitly set the singleton instance (useful for testing or custom configs)."""
        cls._instance = config

    @staticmethod
    def default() -> "AppConfig":
        config = AppConfig.get_instance()
        return config.model_copy(deep=True)

    def model_copy(self, deep: bool = True) -> "AppConfig":
        """Create a copy of the AppConfig instance.

        Args:
            deep (bool, optional): Whether the nested configs are copied too.
                Defaults to True.

        Returns:
            AppConfig: A new instance of AppConfig with the same parameters.

        """
        from copy import deepcopy

        return deepcopy(self) if deep else self.__class__(**self.__dict__)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
