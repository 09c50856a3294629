from .config import AppConfig, GlobalSearchConfig, OptimizationConfig, SimulationConfig

__all__ = ["AppConfig", "GlobalSearchConfig", "OptimizationConfig", "SimulationConfig"]
