from .schema import RETURN_SAMPLE_SCHEMA, ReturnSample
from .simulation import simulate_returns

__all__ = ["RETURN_SAMPLE_SCHEMA", "ReturnSample", "simulate_returns"]
