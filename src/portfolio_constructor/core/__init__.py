"""Optimization core: specs, objectives, constraints and solvers."""
