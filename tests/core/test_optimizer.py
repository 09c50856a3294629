import threading

import numpy as np
import pandas as pd
import pytest
from scipy.optimize import OptimizeResult

from portfolio_constructor.analysis.summary import summarize_portfolio
from portfolio_constructor.config.config import AppConfig, GlobalSearchConfig
from portfolio_constructor.core import convex
from portfolio_constructor.core.constraints import LinearConstraints, project_onto_bounds
from portfolio_constructor.core.convex import ConvexSolver
from portfolio_constructor.core.models import (
    BoxConstraint,
    ConvergenceStatus,
    OptimizationMethod,
    OptimizationResult,
    PortfolioSpec,
    WeightSumConstraint,
)
from portfolio_constructor.core.objectives import (
    income_term,
    max_drawdown_term,
    mean_term,
    portfolio_volatility,
    std_dev_term,
)
from portfolio_constructor.core.optimizer import PortfolioOptimizer, optimize
from portfolio_constructor.data.schema import ReturnSample
from portfolio_constructor.data.simulation import simulate_returns
from portfolio_constructor.utils.exceptions import (
    DegenerateObjectiveError,
    InfeasibleSpecError,
    NoFeasibleSolutionError,
    OptimizationCancelledError,
    SchemaMismatchError,
    UnsupportedForMethodError,
)

ASSETS = ["A", "B", "C"]
TOL = 1e-6


def make_sample(assets=ASSETS, seed=42):
    return simulate_returns(assets, num_periods=60, mean_return=0.01, volatility=0.05, seed=seed)


def make_config():
    config = AppConfig()
    config.global_search = GlobalSearchConfig(population_size=30, max_generations=150, patience=25)
    return config


def boxed_spec(lower=0.1, upper=0.9, assets=ASSETS):
    return PortfolioSpec.create(assets).with_constraint(BoxConstraint(lower=lower, upper=upper))


def assert_feasible(result: OptimizationResult, lower: float, upper: float):
    weights = result.weights.to_numpy()
    assert abs(weights.sum() - 1.0) <= TOL
    assert np.all(weights >= lower - TOL)
    assert np.all(weights <= upper + TOL)


def test_minimum_variance_with_box_is_near_equal_weight():
    sample = make_sample()
    spec = boxed_spec().with_objective(std_dev_term())

    result = optimize(sample, spec, method=OptimizationMethod.CONVEX)

    assert_feasible(result, 0.1, 0.9)
    assert list(result.weights.index) == ASSETS
    assert np.allclose(result.weights.to_numpy(), 1 / 3, atol=0.15)
    equal_risk = portfolio_volatility(np.full(3, 1 / 3), sample.covariance().to_numpy())
    assert 0.9 * equal_risk <= result.risk <= equal_risk + 1e-12
    assert np.isfinite(result.risk) and result.risk > 0
    assert result.method is OptimizationMethod.CONVEX
    assert result.term_values["std_dev"] == pytest.approx(result.risk)


def test_minimum_variance_beats_random_feasible_portfolios():
    sample = make_sample()
    spec = boxed_spec().with_objective(std_dev_term())
    result = optimize(sample, spec)

    cov = sample.covariance().to_numpy()
    rng = np.random.default_rng(0)
    lower, upper = np.full(3, 0.1), np.full(3, 0.9)
    for candidate in rng.dirichlet(np.ones(3), size=200):
        feasible = project_onto_bounds(candidate, lower, upper, tol=1e-12)
        assert result.risk <= portfolio_volatility(feasible, cov) + 1e-8


def test_mean_variance_trades_risk_for_return():
    sample = make_sample()
    mvp = optimize(sample, boxed_spec().with_objective(std_dev_term()))
    markowitz = optimize(sample, boxed_spec().with_objectives(mean_term(1.0), std_dev_term(1.0)))

    assert_feasible(markowitz, 0.1, 0.9)
    assert np.abs(markowitz.weights - mvp.weights).max() > 1e-3
    assert markowitz.expected_return >= mvp.expected_return - TOL
    assert markowitz.risk >= mvp.risk - TOL


def test_result_round_trips_through_summary_projection():
    sample = make_sample()
    result = optimize(sample, boxed_spec().with_objectives(mean_term(), std_dev_term()))

    summary = summarize_portfolio(result.weights, sample.mean_returns(), sample.covariance())
    assert summary.expected_return == pytest.approx(result.expected_return, abs=1e-12)
    assert summary.risk == pytest.approx(result.risk, abs=1e-12)


def test_return_only_objective_goes_to_the_best_asset():
    sample = make_sample()
    result = optimize(sample, PortfolioSpec.create(ASSETS).with_objective(mean_term()))

    best = sample.mean_returns().idxmax()
    assert result.weights[best] == pytest.approx(1.0, abs=TOL)
    assert result.status is ConvergenceStatus.CONVERGED


def test_convex_respects_weight_sum_constraint():
    sample = make_sample()
    spec = boxed_spec(0.0, 1.0).with_objective(std_dev_term())
    spec = spec.with_constraint(WeightSumConstraint(assets=("C",), lower=0.6))

    result = optimize(sample, spec)

    assert_feasible(result, 0.0, 1.0)
    assert result.weights["C"] >= 0.6 - TOL


def test_infeasible_box_fails_before_solving(monkeypatch):
    def _fail(self, problem):
        raise AssertionError("solver must not run for an infeasible spec")

    monkeypatch.setattr(ConvexSolver, "solve", _fail)
    sample = make_sample()
    spec = boxed_spec(0.5, 1.0).with_objective(std_dev_term())

    with pytest.raises(InfeasibleSpecError):
        optimize(sample, spec)


def test_yield_objective_with_cash_floor_global_search():
    assets = ["Cash", "Bonds", "Stocks"]
    sample = make_sample(assets)
    spec = (
        PortfolioSpec.create(assets)
        .with_constraint(WeightSumConstraint(assets=("Cash",), lower=0.2))
        .with_objective(income_term([0.02, 0.03, 0.04]))
    )

    result = optimize(
        sample, spec, method=OptimizationMethod.GLOBAL_SEARCH, seed=11, config=make_config()
    )

    assert result.weights["Cash"] >= 0.2 - TOL
    assert abs(result.weights.sum() - 1.0) <= TOL
    assert result.method is OptimizationMethod.GLOBAL_SEARCH
    assert result.term_values["income"] > 0.03
    assert result.iterations > 0


def test_global_search_is_deterministic_for_a_seed():
    sample = make_sample()
    spec = boxed_spec().with_objectives(std_dev_term(), max_drawdown_term())
    optimizer = PortfolioOptimizer(make_config())

    first = optimizer.optimize(sample, spec, method="global_search", seed=123)
    second = optimizer.optimize(sample, spec, method="global_search", seed=123)

    assert np.array_equal(first.weights.to_numpy(), second.weights.to_numpy())
    assert first.objective_value == second.objective_value
    assert_feasible(first, 0.1, 0.9)


def test_global_search_approaches_convex_optimum():
    sample = make_sample()
    spec = boxed_spec().with_objective(std_dev_term())
    optimizer = PortfolioOptimizer(make_config())

    convex = optimizer.optimize(sample, spec)
    heuristic = optimizer.optimize(sample, spec, method="global_search", seed=5)

    assert heuristic.risk >= convex.risk - 1e-8
    assert heuristic.risk == pytest.approx(convex.risk, rel=1e-2)


def test_convex_rejects_non_convex_terms():
    sample = make_sample()
    spec = boxed_spec().with_objectives(std_dev_term(), max_drawdown_term())
    with pytest.raises(UnsupportedForMethodError):
        optimize(sample, spec, method=OptimizationMethod.CONVEX)

    custom = boxed_spec().with_objective(income_term([0.01, 0.02, 0.03]))
    with pytest.raises(UnsupportedForMethodError):
        optimize(sample, custom, method=OptimizationMethod.CONVEX)


def test_zero_multipliers_are_degenerate():
    sample = make_sample()
    spec = boxed_spec().with_objectives(std_dev_term(0.0), mean_term(0.0))
    with pytest.raises(DegenerateObjectiveError):
        optimize(sample, spec)
    with pytest.raises(DegenerateObjectiveError):
        optimize(sample, boxed_spec())


def test_sample_must_match_spec_assets():
    sample = make_sample(["A", "B", "D"])
    spec = boxed_spec().with_objective(std_dev_term())
    with pytest.raises(SchemaMismatchError):
        optimize(sample, spec)


def test_sample_needs_two_observations():
    frame = pd.DataFrame({"A": [0.01], "B": [0.02], "C": [0.0]})
    spec = boxed_spec().with_objective(std_dev_term())
    with pytest.raises(SchemaMismatchError):
        optimize(ReturnSample(returns=frame), spec)


def test_sample_columns_are_aligned_to_spec_order():
    sample = make_sample(["C", "A", "B"])
    spec = boxed_spec().with_objective(std_dev_term())
    result = optimize(sample, spec)
    assert list(result.weights.index) == ASSETS


def test_single_asset_is_fully_invested():
    sample = make_sample(["Only"])
    spec = PortfolioSpec.create(["Only"]).with_objective(std_dev_term())
    result = optimize(sample, spec, method=OptimizationMethod.GLOBAL_SEARCH, seed=1)

    assert result.weights["Only"] == 1.0
    assert result.status is ConvergenceStatus.CONVERGED
    assert result.risk == pytest.approx(sample.returns["Only"].std())


def test_single_asset_box_excluding_full_investment_is_infeasible():
    sample = make_sample(["Only"])
    spec = boxed_spec(0.0, 0.5, ["Only"]).with_objective(std_dev_term())
    with pytest.raises(InfeasibleSpecError):
        optimize(sample, spec)


def test_singular_covariance_is_solvable():
    base = make_sample(["A", "B"]).returns
    frame = base.assign(C=base["A"])
    sample = ReturnSample(returns=frame)
    spec = boxed_spec(0.0, 1.0).with_objective(std_dev_term())

    convex = optimize(sample, spec)
    heuristic = optimize(sample, spec, method="global_search", seed=2, config=make_config())

    assert_feasible(convex, 0.0, 1.0)
    assert_feasible(heuristic, 0.0, 1.0)


def test_cancelled_search_raises():
    sample = make_sample()
    spec = boxed_spec().with_objective(max_drawdown_term())
    event = threading.Event()
    event.set()

    with pytest.raises(OptimizationCancelledError):
        optimize(sample, spec, method="global_search", seed=1, cancel_event=event)


def test_inputs_are_not_mutated():
    sample = make_sample()
    before = sample.returns.copy()
    spec = boxed_spec().with_objective(std_dev_term())

    optimize(sample, spec, method="global_search", seed=3, config=make_config())

    pd.testing.assert_frame_equal(sample.returns, before)
    assert len(spec.objectives) == 1


def test_convex_point_outside_weight_sum_is_rejected(monkeypatch):
    def _minimize(fun, x0, **kwargs):
        return OptimizeResult(x=np.array([0.0, 0.0, 1.0]), success=True, message="ok", nit=3)

    monkeypatch.setattr(convex, "minimize", _minimize)
    sample = make_sample()
    spec = boxed_spec(0.0, 1.0).with_objective(std_dev_term())
    spec = spec.with_constraint(WeightSumConstraint(assets=("C",), upper=0.5))

    with pytest.raises(NoFeasibleSolutionError):
        optimize(sample, spec)


def test_convex_stop_at_feasible_point_is_reported_not_converged(monkeypatch):
    def _minimize(fun, x0, **kwargs):
        return OptimizeResult(
            x=np.full(3, 1 / 3), success=False, message="Iteration limit reached", nit=500
        )

    monkeypatch.setattr(convex, "minimize", _minimize)
    sample = make_sample()

    result = optimize(sample, boxed_spec().with_objective(std_dev_term()))

    assert result.status is ConvergenceStatus.NOT_CONVERGED
    assert not result.converged
    assert result.iterations == 500
    assert_feasible(result, 0.1, 0.9)


def test_infeasible_linear_program_is_reported(monkeypatch):
    def _linprog(**kwargs):
        return OptimizeResult(x=None, status=2, success=False, message="infeasible")

    monkeypatch.setattr(convex, "linprog", _linprog)
    sample = make_sample()

    with pytest.raises(NoFeasibleSolutionError):
        optimize(sample, PortfolioSpec.create(ASSETS).with_objective(mean_term()))


def test_global_search_out_of_generations_is_budget_exhausted():
    sample = make_sample()
    config = AppConfig()
    config.global_search = GlobalSearchConfig(population_size=30, max_generations=1, patience=50)
    spec = boxed_spec().with_objective(max_drawdown_term())

    result = optimize(sample, spec, method="global_search", seed=4, config=config)

    assert result.status is ConvergenceStatus.BUDGET_EXHAUSTED
    assert not result.converged
    assert result.iterations == 1
    assert_feasible(result, 0.1, 0.9)


def test_global_search_without_feasible_candidate_raises(monkeypatch):
    monkeypatch.setattr(LinearConstraints, "is_feasible", lambda self, weights, tol: False)
    sample = make_sample()
    spec = boxed_spec().with_objective(max_drawdown_term())

    with pytest.raises(NoFeasibleSolutionError):
        optimize(sample, spec, method="global_search", seed=4, config=make_config())
