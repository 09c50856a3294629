import numpy as np
import pandas as pd
import pytest

from portfolio_constructor.analysis.summary import (
    PortfolioSummary,
    risk_return_table,
    summarize_portfolio,
)
from portfolio_constructor.utils.exceptions import SchemaMismatchError


def make_statistics():
    mean_returns = pd.Series([0.01, 0.02], index=["A", "B"])
    cov = pd.DataFrame([[0.0001, 0.0], [0.0, 0.0004]], index=["A", "B"], columns=["A", "B"])
    return mean_returns, cov


def test_summary_of_array_weights():
    mean_returns, cov = make_statistics()
    summary = summarize_portfolio(np.array([0.5, 0.5]), mean_returns, cov)

    assert summary.expected_return == pytest.approx(0.015)
    assert summary.risk == pytest.approx(np.sqrt(0.25 * 0.0001 + 0.25 * 0.0004))
    assert summary.income is None


def test_summary_aligns_series_by_asset_name():
    mean_returns, cov = make_statistics()
    weights = pd.Series([0.25, 0.75], index=["B", "A"])
    yields = pd.Series({"A": 0.04, "B": 0.0})

    summary = summarize_portfolio(weights, mean_returns, cov, yields=yields)

    assert summary.expected_return == pytest.approx(0.75 * 0.01 + 0.25 * 0.02)
    assert summary.income == pytest.approx(0.03)


def test_summary_rejects_misaligned_inputs():
    mean_returns, cov = make_statistics()
    with pytest.raises(SchemaMismatchError):
        summarize_portfolio(np.array([1.0, 0.0, 0.0]), mean_returns, cov)
    with pytest.raises(SchemaMismatchError):
        summarize_portfolio(pd.Series([1.0], index=["C"]), mean_returns, cov)
    with pytest.raises(SchemaMismatchError):
        summarize_portfolio(np.array([1.0, 0.0]), mean_returns, cov, yields=[0.01])


def test_risk_return_table_from_summaries():
    table = risk_return_table(
        {
            "Low": PortfolioSummary(expected_return=0.01, risk=0.02),
            "High": PortfolioSummary(expected_return=0.03, risk=0.08),
        }
    )
    assert list(table.index) == ["Low", "High"]
    assert table.loc["High", "Risk"] == pytest.approx(0.08)
    assert table.loc["Low", "Return"] == pytest.approx(0.01)
