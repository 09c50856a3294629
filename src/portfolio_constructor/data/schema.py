"""Validated container for historical or simulated asset returns."""

from typing import Annotated, Any, Hashable

import numpy as np
import pandas as pd
import pandera.pandas as pa
from pydantic import AfterValidator, BaseModel, ConfigDict

from ..utils.exceptions import SchemaMismatchError

MIN_OBSERVATIONS = 2

RETURN_SAMPLE_SCHEMA = pa.DataFrameSchema(
    index=pa.Index(
        checks=[
            pa.Check(
                lambda idx: idx.is_monotonic_increasing,
                element_wise=False,
                error="Observations must be ordered by time",
            ),
        ],
        unique=True,
    ),
    columns={
        ".*": pa.Column(
            float,
            coerce=True,
            nullable=False,
            checks=[
                pa.Check(
                    lambda s: np.isfinite(s).all(),
                    element_wise=False,
                    error="Return values must be finite",
                ),
            ],
            regex=True,
        )
    },
    checks=[
        pa.Check(
            lambda df: all(isinstance(c, str) and c for c in df.columns),
            element_wise=False,
            error="Asset names must be non-empty strings",
        ),
        pa.Check(
            lambda df: df.columns.is_unique,
            element_wise=False,
            error="Asset names must be unique",
        ),
    ],
)

ReturnDataFrame = Annotated[pd.DataFrame, AfterValidator(RETURN_SAMPLE_SCHEMA.validate)]


class ReturnSample(BaseModel):
    """Time-ordered per-asset returns, one column per asset.

    Rows are observations, columns are asset names. Every observation holds
    a value for every asset.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    returns: ReturnDataFrame

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> "ReturnSample":
        return cls(returns=frame.copy())

    @property
    def assets(self) -> list[str]:
        return self.returns.columns.tolist()

    @property
    def timestamps(self) -> list[Hashable]:
        return self.returns.index.tolist()

    @property
    def num_observations(self) -> int:
        return len(self.returns)

    def value(self, asset: str, time: Any) -> float:
        """Return of `asset` at observation `time`."""
        if asset not in self.returns.columns:
            raise KeyError(f"Unknown asset: {asset}")
        return float(self.returns.at[time, asset])

    def mean_returns(self) -> pd.Series:
        return self.returns.mean()

    def covariance(self) -> pd.DataFrame:
        """Sample covariance with an N-1 denominator."""
        return self.returns.cov(ddof=1)

    def reindexed(self, assets: list[str] | tuple[str, ...]) -> "ReturnSample":
        """Return the sample with columns in the given asset order.

        Raises:
            SchemaMismatchError: If `assets` is not exactly the sample's asset set.

        """
        assets = list(assets)
        if set(assets) != set(self.assets) or len(assets) != len(self.assets):
            missing = sorted(set(assets) - set(self.assets))
            extra = sorted(set(self.assets) - set(assets))
            raise SchemaMismatchError(
                f"Return sample assets do not match the spec (missing={missing}, extra={extra})."
            )
        if assets == self.assets:
            return self
        return ReturnSample(returns=self.returns.loc[:, assets])
