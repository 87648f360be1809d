"""
Core data models for the monetary policy SVAR pipeline.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Tuple
import pandas as pd
import numpy as np

from ..exceptions import DataValidationError


# Column order of the model input. It encodes the recursive ordering:
# inflation reacts to nothing contemporaneously, the policy rate to everything.
MODEL_VARIABLES: Tuple[str, str, str] = ("Inflation", "Output", "FedFunds")


def validate_time_series(series: pd.Series, name: str) -> None:
    """
    Check that a series has a unique, increasing DatetimeIndex.

    Raises:
        DataValidationError: If the index is not a DatetimeIndex, has duplicates
            or is not monotonically increasing
    """
    failures = []
    if not isinstance(series.index, pd.DatetimeIndex):
        failures.append(f"{name}: index is not a DatetimeIndex")
    else:
        if series.index.has_duplicates:
            failures.append(f"{name}: duplicate dates")
        if not series.index.is_monotonic_increasing:
            failures.append(f"{name}: dates are not increasing")

    if failures:
        raise DataValidationError(f"Invalid time series '{name}'", validation_failures=failures)


@dataclass
class RawData:
    """
    Container for the series returned by acquisition.

    Each series is indexed by observation date. ``source`` records whether
    the bundle came from the live service or from a snapshot.
    """

    series: Dict[str, pd.Series]
    start_date: str
    end_date: str
    source: str = "live"
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        for name, values in self.series.items():
            validate_time_series(values, name)

    def __getitem__(self, name: str) -> pd.Series:
        return self.series[name]

    def __contains__(self, name: str) -> bool:
        return name in self.series

    @property
    def names(self) -> list:
        return list(self.series)


@dataclass(frozen=True)
class AlignedPanel:
    """
    Variables that share one ordered set of dates.

    Built once after frequency alignment and only read afterwards.
    """

    data: pd.DataFrame

    def __post_init__(self):
        index = self.data.index
        if not isinstance(index, pd.DatetimeIndex):
            raise DataValidationError("Panel index must be a DatetimeIndex")
        if index.has_duplicates or not index.is_monotonic_increasing:
            raise DataValidationError("Panel dates must be unique and increasing")
        if self.data.isna().any().any():
            missing = self.data.columns[self.data.isna().any()].tolist()
            raise DataValidationError(
                "Panel series do not share the same dates",
                validation_failures=[f"{col}: missing observations" for col in missing]
            )

    @classmethod
    def from_series(cls, series: Dict[str, pd.Series]) -> 'AlignedPanel':
        """Build a panel from series that must already share identical dates."""
        names = list(series)
        reference = series[names[0]].index
        for name in names[1:]:
            if not series[name].index.equals(reference):
                raise DataValidationError(
                    f"Series '{name}' is not aligned with '{names[0]}'",
                    context={'expected_length': len(reference),
                             'actual_length': len(series[name])}
                )
        return cls(pd.DataFrame({name: series[name] for name in names}, index=reference))

    def __getitem__(self, name: str) -> pd.Series:
        return self.data[name].copy()

    @property
    def dates(self) -> pd.DatetimeIndex:
        return self.data.index

    @property
    def n_periods(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ModelInput:
    """
    The three-column matrix handed to the estimator.

    Columns are always (Inflation, Output, FedFunds), in that order.
    """

    data: pd.DataFrame

    def __post_init__(self):
        if tuple(self.data.columns) != MODEL_VARIABLES:
            raise DataValidationError(
                f"Model input columns must be {MODEL_VARIABLES}, got {tuple(self.data.columns)}"
            )
        if not isinstance(self.data.index, pd.DatetimeIndex):
            raise DataValidationError("Model input index must be a DatetimeIndex")

    @property
    def values(self) -> np.ndarray:
        return self.data.to_numpy(dtype=float)

    @property
    def variable_names(self) -> list:
        return list(MODEL_VARIABLES)

    @property
    def dates(self) -> pd.DatetimeIndex:
        return self.data.index

    @property
    def n_periods(self) -> int:
        return len(self.data)


@dataclass
class PreparedData:
    """
    Output of data preparation.

    Keeps the intermediate series next to the final model input so that
    each construction step can be inspected or plotted.
    """

    panel: AlignedPanel
    model_input: ModelInput
    inflation: pd.Series
    population_index: pd.Series
    real_output_per_capita: pd.Series
    log_output: pd.Series
    output_trend: pd.Series
    output_cycle: pd.Series
    metadata: Dict[str, Any] = field(default_factory=dict)

    def summary(self) -> str:
        """Short text description of the prepared sample."""
        dates = self.model_input.dates
        return (
            f"Prepared sample: {dates[0].date()} to {dates[-1].date()} "
            f"({self.model_input.n_periods} quarters), "
            f"detrending: {self.metadata.get('detrend_method', 'unknown')}"
        )
