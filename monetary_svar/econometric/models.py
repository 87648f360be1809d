"""
Result containers for VAR estimation and structural analysis.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Any, Optional

import numpy as np
import pandas as pd


class DeterministicTerms(IntEnum):
    """Deterministic components included in every VAR equation."""
    NONE = 0
    CONSTANT = 1
    CONSTANT_TREND = 2

    @property
    def statsmodels_trend(self) -> str:
        return {0: "n", 1: "c", 2: "ct"}[int(self)]

    @property
    def n_terms(self) -> int:
        return int(self)


@dataclass
class VAREstimate:
    """
    Reduced-form VAR estimated by OLS.

    ``coefs`` has shape (lags, k, k) with ``coefs[l][i, j]`` the effect of
    variable j at lag l+1 on variable i. ``deterministic_coefs`` has shape
    (k, n_terms), columns ordered constant then trend.
    """

    variable_names: List[str]
    lags: int
    deterministic: DeterministicTerms
    coefs: np.ndarray
    deterministic_coefs: np.ndarray
    sigma_u: np.ndarray
    residuals: pd.DataFrame
    data: pd.DataFrame
    is_stable: bool
    results: Any = None  # backend-specific fitted model

    @property
    def n_variables(self) -> int:
        return len(self.variable_names)

    @property
    def n_obs(self) -> int:
        """Observations used in estimation (sample length minus lags)."""
        return len(self.residuals)

    def summary(self) -> str:
        """Estimated coefficients, as printed by the backend when available."""
        if self.results is not None and hasattr(self.results, 'summary'):
            return str(self.results.summary())

        lines = [f"VAR({self.lags}) on {', '.join(self.variable_names)}, "
                 f"{self.n_obs} observations"]
        for lag in range(self.lags):
            lines.append(f"Lag {lag + 1}:")
            lines.append(pd.DataFrame(self.coefs[lag], index=self.variable_names,
                                      columns=self.variable_names).to_string())
        return "\n".join(lines)


@dataclass
class StructuralIdentification:
    """
    Structural impact matrix and shocks.

    Reduced-form residuals satisfy ``u_t = B e_t`` with ``B`` the impact
    matrix and ``e_t`` unit-variance structural shocks; ``A = inv(B)``.
    """

    scheme: str
    impact_matrix: np.ndarray
    structural_shocks: pd.DataFrame
    shock_names: List[str]

    @property
    def A(self) -> np.ndarray:
        return np.linalg.inv(self.impact_matrix)

    @property
    def B(self) -> np.ndarray:
        return self.impact_matrix


@dataclass
class ImpulseResponses:
    """
    Impulse responses to one-standard-deviation structural shocks.

    All arrays have shape (horizon, k, k), indexed as
    ``[period, response variable, shock]``. Bands are ``None`` when no
    bootstrap draws were requested.
    """

    point: np.ndarray
    variable_names: List[str]
    shock_names: List[str]
    lower: Optional[np.ndarray] = None
    upper: Optional[np.ndarray] = None
    median: Optional[np.ndarray] = None
    confidence_level: float = 0.95
    n_draws: int = 0

    @property
    def horizon(self) -> int:
        return self.point.shape[0]

    @property
    def has_bands(self) -> bool:
        return self.lower is not None

    def response(self, variable: str, shock: str) -> pd.DataFrame:
        """
        Response path of one variable to one shock.

        Returns:
            DataFrame indexed by period with columns point, lower, median, upper
        """
        i = self.variable_names.index(variable)
        j = self.shock_names.index(shock)
        frame = pd.DataFrame({'point': self.point[:, i, j]},
                             index=pd.RangeIndex(self.horizon, name='period'))
        if self.has_bands:
            frame['lower'] = self.lower[:, i, j]
            frame['median'] = self.median[:, i, j]
            frame['upper'] = self.upper[:, i, j]
        return frame


@dataclass
class HistoricalDecomposition:
    """
    Decomposition of each variable into shock, initial-condition and
    deterministic contributions over the estimation sample.

    For every variable, ``shocks[variable].sum(axis=1) + initial +
    constant + trend`` reproduces the observed series.
    """

    shocks: Dict[str, pd.DataFrame]
    initial: pd.DataFrame
    constant: pd.DataFrame
    trend: pd.DataFrame
    variable_names: List[str]
    shock_names: List[str]

    @property
    def endogenous(self) -> pd.DataFrame:
        """Sum of all contributions, equal to the data over the sample."""
        total = self.initial + self.constant + self.trend
        for variable in self.variable_names:
            total[variable] = total[variable] + self.shocks[variable].sum(axis=1)
        return total

    def contributions(self, variable: str) -> pd.DataFrame:
        """All contributions to one variable, one column per component."""
        frame = self.shocks[variable].copy()
        frame['initial'] = self.initial[variable]
        frame['constant'] = self.constant[variable]
        frame['trend'] = self.trend[variable]
        return frame


@dataclass
class VarianceDecomposition:
    """
    Forecast-error variance decomposition, in percent.

    Arrays have shape (horizon, k, k), indexed as
    ``[period, variable, shock]``; each ``point[h, i, :]`` sums to 100.
    """

    point: np.ndarray
    variable_names: List[str]
    shock_names: List[str]
    lower: Optional[np.ndarray] = None
    upper: Optional[np.ndarray] = None
    median: Optional[np.ndarray] = None
    confidence_level: float = 0.95
    n_draws: int = 0

    @property
    def horizon(self) -> int:
        return self.point.shape[0]

    @property
    def has_bands(self) -> bool:
        return self.lower is not None

    def for_variable(self, variable: str) -> pd.DataFrame:
        """Shares of each shock in the forecast-error variance of one variable."""
        i = self.variable_names.index(variable)
        return pd.DataFrame(self.point[:, i, :], columns=self.shock_names,
                            index=pd.RangeIndex(1, self.horizon + 1, name='horizon'))


@dataclass
class SVARResults:
    """Everything produced by one pipeline run of the structural VAR."""

    estimate: VAREstimate
    identification: StructuralIdentification
    impulse_responses: ImpulseResponses
    historical_decomposition: HistoricalDecomposition
    variance_decomposition: VarianceDecomposition
    metadata: Dict[str, Any] = field(default_factory=dict)
