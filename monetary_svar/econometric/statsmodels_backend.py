"""
Structural VAR backend built on statsmodels.

Reduced-form estimation, impulse responses and variance decompositions
come from ``statsmodels.tsa.api.VAR``. This module adds recursive
identification, the residual bootstrap used for confidence bands and the
historical decomposition.
"""

import logging
import warnings
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
from statsmodels.tools.sm_exceptions import ValueWarning
from statsmodels.tsa.api import VAR

from .backend import SVARBackend
from .models import (
    DeterministicTerms, VAREstimate, StructuralIdentification,
    ImpulseResponses, HistoricalDecomposition, VarianceDecomposition
)
from ..data.data_manager import validate_model_input
from ..data.models import ModelInput
from ..exceptions import ErrorHandler, IdentificationError, EstimationError, NumericalError

logger = logging.getLogger(__name__)

RECURSIVE_SCHEMES = ("recursive", "cholesky", "oir")


class StatsmodelsSVARBackend(SVARBackend):
    """
    SVAR backend using statsmodels for the reduced form.

    Bootstrap replications are kept for the last estimate object together
    with its (draws, seed) pair, so impulse responses and variance
    decompositions computed from the same settings share one set of draws.
    """

    def __init__(self):
        self.error_handler = ErrorHandler(logger)
        self._bootstrap_estimate: Optional[VAREstimate] = None
        self._bootstrap_key: Optional[Tuple] = None
        self._bootstrap_fits: List = []

    # ------------------------------------------------------------------
    # Estimation
    # ------------------------------------------------------------------

    def estimate(self, model_input: ModelInput, lags: int,
                 deterministic: DeterministicTerms = DeterministicTerms.CONSTANT_TREND) -> VAREstimate:
        deterministic = DeterministicTerms(deterministic)
        validate_model_input(model_input, lags, deterministic.n_terms)

        with warnings.catch_warnings():
            # quarterly index may lack an inferable frequency
            warnings.simplefilter("ignore", ValueWarning)
            results = self.error_handler.wrap_estimation(
                self._fit, model_input.data, lags, deterministic, stage="estimate"
            )

        estimate = self._to_estimate(results, model_input.data, lags, deterministic)
        self._check_covariance(estimate)
        if not estimate.is_stable:
            logger.warning("Estimated VAR is not stable: some companion eigenvalues "
                           "lie on or outside the unit circle")

        logger.info(f"Estimated VAR({lags}) with trend='{deterministic.statsmodels_trend}' "
                    f"on {estimate.n_obs} observations")
        return estimate

    @staticmethod
    def _fit(data, lags: int, deterministic: DeterministicTerms):
        return VAR(data).fit(lags, trend=deterministic.statsmodels_trend)

    @staticmethod
    def _to_estimate(results, data: pd.DataFrame, lags: int,
                     deterministic: DeterministicTerms) -> VAREstimate:
        names = list(data.columns)
        params = np.asarray(results.params, dtype=float)
        n_terms = deterministic.n_terms

        return VAREstimate(
            variable_names=names,
            lags=lags,
            deterministic=deterministic,
            coefs=np.asarray(results.coefs, dtype=float),
            deterministic_coefs=params[:n_terms].T.copy(),
            sigma_u=np.asarray(results.sigma_u, dtype=float),
            residuals=pd.DataFrame(np.asarray(results.resid, dtype=float),
                                   index=data.index[lags:], columns=names),
            data=data,
            is_stable=bool(results.is_stable(verbose=False)),
            results=results
        )

    @staticmethod
    def _check_covariance(estimate: VAREstimate, tolerance: float = 1e-10):
        # an equation fitted exactly (e.g. a constant series) leaves a singular covariance
        scale = max(float(np.var(estimate.data.to_numpy(dtype=float), axis=0).max()), 1.0)
        smallest = float(np.linalg.eigvalsh(estimate.sigma_u).min())
        if smallest <= tolerance * scale:
            raise NumericalError(
                "Residual covariance matrix is singular; a model variable is fitted exactly",
                numerical_details={'stage': 'estimate', 'min_eigenvalue': smallest}
            )

    def select_lag_order(self, model_input: ModelInput, max_lags: int = 8,
                         criterion: str = "aic",
                         deterministic: DeterministicTerms = DeterministicTerms.CONSTANT_TREND) -> int:
        """
        Lag order minimizing an information criterion.

        Args:
            model_input: Fixed-order model variables
            max_lags: Largest lag order considered
            criterion: One of aic, bic, hqic, fpe

        Returns:
            Selected lag order, at least 1
        """
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ValueWarning)
            selection = VAR(model_input.data).select_order(
                maxlags=max_lags, trend=DeterministicTerms(deterministic).statsmodels_trend
            )

        if criterion not in selection.selected_orders:
            raise EstimationError(f"Unknown information criterion: {criterion}")

        selected = max(1, int(selection.selected_orders[criterion]))
        logger.info(f"Selected lag order {selected} by {criterion.upper()}")
        return selected

    # ------------------------------------------------------------------
    # Identification
    # ------------------------------------------------------------------

    def identify(self, estimate: VAREstimate, scheme: str = "recursive") -> StructuralIdentification:
        """
        Recursive identification from the Cholesky factor of the residual covariance.

        The impact matrix is lower triangular, so a variable only responds
        on impact to shocks of variables ordered before it.
        """
        if scheme not in RECURSIVE_SCHEMES:
            raise IdentificationError(f"Unsupported identification scheme: {scheme}", scheme=scheme)

        impact = self._cholesky(estimate.sigma_u)
        shocks = np.linalg.solve(impact, estimate.residuals.to_numpy().T).T

        return StructuralIdentification(
            scheme="recursive",
            impact_matrix=impact,
            structural_shocks=pd.DataFrame(shocks, index=estimate.residuals.index,
                                           columns=estimate.variable_names),
            shock_names=list(estimate.variable_names)
        )

    @staticmethod
    def _cholesky(sigma_u: np.ndarray) -> np.ndarray:
        try:
            return np.linalg.cholesky(sigma_u)
        except np.linalg.LinAlgError as e:
            raise IdentificationError(
                "Residual covariance matrix is not positive definite", scheme="recursive"
            ) from e

    # ------------------------------------------------------------------
    # Impulse responses
    # ------------------------------------------------------------------

    def impulse_response(self, estimate: VAREstimate, identification: StructuralIdentification,
                         horizon: int, draws: int = 0, confidence_level: float = 0.95,
                         seed: Optional[int] = None) -> ImpulseResponses:
        point = self._orth_irfs(estimate.results, identification.impact_matrix, horizon)

        irfs = ImpulseResponses(
            point=point,
            variable_names=list(estimate.variable_names),
            shock_names=list(identification.shock_names),
            confidence_level=confidence_level,
            n_draws=draws
        )

        if draws > 0:
            replications = np.stack([
                self._orth_irfs(fit, self._cholesky(np.asarray(fit.sigma_u)), horizon)
                for fit in self._bootstrap(estimate, draws, seed)
            ])
            irfs.lower, irfs.median, irfs.upper = _bands(replications, confidence_level)

        return irfs

    @staticmethod
    def _orth_irfs(results, impact: np.ndarray, horizon: int) -> np.ndarray:
        # orth_ma_rep returns maxn + 1 periods, the first being the impact period
        return np.asarray(results.orth_ma_rep(maxn=horizon - 1, P=impact), dtype=float)

    # ------------------------------------------------------------------
    # Variance decomposition
    # ------------------------------------------------------------------

    def variance_decomposition(self, estimate: VAREstimate, identification: StructuralIdentification,
                               horizon: int, draws: int = 0, confidence_level: float = 0.95,
                               seed: Optional[int] = None) -> VarianceDecomposition:
        point = self._fevd(estimate.results, identification.impact_matrix, horizon)

        fevd = VarianceDecomposition(
            point=point,
            variable_names=list(estimate.variable_names),
            shock_names=list(identification.shock_names),
            confidence_level=confidence_level,
            n_draws=draws
        )

        if draws > 0:
            replications = np.stack([
                self._fevd(fit, self._cholesky(np.asarray(fit.sigma_u)), horizon)
                for fit in self._bootstrap(estimate, draws, seed)
            ])
            fevd.lower, fevd.median, fevd.upper = _bands(replications, confidence_level)

        return fevd

    @staticmethod
    def _fevd(results, impact: np.ndarray, horizon: int) -> np.ndarray:
        # statsmodels orders the decomposition as [variable, period, shock]
        decomp = results.fevd(periods=horizon, var_decomp=impact).decomp
        return 100.0 * np.asarray(decomp, dtype=float).swapaxes(0, 1)

    # ------------------------------------------------------------------
    # Historical decomposition
    # ------------------------------------------------------------------

    def historical_decomposition(self, estimate: VAREstimate,
                                 identification: StructuralIdentification) -> HistoricalDecomposition:
        """
        Companion-form historical decomposition.

        Each variable is split into the cumulated effect of every
        structural shock, the propagation of the initial lags, and the
        propagated constant and trend. The pieces add up to the data over
        the estimation sample.
        """
        k, p = estimate.n_variables, estimate.lags
        y = estimate.data.to_numpy(dtype=float)
        n = estimate.n_obs
        companion = _companion(estimate.coefs)
        eps = identification.structural_shocks.to_numpy(dtype=float)

        constant_part, trend_part = self._deterministic_paths(estimate)

        impact_big = np.zeros((k * p, k))
        impact_big[:k] = identification.impact_matrix

        shocks = np.zeros((n, k, k))
        for j in range(k):
            state = np.zeros(k * p)
            for t in range(n):
                state = impact_big[:, j] * eps[t, j] + companion @ state
                shocks[t, :, j] = state[:k]

        initial = np.zeros((n, k))
        state = y[p - 1::-1].ravel()
        for t in range(n):
            state = companion @ state
            initial[t] = state[:k]

        constant = _propagate(companion, constant_part, k, p)
        trend = _propagate(companion, trend_part, k, p)

        index = estimate.residuals.index
        names = estimate.variable_names
        shock_names = identification.shock_names

        return HistoricalDecomposition(
            shocks={name: pd.DataFrame(shocks[:, i, :], index=index, columns=shock_names)
                    for i, name in enumerate(names)},
            initial=pd.DataFrame(initial, index=index, columns=names),
            constant=pd.DataFrame(constant, index=index, columns=names),
            trend=pd.DataFrame(trend, index=index, columns=names),
            variable_names=list(names),
            shock_names=list(shock_names)
        )

    @staticmethod
    def _deterministic_paths(estimate: VAREstimate) -> Tuple[np.ndarray, np.ndarray]:
        """
        Per-period constant and trend terms of the fitted equations.

        The deterministic part is recovered as data minus the lagged
        terms minus residuals, so it does not depend on how the backend
        numbers the trend.
        """
        y = estimate.data.to_numpy(dtype=float)
        p, n, k = estimate.lags, estimate.n_obs, estimate.n_variables

        lagged = np.zeros((n, k))
        for lag in range(p):
            lagged += y[p - lag - 1:p - lag - 1 + n] @ estimate.coefs[lag].T
        deterministic = y[p:] - lagged - estimate.residuals.to_numpy(dtype=float)

        constant = np.zeros((n, k))
        if estimate.deterministic.n_terms >= 1:
            constant[:] = estimate.deterministic_coefs[:, 0]
        return constant, deterministic - constant

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def _bootstrap(self, estimate: VAREstimate, draws: int, seed: Optional[int]) -> List:
        """
        Residual bootstrap replications of the fitted VAR.

        Each replication resamples residuals with replacement, rebuilds the
        data recursively from the estimated coefficients and deterministic
        terms starting at the observed initial lags, and re-estimates.
        """
        key = (draws, seed)
        if estimate is self._bootstrap_estimate and key == self._bootstrap_key:
            return self._bootstrap_fits

        rng = np.random.default_rng(seed)
        y = estimate.data.to_numpy(dtype=float)
        p, n = estimate.lags, estimate.n_obs
        resid = estimate.residuals.to_numpy(dtype=float)
        constant, trend = self._deterministic_paths(estimate)
        deterministic = constant + trend

        fits = []
        for draw in range(draws):
            sample = np.empty_like(y)
            sample[:p] = y[:p]
            innovations = resid[rng.integers(0, n, size=n)]
            for t in range(p, p + n):
                value = deterministic[t - p] + innovations[t - p]
                for lag in range(p):
                    value = value + estimate.coefs[lag] @ sample[t - lag - 1]
                sample[t] = value

            fits.append(self.error_handler.wrap_estimation(
                self._fit, sample, p, estimate.deterministic, stage="bootstrap"
            ))
            if (draw + 1) % 25 == 0:
                logger.debug(f"Bootstrap replication {draw + 1}/{draws}")

        self._bootstrap_estimate = estimate
        self._bootstrap_key = key
        self._bootstrap_fits = fits
        return fits


def _companion(coefs: np.ndarray) -> np.ndarray:
    """Companion matrix of a VAR with coefficient array of shape (p, k, k)."""
    p, k, _ = coefs.shape
    companion = np.zeros((k * p, k * p))
    companion[:k] = np.hstack(list(coefs))
    if p > 1:
        companion[k:, :-k] = np.eye(k * (p - 1))
    return companion


def _propagate(companion: np.ndarray, inputs: np.ndarray, k: int, p: int) -> np.ndarray:
    """Cumulated response of the system to per-period additive inputs."""
    n = inputs.shape[0]
    out = np.zeros((n, k))
    state = np.zeros(k * p)
    for t in range(n):
        state = companion @ state
        state[:k] += inputs[t]
        out[t] = state[:k]
    return out


def _bands(replications: np.ndarray, confidence_level: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Lower, median and upper quantiles across bootstrap replications."""
    tail = (1.0 - confidence_level) / 2.0
    lower, median, upper = np.quantile(replications, [tail, 0.5, 1.0 - tail], axis=0)
    return lower, median, upper
