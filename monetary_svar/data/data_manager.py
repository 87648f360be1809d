"""
Data management for the monetary policy SVAR pipeline.

This module acquires the raw FRED series (falling back to the persisted
snapshot when the live service is unavailable), turns them into the
quarterly model input, and checks that the result can be estimated.
"""

import logging
from typing import Callable, Optional

import numpy as np

from .fred_client import FREDClient
from .models import RawData, PreparedData, AlignedPanel, ModelInput, MODEL_VARIABLES
from .snapshot import SnapshotStore
from . import transforms
from ..config.settings import DataSettings, DetrendMethod
from ..exceptions import (
    SourceUnavailable,
    DataValidationError,
    InsufficientDataError
)
from ..logging_config import ErrorLogger

logger = logging.getLogger(__name__)

# Series sampled monthly on FRED; they are reduced to the reference calendar
MONTHLY_SERIES = ('cpi', 'ffr', 'pop')


class DataManager:
    """
    Acquires raw data and prepares the model input.

    Provides the fetch-or-fallback decision as two explicit steps
    (``fetch_live`` then ``SnapshotStore.load``) and the preparation
    pipeline as ``prepare``.
    """

    def __init__(self, settings: DataSettings,
                 client_factory: Optional[Callable[[], FREDClient]] = None,
                 snapshot_store: Optional[SnapshotStore] = None):
        """
        Initialize data manager.

        Args:
            settings: Data acquisition and preparation settings
            client_factory: Callable returning a fresh FREDClient
            snapshot_store: Snapshot location, defaults to settings.snapshot_path
        """
        self.settings = settings
        self.client_factory = client_factory or self._default_client
        self.snapshot_store = snapshot_store or SnapshotStore(settings.snapshot_path)
        self.error_logger = ErrorLogger(logger)

    def _default_client(self) -> FREDClient:
        return FREDClient(
            api_key=self.settings.fred_api_key,
            base_url=self.settings.fred_base_url,
            timeout=self.settings.request_timeout
        )

    def fetch_live(self) -> RawData:
        """
        Fetch every configured series from FRED.

        The client is closed whether or not the fetch succeeds.

        Raises:
            SourceUnavailable: If any series cannot be fetched
        """
        client = self.client_factory()
        try:
            series = {}
            for name, series_id in self.settings.series.items():
                series[name] = client.fetch_series(
                    series_id, self.settings.start_date, self.settings.end_date
                )
        finally:
            client.close()

        logger.info(f"Successfully fetched {len(series)} series from FRED")
        return RawData(
            series=series,
            start_date=self.settings.start_date,
            end_date=self.settings.end_date,
            source='live'
        )

    def load_raw_data(self) -> RawData:
        """
        Fetch live data, or load the snapshot if the live fetch fails.

        A successful live fetch refreshes the snapshot when
        ``settings.save_snapshot`` is set. There is no partial success:
        either all series come from FRED or all come from the snapshot.

        Raises:
            SnapshotMissing: If the live fetch fails and no snapshot exists
        """
        try:
            raw = self.fetch_live()
        except SourceUnavailable as e:
            self.error_logger.log_error(
                e, recovery_action=f"loading snapshot from {self.snapshot_store.path}"
            )
            raw = self.snapshot_store.load()
            self._check_snapshot_range(raw)
            return raw

        if self.settings.save_snapshot:
            self.snapshot_store.save(raw)

        return raw

    def _check_snapshot_range(self, raw: RawData):
        if (raw.start_date, raw.end_date) != (self.settings.start_date, self.settings.end_date):
            logger.warning(
                f"Snapshot covers {raw.start_date} to {raw.end_date}, "
                f"configuration requests {self.settings.start_date} to {self.settings.end_date}"
            )

    def prepare(self, raw: RawData,
                method: Optional[DetrendMethod] = None) -> PreparedData:
        """
        Turn raw series into the model input.

        Steps: monthly series to the quarterly reference calendar,
        year-over-year inflation, re-alignment to the shortened calendar,
        population index, real GDP per capita, detrended 100 * log output.

        Args:
            raw: Raw series keyed by pipeline name (cpi, ffr, pop, gdp, gdp_defl)
            method: Detrending method, defaults to settings.detrend_method

        Returns:
            PreparedData holding the model input and intermediate series
        """
        missing = [name for name in self.settings.series if name not in raw]
        if missing:
            raise DataValidationError(f"Raw data is missing series: {', '.join(missing)}")

        strict = self.settings.strict_alignment
        quarters = raw[self.settings.reference_series].index

        quarterly = {name: raw[name] for name in raw.names}
        for name in MONTHLY_SERIES:
            if name != self.settings.reference_series:
                quarterly[name] = transforms.align_to_reference(raw[name], quarters, strict=strict)

        # The first year of observations is consumed by the inflation lag
        inflation = transforms.yoy_inflation(
            quarterly['cpi'].reindex(quarters), periods=self.settings.inflation_periods
        )
        if inflation.isna().any():
            logger.warning(f"Dropping {int(inflation.isna().sum())} inflation observations "
                           f"without a CPI value four quarters earlier")
            inflation = inflation.dropna()
        quarters = inflation.index

        aligned = {'Inflation': inflation}
        for name in ('gdp', 'gdp_defl', 'ffr', 'pop'):
            aligned[name] = transforms.align_to_reference(quarterly[name], quarters, strict=strict)

        common = quarters
        for values in aligned.values():
            common = common.intersection(values.index)
        if len(common) < len(quarters):
            logger.warning(f"Sample shrinks from {len(quarters)} to {len(common)} quarters "
                           f"after alignment")
        panel = AlignedPanel.from_series({name: values.loc[common] for name, values in aligned.items()})

        pop_index = transforms.population_index(panel['pop'], self.settings.population_base_date)
        gdp_real_cap = transforms.real_output_per_capita(panel['gdp'], panel['gdp_defl'], pop_index)

        log_output = 100.0 * np.log(gdp_real_cap)
        log_output.name = 'log_gdp_real_cap'
        detrended = transforms.detrend(log_output, method or self.settings.detrend_method,
                                       hp_lambda=self.settings.hp_lambda)

        model_input = transforms.build_model_input(panel['Inflation'], detrended.cycle, panel['ffr'])

        prepared = PreparedData(
            panel=panel,
            model_input=model_input,
            inflation=panel['Inflation'],
            population_index=pop_index,
            real_output_per_capita=gdp_real_cap,
            log_output=log_output,
            output_trend=detrended.trend,
            output_cycle=detrended.cycle,
            metadata={
                'source': raw.source,
                'detrend_method': detrended.method.value,
                'population_base_date': self.settings.population_base_date,
                'n_periods': model_input.n_periods,
            }
        )
        logger.info(prepared.summary())
        return prepared

    def load_model_input(self) -> PreparedData:
        """Acquire raw data and prepare it in one call."""
        return self.prepare(self.load_raw_data())


def validate_model_input(model_input: ModelInput, lags: int, deterministic: int) -> None:
    """
    Check that a model input can be estimated.

    Args:
        model_input: Fixed-order model variables
        lags: VAR lag order
        deterministic: 0, 1 or 2 deterministic terms per equation

    Raises:
        DataValidationError: If values are missing or the column order changed
        InsufficientDataError: If there are not more usable observations than
            coefficients per equation
    """
    if tuple(model_input.data.columns) != MODEL_VARIABLES:
        raise DataValidationError("Model input column order changed")

    frame = model_input.data
    if not np.isfinite(frame.to_numpy(dtype=float)).all():
        bad = frame.columns[~np.isfinite(frame.to_numpy(dtype=float)).all(axis=0)].tolist()
        raise DataValidationError("Model input contains missing or infinite values",
                                  validation_failures=bad)

    n_coefficients = lags * len(MODEL_VARIABLES) + deterministic
    usable = model_input.n_periods - lags
    if usable <= n_coefficients:
        raise InsufficientDataError(
            f"{model_input.n_periods} observations cannot identify a VAR({lags}) "
            f"with {n_coefficients} coefficients per equation",
            required_periods=n_coefficients + lags + 1,
            available_periods=model_input.n_periods
        )
