"""
Tests for DataManager functionality.

Covers the fetch-or-fallback decision, snapshot refresh, session closing
and the preparation of the model input from raw series.
"""

import numpy as np
import pandas as pd
import pytest

from monetary_svar.config.settings import DetrendMethod
from monetary_svar.data.data_manager import DataManager, validate_model_input
from monetary_svar.data.models import MODEL_VARIABLES, ModelInput
from monetary_svar.data.snapshot import SnapshotStore
from monetary_svar.exceptions import (
    SourceUnavailable, SnapshotMissing, DataValidationError, InsufficientDataError
)

from conftest import make_raw_data


class TestLoadRawData:
    """Live fetch with snapshot fallback."""

    def test_live_fetch_success(self, raw_data, data_settings, mock_client_factory):
        factory = mock_client_factory(raw_data, data_settings)
        manager = DataManager(data_settings, client_factory=factory)

        raw = manager.load_raw_data()

        assert raw.source == 'live'
        assert set(raw.names) == set(data_settings.series)
        assert factory.clients[0].fetch_series.call_count == len(data_settings.series)

    def test_client_closed_after_success(self, raw_data, data_settings, mock_client_factory):
        factory = mock_client_factory(raw_data, data_settings)
        DataManager(data_settings, client_factory=factory).load_raw_data()

        factory.clients[0].close.assert_called_once()

    def test_client_closed_after_failure(self, raw_data, data_settings, mock_client_factory):
        factory = mock_client_factory(raw_data, data_settings,
                                      fail_on={'GDP': SourceUnavailable("down", series_code='GDP')})
        manager = DataManager(data_settings, client_factory=factory)

        with pytest.raises(SnapshotMissing):
            manager.load_raw_data()

        factory.clients[0].close.assert_called_once()

    def test_success_refreshes_snapshot(self, raw_data, data_settings, mock_client_factory):
        factory = mock_client_factory(raw_data, data_settings)
        manager = DataManager(data_settings, client_factory=factory)

        manager.load_raw_data()

        assert manager.snapshot_store.exists()
        assert manager.snapshot_store.load().names == raw_data.names

    def test_snapshot_not_written_when_disabled(self, raw_data, data_settings, mock_client_factory):
        data_settings.save_snapshot = False
        factory = mock_client_factory(raw_data, data_settings)
        manager = DataManager(data_settings, client_factory=factory)

        manager.load_raw_data()

        assert not manager.snapshot_store.exists()

    def test_falls_back_to_snapshot(self, raw_data, data_settings, mock_client_factory):
        SnapshotStore(data_settings.snapshot_path).save(raw_data)
        factory = mock_client_factory(raw_data, data_settings,
                                      fail_on={'CPIAUCSL': SourceUnavailable("HTTP 500")})
        manager = DataManager(data_settings, client_factory=factory)

        raw = manager.load_raw_data()

        assert raw.source == 'snapshot'
        pd.testing.assert_series_equal(raw['gdp'], raw_data['gdp'], check_freq=False)

    def test_partial_failure_uses_snapshot_for_every_series(self, raw_data, data_settings,
                                                            mock_client_factory):
        snapshot_data = make_raw_data(seed=99)
        SnapshotStore(data_settings.snapshot_path).save(snapshot_data)
        # the last series fails after the others succeeded
        factory = mock_client_factory(raw_data, data_settings,
                                      fail_on={'GDPDEF': SourceUnavailable("timeout")})
        manager = DataManager(data_settings, client_factory=factory)

        raw = manager.load_raw_data()

        assert raw.source == 'snapshot'
        for name in raw_data.names:
            np.testing.assert_allclose(raw[name].to_numpy(), snapshot_data[name].to_numpy())

    def test_missing_snapshot_after_failure_raises(self, raw_data, data_settings,
                                                   mock_client_factory):
        factory = mock_client_factory(raw_data, data_settings,
                                      fail_on={'FEDFUNDS': SourceUnavailable("no key")})
        manager = DataManager(data_settings, client_factory=factory)

        with pytest.raises(SnapshotMissing):
            manager.load_raw_data()

    def test_fallback_is_logged(self, raw_data, data_settings, mock_client_factory, caplog):
        SnapshotStore(data_settings.snapshot_path).save(raw_data)
        factory = mock_client_factory(raw_data, data_settings,
                                      fail_on={'GDP': SourceUnavailable("HTTP 503")})

        DataManager(data_settings, client_factory=factory).load_raw_data()

        assert "loading snapshot" in caplog.text

    def test_load_model_input(self, raw_data, data_settings, mock_client_factory):
        factory = mock_client_factory(raw_data, data_settings)

        prepared = DataManager(data_settings, client_factory=factory).load_model_input()

        assert prepared.metadata['source'] == 'live'
        assert prepared.model_input.n_periods == 20


class TestPrepare:
    """Raw series to model input."""

    @pytest.fixture
    def manager(self, data_settings):
        return DataManager(data_settings)

    def test_model_input_shape_and_order(self, manager, raw_data):
        prepared = manager.prepare(raw_data)

        assert tuple(prepared.model_input.data.columns) == MODEL_VARIABLES
        assert prepared.model_input.n_periods == 24 - 4
        assert prepared.model_input.dates[0] == pd.Timestamp('1961-01-01')
        assert not prepared.model_input.data.isna().any().any()

    def test_inflation_uses_quarterly_cpi(self, manager, raw_data):
        prepared = manager.prepare(raw_data)

        cpi = raw_data['cpi']
        date = pd.Timestamp('1962-04-01')
        expected = 100 * (cpi.loc[date] - cpi.loc['1961-04-01']) / cpi.loc['1961-04-01']
        assert prepared.model_input.data.loc[date, 'Inflation'] == pytest.approx(expected)

    def test_rate_is_first_month_of_quarter(self, manager, raw_data):
        prepared = manager.prepare(raw_data)

        date = pd.Timestamp('1963-07-01')
        assert prepared.model_input.data.loc[date, 'FedFunds'] == raw_data['ffr'].loc[date]

    def test_population_index_equals_one_at_base_date(self, manager, raw_data):
        prepared = manager.prepare(raw_data)

        assert prepared.population_index.loc['1962-01-01'] == 1.0

    def test_output_is_detrended_log_real_per_capita(self, manager, raw_data):
        prepared = manager.prepare(raw_data)

        expected_log = 100 * np.log(prepared.panel['gdp'] / prepared.panel['gdp_defl'] /
                                    prepared.population_index)
        np.testing.assert_allclose(prepared.log_output, expected_log)
        np.testing.assert_allclose(prepared.output_trend + prepared.output_cycle,
                                   prepared.log_output, atol=1e-9)
        np.testing.assert_allclose(prepared.model_input.data['Output'], prepared.output_cycle)

    def test_detrend_method_is_recorded(self, data_settings, raw_data):
        data_settings.detrend_method = DetrendMethod.LINEAR
        prepared = DataManager(data_settings).prepare(raw_data)

        assert prepared.metadata['detrend_method'] == 'linear'
        assert abs(prepared.output_cycle.mean()) < 1e-8

    def test_missing_series_raises(self, manager, raw_data):
        del raw_data.series['pop']

        with pytest.raises(DataValidationError):
            manager.prepare(raw_data)

    def test_missing_monthly_observation_shrinks_sample(self, manager, raw_data, caplog):
        raw_data.series['ffr'] = raw_data['ffr'].drop(pd.Timestamp('1964-01-01'))

        prepared = manager.prepare(raw_data)

        assert prepared.model_input.n_periods == 24 - 4 - 1
        assert pd.Timestamp('1964-01-01') not in prepared.model_input.dates
        assert "Sample shrinks" in caplog.text

    def test_strict_alignment_rejects_missing_observation(self, data_settings, raw_data):
        data_settings.strict_alignment = True
        raw_data.series['ffr'] = raw_data['ffr'].drop(pd.Timestamp('1964-01-01'))

        with pytest.raises(DataValidationError):
            DataManager(data_settings).prepare(raw_data)

    def test_base_date_outside_sample_raises(self, data_settings, raw_data):
        data_settings.population_base_date = "1990-01-01"

        with pytest.raises(DataValidationError):
            DataManager(data_settings).prepare(raw_data)


class TestValidateModelInput:

    def test_accepts_sufficient_sample(self, model_input):
        validate_model_input(model_input, lags=4, deterministic=2)

    def test_rejects_short_sample(self, model_input):
        short = ModelInput(model_input.data.iloc[:10])

        with pytest.raises(InsufficientDataError):
            validate_model_input(short, lags=4, deterministic=2)

    def test_rejects_missing_values(self, model_input):
        frame = model_input.data.copy()
        frame.iloc[5, 1] = np.nan

        with pytest.raises(DataValidationError):
            validate_model_input(ModelInput(frame), lags=1, deterministic=1)
