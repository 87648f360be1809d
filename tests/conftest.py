"""
Pytest configuration and shared fixtures for monetary policy SVAR tests.
"""

import os
from unittest.mock import Mock

import numpy as np
import pandas as pd
import pytest

from monetary_svar.config.settings import (
    AnalysisSettings, DataSettings, EstimationSettings, VisualizationSettings, DEFAULT_SERIES
)
from monetary_svar.data.fred_client import FREDClient
from monetary_svar.data.models import RawData, ModelInput, MODEL_VARIABLES

# Set test environment variables
os.environ['TESTING'] = '1'

SAMPLE_START = "1960-01-01"


def make_raw_data(n_quarters: int = 24, seed: int = 0, start: str = SAMPLE_START) -> RawData:
    """
    Synthetic FRED-like bundle: quarterly GDP and deflator, monthly CPI,
    federal funds rate and population.
    """
    rng = np.random.default_rng(seed)
    quarters = pd.date_range(start, periods=n_quarters, freq='QS', name='date')
    months = pd.date_range(start, periods=3 * n_quarters, freq='MS', name='date')
    n_months = len(months)

    cpi = 30.0 * np.cumprod(1.0 + 0.003 + 0.002 * rng.standard_normal(n_months))
    ffr = 4.0 + np.cumsum(0.15 * rng.standard_normal(n_months))
    pop = 120000.0 * 1.001 ** np.arange(n_months)

    t = np.arange(n_quarters)
    gdp = 520.0 * 1.015 ** t * np.exp(0.01 * rng.standard_normal(n_quarters))
    deflator = 18.0 * 1.008 ** t * np.exp(0.002 * rng.standard_normal(n_quarters))

    series = {
        'cpi': pd.Series(cpi, index=months, name=DEFAULT_SERIES['cpi']),
        'ffr': pd.Series(ffr, index=months, name=DEFAULT_SERIES['ffr']),
        'pop': pd.Series(pop, index=months, name=DEFAULT_SERIES['pop']),
        'gdp': pd.Series(gdp, index=quarters, name=DEFAULT_SERIES['gdp']),
        'gdp_defl': pd.Series(deflator, index=quarters, name=DEFAULT_SERIES['gdp_defl']),
    }
    return RawData(series=series, start_date=start,
                   end_date=str(quarters[-1].date()), source='live')


def simulate_model_input(n_periods: int = 200, seed: int = 1) -> ModelInput:
    """Model input drawn from a stable VAR(1) with correlated innovations."""
    rng = np.random.default_rng(seed)
    coefs = np.array([[0.6, 0.1, 0.0],
                      [0.1, 0.5, -0.1],
                      [0.2, 0.2, 0.7]])
    impact = np.array([[1.0, 0.0, 0.0],
                       [0.3, 0.8, 0.0],
                       [0.4, 0.3, 0.5]])
    intercept = np.array([0.5, 0.0, 1.0])

    values = np.zeros((n_periods, 3))
    for t in range(1, n_periods):
        values[t] = intercept + coefs @ values[t - 1] + impact @ rng.standard_normal(3)

    index = pd.date_range(SAMPLE_START, periods=n_periods, freq='QS', name='date')
    return ModelInput(pd.DataFrame(values, index=index, columns=list(MODEL_VARIABLES)))


@pytest.fixture
def raw_data():
    """24 quarters of synthetic raw series."""
    return make_raw_data()


@pytest.fixture
def model_input():
    """Simulated model input long enough for stable estimates."""
    return simulate_model_input()


@pytest.fixture
def data_settings(tmp_path):
    """Data settings pointing the snapshot at a temporary directory."""
    return DataSettings(
        fred_api_key="test_api_key",
        start_date=SAMPLE_START,
        end_date="1965-10-01",
        snapshot_path=str(tmp_path / "data" / "raw_data.json"),
        population_base_date="1962-01-01",
    )


@pytest.fixture
def analysis_settings(data_settings, tmp_path):
    """Small, fast settings for end-to-end runs on 24 quarters."""
    return AnalysisSettings(
        data=data_settings,
        estimation=EstimationSettings(lags=1, horizon=8, bootstrap_draws=5, random_seed=7),
        visualization=VisualizationSettings(plot=False,
                                            export_directory=str(tmp_path / "figures")),
        output_directory=str(tmp_path / "output"),
    )


@pytest.fixture
def mock_client_factory():
    """
    Build a factory of mocked FRED clients serving the given raw data.

    The created clients are collected on ``factory.clients`` so tests can
    check that each one was closed.
    """
    def build(raw: RawData, settings: DataSettings, fail_on=None):
        by_id = {settings.series[name]: raw[name] for name in raw.names}

        def fetch_series(series_id, start_date=None, end_date=None):
            if fail_on is not None and series_id in fail_on:
                raise fail_on[series_id]
            return by_id[series_id]

        def factory():
            client = Mock(spec=FREDClient)
            client.fetch_series.side_effect = fetch_series
            factory.clients.append(client)
            return client

        factory.clients = []
        return factory

    return build


@pytest.fixture
def mock_fred_response():
    """Generate mock FRED API response structure."""
    def create_response(start_date, periods, values=None, freq='MS'):
        dates = pd.date_range(start_date, periods=periods, freq=freq)

        if values is None:
            values = np.linspace(100, 110, periods)

        observations = []
        for date, value in zip(dates, values):
            observations.append({
                'date': date.strftime('%Y-%m-%d'),
                'value': str(value) if not pd.isna(value) else '.'
            })

        return {
            'realtime_start': start_date,
            'realtime_end': dates[-1].strftime('%Y-%m-%d'),
            'observations': observations
        }

    return create_response


@pytest.fixture(autouse=True)
def reset_random_seed():
    """Reset random seed before each test for reproducibility."""
    np.random.seed(42)


# Pytest markers for different test categories
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "validation: marks tests as validation tests using synthetic data"
    )
    config.addinivalue_line(
        "markers", "workflow: marks tests for end-to-end workflows"
    )
