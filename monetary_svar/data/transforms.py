"""
Series transformations used to build the model input.

Frequency alignment, year-over-year inflation, real output per capita and
cycle extraction. All functions take and return pandas objects indexed by
date and never modify their inputs.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Union

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.tsa.filters.hp_filter import hpfilter

from .models import ModelInput, MODEL_VARIABLES
from ..config.settings import DetrendMethod, parse_detrend_method
from ..exceptions import DataValidationError, InsufficientDataError

logger = logging.getLogger(__name__)


def align_to_reference(series: pd.Series, reference_dates: Iterable,
                       strict: bool = False) -> pd.Series:
    """
    Restrict a series to the dates of a reference calendar.

    Only exact date matches are kept; there is no interpolation. Reference
    dates the series does not cover are dropped from the result.

    Args:
        series: Higher-frequency series indexed by date
        reference_dates: Period-start dates of the lower-frequency calendar
        strict: Raise instead of dropping when reference dates are missing

    Returns:
        The observations of ``series`` whose dates appear in ``reference_dates``

    Raises:
        DataValidationError: In strict mode, if any reference date is missing
    """
    reference = pd.DatetimeIndex(reference_dates)
    aligned = series[series.index.isin(reference)]

    missing = reference.difference(aligned.index)
    if len(missing) > 0:
        message = (f"{series.name}: {len(missing)} reference dates have no observation "
                   f"(first: {missing[0].date()})")
        if strict:
            raise DataValidationError(message, validation_failures=[str(d.date()) for d in missing])
        logger.warning(message + "; dropping them")

    return aligned.copy()


def yoy_inflation(prices: pd.Series, periods: int = 4) -> pd.Series:
    """
    Year-over-year percentage change of a price index.

    ``Pi[t] = 100 * (P[t] - P[t-periods]) / P[t-periods]`` for every t with a
    full year of history, so the first ``periods`` observations are lost.

    Args:
        prices: Price level sampled at the pipeline frequency
        periods: Observations per year (4 for quarterly data)

    Returns:
        Inflation series indexed by the dates from ``prices.index[periods:]``
    """
    if len(prices) <= periods:
        raise InsufficientDataError(
            f"Need more than {periods} observations to compute inflation",
            required_periods=periods + 1,
            available_periods=len(prices)
        )

    values = prices.to_numpy(dtype=float)
    lagged = values[:-periods]
    inflation = 100.0 * (values[periods:] - lagged) / lagged

    return pd.Series(inflation, index=prices.index[periods:], name='Inflation')


def population_index(population: pd.Series, base_date: Union[str, pd.Timestamp]) -> pd.Series:
    """
    Normalize population to 1.0 at the base date.

    Raises:
        DataValidationError: If the base date is not an observation date
    """
    base = pd.Timestamp(base_date)
    if base not in population.index:
        raise DataValidationError(
            f"Population base date {base.date()} is outside the sample",
            context={'first': str(population.index[0].date()) if len(population) else None,
                     'last': str(population.index[-1].date()) if len(population) else None}
        )

    index = population / population.loc[base]
    index.name = 'pop_index'
    return index


def real_output_per_capita(gdp: pd.Series, deflator: pd.Series,
                           pop_index: pd.Series) -> pd.Series:
    """Deflate nominal GDP and divide by the population index."""
    for name, other in (('deflator', deflator), ('population index', pop_index)):
        if not other.index.equals(gdp.index):
            raise DataValidationError(f"GDP and {name} are not aligned",
                                      context={'gdp_periods': len(gdp), 'other_periods': len(other)})

    real = gdp / deflator / pop_index
    real.name = 'gdp_real_cap'
    return real


@dataclass
class DetrendResult:
    """Trend and cycle of a detrended series; ``trend + cycle`` is the input."""
    trend: pd.Series
    cycle: pd.Series
    method: DetrendMethod


def detrend(series: pd.Series, method: Union[str, DetrendMethod] = DetrendMethod.SMOOTHING_FILTER,
            hp_lambda: float = 1600.0) -> DetrendResult:
    """
    Split a series into trend and cycle.

    Args:
        series: Series to detrend, usually 100 * log real output per capita
        method: ``linear`` for the residual of an OLS fit on a constant and a
            time trend, ``smoothing-filter`` for the Hodrick-Prescott cycle
        hp_lambda: HP smoothing parameter (1600 for quarterly data)

    Returns:
        DetrendResult with trend and cycle indexed like ``series``
    """
    method = parse_detrend_method(method)
    if len(series) < 3:
        raise InsufficientDataError("Need at least 3 observations to detrend",
                                    required_periods=3, available_periods=len(series))

    values = series.to_numpy(dtype=float)

    if method is DetrendMethod.LINEAR:
        regressors = sm.add_constant(np.arange(len(values), dtype=float))
        fit = sm.OLS(values, regressors).fit()
        cycle = values - fit.fittedvalues
    else:
        cycle, _ = hpfilter(values, lamb=hp_lambda)
        cycle = np.asarray(cycle, dtype=float)

    trend = values - cycle

    return DetrendResult(
        trend=pd.Series(trend, index=series.index, name=f"{series.name}_trend"),
        cycle=pd.Series(cycle, index=series.index, name='Output'),
        method=method
    )


def build_model_input(inflation: pd.Series, output: pd.Series, rate: pd.Series) -> ModelInput:
    """
    Stack the three model variables in the recursive ordering.

    Raises:
        DataValidationError: If the series do not share the same dates
    """
    for name, values in (('Output', output), ('FedFunds', rate)):
        if not values.index.equals(inflation.index):
            raise DataValidationError(f"{name} is not aligned with Inflation")

    frame = pd.DataFrame(
        np.column_stack([inflation.to_numpy(dtype=float),
                         output.to_numpy(dtype=float),
                         rate.to_numpy(dtype=float)]),
        index=inflation.index.rename('date'),
        columns=list(MODEL_VARIABLES)
    )
    return ModelInput(frame)
