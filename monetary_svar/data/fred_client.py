"""
FRED API client for retrieving macroeconomic series.

This module provides a small client for the Federal Reserve Economic Data
(FRED) API built on a requests session with retries. Every failure to
obtain a series surfaces as SourceUnavailable, which the data manager
turns into a fallback to the persisted snapshot.
"""

import logging
import os
from typing import Dict, Any, Optional

import pandas as pd
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..exceptions import SourceUnavailable, create_error_context

logger = logging.getLogger(__name__)


class FREDClient:
    """
    Client for interacting with the FRED API.

    The client owns an HTTP session, which is the one resource in the
    pipeline with a scoped lifecycle: call ``close()`` or use the client
    as a context manager.
    """

    BASE_URL = "https://api.stlouisfed.org/fred"
    DEFAULT_TIMEOUT = 30  # seconds

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 timeout: Optional[int] = None, max_retries: int = 3):
        """
        Initialize FRED API client.

        Args:
            api_key: FRED API key, defaults to the FRED_API_KEY environment variable
            base_url: API root URL
            timeout: Request timeout in seconds
            max_retries: Retries for transient HTTP failures
        """
        self.api_key = api_key or os.getenv('FRED_API_KEY')
        self.base_url = (base_url or self.BASE_URL).rstrip('/')
        self.timeout = timeout or self.DEFAULT_TIMEOUT

        self.session = requests.Session()
        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        self._closed = False

    def __enter__(self) -> 'FREDClient':
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
        return False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self):
        """Release the HTTP session. Safe to call more than once."""
        if not self._closed:
            self.session.close()
            self._closed = True
            logger.debug("Closed FRED session")

    def fetch_series(self, series_id: str, start_date: Optional[str] = None,
                     end_date: Optional[str] = None) -> pd.Series:
        """
        Fetch a single data series from FRED.

        Args:
            series_id: FRED series identifier
            start_date: Observation start date (YYYY-MM-DD)
            end_date: Observation end date (YYYY-MM-DD)

        Returns:
            Series of float values indexed by observation date, named series_id

        Raises:
            SourceUnavailable: If the series cannot be retrieved
        """
        params = {'series_id': series_id}
        if start_date:
            params['observation_start'] = start_date
        if end_date:
            params['observation_end'] = end_date

        data = self._get('series/observations', params, series_id)

        if 'observations' not in data:
            raise SourceUnavailable(f"No observations found for series {series_id}",
                                    series_code=series_id)

        observations = pd.DataFrame(data['observations'])
        if observations.empty:
            raise SourceUnavailable(f"Series {series_id} returned no observations",
                                    series_code=series_id)

        # FRED encodes missing values as '.'
        values = pd.to_numeric(observations['value'], errors='coerce')
        result = pd.Series(values.to_numpy(dtype=float),
                           index=pd.DatetimeIndex(pd.to_datetime(observations['date']), name='date'),
                           name=series_id)
        result = result.dropna().sort_index()
        result = result[~result.index.duplicated(keep='last')]

        logger.debug(f"Fetched {len(result)} observations for {series_id}")
        return result

    def get_series_info(self, series_id: str) -> Dict[str, Any]:
        """
        Get metadata for a FRED series.

        Args:
            series_id: FRED series identifier

        Returns:
            Dictionary with series metadata
        """
        data = self._get('series', {'series_id': series_id}, series_id)

        if not data.get('seriess'):
            raise SourceUnavailable(f"Series {series_id} not found", series_code=series_id)

        return data['seriess'][0]

    def _get(self, endpoint: str, params: Dict[str, Any], series_id: str) -> Dict[str, Any]:
        """Issue a GET request and return the decoded JSON payload."""
        if self._closed:
            raise SourceUnavailable("FRED session is closed", series_code=series_id)

        if not self.api_key:
            raise SourceUnavailable("FRED API key is not configured (set FRED_API_KEY)",
                                    series_code=series_id)

        request_params = dict(params, api_key=self.api_key, file_type='json')

        try:
            response = self.session.get(
                f"{self.base_url}/{endpoint}",
                params=request_params,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise SourceUnavailable(f"FRED API request failed: {e}", series_code=series_id) from e

        if response.status_code != 200:
            raise SourceUnavailable(
                f"FRED API returned HTTP {response.status_code}",
                series_code=series_id,
                status_code=response.status_code,
                context=create_error_context(endpoint=endpoint)
            )

        try:
            return response.json()
        except ValueError as e:
            raise SourceUnavailable(f"Malformed FRED response for {series_id}: {e}",
                                    series_code=series_id) from e
