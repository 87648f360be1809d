"""
On-disk snapshot of previously fetched raw series.

The snapshot is a single JSON document holding the requested date range
and every series' observations. It is the fallback used when the live
FRED fetch fails.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Union

import pandas as pd

from .models import RawData
from ..exceptions import SnapshotMissing, DataValidationError

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Reads and writes the raw-data snapshot at a fixed path."""

    FORMAT_VERSION = 1

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self, raw: RawData) -> Path:
        """
        Persist a raw data bundle.

        Args:
            raw: Series and the date range they were requested for

        Returns:
            Path of the written snapshot
        """
        payload = {
            'format_version': self.FORMAT_VERSION,
            'saved_at': datetime.now().isoformat(timespec='seconds'),
            'start_date': raw.start_date,
            'end_date': raw.end_date,
            'series': {
                name: {
                    'series_id': values.name,
                    'observations': [
                        {'date': date.strftime('%Y-%m-%d'), 'value': float(value)}
                        for date, value in values.items()
                    ]
                }
                for name, values in raw.series.items()
            }
        }

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        with open(tmp_path, 'w') as f:
            json.dump(payload, f, indent=1)
        tmp_path.replace(self.path)

        logger.info(f"Saved snapshot of {len(raw.series)} series to {self.path}")
        return self.path

    def load(self) -> RawData:
        """
        Load the snapshot.

        Returns:
            RawData with source set to 'snapshot'

        Raises:
            SnapshotMissing: If the file does not exist or cannot be decoded
        """
        if not self.exists():
            raise SnapshotMissing(f"No snapshot found at {self.path}", path=str(self.path))

        try:
            with open(self.path, 'r') as f:
                payload = json.load(f)

            series = {}
            for name, entry in payload['series'].items():
                observations = entry['observations']
                index = pd.DatetimeIndex(
                    pd.to_datetime([obs['date'] for obs in observations]), name='date'
                )
                series[name] = pd.Series(
                    [float(obs['value']) for obs in observations],
                    index=index,
                    name=entry.get('series_id', name)
                )

            raw = RawData(
                series=series,
                start_date=payload['start_date'],
                end_date=payload['end_date'],
                source='snapshot',
                metadata={'saved_at': payload.get('saved_at'), 'path': str(self.path)}
            )
        except (ValueError, KeyError, TypeError, DataValidationError) as e:
            raise SnapshotMissing(f"Snapshot at {self.path} is unreadable: {e}",
                                  path=str(self.path)) from e

        logger.info(f"Loaded snapshot saved at {payload.get('saved_at')} from {self.path}")
        return raw
