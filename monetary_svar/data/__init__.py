"""
Data management module for the monetary policy SVAR pipeline.

This module handles data acquisition from the FRED API, the snapshot
fallback, frequency alignment and construction of the model variables.
"""

from .models import RawData, AlignedPanel, ModelInput, PreparedData, MODEL_VARIABLES
from .fred_client import FREDClient
from .snapshot import SnapshotStore
from .data_manager import DataManager, validate_model_input

__all__ = [
    "RawData",
    "AlignedPanel",
    "ModelInput",
    "PreparedData",
    "MODEL_VARIABLES",
    "FREDClient",
    "SnapshotStore",
    "DataManager",
    "validate_model_input"
]
