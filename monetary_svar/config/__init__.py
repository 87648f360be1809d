"""
Configuration management module for the monetary policy SVAR pipeline.

This module handles configuration loading, validation, and management
for data preparation, estimation and plotting options.
"""

from .config_manager import ConfigManager
from .settings import (
    AnalysisSettings, DataSettings, EstimationSettings,
    VisualizationSettings, DetrendMethod
)

__all__ = [
    "ConfigManager",
    "AnalysisSettings",
    "DataSettings",
    "EstimationSettings",
    "VisualizationSettings",
    "DetrendMethod"
]
