"""
Monetary Policy SVAR

Quarterly structural VAR of US inflation, output and the federal funds
rate: FRED data acquisition with snapshot fallback, recursive
identification, impulse responses, historical and variance decompositions.
"""

__version__ = "0.1.0"
__author__ = "Monetary Policy SVAR Team"

from .config.settings import AnalysisSettings, DetrendMethod
from .data.models import ModelInput, MODEL_VARIABLES
from .econometric.models import SVARResults
from .integration.pipeline import SVARPipeline, run_pipeline
from .exceptions import MonetarySVARError

__all__ = [
    "AnalysisSettings",
    "DetrendMethod",
    "ModelInput",
    "MODEL_VARIABLES",
    "SVARResults",
    "SVARPipeline",
    "run_pipeline",
    "MonetarySVARError"
]
