"""
Econometric module for the monetary policy SVAR pipeline.

This module defines the structural VAR capability interface, its result
containers and the default statsmodels implementation.
"""

from .models import (
    DeterministicTerms, VAREstimate, StructuralIdentification,
    ImpulseResponses, HistoricalDecomposition, VarianceDecomposition,
    SVARResults
)
from .backend import SVARBackend
from .statsmodels_backend import StatsmodelsSVARBackend

__all__ = [
    "DeterministicTerms",
    "VAREstimate",
    "StructuralIdentification",
    "ImpulseResponses",
    "HistoricalDecomposition",
    "VarianceDecomposition",
    "SVARResults",
    "SVARBackend",
    "StatsmodelsSVARBackend"
]
