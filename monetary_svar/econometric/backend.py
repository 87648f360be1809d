"""
Capability interface for structural VAR backends.

The data pipeline only talks to this interface, so any numerical backend
implementing it can replace the default statsmodels one.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .models import (
    DeterministicTerms, VAREstimate, StructuralIdentification,
    ImpulseResponses, HistoricalDecomposition, VarianceDecomposition
)
from ..data.models import ModelInput


class SVARBackend(ABC):
    """Abstract base class for SVAR estimation and structural analysis."""

    @abstractmethod
    def estimate(self, model_input: ModelInput, lags: int,
                 deterministic: DeterministicTerms) -> VAREstimate:
        """
        Estimate the reduced-form VAR.

        Args:
            model_input: Fixed-order model variables
            lags: Lag order, at least 1
            deterministic: Deterministic terms in each equation

        Returns:
            Fitted reduced-form VAR
        """
        pass

    @abstractmethod
    def identify(self, estimate: VAREstimate, scheme: str = "recursive") -> StructuralIdentification:
        """
        Identify structural shocks.

        Args:
            estimate: Fitted reduced-form VAR
            scheme: Identification scheme name

        Returns:
            Impact matrix and structural shocks
        """
        pass

    @abstractmethod
    def impulse_response(self, estimate: VAREstimate, identification: StructuralIdentification,
                         horizon: int, draws: int = 0, confidence_level: float = 0.95,
                         seed: Optional[int] = None) -> ImpulseResponses:
        """
        Impulse responses over ``horizon`` periods with bootstrap bands.

        Args:
            estimate: Fitted reduced-form VAR
            identification: Structural identification to apply
            horizon: Number of periods, starting with the impact period
            draws: Bootstrap replications (0 disables bands)
            confidence_level: Coverage of the bands
            seed: Seed of the bootstrap random generator
        """
        pass

    @abstractmethod
    def historical_decomposition(self, estimate: VAREstimate,
                                 identification: StructuralIdentification) -> HistoricalDecomposition:
        """Decompose the sample into structural shock contributions."""
        pass

    @abstractmethod
    def variance_decomposition(self, estimate: VAREstimate, identification: StructuralIdentification,
                               horizon: int, draws: int = 0, confidence_level: float = 0.95,
                               seed: Optional[int] = None) -> VarianceDecomposition:
        """Forecast-error variance decomposition over ``horizon`` periods with bootstrap bands."""
        pass
