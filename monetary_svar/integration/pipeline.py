"""
End-to-end structural VAR pipeline.

Runs acquisition, preparation, estimation, identification, impulse
responses, historical decomposition, variance decomposition and plotting
in sequence.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

import plotly.graph_objects as go

from ..config.settings import AnalysisSettings, DetrendMethod, parse_detrend_method
from ..data.data_manager import DataManager
from ..data.models import PreparedData, MODEL_VARIABLES
from ..econometric.backend import SVARBackend
from ..econometric.models import DeterministicTerms, SVARResults
from ..econometric.statsmodels_backend import StatsmodelsSVARBackend
from ..exceptions import ConfigurationError, DataValidationError
from ..logging_config import PerformanceLogger
from ..presentation.visualizers import SVARVisualizer, save_figure

logger = logging.getLogger(__name__)


@dataclass
class PipelineResults:
    """Outputs of one pipeline run."""

    prepared: PreparedData
    svar: SVARResults
    figures: Dict[str, go.Figure] = field(default_factory=dict)
    saved_figures: Dict[str, Path] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def duration(self) -> Optional[float]:
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None


class SVARPipeline:
    """
    Coordinates the stages of the structural VAR analysis.

    The numerical work is delegated to an ``SVARBackend``; the statsmodels
    backend is used unless another one is supplied.
    An injected ``DataManager`` is used as given; only the detrending
    method override reaches it, as an argument to ``prepare``.
    """

    def __init__(self, settings: Optional[AnalysisSettings] = None,
                 backend: Optional[SVARBackend] = None,
                 data_manager: Optional[DataManager] = None,
                 visualizer: Optional[SVARVisualizer] = None):
        self.settings = settings or AnalysisSettings()
        self.backend = backend or StatsmodelsSVARBackend()
        self.data_manager = data_manager
        self.visualizer = visualizer or SVARVisualizer(
            width=self.settings.visualization.width,
            height=self.settings.visualization.height
        )
        self.perf = PerformanceLogger(logger)

    def run(self, method: Optional[Union[str, DetrendMethod]] = None,
            plot: Optional[bool] = None,
            save_figures: Optional[bool] = None) -> PipelineResults:
        """
        Run every stage in order.

        Args:
            method: Detrending method, overriding ``data.detrend_method``
            plot: Build figures, overriding ``visualization.plot``
            save_figures: Write figures to disk, overriding ``visualization.save_figures``

        Returns:
            PipelineResults with the prepared data, SVAR results and figures
        """
        settings = self._apply_overrides(method, plot, save_figures)
        errors = settings.validate()
        if errors:
            raise ConfigurationError("Invalid pipeline configuration", validation_errors=errors)

        started_at = datetime.now()
        data_manager = self.data_manager or DataManager(settings.data)

        with self.perf.timer("data acquisition"):
            raw = data_manager.load_raw_data()

        with self.perf.timer("data preparation", detrend_method=settings.data.detrend_method.value):
            prepared = data_manager.prepare(raw, method=settings.data.detrend_method)

        svar = self.estimate(prepared, settings)
        results = PipelineResults(prepared=prepared, svar=svar, started_at=started_at)

        if settings.visualization.plot:
            with self.perf.timer("plotting"):
                results.figures = self.build_figures(prepared, svar)
                if settings.visualization.show:
                    for fig in results.figures.values():
                        fig.show()

            if settings.visualization.save_figures:
                for name, fig in results.figures.items():
                    results.saved_figures[name] = save_figure(
                        fig, name, settings.visualization.export_directory,
                        fmt=settings.visualization.export_format,
                        width=settings.visualization.width,
                        height=settings.visualization.height
                    )

        results.finished_at = datetime.now()
        logger.info(f"Pipeline finished in {results.duration:.1f}s")
        return results

    def estimate(self, prepared: PreparedData,
                 settings: Optional[AnalysisSettings] = None) -> SVARResults:
        """
        Run the backend stages on prepared data.

        Args:
            prepared: Output of data preparation
            settings: Settings to use, defaults to the pipeline's

        Returns:
            SVARResults bundling estimate, identification and decompositions
        """
        settings = settings or self.settings
        est = settings.estimation
        model_input = prepared.model_input

        if tuple(model_input.data.columns) != MODEL_VARIABLES:
            raise DataValidationError(
                f"Model input columns changed to {tuple(model_input.data.columns)}"
            )

        with self.perf.timer("estimation", lags=est.lags, deterministic=est.deterministic):
            estimate = self.backend.estimate(model_input, est.lags, DeterministicTerms(est.deterministic))

        with self.perf.timer("identification", scheme=est.identification):
            identification = self.backend.identify(estimate, est.identification)

        with self.perf.timer("impulse responses", horizon=est.horizon, draws=est.bootstrap_draws):
            irfs = self.backend.impulse_response(
                estimate, identification, est.horizon, draws=est.bootstrap_draws,
                confidence_level=est.confidence_level, seed=est.random_seed
            )

        with self.perf.timer("historical decomposition"):
            hd = self.backend.historical_decomposition(estimate, identification)

        with self.perf.timer("variance decomposition", horizon=est.horizon, draws=est.bootstrap_draws):
            fevd = self.backend.variance_decomposition(
                estimate, identification, est.horizon, draws=est.bootstrap_draws,
                confidence_level=est.confidence_level, seed=est.random_seed
            )

        return SVARResults(
            estimate=estimate,
            identification=identification,
            impulse_responses=irfs,
            historical_decomposition=hd,
            variance_decomposition=fevd,
            metadata={
                'lags': est.lags,
                'deterministic': DeterministicTerms(est.deterministic).name.lower(),
                'identification': identification.scheme,
                'horizon': est.horizon,
                'bootstrap_draws': est.bootstrap_draws,
                'confidence_level': est.confidence_level,
                'sample_start': str(model_input.dates[0].date()),
                'sample_end': str(model_input.dates[-1].date()),
            }
        )

    def build_figures(self, prepared: PreparedData, svar: SVARResults) -> Dict[str, go.Figure]:
        """Figures for the data and each result, keyed by file name."""
        return {
            'data': self.visualizer.plot_data(prepared.model_input),
            'impulse_responses': self.visualizer.plot_impulse_responses(svar.impulse_responses),
            'historical_decomposition': self.visualizer.plot_historical_decomposition(
                svar.historical_decomposition),
            'variance_decomposition': self.visualizer.plot_variance_decomposition(
                svar.variance_decomposition),
        }

    def _apply_overrides(self, method, plot, save_figures) -> AnalysisSettings:
        data = self.settings.data
        visualization = self.settings.visualization

        if method is not None:
            try:
                data = replace(data, detrend_method=parse_detrend_method(method))
            except ValueError as e:
                raise ConfigurationError(f"Unknown detrending method: {method}") from e
        if plot is not None:
            visualization = replace(visualization, plot=plot)
        if save_figures is not None:
            visualization = replace(visualization, save_figures=save_figures)

        return replace(self.settings, data=data, visualization=visualization)


def run_pipeline(settings: Optional[AnalysisSettings] = None, **overrides: Any) -> PipelineResults:
    """
    Run the structural VAR pipeline.

    Args:
        settings: Pipeline settings, defaults reproduce the 1960-2019 US example
        **overrides: ``method``, ``plot`` and ``save_figures`` toggles

    Returns:
        PipelineResults
    """
    return SVARPipeline(settings).run(**overrides)
