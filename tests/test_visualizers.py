"""
Tests for the Plotly figures of model data and SVAR results.
"""

import plotly.graph_objects as go
import pytest

from monetary_svar.econometric.statsmodels_backend import StatsmodelsSVARBackend
from monetary_svar.presentation.visualizers import (
    SVARVisualizer, save_figure, save_figures, _band_color
)


@pytest.fixture(scope="module")
def svar_outputs():
    from conftest import simulate_model_input

    model_input = simulate_model_input(n_periods=120)
    backend = StatsmodelsSVARBackend()
    estimate = backend.estimate(model_input, lags=1)
    identification = backend.identify(estimate)
    return {
        'model_input': model_input,
        'irfs': backend.impulse_response(estimate, identification, 6, draws=5, seed=0),
        'irfs_point': backend.impulse_response(estimate, identification, 6),
        'hd': backend.historical_decomposition(estimate, identification),
        'fevd': backend.variance_decomposition(estimate, identification, 6, draws=5, seed=0),
    }


class TestSVARVisualizer:

    @pytest.fixture
    def visualizer(self):
        return SVARVisualizer(width=800, height=600)

    def test_plot_data(self, visualizer, svar_outputs):
        fig = visualizer.plot_data(svar_outputs['model_input'])

        assert isinstance(fig, go.Figure)
        assert [trace.name for trace in fig.data] == ['Inflation', 'Output', 'FedFunds']
        assert fig.layout.width == 800

    def test_impulse_responses_with_bands(self, visualizer, svar_outputs):
        fig = visualizer.plot_impulse_responses(svar_outputs['irfs'])

        # one band and one line per panel of the 3x3 grid
        assert len(fig.data) == 2 * 9
        assert "bootstrap draws" in fig.layout.title.text

    def test_impulse_responses_without_bands(self, visualizer, svar_outputs):
        fig = visualizer.plot_impulse_responses(svar_outputs['irfs_point'])

        assert len(fig.data) == 9
        assert "bootstrap" not in fig.layout.title.text

    def test_historical_decomposition(self, visualizer, svar_outputs):
        fig = visualizer.plot_historical_decomposition(svar_outputs['hd'])

        bars = [trace for trace in fig.data if isinstance(trace, go.Bar)]
        assert len(bars) == 9
        assert fig.layout.barmode == 'relative'

    def test_variance_decomposition(self, visualizer, svar_outputs):
        fig = visualizer.plot_variance_decomposition(svar_outputs['fevd'])

        assert len(fig.data) == 2 * 9
        assert tuple(fig.layout.yaxis.range) == (0, 100)


class TestFigureExport:

    def test_save_html(self, tmp_path):
        fig = go.Figure(go.Scatter(x=[0, 1], y=[1, 2]))

        path = save_figure(fig, "irf", tmp_path / "figures")

        assert path == tmp_path / "figures" / "irf.html"
        assert path.exists()

    def test_save_several(self, tmp_path):
        figures = {name: go.Figure() for name in ("a", "b")}

        paths = save_figures(figures, tmp_path)

        assert sorted(p.name for p in paths) == ["a.html", "b.html"]


@pytest.mark.parametrize("color,expected", [
    ("#ff0000", "rgba(255, 0, 0, 0.25)"),
    ("rgb(102,194,165)", "rgba(102, 194, 165, 0.25)"),
])
def test_band_color(color, expected):
    assert _band_color(color) == expected
