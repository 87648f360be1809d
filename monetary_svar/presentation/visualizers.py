"""
Visualization components for the monetary policy SVAR pipeline.

This module builds Plotly figures for the model data, impulse responses,
historical decomposition and forecast-error variance decomposition, and
exports them to disk.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np
from plotly.colors import hex_to_rgb, qualitative, unlabel_rgb
import plotly.graph_objects as go
import plotly.io as pio
from plotly.subplots import make_subplots

from ..data.models import ModelInput
from ..econometric.models import (
    ImpulseResponses, HistoricalDecomposition, VarianceDecomposition
)

logger = logging.getLogger(__name__)

SHOCK_COLORS = qualitative.Set2


def _band_color(color: str, alpha: float = 0.25) -> str:
    """Translucent fill color for a confidence band."""
    r, g, b = hex_to_rgb(color) if color.startswith("#") else unlabel_rgb(color)
    return f"rgba({int(r)}, {int(g)}, {int(b)}, {alpha})"


class SVARVisualizer:
    """
    Creates figures for every stage of the structural VAR analysis.
    """

    def __init__(self, width: int = 1000, height: int = 800):
        """
        Initialize the visualizer.

        Args:
            width: Figure width in pixels
            height: Figure height in pixels
        """
        self.width = width
        self.height = height

    def plot_data(self, model_input: ModelInput,
                  title: str = "Inflation, Output and Federal Funds Rate") -> go.Figure:
        """
        Plot the three model variables over time.

        Args:
            model_input: Fixed-order model variables
            title: Plot title

        Returns:
            Plotly figure with one line per variable
        """
        fig = go.Figure()
        for i, name in enumerate(model_input.variable_names):
            fig.add_trace(go.Scatter(
                x=model_input.dates,
                y=model_input.data[name],
                name=name,
                line=dict(color=SHOCK_COLORS[i % len(SHOCK_COLORS)], width=2)
            ))

        fig.add_hline(y=0, line=dict(color='grey', width=1, dash='dot'))
        fig.update_layout(
            title=title,
            xaxis_title="Date",
            yaxis_title="Percent",
            hovermode='x unified',
            width=self.width,
            height=int(self.height * 0.6)
        )
        return fig

    def plot_impulse_responses(self, irfs: ImpulseResponses,
                               title: str = "Impulse Responses (recursive identification)") -> go.Figure:
        """
        Grid of impulse responses, one row per variable and one column per shock.

        The median of the bootstrap replications is drawn with a shaded
        band when bands are available; the point estimate otherwise.
        """
        k = len(irfs.variable_names)
        fig = make_subplots(
            rows=k, cols=k,
            subplot_titles=[f"{var} to {shock}" for var in irfs.variable_names
                            for shock in irfs.shock_names],
            vertical_spacing=0.08,
            horizontal_spacing=0.06
        )

        periods = np.arange(irfs.horizon)
        for i, variable in enumerate(irfs.variable_names):
            for j, shock in enumerate(irfs.shock_names):
                color = SHOCK_COLORS[j % len(SHOCK_COLORS)]
                path = irfs.median if irfs.has_bands else irfs.point
                if irfs.has_bands:
                    self._add_band(fig, periods, irfs.lower[:, i, j], irfs.upper[:, i, j],
                                   color, row=i + 1, col=j + 1)
                fig.add_trace(
                    go.Scatter(x=periods, y=path[:, i, j], mode='lines',
                               line=dict(color=color, width=2), showlegend=False,
                               name=f"{variable} to {shock}"),
                    row=i + 1, col=j + 1
                )
                fig.add_hline(y=0, line=dict(color='grey', width=1, dash='dot'),
                              row=i + 1, col=j + 1)

        band_note = (f" ({int(irfs.confidence_level * 100)}% bands, {irfs.n_draws} bootstrap draws)"
                     if irfs.has_bands else "")
        fig.update_layout(title=title + band_note, width=self.width, height=self.height)
        return fig

    def plot_historical_decomposition(self, hd: HistoricalDecomposition,
                                      title: str = "Historical Decomposition") -> go.Figure:
        """
        Stacked shock contributions for each variable.

        The line shows the variable net of initial conditions and
        deterministic terms, which equals the sum of the bars.
        """
        k = len(hd.variable_names)
        fig = make_subplots(rows=k, cols=1, subplot_titles=hd.variable_names,
                            shared_xaxes=True, vertical_spacing=0.06)

        for i, variable in enumerate(hd.variable_names):
            shocks = hd.shocks[variable]
            for j, shock in enumerate(hd.shock_names):
                fig.add_trace(
                    go.Bar(x=shocks.index, y=shocks[shock], name=shock,
                           marker_color=SHOCK_COLORS[j % len(SHOCK_COLORS)],
                           legendgroup=shock, showlegend=(i == 0)),
                    row=i + 1, col=1
                )
            fig.add_trace(
                go.Scatter(x=shocks.index, y=shocks.sum(axis=1), mode='lines',
                           line=dict(color='black', width=1.5), name='Sum of shocks',
                           legendgroup='total', showlegend=(i == 0)),
                row=i + 1, col=1
            )

        fig.update_layout(title=title, barmode='relative', width=self.width,
                          height=self.height, hovermode='x unified')
        return fig

    def plot_variance_decomposition(self, fevd: VarianceDecomposition,
                                    title: str = "Forecast Error Variance Decomposition") -> go.Figure:
        """
        Grid of variance shares, one row per variable and one column per shock.
        """
        k = len(fevd.variable_names)
        fig = make_subplots(
            rows=k, cols=k,
            subplot_titles=[f"{shock} shock in {var}" for var in fevd.variable_names
                            for shock in fevd.shock_names],
            vertical_spacing=0.08,
            horizontal_spacing=0.06
        )

        horizons = np.arange(1, fevd.horizon + 1)
        for i, variable in enumerate(fevd.variable_names):
            for j, shock in enumerate(fevd.shock_names):
                color = SHOCK_COLORS[j % len(SHOCK_COLORS)]
                path = fevd.median if fevd.has_bands else fevd.point
                if fevd.has_bands:
                    self._add_band(fig, horizons, fevd.lower[:, i, j], fevd.upper[:, i, j],
                                   color, row=i + 1, col=j + 1)
                fig.add_trace(
                    go.Scatter(x=horizons, y=path[:, i, j], mode='lines',
                               line=dict(color=color, width=2), showlegend=False,
                               name=f"{shock} share of {variable}"),
                    row=i + 1, col=j + 1
                )

        fig.update_yaxes(range=[0, 100])
        fig.update_layout(title=title, width=self.width, height=self.height)
        return fig

    @staticmethod
    def _add_band(fig: go.Figure, x, lower, upper, color: str, row: int, col: int):
        fig.add_trace(
            go.Scatter(x=np.concatenate([x, x[::-1]]),
                       y=np.concatenate([upper, lower[::-1]]),
                       fill='toself', fillcolor=_band_color(color),
                       line=dict(width=0), hoverinfo='skip', showlegend=False),
            row=row, col=col
        )


def save_figure(fig: go.Figure, name: str, directory: Union[str, Path],
                fmt: str = "html", width: Optional[int] = None,
                height: Optional[int] = None) -> Path:
    """
    Write a figure to ``directory/name.fmt``.

    HTML is written by Plotly directly; png, pdf and svg need the kaleido
    package.

    Returns:
        Path of the written file
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    output_file = directory / f"{name}.{fmt}"

    if fmt == "html":
        fig.write_html(str(output_file))
    else:
        pio.write_image(fig, str(output_file), format=fmt, width=width, height=height)

    logger.info(f"Saved figure {output_file}")
    return output_file


def save_figures(figures: Dict[str, go.Figure], directory: Union[str, Path],
                 fmt: str = "html") -> List[Path]:
    """Write several figures, keyed by file name."""
    return [save_figure(fig, name, directory, fmt) for name, fig in figures.items()]
