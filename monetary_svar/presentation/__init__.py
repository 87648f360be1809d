"""
Presentation module for the monetary policy SVAR pipeline.

This module builds and exports figures of the model data and the
structural VAR results.
"""

from .visualizers import SVARVisualizer, save_figure, save_figures

__all__ = [
    "SVARVisualizer",
    "save_figure",
    "save_figures"
]
