"""
Integration module for the monetary policy SVAR pipeline.

This module wires data preparation, estimation and presentation into one
end-to-end run.
"""

from .pipeline import SVARPipeline, PipelineResults, run_pipeline

__all__ = [
    "SVARPipeline",
    "PipelineResults",
    "run_pipeline"
]
