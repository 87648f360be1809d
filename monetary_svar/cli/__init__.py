"""
Command-line interface for the monetary policy SVAR pipeline.
"""

from .main import main

__all__ = ["main"]
