"""Diagnostic plots for Secchi depth estimates."""

from .plots import PlotGenerator

__all__ = ['PlotGenerator']
