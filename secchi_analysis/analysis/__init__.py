#!/usr/bin/env python3
"""
Analysis Module

Censored maximum-likelihood estimation and per-station statistics.
"""

from .censored_estimator import (
    Observation,
    ObservationSet,
    EstimationResult,
    EmptyObservationsError,
    CensoredNormalEstimator
)
from .statistical_analysis import StationSummary, StationStatisticsAnalyzer

__all__ = [
    'Observation',
    'ObservationSet',
    'EstimationResult',
    'EmptyObservationsError',
    'CensoredNormalEstimator',
    'StationSummary',
    'StationStatisticsAnalyzer'
]
