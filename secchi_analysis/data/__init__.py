"""
Data Processing Module

Handles loading of monitoring spreadsheets and grouping of readings
into per-station observation sets.
"""

from .loaders import SecchiDataLoader, create_secchi_loader
from .processor import ObservationGrouper, get_season

__all__ = [
    'SecchiDataLoader',
    'create_secchi_loader',
    'ObservationGrouper',
    'get_season'
]
