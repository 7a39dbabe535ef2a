#!/usr/bin/env python3
"""
Utilities Module

Configuration loading, logging setup, filesystem helpers and validation.
"""

from .helpers import (
    load_config, setup_logging, ensure_directory_exists,
    save_results, get_timestamp
)
from .validation import (
    validate_file_exists,
    validate_dataframe_structure,
    validate_secchi_values,
    validate_estimation_results
)

__all__ = [
    # Configuration helpers
    'load_config',
    'setup_logging',
    'ensure_directory_exists',
    'save_results',
    'get_timestamp',

    # Data validation
    'validate_file_exists',
    'validate_dataframe_structure',
    'validate_secchi_values',
    'validate_estimation_results'
]
