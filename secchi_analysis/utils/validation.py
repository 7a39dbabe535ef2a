#!/usr/bin/env python3
"""
Input Validation Utilities

Checks on input files, loaded tables and estimation outputs. These functions
report problems through their return values and the log; they never modify
the data they are given.
"""

import os
import pandas as pd
import numpy as np
from pathlib import Path
from typing import Dict, List, Any, Tuple, Union
import logging

logger = logging.getLogger(__name__)


def validate_file_exists(file_path: Union[str, Path], description: str = "File") -> bool:
    """
    Validate that a file exists and is accessible.

    Args:
        file_path: Path to the file to check
        description: Human-readable description for logging

    Returns:
        bool: True if file exists and is readable, False otherwise
    """
    path = Path(file_path)
    if not path.exists():
        logger.warning(f"{description} does not exist: {file_path}")
        return False
    if not path.is_file():
        logger.warning(f"{description} is not a file: {file_path}")
        return False
    if not os.access(path, os.R_OK):
        logger.warning(f"{description} is not readable: {file_path}")
        return False
    return True


def validate_dataframe_structure(df: pd.DataFrame, required_columns: List[str],
                                 name: str = "DataFrame") -> Tuple[bool, List[str]]:
    """
    Validate that a DataFrame has the required column structure.

    Returns:
        Tuple[bool, List[str]]: (is_valid, missing_columns)

    Example:
        >>> df = pd.DataFrame({'station': ['A'], 'value': [2.5]})
        >>> validate_dataframe_structure(df, ['station', 'value', 'censored'])
        (False, ['censored'])
    """
    if df.empty:
        logger.warning(f"{name} is empty")
        return False, list(required_columns)

    missing_columns = [col for col in required_columns if col not in df.columns]

    if missing_columns:
        logger.warning(f"{name} missing required columns: {missing_columns}")
        logger.debug(f"{name} has columns: {list(df.columns)}")
        return False, missing_columns

    logger.debug(f"{name} structure validation passed")
    return True, []


def validate_secchi_values(values: np.ndarray, name: str = "Secchi depths",
                           max_depth: float = 50.0) -> Dict[str, Any]:
    """
    Validate Secchi depths are within physically reasonable ranges.

    Depths must be non-negative; values above ``max_depth`` metres are
    flagged as suspicious but still counted as valid.

    Returns:
        Dict with keys valid, n_total, n_clean, n_valid, n_invalid, n_nan,
        n_suspicious and invalid_range.
    """
    values = np.asarray(values, dtype=float)
    clean_values = values[np.isfinite(values)]

    valid_mask = clean_values >= 0.0
    n_valid = int(np.sum(valid_mask))
    n_invalid = len(clean_values) - n_valid
    n_suspicious = int(np.sum(clean_values > max_depth))

    result = {
        'valid': n_invalid == 0 and len(clean_values) == len(values),
        'n_total': len(values),
        'n_clean': len(clean_values),
        'n_valid': n_valid,
        'n_invalid': n_invalid,
        'n_nan': len(values) - len(clean_values),
        'n_suspicious': n_suspicious,
        'invalid_range': None
    }

    if n_invalid > 0:
        invalid_values = clean_values[~valid_mask]
        result['invalid_range'] = (float(np.min(invalid_values)), float(np.max(invalid_values)))
        logger.warning(f"{name}: {n_invalid}/{len(clean_values)} negative values")
    if n_suspicious > 0:
        logger.warning(f"{name}: {n_suspicious} values deeper than {max_depth} m")

    return result


def validate_estimation_results(summary_df: pd.DataFrame) -> Dict[str, Any]:
    """
    Sanity checks on a station summary table.

    Converged rows must have a positive adjusted standard deviation and a
    finite log-likelihood.
    """
    required = ['station', 'adjusted_mean', 'adjusted_std', 'converged', 'log_likelihood']
    is_valid, missing = validate_dataframe_structure(summary_df, required, "Station summary")
    if not is_valid:
        return {'valid': False, 'errors': [f"Missing columns: {missing}"] if missing else ['Empty summary']}

    errors = []
    converged = summary_df[summary_df['converged'].astype(bool)]

    bad_sigma = converged[~(converged['adjusted_std'] > 0)]
    if len(bad_sigma):
        errors.append(f"{len(bad_sigma)} converged stations with non-positive sigma: "
                      f"{bad_sigma['station'].tolist()}")

    bad_loglik = converged[~np.isfinite(converged['log_likelihood'].astype(float))]
    if len(bad_loglik):
        errors.append(f"{len(bad_loglik)} converged stations with non-finite log-likelihood")

    for error in errors:
        logger.warning(error)

    return {
        'valid': not errors,
        'errors': errors,
        'n_stations': len(summary_df),
        'n_converged': len(converged)
    }
