#!/usr/bin/env python3
"""
Secchi Depth Data Loader

Reads a monitoring-program spreadsheet export, maps its columns onto the
canonical names used by the framework and applies the BSV convention:
a Secchi cell coded "BSV" (bottom still visible) is replaced by the total
water depth at that station visit and flagged as right-censored.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd

from .base_loader import BaseDataLoader

logger = logging.getLogger(__name__)

DEFAULT_COLUMN_MAP = {
    'station': 'station',
    'date': 'date',
    'secchi': 'secchi',
    'total_depth': 'total_depth',
    'censored': None
}

DEFAULT_BSV_CODES = ['BSV']

TRUE_FLAGS = {'true', 't', 'yes', 'y', '1', 'bsv'}


class SecchiDataLoader(BaseDataLoader):
    """Load Secchi-depth readings with right-censoring flags."""

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        data_config = config.get('data', {})
        self.column_map = dict(DEFAULT_COLUMN_MAP)
        self.column_map.update(data_config.get('columns', {}) or {})
        self.bsv_codes = [str(code).strip().upper()
                          for code in data_config.get('bsv_codes', DEFAULT_BSV_CODES)]
        self.sheet_name = data_config.get('sheet_name', 0)

    def get_required_columns(self) -> List[str]:
        """Return required canonical columns."""
        return ['station', 'date', 'secchi', 'total_depth']

    def load_data(self, file_path: Union[str, Path], **kwargs) -> pd.DataFrame:
        """Load a spreadsheet export and return station/date/value/censored rows."""
        raw = self.read_table(file_path, sheet_name=kwargs.get('sheet_name', self.sheet_name))
        data = self.rename_columns(raw)

        if not self.validate_data(data):
            missing = [c for c in self.get_required_columns() if c not in data.columns]
            raise ValueError(f"Data file {file_path} missing required columns: {missing}")

        self.data = self.apply_censoring(data)
        logger.info(f"Loaded {len(self.data)} Secchi readings "
                    f"({int(self.data['censored'].sum())} censored) "
                    f"from {self.data['station'].nunique()} stations")
        return self.data

    def rename_columns(self, raw: pd.DataFrame) -> pd.DataFrame:
        """Rename source columns onto the canonical names."""
        renames = {}
        for canonical, source in self.column_map.items():
            if source is None:
                continue
            if source in raw.columns:
                renames[source] = canonical
            elif canonical not in raw.columns:
                logger.debug(f"Source column '{source}' for '{canonical}' not present")

        data = raw.rename(columns=renames)
        data.columns = [str(c).strip() for c in data.columns]
        return data

    def validate_data(self, data: pd.DataFrame) -> bool:
        """Check that the canonical columns are present."""
        missing = [col for col in self.get_required_columns() if col not in data.columns]
        if missing:
            logger.error(f"Missing required columns: {missing}")
            return False
        return True

    def apply_censoring(self, data: pd.DataFrame) -> pd.DataFrame:
        """Convert BSV codes to censored floor depths and drop unusable rows."""
        df = data.copy()

        secchi_text = df['secchi'].astype(str).str.strip().str.upper()
        is_bsv = secchi_text.isin(self.bsv_codes)

        secchi = pd.to_numeric(df['secchi'].where(~is_bsv), errors='coerce')
        total_depth = pd.to_numeric(df['total_depth'], errors='coerce')

        censored = is_bsv.copy()
        if 'censored' in df.columns:
            censored = censored | self._parse_flags(df['censored'])

        value = secchi.where(~is_bsv, total_depth)

        bsv_without_depth = is_bsv & total_depth.isna()
        if bsv_without_depth.any():
            logger.warning(f"Dropping {int(bsv_without_depth.sum())} BSV readings without a total depth")

        result = pd.DataFrame({
            'station': df['station'].astype(str).str.strip().where(df['station'].notna()),
            'date': pd.to_datetime(df['date'], errors='coerce'),
            'value': value.astype(float),
            'censored': censored.astype(bool)
        }, index=df.index)

        n_before = len(result)
        result = result.dropna(subset=['station', 'date', 'value'])
        n_missing = n_before - len(result)
        if n_missing:
            logger.info(f"Dropped {n_missing} rows with missing station, date or Secchi reading")

        negative = result['value'] < 0
        if negative.any():
            logger.warning(f"Dropping {int(negative.sum())} negative Secchi readings")
            result = result[~negative]

        infinite = ~np.isfinite(result['value'])
        if infinite.any():
            logger.warning(f"Dropping {int(infinite.sum())} non-finite Secchi readings")
            result = result[~infinite]

        return result.sort_values(['station', 'date']).reset_index(drop=True)

    @staticmethod
    def _parse_flags(flags: pd.Series) -> pd.Series:
        if pd.api.types.is_bool_dtype(flags):
            return flags.fillna(False).astype(bool)
        # 0/1 columns with blanks arrive as float64
        if pd.api.types.is_numeric_dtype(flags):
            return flags.fillna(0).astype(float) != 0
        text = flags.astype(str).str.strip().str.lower()
        return text.isin(TRUE_FLAGS)


def create_secchi_loader(config: Optional[Dict[str, Any]] = None) -> SecchiDataLoader:
    """Factory for the Secchi loader."""
    return SecchiDataLoader(config or {})
