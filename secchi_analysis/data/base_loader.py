from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Any, Optional, List, Union
import pandas as pd
import logging

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ('.csv', '.xlsx', '.xls')


class BaseDataLoader(ABC):
    """Abstract base class for monitoring-data loaders."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.data: Optional[pd.DataFrame] = None

    @abstractmethod
    def load_data(self, file_path: Union[str, Path], **kwargs) -> pd.DataFrame:
        """Load data from file and return standardized DataFrame."""
        pass

    @abstractmethod
    def validate_data(self, data: pd.DataFrame) -> bool:
        """Validate loaded data structure and content."""
        pass

    @abstractmethod
    def get_required_columns(self) -> List[str]:
        """Return list of required columns for this data type."""
        pass

    def read_table(self, file_path: Union[str, Path], sheet_name: Any = 0) -> pd.DataFrame:
        """Read a CSV or Excel export into a raw DataFrame."""
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"Data file not found: {file_path}")

        suffix = path.suffix.lower()
        if suffix == '.csv':
            raw = pd.read_csv(path)
        elif suffix in ('.xlsx', '.xls'):
            raw = pd.read_excel(path, sheet_name=sheet_name)
        else:
            raise ValueError(f"Unsupported data file format: {suffix} "
                             f"(expected one of {SUPPORTED_EXTENSIONS})")

        logger.info(f"Read {len(raw)} rows from {path.name}")
        return raw

    def get_data(self) -> Optional[pd.DataFrame]:
        """Return loaded and processed data."""
        return self.data

    def has_data(self) -> bool:
        """Check if data has been loaded."""
        return self.data is not None and not self.data.empty
