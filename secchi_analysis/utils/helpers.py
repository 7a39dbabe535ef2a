import yaml
import logging
import os
from typing import Dict, Any, Optional
import pandas as pd
from datetime import datetime


def load_config(config_path: str) -> Dict[str, Any]:
    """Load YAML configuration file."""
    try:
        with open(config_path, 'r') as file:
            config = yaml.safe_load(file)
        return config or {}
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML file: {e}")


def setup_logging(config: Dict[str, Any], log_dir: Optional[str] = None) -> None:
    """Set up logging configuration."""
    log_config = config.get('logging', {})
    level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)
    format_str = log_config.get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    handlers = [logging.StreamHandler()]
    log_file = log_config.get('file', 'secchi_analysis.log')
    if log_file:
        if log_dir:
            ensure_directory_exists(log_dir)
            log_file = os.path.join(log_dir, os.path.basename(log_file))
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=handlers,
        force=True
    )


def ensure_directory_exists(path: str) -> None:
    """Create directory if it doesn't exist."""
    if path:
        os.makedirs(path, exist_ok=True)


def save_results(data: pd.DataFrame, file_path: str, format: str = 'csv') -> None:
    """Save results to file in specified format."""
    ensure_directory_exists(os.path.dirname(file_path))

    if format.lower() == 'csv':
        data.to_csv(file_path, index=False)
    elif format.lower() == 'excel':
        data.to_excel(file_path, index=False)
    else:
        raise ValueError(f"Unsupported format: {format}")


def get_timestamp() -> str:
    """Get current timestamp as string."""
    return datetime.now().strftime("%Y%m%d_%H%M%S")
