import logging
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from ..analysis.censored_estimator import ObservationSet

logger = logging.getLogger(__name__)

SEASONS = ['Winter', 'Spring', 'Summer', 'Autumn']


def get_season(month: int) -> str:
    """Meteorological season for a calendar month."""
    if month in [12, 1, 2]:
        return 'Winter'
    elif month in [3, 4, 5]:
        return 'Spring'
    elif month in [6, 7, 8]:
        return 'Summer'
    else:
        return 'Autumn'


class ObservationGrouper:
    """Turn loaded Secchi rows into per-station ObservationSets."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        window_config = config.get('analysis', {}).get('window', {})
        self.n_years = int(window_config.get('n_years', 5))
        self.min_years = int(window_config.get('min_years', 5))
        self.last_year = window_config.get('last_year')
        self.season = window_config.get('season')

    def add_time_columns(self, data: pd.DataFrame, date_column: str = 'date') -> pd.DataFrame:
        """Add year, month and season columns derived from the sampling date."""
        data_copy = data.copy()
        if not pd.api.types.is_datetime64_any_dtype(data_copy[date_column]):
            data_copy[date_column] = pd.to_datetime(data_copy[date_column])

        data_copy['year'] = data_copy[date_column].dt.year
        data_copy['month'] = data_copy[date_column].dt.month
        data_copy['season'] = data_copy['month'].apply(get_season)
        return data_copy

    def last_full_year(self, data: pd.DataFrame) -> int:
        """Latest year with December sampling, otherwise the year before the latest."""
        latest = int(data['year'].max())
        if (data.loc[data['year'] == latest, 'month'] == 12).any():
            return latest
        return latest - 1

    def select_recent_window(self, data: pd.DataFrame, n_years: Optional[int] = None,
                             last_year: Optional[int] = None) -> pd.DataFrame:
        """Keep the most recent ``n_years`` full calendar years."""
        if data.empty:
            return data.copy()
        if 'year' not in data.columns:
            data = self.add_time_columns(data)

        n_years = self.n_years if n_years is None else int(n_years)
        if last_year is None:
            last_year = self.last_year if self.last_year is not None else self.last_full_year(data)
        last_year = int(last_year)
        first_year = last_year - n_years + 1

        window = data[(data['year'] >= first_year) & (data['year'] <= last_year)].copy()
        window['window'] = f"{first_year}-{last_year}"
        logger.info(f"Window {first_year}-{last_year}: kept {len(window)}/{len(data)} rows")
        return window

    def select_stations(self, data: pd.DataFrame, min_years: Optional[int] = None) -> pd.DataFrame:
        """Keep stations sampled in at least ``min_years`` distinct years."""
        if data.empty:
            return data.copy()
        if 'year' not in data.columns:
            data = self.add_time_columns(data)

        min_years = self.min_years if min_years is None else int(min_years)
        years_per_station = data.groupby('station')['year'].nunique()
        keep = years_per_station[years_per_station >= min_years].index

        dropped = sorted(set(years_per_station.index) - set(keep))
        if dropped:
            logger.info(f"Excluding {len(dropped)} stations with fewer than {min_years} years: {dropped}")

        return data[data['station'].isin(keep)].copy()

    def build_observation_sets(self, data: pd.DataFrame, by: Sequence[str] = ('station',),
                               season: Optional[str] = None) -> List[ObservationSet]:
        """One ObservationSet per group of rows."""
        season = self.season if season is None else season
        if season is not None:
            if season not in SEASONS:
                raise ValueError(f"Unknown season: {season} (expected one of {SEASONS})")
            if 'season' not in data.columns:
                data = self.add_time_columns(data)
            data = data[data['season'] == season]

        if data.empty:
            logger.warning("No rows left to build observation sets")
            return []

        by = list(by)
        observation_sets = []
        for key, group in data.groupby(by, sort=True):
            key = key if isinstance(key, tuple) else (key,)
            labels = dict(zip(by, key))

            window = labels.get('window')
            if window is None and 'window' in group.columns:
                window = str(group['window'].iloc[0])
            extra = [str(labels[k]) for k in by if k not in ('station', 'window')]
            if extra:
                window = '/'.join([window] + extra if window else extra)

            observation_sets.append(ObservationSet(
                values=group['value'].to_numpy(dtype=float),
                censored=group['censored'].to_numpy(dtype=bool),
                station=str(labels.get('station', key[0])),
                window=window
            ))

        logger.info(f"Built {len(observation_sets)} observation sets grouped by {by}")
        return observation_sets

    def prepare(self, data: pd.DataFrame) -> List[ObservationSet]:
        """Time columns, station selection on full history, recent window, grouping."""
        timed = self.add_time_columns(data)
        selected = self.select_stations(timed)
        window = self.select_recent_window(selected)
        return self.build_observation_sets(window)
