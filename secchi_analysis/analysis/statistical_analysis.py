import logging
import multiprocessing
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from .censored_estimator import CensoredNormalEstimator, ObservationSet

logger = logging.getLogger(__name__)


@dataclass
class StationSummary:
    """One row of the per-station summary table."""
    station: Optional[str]
    window: Optional[str]
    n_obs: int
    n_censored: int
    pct_censored: float
    naive_mean: float
    naive_std: float
    adjusted_mean: float
    adjusted_std: float
    mean_change: float
    converged: bool
    method: str
    log_likelihood: float


SUMMARY_COLUMNS = list(StationSummary.__dataclass_fields__.keys())


def _summarize_worker(args):
    config, observations = args
    return StationStatisticsAnalyzer(config).summarize_station(observations)


class StationStatisticsAnalyzer:
    """Per-station censored-data statistics for Secchi depth."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        stats_config = config.get('analysis', {}).get('statistics', {})
        self.fallback_to_naive = stats_config.get('fallback_to_naive', True)
        self.n_jobs = int(stats_config.get('n_jobs', 1))
        self.estimator = CensoredNormalEstimator(config)

    def naive_statistics(self, observations: ObservationSet) -> Dict[str, float]:
        """Statistics computed as if every recorded value were exact."""
        n_obs = len(observations)
        if n_obs == 0:
            logger.warning(f"No observations for station {observations.station}")
            return {
                'n_obs': 0,
                'n_censored': 0,
                'pct_censored': np.nan,
                'mean': np.nan,
                'std': np.nan
            }

        return {
            'n_obs': n_obs,
            'n_censored': observations.n_censored,
            'pct_censored': 100.0 * observations.n_censored / n_obs,
            'mean': float(np.mean(observations.values)),
            'std': float(np.std(observations.values))
        }

    def summarize_station(self, observations: ObservationSet,
                          initial_mu: Optional[float] = None,
                          initial_sigma: Optional[float] = None) -> StationSummary:
        """Estimate adjusted statistics for one station, falling back to naive ones."""
        naive = self.naive_statistics(observations)
        result = self.estimator.estimate(observations, initial_mu, initial_sigma)

        if result.converged:
            adjusted_mean, adjusted_std, method = result.mu, result.sigma, 'mle'
        elif self.fallback_to_naive:
            logger.warning(f"Station {observations.station} ({observations.window}): "
                           f"MLE did not converge ({result.message}), using naive statistics")
            adjusted_mean, adjusted_std, method = naive['mean'], naive['std'], 'naive_fallback'
        else:
            adjusted_mean, adjusted_std, method = np.nan, np.nan, 'not_converged'

        return StationSummary(
            station=observations.station,
            window=observations.window,
            n_obs=naive['n_obs'],
            n_censored=naive['n_censored'],
            pct_censored=naive['pct_censored'],
            naive_mean=naive['mean'],
            naive_std=naive['std'],
            adjusted_mean=adjusted_mean,
            adjusted_std=adjusted_std,
            mean_change=adjusted_mean - naive['mean'],
            converged=result.converged,
            method=method,
            log_likelihood=result.log_likelihood
        )

    def summarize_stations(self, observation_sets: Iterable[ObservationSet]) -> pd.DataFrame:
        """Summary table with one row per station/window."""
        sets = []
        for obs in observation_sets:
            if len(obs) == 0:
                logger.warning(f"Skipping station {obs.station} ({obs.window}): no observations")
                continue
            sets.append(obs)
        if not sets:
            logger.warning("No non-empty observation sets to summarize")
            return pd.DataFrame(columns=SUMMARY_COLUMNS)

        if self.n_jobs > 1 and len(sets) > 1:
            logger.info(f"Estimating {len(sets)} stations with {self.n_jobs} workers")
            with multiprocessing.Pool(processes=self.n_jobs) as pool:
                summaries = pool.map(_summarize_worker, [(self.config, obs) for obs in sets])
        else:
            summaries = [self.summarize_station(obs) for obs in sets]

        n_failed = sum(1 for s in summaries if not s.converged)
        if n_failed:
            logger.info(f"{n_failed}/{len(summaries)} stations did not converge")

        summary_df = summaries_to_frame(summaries)
        return summary_df.sort_values(['station', 'window'], na_position='last').reset_index(drop=True)

    def likelihood_profile(self, observations: ObservationSet, sigma: float,
                           mu_grid: Optional[Sequence[float]] = None,
                           n_points: int = 201) -> pd.DataFrame:
        """Log-likelihood along a grid of mu values at fixed sigma."""
        if mu_grid is None:
            values = observations.values
            spread = max(float(np.ptp(values)), float(sigma), 1e-6)
            mu_grid = np.linspace(values.min() - spread, values.max() + spread, n_points)

        mu_grid = np.asarray(mu_grid, dtype=float)
        log_lik = [self.estimator.log_likelihood(mu, sigma, observations) for mu in mu_grid]

        return pd.DataFrame({'mu': mu_grid, 'log_likelihood': log_lik})

    def estimation_report(self, summary_df: pd.DataFrame) -> Dict[str, Any]:
        """Aggregate figures for a run, suitable for logging or export."""
        if summary_df.empty:
            return {'n_stations': 0}

        converged = summary_df[summary_df['converged']]
        return {
            'n_stations': len(summary_df),
            'n_converged': len(converged),
            'n_fallback': int((summary_df['method'] == 'naive_fallback').sum()),
            'mean_pct_censored': float(summary_df['pct_censored'].mean()),
            'mean_change': float(converged['mean_change'].mean()) if len(converged) else np.nan,
            'max_change': float(converged['mean_change'].max()) if len(converged) else np.nan
        }


def summaries_to_frame(summaries: List[StationSummary]) -> pd.DataFrame:
    """Convert StationSummary objects to a DataFrame with the standard columns."""
    return pd.DataFrame([asdict(s) for s in summaries], columns=SUMMARY_COLUMNS)
