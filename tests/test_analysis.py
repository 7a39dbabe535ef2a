import pytest
import pandas as pd
import numpy as np
import os
import sys

# Add project root to path for testing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from secchi_analysis.analysis.censored_estimator import ObservationSet
from secchi_analysis.analysis.statistical_analysis import (
    StationStatisticsAnalyzer,
    StationSummary,
    SUMMARY_COLUMNS
)


class TestStationStatisticsAnalyzer:
    """Test per-station statistics and the summary table."""

    @pytest.fixture
    def config(self):
        """Basic configuration for testing."""
        return {
            'analysis': {
                'statistics': {
                    'fallback_to_naive': True,
                    'n_jobs': 1
                }
            }
        }

    @pytest.fixture
    def censored_station(self):
        return ObservationSet.from_pairs(
            [(3.0, False), (2.5, False), (4.0, True), (4.0, True), (3.5, False)],
            station='B', window='2016-2020'
        )

    @pytest.fixture
    def clear_station(self):
        np.random.seed(42)
        values = np.abs(np.random.normal(2.0, 0.5, 40))
        return ObservationSet(values, np.zeros(40, dtype=bool), station='A', window='2016-2020')

    @pytest.fixture
    def floor_station(self):
        return ObservationSet.from_pairs([(1.5, True)] * 5, station='C', window='2016-2020')

    def test_analyzer_initialization(self, config):
        analyzer = StationStatisticsAnalyzer(config)
        assert analyzer.config == config
        assert analyzer.fallback_to_naive is True
        assert analyzer.n_jobs == 1

    def test_naive_statistics(self, config, censored_station):
        analyzer = StationStatisticsAnalyzer(config)

        naive = analyzer.naive_statistics(censored_station)

        assert naive['n_obs'] == 5
        assert naive['n_censored'] == 2
        assert naive['pct_censored'] == pytest.approx(40.0)
        assert naive['mean'] == pytest.approx(3.4)
        assert naive['std'] == pytest.approx(np.std([3.0, 2.5, 4.0, 4.0, 3.5]))

    def test_naive_statistics_empty(self, config):
        analyzer = StationStatisticsAnalyzer(config)

        naive = analyzer.naive_statistics(ObservationSet.from_pairs([]))

        assert naive['n_obs'] == 0
        assert np.isnan(naive['mean'])

    def test_summarize_station_mle(self, config, censored_station):
        analyzer = StationStatisticsAnalyzer(config)

        summary = analyzer.summarize_station(censored_station)

        assert isinstance(summary, StationSummary)
        assert summary.converged
        assert summary.method == 'mle'
        assert summary.adjusted_mean >= summary.naive_mean
        assert summary.mean_change == pytest.approx(summary.adjusted_mean - summary.naive_mean)
        assert summary.adjusted_std > 0

    def test_summarize_station_fallback(self, config, floor_station):
        """Non-converged stations report naive statistics when fallback is enabled."""
        analyzer = StationStatisticsAnalyzer(config)

        summary = analyzer.summarize_station(floor_station)

        assert not summary.converged
        assert summary.method == 'naive_fallback'
        assert summary.adjusted_mean == pytest.approx(1.5)
        assert summary.mean_change == pytest.approx(0.0)
        assert summary.log_likelihood == -np.inf

    def test_summarize_station_single_reading_falls_back(self, config):
        analyzer = StationStatisticsAnalyzer(config)
        single = ObservationSet.from_pairs([(2.8, False)], station='D', window='2016-2020')

        summary = analyzer.summarize_station(single)

        assert not summary.converged
        assert summary.method == 'naive_fallback'
        assert summary.adjusted_mean == pytest.approx(2.8)
        assert summary.adjusted_std == 0.0

    def test_summarize_station_without_fallback(self, config, floor_station):
        config['analysis']['statistics']['fallback_to_naive'] = False
        analyzer = StationStatisticsAnalyzer(config)

        summary = analyzer.summarize_station(floor_station)

        assert summary.method == 'not_converged'
        assert np.isnan(summary.adjusted_mean)

    def test_summarize_stations_table(self, config, clear_station, censored_station, floor_station):
        analyzer = StationStatisticsAnalyzer(config)

        summary_df = analyzer.summarize_stations([floor_station, censored_station, clear_station,
                                                  ObservationSet.from_pairs([], station='D')])

        assert list(summary_df.columns) == SUMMARY_COLUMNS
        assert summary_df['station'].tolist() == ['A', 'B', 'C']
        assert summary_df['converged'].tolist() == [True, True, False]
        assert summary_df.loc[0, 'mean_change'] == pytest.approx(0.0, abs=1e-4)

    def test_summarize_stations_empty(self, config):
        analyzer = StationStatisticsAnalyzer(config)

        summary_df = analyzer.summarize_stations([])

        assert summary_df.empty
        assert list(summary_df.columns) == SUMMARY_COLUMNS

    def test_parallel_matches_sequential(self, config, clear_station, censored_station, floor_station):
        """Data-parallel dispatch gives the same table as the sequential loop."""
        sets = [clear_station, censored_station, floor_station]
        sequential = StationStatisticsAnalyzer(config).summarize_stations(sets)

        config['analysis']['statistics']['n_jobs'] = 2
        parallel = StationStatisticsAnalyzer(config).summarize_stations(sets)

        pd.testing.assert_frame_equal(sequential, parallel)

    def test_likelihood_profile(self, config, censored_station):
        analyzer = StationStatisticsAnalyzer(config)
        summary = analyzer.summarize_station(censored_station)

        profile = analyzer.likelihood_profile(censored_station, summary.adjusted_std)

        assert list(profile.columns) == ['mu', 'log_likelihood']
        assert len(profile) == 201
        best_mu = profile.loc[profile['log_likelihood'].idxmax(), 'mu']
        step = profile['mu'].iloc[1] - profile['mu'].iloc[0]
        assert abs(best_mu - summary.adjusted_mean) <= step

    def test_likelihood_profile_custom_grid(self, config, censored_station):
        analyzer = StationStatisticsAnalyzer(config)

        profile = analyzer.likelihood_profile(censored_station, 0.0, mu_grid=[2.0, 3.0])

        assert len(profile) == 2
        assert (profile['log_likelihood'] == -np.inf).all()

    def test_estimation_report(self, config, clear_station, censored_station, floor_station):
        analyzer = StationStatisticsAnalyzer(config)
        summary_df = analyzer.summarize_stations([clear_station, censored_station, floor_station])

        report = analyzer.estimation_report(summary_df)

        assert report['n_stations'] == 3
        assert report['n_converged'] == 2
        assert report['n_fallback'] == 1
        assert report['max_change'] >= 0

    def test_estimation_report_empty(self, config):
        analyzer = StationStatisticsAnalyzer(config)
        assert analyzer.estimation_report(pd.DataFrame(columns=SUMMARY_COLUMNS)) == {'n_stations': 0}


if __name__ == '__main__':
    pytest.main([__file__])
