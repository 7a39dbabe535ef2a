import pytest
import pandas as pd
import logging
import os
import sys

# Add project root to path for testing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from main import SecchiAnalysisPipeline, apply_overrides, main, profile_filename
from secchi_analysis.analysis.censored_estimator import ObservationSet
from tests.test_data_loading import make_monitoring_table


class TestSecchiAnalysisPipeline:
    """End-to-end tests from spreadsheet to summary table."""

    @pytest.fixture
    def config(self, tmp_path):
        return {
            'data': {
                'columns': {
                    'station': 'Station',
                    'date': 'Date',
                    'secchi': 'Secchi (m)',
                    'total_depth': 'Total Depth (m)'
                }
            },
            'analysis': {
                'window': {'n_years': 5, 'min_years': 5}
            },
            'visualization': {'dpi': 50},
            'output': {'base_path': str(tmp_path / 'outputs')},
            'logging': {'level': 'WARNING', 'file': None}
        }

    @pytest.fixture
    def data_file(self, tmp_path):
        path = tmp_path / 'secchi.csv'
        make_monitoring_table().to_csv(path, index=False)
        return path

    @pytest.fixture(autouse=True)
    def reset_logging(self):
        yield
        for handler in list(logging.getLogger().handlers):
            handler.close()
            logging.getLogger().removeHandler(handler)

    def test_run(self, config, data_file, tmp_path):
        pipeline = SecchiAnalysisPipeline(config)

        results = pipeline.run(str(data_file), output_dir=str(tmp_path / 'run'))

        summary = results['summary']
        assert summary['station'].tolist() == ['A', 'B']
        assert summary['converged'].all()
        assert (summary['adjusted_mean'] >= summary['naive_mean'] - 1e-8).all()
        assert results['validation']['valid']

        assert (tmp_path / 'run' / 'station_summary.csv').exists()
        assert (tmp_path / 'run' / 'plots' / 'adjusted_vs_naive_means.png').exists()
        assert (tmp_path / 'run' / 'plots' / 'A_2016-2020_profile.png').exists()

    def test_profile_filenames_unique_per_window(self):
        first = ObservationSet.from_pairs([(2.0, False)], station='A', window='2016-2020/2016')
        second = ObservationSet.from_pairs([(2.0, False)], station='A', window='2016-2020/2017')
        no_window = ObservationSet.from_pairs([(2.0, False)], station='A')

        assert profile_filename(first) == 'A_2016-2020_2016_profile.png'
        assert profile_filename(first) != profile_filename(second)
        assert profile_filename(no_window) == 'A_profile.png'

    def test_run_timestamped_output(self, config, data_file):
        results = SecchiAnalysisPipeline(config).run(str(data_file), make_plots=False)

        assert results['output_directory'].startswith(config['output']['base_path'])
        assert os.path.exists(os.path.join(results['output_directory'], 'station_summary.csv'))
        assert not os.path.exists(os.path.join(results['output_directory'], 'plots'))

    def test_run_missing_file(self, config, tmp_path):
        with pytest.raises(FileNotFoundError):
            SecchiAnalysisPipeline(config).run(str(tmp_path / 'missing.csv'))

    def test_run_no_eligible_stations(self, config, data_file, tmp_path):
        config['analysis']['window']['min_years'] = 20

        with pytest.raises(ValueError):
            SecchiAnalysisPipeline(config).run(str(data_file), output_dir=str(tmp_path / 'run'))

    def test_from_config_file(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text("logging:\n  level: WARNING\n  file: null\n")

        pipeline = SecchiAnalysisPipeline.from_config_file(str(path))

        assert pipeline.config['logging']['level'] == 'WARNING'

    def test_apply_overrides(self):
        parser_args = type('Args', (), {
            'years': 3, 'min_years': 4, 'last_year': 2019,
            'season': 'Summer', 'jobs': 2
        })()

        config = apply_overrides({}, parser_args)

        assert config['analysis']['window'] == {
            'n_years': 3, 'min_years': 4, 'last_year': 2019, 'season': 'Summer'
        }
        assert config['analysis']['statistics']['n_jobs'] == 2

    def test_main_cli(self, data_file, tmp_path, capsys):
        config_path = tmp_path / 'config.yaml'
        config_path.write_text(
            "data:\n"
            "  columns:\n"
            "    station: Station\n"
            "    date: Date\n"
            "    secchi: Secchi (m)\n"
            "    total_depth: Total Depth (m)\n"
            "logging:\n"
            "  level: WARNING\n"
            "  file: null\n"
        )

        main(['--data', str(data_file), '--config', str(config_path),
              '--years', '3', '--min-years', '5', '--no-plots',
              '--output-dir', str(tmp_path / 'cli')])

        assert 'Analysis completed for 2 station(s)' in capsys.readouterr().out
        summary = pd.read_csv(tmp_path / 'cli' / 'station_summary.csv')
        assert (summary['window'] == '2018-2020').all()

    def test_main_cli_failure_exits(self, tmp_path):
        with pytest.raises(SystemExit) as excinfo:
            main(['--data', str(tmp_path / 'missing.csv'),
                  '--config', str(tmp_path / 'missing.yaml')])

        assert excinfo.value.code == 1


if __name__ == '__main__':
    pytest.main([__file__])
