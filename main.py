#!/usr/bin/env python3
"""
Main script for the Secchi Depth Analysis Framework

Loads a monitoring spreadsheet, selects stations and the most recent full
years, estimates censoring-adjusted Secchi depth statistics per station and
exports a summary table plus diagnostic plots.

Usage:
    python main.py --data data/secchi.xlsx --config config/config.yaml
    python main.py --data data/secchi.csv --years 5 --min-years 5 --season Summer
    python main.py --data data/secchi.csv --jobs 4 --no-plots
"""

import argparse
import logging
import os
import sys
from typing import Dict, Any, Optional

import matplotlib.pyplot as plt
import pandas as pd

from secchi_analysis.analysis.statistical_analysis import StationStatisticsAnalyzer
from secchi_analysis.data.loaders import SecchiDataLoader
from secchi_analysis.data.processor import ObservationGrouper
from secchi_analysis.utils.helpers import (
    load_config, setup_logging, ensure_directory_exists, get_timestamp, save_results
)
from secchi_analysis.utils.validation import (
    validate_file_exists, validate_secchi_values, validate_estimation_results
)
from secchi_analysis.visualization.plots import PlotGenerator


class SecchiAnalysisPipeline:
    """Pipeline from spreadsheet to per-station censoring-adjusted statistics."""

    def __init__(self, config: Dict[str, Any]):
        """Initialize pipeline with an already-loaded configuration."""
        self.config = config
        self.logger = logging.getLogger(__name__)

        self.loader = SecchiDataLoader(self.config)
        self.grouper = ObservationGrouper(self.config)
        self.analyzer = StationStatisticsAnalyzer(self.config)
        self.plot_generator = PlotGenerator(self.config)

    @classmethod
    def from_config_file(cls, config_path: str) -> 'SecchiAnalysisPipeline':
        config = load_config(config_path)
        setup_logging(config)
        return cls(config)

    def run(self, data_path: str, output_dir: Optional[str] = None,
            make_plots: bool = True) -> Dict[str, Any]:
        """Run the analysis for one data file and return the results."""
        self.logger.info(f"Starting Secchi depth analysis for {data_path}")

        if not validate_file_exists(data_path, "Secchi data file"):
            raise FileNotFoundError(f"Data file not found: {data_path}")

        output_dir = output_dir or self._create_output_dir()

        # Step 1: Load data and apply BSV convention
        self.logger.info("Loading data...")
        data = self.loader.load_data(data_path)
        validate_secchi_values(data['value'].to_numpy())

        # Step 2: Station selection, time window and grouping
        self.logger.info("Building observation sets...")
        observation_sets = self.grouper.prepare(data)
        if not observation_sets:
            raise ValueError("No stations satisfy the window and history requirements")

        # Step 3: Censored maximum-likelihood estimation
        self.logger.info(f"Estimating {len(observation_sets)} stations...")
        summary_df = self.analyzer.summarize_stations(observation_sets)
        validation = validate_estimation_results(summary_df)
        report = self.analyzer.estimation_report(summary_df)
        self.logger.info(f"Converged {report.get('n_converged', 0)}/{report['n_stations']} stations, "
                         f"{report.get('n_fallback', 0)} naive fallbacks")

        # Step 4: Export
        summary_file = os.path.join(output_dir, 'station_summary.csv')
        save_results(summary_df, summary_file)
        self.logger.info(f"Summary exported to {summary_file}")

        # Step 5: Plots
        if make_plots:
            self._generate_plots(observation_sets, summary_df, output_dir)

        return {
            'output_directory': output_dir,
            'summary': summary_df,
            'report': report,
            'validation': validation
        }

    def _create_output_dir(self) -> str:
        base = self.config.get('output', {}).get('base_path', 'outputs')
        output_dir = os.path.join(base, f"secchi_{get_timestamp()}")
        ensure_directory_exists(output_dir)
        return output_dir

    def _generate_plots(self, observation_sets, summary_df: pd.DataFrame, output_dir: str):
        """Generate adjustment plot and per-station likelihood profiles."""
        plots_dir = os.path.join(output_dir, 'plots')
        ensure_directory_exists(plots_dir)

        try:
            fig = self.plot_generator.create_adjustment_plot(
                summary_df, output_path=os.path.join(plots_dir, 'adjusted_vs_naive_means.png'))
            if fig is not None:
                plt.close(fig)

            converged = summary_df.set_index(['station', 'window'])
            for observations in observation_sets:
                key = (observations.station, observations.window)
                if key not in converged.index or not converged.loc[key, 'converged']:
                    continue
                row = converged.loc[key]
                profile = self.analyzer.likelihood_profile(observations, row['adjusted_std'])
                fig = self.plot_generator.create_likelihood_profile_plot(
                    profile, mle_mu=row['adjusted_mean'],
                    title=f"Station {observations.station} ({observations.window}): log-likelihood profile",
                    output_path=os.path.join(plots_dir, profile_filename(observations)))
                if fig is not None:
                    plt.close(fig)

            self.logger.info("Plot generation completed")

        except (ValueError, KeyError, OSError) as e:
            self.logger.warning(f"Plot generation failed: {e}")
            self.logger.info("Continuing analysis without visualizations...")


def profile_filename(observations) -> str:
    """File name for a likelihood profile, unique per station and window."""
    parts = [str(observations.station)]
    if observations.window:
        parts.append(str(observations.window))
    stem = "_".join(parts).replace("/", "_").replace(" ", "_")
    return f"{stem}_profile.png"


def apply_overrides(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Merge command-line options into the configuration."""
    analysis = config.setdefault('analysis', {})
    window = analysis.setdefault('window', {})
    statistics = analysis.setdefault('statistics', {})

    if args.years is not None:
        window['n_years'] = args.years
    if args.min_years is not None:
        window['min_years'] = args.min_years
    if args.last_year is not None:
        window['last_year'] = args.last_year
    if args.season is not None:
        window['season'] = args.season
    if args.jobs is not None:
        statistics['n_jobs'] = args.jobs
    return config


def main(argv=None):
    """Main function to run the analysis."""
    parser = argparse.ArgumentParser(description='Secchi Depth Censored-Data Analysis')
    parser.add_argument('--data', type=str, required=True,
                        help='CSV or Excel file with Secchi readings')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--years', type=int, help='Number of most recent full years to analyze')
    parser.add_argument('--min-years', type=int,
                        help='Minimum distinct sampling years for a station to be kept')
    parser.add_argument('--last-year', type=int, help='Last year of the analysis window')
    parser.add_argument('--season', type=str, choices=['Winter', 'Spring', 'Summer', 'Autumn'],
                        help='Restrict the analysis to one season')
    parser.add_argument('--jobs', type=int, help='Worker processes for station estimation')
    parser.add_argument('--output-dir', type=str, help='Output directory (default: timestamped)')
    parser.add_argument('--no-plots', action='store_true', help='Skip plot generation')

    args = parser.parse_args(argv)

    try:
        config = apply_overrides(load_config(args.config), args)
        setup_logging(config)
        pipeline = SecchiAnalysisPipeline(config)

        results = pipeline.run(args.data, output_dir=args.output_dir,
                               make_plots=not args.no_plots)

        print(f"Analysis completed for {results['report']['n_stations']} station(s)")
        print(f"Results written to: {results['output_directory']}")

    except Exception as e:
        logging.error(f"Pipeline failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
