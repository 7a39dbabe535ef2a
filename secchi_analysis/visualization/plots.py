import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import pandas as pd
import numpy as np
import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


class PlotGenerator:
    """Diagnostic plots for censored Secchi-depth estimates."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.viz_config = config.get('visualization', {})
        self.colors = self.viz_config.get('colors', {
            'naive': '#7f7f7f',
            'adjusted': '#1f77b4',
            'fallback': '#d62728'
        })
        self.figure_size = self.viz_config.get('figure_size', [10, 6])
        self.dpi = self.viz_config.get('dpi', 300)

        style = self.viz_config.get('style', 'default')
        try:
            plt.style.use(style)
        except (OSError, ValueError):
            logger.warning(f"Style '{style}' not available, using default")

    def create_adjustment_plot(self, summary_df: pd.DataFrame,
                               title: str = "Secchi Depth: Naive vs Censoring-Adjusted Mean",
                               output_path: Optional[str] = None) -> Optional[plt.Figure]:
        """Per-station naive and adjusted means, with non-converged stations marked."""
        if summary_df.empty:
            logger.error("No station summaries to plot")
            return None

        df = summary_df.reset_index(drop=True)
        labels = [s if not w else f"{s}\n{w}" for s, w in zip(df['station'], df['window'].fillna(''))]
        x = np.arange(len(df))

        fig, ax = plt.subplots(figsize=self.figure_size)

        ax.scatter(x, df['naive_mean'], marker='o', s=50, c=self.colors['naive'],
                   label='Naive mean', zorder=3)

        converged = df['converged'].astype(bool).to_numpy()
        ax.scatter(x[converged], df.loc[converged, 'adjusted_mean'], marker='D', s=50,
                   c=self.colors['adjusted'], label='Adjusted mean (MLE)', zorder=4)
        if (~converged).any():
            ax.scatter(x[~converged], df.loc[~converged, 'adjusted_mean'], marker='x', s=70,
                       c=self.colors['fallback'], label='Not converged (naive)', zorder=4)

        for xi, (naive, adjusted) in enumerate(zip(df['naive_mean'], df['adjusted_mean'])):
            if np.isfinite(naive) and np.isfinite(adjusted):
                ax.plot([xi, xi], [naive, adjusted], color='black', alpha=0.4, linewidth=1)

        ax.set_xticks(x)
        ax.set_xticklabels(labels, rotation=45, ha='right', fontsize=9)
        ax.set_ylabel('Secchi depth (m)', fontsize=12)
        ax.set_title(title, fontsize=14, fontweight='bold')
        ax.legend(fontsize=10)
        ax.grid(True, alpha=0.3)

        plt.tight_layout()

        if output_path:
            fig.savefig(output_path, dpi=self.dpi, bbox_inches='tight')
            logger.info(f"Adjustment plot saved to {output_path}")

        return fig

    def create_likelihood_profile_plot(self, profile_df: pd.DataFrame,
                                       mle_mu: Optional[float] = None,
                                       title: str = "Log-likelihood profile",
                                       output_path: Optional[str] = None) -> Optional[plt.Figure]:
        """Log-likelihood against mu at fixed sigma."""
        finite = profile_df[np.isfinite(profile_df['log_likelihood'])]
        if finite.empty:
            logger.error("No finite log-likelihood values to plot")
            return None

        fig, ax = plt.subplots(figsize=self.figure_size)
        ax.plot(finite['mu'], finite['log_likelihood'], color=self.colors['adjusted'], linewidth=2)

        if mle_mu is not None:
            ax.axvline(mle_mu, color='black', linestyle='--', alpha=0.8,
                       label=f'MLE mu = {mle_mu:.3f}')
            ax.legend(fontsize=10)

        ax.set_xlabel('mu (m)', fontsize=12)
        ax.set_ylabel('Log-likelihood', fontsize=12)
        ax.set_title(title, fontsize=14, fontweight='bold')
        ax.grid(True, alpha=0.3)

        plt.tight_layout()

        if output_path:
            fig.savefig(output_path, dpi=self.dpi, bbox_inches='tight')
            logger.info(f"Likelihood profile saved to {output_path}")

        return fig
