#!/usr/bin/env python3
"""
Censored Normal Estimator

Maximum-likelihood estimation of the mean and standard deviation of a normal
population from Secchi-depth readings, some of which are right-censored
(the disk was still visible on the bottom, so the recorded depth is only a
lower bound on water clarity).

Exact readings contribute the normal log-density; censored readings
contribute the log of the upper-tail probability, evaluated directly in log
space so tiny tail probabilities do not cancel to zero.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Tuple

import numpy as np
from scipy import stats
from scipy.optimize import minimize

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_MU = 3.0
DEFAULT_INITIAL_SIGMA = 2.0


class EmptyObservationsError(ValueError):
    """Raised when an estimate is requested for a station with no observations."""


@dataclass(frozen=True)
class Observation:
    """One sampled value; ``censored`` means the true value is >= ``value``."""
    value: float
    censored: bool = False


@dataclass(frozen=True, eq=False)
class ObservationSet:
    """
    Observations from one station and time window.

    Values and censoring flags are stored as parallel numpy arrays. All values
    must be finite and non-negative. An empty set may be built, but cannot be
    passed to ``CensoredNormalEstimator.estimate``.
    """
    values: np.ndarray
    censored: np.ndarray
    station: Optional[str] = None
    window: Optional[str] = None

    def __post_init__(self):
        values = np.asarray(self.values, dtype=float).ravel()
        censored = np.asarray(self.censored, dtype=bool).ravel()

        if values.shape != censored.shape:
            raise ValueError(f"values and censored flags differ in length: "
                             f"{values.shape[0]} vs {censored.shape[0]}")
        if not np.all(np.isfinite(values)):
            raise ValueError(f"Non-finite observation value for station {self.station}")
        if np.any(values < 0):
            raise ValueError(f"Negative observation value for station {self.station}")

        object.__setattr__(self, 'values', values)
        object.__setattr__(self, 'censored', censored)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[float, bool]],
                   station: Optional[str] = None,
                   window: Optional[str] = None) -> 'ObservationSet':
        """Build a set from ``(value, censored)`` pairs or Observation objects."""
        values, flags = [], []
        for pair in pairs:
            if isinstance(pair, Observation):
                values.append(pair.value)
                flags.append(pair.censored)
            else:
                value, censored = pair
                values.append(value)
                flags.append(censored)
        return cls(np.array(values, dtype=float), np.array(flags, dtype=bool),
                   station=station, window=window)

    def __len__(self) -> int:
        return int(self.values.shape[0])

    @property
    def n_censored(self) -> int:
        return int(self.censored.sum())

    @property
    def uncensored_values(self) -> np.ndarray:
        return self.values[~self.censored]

    @property
    def censored_values(self) -> np.ndarray:
        return self.values[self.censored]

    def observations(self):
        """Iterate the set as Observation objects."""
        for value, censored in zip(self.values, self.censored):
            yield Observation(float(value), bool(censored))


@dataclass(frozen=True)
class EstimationResult:
    """Outcome of one maximum-likelihood fit."""
    mu: float
    sigma: float
    converged: bool
    log_likelihood: float
    n_iterations: int = 0
    message: str = field(default='', compare=False)


class CensoredNormalEstimator:
    """
    Fit a normal distribution to exact and right-censored observations.

    Optimizer settings are read from the ``analysis.estimation`` section of
    the configuration. The optimizer is Nelder-Mead, which is deterministic
    for a given starting point and never evaluates gradients, so the
    ``sigma <= 0`` half-plane is handled by scoring it as infinitely bad.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        est_config = self.config.get('analysis', {}).get('estimation', {})
        self.max_iterations = int(est_config.get('max_iterations', 2000))
        self.xatol = float(est_config.get('xatol', 1e-8))
        self.fatol = float(est_config.get('fatol', 1e-10))
        self.divergence_factor = float(est_config.get('divergence_factor', 100.0))
        self.min_sigma_factor = float(est_config.get('min_sigma_factor', 1e-6))
        self.default_mu = float(est_config.get('initial_mu', DEFAULT_INITIAL_MU))
        self.default_sigma = float(est_config.get('initial_sigma', DEFAULT_INITIAL_SIGMA))

    @staticmethod
    def log_likelihood(mu: float, sigma: float, observations: ObservationSet) -> float:
        """
        Total log-likelihood of the observations under Normal(mu, sigma).

        Returns ``-inf`` for ``sigma <= 0`` or non-finite parameters instead
        of raising, so an optimizer can probe and reject such points.
        """
        if not (np.isfinite(mu) and np.isfinite(sigma)) or sigma <= 0:
            return -np.inf

        exact = observations.uncensored_values
        floor = observations.censored_values

        total = 0.0
        if exact.size:
            total += float(np.sum(stats.norm.logpdf(exact, loc=mu, scale=sigma)))
        if floor.size:
            total += float(np.sum(stats.norm.logsf(floor, loc=mu, scale=sigma)))

        if np.isnan(total):
            return -np.inf
        return total

    def starting_values(self, observations: ObservationSet) -> Tuple[float, float]:
        """Starting guess from the uncensored subset, or the configured defaults."""
        exact = observations.uncensored_values
        if exact.size >= 2:
            mu0 = float(np.mean(exact))
            sigma0 = float(np.std(exact))
            if sigma0 > 0:
                return mu0, sigma0
        return self.default_mu, self.default_sigma

    def estimate(self, observations: ObservationSet,
                 initial_mu: Optional[float] = None,
                 initial_sigma: Optional[float] = None) -> EstimationResult:
        """Maximum-likelihood estimate of (mu, sigma) for one station."""
        if len(observations) == 0:
            raise EmptyObservationsError(
                f"No observations for station {observations.station} ({observations.window})")

        if initial_mu is None or initial_sigma is None:
            guess_mu, guess_sigma = self.starting_values(observations)
            initial_mu = guess_mu if initial_mu is None else initial_mu
            initial_sigma = guess_sigma if initial_sigma is None else initial_sigma

        initial_mu = float(initial_mu)
        initial_sigma = float(initial_sigma)
        if not (np.isfinite(initial_mu) and np.isfinite(initial_sigma)):
            raise ValueError(f"Starting values must be finite: ({initial_mu}, {initial_sigma})")
        if initial_sigma <= 0:
            raise ValueError(f"initial_sigma must be positive, got {initial_sigma}")

        if observations.n_censored == len(observations):
            logger.warning(f"All {len(observations)} observations censored for station "
                           f"{observations.station}; likelihood has no finite maximum")
            return self._not_converged(initial_mu, initial_sigma, 0, 'all observations censored')

        def objective(params: np.ndarray) -> float:
            value = self.log_likelihood(params[0], params[1], observations)
            return -value if np.isfinite(value) else np.inf

        result = minimize(
            objective,
            x0=np.array([initial_mu, initial_sigma]),
            method='Nelder-Mead',
            options={
                'maxiter': self.max_iterations,
                'xatol': self.xatol,
                'fatol': self.fatol
            }
        )

        mu_hat, sigma_hat = (float(v) for v in result.x)
        n_iter = int(getattr(result, 'nit', 0))

        if not result.success:
            logger.warning(f"Optimizer did not converge for station {observations.station}: "
                           f"{result.message}")
            return self._not_converged(initial_mu, initial_sigma, n_iter, str(result.message))

        scale = float(np.max(np.abs(observations.values))) + 1.0
        bound = self.divergence_factor * scale
        if (not np.isfinite(mu_hat) or not np.isfinite(sigma_hat) or sigma_hat <= 0
                or abs(mu_hat) > bound or sigma_hat > bound):
            logger.warning(f"Estimate diverged for station {observations.station}: "
                           f"mu={mu_hat:.4g}, sigma={sigma_hat:.4g}")
            return self._not_converged(initial_mu, initial_sigma, n_iter, 'parameters diverged')

        # Likelihood is unbounded as sigma -> 0 when exact readings coincide
        if sigma_hat < self.min_sigma_factor * scale:
            logger.warning(f"Sigma collapsed to zero for station {observations.station}: "
                           f"sigma={sigma_hat:.4g}")
            return self._not_converged(initial_mu, initial_sigma, n_iter, 'sigma collapsed to zero')

        log_lik = self.log_likelihood(mu_hat, sigma_hat, observations)
        logger.debug(f"Station {observations.station}: mu={mu_hat:.4f}, sigma={sigma_hat:.4f}, "
                     f"loglik={log_lik:.4f} after {n_iter} iterations")

        return EstimationResult(
            mu=mu_hat,
            sigma=sigma_hat,
            converged=True,
            log_likelihood=log_lik,
            n_iterations=n_iter,
            message=str(result.message)
        )

    @staticmethod
    def _not_converged(mu: float, sigma: float, n_iter: int, message: str) -> EstimationResult:
        return EstimationResult(
            mu=mu,
            sigma=sigma,
            converged=False,
            log_likelihood=-np.inf,
            n_iterations=n_iter,
            message=message
        )
