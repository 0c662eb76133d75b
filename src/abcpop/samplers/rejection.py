"""
ABC rejection sampling.

Simulates ceil(n_particles / alpha_target) particles from the prior and keeps
the n_particles closest to the observed data. This is the baseline the
adaptive samplers are compared against.
"""

import math
from typing import Optional

import numpy as np
import logging

from ..config import RejectionConfig
from ..parallel import resolve_key
from ..plan import ABCPlan, sample_plan
from .base import BaseSampler, PopulationResult, resolve_config

logger = logging.getLogger(__name__)


class RejectionSampler(BaseSampler):
    """
    Classical ABC rejection sampler.

    Args:
        plan: A plan built with ABCPlan
        alpha_target: Acceptance fraction in (0, 1]; n_particles / alpha_target
            particles are simulated and the best n_particles are kept
        config: RejectionConfig or dictionary of options
        **overrides: Individual options overriding config
    """

    def __init__(
        self,
        plan: ABCPlan,
        alpha_target: float,
        config: Optional[RejectionConfig] = None,
        **overrides,
    ):
        if not 0 < alpha_target <= 1:
            raise ValueError(
                "alpha_target is the acceptance rate and must lie in (0, 1]"
            )
        super().__init__(plan, resolve_config(RejectionConfig, config, overrides))
        self.alpha_target = float(alpha_target)

    @property
    def n_simulations(self) -> int:
        """Number of particles simulated by one run."""
        return int(math.ceil(self.config.n_particles / self.alpha_target))

    def sample(self, key=None) -> PopulationResult:
        """
        Run rejection sampling.

        Args:
            key: JAX PRNG key or integer seed

        Returns:
            PopulationResult with the retained particles; epsilon is the
            largest retained distance
        """
        key = resolve_key(key)
        n_particles = self.config.n_particles
        n_sim = self.n_simulations
        if self.config.verbose:
            logger.info(f"Rejection ABC: simulating {n_sim} particles")

        theta, distances = sample_plan(
            self.plan,
            n_sim,
            key,
            parallel=self.config.parallel,
            n_workers=self.config.n_workers,
        )
        keep = np.argsort(distances, kind="stable")[:n_particles]
        epsilon = float(distances[keep[-1]])

        if self.config.verbose:
            logger.info(f"Rejection ABC finished: kept {n_particles}, epsilon={epsilon:.6g}")

        return PopulationResult(
            theta=theta[keep],
            distances=distances[keep],
            epsilon=epsilon,
            converged=True,
            n_simulations=n_sim,
        )


def rejection_abc(plan: ABCPlan, alpha_target: float, key=None, **options) -> PopulationResult:
    """
    Functional entry point for RejectionSampler.

    Example:
        result = rejection_abc(plan, 0.05, n_particles=1000, key=random.PRNGKey(1))
    """
    return RejectionSampler(plan, alpha_target, **options).sample(key)


__all__ = ["RejectionSampler", "rejection_abc"]
