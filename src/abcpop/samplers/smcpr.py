"""
ABC-SMC with partial rejection control.

Sequential Monte Carlo sampler of Drovandi & Pettitt (2011,
https://doi.org/10.1111/j.1541-0420.2010.01410.x). Each generation keeps the
best fraction alpha of the population, resamples the rest from the survivors
and moves every resampled particle with Rt Metropolis steps under the current
tolerance. Rt is adapted from the observed acceptance rate so that a particle
stays unmoved with probability about c.
"""

import math
from typing import NamedTuple, Optional

import numpy as np
import logging

from ..config import SMCPRConfig
from ..kernels import kernel_density, kernel_scales, metropolis_weight, perturb
from ..parallel import generation_key, particle_streams, resolve_key, run_particles
from ..plan import ABCPlan, sample_plan
from .base import BaseSampler, PopulationResult, resolve_config

logger = logging.getLogger(__name__)

# Additive smoothing of the acceptance-rate estimate
_ACCEPT_PSEUDOCOUNT = 0.1


class MoveStats(NamedTuple):
    """Counters returned by one particle's mutation chain."""

    n_simulations: int
    n_accepted: int


def mutation_depth(c: float, acceptance_rate: float) -> int:
    """
    Number of Metropolis attempts so that a particle is never moved with
    probability at most c.
    """
    return int(math.ceil(math.log(c) / math.log(1.0 - acceptance_rate)))


def smoothed_acceptance_rate(n_accepted: int, n_attempts: int) -> float:
    return (n_accepted + _ACCEPT_PSEUDOCOUNT) / (n_attempts + 2 * _ACCEPT_PSEUDOCOUNT)


class ABCSMCPRSampler(BaseSampler):
    """
    Sequential Monte Carlo ABC with partial rejection control.

    Args:
        plan: A plan built with ABCPlan
        epsilon_target: Maximum acceptable distance to the observed data
        config: SMCPRConfig or dictionary of options
        **overrides: Individual options overriding config

    Options:
        n_particles: Number of particles returned
        max_sim_per_particle: Average simulation budget per particle (may be inf)
        alpha: Fraction of particles kept alive every generation
        c: Probability that a particle is not updated within a generation
        parallel: Threaded fan-out over particles
        verbose: Log progress
    """

    def __init__(
        self,
        plan: ABCPlan,
        epsilon_target: float,
        config: Optional[SMCPRConfig] = None,
        **overrides,
    ):
        if epsilon_target < 0:
            raise ValueError("epsilon_target must be non-negative")
        super().__init__(plan, resolve_config(SMCPRConfig, config, overrides))
        self.epsilon_target = float(epsilon_target)

    def _mutate(
        self,
        theta: np.ndarray,
        distances: np.ndarray,
        alive: np.ndarray,
        dead: np.ndarray,
        epsilon: float,
        n_steps: int,
        key,
    ) -> MoveStats:
        """Resample every dead particle from the alive ones and move it n_steps times."""
        plan = self.plan
        prior = plan.prior
        scales = kernel_scales(prior, theta[dead])

        def move(i: int, rng: np.random.Generator) -> MoveStats:
            n_sims = 0
            n_accepted = 0
            j = alive[rng.integers(len(alive))]
            theta[i] = theta[j]
            distances[i] = distances[j]
            current = theta[i].copy()
            for _ in range(n_steps):
                proposal = perturb(prior, scales, current, rng)
                weight = metropolis_weight(
                    prior.pdf(proposal) * kernel_density(prior, scales, proposal, current),
                    prior.pdf(current) * kernel_density(prior, scales, current, proposal),
                )
                if rng.random() > weight:
                    continue
                dp = plan.simulate_distance(rng, proposal)
                n_sims += 1
                if dp > epsilon:
                    continue
                current = proposal
                theta[i] = proposal
                distances[i] = dp
                n_accepted += 1
            return MoveStats(n_sims, n_accepted)

        stats = run_particles(
            move,
            dead,
            particle_streams(key, len(dead)),
            parallel=self.config.parallel,
            n_workers=self.config.n_workers,
        )
        return MoveStats(
            n_simulations=sum(s.n_simulations for s in stats),
            n_accepted=sum(s.n_accepted for s in stats),
        )

    def sample(self, key=None) -> PopulationResult:
        """
        Run ABC-SMC-PR.

        Args:
            key: JAX PRNG key or integer seed

        Returns:
            PopulationResult; converged is False when the simulation budget
            ran out before the tolerance reached epsilon_target
        """
        cfg = self.config
        key = resolve_key(key)
        n_particles = cfg.n_particles
        n_alive = cfg.n_alive
        target = self.epsilon_target
        budget = cfg.max_sim_per_particle * n_particles

        theta, distances = sample_plan(
            self.plan, n_particles, generation_key(key, 0), cfg.parallel, cfg.n_workers
        )
        n_sim = n_particles
        n_steps = mutation_depth(cfg.c, cfg.alpha)
        generation = 0

        while True:
            generation += 1
            order = np.argsort(distances, kind="stable")
            epsilon = float(distances[order[n_alive - 1]])
            alive = order[:n_alive]
            dead = order[n_alive:]

            stats = self._mutate(
                theta,
                distances,
                alive,
                dead,
                epsilon,
                n_steps,
                generation_key(key, generation),
            )
            n_sim += stats.n_simulations
            n_attempts = n_steps * len(dead)
            acceptance_rate = smoothed_acceptance_rate(stats.n_accepted, n_attempts)
            if cfg.verbose:
                logger.info(
                    f"Finished run: epsilon={epsilon:.6g} "
                    f"acceptance_rate={acceptance_rate:.4f} simulations={n_sim} "
                    f"Rt={n_steps} early_rejected={1 - stats.n_simulations / n_attempts:.4f}"
                )
            n_steps = mutation_depth(cfg.c, acceptance_rate)

            if epsilon <= target:
                break
            if n_sim + n_steps * len(dead) > budget:
                break

        epsilon = float(distances.max())
        converged = epsilon <= target
        if cfg.verbose:
            logger.info(
                f"ABC-SMC-PR ended: generations={generation} simulations={n_sim} "
                f"epsilon={epsilon:.6g}"
            )
        if not converged:
            logger.warning(
                f"Failed to reach target epsilon {target:.6g} (reached {epsilon:.6g}). "
                "Possible fix: increase max_sim_per_particle"
            )

        return PopulationResult(
            theta=theta,
            distances=distances,
            epsilon=epsilon,
            converged=converged,
            n_simulations=int(n_sim),
        )


def abc_smc_pr(plan: ABCPlan, epsilon_target: float, key=None, **options) -> PopulationResult:
    """
    Functional entry point for ABCSMCPRSampler.

    Example:
        result = abc_smc_pr(plan, 0.02, n_particles=2000, verbose=False)
    """
    return ABCSMCPRSampler(plan, epsilon_target, **options).sample(key)


__all__ = [
    "ABCSMCPRSampler",
    "abc_smc_pr",
    "mutation_depth",
    "smoothed_acceptance_rate",
    "MoveStats",
]
