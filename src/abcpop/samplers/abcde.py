"""
ABCDE: adaptive-tolerance ABC driven by differential evolution.

A simpler version of the DE-MCMC ABC sampler of Turner & Sederberg (2012,
https://doi.org/10.1016/j.jmp.2012.06.004). Every generation the tolerance
is set between the best and worst distance of the population, and each
particle above it proposes a differential-evolution move. A particle takes
the move if the new distance is below the tolerance or below its own
distance.

The proposal is treated as symmetric: the Metropolis weight is the prior
ratio only.
"""

from typing import Optional, Sequence, Tuple

import numpy as np
import logging

from ..config import ABCDEConfig
from ..kernels import metropolis_weight
from ..parallel import generation_key, particle_streams, resolve_key, run_particles
from ..plan import ABCPlan, sample_plan
from ..proposals import de_gamma, deperturb, pick_references
from .base import BaseSampler, PopulationResult, resolve_config

logger = logging.getLogger(__name__)


def de_round(
    plan: ABCPlan,
    epsilon: float,
    theta: np.ndarray,
    distances: np.ndarray,
    indices: Sequence[int],
    key,
    parallel: bool = False,
    n_workers: Optional[int] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    One differential-evolution move for every particle in indices.

    References are drawn from the unchanged input arrays; updates go to
    copies, so the input population is left untouched.

    Args:
        plan: The inference plan
        epsilon: Current tolerance
        theta: Parameter values of the population
        distances: Distances of the population
        indices: Particles allowed to move
        key: JAX PRNG key for this round

    Returns:
        Tuple of (new_theta, new_distances)
    """
    prior = plan.prior
    new_theta = theta.copy()
    new_distances = distances.copy()
    n_particles = len(distances)
    gamma = de_gamma(prior)

    def move(i: int, rng: np.random.Generator) -> None:
        a, b, c = pick_references(rng, n_particles)
        proposal = deperturb(prior, theta[a], theta[b], theta[c], gamma, rng)
        weight = metropolis_weight(prior.pdf(proposal), prior.pdf(theta[i]))
        if rng.random() > weight:
            return
        dp = plan.simulate_distance(rng, proposal)
        if dp < epsilon or dp < distances[i]:
            new_distances[i] = dp
            new_theta[i] = proposal

    run_particles(
        move,
        indices,
        particle_streams(key, len(indices)),
        parallel=parallel,
        n_workers=n_workers,
    )
    return new_theta, new_distances


class ABCDESampler(BaseSampler):
    """
    Adaptive differential-evolution ABC sampler.

    Args:
        plan: A plan built with ABCPlan
        epsilon_target: Maximum acceptable distance to the observed data
        config: ABCDEConfig or dictionary of options
        **overrides: Individual options overriding config

    Options:
        n_particles: Number of particles in the population
        max_sim_per_particle: Proposal budget per particle
        alpha: Tolerance blend, epsilon = (1 - alpha) * min + alpha * max
        mcmc_steps: Extra rounds at the final tolerance once converged; the
            output then holds (1 + mcmc_steps) * n_particles particles
        parallel: Threaded fan-out over particles
        verbose: Log progress
    """

    def __init__(
        self,
        plan: ABCPlan,
        epsilon_target: float,
        config: Optional[ABCDEConfig] = None,
        **overrides,
    ):
        if epsilon_target < 0:
            raise ValueError("epsilon_target must be non-negative")
        super().__init__(plan, resolve_config(ABCDEConfig, config, overrides))
        self.epsilon_target = float(epsilon_target)

    def _completion(self, distances: np.ndarray) -> float:
        return 1.0 - float(np.mean(distances > self.epsilon_target))

    def sample(self, key=None) -> PopulationResult:
        """
        Run ABCDE.

        Args:
            key: JAX PRNG key or integer seed

        Returns:
            PopulationResult; converged is False when the budget ran out
            before every particle reached epsilon_target
        """
        cfg = self.config
        key = resolve_key(key)
        n_particles = cfg.n_particles
        target = self.epsilon_target
        budget = cfg.max_sim_per_particle * n_particles

        theta, distances = sample_plan(
            self.plan, n_particles, generation_key(key, 0), cfg.parallel, cfg.n_workers
        )
        n_sim = n_particles
        generation = 0
        epsilon = max(target, 0.5 * (distances.min() + distances.max())) + 1

        while distances.max() > target and n_sim < budget:
            generation += 1
            epsilon_past = epsilon
            epsilon = max(
                target,
                (1 - cfg.alpha) * distances.min() + cfg.alpha * distances.max(),
            )
            indices = np.flatnonzero(distances > epsilon)
            if indices.size == 0:
                # flat population sitting above the target
                indices = np.flatnonzero(distances > target)

            theta, distances = de_round(
                self.plan,
                epsilon,
                theta,
                distances,
                indices,
                generation_key(key, generation),
                cfg.parallel,
                cfg.n_workers,
            )
            n_sim += len(indices)

            if cfg.verbose and epsilon != epsilon_past:
                logger.info(
                    f"Finished run: completion={self._completion(distances):.3f} "
                    f"num_simulations={n_sim} epsilon={epsilon:.6g}"
                )

        epsilon = float(distances.max())
        converged = epsilon <= target
        if cfg.verbose:
            logger.info(
                f"ABCDE ended: completion={self._completion(distances):.3f} "
                f"num_simulations={n_sim} epsilon={epsilon:.6g}"
            )
        if not converged:
            logger.warning(
                f"Failed to reach target epsilon {target:.6g} (reached {epsilon:.6g}). "
                "Possible fix: increase max_sim_per_particle"
            )

        if cfg.mcmc_steps > 0 and converged:
            if cfg.verbose:
                logger.info(f"Performing {cfg.mcmc_steps} additional MCMC-DE steps at epsilon={epsilon:.6g}")
            chains_theta = [theta]
            chains_distances = [distances]
            for step in range(1, cfg.mcmc_steps + 1):
                theta, distances = de_round(
                    self.plan,
                    epsilon,
                    theta,
                    distances,
                    np.arange(n_particles),
                    generation_key(key, generation + step),
                    cfg.parallel,
                    cfg.n_workers,
                )
                n_sim += n_particles
                chains_theta.append(theta)
                chains_distances.append(distances)
                if cfg.verbose:
                    logger.info(f"Finished step {step}: remaining_steps={cfg.mcmc_steps - step}")
            theta = np.concatenate(chains_theta)
            distances = np.concatenate(chains_distances)
            epsilon = float(distances.max())

        return PopulationResult(
            theta=theta,
            distances=distances,
            epsilon=epsilon,
            converged=converged,
            n_simulations=int(n_sim),
        )


def abcde(plan: ABCPlan, epsilon_target: float, key=None, **options) -> PopulationResult:
    """
    Functional entry point for ABCDESampler.

    Example:
        result = abcde(plan, 0.02, n_particles=2000, verbose=False)
    """
    return ABCDESampler(plan, epsilon_target, **options).sample(key)


__all__ = ["ABCDESampler", "abcde", "de_round"]
