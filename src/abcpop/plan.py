"""
Inference plan and initial population sampling.

An ABCPlan bundles everything a sampler needs: prior, simulator, observed
data, distance and constant simulator arguments. It is built once and never
mutated by the samplers.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

import numpy as np
import logging

from .priors import Prior, as_prior
from .parallel import particle_streams, resolve_key, run_particles

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ABCPlan:
    """
    Immutable description of an ABC problem.

    Args:
        prior: A Prior, or a frozen scipy.stats distribution
        simulation: simulation(rng, theta, params) -> simulated dataset
        data: Observed dataset, only ever passed to distance
        distance: distance(simulated, observed) -> non-negative float
        params: Constants passed as third argument to every simulation

    Parameter values reach the simulator as floats (univariate prior) or
    1-D float arrays (Factored prior). Discrete components carry integral
    values stored as floats, e.g. 3.0, so convert with int(theta) before
    using them as counts or indices.

    Example:
        import scipy.stats as scstats
        plan = ABCPlan(
            prior=scstats.norm(0, 1),
            simulation=lambda rng, mu, params: rng.normal(mu, 1.0, size=1000),
            data=np.ones(1000),
            distance=lambda x, y: abs(np.mean(x) - np.mean(y)),
        )
    """

    prior: Prior
    simulation: Callable
    data: Any
    distance: Callable
    params: Any = ()

    def __post_init__(self):
        object.__setattr__(self, "prior", as_prior(self.prior))
        if not callable(self.simulation):
            raise TypeError("simulation must be callable")
        if not callable(self.distance):
            raise TypeError("distance must be callable")

    def simulate_distance(self, rng: np.random.Generator, theta: Any) -> float:
        """
        Simulate a dataset at theta and score it against the observed data.

        Args:
            rng: Random stream for this simulation
            theta: Parameter value

        Returns:
            Distance between the simulated and observed datasets
        """
        simulated = self.simulation(rng, theta, self.params)
        return float(self.distance(simulated, self.data))


def empty_population(prior: Prior, n_particles: int) -> np.ndarray:
    """Zeroed parameter array shaped for prior."""
    return np.zeros((n_particles,) + prior.shape, dtype=float)


def sample_plan(
    plan: ABCPlan,
    n_particles: int,
    key=None,
    parallel: bool = False,
    n_workers: Optional[int] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Sample the prior and score every draw.

    Args:
        plan: A plan built with ABCPlan
        n_particles: Number of particles to draw
        key: JAX PRNG key or integer seed
        parallel: Enable threaded fan-out over particles
        n_workers: Maximum number of threads

    Returns:
        Tuple of (theta, distances)
    """
    if n_particles <= 0:
        raise ValueError("n_particles must be positive")

    key = resolve_key(key)
    prior = plan.prior
    theta = empty_population(prior, n_particles)
    distances = np.zeros(n_particles, dtype=float)

    def simulate_one(i: int, rng: np.random.Generator) -> None:
        theta_i = prior.sample(rng)
        theta[i] = theta_i
        distances[i] = plan.simulate_distance(rng, theta[i].copy())

    run_particles(
        simulate_one,
        range(n_particles),
        particle_streams(key, n_particles),
        parallel=parallel,
        n_workers=n_workers,
    )
    logger.debug(f"Sampled {n_particles} particles from the prior")
    return theta, distances


__all__ = ["ABCPlan", "sample_plan", "empty_population"]
