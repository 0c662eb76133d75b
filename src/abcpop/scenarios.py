"""
Reference inference problems.

Small, well-understood ABC problems with known answers, used by the test
suite and handy for trying the samplers out:

- dirac_delta: deterministic map mu -> mu^2 + 1 observed at 1.5
- normal_mean: mean of a unit-variance Gaussian sample
- normal_uniform: mixed continuous / discrete factored prior
- socks: Karl Broman's tiny-data sock counting problem
- brownian: drift and noise of a planar Wiener process
- mixture: location of a 50/50 mixture of a narrow and a wide Gaussian

Example:
    from abcpop import abcde
    from abcpop.scenarios import dirac_delta_plan

    result = abcde(dirac_delta_plan(), 0.02, n_particles=500, verbose=False)
    print(result.mean())  # close to 1 / sqrt(2)
"""

import math
from typing import Callable, Dict

import numpy as np
import scipy.stats as scstats

from .plan import ABCPlan
from .priors import Factored


def absolute_distance(x, y) -> float:
    """|x - y| for scalars."""
    return abs(x - y)


def l1_distance(x, y) -> float:
    """Sum of absolute differences."""
    return float(np.sum(np.abs(np.asarray(x) - np.asarray(y))))


def mean_distance(x, y) -> float:
    """Absolute difference of sample means."""
    return abs(float(np.mean(x)) - float(np.mean(y)))


def mean_absolute_distance(x, y) -> float:
    """Mean of absolute differences."""
    return float(np.mean(np.abs(np.asarray(x) - np.asarray(y))))


def dirac_delta_plan(observed: float = 1.5) -> ABCPlan:
    """
    Deterministic simulator mu -> mu^2 + 1 with a Normal(1, 0.2) prior.

    With observed = 1.5 the posterior concentrates on mu = 1 / sqrt(2);
    the negative root is far out in the prior tail.
    """

    def simulate(rng, mu, params):
        return mu * mu + 1

    return ABCPlan(
        prior=scstats.norm(loc=1.0, scale=0.2),
        simulation=simulate,
        data=observed,
        distance=absolute_distance,
    )


def normal_mean_plan(n_obs: int = 1000, true_mean: float = 1.0) -> ABCPlan:
    """
    Infer the mean of n_obs unit-variance Gaussian observations.

    The observed data is n_obs copies of true_mean; prior is Normal(0, 1).
    """

    def simulate(rng, mu, n):
        return rng.standard_normal(n) + mu

    return ABCPlan(
        prior=scstats.norm(loc=0.0, scale=1.0),
        simulation=simulate,
        data=np.full(n_obs, float(true_mean)),
        distance=mean_distance,
        params=n_obs,
    )


def normal_uniform_plan(observed: float = 5.5) -> ABCPlan:
    """
    Factored prior Normal(1, 0.5) x DiscreteUniform{1..10}.

    Simulator: (n^2 + u) * (n + 0.1 * Z).
    """

    def simulate(rng, theta, params):
        n, u = theta
        return (n * n + u) * (n + rng.standard_normal() * 0.1)

    return ABCPlan(
        prior=Factored(scstats.norm(loc=1.0, scale=0.5), scstats.randint(1, 11)),
        simulation=simulate,
        data=observed,
        distance=absolute_distance,
    )


def socks_model(rng, theta, n_picked):
    """
    Pick n_picked socks from a drawer of pairs and singletons.

    Args:
        rng: Random stream
        theta: (total number of socks, proportion of socks in pairs)
        n_picked: Number of socks picked

    Returns:
        Array (number of pairs picked, number of singletons picked)
    """
    n_socks = int(theta[0])
    prop_pairs = float(theta[1])
    n_pairs = int(round(prop_pairs * (n_socks // 2)))
    n_odd = n_socks - 2 * n_pairs
    socks = np.concatenate(
        [np.tile(np.arange(n_pairs), 2), np.arange(n_pairs, n_pairs + n_odd)]
    )
    n_taken = min(n_socks, n_picked)
    picked = rng.permutation(socks)[:n_taken]
    n_unique = len(np.unique(picked))
    sample_pairs = n_taken - n_unique
    sample_odds = n_unique - sample_pairs
    return np.array([sample_pairs, sample_odds])


def socks_plan(n_picked: int = 11) -> ABCPlan:
    """
    Karl Broman's socks: 11 socks picked, all distinct.

    Prior on the number of socks is negative binomial with mean 30 and
    sd 15; prior on the proportion of paired socks is Beta(15, 2). The
    posterior median of the number of socks is about 44.
    """
    prior_mu = 30
    prior_sd = 15
    prior_size = -prior_mu**2 / (prior_mu - prior_sd**2)
    prior = Factored(
        scstats.nbinom(prior_size, prior_size / (prior_mu + prior_size)),
        scstats.beta(15, 2),
    )
    return ABCPlan(
        prior=prior,
        simulation=socks_model,
        data=np.array([0, n_picked]),
        distance=l1_distance,
        params=n_picked,
    )


def brownian_trajectories(rng, mu, sigma, n_steps, n_paths=1):
    """
    Planar random walks with drift mu in a random direction and step noise sigma.

    Returns:
        Array (n_paths, n_steps, 2) of positions, starting at the origin
    """
    angle = rng.random(n_paths) * 2 * np.pi
    drift = mu * np.stack([np.sin(angle), np.cos(angle)], axis=-1)
    steps = drift[:, None, :] + sigma * rng.standard_normal((n_paths, n_steps - 1, 2))
    paths = np.zeros((n_paths, n_steps, 2))
    paths[:, 1:] = np.cumsum(steps, axis=1)
    return paths


def brownian_rms(rng, theta, n_steps, n_paths=200):
    """Root-mean-square distance from the origin at every step, over n_paths walks."""
    mu, sigma = theta
    paths = brownian_trajectories(rng, mu, sigma, n_steps, n_paths)
    return np.sqrt(np.mean(np.sum(paths**2, axis=-1), axis=0))


def brownian_plan(n_steps: int = 30, true_theta=(0.5, 2.0), seed: int = 0) -> ABCPlan:
    """
    Drift and noise of a planar Wiener process from its RMS displacement curve.

    Prior is Uniform(0, 1) x Uniform(0, 4); the observed curve averages
    10000 walks at true_theta.
    """
    observed = brownian_rms(np.random.default_rng(seed), true_theta, n_steps, n_paths=10000)
    return ABCPlan(
        prior=Factored(scstats.uniform(0.0, 1.0), scstats.uniform(0.0, 4.0)),
        simulation=brownian_rms,
        data=observed,
        distance=mean_absolute_distance,
        params=n_steps,
    )


def mixture_plan(observed: float = 0.0) -> ABCPlan:
    """
    Uniform(-10, 10) prior; the simulator adds N(0, 1) or N(0, 0.1^2) noise
    with equal probability.
    """

    def simulate(rng, mu, params):
        sd = 0.1 if rng.random() < 0.5 else 1.0
        return mu + sd * rng.standard_normal()

    return ABCPlan(
        prior=scstats.uniform(loc=-10.0, scale=20.0),
        simulation=simulate,
        data=observed,
        distance=absolute_distance,
    )


SCENARIOS: Dict[str, Callable[..., ABCPlan]] = {
    "dirac_delta": dirac_delta_plan,
    "normal_mean": normal_mean_plan,
    "normal_uniform": normal_uniform_plan,
    "socks": socks_plan,
    "brownian": brownian_plan,
    "mixture": mixture_plan,
}

# Root selected by the Normal(1, 0.2) prior in dirac_delta_plan
DIRAC_DELTA_SOLUTION = 1 / math.sqrt(2)


def get_scenario(name: str, **kwargs) -> ABCPlan:
    """Build a reference plan by name."""
    if name not in SCENARIOS:
        raise ValueError(f"Unknown scenario '{name}'. Available: {sorted(SCENARIOS)}")
    return SCENARIOS[name](**kwargs)


__all__ = [
    "absolute_distance",
    "l1_distance",
    "mean_distance",
    "mean_absolute_distance",
    "dirac_delta_plan",
    "normal_mean_plan",
    "normal_uniform_plan",
    "socks_model",
    "socks_plan",
    "brownian_trajectories",
    "brownian_rms",
    "brownian_plan",
    "mixture_plan",
    "SCENARIOS",
    "DIRAC_DELTA_SOLUTION",
    "get_scenario",
]
