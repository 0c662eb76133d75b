"""
Differential-evolution proposals for ABCDE.

A proposal is built from three distinct particles a, b, c of the current
population as a + gamma * (b - c), with a small random jitter on both the
scale and an additive noise term. Discrete dimensions are rounded
stochastically so that the step stays unbiased in expectation.
"""

import math
from typing import Any, Tuple

import numpy as np

from .priors import Prior, Univariate


def de_gamma(prior: Prior) -> float:
    """Differential-evolution step scale 2.38 / sqrt(2 * ndim)."""
    return 2.38 / math.sqrt(2 * prior.ndim)


def pick_references(rng: np.random.Generator, n_particles: int) -> Tuple[int, int, int]:
    """
    Draw three distinct particle indices uniformly without replacement.

    Raises:
        ValueError: If the population has fewer than 4 particles
    """
    if n_particles < 4:
        raise ValueError(
            f"Differential evolution needs at least 4 particles, got {n_particles}"
        )
    a, b, c = rng.choice(n_particles, size=3, replace=False)
    return int(a), int(b), int(c)


def stochastic_round(rng: np.random.Generator, x: float) -> int:
    """Round |x| down or up with probability equal to its fractional part, keeping the sign."""
    magnitude = abs(x)
    whole = math.floor(magnitude)
    if rng.random() < magnitude - whole:
        whole += 1
    return int(math.copysign(whole, x)) if whole else 0


def _de_component(
    marginal: Univariate,
    a: float,
    b: float,
    c: float,
    gamma: float,
    rng: np.random.Generator,
) -> float:
    diff = b - c
    step = diff * gamma * (rng.random() * 0.2 + 0.9)
    if marginal.is_discrete:
        step += rng.standard_normal() * max(0.05 * abs(diff), 0.5)
        return float(a + stochastic_round(rng, step))
    return float(a + step + 0.05 * rng.standard_normal() * abs(diff))


def deperturb(prior: Prior, a: Any, b: Any, c: Any, gamma: float, rng: np.random.Generator):
    """
    Differential-evolution proposal a + gamma * (b - c) + noise.

    Args:
        prior: The plan's prior
        a: Base particle value
        b: First difference particle value
        c: Second difference particle value
        gamma: Step scale, usually de_gamma(prior)
        rng: Random stream of the calling particle

    Returns:
        Proposed parameter value; may fall outside the prior support
    """
    return prior.from_components(
        [
            _de_component(marginal, ai, bi, ci, gamma, rng)
            for marginal, ai, bi, ci in zip(
                prior.marginals,
                prior.components(a),
                prior.components(b),
                prior.components(c),
            )
        ]
    )


__all__ = ["de_gamma", "pick_references", "stochastic_round", "deperturb"]
