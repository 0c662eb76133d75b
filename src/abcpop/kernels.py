"""
Perturbation kernels for the SMC-PR mutation step.

Kernels are built per dimension around a particle value and truncated to the
support of the matching prior marginal:

- continuous marginals: truncated normal
- discrete marginals: truncated discrete uniform on [c - s, c + s]

Kernel widths follow the spread of a reference group of particles, so they
shrink together with the population.
"""

import math
from typing import Any, Sequence, Tuple

import numpy as np
from scipy import special

from .priors import Prior, Univariate

_SQRT2 = math.sqrt(2.0)
_INV_SQRT_2PI = 1.0 / math.sqrt(2.0 * math.pi)


class TruncatedNormalKernel:
    """
    Normal(center, scale) restricted to [lower, upper].

    A non-positive scale gives a point mass at center. Computed from
    scipy.special.ndtr/ndtri directly, which skips building a frozen
    scipy.stats.truncnorm for every proposal.
    """

    def __init__(self, center: float, scale: float, lower: float, upper: float):
        self.center = float(center)
        self.scale = float(scale)
        self.lower = float(lower)
        self.upper = float(upper)
        if self.scale > 0:
            self._cdf_lower = special.ndtr((self.lower - self.center) / self.scale)
            self._cdf_upper = special.ndtr((self.upper - self.center) / self.scale)
            self._mass = self._cdf_upper - self._cdf_lower

    def sample(self, rng: np.random.Generator) -> float:
        if self.scale <= 0:
            return self.center
        u = rng.uniform(self._cdf_lower, self._cdf_upper)
        x = self.center + self.scale * special.ndtri(u)
        return float(min(max(x, self.lower), self.upper))

    def pdf(self, x: float) -> float:
        if self.scale <= 0:
            return 1.0 if x == self.center else 0.0
        if x < self.lower or x > self.upper or self._mass <= 0:
            return 0.0
        z = (x - self.center) / self.scale
        return float(_INV_SQRT_2PI * math.exp(-0.5 * z * z) / (self.scale * self._mass))


class TruncatedDiscreteUniformKernel:
    """Uniform over the integers of [center - scale, center + scale] within [lower, upper]."""

    def __init__(self, center: float, scale: int, lower: float, upper: float):
        self.center = float(center)
        self.scale = int(scale)
        self.low = int(math.ceil(max(self.center - self.scale, lower)))
        self.high = int(math.floor(min(self.center + self.scale, upper)))

    def sample(self, rng: np.random.Generator) -> float:
        if self.high < self.low:
            return self.center
        return float(rng.integers(self.low, self.high + 1))

    def pdf(self, x: float) -> float:
        if self.high < self.low:
            return 1.0 if x == self.center else 0.0
        if x != math.floor(x) or x < self.low or x > self.high:
            return 0.0
        return 1.0 / (self.high - self.low + 1)


def component_scale(marginal: Univariate, values: np.ndarray):
    """
    Kernel scale for one dimension.

    Args:
        marginal: Prior marginal of the dimension
        values: Reference values of that dimension

    Returns:
        sqrt(2) * std(values), rounded up to an int for discrete marginals
    """
    values = np.asarray(values, dtype=float)
    spread = _SQRT2 * float(np.std(values, ddof=1)) if values.size > 1 else 0.0
    if marginal.is_discrete:
        return int(math.ceil(spread))
    return spread


def kernel_scales(prior: Prior, values) -> Tuple[Any, ...]:
    """
    Per-dimension kernel scales from a group of particle values.

    Args:
        prior: The plan's prior
        values: Array of particle values, shape (n,) or (n, ndim)

    Returns:
        Tuple with one scale per prior dimension
    """
    values = np.asarray(values, dtype=float)
    columns = values.reshape(len(values), -1)
    return tuple(
        component_scale(marginal, columns[:, k])
        for k, marginal in enumerate(prior.marginals)
    )


def kernel(marginal: Univariate, center: float, scale):
    """
    Build the perturbation kernel of one dimension.

    Args:
        marginal: Prior marginal, provides support bounds and discreteness
        center: Value the kernel is centered on
        scale: Kernel width from kernel_scales

    Returns:
        A kernel exposing sample(rng) and pdf(x)
    """
    lower, upper = marginal.support
    if marginal.is_discrete:
        return TruncatedDiscreteUniformKernel(center, scale, lower, upper)
    return TruncatedNormalKernel(center, scale, lower, upper)


def perturb(prior: Prior, scales: Sequence[Any], theta: Any, rng: np.random.Generator):
    """
    Draw one perturbed copy of theta.

    Args:
        prior: The plan's prior
        scales: Per-dimension scales from kernel_scales
        theta: Current parameter value
        rng: Random stream of the calling particle

    Returns:
        New parameter value, inside the prior support
    """
    return prior.from_components(
        [
            kernel(marginal, value, scale).sample(rng)
            for marginal, value, scale in zip(
                prior.marginals, prior.components(theta), scales
            )
        ]
    )


def kernel_density(prior: Prior, scales: Sequence[Any], center: Any, value: Any) -> float:
    """
    Density of moving from center to value under the perturbation kernel.

    Args:
        prior: The plan's prior
        scales: Per-dimension scales from kernel_scales
        center: Parameter value the kernel is built around
        value: Parameter value the density is evaluated at

    Returns:
        Product of the per-dimension kernel densities
    """
    density = 1.0
    for marginal, c, x, scale in zip(
        prior.marginals, prior.components(center), prior.components(value), scales
    ):
        density *= kernel(marginal, c, scale).pdf(x)
    return density


def metropolis_weight(numerator: float, denominator: float) -> float:
    """
    Acceptance probability min(1, numerator / denominator).

    A zero denominator accepts any move with positive numerator.
    """
    if denominator > 0:
        return min(1.0, numerator / denominator)
    return 1.0 if numerator > 0 else 0.0


__all__ = [
    "metropolis_weight",
    "TruncatedNormalKernel",
    "TruncatedDiscreteUniformKernel",
    "component_scale",
    "kernel_scales",
    "kernel",
    "perturb",
    "kernel_density",
]
