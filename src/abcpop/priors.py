"""
Prior distributions consumed by the ABC samplers.

This module defines the small interface every prior must implement to be
used in an ABCPlan, plus two concrete variants:

- Univariate: a single frozen scipy.stats distribution
- Factored: a product of independent univariate marginals
"""

from abc import ABC, abstractmethod
from typing import Any, Sequence, Tuple

import numpy as np
import scipy.stats as scstats


class Prior(ABC):
    """
    Abstract base class for all priors used by the samplers.

    All priors must implement:
    - sample(): Draw one parameter value
    - pdf(): Evaluate the density (or mass) at a parameter value
    - marginals: The univariate components, one per dimension
    - components() / from_components(): Split and rebuild a parameter value
    """

    @abstractmethod
    def sample(self, rng: np.random.Generator) -> Any:
        """
        Draw one parameter value.

        Args:
            rng: numpy random generator owned by the caller

        Returns:
            Parameter value (scalar or 1-D array)
        """
        pass

    @abstractmethod
    def pdf(self, theta: Any) -> float:
        """
        Density of the prior at theta.

        Args:
            theta: Parameter value

        Returns:
            Probability density (mass for discrete components)
        """
        pass

    @property
    @abstractmethod
    def marginals(self) -> Tuple["Univariate", ...]:
        """Univariate components, one per dimension."""
        pass

    @property
    def ndim(self) -> int:
        return len(self.marginals)

    @property
    def shape(self) -> Tuple[int, ...]:
        """Array shape of a single parameter value."""
        return (self.ndim,)

    @abstractmethod
    def components(self, theta: Any) -> Tuple[Any, ...]:
        """Split a parameter value into its per-dimension parts."""
        pass

    @abstractmethod
    def from_components(self, values: Sequence[Any]) -> Any:
        """Rebuild a parameter value from its per-dimension parts."""
        pass

    def sample_many(self, rng: np.random.Generator, n_samples: int) -> np.ndarray:
        """
        Draw several parameter values from one stream.

        Args:
            rng: numpy random generator
            n_samples: Number of draws

        Returns:
            Array of shape (n_samples,) or (n_samples, ndim)
        """
        return np.asarray([self.sample(rng) for _ in range(n_samples)], dtype=float)


class Univariate(Prior):
    """
    Single-dimension prior backed by a frozen scipy.stats distribution.

    Example:
        import scipy.stats as scstats
        prior = Univariate(scstats.norm(loc=1.0, scale=0.2))
    """

    def __init__(self, dist):
        if not hasattr(dist, "dist") or not hasattr(dist, "support"):
            raise TypeError(
                f"Expected a frozen scipy.stats distribution, got {type(dist).__name__}"
            )
        self.dist = dist
        self.is_discrete = isinstance(dist.dist, scstats.rv_discrete)
        self._density = dist.pmf if self.is_discrete else dist.pdf
        lower, upper = dist.support()
        self.support = (float(lower), float(upper))

    def sample(self, rng: np.random.Generator) -> float:
        return float(self.dist.rvs(random_state=rng))

    def pdf(self, theta: Any) -> float:
        return float(self._density(theta))

    @property
    def marginals(self) -> Tuple["Univariate", ...]:
        return (self,)

    @property
    def shape(self) -> Tuple[int, ...]:
        return ()

    def components(self, theta: Any) -> Tuple[Any, ...]:
        return (theta,)

    def from_components(self, values: Sequence[Any]) -> float:
        return float(values[0])

    def __repr__(self) -> str:
        name = self.dist.dist.name
        args = ", ".join(f"{a:g}" for a in self.dist.args)
        kwds = ", ".join(f"{k}={v:g}" for k, v in self.dist.kwds.items())
        return f"Univariate({name}({', '.join(p for p in (args, kwds) if p)}))"


class Factored(Prior):
    """
    Product of independent univariate priors.

    Parameter values are 1-D float arrays with one entry per marginal;
    discrete marginals hold integer values.

    Example:
        prior = Factored(scstats.norm(0, 1), scstats.randint(1, 11))
    """

    def __init__(self, *marginals):
        if len(marginals) == 0:
            raise ValueError("Factored needs at least one marginal")
        coerced = tuple(as_prior(m) for m in marginals)
        for m in coerced:
            if not isinstance(m, Univariate):
                raise TypeError("Factored marginals must be univariate")
        self._marginals = coerced

    def sample(self, rng: np.random.Generator) -> np.ndarray:
        return np.array([m.sample(rng) for m in self._marginals], dtype=float)

    def pdf(self, theta: Any) -> float:
        density = 1.0
        for m, value in zip(self._marginals, theta):
            density *= m.pdf(value)
        return density

    @property
    def marginals(self) -> Tuple[Univariate, ...]:
        return self._marginals

    def components(self, theta: Any) -> Tuple[Any, ...]:
        return tuple(theta)

    def from_components(self, values: Sequence[Any]) -> np.ndarray:
        return np.array(values, dtype=float)

    def __len__(self) -> int:
        return self.ndim

    def __repr__(self) -> str:
        return f"Factored({', '.join(repr(m) for m in self._marginals)})"


def as_prior(obj) -> Prior:
    """
    Coerce obj into a Prior.

    Args:
        obj: A Prior instance or a frozen scipy.stats distribution

    Returns:
        The Prior itself, or a Univariate wrapping the distribution

    Raises:
        TypeError: If obj is neither
    """
    if isinstance(obj, Prior):
        return obj
    if isinstance(obj, scstats.rv_continuous) or isinstance(obj, scstats.rv_discrete):
        raise TypeError(
            f"Prior '{obj.name}' must be frozen, e.g. scipy.stats.{obj.name}(...)"
        )
    if hasattr(obj, "dist") and isinstance(
        obj.dist, (scstats.rv_continuous, scstats.rv_discrete)
    ):
        return Univariate(obj)
    raise TypeError(f"Cannot use {type(obj).__name__} as a prior")


__all__ = ["Prior", "Univariate", "Factored", "as_prior"]
