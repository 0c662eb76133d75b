"""
Base class and result structure for the population samplers.
"""

from abc import ABC, abstractmethod
from typing import NamedTuple, Optional

import numpy as np

from ..plan import ABCPlan


class PopulationResult(NamedTuple):
    """Result structure for a sampler run."""

    theta: np.ndarray  # (n,) or (n, ndim) parameter values
    distances: np.ndarray  # (n,) distances to the observed data
    epsilon: float  # Largest distance in the returned population
    converged: bool = True
    n_simulations: int = 0

    @property
    def n_particles(self) -> int:
        return len(self.distances)

    def mean(self) -> np.ndarray:
        """Posterior mean of each parameter."""
        return np.mean(self.theta, axis=0)

    def std(self) -> np.ndarray:
        """Posterior standard deviation of each parameter."""
        return np.std(self.theta, axis=0, ddof=1)


class BaseSampler(ABC):
    """Base class for ABC samplers."""

    def __init__(self, plan: ABCPlan, config):
        if not isinstance(plan, ABCPlan):
            raise TypeError("plan must be an ABCPlan")
        self.plan = plan
        self.config = config

    @abstractmethod
    def sample(self, key=None) -> PopulationResult:
        """Run the sampler and return the final population."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(prior={self.plan.prior!r}, config={self.config!r})"


def resolve_config(config_cls, config: Optional[object], overrides: dict):
    """
    Build a sampler configuration from a config object and keyword overrides.

    Args:
        config_cls: Expected configuration dataclass
        config: Instance of config_cls, a dictionary, or None
        overrides: Keyword values taking precedence over config

    Returns:
        A validated config_cls instance
    """
    if config is None:
        base = {}
    elif isinstance(config, config_cls):
        base = config.to_dict()
    elif isinstance(config, dict):
        base = dict(config)
    else:
        raise TypeError(
            f"config must be a {config_cls.__name__} or a dictionary, "
            f"got {type(config).__name__}"
        )
    return config_cls.from_dict({**base, **overrides})


__all__ = ["PopulationResult", "BaseSampler", "resolve_config"]
