"""
Configuration management for the population samplers.

This module provides dataclass configurations for the rejection, ABCDE and
SMC-PR samplers, validated on construction, plus YAML loading of complete
sampler descriptions.
"""

import math
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
import logging

logger = logging.getLogger(__name__)


@dataclass
class SamplerConfig:
    """Options shared by every sampler."""

    n_particles: int = 100
    parallel: bool = False
    n_workers: Optional[int] = None
    verbose: bool = True

    def __post_init__(self):
        """Validate shared options."""
        if self.n_particles <= 0:
            raise ValueError("n_particles must be positive")
        if self.n_workers is not None and self.n_workers <= 0:
            raise ValueError("n_workers must be positive")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]):
        """Create a config from a dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(config) - known
        if unknown:
            raise ValueError(
                f"Unknown {cls.__name__} options: {sorted(unknown)}. "
                f"Available: {sorted(known)}"
            )
        return cls(**config)


@dataclass
class RejectionConfig(SamplerConfig):
    """Configuration for plain rejection ABC."""


@dataclass
class ABCDEConfig(SamplerConfig):
    """Configuration for the differential-evolution sampler."""

    max_sim_per_particle: float = 200
    alpha: float = 1 / 3  # epsilon -> (1 - alpha) * min + alpha * max
    mcmc_steps: int = 0

    def __post_init__(self):
        super().__post_init__()
        if not 0 < self.alpha < 1:
            raise ValueError("alpha must be strictly between 0 and 1")
        if self.max_sim_per_particle <= 0:
            raise ValueError("max_sim_per_particle must be positive")
        if self.mcmc_steps < 0:
            raise ValueError("mcmc_steps must be non-negative")
        if self.n_particles < 4:
            raise ValueError(
                "ABCDE needs at least 4 particles to build differential-evolution proposals"
            )


@dataclass
class SMCPRConfig(SamplerConfig):
    """Configuration for sequential Monte Carlo with partial rejection control."""

    max_sim_per_particle: float = 1000
    alpha: float = 0.3  # fraction of particles kept alive every generation
    c: float = 0.01  # target probability that a particle is never moved

    def __post_init__(self):
        super().__post_init__()
        if not 0 < self.c < 1:
            raise ValueError("c must be strictly between 0 and 1")
        if not 0 < self.alpha < 1:
            raise ValueError("alpha must be strictly between 0 and 1")
        if self.max_sim_per_particle <= 0:
            raise ValueError("max_sim_per_particle must be positive")
        n_alive = self.n_alive
        if not 2 < n_alive < self.n_particles - 1:
            raise ValueError(
                f"ceil(alpha * n_particles) = {n_alive} must lie strictly between 2 "
                f"and n_particles - 1 = {self.n_particles - 1}"
            )

    @property
    def n_alive(self) -> int:
        return int(math.ceil(self.alpha * self.n_particles))


CONFIG_CLASSES = {
    "abc": RejectionConfig,
    "abcde": ABCDEConfig,
    "smcpr": SMCPRConfig,
}


def get_sampler_config(sampler: str, config: Optional[Dict[str, Any]] = None):
    """
    Build the configuration object of a named sampler.

    Args:
        sampler: Sampler name ("abc", "abcde" or "smcpr")
        config: Option values, defaults used for missing keys

    Returns:
        Validated configuration dataclass
    """
    if sampler not in CONFIG_CLASSES:
        raise ValueError(
            f"Unknown sampler '{sampler}'. Available: {sorted(CONFIG_CLASSES)}"
        )
    return CONFIG_CLASSES[sampler].from_dict(dict(config or {}))


def load_sampler_config(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a sampler description from YAML.

    Expected layout:

        sampler: abcde
        epsilon_target: 0.02
        config:
          n_particles: 500
          max_sim_per_particle: 300

    Args:
        path: YAML file path

    Returns:
        Dictionary with the sampler name, its target and a validated
        configuration object under "config"
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Sampler config file not found: {path}")

    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}

    if "sampler" not in raw:
        raise ValueError(f"{path}: missing 'sampler' key")

    settings = dict(raw)
    settings["config"] = get_sampler_config(raw["sampler"], raw.get("config"))
    logger.debug(f"Loaded {raw['sampler']} configuration from {path}")
    return settings


__all__ = [
    "SamplerConfig",
    "RejectionConfig",
    "ABCDEConfig",
    "SMCPRConfig",
    "CONFIG_CLASSES",
    "get_sampler_config",
    "load_sampler_config",
]
