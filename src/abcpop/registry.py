"""
Registry for the population samplers.

This module maps stable sampler names (used in YAML files) to sampler
classes and provides factory functions building a sampler from a
configuration dictionary.
"""

from pathlib import Path
from typing import Any, Dict, List, Type, Union

import logging

from .config import CONFIG_CLASSES, load_sampler_config
from .plan import ABCPlan
from .samplers import ABCDESampler, ABCSMCPRSampler, BaseSampler, RejectionSampler

# Configure logging
logger = logging.getLogger(__name__)


SAMPLER_REGISTRY: Dict[str, Type[BaseSampler]] = {
    "abc": RejectionSampler,
    "abcde": ABCDESampler,
    "smcpr": ABCSMCPRSampler,
}

# Name of the positional target argument of each sampler
TARGET_KEYS: Dict[str, str] = {
    "abc": "alpha_target",
    "abcde": "epsilon_target",
    "smcpr": "epsilon_target",
}


def register_sampler(
    name: str,
    sampler_class: Type[BaseSampler],
    config_class,
    target_key: str = "epsilon_target",
) -> None:
    """
    Register a new sampler type in the global registry.

    Args:
        name: Stable identifier for the sampler (used in YAML files)
        sampler_class: The sampler class, called as sampler_class(plan, target, config)
        config_class: Its configuration dataclass
        target_key: Name of the target value in configuration dictionaries
    """
    if name in SAMPLER_REGISTRY:
        logger.warning(f"Overriding existing sampler type: {name}")

    SAMPLER_REGISTRY[name] = sampler_class
    CONFIG_CLASSES[name] = config_class
    TARGET_KEYS[name] = target_key
    logger.debug(f"Registered sampler: {name} -> {sampler_class.__name__}")


def get_supported_samplers() -> List[str]:
    """
    Get list of supported sampler names.

    Returns:
        List of sampler name strings
    """
    return sorted(SAMPLER_REGISTRY)


def validate_sampler_config_dict(config: Dict[str, Any]) -> None:
    """
    Validate the structure of a sampler configuration dictionary.

    Args:
        config: Configuration dictionary to validate

    Raises:
        ValueError: If configuration is invalid or incomplete
    """
    if "sampler" not in config:
        raise ValueError("Missing required field: 'sampler'")

    name = config["sampler"]
    if name not in SAMPLER_REGISTRY:
        raise ValueError(
            f"Unsupported sampler '{name}'. Supported: {get_supported_samplers()}"
        )

    target_key = TARGET_KEYS[name]
    if target_key not in config:
        raise ValueError(f"Sampler '{name}' requires '{target_key}'")

    try:
        target = float(config[target_key])
    except (TypeError, ValueError):
        raise ValueError(f"'{target_key}' must be a valid number")
    if target < 0:
        raise ValueError(f"'{target_key}' must be non-negative")

    options = config.get("config", {})
    if not isinstance(options, (dict, CONFIG_CLASSES[name])):
        raise ValueError("'config' must be a dictionary")


def create_sampler_from_dict(config: Dict[str, Any], plan: ABCPlan) -> BaseSampler:
    """
    Create a sampler from a configuration dictionary.

    Args:
        config: Dictionary with the sampler name, its target and options
        plan: The inference plan the sampler runs on

    Returns:
        Configured sampler instance

    Example:
        config = {
            "sampler": "smcpr",
            "epsilon_target": 0.02,
            "config": {"n_particles": 1000, "alpha": 0.3},
        }
        sampler = create_sampler_from_dict(config, plan)
        result = sampler.sample(random.PRNGKey(0))
    """
    validate_sampler_config_dict(config)
    name = config["sampler"]
    target = float(config[TARGET_KEYS[name]])
    options = config.get("config") or {}

    sampler = SAMPLER_REGISTRY[name](plan, target, options)
    logger.info(f"Created sampler: {type(sampler).__name__} with {TARGET_KEYS[name]}={target}")
    return sampler


def create_sampler_from_yaml(path: Union[str, Path], plan: ABCPlan) -> BaseSampler:
    """Create a sampler from a YAML description (see load_sampler_config)."""
    return create_sampler_from_dict(load_sampler_config(path), plan)


__all__ = [
    "SAMPLER_REGISTRY",
    "TARGET_KEYS",
    "register_sampler",
    "get_supported_samplers",
    "validate_sampler_config_dict",
    "create_sampler_from_dict",
    "create_sampler_from_yaml",
]
