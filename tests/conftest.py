"""Pytest configuration and fixtures."""

import pytest
import numpy as np
import scipy.stats as scstats
from jax import random

from abcpop import ABCPlan, Factored
from abcpop.scenarios import dirac_delta_plan, normal_uniform_plan


@pytest.fixture
def key():
    """Fixed JAX random key."""
    return random.PRNGKey(123)


@pytest.fixture
def rng():
    """Seeded numpy generator."""
    return np.random.default_rng(2024)


@pytest.fixture
def dirac_plan():
    """Deterministic mu -> mu^2 + 1 plan."""
    return dirac_delta_plan()


@pytest.fixture
def mixed_plan():
    """Factored continuous x discrete plan."""
    return normal_uniform_plan()


@pytest.fixture
def mixed_prior():
    """Bounded factored prior with one continuous and one discrete marginal."""
    return Factored(scstats.uniform(loc=0.0, scale=1.0), scstats.randint(1, 11))


@pytest.fixture
def counting_plan():
    """Plan whose simulator records how often it is called."""
    calls = []

    def simulate(rng, theta, params):
        calls.append(float(theta))
        return theta + params

    plan = ABCPlan(
        prior=scstats.uniform(loc=-1.0, scale=2.0),
        simulation=simulate,
        data=0.5,
        distance=lambda x, y: abs(x - y),
        params=0.25,
    )
    return plan, calls


@pytest.fixture
def temp_config_file(tmp_path):
    """Temporary sampler config file for testing."""
    config_content = """
sampler: smcpr
epsilon_target: 0.05
config:
  n_particles: 200
  alpha: 0.3
  c: 0.01
  verbose: false
"""
    config_file = tmp_path / "smcpr.yml"
    config_file.write_text(config_content)
    return config_file
