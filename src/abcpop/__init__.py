"""
abcpop: population-based Approximate Bayesian Computation.

Samplers:
- RejectionSampler / rejection_abc
- ABCDESampler / abcde
- ABCSMCPRSampler / abc_smc_pr

Example:
    import numpy as np
    import scipy.stats as scstats
    from jax import random
    from abcpop import ABCPlan, abcde

    plan = ABCPlan(
        prior=scstats.norm(0, 1),
        simulation=lambda rng, mu, params: rng.standard_normal(1000) + mu,
        data=np.ones(1000),
        distance=lambda x, y: abs(np.mean(x) - np.mean(y)),
    )
    result = abcde(plan, 0.01, key=random.PRNGKey(0))
    print(result.mean(), result.converged)
"""

from ._version import __version__
from .priors import Prior, Univariate, Factored, as_prior
from .plan import ABCPlan, sample_plan
from .kernels import kernel, kernel_scales, perturb, kernel_density
from .proposals import deperturb
from .samplers import (
    BaseSampler,
    PopulationResult,
    RejectionSampler,
    rejection_abc,
    ABCDESampler,
    abcde,
    ABCSMCPRSampler,
    abc_smc_pr,
)
from .config import RejectionConfig, ABCDEConfig, SMCPRConfig, load_sampler_config
from .registry import create_sampler_from_dict, create_sampler_from_yaml

__all__ = [
    "__version__",
    # Priors
    "Prior",
    "Univariate",
    "Factored",
    "as_prior",
    # Plan
    "ABCPlan",
    "sample_plan",
    # Kernels and proposals
    "kernel",
    "kernel_scales",
    "perturb",
    "kernel_density",
    "deperturb",
    # Samplers
    "BaseSampler",
    "PopulationResult",
    "RejectionSampler",
    "rejection_abc",
    "ABCDESampler",
    "abcde",
    "ABCSMCPRSampler",
    "abc_smc_pr",
    # Configuration
    "RejectionConfig",
    "ABCDEConfig",
    "SMCPRConfig",
    "load_sampler_config",
    "create_sampler_from_dict",
    "create_sampler_from_yaml",
]
