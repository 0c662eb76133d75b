"""
Population samplers.

- RejectionSampler: plain rejection ABC
- ABCDESampler: adaptive tolerance with differential-evolution moves
- ABCSMCPRSampler: sequential Monte Carlo with partial rejection control
"""

from .base import BaseSampler, PopulationResult
from .rejection import RejectionSampler, rejection_abc
from .abcde import ABCDESampler, abcde
from .smcpr import ABCSMCPRSampler, abc_smc_pr

__all__ = [
    "BaseSampler",
    "PopulationResult",
    "RejectionSampler",
    "rejection_abc",
    "ABCDESampler",
    "abcde",
    "ABCSMCPRSampler",
    "abc_smc_pr",
]
