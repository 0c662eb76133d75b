"""Tests for the rejection, ABCDE and ABC-SMC-PR samplers."""

import math
import logging

import pytest
import numpy as np
import scipy.stats as scstats
from jax import random

from abcpop import (
    ABCDEConfig,
    ABCDESampler,
    ABCPlan,
    ABCSMCPRSampler,
    PopulationResult,
    RejectionSampler,
    abc_smc_pr,
    abcde,
    rejection_abc,
    sample_plan,
)
from abcpop.samplers.abcde import de_round
from abcpop.samplers.smcpr import mutation_depth, smoothed_acceptance_rate
from abcpop.scenarios import DIRAC_DELTA_SOLUTION, normal_mean_plan, socks_plan

# mu^2 + 1 within 0.02 of 1.5
DIRAC_BAND = (math.sqrt(0.48), math.sqrt(0.52))


def _always_matching_plan(prior):
    return ABCPlan(
        prior=prior,
        simulation=lambda rng, theta, params: theta,
        data=None,
        distance=lambda x, y: 0.0,
    )


def _identity_plan(observed=3.0):
    return ABCPlan(
        prior=scstats.randint(1, 11),
        simulation=lambda rng, theta, params: theta,
        data=observed,
        distance=lambda x, y: abs(x - y),
    )


class TestPopulationResult:
    """Test class for PopulationResult."""

    def test_summaries(self):
        theta = np.array([[1.0, 2.0], [3.0, 6.0]])
        result = PopulationResult(theta, np.array([0.1, 0.2]), 0.2)
        assert result.n_particles == 2
        assert result.converged
        np.testing.assert_allclose(result.mean(), [2.0, 4.0])
        np.testing.assert_allclose(result.std(), [math.sqrt(2), math.sqrt(8)])


class TestRejectionSampler:
    """Test class for rejection ABC."""

    def test_keeps_closest_particles(self, dirac_plan, key):
        result = rejection_abc(dirac_plan, 0.25, key=key, n_particles=40, verbose=False)
        _, all_distances = sample_plan(dirac_plan, 160, key)

        assert result.n_particles == 40
        assert result.n_simulations == 160
        np.testing.assert_allclose(result.distances, np.sort(all_distances)[:40])
        assert result.epsilon == result.distances.max()

    def test_alpha_one_keeps_everything(self, mixed_plan, key):
        result = rejection_abc(mixed_plan, 1.0, key=key, n_particles=30, verbose=False)
        theta, distances = sample_plan(mixed_plan, 30, key)
        order = np.argsort(distances, kind="stable")
        np.testing.assert_array_equal(result.theta, theta[order])
        assert result.epsilon == distances.max()

    def test_n_simulations_rounds_up(self, dirac_plan):
        sampler = RejectionSampler(dirac_plan, 0.3, n_particles=10)
        assert sampler.n_simulations == 34

    @pytest.mark.parametrize("alpha", [0.0, 1.5, -0.1])
    def test_invalid_alpha_runs_nothing(self, counting_plan, alpha):
        plan, calls = counting_plan
        with pytest.raises(ValueError, match="alpha_target"):
            rejection_abc(plan, alpha, n_particles=10)
        assert calls == []

    def test_discrete_exact_matches(self, key):
        result = rejection_abc(_identity_plan(), 0.02, key=key, n_particles=10, verbose=False)
        # about 50 of the 500 draws hit the observed value
        assert result.epsilon == 0.0
        assert np.all(result.theta == 3.0)

    def test_single_particle_gets_best_distance(self, mixed_plan, key):
        result = rejection_abc(mixed_plan, 0.01, key=key, n_particles=1, verbose=False)
        _, all_distances = sample_plan(mixed_plan, 100, key)
        assert result.n_particles == 1
        assert result.epsilon == all_distances.min()

    def test_reproducible(self, dirac_plan):
        a = rejection_abc(dirac_plan, 0.5, key=7, n_particles=20, verbose=False)
        b = rejection_abc(dirac_plan, 0.5, key=7, n_particles=20, verbose=False)
        np.testing.assert_array_equal(a.theta, b.theta)

    def test_requires_plan(self):
        with pytest.raises(TypeError, match="ABCPlan"):
            RejectionSampler("plan", 0.5)

    def test_config_and_overrides(self, dirac_plan):
        sampler = RejectionSampler(dirac_plan, 0.5, {"n_particles": 8}, verbose=False)
        assert sampler.config.n_particles == 8
        assert sampler.config.verbose is False
        with pytest.raises(TypeError, match="config must be"):
            RejectionSampler(dirac_plan, 0.5, config=["n_particles", 8])


class TestABCDE:
    """Test class for the differential-evolution sampler."""

    def test_dirac_delta(self, dirac_plan, key):
        result = abcde(dirac_plan, 0.02, key=key, n_particles=200, verbose=False)

        assert result.converged
        assert result.n_particles == 200
        assert result.epsilon <= 0.02
        assert np.all(result.distances <= result.epsilon)
        lo, hi = DIRAC_BAND
        assert np.all((result.theta >= lo) & (result.theta <= hi))
        assert abs(result.mean() - DIRAC_DELTA_SOLUTION) < 0.02

    def test_distances_are_consistent(self, dirac_plan, key):
        result = abcde(dirac_plan, 0.05, key=key, n_particles=50, verbose=False)
        np.testing.assert_allclose(result.distances, np.abs(result.theta**2 - 0.5))

    def test_mcmc_steps_extend_output(self, dirac_plan, key):
        result = abcde(
            dirac_plan, 0.05, key=key, n_particles=50, mcmc_steps=2, verbose=False
        )
        assert result.converged
        assert result.theta.shape == (150,)
        assert result.distances.shape == (150,)
        assert np.all(result.distances <= 0.05)

    def test_budget_exhaustion(self, dirac_plan, key, caplog):
        with caplog.at_level(logging.WARNING):
            result = abcde(
                dirac_plan, 1e-9, key=key, n_particles=20, max_sim_per_particle=2, verbose=False
            )
        assert not result.converged
        assert result.epsilon > 1e-9
        assert result.n_particles == 20
        assert result.n_simulations <= 2 * 20 + 20
        assert "Failed to reach target epsilon" in caplog.text

    def test_parallel_matches_serial(self, dirac_plan, key):
        serial = abcde(dirac_plan, 0.05, key=key, n_particles=40, verbose=False)
        threaded = abcde(
            dirac_plan, 0.05, key=key, n_particles=40, parallel=True, n_workers=4, verbose=False
        )
        np.testing.assert_array_equal(serial.theta, threaded.theta)
        np.testing.assert_array_equal(serial.distances, threaded.distances)

    def test_normal_mean(self, key):
        plan = normal_mean_plan(n_obs=1000, true_mean=1.0)
        result = abcde(plan, 0.25 / math.sqrt(1000), key=key, n_particles=100, verbose=False)
        assert result.converged
        assert abs(result.mean() - 1.0) < 0.05
        assert result.std() < 0.1

    def test_mixed_prior(self, mixed_plan, key):
        result = abcde(mixed_plan, 1.0, key=key, n_particles=60, verbose=False)
        assert result.theta.shape == (60, 2)
        assert np.all(result.theta[:, 1] == np.round(result.theta[:, 1]))
        assert np.all((result.theta[:, 1] >= 1) & (result.theta[:, 1] <= 10))
        if result.converged:
            assert np.all(result.distances <= 1.0)

    def test_de_round_leaves_input_untouched(self, dirac_plan, key):
        theta, distances = sample_plan(dirac_plan, 20, key)
        theta_before = theta.copy()
        new_theta, new_distances = de_round(
            dirac_plan, 0.1, theta, distances, np.arange(20), random.PRNGKey(1)
        )
        np.testing.assert_array_equal(theta, theta_before)
        # particles only move to better distances or below the tolerance
        assert np.all((new_distances <= distances) | (new_distances < 0.1))

    def test_accepts_config_object(self, dirac_plan):
        sampler = ABCDESampler(dirac_plan, 0.1, ABCDEConfig(n_particles=10), verbose=False)
        assert sampler.config.n_particles == 10
        assert sampler.config.verbose is False

    def test_negative_target(self, dirac_plan):
        with pytest.raises(ValueError, match="epsilon_target"):
            ABCDESampler(dirac_plan, -0.1)


class TestABCSMCPR:
    """Test class for ABC-SMC with partial rejection control."""

    def test_mutation_depth(self):
        assert mutation_depth(0.01, 0.3) == 13
        assert mutation_depth(0.01, 0.99) == 1

    def test_smoothed_acceptance_rate(self):
        assert smoothed_acceptance_rate(0, 0) == pytest.approx(0.5)
        assert 0 < smoothed_acceptance_rate(0, 100) < 0.01
        assert 0.99 < smoothed_acceptance_rate(100, 100) < 1

    def test_dirac_delta(self, dirac_plan, key):
        result = abc_smc_pr(dirac_plan, 0.02, key=key, n_particles=100, verbose=False)

        assert result.converged
        assert result.n_particles == 100
        assert result.epsilon <= 0.02
        lo, hi = DIRAC_BAND
        assert np.all((result.theta >= lo) & (result.theta <= hi))
        assert abs(result.mean() - DIRAC_DELTA_SOLUTION) < 0.02

    def test_budget_exhaustion(self, dirac_plan, key, caplog):
        with caplog.at_level(logging.WARNING):
            result = abc_smc_pr(
                dirac_plan, 1e-9, key=key, n_particles=30, max_sim_per_particle=5, verbose=False
            )
        assert not result.converged
        assert result.n_particles == 30
        assert "Failed to reach target epsilon" in caplog.text

    def test_mixed_prior(self, mixed_plan, key):
        result = abc_smc_pr(mixed_plan, 1.0, key=key, n_particles=60, verbose=False)
        assert result.theta.shape == (60, 2)
        assert np.all(result.theta[:, 1] == np.round(result.theta[:, 1]))
        assert np.all((result.theta[:, 1] >= 1) & (result.theta[:, 1] <= 10))

    def test_parallel_matches_serial(self, mixed_plan, key):
        serial = abc_smc_pr(mixed_plan, 2.0, key=key, n_particles=40, verbose=False)
        threaded = abc_smc_pr(
            mixed_plan, 2.0, key=key, n_particles=40, parallel=True, n_workers=4, verbose=False
        )
        np.testing.assert_array_equal(serial.theta, threaded.theta)

    def test_socks(self, key):
        result = abc_smc_pr(socks_plan(), 0.0, key=key, n_particles=300, verbose=False)
        assert result.converged
        assert np.all(result.distances == 0.0)
        assert 34 <= np.median(result.theta[:, 0]) <= 56
        assert np.all((result.theta[:, 1] >= 0) & (result.theta[:, 1] <= 1))

    def test_invalid_configuration(self, dirac_plan):
        with pytest.raises(ValueError, match="strictly between 2"):
            ABCSMCPRSampler(dirac_plan, 0.1, n_particles=5)

    @pytest.mark.slow
    def test_mutation_keeps_prior_invariant(self, key):
        # every simulation matches, so the moves must leave the prior unchanged;
        # U-shaped mass piles up at the bounds where the truncated kernel is asymmetric
        prior = scstats.beta(0.5, 0.5)
        result = abc_smc_pr(
            _always_matching_plan(prior), 0.0, key=key, n_particles=10000, verbose=False
        )
        assert result.converged
        assert scstats.kstest(result.theta, prior.cdf).pvalue > 1e-3

    @pytest.mark.slow
    def test_mutation_keeps_discrete_prior_invariant(self, key):
        # most of the mass sits on the lower bound 0
        prior = scstats.binom(6, 0.15)
        n_particles = 3000
        result = abc_smc_pr(
            _always_matching_plan(prior), 0.0, key=key, n_particles=n_particles, verbose=False
        )
        values = result.theta.astype(int)
        observed = [np.sum(values == k) for k in range(4)] + [np.sum(values >= 4)]
        expected = [prior.pmf(k) for k in range(4)] + [prior.sf(3)]
        expected = n_particles * np.array(expected)
        assert scstats.chisquare(observed, expected).pvalue > 1e-3
