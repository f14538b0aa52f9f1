"""Tests for Kelly fraction, growth rate and strategy simulation."""

import math

import numpy as np
import pytest

from quantsim.analysis.kelly import (
    FIXED_FRACTION,
    STRATEGIES,
    expected_growth_rate,
    kelly_fraction,
    simulate_betting,
    simulate_strategies,
    strategy_fractions,
)
from quantsim.errors import InvalidParameterError, NumericalDegeneracyError
from quantsim.schemas import KellyParameters

from conftest import ConstantSource


class TestKellyFraction:
    def test_even_odds_edge(self):
        assert kelly_fraction(0.55, 1.0, 1.0) == pytest.approx(0.10, abs=1e-12)

    def test_no_edge(self):
        assert kelly_fraction(0.5, 1.0, 1.0) == 0.0

    def test_negative_edge_clamps_to_zero(self):
        assert kelly_fraction(0.3, 1.0, 1.0) == 0.0

    def test_clamps_to_one(self):
        assert kelly_fraction(1.0, 1.0, 0.5) == 1.0

    def test_uneven_payout(self):
        # p=0.4, b=2, a=1: (0.8 - 0.6) / 2
        assert kelly_fraction(0.4, 2.0, 1.0) == pytest.approx(0.1)

    @pytest.mark.parametrize("p, b, a", [(1.2, 1, 1), (-0.1, 1, 1), (0.5, 0, 1), (0.5, 1, -1)])
    def test_invalid_inputs(self, p, b, a):
        with pytest.raises(InvalidParameterError):
            kelly_fraction(p, b, a)


class TestExpectedGrowthRate:
    def test_zero_fraction(self):
        assert expected_growth_rate(0.0, 0.55, 1.0, 1.0) == 0.0

    def test_formula(self):
        expected = 0.55 * math.log(1.1) + 0.45 * math.log(0.9)
        assert expected_growth_rate(0.1, 0.55, 1.0, 1.0) == pytest.approx(expected, rel=1e-12)

    def test_kelly_fraction_maximises_growth(self):
        f = kelly_fraction(0.6, 1.5, 1.0)
        g = expected_growth_rate(f, 0.6, 1.5, 1.0)
        assert g > expected_growth_rate(f - 0.02, 0.6, 1.5, 1.0)
        assert g > expected_growth_rate(f + 0.02, 0.6, 1.5, 1.0)

    def test_ruinous_fraction_is_degenerate(self):
        with pytest.raises(NumericalDegeneracyError):
            expected_growth_rate(1.0, 0.55, 1.0, 1.0)
        with pytest.raises(NumericalDegeneracyError):
            expected_growth_rate(0.6, 0.55, 1.0, 2.0)

    def test_certain_win_ignores_loss_branch(self):
        assert expected_growth_rate(1.0, 1.0, 1.0, 1.0) == pytest.approx(math.log(2.0))


class TestSimulateBetting:
    def test_shape_and_start(self, source):
        params = KellyParameters(num_bets=50, initial_capital=1000.0)
        runs = simulate_betting(0.1, params, 7, source)
        assert runs.shape == (7, 51)
        assert np.all(runs[:, 0] == 1000.0)
        assert np.all(runs >= 0.0)

    def test_always_winning(self):
        params = KellyParameters(win_prob=0.55, win_ratio=1.0, num_bets=10, initial_capital=100.0)
        runs = simulate_betting(0.1, params, 2, ConstantSource(0.5))
        np.testing.assert_allclose(runs[0], 100.0 * 1.1 ** np.arange(11))

    def test_always_losing(self):
        params = KellyParameters(win_prob=0.55, loss_ratio=1.0, num_bets=10, initial_capital=100.0)
        runs = simulate_betting(0.1, params, 1, ConstantSource(0.99))
        np.testing.assert_allclose(runs[0], 100.0 * 0.9 ** np.arange(11))

    def test_over_betting_is_clamped_and_floored(self):
        params = KellyParameters(loss_ratio=2.0, num_bets=5)
        runs = simulate_betting(1.6, params, 3, ConstantSource(0.99))
        assert np.all(runs[:, 1:] == 0.0)

    def test_zero_fraction_keeps_capital(self, source):
        params = KellyParameters(num_bets=20)
        runs = simulate_betting(0.0, params, 4, source)
        assert np.all(runs == params.initial_capital)


class TestSimulateStrategies:
    def test_strategy_set(self, source):
        params = KellyParameters(num_bets=30)
        results = simulate_strategies(params, source)
        assert list(results) == list(STRATEGIES)
        for name, result in results.items():
            assert result.name == name
            assert len(result.trajectory) == 31
            assert result.trajectory[0] == params.initial_capital

    def test_fractions(self, source):
        results = simulate_strategies(KellyParameters(), source)
        assert results["Full Kelly"].fraction == pytest.approx(0.1)
        assert results["Half Kelly"].fraction == pytest.approx(0.05)
        assert results["Double Kelly"].fraction == pytest.approx(0.2)
        assert results["Fixed 5%"].fraction == FIXED_FRACTION

    def test_double_kelly_clamped_with_no_growth_rate(self):
        params = KellyParameters(win_prob=0.9, num_bets=5, num_simulations=4)
        assert strategy_fractions(0.8)["Double Kelly"] == pytest.approx(1.6)

        results = simulate_strategies(params, ConstantSource(0.99))
        double = results["Double Kelly"]
        assert double.fraction == 1.0
        assert double.growth_rate is None
        assert double.ruined_runs == 4
        assert double.trajectory[-1] == 0.0
        assert results["Full Kelly"].growth_rate is not None

    def test_trajectory_is_pointwise_average(self):
        params = KellyParameters(num_bets=3, num_simulations=5, initial_capital=100.0)
        results = simulate_strategies(params, ConstantSource(0.5))
        np.testing.assert_allclose(results["Fixed 5%"].trajectory, 100.0 * 1.05 ** np.arange(4))
