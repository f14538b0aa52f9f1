"""Tests for the closed-form Black-Scholes reference."""

import math

import pytest

from quantsim.analysis.black_scholes import black_scholes, normal_cdf
from quantsim.errors import InvalidParameterError, NumericalDegeneracyError


class TestNormalCdf:
    def test_symmetry(self):
        assert normal_cdf(0.0) == pytest.approx(0.5)
        assert normal_cdf(1.3) + normal_cdf(-1.3) == pytest.approx(1.0)

    def test_known_quantile(self):
        assert normal_cdf(1.959964) == pytest.approx(0.975, abs=1e-6)


class TestBlackScholes:
    def test_textbook_call(self):
        assert black_scholes(100, 100, 1.0, 0.05, 0.2, "call") == pytest.approx(10.4506, abs=1e-4)

    def test_textbook_put(self):
        assert black_scholes(100, 100, 1.0, 0.05, 0.2, "put") == pytest.approx(5.5735, abs=1e-4)

    @pytest.mark.parametrize("k", [80.0, 100.0, 125.0])
    def test_put_call_parity(self, k):
        s0, t, r, sigma = 100.0, 0.75, 0.03, 0.35
        call = black_scholes(s0, k, t, r, sigma, "call")
        put = black_scholes(s0, k, t, r, sigma, "put")
        assert call - put == pytest.approx(s0 - k * math.exp(-r * t))

    def test_default_is_call(self):
        assert black_scholes(100, 90, 0.5, 0.01, 0.3) == black_scholes(100, 90, 0.5, 0.01, 0.3, "call")

    @pytest.mark.parametrize("t, sigma", [(0.0, 0.2), (1.0, 0.0)])
    def test_zero_total_volatility_is_degenerate(self, t, sigma):
        with pytest.raises(NumericalDegeneracyError):
            black_scholes(100, 100, t, 0.05, sigma)

    @pytest.mark.parametrize("s0, k", [(0.0, 100.0), (100.0, -1.0)])
    def test_non_positive_prices_rejected(self, s0, k):
        with pytest.raises(InvalidParameterError):
            black_scholes(s0, k, 1.0, 0.05, 0.2)

    def test_unknown_option_type(self):
        with pytest.raises(InvalidParameterError):
            black_scholes(100, 100, 1.0, 0.05, 0.2, "straddle")
