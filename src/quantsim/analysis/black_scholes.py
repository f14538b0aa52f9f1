"""Closed-form Black-Scholes prices used as a baseline for Monte Carlo results."""

import math

from scipy.special import erf

from quantsim.errors import InvalidParameterError, NumericalDegeneracyError

OPTION_TYPES = ("call", "put")


def normal_cdf(x: float) -> float:
    """Standard normal CDF via the error function."""
    return float(0.5 * (1.0 + erf(x / math.sqrt(2.0))))


def black_scholes(
    s0: float,
    k: float,
    t: float,
    r: float,
    sigma: float,
    option: str = "call",
) -> float:
    """European option price under Black-Scholes.

    Raises:
        InvalidParameterError: non-positive spot or strike, negative time or
            volatility, or an unknown option type.
        NumericalDegeneracyError: zero total volatility (σ√T = 0), where d1
            is undefined.
    """
    if option not in OPTION_TYPES:
        raise InvalidParameterError(f"option must be one of {OPTION_TYPES}, got {option!r}")
    if s0 <= 0 or k <= 0:
        raise InvalidParameterError(f"spot and strike must be positive, got s0={s0}, k={k}")
    if t < 0 or sigma < 0:
        raise InvalidParameterError(f"t and sigma must be non-negative, got t={t}, sigma={sigma}")

    vol_sqrt_t = sigma * math.sqrt(t)
    if vol_sqrt_t == 0.0:
        raise NumericalDegeneracyError(
            f"Black-Scholes undefined for zero total volatility (sigma={sigma}, t={t})"
        )

    d1 = (math.log(s0 / k) + (r + 0.5 * sigma**2) * t) / vol_sqrt_t
    d2 = d1 - vol_sqrt_t
    discount = math.exp(-r * t)

    if option == "call":
        return s0 * normal_cdf(d1) - k * discount * normal_cdf(d2)
    return k * discount * normal_cdf(-d2) - s0 * normal_cdf(-d1)
