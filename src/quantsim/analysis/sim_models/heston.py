"""Heston stochastic volatility model simulation.

Two coupled SDEs with Euler-Maruyama discretisation:
  dS = r·S·dt + √V·S·dW₁
  dV = κ(θ − V)dt + σ√V·dW₂
  corr(W₁, W₂) = ρ

The scheme cannot keep V positive on its own, so V is floored after every
step and √V is taken from |V| with the same floor.
"""

import logging

import numpy as np

from quantsim.analysis.variates import VariateSource
from quantsim.schemas import HestonParameters

from . import PRICE_FLOOR, PathArrays, SimModel, time_grid

logger = logging.getLogger(__name__)

VARIANCE_FLOOR = 0.001


def simulate_heston_paths(
    params: HestonParameters,
    num_paths: int,
    source: VariateSource,
) -> PathArrays:
    """Simulate ``num_paths`` independent (price, variance) paths.

    Args:
        params: Heston parameter record.
        num_paths: Number of paths to simulate.
        source: Variate source supplying the correlated shocks.

    Returns:
        PathArrays with prices and variances of shape (num_paths, steps + 1).
    """
    steps = params.steps
    dt = params.t / steps
    sqrt_dt = np.sqrt(dt)

    prices = np.empty((num_paths, steps + 1))
    variances = np.empty((num_paths, steps + 1))
    prices[:, 0] = params.s0
    variances[:, 0] = max(params.v0, VARIANCE_FLOOR)

    s = prices[:, 0].copy()
    v = variances[:, 0].copy()

    for t in range(steps):
        dw1, dw2 = source.correlated_normals(params.rho, num_paths)
        sqrt_v = np.maximum(np.sqrt(np.abs(v)), VARIANCE_FLOOR)

        s = s + params.r * s * dt + sqrt_v * s * dw1 * sqrt_dt
        s = np.maximum(s, PRICE_FLOOR)

        v = v + params.kappa * (params.theta - v) * dt + params.sigma * sqrt_v * dw2 * sqrt_dt
        v = np.maximum(v, VARIANCE_FLOOR)

        prices[:, t + 1] = s
        variances[:, t + 1] = v

    logger.debug("Heston: simulated %d paths x %d steps", num_paths, steps)

    return PathArrays(
        model=SimModel.HESTON.value,
        times=time_grid(params.t, steps),
        prices=prices,
        variances=variances,
        jump_counts=None,
        jump_sizes=None,
        diffusions=None,
    )


def feller_ratio(params: HestonParameters) -> float:
    """2κθ/σ²; at least 1 keeps continuous-time variance strictly positive."""
    return 2.0 * params.kappa * params.theta / params.sigma**2


def vol_of_vol(params: HestonParameters) -> float:
    return float(np.sqrt(params.v0) * params.sigma)
