"""Kelly criterion position sizing.

Optimal fraction for a repeated binary bet that wins ``b`` times the stake
with probability ``p`` and loses ``a`` times the stake otherwise:

  f* = (p·b − (1 − p)·a) / (a·b),  clamped to [0, 1]
  g(f) = p·ln(1 + f·b) + (1 − p)·ln(1 − f·a)
"""

import logging
import math

import numpy as np

from quantsim.analysis.variates import VariateSource
from quantsim.errors import InvalidParameterError, NumericalDegeneracyError
from quantsim.schemas import KellyParameters, StrategyResult

logger = logging.getLogger(__name__)

FIXED_FRACTION = 0.05

# Strategy name -> multiple of the Kelly fraction (None: fixed fraction)
STRATEGIES = {
    "Full Kelly": 1.0,
    "Half Kelly": 0.5,
    "Double Kelly": 2.0,
    "Fixed 5%": None,
}


def _check_bet(p: float, b: float, a: float):
    if not 0.0 <= p <= 1.0:
        raise InvalidParameterError(f"win probability must lie in [0, 1], got {p}")
    if b <= 0 or a <= 0:
        raise InvalidParameterError(f"win and loss ratios must be positive, got b={b}, a={a}")


def clamp_fraction(f: float) -> float:
    return min(1.0, max(0.0, f))


def kelly_fraction(p: float, b: float, a: float) -> float:
    """Growth-optimal capital fraction, clamped to [0, 1]."""
    _check_bet(p, b, a)
    return clamp_fraction((p * b - (1.0 - p) * a) / (a * b))


def expected_growth_rate(f: float, p: float, b: float, a: float) -> float:
    """Expected log-growth of capital per bet when staking fraction ``f``.

    Raises:
        NumericalDegeneracyError: a loss (with non-zero probability) would
            wipe out the whole bankroll, i.e. ``1 - f·a <= 0``.
    """
    _check_bet(p, b, a)
    if f < 0:
        raise InvalidParameterError(f"fraction must be non-negative, got {f}")

    growth = p * math.log1p(f * b)
    if p < 1.0:
        if 1.0 - f * a <= 0.0:
            raise NumericalDegeneracyError(
                f"fraction {f:.4f} with loss ratio {a} risks total ruin in one bet"
            )
        growth += (1.0 - p) * math.log1p(-f * a)
    return growth


def simulate_betting(
    fraction: float,
    params: KellyParameters,
    num_runs: int,
    source: VariateSource,
) -> np.ndarray:
    """Capital trajectories of shape (num_runs, num_bets + 1).

    Every bet stakes ``fraction`` of current capital; capital never drops
    below zero, which marks ruin.
    """
    f = clamp_fraction(fraction)
    num_bets = params.num_bets

    wins = source.uniform((num_runs, num_bets)) < params.win_prob

    capital = np.empty((num_runs, num_bets + 1))
    capital[:, 0] = params.initial_capital
    c = capital[:, 0].copy()

    for i in range(num_bets):
        stake = c * f
        c = np.where(wins[:, i], c + stake * params.win_ratio, c - stake * params.loss_ratio)
        c = np.maximum(c, 0.0)
        capital[:, i + 1] = c

    return capital


def strategy_fractions(kelly: float) -> dict[str, float]:
    """Nominal fraction per strategy, before clamping."""
    return {
        name: FIXED_FRACTION if multiple is None else kelly * multiple
        for name, multiple in STRATEGIES.items()
    }


def simulate_strategies(params: KellyParameters, source: VariateSource) -> dict[str, StrategyResult]:
    """Average ``num_simulations`` capital trajectories for each strategy."""
    p, b, a = params.win_prob, params.win_ratio, params.loss_ratio
    kelly = kelly_fraction(p, b, a)

    results: dict[str, StrategyResult] = {}
    for name, nominal in strategy_fractions(kelly).items():
        fraction = clamp_fraction(nominal)
        if fraction != nominal:
            logger.debug("Kelly: %s fraction %.4f clamped to %.4f", name, nominal, fraction)

        runs = simulate_betting(fraction, params, params.num_simulations, source)

        try:
            growth = expected_growth_rate(fraction, p, b, a)
        except NumericalDegeneracyError as e:
            logger.info("Kelly: no growth rate for %s: %s", name, e)
            growth = None

        results[name] = StrategyResult(
            name=name,
            fraction=fraction,
            trajectory=runs.mean(axis=0).tolist(),
            growth_rate=growth,
            ruined_runs=int(np.sum(runs[:, -1] <= 0.0)),
        )

    return results
