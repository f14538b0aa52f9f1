"""Simulation orchestrator.

Entry points handed to the presentation layer: each takes an explicit
parameter record, runs the matching simulator through the Monte Carlo
aggregator and returns a fresh result bundle. Nothing is cached between
calls.
"""

import logging
import math
from typing import Callable

from quantsim.analysis.aggregation import build_statistics, histogram, run_batch
from quantsim.analysis.black_scholes import black_scholes
from quantsim.analysis.kelly import expected_growth_rate, kelly_fraction, simulate_strategies
from quantsim.analysis.sim_models.heston import feller_ratio, simulate_heston_paths, vol_of_vol
from quantsim.analysis.sim_models.merton import (
    compensator,
    sample_jump_sizes,
    simulate_merton_paths,
)
from quantsim.analysis.variates import VariateSource, make_source
from quantsim.config import Settings
from quantsim.schemas import (
    HestonParameters,
    HestonResult,
    KellyParameters,
    KellyResult,
    MertonParameters,
    MertonResult,
    validated,
)

logger = logging.getLogger(__name__)


def _batch_options(settings: Settings) -> dict:
    return {
        "display_paths": settings.simulation_display_paths,
        "chunk_size": settings.simulation_chunk_size,
        "max_workers": settings.simulation_max_workers,
    }


# ---------------------------------------------------------------------------
# Heston
# ---------------------------------------------------------------------------


def simulate_heston(
    params: HestonParameters,
    source: VariateSource | None = None,
    settings: Settings | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> HestonResult:
    """Monte Carlo run of the Heston model with a Black-Scholes baseline.

    The baseline prices with constant volatility √V0, so the gap between
    the two prices shows the effect of stochastic variance.
    """
    params = validated(params)
    settings = settings or Settings()
    source = source if source is not None else make_source()

    feller = feller_ratio(params)
    if feller < 1.0:
        logger.warning(
            "Heston: Feller condition violated (2κθ/σ²=%.4f < 1). "
            "Variance may hit the floor; the floor will hold it positive.",
            feller,
        )

    batch = run_batch(
        simulate_heston_paths, params, params.num_paths, source,
        should_stop=should_stop, **_batch_options(settings),
    )

    strike = params.effective_strike
    sigma_bs = math.sqrt(params.v0)
    statistics = build_statistics(
        batch, strike, params.r, params.t,
        bs_call=black_scholes(params.s0, strike, params.t, params.r, sigma_bs, "call"),
        bs_put=black_scholes(params.s0, strike, params.t, params.r, sigma_bs, "put"),
        diagnostics={
            "feller_condition": feller,
            "vol_of_vol": vol_of_vol(params),
        },
    )

    return HestonResult(paths=batch.paths, statistics=statistics)


# ---------------------------------------------------------------------------
# Merton
# ---------------------------------------------------------------------------


def simulate_merton(
    params: MertonParameters,
    source: VariateSource | None = None,
    settings: Settings | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> MertonResult:
    """Monte Carlo run of the Merton model with a jump-free Black-Scholes baseline."""
    params = validated(params)
    settings = settings or Settings()
    source = source if source is not None else make_source()

    batch = run_batch(
        simulate_merton_paths, params, params.num_paths, source,
        should_stop=should_stop, **_batch_options(settings),
    )

    # A jump event is a step with at least one jump; its size is the step's summed log-jump
    jump_events = len(batch.jumps)
    avg_jump_size = batch.jump_size_sum / jump_events if jump_events else 0.0

    results = build_statistics(
        batch, params.strike, params.r, params.t,
        bs_call=black_scholes(params.s0, params.strike, params.t, params.r, params.sigma, "call"),
        bs_put=black_scholes(params.s0, params.strike, params.t, params.r, params.sigma, "put"),
        diagnostics={
            "total_jumps": float(jump_events),
            "total_jump_draws": float(batch.total_jumps),
            "avg_jump_size": avg_jump_size,
            "jump_frequency": jump_events / (batch.num_paths * params.t),
            "compensator": compensator(params),
        },
    )

    bins = settings.simulation_histogram_bins
    jump_distribution = []
    if settings.jump_distribution_samples > 0:
        jump_distribution = histogram(
            sample_jump_sizes(params, settings.jump_distribution_samples, source), bins
        )

    return MertonResult(
        paths=batch.paths,
        jumps=batch.jumps,
        distribution=histogram(batch.terminal, bins),
        jump_distribution=jump_distribution,
        results=results,
    )


# ---------------------------------------------------------------------------
# Kelly
# ---------------------------------------------------------------------------


def kelly_analysis(
    params: KellyParameters,
    source: VariateSource | None = None,
) -> KellyResult:
    """Optimal Kelly fraction, its growth rate and the strategy comparison."""
    params = validated(params)
    source = source if source is not None else make_source()

    p, b, a = params.win_prob, params.win_ratio, params.loss_ratio
    optimal = kelly_fraction(p, b, a)
    growth = expected_growth_rate(optimal, p, b, a)
    logger.debug("Kelly: f*=%.4f, growth=%.6f per bet", optimal, growth)

    return KellyResult(
        optimal_fraction=optimal,
        growth_rate=growth,
        strategies=simulate_strategies(params, source),
    )
