"""Merton jump-diffusion model simulation.

GBM + compound Poisson jumps in log space:
  log(S_{t+dt}/S_t) = (r − λk − σ²/2)dt + σdW + Σ J_i
  N ~ Poisson(λ·dt), J_i ~ Normal(μ_j, σ_j), k = exp(μ_j + σ_j²/2) − 1

The λk compensator keeps the risk-neutral expected return at r.
"""

import logging

import numpy as np

from quantsim.analysis.variates import VariateSource
from quantsim.schemas import JumpEvent, MertonParameters

from . import PRICE_FLOOR, PathArrays, SimModel, time_grid

logger = logging.getLogger(__name__)


def compensator(params: MertonParameters) -> float:
    return float(params.lam * (np.exp(params.mu_j + 0.5 * params.sigma_j**2) - 1.0))


def simulate_merton_paths(
    params: MertonParameters,
    num_paths: int,
    source: VariateSource,
) -> PathArrays:
    """Simulate ``num_paths`` independent jump-diffusion price paths.

    Args:
        params: Merton parameter record.
        num_paths: Number of paths to simulate.
        source: Variate source for diffusion shocks, jump counts and sizes.

    Returns:
        PathArrays with prices (num_paths, steps + 1) plus per-step jump
        counts and summed log-jump sizes (num_paths, steps).
    """
    steps = params.steps
    dt = params.t / steps
    shape = (num_paths, steps)

    # Diffusion component
    dw = source.standard_normal(shape) * np.sqrt(dt)

    # Jump component
    if params.lam > 0:
        jump_counts = source.poisson(params.lam * dt, shape)
    else:
        jump_counts = np.zeros(shape, dtype=np.int64)

    jump_sizes = np.zeros(shape)
    total_jumps = int(jump_counts.sum())
    if total_jumps > 0:
        # Draw every jump at once, then sum the draws back into their cells
        draws = params.mu_j + params.sigma_j * source.standard_normal(total_jumps)
        cells = np.repeat(np.arange(jump_counts.size), jump_counts.ravel())
        jump_sizes = np.bincount(cells, weights=draws, minlength=jump_counts.size).reshape(shape)

    drift = (params.r - compensator(params) - 0.5 * params.sigma**2) * dt
    diffusions = params.sigma * dw
    log_increments = drift + diffusions + jump_sizes

    log_paths = np.zeros((num_paths, steps + 1))
    log_paths[:, 1:] = np.cumsum(log_increments, axis=1)
    prices = np.maximum(params.s0 * np.exp(log_paths), PRICE_FLOOR)

    logger.debug(
        "Merton: simulated %d paths x %d steps, %d jumps", num_paths, steps, total_jumps
    )

    return PathArrays(
        model=SimModel.MERTON.value,
        times=time_grid(params.t, steps),
        prices=prices,
        variances=None,
        jump_counts=jump_counts,
        jump_sizes=jump_sizes,
        diffusions=diffusions,
    )


def extract_jump_events(arrays: PathArrays, path_offset: int = 0) -> list[JumpEvent]:
    """List every (path, step) cell where at least one jump occurred.

    ``path_offset`` shifts path indices so events from separate chunks of a
    batch keep batch-wide indices.
    """
    counts = arrays["jump_counts"]
    if counts is None:
        return []

    rows, cols = np.nonzero(counts)
    times = arrays["times"]
    prices = arrays["prices"]
    sizes = arrays["jump_sizes"]

    return [
        JumpEvent(
            path=int(row) + path_offset,
            time=float(times[col + 1]),
            price=float(prices[row, col + 1]),
            jump_size=float(sizes[row, col]),
            jump_count=int(counts[row, col]),
        )
        for row, col in zip(rows, cols)
    ]


def sample_jump_sizes(params: MertonParameters, n: int, source: VariateSource) -> np.ndarray:
    """Draw ``n`` single log-jump sizes from Normal(μ_j, σ_j)."""
    return params.mu_j + params.sigma_j * source.standard_normal(n)
