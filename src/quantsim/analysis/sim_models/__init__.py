"""Path simulators for the stochastic price models.

- HESTON: Heston stochastic volatility (two-factor, Euler with variance floor)
- MERTON: Merton jump-diffusion (log-normal diffusion + compound Poisson jumps)

Simulators are vectorised across paths: each row of the returned arrays is
one independent path indexed by step 0..steps.
"""

from enum import Enum
from typing import TypedDict

import numpy as np

from quantsim.schemas import PathPoint

PRICE_FLOOR = 1e-8


class SimModel(str, Enum):
    HESTON = "heston"
    MERTON = "merton"


class PathArrays(TypedDict):
    """Standard return type for all path simulators."""
    model: str
    times: np.ndarray  # (steps + 1,)
    prices: np.ndarray  # (num_paths, steps + 1)
    variances: np.ndarray | None  # (num_paths, steps + 1), Heston only
    jump_counts: np.ndarray | None  # (num_paths, steps), Merton only
    jump_sizes: np.ndarray | None  # (num_paths, steps), Merton only
    diffusions: np.ndarray | None  # (num_paths, steps), σ·dW per step, Merton only


def time_grid(t: float, steps: int) -> np.ndarray:
    """Strictly increasing times from 0 to exactly ``t``."""
    return np.linspace(0.0, t, steps + 1)


def to_path_points(arrays: PathArrays, index: int) -> list[PathPoint]:
    """Convert row ``index`` of a simulation into a list of PathPoint."""
    times = arrays["times"]
    prices = arrays["prices"][index]
    variances = arrays["variances"]
    counts = arrays["jump_counts"]
    sizes = arrays["jump_sizes"]
    diffusions = arrays["diffusions"]

    points = []
    for k in range(len(times)):
        point = {"time": float(times[k]), "price": float(prices[k])}
        if variances is not None:
            point["variance"] = float(variances[index, k])
        if counts is not None and k > 0:
            n = int(counts[index, k - 1])
            point["jump"] = n > 0
            point["jump_count"] = n
            point["jump_size"] = float(sizes[index, k - 1])
        if diffusions is not None and k > 0:
            point["diffusion"] = float(diffusions[index, k - 1])
        points.append(PathPoint(**point))
    return points


__all__ = ["SimModel", "PathArrays", "PRICE_FLOOR", "time_grid", "to_path_points"]
