"""Monte Carlo aggregation.

Drives a path simulator over a batch of independent paths, keeps every
terminal value plus a bounded set of full display paths, and reduces the
terminal values into moments, option estimates and histogram bins.

Partial results merge associatively, so chunks may be simulated in any
order or in separate worker processes.
"""

import logging
import math
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, TypedDict

import numpy as np

from quantsim.analysis.sim_models import PathArrays, to_path_points
from quantsim.analysis.sim_models.merton import extract_jump_events
from quantsim.errors import InvalidParameterError, SimulationAborted
from quantsim.schemas import HistogramBin, JumpEvent, PathPoint, StatisticsBundle

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_PATHS = 10
DEFAULT_HISTOGRAM_BINS = 20
DEFAULT_CHUNK_SIZE = 5000

Simulator = Callable[..., PathArrays]


# ---------------------------------------------------------------------------
# Associative reductions
# ---------------------------------------------------------------------------


@dataclass
class TerminalStats:
    """Running count, mean, sum of squared deviations and range."""

    count: int = 0
    mean: float = 0.0
    m2: float = 0.0
    minimum: float = math.inf
    maximum: float = -math.inf

    @classmethod
    def from_values(cls, values: np.ndarray) -> "TerminalStats":
        if len(values) == 0:
            return cls()
        lo, hi = float(np.min(values)), float(np.max(values))
        if lo == hi:
            # np.mean can land an ulp away from a constant value
            return cls(count=len(values), mean=lo, m2=0.0, minimum=lo, maximum=hi)
        mean = float(np.mean(values))
        return cls(
            count=len(values),
            mean=mean,
            m2=float(np.sum((values - mean) ** 2)),
            minimum=lo,
            maximum=hi,
        )

    def merge(self, other: "TerminalStats") -> "TerminalStats":
        """Combine two partial reductions (Chan et al. pairwise update)."""
        if other.count == 0:
            return self
        if self.count == 0:
            return other
        count = self.count + other.count
        minimum = min(self.minimum, other.minimum)
        maximum = max(self.maximum, other.maximum)
        if minimum == maximum:
            return TerminalStats(count=count, mean=minimum, m2=0.0, minimum=minimum, maximum=maximum)
        delta = other.mean - self.mean
        return TerminalStats(
            count=count,
            mean=self.mean + delta * other.count / count,
            m2=self.m2 + other.m2 + delta**2 * self.count * other.count / count,
            minimum=minimum,
            maximum=maximum,
        )

    @property
    def std(self) -> float:
        """Population standard deviation (divides by N)."""
        if self.count == 0:
            return 0.0
        return math.sqrt(self.m2 / self.count)


@dataclass
class SimulationBatch:
    """All outcomes of one aggregator run, or of one chunk of it."""

    num_paths: int
    terminal: np.ndarray
    stats: TerminalStats
    paths: list[list[PathPoint]] = field(default_factory=list)
    jumps: list[JumpEvent] = field(default_factory=list)
    total_jumps: int = 0
    jump_size_sum: float = 0.0

    def merge(self, other: "SimulationBatch") -> "SimulationBatch":
        """Append ``other``; path order follows argument order."""
        return SimulationBatch(
            num_paths=self.num_paths + other.num_paths,
            terminal=np.concatenate([self.terminal, other.terminal]),
            stats=self.stats.merge(other.stats),
            paths=self.paths + other.paths,
            jumps=self.jumps + other.jumps,
            total_jumps=self.total_jumps + other.total_jumps,
            jump_size_sum=self.jump_size_sum + other.jump_size_sum,
        )


# ---------------------------------------------------------------------------
# Batch driver
# ---------------------------------------------------------------------------


def _simulate_chunk(
    simulator: Simulator,
    params,
    num_paths: int,
    source,
    path_offset: int,
    keep_paths: int,
) -> SimulationBatch:
    """Simulate one chunk. Module-level so ProcessPoolExecutor can pickle it."""
    arrays = simulator(params, num_paths, source)
    terminal = arrays["prices"][:, -1].copy()

    counts = arrays["jump_counts"]
    total_jumps = 0 if counts is None else int(counts.sum())
    jump_size_sum = 0.0 if counts is None else float(arrays["jump_sizes"].sum())

    return SimulationBatch(
        num_paths=num_paths,
        terminal=terminal,
        stats=TerminalStats.from_values(terminal),
        paths=[to_path_points(arrays, i) for i in range(min(keep_paths, num_paths))],
        jumps=extract_jump_events(arrays, path_offset),
        total_jumps=total_jumps,
        jump_size_sum=jump_size_sum,
    )


def _chunk_plan(num_paths: int, chunk_size: int) -> list[tuple[int, int]]:
    """(offset, size) pairs covering ``num_paths``."""
    return [
        (offset, min(chunk_size, num_paths - offset))
        for offset in range(0, num_paths, chunk_size)
    ]


def run_batch(
    simulator: Simulator,
    params,
    num_paths: int,
    source,
    display_paths: int = DEFAULT_DISPLAY_PATHS,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_workers: int = 1,
    should_stop: Callable[[], bool] | None = None,
) -> SimulationBatch:
    """Run ``num_paths`` independent paths through ``simulator``.

    Args:
        simulator: Callable ``(params, num_paths, source) -> PathArrays``.
        params: Parameter record passed through to the simulator.
        num_paths: Total number of paths in the batch.
        source: Variate source. Sequential runs consume it chunk by chunk;
            parallel runs give every chunk an independent child stream.
        display_paths: Number of leading paths retained in full.
        chunk_size: Paths simulated per chunk.
        max_workers: Worker processes; 1 runs in the calling process.
        should_stop: Polled between chunks; returning True aborts the batch.

    Returns:
        SimulationBatch covering every path, in path order.

    Raises:
        InvalidParameterError: non-positive path count, chunk size or
            worker count, or a negative display count.
        SimulationAborted: ``should_stop`` returned True.
    """
    if num_paths < 1:
        raise InvalidParameterError(f"num_paths must be >= 1, got {num_paths}")
    if chunk_size < 1:
        raise InvalidParameterError(f"chunk_size must be >= 1, got {chunk_size}")
    if max_workers < 1:
        raise InvalidParameterError(f"max_workers must be >= 1, got {max_workers}")
    if display_paths < 0:
        raise InvalidParameterError(f"display_paths must be >= 0, got {display_paths}")

    plan = _chunk_plan(num_paths, chunk_size)

    if max_workers > 1 and len(plan) > 1:
        parts = _run_parallel(simulator, params, source, plan, display_paths, max_workers, should_stop)
    else:
        parts = []
        for offset, size in plan:
            _check_stop(should_stop, offset, num_paths)
            parts.append(
                _simulate_chunk(simulator, params, size, source, offset, display_paths - offset)
            )

    batch = parts[0]
    for part in parts[1:]:
        batch = batch.merge(part)

    logger.info(
        "Batch complete: %d paths in %d chunk(s), %d display paths",
        batch.num_paths, len(plan), len(batch.paths),
    )
    return batch


def _run_parallel(
    simulator: Simulator,
    params,
    source,
    plan: list[tuple[int, int]],
    display_paths: int,
    max_workers: int,
    should_stop: Callable[[], bool] | None,
) -> list[SimulationBatch]:
    children = source.spawn(len(plan))
    workers = min(max_workers, len(plan))
    logger.info("Running %d chunks with %d workers", len(plan), workers)

    parts: list[SimulationBatch | None] = [None] * len(plan)
    with ProcessPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(
                _simulate_chunk, simulator, params, size, child, offset, display_paths - offset
            ): i
            for i, ((offset, size), child) in enumerate(zip(plan, children))
        }
        done = 0
        for future in as_completed(futures):
            parts[futures[future]] = future.result()
            done += 1
            if done < len(plan) and should_stop is not None and should_stop():
                for pending in futures:
                    pending.cancel()
                logger.warning("Batch aborted after %d of %d chunks", done, len(plan))
                raise SimulationAborted(f"aborted after {done} of {len(plan)} chunks")

    return parts


def _check_stop(should_stop: Callable[[], bool] | None, offset: int, num_paths: int):
    if should_stop is not None and should_stop():
        logger.warning("Batch aborted after %d of %d paths", offset, num_paths)
        raise SimulationAborted(f"aborted after {offset} of {num_paths} paths")


# ---------------------------------------------------------------------------
# Reductions over terminal values
# ---------------------------------------------------------------------------


class OptionEstimate(TypedDict):
    call: float
    put: float
    call_stderr: float
    put_stderr: float


def option_prices(terminal: np.ndarray, strike: float, r: float, t: float) -> OptionEstimate:
    """Discounted mean call and put payoffs with their standard errors."""
    terminal = np.asarray(terminal, dtype=float)
    if terminal.size == 0:
        raise InvalidParameterError("option_prices needs at least one terminal value")

    discount = math.exp(-r * t)
    calls = discount * np.maximum(terminal - strike, 0.0)
    puts = discount * np.maximum(strike - terminal, 0.0)

    return OptionEstimate(
        call=float(calls.mean()),
        put=float(puts.mean()),
        call_stderr=_stderr(calls),
        put_stderr=_stderr(puts),
    )


def _stderr(samples: np.ndarray) -> float:
    if samples.size < 2:
        return 0.0
    return float(samples.std(ddof=1) / math.sqrt(samples.size))


def histogram(values: np.ndarray, bins: int = DEFAULT_HISTOGRAM_BINS) -> list[HistogramBin]:
    """Equal-width bins over [min, max]; counts always sum to len(values).

    The last bin is closed on the right so the maximum is counted. When every
    value is equal the bin width would be zero, so a single bin holds them all.
    """
    values = np.asarray(values, dtype=float)
    n = values.size
    if n == 0:
        raise InvalidParameterError("histogram needs at least one value")
    if bins < 1:
        raise InvalidParameterError(f"bins must be >= 1, got {bins}")

    lo, hi = float(values.min()), float(values.max())
    if hi == lo:
        return [HistogramBin(lower=lo, upper=hi, count=n, frequency=1.0)]

    width = (hi - lo) / bins
    idx = np.clip(np.floor((values - lo) / width).astype(np.int64), 0, bins - 1)
    counts = np.bincount(idx, minlength=bins)

    return [
        HistogramBin(
            lower=lo + i * width,
            upper=hi if i == bins - 1 else lo + (i + 1) * width,
            count=int(c),
            frequency=float(c) / n,
        )
        for i, c in enumerate(counts)
    ]


def build_statistics(
    batch: SimulationBatch,
    strike: float,
    r: float,
    t: float,
    bs_call: float,
    bs_put: float,
    diagnostics: dict[str, float],
) -> StatisticsBundle:
    """Reduce a batch into its statistics bundle."""
    options = option_prices(batch.terminal, strike, r, t)
    return StatisticsBundle(
        num_paths=batch.num_paths,
        mean=batch.stats.mean,
        std=batch.stats.std,
        strike=strike,
        call_price=options["call"],
        put_price=options["put"],
        call_stderr=options["call_stderr"],
        put_stderr=options["put_stderr"],
        bs_call_price=bs_call,
        bs_put_price=bs_put,
        diagnostics=diagnostics,
    )
