"""Random variate generation.

Every simulator draws through a ``VariateSource`` handed to it explicitly,
so runs can be seeded, replayed in tests and split into independent
streams for parallel workers.
"""

import logging
import math
from typing import Protocol

import numpy as np

from quantsim.errors import InvalidParameterError

logger = logging.getLogger(__name__)

_TINY = np.finfo(float).tiny
_TWO_PI = 2.0 * math.pi
# exp(-mean) stays well clear of float underflow (near 745) below this
_KNUTH_MAX_MEAN = 500.0


class VariateSource(Protocol):
    def uniform(self, size=None): ...

    def standard_normal(self, size=None): ...

    def poisson(self, mean_rate: float, size=None): ...

    def correlated_normals(self, rho: float, size=None): ...


class BoxMullerSource:
    """Uniform-driven variate source backed by a NumPy generator.

    Normals use the cosine branch of the Box-Muller transform and Poisson
    counts use Knuth's multiplication method, both fed by uniforms in (0, 1).
    """

    def __init__(self, rng: np.random.Generator):
        self._rng = rng

    def uniform(self, size=None):
        u = np.maximum(self._rng.random(size), _TINY)
        return float(u) if size is None else u

    def standard_normal(self, size=None):
        u1 = self.uniform(size)
        u2 = self.uniform(size)
        z = np.sqrt(-2.0 * np.log(u1)) * np.cos(_TWO_PI * u2)
        return float(z) if size is None else z

    def poisson(self, mean_rate: float, size=None):
        if mean_rate < 0 or not math.isfinite(mean_rate):
            raise InvalidParameterError(f"Poisson mean must be finite and >= 0, got {mean_rate}")

        shape = (1,) if size is None else size
        if mean_rate > _KNUTH_MAX_MEAN:
            # Poisson(λ) is the sum of n Poisson(λ/n) draws
            parts = math.ceil(mean_rate / _KNUTH_MAX_MEAN)
            counts = sum(self._knuth(mean_rate / parts, shape) for _ in range(parts))
        else:
            counts = self._knuth(mean_rate, shape)
        return int(counts[0]) if size is None else counts

    def _knuth(self, mean_rate: float, shape) -> np.ndarray:
        threshold = math.exp(-mean_rate)
        counts = np.zeros(shape, dtype=np.int64)
        product = np.ones(shape)
        active = np.ones(shape, dtype=bool)

        # Each cell keeps multiplying uniforms until its product drops to the threshold
        while active.any():
            counts[active] += 1
            product[active] *= self.uniform(int(active.sum()))
            active &= product > threshold

        return counts - 1

    def correlated_normals(self, rho: float, size=None):
        """Return ``(w1, w2)`` with Pearson correlation ``rho``."""
        if not -1.0 <= rho <= 1.0:
            raise InvalidParameterError(f"Correlation must lie in [-1, 1], got {rho}")
        u1 = self.standard_normal(size)
        u2 = self.standard_normal(size)
        return u1, rho * u1 + math.sqrt(1.0 - rho * rho) * u2

    def spawn(self, n: int) -> list["BoxMullerSource"]:
        """Independent child sources, one per parallel worker."""
        return [BoxMullerSource(child) for child in self._rng.spawn(n)]


def make_source(seed: int | None = None) -> BoxMullerSource:
    """Build a source from ``seed``; ``None`` draws fresh OS entropy."""
    return BoxMullerSource(np.random.default_rng(seed))
