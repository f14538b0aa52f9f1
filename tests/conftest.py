"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from quantsim.analysis.variates import BoxMullerSource


class ConstantSource:
    """Deterministic variate source.

    Every normal shock is zero, every Poisson count is zero and every
    uniform equals ``u``.
    """

    def __init__(self, u: float = 0.5):
        self.u = u

    def uniform(self, size=None):
        return self.u if size is None else np.full(size, self.u)

    def standard_normal(self, size=None):
        return 0.0 if size is None else np.zeros(size)

    def poisson(self, mean_rate, size=None):
        return 0 if size is None else np.zeros(size, dtype=np.int64)

    def correlated_normals(self, rho, size=None):
        return self.standard_normal(size), self.standard_normal(size)


class ScriptedRng:
    """Stand-in for np.random.Generator replaying a fixed list of uniforms."""

    def __init__(self, values):
        self._values = list(values)

    def _next(self):
        return self._values.pop(0)

    def random(self, size=None):
        if size is None:
            return self._next()
        n = int(np.prod(size))
        return np.array([self._next() for _ in range(n)]).reshape(size)


@pytest.fixture
def rng():
    return np.random.default_rng(12345)


@pytest.fixture
def source(rng):
    return BoxMullerSource(rng)


@pytest.fixture
def zero_source():
    return ConstantSource(0.5)
