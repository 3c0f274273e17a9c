"""Sample trackers behind the live timing metrics.

Two flavours share one summary interface:

- MostRecentNVar keeps a ring buffer, so percentiles describe recent ticks.
- CumulativeVar keeps an exact all-time count, mean and max plus a uniform
  reservoir of samples for percentiles.
"""

import abc
from typing import NamedTuple

import numpy as np

from gloam.util import rng

_rng = rng.get("util.metrics")


class StatsSummary(NamedTuple):
    count: int
    mean: float
    p50: float
    p95: float
    p99: float
    max: float

    def __str__(self) -> str:
        return (
            f"n={self.count} mean={self.mean:.2f} p50={self.p50:.2f} "
            f"p95={self.p95:.2f} p99={self.p99:.2f} max={self.max:.2f}"
        )


class StatsVar(abc.ABC):
    """Abstract base class for tracking statistics of a variable over time."""

    @abc.abstractmethod
    def record(self, value: float) -> None:
        """Record a new sample value."""
        pass

    @property
    @abc.abstractmethod
    def sample_count(self) -> int:
        pass

    @abc.abstractmethod
    def _get_valid_samples(self) -> np.ndarray:
        pass

    def get_percentiles(self) -> tuple[float, float, float]:
        """Return (p50, p95, p99) as a tuple of floats."""
        valid = self._get_valid_samples()
        if len(valid) == 0:
            return (0.0, 0.0, 0.0)

        p50, p95, p99 = np.percentile(valid, [50, 95, 99])
        return (float(p50), float(p95), float(p99))

    def summary(self) -> StatsSummary:
        valid = self._get_valid_samples()
        p50, p95, p99 = self.get_percentiles()
        if len(valid) == 0:
            return StatsSummary(0, 0.0, p50, p95, p99, 0.0)
        return StatsSummary(
            self.sample_count, float(valid.mean()), p50, p95, p99, float(valid.max())
        )

    def get_percentiles_string(self) -> str:
        p50, p95, p99 = self.get_percentiles()
        return f"p50={p50:.2f} p95={p95:.2f} p99={p99:.2f}"


class MostRecentNVar(StatsVar):
    """Track statistics for the most recent N samples (ring buffer)."""

    def __init__(self, num_samples: int = 1000) -> None:
        self.num_samples = num_samples
        self.samples = np.zeros(num_samples, dtype=np.float64)
        self.count = 0
        self.write_index = 0

    def record(self, value: float) -> None:
        self.samples[self.write_index] = value
        self.write_index = (self.write_index + 1) % self.num_samples
        self.count += 1

    def _get_valid_samples(self) -> np.ndarray:
        if self.count <= self.num_samples:
            return self.samples[: self.count]

        # Wrapped - restore chronological order
        return np.concatenate(
            [self.samples[self.write_index :], self.samples[: self.write_index]]
        )

    @property
    def sample_count(self) -> int:
        return min(self.count, self.num_samples)


class CumulativeVar(StatsVar):
    """Track all-time statistics with a bounded reservoir for percentiles.

    Count, mean and max are exact. Percentiles come from a uniform reservoir
    sample drawn from the ``util.metrics`` RNG stream, so they are
    reproducible for a given master seed.
    """

    def __init__(self, num_samples: int = 1000) -> None:
        self.num_samples = num_samples
        self.samples = np.zeros(num_samples, dtype=np.float64)
        self.count = 0
        self.sum_value = 0.0
        self.max_value = 0.0

    def record(self, value: float) -> None:
        self.count += 1
        self.sum_value += value
        self.max_value = value if self.count == 1 else max(self.max_value, value)

        if self.count <= self.num_samples:
            self.samples[self.count - 1] = value
            return
        j = _rng.randint(0, self.count - 1)
        if j < self.num_samples:
            self.samples[j] = value

    def _get_valid_samples(self) -> np.ndarray:
        return self.samples[: min(self.count, self.num_samples)]

    def summary(self) -> StatsSummary:
        if self.count == 0:
            return StatsSummary(0, 0.0, 0.0, 0.0, 0.0, 0.0)
        p50, p95, p99 = self.get_percentiles()
        return StatsSummary(
            self.count, self.sum_value / self.count, p50, p95, p99, self.max_value
        )

    @property
    def sample_count(self) -> int:
        return self.count
