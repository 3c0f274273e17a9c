from __future__ import annotations

from collections.abc import Sequence
from contextlib import contextmanager, nullcontext, suppress
from dataclasses import dataclass
from time import perf_counter
from typing import NamedTuple

from .metrics import CumulativeVar, MostRecentNVar, StatsVar


class MetricSpec(NamedTuple):
    """Definition for a metric to register in batch."""

    name: str
    description: str
    num_samples: int = 100
    # All-time statistics (CumulativeVar) instead of the most recent samples.
    cumulative: bool = False


# Timing metrics recorded by the AI core. Registered by register_ai_metrics().
AI_METRICS: tuple[MetricSpec, ...] = (
    MetricSpec("time.ai.tick_ms", "Director tick for one actor", 500, cumulative=True),
    MetricSpec("time.ai.fov_ms", "Shadowcasting visibility computation", 500),
    MetricSpec("time.ai.cost_field_ms", "Cost field solve (full or incremental)"),
    MetricSpec("time.ai.pathfinding_ms", "A* search"),
)


@dataclass
class LiveVariable:
    """A timing metric exposed for live inspection (debug overlays, dumps)."""

    name: str
    description: str
    stats_var: StatsVar

    def get_value(self) -> str:
        if self.stats_var.sample_count == 0:
            return "No samples"
        return str(self.stats_var.summary())

    def record_value(self, value: float) -> None:
        self.stats_var.record(value)


class LiveVariableRegistry:
    """Registry for all ``LiveVariable`` instances.

    When ``strict`` is ``True`` (the default), recording a metric that has not
    been registered raises immediately. Test fixtures that clear the registry
    set ``strict = False`` so timing helpers inside library code do not fail
    unrelated tests.
    """

    def __init__(self) -> None:
        self._variables: dict[str, LiveVariable] = {}
        self.strict: bool = True

    def register_metric(
        self,
        name: str,
        description: str = "",
        num_samples: int = 1000,
        *,
        cumulative: bool = False,
    ) -> LiveVariable:
        """Register a metric that tracks sample statistics."""
        if name in self._variables:
            raise ValueError(f"Live variable '{name}' already registered")

        stats_var: StatsVar = (
            CumulativeVar(num_samples) if cumulative else MostRecentNVar(num_samples)
        )

        live_var = LiveVariable(name=name, description=description, stats_var=stats_var)
        self._variables[name] = live_var
        return live_var

    def register_metrics(self, specs: Sequence[MetricSpec]) -> None:
        """Register each spec that is not registered yet."""
        for spec in specs:
            if spec.name in self._variables:
                continue
            self.register_metric(
                spec.name,
                description=spec.description,
                num_samples=spec.num_samples,
                cumulative=spec.cumulative,
            )

    def get_variable(self, name: str) -> LiveVariable | None:
        return self._variables.get(name)

    def get_all_variables(self) -> list[LiveVariable]:
        """Return all registered metrics sorted by name."""
        return sorted(self._variables.values(), key=lambda v: v.name)

    def format_metrics(self) -> list[str]:
        """One ``name: summary`` line per metric that has samples, sorted by name."""
        lines = []
        for var in self.get_all_variables():
            if var.stats_var.sample_count:
                lines.append(f"{var.name}: {var.get_value()}")
        return lines

    def record_metric(self, name: str, value: float) -> None:
        """Record a value to a metric variable.

        Raises:
            KeyError: If the metric name is not registered.
        """
        var = self.get_variable(name)
        if var is None:
            raise KeyError(f"Metric '{name}' is not registered")
        var.record_value(value)


# Global registry instance used throughout the package
live_variable_registry = LiveVariableRegistry()


def register_ai_metrics() -> None:
    """Register the AI timing metrics. Safe to call more than once."""
    live_variable_registry.register_metrics(AI_METRICS)


# Works as both a context manager and a decorator:
#   with record_time_live_variable("time.ai.fov_ms"): ...
#   @record_time_live_variable("time.ai.fov_ms")
@contextmanager
def record_time_live_variable(metric_name: str):
    """Record elapsed wall-clock time (ms) to the named metric.

    In strict mode an unregistered metric raises ``KeyError``; in non-strict
    mode the sample is dropped.
    """
    start = perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (perf_counter() - start) * 1000
        ctx = nullcontext() if live_variable_registry.strict else suppress(KeyError)
        with ctx:
            live_variable_registry.record_metric(metric_name, elapsed_ms)


register_ai_metrics()
