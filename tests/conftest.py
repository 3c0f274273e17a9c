from __future__ import annotations

from collections.abc import Iterator

import pytest

from gloam import config
from gloam.events import reset_event_bus_for_testing
from gloam.util import rng
from gloam.util.live_vars import live_variable_registry


@pytest.fixture(autouse=True)
def clear_live_variable_registry() -> Iterator[None]:
    """Clear the global live variable registry before and after each test."""
    live_variable_registry._variables.clear()
    live_variable_registry.strict = False
    yield
    live_variable_registry._variables.clear()


@pytest.fixture(autouse=True)
def reset_event_bus() -> Iterator[None]:
    reset_event_bus_for_testing()
    yield
    reset_event_bus_for_testing()


@pytest.fixture(autouse=True)
def seeded_rng() -> None:
    """Give every test the same RNG streams."""
    rng.init(config.RANDOM_SEED)
