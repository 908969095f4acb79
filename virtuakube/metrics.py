"""Prometheus metrics for universe lifecycles.

Tracks live universes, teardowns by trigger, resource allocations and
virtual switch exits. ``get_metrics`` renders them in Prometheus
exposition format for whatever process embeds the universe.
"""
from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    generate_latest,
)

universes_active = Gauge(
    "virtuakube_universes_active",
    "Universes created and not yet torn down",
)

universe_teardowns = Counter(
    "virtuakube_universe_teardowns_total",
    "Universe teardowns by the trigger that ran them",
    ["trigger"],
)

resource_allocations = Counter(
    "virtuakube_resource_allocations_total",
    "Resources handed out by universe allocators",
    ["kind"],
)

switch_exits = Counter(
    "virtuakube_switch_exits_total",
    "Virtual switch process exits",
    ["expected"],
)


def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
