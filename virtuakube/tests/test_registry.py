from __future__ import annotations

import pytest

from virtuakube.errors import VMAlreadyRegistered
from virtuakube.registry import VMRegistry


def test_register_and_lookup():
    registry = VMRegistry()
    vm = object()

    registry.register("node1", vm)

    assert registry.lookup("node1") is vm
    assert "node1" in registry
    assert len(registry) == 1


def test_lookup_unknown_hostname_returns_none():
    assert VMRegistry().lookup("ghost") is None


def test_duplicate_hostname_rejected():
    registry = VMRegistry()
    first = object()
    registry.register("node1", first)

    with pytest.raises(VMAlreadyRegistered) as exc_info:
        registry.register("node1", object())

    assert exc_info.value.hostname == "node1"
    assert registry.lookup("node1") is first


def test_empty_hostname_rejected():
    with pytest.raises(ValueError):
        VMRegistry().register("", object())


def test_unregister_and_snapshot_copy():
    registry = VMRegistry()
    registry.register("a", 1)
    registry.register("b", 2)

    snapshot = registry.snapshot()
    snapshot["c"] = 3

    assert registry.unregister("a") == 1
    assert registry.unregister("a") is None
    assert registry.snapshot() == {"b": 2}
