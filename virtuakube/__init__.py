"""Isolated virtual test networks for multi-node VM clusters."""

from virtuakube.errors import (
    AddressExhausted,
    MissingDependency,
    ProcessSpawnError,
    Timeout,
    VirtuakubeError,
    VMAlreadyRegistered,
)
from virtuakube.lifetime import Lifetime
from virtuakube.universe import Universe

__all__ = [
    "AddressExhausted",
    "Lifetime",
    "MissingDependency",
    "ProcessSpawnError",
    "Timeout",
    "Universe",
    "VirtuakubeError",
    "VMAlreadyRegistered",
]
