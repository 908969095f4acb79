"""Exceptions raised by universe construction and allocation."""

from __future__ import annotations


class VirtuakubeError(Exception):
    """Base exception for universe errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingDependency(VirtuakubeError):
    """One or more required external tools are not on PATH."""

    def __init__(self, missing: list[str]):
        super().__init__(f"required tools missing: {', '.join(missing)}")
        self.missing = list(missing)


class ProcessSpawnError(VirtuakubeError):
    """The virtual switch process failed to start."""

    def __init__(self, message: str, argv: list[str] | None = None):
        super().__init__(message)
        self.argv = list(argv or [])


class Timeout(VirtuakubeError, TimeoutError):
    """A wait deadline elapsed before the universe ended."""


class AddressExhausted(VirtuakubeError):
    """An address allocator ran out of values in its last byte."""

    def __init__(self, message: str, family: str):
        super().__init__(message)
        self.family = family


class VMAlreadyRegistered(VirtuakubeError):
    """A VM with the same hostname is already in the registry."""

    def __init__(self, hostname: str):
        super().__init__(f"VM {hostname!r} is already registered")
        self.hostname = hostname
