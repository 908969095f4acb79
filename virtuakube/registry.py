"""Hostname to VM handle registry."""

from __future__ import annotations

import threading
from typing import Any

from virtuakube.errors import VMAlreadyRegistered


class VMRegistry:
    """Maps VM hostnames to the handles created by VM management.

    The registry only references VMs; creating and destroying them is the
    caller's job.
    """

    def __init__(self):
        self._vms: dict[str, Any] = {}
        self._lock = threading.Lock()

    def register(self, hostname: str, vm: Any) -> None:
        if not hostname:
            raise ValueError("VM hostname must not be empty")
        with self._lock:
            if hostname in self._vms:
                raise VMAlreadyRegistered(hostname)
            self._vms[hostname] = vm

    def unregister(self, hostname: str) -> Any | None:
        with self._lock:
            return self._vms.pop(hostname, None)

    def lookup(self, hostname: str) -> Any | None:
        with self._lock:
            return self._vms.get(hostname)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._vms)

    def __contains__(self, hostname: object) -> bool:
        with self._lock:
            return hostname in self._vms

    def __len__(self) -> int:
        with self._lock:
            return len(self._vms)
