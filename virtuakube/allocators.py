"""Address and port allocators for a universe.

Addresses are handed out in strictly increasing order from a seed by
bumping the last byte. Ports come from a single producer task that offers
successive integers until the owning lifetime ends.
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import threading
from typing import Union

from virtuakube.errors import AddressExhausted
from virtuakube.lifetime import Lifetime, race

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class AddressAllocator:
    """Monotonic allocator over the last byte of an IPv4 or IPv6 seed.

    Thread-safe. Once the last byte has reached 0xff the allocator is
    exhausted and every further call raises AddressExhausted; it never
    wraps back into addresses already issued.
    """

    def __init__(self, seed: str | IPAddress):
        self._next: IPAddress | None = ipaddress.ip_address(seed)
        self._lock = threading.Lock()
        self._issued = 0
        self.family = f"ipv{self._next.version}"

    @property
    def issued(self) -> int:
        return self._issued

    def peek(self) -> IPAddress | None:
        """Return the next address without consuming it."""
        with self._lock:
            return self._next

    def allocate(self) -> IPAddress:
        with self._lock:
            addr = self._next
            if addr is None:
                raise AddressExhausted(
                    f"{self.family} allocator exhausted after {self._issued} addresses",
                    family=self.family,
                )
            if int(addr) & 0xFF == 0xFF:
                self._next = None
                logger.warning(f"{self.family} allocator issued its last address {addr}")
            else:
                self._next = addr + 1
            self._issued += 1
            return addr


class PortStream:
    """Unbounded stream of port numbers tied to a lifetime.

    ``start()`` launches the producer task; ``take()`` returns the next port,
    or None once the lifetime has ended.
    """

    def __init__(self, lifetime: Lifetime, start: int = 50000):
        self._lifetime = lifetime
        self._start = start
        self._queue: asyncio.Queue[int] | None = None
        self._task: asyncio.Task | None = None

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    def _get_queue(self) -> asyncio.Queue[int]:
        if self._queue is None:
            self._queue = asyncio.Queue(maxsize=1)
        return self._queue

    def start(self) -> asyncio.Task:
        """Start the producer in a background task."""
        if self._task is None:
            self._task = asyncio.create_task(self._produce())
        return self._task

    async def _produce(self) -> None:
        queue = self._get_queue()
        port = self._start
        while not self._lifetime.cancelled:
            offered, _ = await race(self._lifetime, queue.put(port))
            if not offered:
                break
            port += 1
        logger.debug(f"Port producer stopped before offering {port}")

    async def take(self) -> int | None:
        """Return the next port, or None if the lifetime has ended."""
        if self._lifetime.cancelled:
            return None
        ok, port = await race(self._lifetime, self._get_queue().get())
        if not ok:
            return None
        return port
