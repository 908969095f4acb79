"""Universe lifecycle and resource allocation.

A universe is an isolated virtual test network: a temporary workspace, a
``vde_switch`` providing the fabric, address and port allocators, and a
registry of the VMs built on top of it.

Teardown is a single idempotent path reached from three triggers:

1. An explicit ``close()`` call.
2. The virtual switch exiting on its own (crash or external kill).
3. The universe lifetime ending, usually because the parent was cancelled.

Whichever trigger runs first cancels the lifetime (which kills the switch
and stops the port producer) and removes the workspace. Every other call
returns the outcome recorded by that first run.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tempfile
from typing import Any, AsyncIterator

from virtuakube import metrics
from virtuakube.allocators import AddressAllocator, IPAddress, PortStream
from virtuakube.config import Settings, settings
from virtuakube.errors import ProcessSpawnError, Timeout
from virtuakube.lifetime import Lifetime
from virtuakube.registry import VMRegistry
from virtuakube.switch import VirtualSwitch
from virtuakube.tools import check_tools

logger = logging.getLogger(__name__)


class Universe:
    """A virtual test network and its associated resources.

    Build one with ``await Universe.create(parent)``; the constructor only
    wires already-allocated parts together.
    """

    def __init__(
        self,
        workspace: str,
        lifetime: Lifetime,
        switch: VirtualSwitch,
        config: Settings,
    ):
        self._workspace = workspace
        self._lifetime = lifetime
        self._switch = switch

        self._ipv4 = AddressAllocator(config.ipv4_seed)
        self._ipv6 = AddressAllocator(config.ipv6_seed)
        self._ports = PortStream(lifetime, start=config.port_base)
        self._vms = VMRegistry()
        self._watchers: list[asyncio.Task] = []

        self._teardown: asyncio.Task | None = None
        self._closed = False
        self._close_error: OSError | None = None

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Universe {self.name} {state}>"

    @classmethod
    async def create(
        cls,
        parent: Lifetime | None = None,
        config: Settings | None = None,
    ) -> Universe:
        """Create a new universe.

        ``parent`` controls the overall lifetime: if it is cancelled the
        universe is destroyed.

        Raises:
            MissingDependency: a required tool is not on PATH. Nothing has
                been created on disk.
            OSError: the workspace could not be created.
            ProcessSpawnError: the virtual switch failed to start. The
                workspace has already been removed.
        """
        config = config or settings
        check_tools(config.required_tools)

        workspace = os.path.abspath(
            tempfile.mkdtemp(prefix=config.temp_prefix, dir=config.temp_root or None)
        )
        name = os.path.basename(workspace)
        if parent is not None:
            lifetime = parent.child(name=name)
        else:
            lifetime = Lifetime(name=name)

        switch = VirtualSwitch(
            os.path.join(workspace, config.switch_socket_name),
            binary=config.switch_binary,
            mode=config.switch_socket_mode,
        )
        universe = cls(workspace, lifetime, switch, config)
        metrics.universes_active.inc()

        try:
            await switch.start(lifetime)
        except ProcessSpawnError as e:
            logger.error(f"Universe {name}: {e}")
            await universe._close("spawn_failure")
            raise
        except asyncio.CancelledError:
            logger.info(f"Universe {name}: creation cancelled")
            await universe._close("cancelled")
            raise

        universe._watchers = [
            asyncio.create_task(universe._watch_switch()),
            asyncio.create_task(universe._watch_lifetime()),
            universe._ports.start(),
        ]
        logger.info(f"Created universe {name} in {workspace}")
        return universe

    async def __aenter__(self) -> Universe:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return os.path.basename(self._workspace)

    @property
    def workspace(self) -> str:
        return self._workspace

    @property
    def lifetime(self) -> Lifetime:
        """Lifetime that ends when the universe is destroyed."""
        return self._lifetime

    @property
    def switch_socket_path(self) -> str:
        return self._switch.socket_path

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Allocators
    # ------------------------------------------------------------------

    def allocate_temp_dir(self, prefix: str) -> str:
        """Create a uniquely named directory in the workspace.

        The directory goes away when the universe is destroyed.
        """
        if os.sep in prefix or (os.altsep and os.altsep in prefix):
            raise ValueError(f"temp dir prefix must not contain a path separator: {prefix!r}")
        path = tempfile.mkdtemp(prefix=prefix, dir=self._workspace)
        metrics.resource_allocations.labels(kind="tempdir").inc()
        return path

    def allocate_ipv4(self) -> IPAddress:
        addr = self._ipv4.allocate()
        metrics.resource_allocations.labels(kind="ipv4").inc()
        return addr

    def allocate_ipv6(self) -> IPAddress:
        addr = self._ipv6.allocate()
        metrics.resource_allocations.labels(kind="ipv6").inc()
        return addr

    async def allocate_port(self) -> int | None:
        """Return an unused port number, or None once the universe is gone."""
        port = await self._ports.take()
        if port is not None:
            metrics.resource_allocations.labels(kind="port").inc()
        return port

    async def ports(self) -> AsyncIterator[int]:
        """Yield port numbers until the universe is destroyed."""
        while True:
            port = await self.allocate_port()
            if port is None:
                return
            yield port

    # ------------------------------------------------------------------
    # VM registry
    # ------------------------------------------------------------------

    def register_vm(self, hostname: str, vm: Any) -> None:
        self._vms.register(hostname, vm)

    def unregister_vm(self, hostname: str) -> Any | None:
        return self._vms.unregister(hostname)

    def lookup_vm(self, hostname: str) -> Any | None:
        return self._vms.lookup(hostname)

    def vms(self) -> dict[str, Any]:
        return self._vms.snapshot()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> OSError | None:
        """Destroy the universe, freeing processes and temporary files.

        Returns the error hit while removing the workspace, or None. Later
        calls return the same outcome without doing any work.
        """
        return await self._close("explicit")

    async def wait(
        self,
        timeout: float | None = None,
        cancel: Lifetime | None = None,
    ) -> None:
        """Wait for the universe to end.

        Raises:
            Timeout: ``timeout`` seconds passed, or ``cancel`` ended, first.
        """
        if self._lifetime.cancelled:
            return

        waiters = {asyncio.ensure_future(self._lifetime.wait())}
        if cancel is not None:
            waiters.add(asyncio.ensure_future(cancel.wait()))
        try:
            await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for waiter in waiters:
                waiter.cancel()

        if not self._lifetime.cancelled:
            raise Timeout("timeout")

    async def _close(self, trigger: str) -> OSError | None:
        # Check-and-set runs without an await, so only the first trigger
        # starts the teardown task; everyone awaits that same task.
        if self._teardown is None:
            self._closed = True
            logger.info(f"Destroying universe {self.name} (trigger={trigger})")
            self._lifetime.cancel()
            self._teardown = asyncio.ensure_future(self._finish_teardown(trigger))
        return await asyncio.shield(self._teardown)

    async def _finish_teardown(self, trigger: str) -> OSError | None:
        """Remove the workspace and record the outcome.

        Runs in its own task so a cancelled close() caller cannot lose the
        outcome seen by later callers.
        """
        try:
            await asyncio.to_thread(self._remove_workspace)
        except OSError as e:
            self._close_error = e
            logger.error(f"Failed to remove workspace {self._workspace}: {e}")

        metrics.universes_active.dec()
        metrics.universe_teardowns.labels(trigger=trigger).inc()
        return self._close_error

    def _remove_workspace(self) -> None:
        try:
            shutil.rmtree(self._workspace)
        except FileNotFoundError:
            pass

    # ------------------------------------------------------------------
    # Watchers
    # ------------------------------------------------------------------

    async def _watch_switch(self) -> None:
        """Destroy the universe if the virtual switch exits."""
        try:
            code = await self._switch.wait()
        except Exception:
            logger.exception(f"Universe {self.name}: failed waiting on virtual switch")
            code = None

        expected = self._lifetime.cancelled
        metrics.switch_exits.labels(expected=str(expected).lower()).inc()
        if not expected:
            logger.warning(
                f"Universe {self.name}: virtual switch exited unexpectedly (code={code})"
            )
        await self._close("lifetime" if expected else "switch_exit")

    async def _watch_lifetime(self) -> None:
        """Destroy the universe if its lifetime ends, e.g. parent cancelled."""
        await self._lifetime.wait()
        await self._close("lifetime")
