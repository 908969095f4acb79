"""Virtual switch process supervision.

The universe's network fabric is a single ``vde_switch`` listening on a
control socket inside the workspace. The process is bound to the universe
lifetime: when the lifetime ends the process is killed.
"""

from __future__ import annotations

import asyncio
import logging

from virtuakube.errors import ProcessSpawnError
from virtuakube.lifetime import Lifetime

logger = logging.getLogger(__name__)


class VirtualSwitch:
    """Owns the vde_switch process for one universe."""

    def __init__(
        self,
        socket_path: str,
        binary: str = "vde_switch",
        mode: str = "0600",
    ):
        """
        Args:
            socket_path: Control socket the switch listens on.
            binary: Switch executable name or path.
            mode: Permission mode for the control socket.
        """
        self.socket_path = socket_path
        self._binary = binary
        self._mode = mode
        self._process: asyncio.subprocess.Process | None = None

    @property
    def argv(self) -> list[str]:
        return [self._binary, "--sock", self.socket_path, "-m", self._mode]

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process is not None else None

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self, lifetime: Lifetime) -> None:
        """Spawn the switch and kill it when ``lifetime`` ends.

        Raises:
            ProcessSpawnError: if the process could not be started.
        """
        if self._process is not None:
            return
        argv = self.argv
        try:
            self._process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise ProcessSpawnError(
                f"failed to start {self._binary}: {e}", argv=argv
            ) from e

        logger.info(
            "Virtual switch started (pid=%d, socket=%s)",
            self._process.pid,
            self.socket_path,
        )
        lifetime.add_done_callback(self.kill)

    async def wait(self) -> int:
        """Wait for the switch to exit and return its exit code."""
        if self._process is None:
            raise RuntimeError("virtual switch was never started")
        return await self._process.wait()

    def kill(self) -> None:
        """Kill the switch if it is still running. Does not wait for exit."""
        if not self.running:
            return
        try:
            self._process.kill()
        except ProcessLookupError:
            pass
