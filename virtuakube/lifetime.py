"""Cancellable lifetimes.

A ``Lifetime`` is a one-shot "still alive" signal. Lifetimes form a tree:
cancelling a parent cancels every child, cancelling a child never touches
the parent. Cancellation is synchronous and unrecoverable.

The underlying ``asyncio.Event`` is created lazily so a ``Lifetime`` can be
built outside a running loop (Python 3.10+ binds primitives on first use).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class Lifetime:
    """One-shot cancellation signal with parent to child propagation."""

    def __init__(self, parent: Lifetime | None = None, name: str = ""):
        self.name = name
        self._parent = parent
        self._cancelled = False
        self._event: asyncio.Event | None = None
        self._callbacks: list[Callable[[], Any]] = []
        self._children: set[Lifetime] = set()

        if parent is not None:
            parent._attach(self)

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "alive"
        return f"<Lifetime {self.name or hex(id(self))} {state}>"

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def child(self, name: str = "") -> Lifetime:
        """Derive a child lifetime, cancelled whenever this one is."""
        return Lifetime(parent=self, name=name)

    def add_done_callback(self, fn: Callable[[], Any]) -> None:
        """Call ``fn`` when the lifetime ends, or now if it already has."""
        if self._cancelled:
            self._run_callback(fn)
            return
        self._callbacks.append(fn)

    def cancel(self) -> None:
        """End the lifetime. Safe to call any number of times."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._event is not None:
            self._event.set()

        callbacks, self._callbacks = self._callbacks, []
        for fn in callbacks:
            self._run_callback(fn)

        children, self._children = self._children, set()
        for child in children:
            child.cancel()

        if self._parent is not None:
            self._parent._children.discard(self)
            self._parent = None

    async def wait(self) -> None:
        """Block until the lifetime ends."""
        if self._cancelled:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    def _attach(self, child: Lifetime) -> None:
        if self._cancelled:
            child.cancel()
            return
        self._children.add(child)

    def _run_callback(self, fn: Callable[[], Any]) -> None:
        try:
            fn()
        except Exception:
            logger.exception("Lifetime %s done-callback failed", self)


async def race(lifetime: Lifetime, aw: Awaitable[Any]) -> tuple[bool, Any]:
    """Await ``aw`` unless ``lifetime`` ends first.

    Returns ``(True, result)`` when ``aw`` completes, ``(False, None)`` when
    the lifetime ended first; the pending awaitable is then cancelled. If both
    are ready at once the completed work wins.
    """
    work = asyncio.ensure_future(aw)
    if lifetime.cancelled:
        work.cancel()
        return False, None

    ended = asyncio.ensure_future(lifetime.wait())
    try:
        await asyncio.wait({work, ended}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        raise
    finally:
        ended.cancel()

    if work.done():
        return True, work.result()
    work.cancel()
    return False, None
