from __future__ import annotations

import asyncio

import pytest

from virtuakube.lifetime import Lifetime, race


def test_lifetime_cancel_is_idempotent():
    calls = []
    lifetime = Lifetime()
    lifetime.add_done_callback(lambda: calls.append("done"))

    lifetime.cancel()
    lifetime.cancel()

    assert lifetime.cancelled
    assert calls == ["done"]


def test_parent_cancel_propagates_to_children():
    parent = Lifetime(name="parent")
    child = parent.child("child")
    grandchild = child.child("grandchild")

    parent.cancel()

    assert child.cancelled
    assert grandchild.cancelled


def test_child_cancel_does_not_touch_parent():
    parent = Lifetime()
    child = parent.child()

    child.cancel()

    assert child.cancelled
    assert not parent.cancelled
    assert child not in parent._children


def test_child_of_cancelled_parent_is_born_cancelled():
    parent = Lifetime()
    parent.cancel()

    assert parent.child().cancelled


def test_callback_added_after_cancel_runs_immediately():
    lifetime = Lifetime()
    lifetime.cancel()
    calls = []

    lifetime.add_done_callback(lambda: calls.append(1))

    assert calls == [1]


def test_failing_callback_does_not_stop_others():
    lifetime = Lifetime()
    calls = []

    def boom():
        raise RuntimeError("boom")

    lifetime.add_done_callback(boom)
    lifetime.add_done_callback(lambda: calls.append("after"))
    lifetime.cancel()

    assert calls == ["after"]


@pytest.mark.asyncio
async def test_wait_returns_when_cancelled():
    lifetime = Lifetime()
    waiter = asyncio.create_task(lifetime.wait())
    await asyncio.sleep(0)
    assert not waiter.done()

    lifetime.cancel()
    await asyncio.wait_for(waiter, 1)


@pytest.mark.asyncio
async def test_race_returns_result_while_alive():
    lifetime = Lifetime()

    async def work():
        return 42

    assert await race(lifetime, work()) == (True, 42)


@pytest.mark.asyncio
async def test_race_stops_blocked_work_on_cancel():
    lifetime = Lifetime()
    blocker = asyncio.Event()

    task = asyncio.create_task(race(lifetime, blocker.wait()))
    await asyncio.sleep(0.01)
    lifetime.cancel()

    assert await asyncio.wait_for(task, 1) == (False, None)


@pytest.mark.asyncio
async def test_race_on_cancelled_lifetime_does_not_run_work():
    lifetime = Lifetime()
    lifetime.cancel()
    ran = []

    async def work():
        ran.append(True)

    assert await race(lifetime, work()) == (False, None)
    await asyncio.sleep(0)
    assert ran == []
