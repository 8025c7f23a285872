"""Tests for projectflow.core.single_flight."""

import asyncio

import pytest

from projectflow.core.single_flight import SingleFlight


@pytest.mark.asyncio
async def test_same_key_shares_one_call():
    flight = SingleFlight()
    release = asyncio.Event()
    calls = 0

    async def fetch():
        nonlocal calls
        calls += 1
        await release.wait()
        return {"projects": []}

    first = asyncio.create_task(flight.run("u1", fetch))
    second = asyncio.create_task(flight.run("u1", fetch))
    await asyncio.sleep(0)
    assert flight.in_flight
    release.set()

    assert await first == await second == {"projects": []}
    assert calls == 1
    assert not flight.in_flight


@pytest.mark.asyncio
async def test_different_key_supersedes():
    flight = SingleFlight()
    release = asyncio.Event()

    async def fetch(value):
        await release.wait()
        return value

    old = asyncio.create_task(flight.run("u1", lambda: fetch("old")))
    await asyncio.sleep(0)
    new = asyncio.create_task(flight.run("u2", lambda: fetch("new")))
    await asyncio.sleep(0)
    release.set()

    # the superseded call still completes; its caller checks is_current
    assert await old == "old"
    assert await new == "new"
    assert not flight.is_current("u1")
    assert flight.is_current("u2")


@pytest.mark.asyncio
async def test_finished_call_is_not_reused():
    flight = SingleFlight()
    calls = 0

    async def fetch():
        nonlocal calls
        calls += 1
        return calls

    assert await flight.run("u1", fetch) == 1
    assert await flight.run("u1", fetch) == 2


@pytest.mark.asyncio
async def test_exception_propagates_to_every_waiter():
    flight = SingleFlight()
    release = asyncio.Event()

    async def fetch():
        await release.wait()
        raise RuntimeError("boom")

    waiters = [asyncio.create_task(flight.run("k", fetch)) for _ in range(2)]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*waiters, return_exceptions=True)
    assert all(isinstance(r, RuntimeError) for r in results)
