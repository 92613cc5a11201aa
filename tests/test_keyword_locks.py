"""Tests for per-keyword single-flight locks."""

import asyncio

import pytest

from app.services.keyword_locks import KeywordLocks


@pytest.mark.asyncio
async def test_same_keyword_runs_one_at_a_time():
    locks = KeywordLocks()
    events: list[str] = []

    async def scan(name: str):
        async with locks.hold(1):
            events.append(f"{name}-start")
            await asyncio.sleep(0.01)
            events.append(f"{name}-end")

    await asyncio.gather(scan("a"), scan("b"))

    assert events == ["a-start", "a-end", "b-start", "b-end"]


@pytest.mark.asyncio
async def test_different_keywords_do_not_block():
    locks = KeywordLocks()
    release = asyncio.Event()
    entered: list[int] = []

    async def scan(keyword_id: int):
        async with locks.hold(keyword_id):
            entered.append(keyword_id)
            await release.wait()

    tasks = [asyncio.create_task(scan(1)), asyncio.create_task(scan(2))]
    await asyncio.sleep(0.01)
    assert sorted(entered) == [1, 2]
    assert locks.is_locked(1) and locks.is_locked(2)

    release.set()
    await asyncio.gather(*tasks)


@pytest.mark.asyncio
async def test_lock_is_released_on_error():
    locks = KeywordLocks()

    with pytest.raises(RuntimeError):
        async with locks.hold(7):
            raise RuntimeError("provider exploded")

    assert not locks.is_locked(7)
    async with locks.hold(7):
        assert locks.is_locked(7)


def test_is_locked_outside_a_loop():
    assert KeywordLocks().is_locked(1) is False
