import asyncio

import pytest

from textdigest.scheduler import process_batches_in_parallel


def test_concurrency_cap_is_never_exceeded() -> None:
    in_flight = 0
    peak = 0

    async def processor(batch: int) -> list[str]:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01 * (batch % 3 + 1))
        in_flight -= 1
        return [f"{batch}-a", f"{batch}-b"]

    results = asyncio.run(process_batches_in_parallel([0, 1, 2, 3, 4], processor, max_concurrent=2))

    assert peak <= 2
    assert len(results) == 10


def test_groups_complete_before_the_next_group_starts() -> None:
    events: list[tuple[str, int]] = []

    async def processor(batch: int) -> list[int]:
        events.append(("start", batch))
        await asyncio.sleep(0.02 if batch == 0 else 0.001)
        events.append(("end", batch))
        return [batch]

    results = asyncio.run(process_batches_in_parallel([0, 1, 2, 3, 4], processor, max_concurrent=2))

    assert results == [0, 1, 2, 3, 4]
    assert events.index(("end", 0)) < events.index(("start", 2))
    assert events.index(("end", 3)) < events.index(("start", 4))


def test_failure_propagates_and_stops_later_groups() -> None:
    started: list[int] = []

    async def processor(batch: int) -> list[int]:
        started.append(batch)
        if batch == 1:
            raise RuntimeError("batch 1 exploded")
        return [batch]

    with pytest.raises(RuntimeError, match="batch 1 exploded"):
        asyncio.run(process_batches_in_parallel([0, 1, 2, 3], processor, max_concurrent=2))
    assert 2 not in started and 3 not in started


def test_failure_cancels_batches_still_running_in_the_group() -> None:
    finished: list[int] = []
    cancelled: list[int] = []

    async def processor(batch: int) -> list[int]:
        if batch == 1:
            await asyncio.sleep(0.01)
            raise RuntimeError("batch 1 exploded")
        try:
            await asyncio.sleep(1.0)
        except asyncio.CancelledError:
            cancelled.append(batch)
            raise
        finished.append(batch)
        return [batch]

    with pytest.raises(RuntimeError, match="batch 1 exploded"):
        asyncio.run(process_batches_in_parallel([0, 1, 2], processor, max_concurrent=3))

    assert sorted(cancelled) == [0, 2]
    assert finished == []


def test_default_cap_comes_from_config(monkeypatch) -> None:
    from textdigest import config

    monkeypatch.setattr(config, "MAX_CONCURRENT_BATCHES", 1)
    in_flight = 0
    peak = 0

    async def processor(batch: int) -> list[int]:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.001)
        in_flight -= 1
        return [batch]

    asyncio.run(process_batches_in_parallel([0, 1, 2], processor))
    assert peak == 1


def test_invalid_cap_is_rejected() -> None:
    async def processor(batch: int) -> list[int]:
        return [batch]

    with pytest.raises(ValueError):
        asyncio.run(process_batches_in_parallel([1], processor, max_concurrent=0))


def test_no_batches_returns_empty_list() -> None:
    async def processor(batch: int) -> list[int]:
        return [batch]

    assert asyncio.run(process_batches_in_parallel([], processor, max_concurrent=3)) == []
