"""Unit tests for the bounded gather helper."""

from __future__ import annotations

import asyncio

import pytest

from src.utils.concurrency import throttled_gather


@pytest.mark.asyncio
async def test_semaphore_bounds_parallelism() -> None:
    running = 0
    peak = 0

    async def job(value: int) -> int:
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1
        return value * 2

    results = await throttled_gather([job(i) for i in range(6)], asyncio.Semaphore(2))

    assert results == [0, 2, 4, 6, 8, 10]
    assert peak == 2


@pytest.mark.asyncio
async def test_exceptions_are_returned_in_place() -> None:
    async def boom() -> int:
        raise ValueError("row failed")

    async def ok() -> int:
        return 1

    results = await throttled_gather([ok(), boom(), ok()], asyncio.Semaphore(1))

    assert results[0] == 1
    assert isinstance(results[1], ValueError)
    assert results[2] == 1
