"""
Tests for bounded fan-out and per-unit isolation.
"""
from __future__ import annotations

import asyncio
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from league_history.services.concurrency import SkipUnit, UnitResult, isolate, run_bounded


def test_run_bounded_caps_in_flight_workers_and_keeps_order():
    in_flight = 0
    peak = 0

    async def worker(n: int) -> int:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        # later items finish first so completion order differs from input order
        await asyncio.sleep(0.001 * (10 - n))
        in_flight -= 1
        return n * n

    results = asyncio.run(run_bounded(range(10), worker, limit=3))
    assert peak == 3
    assert in_flight == 0
    assert results == [n * n for n in range(10)]


def test_run_bounded_treats_non_positive_limit_as_one():
    peak = 0
    in_flight = 0

    async def worker(n: int) -> int:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0)
        in_flight -= 1
        return n

    assert asyncio.run(run_bounded([1, 2, 3], worker, limit=0)) == [1, 2, 3]
    assert peak == 1


async def _skip():
    raise SkipUnit("brackets unavailable")


async def _fail():
    raise RuntimeError("boom")


async def _with_children():
    return [UnitResult(phase="matchups", unit="L1:week-1", ok=True)]


async def _flag():
    return True


def test_isolate_outcomes():
    skipped = asyncio.run(isolate("playoffs", "L1", _skip()))
    assert skipped == [UnitResult(phase="playoffs", unit="L1", ok=True, skipped=True, error="brackets unavailable")]

    failed = asyncio.run(isolate("playoffs", "L1", _fail()))
    assert failed == [UnitResult(phase="playoffs", unit="L1", ok=False, error="boom")]

    nested = asyncio.run(isolate("matchups", "L1", _with_children()))
    assert [u.unit for u in nested] == ["L1", "L1:week-1"]
    assert all(u.ok for u in nested)

    assert asyncio.run(isolate("members", "L1", _flag())) == [UnitResult(phase="members", unit="L1", ok=True)]
