"""
Bounded fan-out and per-unit failure isolation for sync phases.

A unit is one league (or one league-week). Each unit's outcome is captured in a
UnitResult so a failing league never aborts its siblings, and callers can
inspect exactly which units failed.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class SkipUnit(Exception):
    """Raised inside a unit to end it early without counting as a failure."""


@dataclass
class UnitResult:
    phase: str
    unit: str
    ok: bool
    skipped: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "phase": self.phase,
            "unit": self.unit,
            "ok": self.ok,
            "skipped": self.skipped,
            "error": self.error,
        }


async def run_bounded(
    items: Iterable[T],
    worker: Callable[[T], Awaitable[R]],
    limit: int,
) -> list[R]:
    """Run worker over items with at most `limit` in flight. Results keep input order."""
    semaphore = asyncio.Semaphore(max(1, limit))

    async def run(item: T) -> R:
        async with semaphore:
            return await worker(item)

    return list(await asyncio.gather(*(run(item) for item in items)))


async def isolate(
    phase: str,
    unit: str,
    work: Awaitable[object],
) -> list[UnitResult]:
    """
    Await one unit of work and convert its outcome into UnitResults.
    The unit's own result comes first, followed by any sub-unit results it returned.
    Any other return value is ignored.
    """
    try:
        children = await work
    except SkipUnit as e:
        logger.info(f"{phase}: skipped {unit}: {e}")
        return [UnitResult(phase=phase, unit=unit, ok=True, skipped=True, error=str(e) or None)]
    except Exception as e:
        logger.error(f"{phase}: {unit} failed: {type(e).__name__}: {e}")
        return [UnitResult(phase=phase, unit=unit, ok=False, error=str(e) or type(e).__name__)]
    sub_units = children if isinstance(children, list) else []
    return [UnitResult(phase=phase, unit=unit, ok=True), *sub_units]
