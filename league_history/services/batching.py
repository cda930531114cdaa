"""
Chunked batch writes with a fixed retry budget per chunk.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Callable, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def write_in_chunks(
    rows: Sequence[T],
    write: Callable[[Sequence[T]], None],
    chunk_size: int,
    max_retries: int,
    label: str,
) -> list[int]:
    """
    Write rows in fixed-size chunks. A chunk that raises sqlite3.Error is retried
    up to max_retries times, then logged and skipped.
    Returns the indexes of chunks that failed permanently.
    """
    failed: list[int] = []
    size = max(1, chunk_size)
    for index, start in enumerate(range(0, len(rows), size)):
        chunk = rows[start : start + size]
        for attempt in range(1, max_retries + 2):
            try:
                write(chunk)
                break
            except sqlite3.Error as e:
                if attempt <= max_retries:
                    logger.warning(f"{label} chunk {index} failed on attempt {attempt}, retrying: {e}")
                    continue
                logger.error(f"{label} chunk {index} permanently failed: {e}")
                failed.append(index)
    return failed
