"""
Multi-season lineage: walk a league's previous-season pointers back to its first season.

Only run for top-level leagues not yet stored. Every season found shares one newly
generated league_group_id. A chain whose predecessor cannot be fetched keeps the
resolved prefix and is reported as broken.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable

from league_history.models import BrokenLeagueHistory, League
from league_history.services.classification import classify_league
from league_history.sleeper.client import SleeperClient
from league_history.sleeper.records import LeagueSnapshot

logger = logging.getLogger(__name__)


def new_group_id() -> str:
    return str(uuid.uuid4())


@dataclass
class LineageResult:
    """Seasons of one history chain, newest first."""
    league_group_id: str
    leagues: list[League] = field(default_factory=list)
    complete: bool = True

    @property
    def broken_marker(self) -> BrokenLeagueHistory | None:
        if self.complete:
            return None
        return BrokenLeagueHistory(league_group_id=self.league_group_id)


async def resolve_lineage(
    client: SleeperClient,
    top_level: LeagueSnapshot,
    group_id_factory: Callable[[], str] = new_group_id,
) -> LineageResult:
    """
    Classify top_level and each predecessor in turn.
    Stops when a league has no previous_league_id (complete) or when the
    predecessor fetch returns nothing (broken).
    """
    result = LineageResult(league_group_id=group_id_factory())
    seen: set[str] = set()
    snapshot: LeagueSnapshot | None = top_level
    while snapshot is not None:
        seen.add(snapshot.league_id)
        result.leagues.append(classify_league(snapshot, result.league_group_id))
        previous_id = snapshot.previous_league_id
        if not previous_id:
            return result
        if previous_id in seen:
            logger.warning(
                f"League history for {top_level.league_id} loops back to {previous_id}; stopping walk"
            )
            result.complete = False
            return result
        snapshot = await client.fetch_league(previous_id)
        if snapshot is None:
            logger.warning(
                f"League history for {top_level.league_id} broken at {previous_id} "
                f"(group {result.league_group_id}); keeping {len(result.leagues)} season(s)"
            )
            result.complete = False
    return result
