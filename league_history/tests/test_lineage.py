"""
Tests for multi-season lineage walks: complete chains, broken chains, loops.
"""
from __future__ import annotations

import asyncio
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from league_history.services.lineage import resolve_lineage
from league_history.sleeper.records import LeagueSnapshot


def _snapshot(league_id: str, season: str, previous: str | None) -> LeagueSnapshot:
    return LeagueSnapshot.from_dict({
        "league_id": league_id,
        "name": f"League {league_id}",
        "season": season,
        "status": "complete",
        "total_rosters": 10,
        "roster_positions": ["QB", "RB", "WR", "BN"],
        "scoring_settings": {"rec": 1},
        "previous_league_id": previous,
        "settings": {"playoff_week_start": 15, "playoff_teams": 6},
    })


class LeagueOnlyClient:
    """Answers fetch_league from a dict; unknown ids return None like the real client."""

    def __init__(self, leagues: dict[str, LeagueSnapshot]) -> None:
        self.leagues = leagues
        self.fetched: list[str] = []

    async def fetch_league(self, league_id: str) -> LeagueSnapshot | None:
        self.fetched.append(league_id)
        return self.leagues.get(league_id)


def test_complete_chain_shares_group_and_has_no_marker():
    a = _snapshot("A", "2024", "B")
    client = LeagueOnlyClient({"B": _snapshot("B", "2023", "C"), "C": _snapshot("C", "2022", None)})
    result = asyncio.run(resolve_lineage(client, a, group_id_factory=lambda: "g-1"))
    assert [lg.league_id for lg in result.leagues] == ["A", "B", "C"]
    assert {lg.league_group_id for lg in result.leagues} == {"g-1"}
    assert result.complete
    assert result.broken_marker is None
    # the top-level snapshot is already in hand and is not re-fetched
    assert client.fetched == ["B", "C"]


def test_missing_predecessor_keeps_prefix_and_marks_group_broken():
    a = _snapshot("A", "2024", "B")
    client = LeagueOnlyClient({"B": _snapshot("B", "2023", "C")})
    result = asyncio.run(resolve_lineage(client, a, group_id_factory=lambda: "g-2"))
    assert [lg.league_id for lg in result.leagues] == ["A", "B"]
    assert not result.complete
    assert result.broken_marker is not None
    assert result.broken_marker.league_group_id == "g-2"


def test_single_season_league():
    result = asyncio.run(resolve_lineage(LeagueOnlyClient({}), _snapshot("A", "2024", "0")))
    assert [lg.league_id for lg in result.leagues] == ["A"]
    assert result.complete


def test_loop_in_previous_ids_stops_and_counts_as_broken():
    a = _snapshot("A", "2024", "B")
    client = LeagueOnlyClient({"B": _snapshot("B", "2023", "A")})
    result = asyncio.run(resolve_lineage(client, a))
    assert [lg.league_id for lg in result.leagues] == ["A", "B"]
    assert not result.complete
