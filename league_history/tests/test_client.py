"""
Tests for the Sleeper client against httpx.MockTransport: parsing and null-on-failure.
"""
from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from league_history.config import SyncConfig
from league_history.sleeper.client import SleeperClient

BASE = "https://sleeper.test/v1"


def _run(routes: dict[str, object], call):
    """Serve routes (path -> JSON body, or an int status) and await call(client)."""
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/v1")
        seen.append(path)
        body = routes.get(path, 404)
        if isinstance(body, int):
            return httpx.Response(body, json={"error": "nope"})
        if isinstance(body, bytes):
            return httpx.Response(200, content=body)
        return httpx.Response(200, json=body)

    async def go():
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        try:
            async with SleeperClient(SyncConfig(base_url=BASE), http=http) as client:
                return await call(client)
        finally:
            await http.aclose()

    return asyncio.run(go()), seen


def test_fetch_user_parses_and_null_means_unknown():
    user, _ = _run(
        {"/user/jdoe": {"user_id": "123", "username": "jdoe", "display_name": "JDoe", "avatar": "a1"}},
        lambda c: c.fetch_user("jdoe"),
    )
    assert user.user_id == "123" and user.avatar == "a1"
    missing, _ = _run({"/user/ghost": None}, lambda c: c.fetch_user("ghost"))
    assert missing is None


def test_http_error_and_bad_json_become_none():
    league, _ = _run({"/league/1": 500}, lambda c: c.fetch_league("1"))
    assert league is None
    state, _ = _run({"/state/nfl": b"<html>oops"}, lambda c: c.fetch_current_state())
    assert state is None


def test_transport_failure_becomes_none():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    async def go():
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        try:
            return await SleeperClient(SyncConfig(base_url=BASE), http=http).fetch_rosters("1")
        finally:
            await http.aclose()

    assert asyncio.run(go()) is None


def test_malformed_payloads_become_none():
    rosters, _ = _run({"/league/1/rosters": {"not": "a list"}}, lambda c: c.fetch_rosters("1"))
    assert rosters is None
    league, _ = _run({"/league/1": {"name": "no id"}}, lambda c: c.fetch_league("1"))
    assert league is None


def test_league_and_state_parsing():
    league, _ = _run(
        {
            "/league/L1": {
                "league_id": "L1",
                "name": "Champs",
                "season": "2024",
                "status": "in_season",
                "total_rosters": 12,
                "roster_positions": ["QB", "BN"],
                "scoring_settings": {"rec": 0.5},
                "previous_league_id": "0",
                "settings": {"playoff_week_start": 15, "playoff_teams": 6, "type": 2},
            }
        },
        lambda c: c.fetch_league("L1"),
    )
    assert league.previous_league_id is None
    assert league.settings.type == 2
    assert league.settings.playoff_round_type == 0

    state, _ = _run({"/state/nfl": {"season": "2024", "league_season": "2024", "week": 7}}, lambda c: c.fetch_current_state())
    assert (state.season, state.week) == ("2024", 7)


def test_matchups_brackets_and_players():
    matchups, seen = _run(
        {
            "/league/L1/matchups/3": [
                {"roster_id": 1, "matchup_id": 2, "points": 101.5, "players": ["a"], "starters": ["a"],
                 "players_points": {"a": 101.5}},
                {"roster_id": 2, "matchup_id": None, "points": None},
            ]
        },
        lambda c: c.fetch_week_matchups("L1", 3),
    )
    assert seen == ["/league/L1/matchups/3"]
    assert matchups[0].players_points == {"a": 101.5}
    assert matchups[1].matchup_id is None and matchups[1].points == 0.0

    bracket, seen = _run(
        {"/league/L1/winners_bracket": [{"r": 2, "m": 3, "t1": None, "t2": 5, "t1_from": {"w": 1}, "p": 1}]},
        lambda c: c.fetch_bracket("L1", "winners"),
    )
    node = bracket[0]
    assert node.team_one_from.node_id == 1 and node.team_one_from.from_winner
    assert node.team_two == 5 and node.position == 1

    players, _ = _run(
        {"/players/nfl": {"4046": {"full_name": "Patrick Mahomes", "team": "KC", "metadata": {"rookie_year": "2017"}}}},
        lambda c: c.fetch_all_players(),
    )
    assert players["4046"].rookie_year == "2017"


def test_unknown_bracket_kind_is_rejected():
    with pytest.raises(ValueError):
        _run({}, lambda c: c.fetch_bracket("L1", "consolation"))
