"""
Tests for weekly matchup grouping: scoring, byes, status, lineup slots, stable ids.
"""
from __future__ import annotations

from pathlib import Path

import pytest

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from league_history.models import MatchupStatus
from league_history.services.matchups import (
    BENCH,
    build_matchup,
    build_week,
    group_week_results,
    map_matchup_status,
    matchup_uuid,
)
from league_history.sleeper.records import RawResult

POSITIONS = ["QB", "RB", "FLEX"]


def _week(results, week=3, playoff_week_start=15, current=("2024", 10)):
    return build_week(
        results,
        league_id="L1",
        season="2024",
        week=week,
        playoff_week_start=playoff_week_start,
        roster_positions=POSITIONS,
        current_season=current[0],
        current_week=current[1],
    )


def test_pair_scores_and_winner():
    results = [
        RawResult(roster_id=4, matchup_id=1, points=112.30),
        RawResult(roster_id=7, matchup_id=1, points=98.75),
    ]
    out = _week(results)
    assert len(out.matchups) == 1
    m = out.matchups[0]
    assert m.roster_one_id == 4 and m.roster_two_id == 7
    assert m.roster_one_score == 112.3
    assert m.roster_two_score == 98.75
    assert m.winning_roster_id == 4
    assert m.matchup_status == MatchupStatus.COMPLETED
    assert m.matchup_id == 1


def test_tie_has_no_winner():
    m = build_matchup(
        [RawResult(1, 2, 100.0), RawResult(2, 2, 100.004)], "L1", "2024", 3, MatchupStatus.COMPLETED
    )
    assert m.winning_roster_id is None


def test_bye_in_first_playoff_week():
    results = [
        RawResult(roster_id=1, matchup_id=None, points=0.0),
        RawResult(roster_id=3, matchup_id=5, points=101.0),
        RawResult(roster_id=6, matchup_id=5, points=99.0),
    ]
    out = _week(results, week=15, current=("2025", 1))
    byes = [m for m in out.matchups if m.is_bye]
    assert len(byes) == 1
    bye = byes[0]
    assert bye.roster_one_id == 1
    assert bye.roster_two_id is None
    assert bye.roster_two_score is None
    assert bye.winning_roster_id == 1
    assert bye.matchup_id is None


def test_unpaired_entries_outside_first_playoff_week_are_dropped():
    results = [
        RawResult(roster_id=1, matchup_id=None, points=0.0),
        RawResult(roster_id=2, matchup_id=None, points=0.0),
    ]
    assert _week(results, week=16).matchups == []
    groups = group_week_results(results, is_first_playoff_week=False)
    assert groups == []


def test_oversized_group_is_skipped():
    results = [RawResult(r, 1, 10.0) for r in (1, 2, 3)] + [RawResult(4, 2, 1.0), RawResult(5, 2, 2.0)]
    out = _week(results)
    assert [(m.roster_one_id, m.roster_two_id) for m in out.matchups] == [(4, 5)]
    with pytest.raises(ValueError):
        build_matchup([RawResult(r, 1, 10.0) for r in (1, 2, 3)], "L1", "2024", 3, MatchupStatus.COMPLETED)


def test_status_is_monotonic_in_week():
    order = [MatchupStatus.COMPLETED, MatchupStatus.IN_PROGRESS, MatchupStatus.UPCOMING]
    ranks = [order.index(map_matchup_status("2024", w, "2024", 9)) for w in range(1, 18)]
    assert ranks == sorted(ranks)
    assert map_matchup_status("2024", 9, "2024", 9) == MatchupStatus.IN_PROGRESS
    # earlier season is complete even when its week number is ahead of the cursor
    assert map_matchup_status("2023", 17, "2024", 1) == MatchupStatus.COMPLETED
    assert map_matchup_status("2025", 1, "2024", 17) == MatchupStatus.UPCOMING


def test_matchup_uuid_is_order_independent_and_stable():
    assert matchup_uuid("L1", "2024", 3, [7, 4]) == matchup_uuid("L1", "2024", 3, [4, 7])
    assert matchup_uuid("L1", "2024", 3, [4, 7]) != matchup_uuid("L1", "2024", 4, [4, 7])
    results = [RawResult(4, 1, 10.0), RawResult(7, 1, 20.0)]
    first = _week(results).matchups[0].matchup_uuid
    again = _week(list(reversed(results))).matchups[0].matchup_uuid
    assert first == again


def test_player_entries_slots_and_bench():
    results = [
        RawResult(
            roster_id=4,
            matchup_id=1,
            points=30.0,
            players=("p1", "p2", "p3", "p9"),
            starters=("p1", "p2", "p3"),
            players_points={"p1": 12.345, "p2": 10.0, "p3": 7.655, "p9": 4.0},
        ),
        RawResult(roster_id=7, matchup_id=1, points=0.0, players=("q1",), starters=()),
    ]
    out = _week(results)
    by_player = {p.player_id: p for p in out.players}
    assert by_player["p1"].roster_position == "QB" and by_player["p1"].started
    assert by_player["p1"].points == 12.35
    assert by_player["p3"].roster_position == "FLEX"
    assert by_player["p9"].roster_position == BENCH and not by_player["p9"].started
    assert by_player["q1"].roster_id == 7 and by_player["q1"].points == 0.0
    assert {p.matchup_uuid for p in out.players} == {out.matchups[0].matchup_uuid}
