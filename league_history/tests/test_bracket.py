"""
Tests for playoff bracket resolution: week assignment, participant advancement,
back-references, round naming and two-week rounds.
"""
from __future__ import annotations

from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from league_history.models import BracketType, MatchupStatus, RoundName, SourceType
from league_history.services.bracket import MatchupLookup, node_weeks, resolve_brackets
from league_history.services.classification import classify_league
from league_history.services.matchups import build_matchup
from league_history.sleeper.records import BracketNode, LeagueSnapshot, RawResult


def _league(playoff_week_start: int, playoff_teams: int, round_type: int = 0):
    snapshot = LeagueSnapshot.from_dict({
        "league_id": "L1",
        "name": "Test",
        "season": "2023",
        "status": "complete",
        "total_rosters": 8,
        "roster_positions": ["QB", "BN"],
        "scoring_settings": {"rec": 1},
        "settings": {
            "playoff_week_start": playoff_week_start,
            "playoff_teams": playoff_teams,
            "playoff_round_type": round_type,
        },
    })
    return classify_league(snapshot, "g")


def _matchup(week: int, one: tuple[int, float], two: tuple[int, float] | None = None):
    group = [RawResult(one[0], 1 if two else None, one[1])]
    if two:
        group.append(RawResult(two[0], 1, two[1]))
    return build_matchup(group, "L1", "2023", week, MatchupStatus.COMPLETED)


def _node(raw: dict) -> BracketNode:
    return BracketNode.from_dict(raw)


def test_second_round_links_back_to_first_round_matchup():
    league = _league(playoff_week_start=1, playoff_teams=4)
    week1 = _matchup(1, (1, 120.0), (2, 130.0))
    week2 = _matchup(2, (2, 101.0), (3, 99.0))
    winners = [
        _node({"r": 1, "m": 1, "t1": 1, "t2": 2, "w": 2, "l": 1}),
        _node({"r": 2, "m": 2, "t1": None, "t2": 3, "t1_from": {"w": 1}, "p": 1}),
    ]
    rows = resolve_brackets(league, winners, [], [week1, week2])
    by_uuid = {r.matchup_uuid: r for r in rows}
    assert set(by_uuid) == {week1.matchup_uuid, week2.matchup_uuid}

    final = by_uuid[week2.matchup_uuid]
    assert final.previous_matchup_one == week1.matchup_uuid
    assert final.previous_matchup_two is None
    assert final.bracket_type == BracketType.WINNERS
    assert final.round_name == RoundName.FINALS
    assert final.source_type == SourceType.WINNER
    assert final.playoff_position == 1

    opener = by_uuid[week1.matchup_uuid]
    assert opener.round_name is None
    assert opener.source_type is None
    assert opener.previous_matchup_one is None and opener.previous_matchup_two is None


def test_participants_advance_from_scores_when_bracket_has_no_result():
    league = _league(playoff_week_start=1, playoff_teams=4)
    week1 = _matchup(1, (1, 120.0), (2, 130.0))
    week2 = _matchup(2, (2, 101.0), (3, 99.0))
    winners = [
        _node({"r": 1, "m": 1, "t1": 1, "t2": 2}),
        _node({"r": 2, "m": 2, "t1_from": {"w": 1}, "t2": 3}),
    ]
    rows = resolve_brackets(league, winners, [], [week1, week2])
    assert {r.matchup_uuid for r in rows} == {week1.matchup_uuid, week2.matchup_uuid}


def test_third_place_game_is_unnamed_and_loser_sourced():
    league = _league(playoff_week_start=15, playoff_teams=4)
    semi_a = _matchup(15, (1, 100.0), (4, 90.0))
    semi_b = _matchup(15, (2, 80.0), (3, 95.0))
    third = _matchup(16, (4, 70.0), (2, 75.0))
    winners = [
        _node({"r": 1, "m": 1, "t1": 1, "t2": 4, "w": 1, "l": 4}),
        _node({"r": 1, "m": 2, "t1": 2, "t2": 3, "w": 3, "l": 2}),
        _node({"r": 2, "m": 3, "t1_from": {"l": 1}, "t2_from": {"l": 2}, "p": 3}),
    ]
    rows = resolve_brackets(league, winners, [], [semi_a, semi_b, third])
    assert len(rows) == 3
    row = next(r for r in rows if r.matchup_uuid == third.matchup_uuid)
    assert row.bracket_type == BracketType.WINNERS
    assert row.round_name is None
    assert row.source_type == SourceType.LOSER
    assert row.previous_matchup_one == semi_a.matchup_uuid
    assert row.previous_matchup_two == semi_b.matchup_uuid
    assert row.playoff_position == 3


def test_two_week_championship_maps_both_weeks():
    league = _league(playoff_week_start=15, playoff_teams=4, round_type=1)
    final_node = _node({"r": 2, "m": 3, "t1": 1, "t2": 3, "t1_from": {"w": 1}, "t2_from": {"w": 2}})
    assert node_weeks(final_node, league) == [16, 17]
    leg_one = _matchup(16, (1, 90.0), (3, 100.0))
    leg_two = _matchup(17, (3, 80.0), (1, 95.0))
    rows = resolve_brackets(league, [final_node], [], [leg_one, leg_two])
    assert {r.matchup_uuid for r in rows} == {leg_one.matchup_uuid, leg_two.matchup_uuid}
    assert {r.round_name for r in rows} == {RoundName.FINALS}


def test_bye_rows_are_never_linked():
    league = _league(playoff_week_start=15, playoff_teams=6)
    bye = _matchup(15, (1, 0.0))
    lookup = MatchupLookup([bye])
    assert lookup.find(15, 1, None) is None
    node = _node({"r": 1, "m": 1, "t1": 1, "t2": None})
    assert resolve_brackets(league, [node], [], [bye]) == []


def test_node_without_persisted_matchup_is_skipped():
    league = _league(playoff_week_start=15, playoff_teams=4)
    node = _node({"r": 1, "m": 1, "t1": 5, "t2": 6})
    assert resolve_brackets(league, [node], [], []) == []


def test_opening_node_keeps_no_round_name():
    league = _league(playoff_week_start=15, playoff_teams=4)
    semi = _matchup(15, (1, 110.0), (2, 100.0))
    rows = resolve_brackets(league, [_node({"r": 1, "m": 1, "t1": 1, "t2": 2})], [], [semi])
    assert len(rows) == 1
    assert rows[0].matchup_uuid == semi.matchup_uuid
    assert rows[0].round_name is None
    assert rows[0].source_type is None
