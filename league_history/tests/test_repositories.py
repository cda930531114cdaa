"""
Tests for the SQLite repositories: idempotent upserts, JSON columns, lineage queries.
"""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from league_history.models import (
    BracketType,
    BrokenLeagueHistory,
    LeagueMemberRoster,
    LeagueMembership,
    MatchupStatus,
    Player,
    PlayoffMatchup,
    RoundName,
    ScoringFormat,
    SourceType,
    User,
)
from league_history.persistence.db import get_connection, init_db, set_db_path
from league_history.persistence.repositories import (
    BrokenLeagueHistoryRepository,
    LeagueMemberRepository,
    LeagueRepository,
    MatchupPlayerRepository,
    MatchupRepository,
    PlayerRepository,
    PlayoffMatchupRepository,
    SyncStateRepository,
    UserLeagueRepository,
    UserRepository,
)
from league_history.services.classification import classify_league
from league_history.services.matchups import build_week
from league_history.sleeper.records import LeagueSnapshot, RawResult


@pytest.fixture
def db_conn(tmp_path):
    """Temporary DB with the full schema."""
    db_path = tmp_path / "repo_test.db"
    set_db_path(db_path)
    init_db(db_path=db_path)
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


def _league(league_id: str, season: str, group: str, previous: str | None = None):
    snapshot = LeagueSnapshot.from_dict({
        "league_id": league_id,
        "name": "Repo League",
        "season": season,
        "status": "complete",
        "total_rosters": 10,
        "roster_positions": ["QB", "SUPER_FLEX", "BN"],
        "scoring_settings": {"rec": 1, "pass_yd": 0.04},
        "previous_league_id": previous,
        "settings": {"playoff_week_start": 15, "playoff_teams": 6, "type": 1},
    })
    return classify_league(snapshot, group)


def test_init_db_is_repeatable(tmp_path):
    db_path = tmp_path / "twice.db"
    init_db(db_path=db_path)
    init_db(db_path=db_path)
    conn = get_connection(db_path)
    try:
        cols = [r[1] for r in conn.execute("PRAGMA table_info(leagues)").fetchall()]
    finally:
        conn.close()
    assert "previous_league_id" in cols


def test_user_upsert_overwrites(db_conn):
    repo = UserRepository()
    repo.upsert(db_conn, User(id="u1", sleeper_user_id="s1", username="old"))
    repo.upsert(db_conn, User(id="u1", sleeper_user_id="s1", username="new", avatar_id="av"))
    user = repo.get(db_conn, "u1")
    assert user.username == "new"
    assert user.avatar_id == "av"
    assert repo.get(db_conn, "missing") is None


def test_league_round_trip_and_group_queries(db_conn):
    repo = LeagueRepository()
    repo.upsert_many(db_conn, [_league("A", "2024", "g1", "B"), _league("B", "2023", "g1")])
    repo.upsert_many(db_conn, [_league("X", "2024", "g2")])
    stored = repo.get(db_conn, "A")
    assert stored.scoring_format == ScoringFormat.PPR_SUPER_FLEX
    assert stored.previous_league_id == "B"
    assert stored.playoff_week_map[RoundName.FINALS] == [17]
    assert stored.scoring_settings["pass_yd"] == 0.04
    assert repo.existing_ids(db_conn, ["A", "Z"]) == {"A"}
    assert repo.group_ids_for(db_conn, ["B"]) == ["g1"]
    assert repo.league_ids_in_groups(db_conn, ["g1"]) == ["A", "B"]
    assert [lg.league_id for lg in repo.list_by_group(db_conn, "g1")] == ["A", "B"]
    # re-upsert does not duplicate
    repo.upsert_many(db_conn, [_league("A", "2024", "g1", "B")])
    assert db_conn.execute("SELECT COUNT(*) FROM leagues").fetchone()[0] == 3


def test_broken_markers_and_memberships_are_write_once(db_conn):
    broken = BrokenLeagueHistoryRepository()
    broken.insert_many(db_conn, [BrokenLeagueHistory("g1")])
    broken.insert_many(db_conn, [BrokenLeagueHistory("g1"), BrokenLeagueHistory("g2")])
    assert sorted(broken.list_group_ids(db_conn)) == ["g1", "g2"]

    links = UserLeagueRepository()
    links.upsert_many(db_conn, [LeagueMembership("u1", "B"), LeagueMembership("u1", "A")])
    links.upsert_many(db_conn, [LeagueMembership("u1", "A")])
    assert links.list_league_ids_by_user(db_conn, "u1") == ["A", "B"]


def test_league_members_unique_per_owner(db_conn):
    repo = LeagueMemberRepository()
    rows = [
        LeagueMemberRoster("A", 1, "s1", "alice"),
        LeagueMemberRoster("A", 1, "s2", "bob"),
    ]
    repo.upsert_many(db_conn, rows)
    repo.upsert_many(db_conn, [LeagueMemberRoster("A", 1, "s1", "alice2")])
    members = repo.list_by_league(db_conn, "A")
    assert [(m.roster_id, m.sleeper_user_id, m.league_username) for m in members] == [
        (1, "s1", "alice2"),
        (1, "s2", "bob"),
    ]


def test_matchups_players_and_playoffs(db_conn):
    results = [
        RawResult(1, 1, 110.5, players=("p1", "p2"), starters=("p1",), players_points={"p1": 20.0}),
        RawResult(2, 1, 90.0, players=("p3",), starters=("p3",), players_points={"p3": 9.0}),
    ]
    week = build_week(
        results, league_id="A", season="2024", week=15, playoff_week_start=15,
        roster_positions=["QB"], current_season="2024", current_week=15,
    )
    matchups = MatchupRepository()
    players = MatchupPlayerRepository()
    playoffs = PlayoffMatchupRepository()
    for _ in range(2):
        matchups.upsert_many(db_conn, week.matchups)
        players.upsert_many(db_conn, week.players)
    uuid = week.matchups[0].matchup_uuid
    stored = matchups.get(db_conn, uuid)
    assert stored.matchup_status == MatchupStatus.IN_PROGRESS
    assert stored.winning_roster_id == 1
    assert len(players.list_by_matchup(db_conn, uuid)) == 3
    assert matchups.list_by_league_weeks(db_conn, "A", 15, 15)[0].matchup_uuid == uuid
    assert matchups.list_by_league_weeks(db_conn, "A", 16) == []

    row = PlayoffMatchup(
        matchup_uuid=uuid,
        bracket_type=BracketType.WINNERS,
        round_name=RoundName.QUARTERFINALS,
        source_type=SourceType.WINNER,
    )
    playoffs.upsert_many(db_conn, [row])
    playoffs.upsert_many(db_conn, [row])
    assert playoffs.list_by_league(db_conn, "A") == [row]


def test_players_and_sync_state(db_conn):
    repo = PlayerRepository()
    repo.upsert_many(db_conn, [Player(player_id="4046", full_name="Patrick Mahomes", fantasy_positions=["QB"])])
    repo.upsert_many(db_conn, [Player(player_id="4046", full_name="Patrick Mahomes", team="KC", fantasy_positions=["QB"])])
    assert repo.count(db_conn) == 1
    assert repo.get(db_conn, "4046").team == "KC"
    assert repo.get(db_conn, "4046").fantasy_positions == ["QB"]

    state = SyncStateRepository()
    assert state.get(db_conn, "players") is None
    at = datetime(2024, 9, 1, 12, 0, tzinfo=timezone.utc)
    state.touch(db_conn, "players", at)
    assert state.get(db_conn, "players").last_updated_at == at
