"""
Repository interfaces for league history data.
No business logic; only read/write operations.
Every write is an idempotent upsert keyed by the table's unique constraint.
"""
from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

from league_history.models import (
    BracketType,
    BrokenLeagueHistory,
    League,
    LeagueFormat,
    LeagueMemberRoster,
    LeagueMembership,
    Matchup,
    MatchupPlayer,
    MatchupStatus,
    Player,
    PlayoffMatchup,
    PlayoffRoundType,
    RosterType,
    RoundName,
    ScoringFormat,
    SourceType,
    SyncState,
    User,
    WaiverType,
)


def _parse_datetime(s: str | None) -> datetime:
    if s is None:
        raise ValueError("expected datetime string")
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _placeholders(n: int) -> str:
    return ", ".join("?" for _ in range(n))


def _executemany(conn: sqlite3.Connection, sql: str, rows: Sequence[tuple]) -> None:
    """Run one batched write as a single transaction; nothing from a failed batch is kept."""
    if not rows:
        return
    try:
        conn.executemany(sql, rows)
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise


# ---------- UserRepository ----------


class UserRepository:
    """Upsert/read for users."""

    def upsert(self, conn: sqlite3.Connection, user: User) -> User:
        _executemany(
            conn,
            """
            INSERT INTO users (id, sleeper_user_id, username, avatar_id, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                sleeper_user_id = excluded.sleeper_user_id,
                username = excluded.username,
                avatar_id = excluded.avatar_id,
                updated_at = excluded.updated_at
            """,
            [(user.id, user.sleeper_user_id, user.username, user.avatar_id, _now_iso())],
        )
        return user

    def get(self, conn: sqlite3.Connection, user_id: str) -> User | None:
        row = conn.execute(
            "SELECT id, sleeper_user_id, username, avatar_id FROM users WHERE id = ?",
            (user_id,),
        ).fetchone()
        if row is None:
            return None
        return User(
            id=row["id"],
            sleeper_user_id=row["sleeper_user_id"],
            username=row["username"],
            avatar_id=row["avatar_id"],
        )


# ---------- LeagueRepository ----------

_LEAGUE_COLUMNS = (
    "league_id", "league_group_id", "league_name", "season", "status", "avatar_id",
    "previous_league_id", "total_rosters", "roster_positions", "scoring_settings",
    "scoring_format", "league_format", "roster_type", "waiver_type", "waiver_budget",
    "waiver_day_of_week", "trade_deadline", "draft_rounds", "reserve_slots", "taxi_slots",
    "taxi_deadline", "taxi_years", "playoff_week_start", "playoff_teams", "playoff_round_type",
    "regular_season_weeks", "total_weeks", "playoff_rounds", "playoff_week_map",
    "playoff_bye_teams_count",
)


def _league_to_row(league: League) -> tuple:
    d = league.to_dict()
    for col in ("roster_positions", "scoring_settings", "playoff_rounds", "playoff_week_map"):
        d[col] = json.dumps(d[col])
    return tuple(d[col] for col in _LEAGUE_COLUMNS)


def _row_to_league(row: sqlite3.Row) -> League:
    r = dict(row)
    week_map = json.loads(r["playoff_week_map"])
    return League(
        league_id=r["league_id"],
        league_group_id=r["league_group_id"],
        league_name=r["league_name"],
        season=r["season"],
        status=r["status"],
        avatar_id=r["avatar_id"],
        previous_league_id=r.get("previous_league_id"),
        total_rosters=r["total_rosters"],
        roster_positions=json.loads(r["roster_positions"]),
        scoring_settings=json.loads(r["scoring_settings"]),
        scoring_format=ScoringFormat(r["scoring_format"]),
        league_format=LeagueFormat(r["league_format"]),
        roster_type=RosterType(r["roster_type"]),
        waiver_type=WaiverType(r["waiver_type"]),
        waiver_budget=r["waiver_budget"],
        waiver_day_of_week=r["waiver_day_of_week"],
        trade_deadline=r["trade_deadline"],
        draft_rounds=r["draft_rounds"],
        reserve_slots=r["reserve_slots"],
        taxi_slots=r["taxi_slots"],
        taxi_deadline=r["taxi_deadline"],
        taxi_years=r["taxi_years"],
        playoff_week_start=r["playoff_week_start"],
        playoff_teams=r["playoff_teams"],
        playoff_round_type=PlayoffRoundType(r["playoff_round_type"]),
        regular_season_weeks=r["regular_season_weeks"],
        total_weeks=r["total_weeks"],
        playoff_rounds=[RoundName(n) for n in json.loads(r["playoff_rounds"])],
        playoff_week_map={RoundName(k): list(v) for k, v in week_map.items()},
        playoff_bye_teams_count=r["playoff_bye_teams_count"],
    )


class LeagueRepository:
    """League rows and lineage-group lookups."""

    def upsert_many(self, conn: sqlite3.Connection, leagues: Iterable[League]) -> None:
        cols = ", ".join(_LEAGUE_COLUMNS)
        updates = ", ".join(f"{c} = excluded.{c}" for c in _LEAGUE_COLUMNS if c != "league_id")
        _executemany(
            conn,
            f"INSERT INTO leagues ({cols}) VALUES ({_placeholders(len(_LEAGUE_COLUMNS))}) "
            f"ON CONFLICT(league_id) DO UPDATE SET {updates}",
            [_league_to_row(lg) for lg in leagues],
        )

    def get(self, conn: sqlite3.Connection, league_id: str) -> League | None:
        row = conn.execute("SELECT * FROM leagues WHERE league_id = ?", (league_id,)).fetchone()
        if row is None:
            return None
        return _row_to_league(row)

    def existing_ids(self, conn: sqlite3.Connection, league_ids: Sequence[str]) -> set[str]:
        """Which of league_ids are already stored."""
        if not league_ids:
            return set()
        rows = conn.execute(
            f"SELECT league_id FROM leagues WHERE league_id IN ({_placeholders(len(league_ids))})",
            tuple(league_ids),
        ).fetchall()
        return {r["league_id"] for r in rows}

    def group_ids_for(self, conn: sqlite3.Connection, league_ids: Sequence[str]) -> list[str]:
        if not league_ids:
            return []
        rows = conn.execute(
            f"SELECT DISTINCT league_group_id FROM leagues WHERE league_id IN ({_placeholders(len(league_ids))})",
            tuple(league_ids),
        ).fetchall()
        return [r["league_group_id"] for r in rows]

    def league_ids_in_groups(self, conn: sqlite3.Connection, group_ids: Sequence[str]) -> list[str]:
        """Every season of every listed lineage group, newest season first."""
        if not group_ids:
            return []
        rows = conn.execute(
            f"SELECT league_id FROM leagues WHERE league_group_id IN ({_placeholders(len(group_ids))}) "
            "ORDER BY league_group_id, season DESC",
            tuple(group_ids),
        ).fetchall()
        return [r["league_id"] for r in rows]

    def list_by_group(self, conn: sqlite3.Connection, league_group_id: str) -> list[League]:
        rows = conn.execute(
            "SELECT * FROM leagues WHERE league_group_id = ? ORDER BY season DESC",
            (league_group_id,),
        ).fetchall()
        return [_row_to_league(r) for r in rows]


# ---------- BrokenLeagueHistoryRepository ----------


class BrokenLeagueHistoryRepository:
    """Write-once markers for lineage groups with a missing predecessor."""

    def insert_many(self, conn: sqlite3.Connection, markers: Iterable[BrokenLeagueHistory]) -> None:
        now = _now_iso()
        _executemany(
            conn,
            "INSERT INTO broken_league_histories (league_group_id, created_at) VALUES (?, ?) "
            "ON CONFLICT(league_group_id) DO NOTHING",
            [(m.league_group_id, now) for m in markers],
        )

    def list_group_ids(self, conn: sqlite3.Connection) -> list[str]:
        rows = conn.execute(
            "SELECT league_group_id FROM broken_league_histories ORDER BY created_at"
        ).fetchall()
        return [r["league_group_id"] for r in rows]


# ---------- UserLeagueRepository ----------


class UserLeagueRepository:
    """(user, league) access pairs."""

    def upsert_many(self, conn: sqlite3.Connection, memberships: Iterable[LeagueMembership]) -> None:
        _executemany(
            conn,
            "INSERT INTO user_leagues (user_id, league_id) VALUES (?, ?) "
            "ON CONFLICT(user_id, league_id) DO NOTHING",
            [(m.user_id, m.league_id) for m in memberships],
        )

    def list_league_ids_by_user(self, conn: sqlite3.Connection, user_id: str) -> list[str]:
        rows = conn.execute(
            "SELECT league_id FROM user_leagues WHERE user_id = ? ORDER BY league_id",
            (user_id,),
        ).fetchall()
        return [r["league_id"] for r in rows]


# ---------- LeagueMemberRepository ----------


class LeagueMemberRepository:
    """Roster ownership rows. Unique on (league, roster, sleeper user)."""

    def upsert_many(self, conn: sqlite3.Connection, members: Iterable[LeagueMemberRoster]) -> None:
        _executemany(
            conn,
            """
            INSERT INTO league_members (league_id, roster_id, sleeper_user_id, league_username)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(league_id, roster_id, sleeper_user_id) DO UPDATE SET
                league_username = excluded.league_username
            """,
            [(m.league_id, m.roster_id, m.sleeper_user_id, m.league_username) for m in members],
        )

    def list_by_league(self, conn: sqlite3.Connection, league_id: str) -> list[LeagueMemberRoster]:
        rows = conn.execute(
            "SELECT league_id, roster_id, sleeper_user_id, league_username FROM league_members "
            "WHERE league_id = ? ORDER BY roster_id, sleeper_user_id",
            (league_id,),
        ).fetchall()
        return [
            LeagueMemberRoster(
                league_id=r["league_id"],
                roster_id=r["roster_id"],
                sleeper_user_id=r["sleeper_user_id"],
                league_username=r["league_username"],
            )
            for r in rows
        ]


# ---------- MatchupRepository ----------

_MATCHUP_COLUMNS = (
    "matchup_uuid", "league_id", "matchup_status", "season", "week", "matchup_id",
    "roster_one_id", "roster_two_id", "roster_one_score", "roster_two_score", "winning_roster_id",
)


def _row_to_matchup(row: sqlite3.Row) -> Matchup:
    return Matchup(
        matchup_uuid=row["matchup_uuid"],
        league_id=row["league_id"],
        matchup_status=MatchupStatus(row["matchup_status"]),
        season=row["season"],
        week=row["week"],
        matchup_id=row["matchup_id"],
        roster_one_id=row["roster_one_id"],
        roster_two_id=row["roster_two_id"],
        roster_one_score=row["roster_one_score"],
        roster_two_score=row["roster_two_score"],
        winning_roster_id=row["winning_roster_id"],
    )


class MatchupRepository:
    """Weekly matchups. Keyed by matchup_uuid."""

    def upsert_many(self, conn: sqlite3.Connection, matchups: Iterable[Matchup]) -> None:
        cols = ", ".join(_MATCHUP_COLUMNS)
        updates = ", ".join(f"{c} = excluded.{c}" for c in _MATCHUP_COLUMNS if c != "matchup_uuid")
        rows = []
        for m in matchups:
            d = m.to_dict()
            rows.append(tuple(d[c] for c in _MATCHUP_COLUMNS))
        _executemany(
            conn,
            f"INSERT INTO matchups ({cols}) VALUES ({_placeholders(len(_MATCHUP_COLUMNS))}) "
            f"ON CONFLICT(matchup_uuid) DO UPDATE SET {updates}",
            rows,
        )

    def get(self, conn: sqlite3.Connection, matchup_uuid: str) -> Matchup | None:
        row = conn.execute(
            "SELECT * FROM matchups WHERE matchup_uuid = ?", (matchup_uuid,)
        ).fetchone()
        if row is None:
            return None
        return _row_to_matchup(row)

    def list_by_league_weeks(
        self,
        conn: sqlite3.Connection,
        league_id: str,
        start_week: int,
        end_week: int | None = None,
    ) -> list[Matchup]:
        """Matchups for a league from start_week onward (through end_week if given), earliest first."""
        sql = "SELECT * FROM matchups WHERE league_id = ? AND week >= ?"
        args: tuple[Any, ...] = (league_id, start_week)
        if end_week is not None:
            sql += " AND week <= ?"
            args = args + (end_week,)
        sql += " ORDER BY week, roster_one_id"
        return [_row_to_matchup(r) for r in conn.execute(sql, args).fetchall()]


# ---------- MatchupPlayerRepository ----------


class MatchupPlayerRepository:
    """Per-player lines. Unique on (matchup, roster, player)."""

    def upsert_many(self, conn: sqlite3.Connection, entries: Iterable[MatchupPlayer]) -> None:
        _executemany(
            conn,
            """
            INSERT INTO matchup_players
                (matchup_uuid, roster_id, player_id, roster_position, started, points, opposing_team)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(matchup_uuid, roster_id, player_id) DO UPDATE SET
                roster_position = excluded.roster_position,
                started = excluded.started,
                points = excluded.points,
                opposing_team = excluded.opposing_team
            """,
            [
                (e.matchup_uuid, e.roster_id, e.player_id, e.roster_position,
                 1 if e.started else 0, e.points, e.opposing_team)
                for e in entries
            ],
        )

    def list_by_matchup(self, conn: sqlite3.Connection, matchup_uuid: str) -> list[MatchupPlayer]:
        rows = conn.execute(
            "SELECT * FROM matchup_players WHERE matchup_uuid = ? ORDER BY roster_id, player_id",
            (matchup_uuid,),
        ).fetchall()
        return [
            MatchupPlayer(
                matchup_uuid=r["matchup_uuid"],
                roster_id=r["roster_id"],
                player_id=r["player_id"],
                roster_position=r["roster_position"],
                started=bool(r["started"]),
                points=r["points"],
                opposing_team=r["opposing_team"],
            )
            for r in rows
        ]


# ---------- PlayoffMatchupRepository ----------


class PlayoffMatchupRepository:
    """Bracket rows layered on existing matchups."""

    def upsert_many(self, conn: sqlite3.Connection, rows: Iterable[PlayoffMatchup]) -> None:
        _executemany(
            conn,
            """
            INSERT INTO playoff_matchups
                (matchup_uuid, round_name, bracket_type, playoff_position,
                 previous_matchup_one, previous_matchup_two, source_type)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(matchup_uuid) DO UPDATE SET
                round_name = excluded.round_name,
                bracket_type = excluded.bracket_type,
                playoff_position = excluded.playoff_position,
                previous_matchup_one = excluded.previous_matchup_one,
                previous_matchup_two = excluded.previous_matchup_two,
                source_type = excluded.source_type
            """,
            [
                (p.matchup_uuid, p.round_name.value if p.round_name else None, p.bracket_type.value,
                 p.playoff_position, p.previous_matchup_one, p.previous_matchup_two,
                 p.source_type.value if p.source_type else None)
                for p in rows
            ],
        )

    def list_by_league(self, conn: sqlite3.Connection, league_id: str) -> list[PlayoffMatchup]:
        rows = conn.execute(
            """
            SELECT p.* FROM playoff_matchups p
            JOIN matchups m ON m.matchup_uuid = p.matchup_uuid
            WHERE m.league_id = ?
            ORDER BY m.week, p.bracket_type, m.roster_one_id
            """,
            (league_id,),
        ).fetchall()
        return [
            PlayoffMatchup(
                matchup_uuid=r["matchup_uuid"],
                round_name=RoundName(r["round_name"]) if r["round_name"] else None,
                bracket_type=BracketType(r["bracket_type"]),
                playoff_position=r["playoff_position"],
                previous_matchup_one=r["previous_matchup_one"],
                previous_matchup_two=r["previous_matchup_two"],
                source_type=SourceType(r["source_type"]) if r["source_type"] else None,
            )
            for r in rows
        ]


# ---------- PlayerRepository ----------


class PlayerRepository:
    """Global player table."""

    _COLUMNS = (
        "player_id", "full_name", "first_name", "last_name", "team", "position",
        "fantasy_positions", "jersey_number", "age", "birth_date", "college", "rookie_year",
        "weight", "height", "years_exp",
    )

    def upsert_many(self, conn: sqlite3.Connection, players: Iterable[Player]) -> None:
        cols = ", ".join(self._COLUMNS)
        updates = ", ".join(f"{c} = excluded.{c}" for c in self._COLUMNS if c != "player_id")
        rows = [
            (p.player_id, p.full_name, p.first_name, p.last_name, p.team, p.position,
             json.dumps(list(p.fantasy_positions)), p.jersey_number, p.age, p.birth_date,
             p.college, p.rookie_year, p.weight, p.height, p.years_exp)
            for p in players
        ]
        _executemany(
            conn,
            f"INSERT INTO players ({cols}) VALUES ({_placeholders(len(self._COLUMNS))}) "
            f"ON CONFLICT(player_id) DO UPDATE SET {updates}",
            rows,
        )

    def get(self, conn: sqlite3.Connection, player_id: str) -> Player | None:
        row = conn.execute("SELECT * FROM players WHERE player_id = ?", (player_id,)).fetchone()
        if row is None:
            return None
        r = dict(row)
        r["fantasy_positions"] = json.loads(r["fantasy_positions"] or "[]")
        return Player(**r)

    def count(self, conn: sqlite3.Connection) -> int:
        return conn.execute("SELECT COUNT(*) FROM players").fetchone()[0]


# ---------- SyncStateRepository ----------


class SyncStateRepository:
    """Refresh stamps for global sources."""

    def get(self, conn: sqlite3.Connection, source: str) -> SyncState | None:
        row = conn.execute(
            "SELECT source, last_updated_at FROM sync_state WHERE source = ?", (source,)
        ).fetchone()
        if row is None:
            return None
        return SyncState(source=row["source"], last_updated_at=_parse_datetime(row["last_updated_at"]))

    def touch(self, conn: sqlite3.Connection, source: str, at: datetime | None = None) -> None:
        stamp = (at or datetime.now(timezone.utc)).isoformat()
        _executemany(
            conn,
            "INSERT INTO sync_state (source, last_updated_at) VALUES (?, ?) "
            "ON CONFLICT(source) DO UPDATE SET last_updated_at = excluded.last_updated_at",
            [(source, stamp)],
        )
