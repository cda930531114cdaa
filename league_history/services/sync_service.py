"""
Sync orchestration: user -> leagues (with lineage) -> members -> matchups -> playoffs.

Fan-out is bounded per league and per week. Failures inside one league (or one
league-week) are captured as UnitResults and never stop sibling units; only a
failed precondition (bad username, unknown user, no season/week cursor, no league
list) ends a run. Every write is an idempotent upsert, so a partial run can
simply be repeated.
"""
from __future__ import annotations

import asyncio
import logging
import re
import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from league_history.config import SyncConfig
from league_history.models import (
    League,
    LeagueMemberRoster,
    LeagueMembership,
    User,
)
from league_history.persistence.repositories import (
    BrokenLeagueHistoryRepository,
    LeagueMemberRepository,
    LeagueRepository,
    MatchupPlayerRepository,
    MatchupRepository,
    PlayoffMatchupRepository,
    UserLeagueRepository,
    UserRepository,
)
from league_history.services.batching import write_in_chunks
from league_history.services.bracket import resolve_brackets
from league_history.services.concurrency import SkipUnit, UnitResult, isolate, run_bounded
from league_history.services.lineage import LineageResult, new_group_id, resolve_lineage
from league_history.services.matchups import build_week
from league_history.services.players import refresh_players
from league_history.sleeper.client import SleeperClient
from league_history.sleeper.records import LeagueUser, NFLState, RawResult, Roster

logger = logging.getLogger(__name__)

_USERNAME_RE = re.compile(r"^[\w.\-]{1,64}$")

# ---------- Exceptions ----------


class InvalidUsernameError(ValueError):
    """Caller-supplied username is empty or malformed. Rejected before any I/O."""


class UsernameNotFoundError(LookupError):
    """Upstream has no user with this username."""

    def __init__(self, username: str) -> None:
        super().__init__(f"Sleeper username not found: {username}")
        self.username = username


class CurrentStateUnavailableError(RuntimeError):
    """The provider's current season/week cursor could not be fetched."""


class LeagueFetchError(RuntimeError):
    """The user's current league list could not be fetched."""


class BracketPersistenceError(RuntimeError):
    """Resolved playoff rows for a league could not be written."""

    def __init__(self, league_id: str, cause: Exception) -> None:
        super().__init__(f"Failed to persist playoff matchups for league {league_id}: {cause}")
        self.league_id = league_id


# ---------- Result types ----------


class SyncPhase(str, Enum):
    NOT_STARTED = "not_started"
    USER_UPSERTED = "user_upserted"
    LEAGUES_RESOLVED = "leagues_resolved"
    MEMBERS_POPULATED = "members_populated"
    MATCHUPS_POPULATED = "matchups_populated"
    PLAYOFFS_POPULATED = "playoffs_populated"
    DONE = "done"


class SyncErrorCode(str, Enum):
    INVALID_USERNAME = "INVALID_USERNAME"
    USERNAME_NOT_FOUND = "USERNAME_NOT_FOUND"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


@dataclass
class SyncResult:
    """
    Outcome of one run. success is False only for terminal failures;
    per-league failures are listed in units and make the run partial.
    """
    success: bool
    phase: SyncPhase
    error: str | None = None
    error_code: SyncErrorCode | None = None
    league_ids: list[str] = field(default_factory=list)
    units: list[UnitResult] = field(default_factory=list)

    @property
    def failures(self) -> list[UnitResult]:
        return [u for u in self.units if not u.ok]

    @property
    def partial(self) -> bool:
        return self.success and bool(self.failures)

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True}
        return {
            "success": False,
            "error": self.error or "Unknown error during initialization",
            "code": (self.error_code or SyncErrorCode.UNEXPECTED_ERROR).value,
        }


def validate_username(username: str | None) -> str:
    if not isinstance(username, str) or not username.strip():
        raise InvalidUsernameError("Missing or invalid sleeper username")
    username = username.strip()
    if not _USERNAME_RE.match(username):
        raise InvalidUsernameError(f"Invalid sleeper username: {username!r}")
    return username


def build_member_rows(
    league_id: str, rosters: list[Roster], users: list[LeagueUser]
) -> list[LeagueMemberRoster]:
    """One row per (roster, owner). League users that own no roster are left out."""
    owner_to_roster: dict[str, int] = {}
    for roster in rosters:
        for owner_id in roster.owner_ids:
            owner_to_roster[owner_id] = roster.roster_id
    rows: list[LeagueMemberRoster] = []
    for user in users:
        roster_id = owner_to_roster.get(user.user_id)
        if roster_id is None:
            logger.debug(f"League {league_id}: user {user.user_id} owns no roster")
            continue
        rows.append(
            LeagueMemberRoster(
                league_id=league_id,
                roster_id=roster_id,
                sleeper_user_id=user.user_id,
                league_username=user.display_name,
            )
        )
    return rows


# ---------- LeagueSyncService ----------


class LeagueSyncService:
    """
    Runs the ingestion phases against one store connection and one upstream client.
    The current season/week is fetched once per run and passed to every phase.
    """

    PHASE_PLAYERS = "players"
    PHASE_MEMBERS = "members"
    PHASE_MATCHUPS = "matchups"
    PHASE_PLAYOFFS = "playoffs"

    def __init__(
        self,
        client: SleeperClient,
        config: SyncConfig | None = None,
        group_id_factory: Callable[[], str] = new_group_id,
    ) -> None:
        self.client = client
        self.config = config or SyncConfig()
        self._group_id_factory = group_id_factory
        self._user_repo = UserRepository()
        self._league_repo = LeagueRepository()
        self._broken_repo = BrokenLeagueHistoryRepository()
        self._user_league_repo = UserLeagueRepository()
        self._member_repo = LeagueMemberRepository()
        self._matchup_repo = MatchupRepository()
        self._matchup_player_repo = MatchupPlayerRepository()
        self._playoff_repo = PlayoffMatchupRepository()

    # ---------- Entry points ----------

    async def initialize_user_data(
        self, conn: sqlite3.Connection, auth_user_id: str, sleeper_username: str
    ) -> SyncResult:
        """Full sync for an authenticated user and their claimed Sleeper username."""
        result = SyncResult(success=False, phase=SyncPhase.NOT_STARTED)
        try:
            username = validate_username(sleeper_username)
            if not auth_user_id:
                raise ValueError("Authenticated user id is required")

            user = await self.upsert_user(conn, auth_user_id, username)
            result.phase = SyncPhase.USER_UPSERTED

            state = await self.fetch_current_state()

            result.units += await isolate(
                self.PHASE_PLAYERS, "players", refresh_players(conn, self.client, self.config)
            )

            league_ids = await self.populate_leagues(conn, user, state)
            result.league_ids = league_ids
            result.phase = SyncPhase.LEAGUES_RESOLVED

            if league_ids:
                result.units += await self.populate_league_members(conn, league_ids)
                result.phase = SyncPhase.MEMBERS_POPULATED
                result.units += await self.populate_matchups(conn, league_ids, state)
                result.phase = SyncPhase.MATCHUPS_POPULATED
                result.units += await self.populate_playoff_matchups(conn, league_ids, state)
                result.phase = SyncPhase.PLAYOFFS_POPULATED
        except InvalidUsernameError as e:
            return self._failed(result, e, SyncErrorCode.INVALID_USERNAME)
        except UsernameNotFoundError as e:
            return self._failed(result, e, SyncErrorCode.USERNAME_NOT_FOUND)
        except Exception as e:
            logger.exception(f"initialize_user_data failed for user {auth_user_id}")
            return self._failed(result, e, SyncErrorCode.UNEXPECTED_ERROR)

        result.phase = SyncPhase.DONE
        result.success = True
        if result.failures:
            logger.warning(
                f"initialize_user_data for {auth_user_id} finished with "
                f"{len(result.failures)} failed unit(s)"
            )
        return result

    async def populate_playoff_matchups_for_user(
        self, conn: sqlite3.Connection, auth_user_id: str
    ) -> SyncResult:
        """Re-run only the bracket phase for every league the user can access."""
        result = SyncResult(success=False, phase=SyncPhase.MATCHUPS_POPULATED)
        try:
            league_ids = self.get_all_leagues_for_user(conn, auth_user_id)
            state = await self.fetch_current_state()
            result.league_ids = league_ids
            result.units += await self.populate_playoff_matchups(conn, league_ids, state)
        except Exception as e:
            logger.exception(f"populate_playoff_matchups_for_user failed for user {auth_user_id}")
            return self._failed(result, e, SyncErrorCode.UNEXPECTED_ERROR)
        result.phase = SyncPhase.DONE
        result.success = True
        return result

    def get_all_leagues_for_user(self, conn: sqlite3.Connection, auth_user_id: str) -> list[str]:
        if not auth_user_id:
            raise ValueError("Authenticated user id is required")
        return self._user_league_repo.list_league_ids_by_user(conn, auth_user_id)

    @staticmethod
    def _failed(result: SyncResult, error: Exception, code: SyncErrorCode) -> SyncResult:
        result.success = False
        result.error = str(error) or type(error).__name__
        result.error_code = code
        return result

    # ---------- Preconditions ----------

    async def upsert_user(
        self, conn: sqlite3.Connection, auth_user_id: str, username: str
    ) -> User:
        sleeper_user = await self.client.fetch_user(username)
        if sleeper_user is None:
            raise UsernameNotFoundError(username)
        user = User(
            id=auth_user_id,
            sleeper_user_id=sleeper_user.user_id,
            username=sleeper_user.username or username,
            avatar_id=sleeper_user.avatar,
        )
        return self._user_repo.upsert(conn, user)

    async def fetch_current_state(self) -> NFLState:
        state = await self.client.fetch_current_state()
        if state is None:
            raise CurrentStateUnavailableError("Issue fetching NFL state")
        return state

    # ---------- Leagues ----------

    async def populate_leagues(
        self, conn: sqlite3.Connection, user: User, state: NFLState
    ) -> list[str]:
        """
        Ingest new top-level leagues with their full history and link every
        league (new or known) to the user. Returns the league ids to sync:
        every newly ingested season plus known leagues of the current season.
        """
        current = await self.client.fetch_current_leagues_for_user(user.sleeper_user_id, state.season)
        if current is None:
            raise LeagueFetchError(f"Could not fetch leagues for Sleeper user {user.sleeper_user_id}")
        if not current:
            logger.info(f"No {state.season} leagues for Sleeper user {user.sleeper_user_id}")
            return []

        current_ids = [lg.league_id for lg in current]
        existing = self._league_repo.existing_ids(conn, current_ids)
        to_ingest = [lg for lg in current if lg.league_id not in existing]

        lineages: list[LineageResult] = await run_bounded(
            to_ingest,
            lambda snapshot: resolve_lineage(self.client, snapshot, self._group_id_factory),
            self.config.league_concurrency,
        )
        markers = [lin.broken_marker for lin in lineages if lin.broken_marker is not None]
        ingested = [league for lin in lineages for league in lin.leagues]

        if markers:
            self._broken_repo.insert_many(conn, markers)
        if ingested:
            self._league_repo.upsert_many(conn, ingested)

        existing_top = [i for i in current_ids if i in existing]
        existing_history = self._league_repo.league_ids_in_groups(
            conn, self._league_repo.group_ids_for(conn, existing_top)
        )
        accessible = list(dict.fromkeys([lg.league_id for lg in ingested] + existing_history))
        self._user_league_repo.upsert_many(
            conn, [LeagueMembership(user_id=user.id, league_id=lid) for lid in accessible]
        )
        logger.info(
            f"User {user.id}: {len(to_ingest)} new league(s) ingested with {len(ingested)} season(s), "
            f"{len(existing_top)} already known, {len(markers)} broken history chain(s)"
        )

        refresh = [lg.league_id for lg in current if lg.league_id in existing and lg.season == state.season]
        return list(dict.fromkeys([lg.league_id for lg in ingested] + refresh))

    # ---------- Members ----------

    async def populate_league_members(
        self, conn: sqlite3.Connection, league_ids: list[str]
    ) -> list[UnitResult]:
        async def one(league_id: str) -> list[UnitResult]:
            return await isolate(self.PHASE_MEMBERS, league_id, self._sync_members(conn, league_id))

        return _flatten(await run_bounded(league_ids, one, self.config.league_concurrency))

    async def _sync_members(self, conn: sqlite3.Connection, league_id: str) -> None:
        rosters, users = await asyncio.gather(
            self.client.fetch_rosters(league_id),
            self.client.fetch_league_users(league_id),
        )
        if rosters is None:
            raise RuntimeError(f"Could not fetch rosters for league {league_id}")
        if users is None:
            raise RuntimeError(f"Could not fetch league users for league {league_id}")
        self._member_repo.upsert_many(conn, build_member_rows(league_id, rosters, users))

    # ---------- Matchups ----------

    async def populate_matchups(
        self, conn: sqlite3.Connection, league_ids: list[str], state: NFLState
    ) -> list[UnitResult]:
        async def one(league_id: str) -> list[UnitResult]:
            return await isolate(
                self.PHASE_MATCHUPS, league_id, self._sync_league_matchups(conn, league_id, state)
            )

        return _flatten(await run_bounded(league_ids, one, self.config.league_concurrency))

    async def _sync_league_matchups(
        self, conn: sqlite3.Connection, league_id: str, state: NFLState
    ) -> list[UnitResult]:
        league = self._league_repo.get(conn, league_id)
        if league is None:
            raise LookupError(f"Missing league info for {league_id}")

        async def fetch(week: int) -> tuple[int, list[RawResult] | None]:
            return week, await self.client.fetch_week_matchups(league_id, week)

        fetched = await run_bounded(
            range(1, league.total_weeks + 1), fetch, self.config.week_concurrency
        )

        week_units: list[UnitResult] = []
        for week, results in fetched:
            unit = f"{league_id}:week-{week}"
            if results is None:
                week_units.append(
                    UnitResult(self.PHASE_MATCHUPS, unit, ok=True, skipped=True, error="no data")
                )
                continue
            try:
                self._write_week(conn, league, week, results, state)
            except Exception as e:
                logger.error(f"Failed to upsert matchups for league {league_id} week {week}: {e}")
                week_units.append(UnitResult(self.PHASE_MATCHUPS, unit, ok=False, error=str(e)))
            else:
                week_units.append(UnitResult(self.PHASE_MATCHUPS, unit, ok=True))
        return week_units

    def _write_week(
        self,
        conn: sqlite3.Connection,
        league: League,
        week: int,
        results: list[RawResult],
        state: NFLState,
    ) -> None:
        """Matchup rows commit before player chunks; a failed chunk leaves them in place until a rerun rewrites the week."""
        built = build_week(
            results,
            league_id=league.league_id,
            season=league.season,
            week=week,
            playoff_week_start=league.playoff_week_start,
            roster_positions=league.roster_positions,
            current_season=state.season,
            current_week=state.week,
        )
        if not built.matchups:
            return
        self._matchup_repo.upsert_many(conn, built.matchups)
        failed = write_in_chunks(
            built.players,
            lambda chunk: self._matchup_player_repo.upsert_many(conn, chunk),
            chunk_size=self.config.matchup_player_chunk_size,
            max_retries=0,
            label=f"matchup_players {league.league_id} week {week}",
        )
        if failed:
            raise RuntimeError(f"{len(failed)} matchup player chunk(s) failed")

    # ---------- Playoffs ----------

    async def populate_playoff_matchups(
        self, conn: sqlite3.Connection, league_ids: list[str], state: NFLState
    ) -> list[UnitResult]:
        async def one(league_id: str) -> list[UnitResult]:
            return await isolate(
                self.PHASE_PLAYOFFS, league_id, self._sync_league_playoffs(conn, league_id, state)
            )

        return _flatten(await run_bounded(league_ids, one, self.config.league_concurrency))

    async def _sync_league_playoffs(
        self, conn: sqlite3.Connection, league_id: str, state: NFLState
    ) -> None:
        league = self._league_repo.get(conn, league_id)
        if league is None:
            raise LookupError(f"Missing league info for {league_id}")
        same_season = league.season == state.season
        if same_season and state.week < league.playoff_week_start:
            raise SkipUnit("playoffs have not started")

        winners, losers = await asyncio.gather(
            self.client.fetch_bracket(league_id, "winners"),
            self.client.fetch_bracket(league_id, "losers"),
        )
        if winners is None or losers is None:
            logger.warning(f"Playoff brackets unavailable for league {league_id}; skipping")
            raise SkipUnit("brackets unavailable")

        last_week = min(league.total_weeks, state.week) if same_season else league.total_weeks
        matchups = self._matchup_repo.list_by_league_weeks(
            conn, league_id, league.playoff_week_start, last_week
        )
        rows = resolve_brackets(league, winners, losers, matchups)
        try:
            self._playoff_repo.upsert_many(conn, rows)
        except sqlite3.Error as e:
            raise BracketPersistenceError(league_id, e) from e


def _flatten(groups: list[list[UnitResult]]) -> list[UnitResult]:
    return [unit for group in groups for unit in group]
