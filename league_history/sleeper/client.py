"""
Async HTTP client for the Sleeper API.

Every fetch returns a typed record (see records.py) or None. HTTP errors,
timeouts, transport failures and malformed payloads are logged and reported
as None; callers decide whether to skip, retry or abort.

Usage:
    async with SleeperClient() as client:
        state = await client.fetch_current_state()
        league = await client.fetch_league("1048...")
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Literal, TypeVar

import httpx

from league_history.config import SyncConfig
from league_history.sleeper.records import (
    BracketNode,
    LeagueSnapshot,
    LeagueUser,
    NFLState,
    PlayerRecord,
    RawResult,
    Roster,
    User,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

BracketKind = Literal["winners", "losers"]


class SleeperClient:
    """
    Read-only Sleeper API client on a shared httpx.AsyncClient.

    Pass `http` to reuse an existing client (tests use httpx.MockTransport);
    otherwise one is created from `config` and closed by aclose().
    """

    def __init__(
        self,
        config: SyncConfig | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or SyncConfig()
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            timeout=self.config.request_timeout,
            headers={"User-Agent": "league-history-sync/0.1"},
            follow_redirects=True,
        )

    async def __aenter__(self) -> SleeperClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    # ---------- Transport ----------

    async def _get_json(self, path: str) -> Any | None:
        url = f"{self.config.base_url}{path}"
        logger.debug(f"GET {url}")
        try:
            response = await self._http.get(url)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(f"Sleeper request failed: {url} -> HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.warning(f"Sleeper request failed: {url} -> {type(e).__name__}: {e}")
        except ValueError as e:
            logger.warning(f"Sleeper returned invalid JSON for {url}: {e}")
        return None

    async def _get_one(self, path: str, parse: Callable[[Any], T]) -> T | None:
        payload = await self._get_json(path)
        if not payload:
            return None
        try:
            return parse(payload)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed Sleeper payload for {path}: {e!r}")
            return None

    async def _get_list(self, path: str, parse: Callable[[Any], T]) -> list[T] | None:
        payload = await self._get_json(path)
        if payload is None:
            return None
        if not isinstance(payload, list):
            logger.warning(f"Expected a list from {path}, got {type(payload).__name__}")
            return None
        try:
            return [parse(item) for item in payload]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed Sleeper payload for {path}: {e!r}")
            return None

    # ---------- Endpoints ----------

    async def fetch_user(self, identifier: str) -> User | None:
        """Look up a user by username or user id. Sleeper answers unknown users with `null`."""
        return await self._get_one(f"/user/{identifier}", User.from_dict)

    async def fetch_league_users(self, league_id: str) -> list[LeagueUser] | None:
        return await self._get_list(f"/league/{league_id}/users", LeagueUser.from_dict)

    async def fetch_league(self, league_id: str) -> LeagueSnapshot | None:
        return await self._get_one(f"/league/{league_id}", LeagueSnapshot.from_dict)

    async def fetch_current_leagues_for_user(
        self, user_id: str, season: str
    ) -> list[LeagueSnapshot] | None:
        return await self._get_list(
            f"/user/{user_id}/leagues/nfl/{season}", LeagueSnapshot.from_dict
        )

    async def fetch_rosters(self, league_id: str) -> list[Roster] | None:
        return await self._get_list(f"/league/{league_id}/rosters", Roster.from_dict)

    async def fetch_week_matchups(self, league_id: str, week: int) -> list[RawResult] | None:
        return await self._get_list(f"/league/{league_id}/matchups/{week}", RawResult.from_dict)

    async def fetch_bracket(self, league_id: str, kind: BracketKind) -> list[BracketNode] | None:
        if kind not in ("winners", "losers"):
            raise ValueError(f"Unknown bracket kind: {kind}")
        return await self._get_list(f"/league/{league_id}/{kind}_bracket", BracketNode.from_dict)

    async def fetch_current_state(self) -> NFLState | None:
        return await self._get_one("/state/nfl", NFLState.from_dict)

    async def fetch_all_players(self) -> dict[str, PlayerRecord] | None:
        """Full NFL player map (several MB). Call at most once per refresh window."""
        def parse(payload: Any) -> dict[str, PlayerRecord]:
            return {
                str(pid): PlayerRecord.from_dict(str(pid), raw)
                for pid, raw in payload.items()
                if isinstance(raw, dict)
            }

        return await self._get_one("/players/nfl", parse)
