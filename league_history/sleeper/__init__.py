"""
Upstream provider access: the async Sleeper client and its typed records.
"""
from __future__ import annotations

from league_history.sleeper.client import SleeperClient
from league_history.sleeper.records import (
    BracketNode,
    BracketReference,
    LeagueSettings,
    LeagueSnapshot,
    LeagueUser,
    NFLState,
    PlayerRecord,
    RawResult,
    Roster,
    User,
)

__all__ = [
    "SleeperClient",
    "BracketNode",
    "BracketReference",
    "LeagueSettings",
    "LeagueSnapshot",
    "LeagueUser",
    "NFLState",
    "PlayerRecord",
    "RawResult",
    "Roster",
    "User",
]
