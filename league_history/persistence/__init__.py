"""
Persistence layer for ingested league history.
Read/write interfaces only. No business logic or upstream access.
"""
from .db import get_connection, get_db_path, init_db, set_db_path
from .repositories import (
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

__all__ = [
    "get_connection",
    "get_db_path",
    "init_db",
    "set_db_path",
    "BrokenLeagueHistoryRepository",
    "LeagueMemberRepository",
    "LeagueRepository",
    "MatchupPlayerRepository",
    "MatchupRepository",
    "PlayerRepository",
    "PlayoffMatchupRepository",
    "SyncStateRepository",
    "UserLeagueRepository",
    "UserRepository",
]
