"""
Service layer: classification, lineage, matchup grouping, bracket resolution, sync orchestration.
Pure transforms live in classification/matchups/bracket; sync_service owns upstream access and writes.
"""
from .sync_service import (
    BracketPersistenceError,
    CurrentStateUnavailableError,
    InvalidUsernameError,
    LeagueFetchError,
    LeagueSyncService,
    SyncErrorCode,
    SyncPhase,
    SyncResult,
    UsernameNotFoundError,
)
from .players import PlayerSyncError

__all__ = [
    "BracketPersistenceError",
    "CurrentStateUnavailableError",
    "InvalidUsernameError",
    "LeagueFetchError",
    "LeagueSyncService",
    "PlayerSyncError",
    "SyncErrorCode",
    "SyncPhase",
    "SyncResult",
    "UsernameNotFoundError",
]
