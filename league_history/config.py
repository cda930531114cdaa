"""
Runtime configuration for sync runs.
Defaults suit the public Sleeper API; every field can be overridden from the environment.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_BASE_URL = "https://api.sleeper.app/v1"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


@dataclass
class SyncConfig:
    """Knobs for upstream access, fan-out and batch writes."""
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = 20.0
    league_concurrency: int = 3
    week_concurrency: int = 3
    player_chunk_size: int = 1000
    matchup_player_chunk_size: int = 100
    max_write_retries: int = 2
    player_refresh_hours: float = 48.0

    @classmethod
    def from_env(cls) -> SyncConfig:
        return cls(
            base_url=os.environ.get("SLEEPER_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            request_timeout=_env_float("SLEEPER_TIMEOUT_SEC", 20.0),
            league_concurrency=_env_int("SYNC_LEAGUE_CONCURRENCY", 3),
            week_concurrency=_env_int("SYNC_WEEK_CONCURRENCY", 3),
            player_chunk_size=_env_int("SYNC_PLAYER_CHUNK_SIZE", 1000),
            matchup_player_chunk_size=_env_int("SYNC_MATCHUP_PLAYER_CHUNK_SIZE", 100),
            max_write_retries=_env_int("SYNC_MAX_WRITE_RETRIES", 2),
            player_refresh_hours=_env_float("SYNC_PLAYER_REFRESH_HOURS", 48.0),
        )
