"""
Global player table refresh.
The upstream player map is large, so it is refreshed at most once per
refresh window and written in chunks with a bounded retry per chunk.
"""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timedelta, timezone

from league_history.config import SyncConfig
from league_history.models import Player
from league_history.persistence.repositories import PlayerRepository, SyncStateRepository
from league_history.services.batching import write_in_chunks
from league_history.sleeper.client import SleeperClient
from league_history.sleeper.records import PlayerRecord

logger = logging.getLogger(__name__)

PLAYERS_SOURCE = "players"


class PlayerSyncError(RuntimeError):
    """First-ever player load got no data from upstream."""


def to_player(record: PlayerRecord) -> Player:
    return Player(
        player_id=record.player_id,
        full_name=record.full_name,
        first_name=record.first_name,
        last_name=record.last_name,
        team=record.team,
        position=record.position,
        fantasy_positions=list(record.fantasy_positions),
        jersey_number=record.number,
        age=record.age,
        birth_date=record.birth_date,
        college=record.college,
        rookie_year=record.rookie_year,
        weight=record.weight,
        height=record.height,
        years_exp=record.years_exp,
    )


async def refresh_players(
    conn: sqlite3.Connection,
    client: SleeperClient,
    config: SyncConfig,
    now: datetime | None = None,
) -> bool:
    """
    Upsert every upstream player unless the last refresh is inside the window.
    Returns True when a refresh ran. Chunks that keep failing are logged and skipped.
    """
    now = now or datetime.now(timezone.utc)
    state_repo = SyncStateRepository()
    state = state_repo.get(conn, PLAYERS_SOURCE)
    if state is not None:
        last = state.last_updated_at
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        age = now - last
        if age < timedelta(hours=config.player_refresh_hours):
            logger.info(
                f"refresh_players: only {age.total_seconds() / 3600:.1f}h since last sync, skipping"
            )
            return False

    records = await client.fetch_all_players()
    if records is None:
        if state is None:
            raise PlayerSyncError(
                "refresh_players: initial load failed - no data from Sleeper and no existing records"
            )
        logger.info("refresh_players: could not fetch players from Sleeper, keeping previous data")
        return False

    repo = PlayerRepository()
    players = [to_player(r) for r in records.values()]
    failed = write_in_chunks(
        players,
        lambda chunk: repo.upsert_many(conn, chunk),
        chunk_size=config.player_chunk_size,
        max_retries=config.max_write_retries,
        label="players",
    )
    state_repo.touch(conn, PLAYERS_SOURCE, now)
    logger.info(
        f"refresh_players: {len(players)} players processed"
        + (f", {len(failed)} chunk(s) failed" if failed else "")
    )
    return True
