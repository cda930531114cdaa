#!/usr/bin/env python3
"""
Sync one Sleeper username into a local database and print what was stored.
Run from project root: python3 scripts/sync_user.py <sleeper_username> [--db data/sync_user.db]
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from league_history.config import SyncConfig
from league_history.persistence import (
    LeagueRepository,
    PlayoffMatchupRepository,
    get_connection,
    init_db,
    set_db_path,
)
from league_history.services import LeagueSyncService
from league_history.sleeper.client import SleeperClient


async def run(username: str, auth_user_id: str) -> int:
    config = SyncConfig.from_env()
    conn = get_connection()
    try:
        async with SleeperClient(config) as client:
            service = LeagueSyncService(client, config)
            result = await service.initialize_user_data(conn, auth_user_id, username)
        print(json.dumps(result.to_dict(), indent=2))
        if not result.success:
            return 1

        league_repo = LeagueRepository()
        playoff_repo = PlayoffMatchupRepository()
        for league_id in service.get_all_leagues_for_user(conn, auth_user_id):
            league = league_repo.get(conn, league_id)
            if league is None:
                continue
            bracket_rows = playoff_repo.list_by_league(conn, league_id)
            print(
                f"{league.season} {league.league_name} ({league.league_id}): "
                f"{league.scoring_format.value}, {league.league_format.value}, "
                f"{len(bracket_rows)} playoff matchups"
            )
        for unit in result.failures:
            print(f"FAILED {unit.phase} {unit.unit}: {unit.error}")
        return 0
    finally:
        conn.close()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("username")
    parser.add_argument("--db", default=str(PROJECT_ROOT / "data" / "sync_user.db"))
    parser.add_argument("--auth-user-id", default="local-cli-user")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    set_db_path(args.db)
    init_db(db_path=args.db)
    sys.exit(asyncio.run(run(args.username, args.auth_user_id)))


if __name__ == "__main__":
    main()
