"""
SQLite schema for ingested league history.
Migration-friendly: each table created with IF NOT EXISTS.
Unique keys are the upsert targets used by the repositories.
"""
from __future__ import annotations


def users_schema() -> str:
    """App users linked to their Sleeper account."""
    return """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        sleeper_user_id TEXT NOT NULL,
        username TEXT NOT NULL,
        avatar_id TEXT,
        updated_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS ix_users_sleeper_user_id ON users(sleeper_user_id);
    """


def leagues_schema() -> str:
    """One row per league-season. List/map settings are stored as JSON text."""
    return """
    CREATE TABLE IF NOT EXISTS leagues (
        league_id TEXT PRIMARY KEY,
        league_group_id TEXT NOT NULL,
        league_name TEXT NOT NULL,
        season TEXT NOT NULL,
        status TEXT NOT NULL,
        avatar_id TEXT,
        total_rosters INTEGER NOT NULL,
        roster_positions TEXT NOT NULL,
        scoring_settings TEXT NOT NULL,
        scoring_format TEXT NOT NULL,
        league_format TEXT NOT NULL,
        roster_type TEXT NOT NULL,
        waiver_type TEXT NOT NULL,
        waiver_budget INTEGER NOT NULL DEFAULT 0,
        waiver_day_of_week INTEGER NOT NULL DEFAULT 0,
        trade_deadline INTEGER NOT NULL DEFAULT 0,
        draft_rounds INTEGER NOT NULL DEFAULT 0,
        reserve_slots INTEGER NOT NULL DEFAULT 0,
        taxi_slots INTEGER NOT NULL DEFAULT 0,
        taxi_deadline INTEGER NOT NULL DEFAULT 0,
        taxi_years INTEGER NOT NULL DEFAULT 0,
        playoff_week_start INTEGER NOT NULL,
        playoff_teams INTEGER NOT NULL,
        playoff_round_type TEXT NOT NULL,
        regular_season_weeks INTEGER NOT NULL,
        total_weeks INTEGER NOT NULL,
        playoff_rounds TEXT NOT NULL,
        playoff_week_map TEXT NOT NULL,
        playoff_bye_teams_count INTEGER NOT NULL
    );
    CREATE INDEX IF NOT EXISTS ix_leagues_group ON leagues(league_group_id);
    """
    # previous_league_id added via migration


def broken_league_histories_schema() -> str:
    """Lineage groups whose predecessor walk stopped early. Write-once."""
    return """
    CREATE TABLE IF NOT EXISTS broken_league_histories (
        league_group_id TEXT PRIMARY KEY,
        created_at TEXT NOT NULL
    );
    """


def user_leagues_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS user_leagues (
        user_id TEXT NOT NULL,
        league_id TEXT NOT NULL,
        PRIMARY KEY (user_id, league_id),
        FOREIGN KEY (user_id) REFERENCES users(id),
        FOREIGN KEY (league_id) REFERENCES leagues(league_id)
    );
    CREATE INDEX IF NOT EXISTS ix_user_leagues_league ON user_leagues(league_id);
    """


def league_members_schema() -> str:
    """Roster ownership per league. A roster can have several owners (co-owners)."""
    return """
    CREATE TABLE IF NOT EXISTS league_members (
        league_id TEXT NOT NULL,
        roster_id INTEGER NOT NULL,
        sleeper_user_id TEXT NOT NULL,
        league_username TEXT,
        PRIMARY KEY (league_id, roster_id, sleeper_user_id),
        FOREIGN KEY (league_id) REFERENCES leagues(league_id)
    );
    """


def matchups_schema() -> str:
    """One pairing per league-week. roster_two_id NULL = bye."""
    return """
    CREATE TABLE IF NOT EXISTS matchups (
        matchup_uuid TEXT PRIMARY KEY,
        league_id TEXT NOT NULL,
        matchup_status TEXT NOT NULL,
        season TEXT NOT NULL,
        week INTEGER NOT NULL,
        matchup_id INTEGER,
        roster_one_id INTEGER NOT NULL,
        roster_two_id INTEGER,
        roster_one_score REAL NOT NULL,
        roster_two_score REAL,
        winning_roster_id INTEGER,
        FOREIGN KEY (league_id) REFERENCES leagues(league_id)
    );
    CREATE INDEX IF NOT EXISTS ix_matchups_league_week ON matchups(league_id, week);
    """


def matchup_players_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS matchup_players (
        matchup_uuid TEXT NOT NULL,
        roster_id INTEGER NOT NULL,
        player_id TEXT NOT NULL,
        roster_position TEXT NOT NULL,
        started INTEGER NOT NULL DEFAULT 0,
        points REAL NOT NULL DEFAULT 0,
        opposing_team TEXT,
        PRIMARY KEY (matchup_uuid, roster_id, player_id),
        FOREIGN KEY (matchup_uuid) REFERENCES matchups(matchup_uuid)
    );
    """


def playoff_matchups_schema() -> str:
    """Bracket semantics for an existing matchup. previous_matchup_* NULL in the opening round."""
    return """
    CREATE TABLE IF NOT EXISTS playoff_matchups (
        matchup_uuid TEXT PRIMARY KEY,
        round_name TEXT,
        bracket_type TEXT NOT NULL,
        playoff_position INTEGER,
        previous_matchup_one TEXT,
        previous_matchup_two TEXT,
        source_type TEXT,
        FOREIGN KEY (matchup_uuid) REFERENCES matchups(matchup_uuid),
        FOREIGN KEY (previous_matchup_one) REFERENCES matchups(matchup_uuid),
        FOREIGN KEY (previous_matchup_two) REFERENCES matchups(matchup_uuid)
    );
    """


def players_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS players (
        player_id TEXT PRIMARY KEY,
        full_name TEXT,
        first_name TEXT,
        last_name TEXT,
        team TEXT,
        position TEXT,
        fantasy_positions TEXT NOT NULL DEFAULT '[]',
        jersey_number INTEGER,
        age INTEGER,
        birth_date TEXT,
        college TEXT,
        rookie_year TEXT,
        weight TEXT,
        height TEXT,
        years_exp INTEGER
    );
    """


def sync_state_schema() -> str:
    """Last refresh per global source (e.g. 'players')."""
    return """
    CREATE TABLE IF NOT EXISTS sync_state (
        source TEXT PRIMARY KEY,
        last_updated_at TEXT NOT NULL
    );
    """


def all_schema_sql() -> str:
    """Combine all schema DDL. Order: referenced tables first."""
    return "\n".join([
        users_schema(),
        leagues_schema(),
        broken_league_histories_schema(),
        user_leagues_schema(),
        league_members_schema(),
        matchups_schema(),
        matchup_players_schema(),
        playoff_matchups_schema(),
        players_schema(),
        sync_state_schema(),
    ])
