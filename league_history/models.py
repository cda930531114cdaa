"""
Data models for the league history engine.
Domain objects only. No persistence or upstream API logic.

League-centric architecture: a user belongs to leagues; every season of a league is
its own League row, chained to its predecessor through a shared league_group_id;
each league-week has matchups; playoff weeks add bracket semantics on top.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


# ---------- Derived league enums ----------
class ScoringFormat(str, Enum):
    STANDARD = "Standard"
    PPR = "PPR"
    HALF_PPR = "Half PPR"
    STANDARD_SUPER_FLEX = "Standard Super Flex"
    PPR_SUPER_FLEX = "PPR Super Flex"
    HALF_PPR_SUPER_FLEX = "Half PPR Super Flex"


class LeagueFormat(str, Enum):
    REDRAFT = "redraft"
    KEEPER = "keeper"
    DYNASTY = "dynasty"


class WaiverType(str, Enum):
    ROLLING = "rolling_waivers"
    REVERSE_STANDINGS = "reverse_standings"
    FAAB = "faab_bidding"


class PlayoffRoundType(str, Enum):
    """How many weeks each playoff round spans."""
    ONE_WEEK_PER_ROUND = "one_week_per_round"
    TWO_WEEK_CHAMPIONSHIP = "two_week_championship"  # only the final round spans two weeks
    TWO_WEEKS_PER_ROUND = "two_weeks_per_round"


class RosterType(str, Enum):
    CLASSIC = "classic"
    BEST_BALL = "best ball"


class RoundName(str, Enum):
    QUARTERFINALS = "quarterfinals"
    SEMIFINALS = "semifinals"
    FINALS = "finals"


# ---------- Matchup enums ----------
class MatchupStatus(str, Enum):
    UPCOMING = "upcoming"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class BracketType(str, Enum):
    WINNERS = "winners"
    LOSERS = "losers"


class SourceType(str, Enum):
    """Whether a playoff matchup's participants advanced as winners or losers."""
    WINNER = "winner"
    LOSER = "loser"


# ---------- User ----------
@dataclass
class User:
    """The authenticated app user linked to one upstream (Sleeper) account."""
    id: str
    sleeper_user_id: str
    username: str
    avatar_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sleeper_user_id": self.sleeper_user_id,
            "username": self.username,
            "avatar_id": self.avatar_id,
        }


# ---------- League ----------
@dataclass
class League:
    """
    One season of a league with its raw settings and derived structure.
    Every season in one history chain shares league_group_id.
    Derived fields are only ever produced by services.classification.
    """
    league_id: str
    league_group_id: str
    league_name: str
    season: str
    status: str
    total_rosters: int
    roster_positions: list[str]
    scoring_settings: dict[str, float]

    scoring_format: ScoringFormat
    league_format: LeagueFormat
    roster_type: RosterType
    waiver_type: WaiverType

    playoff_week_start: int
    playoff_teams: int
    playoff_round_type: PlayoffRoundType
    regular_season_weeks: int
    total_weeks: int
    playoff_rounds: list[RoundName]
    playoff_week_map: dict[RoundName, list[int]]
    playoff_bye_teams_count: int

    previous_league_id: str | None = None
    avatar_id: str | None = None
    waiver_budget: int = 0
    waiver_day_of_week: int = 0
    trade_deadline: int = 0
    draft_rounds: int = 0
    reserve_slots: int = 0
    taxi_slots: int = 0
    taxi_deadline: int = 0
    taxi_years: int = 0

    def round_for_week(self, week: int) -> RoundName | None:
        """Playoff round played in this calendar week, or None for regular-season weeks."""
        for name in self.playoff_rounds:
            if week in self.playoff_week_map.get(name, []):
                return name
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "league_id": self.league_id,
            "league_group_id": self.league_group_id,
            "league_name": self.league_name,
            "season": self.season,
            "status": self.status,
            "avatar_id": self.avatar_id,
            "previous_league_id": self.previous_league_id,
            "total_rosters": self.total_rosters,
            "roster_positions": list(self.roster_positions),
            "scoring_settings": dict(self.scoring_settings),
            "scoring_format": self.scoring_format.value,
            "league_format": self.league_format.value,
            "roster_type": self.roster_type.value,
            "waiver_type": self.waiver_type.value,
            "waiver_budget": self.waiver_budget,
            "waiver_day_of_week": self.waiver_day_of_week,
            "trade_deadline": self.trade_deadline,
            "draft_rounds": self.draft_rounds,
            "reserve_slots": self.reserve_slots,
            "taxi_slots": self.taxi_slots,
            "taxi_deadline": self.taxi_deadline,
            "taxi_years": self.taxi_years,
            "playoff_week_start": self.playoff_week_start,
            "playoff_teams": self.playoff_teams,
            "playoff_round_type": self.playoff_round_type.value,
            "regular_season_weeks": self.regular_season_weeks,
            "total_weeks": self.total_weeks,
            "playoff_rounds": [r.value for r in self.playoff_rounds],
            "playoff_week_map": {r.value: list(w) for r, w in self.playoff_week_map.items()},
            "playoff_bye_teams_count": self.playoff_bye_teams_count,
        }


@dataclass
class BrokenLeagueHistory:
    """A lineage group whose backward walk stopped at a missing predecessor. Write-once."""
    league_group_id: str


# ---------- Membership ----------
@dataclass
class LeagueMembership:
    """(user, league) pair the authenticated user can access."""
    user_id: str
    league_id: str


@dataclass
class LeagueMemberRoster:
    """
    One owner of one roster in one league. Co-owners get their own row.
    """
    league_id: str
    roster_id: int
    sleeper_user_id: str
    league_username: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "league_id": self.league_id,
            "roster_id": self.roster_id,
            "sleeper_user_id": self.sleeper_user_id,
            "league_username": self.league_username,
        }


# ---------- Matchups ----------
@dataclass
class Matchup:
    """
    One pairing for one league-week. roster_two_id None = bye (roster one wins).
    winning_roster_id None on a tie.
    """
    matchup_uuid: str
    league_id: str
    matchup_status: MatchupStatus
    season: str
    week: int
    matchup_id: int | None
    roster_one_id: int
    roster_two_id: int | None
    roster_one_score: float
    roster_two_score: float | None
    winning_roster_id: int | None

    @property
    def is_bye(self) -> bool:
        return self.roster_two_id is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "matchup_uuid": self.matchup_uuid,
            "league_id": self.league_id,
            "matchup_status": self.matchup_status.value,
            "season": self.season,
            "week": self.week,
            "matchup_id": self.matchup_id,
            "roster_one_id": self.roster_one_id,
            "roster_two_id": self.roster_two_id,
            "roster_one_score": self.roster_one_score,
            "roster_two_score": self.roster_two_score,
            "winning_roster_id": self.winning_roster_id,
        }


@dataclass
class MatchupPlayer:
    """One player's line on one roster's side of a matchup."""
    matchup_uuid: str
    roster_id: int
    player_id: str
    roster_position: str  # lineup slot, "BN" when benched
    started: bool
    points: float
    opposing_team: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "matchup_uuid": self.matchup_uuid,
            "roster_id": self.roster_id,
            "player_id": self.player_id,
            "roster_position": self.roster_position,
            "started": self.started,
            "points": self.points,
            "opposing_team": self.opposing_team,
        }


@dataclass
class PlayoffMatchup:
    """
    Bracket semantics attached to an existing Matchup (same matchup_uuid).
    previous_matchup_* point at the matchups whose winner/loser fed each slot.
    """
    matchup_uuid: str
    bracket_type: BracketType
    round_name: RoundName | None = None
    playoff_position: int | None = None
    previous_matchup_one: str | None = None
    previous_matchup_two: str | None = None
    source_type: SourceType | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "matchup_uuid": self.matchup_uuid,
            "round_name": self.round_name.value if self.round_name else None,
            "bracket_type": self.bracket_type.value,
            "playoff_position": self.playoff_position,
            "previous_matchup_one": self.previous_matchup_one,
            "previous_matchup_two": self.previous_matchup_two,
            "source_type": self.source_type.value if self.source_type else None,
        }


# ---------- Players ----------
@dataclass
class Player:
    """Global NFL player record, shared by every league."""
    player_id: str
    full_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    team: str | None = None
    position: str | None = None
    fantasy_positions: list[str] = field(default_factory=list)
    jersey_number: int | None = None
    age: int | None = None
    birth_date: str | None = None
    college: str | None = None
    rookie_year: str | None = None
    weight: str | None = None
    height: str | None = None
    years_exp: int | None = None


@dataclass
class SyncState:
    """Last successful refresh of a global data source."""
    source: str
    last_updated_at: datetime
