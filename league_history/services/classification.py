"""
Deterministic classification of raw league settings into derived league structure.

Pure functions. Unknown codes never fail a run: each rule logs a warning and
falls back to its documented default. map_league_week_info / weeks_for_round are
the single source of truth for which calendar week belongs to which playoff round.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

from league_history.models import (
    League,
    LeagueFormat,
    PlayoffRoundType,
    RosterType,
    RoundName,
    ScoringFormat,
    WaiverType,
)
from league_history.sleeper.records import LeagueSnapshot

logger = logging.getLogger(__name__)

SUPER_FLEX_SLOT = "SUPER_FLEX"

_SUPER_FLEX_VARIANT: dict[ScoringFormat, ScoringFormat] = {
    ScoringFormat.STANDARD: ScoringFormat.STANDARD_SUPER_FLEX,
    ScoringFormat.PPR: ScoringFormat.PPR_SUPER_FLEX,
    ScoringFormat.HALF_PPR: ScoringFormat.HALF_PPR_SUPER_FLEX,
}

_LEAGUE_FORMATS: dict[int, LeagueFormat] = {
    0: LeagueFormat.REDRAFT,
    1: LeagueFormat.KEEPER,
    2: LeagueFormat.DYNASTY,
}

_WAIVER_TYPES: dict[int, WaiverType] = {
    0: WaiverType.ROLLING,
    1: WaiverType.REVERSE_STANDINGS,
    2: WaiverType.FAAB,
}

_PLAYOFF_ROUND_TYPES: dict[int, PlayoffRoundType] = {
    0: PlayoffRoundType.ONE_WEEK_PER_ROUND,
    1: PlayoffRoundType.TWO_WEEK_CHAMPIONSHIP,
    2: PlayoffRoundType.TWO_WEEKS_PER_ROUND,
}

# playoff teams -> teams that skip the first round
_PLAYOFF_BYES: dict[int, int] = {5: 3, 6: 2, 7: 1}


def determine_scoring_format(
    roster_positions: Iterable[str], scoring_settings: Mapping[str, float]
) -> ScoringFormat:
    """PPR tier from points-per-reception, upgraded to the Super Flex variant when that slot exists."""
    rec = round(float(scoring_settings.get("rec", 0) or 0), 2)
    if rec == 1:
        base = ScoringFormat.PPR
    elif rec == 0.5:
        base = ScoringFormat.HALF_PPR
    else:
        base = ScoringFormat.STANDARD
    if SUPER_FLEX_SLOT in roster_positions:
        return _SUPER_FLEX_VARIANT[base]
    return base


def determine_league_format(code: int) -> LeagueFormat:
    fmt = _LEAGUE_FORMATS.get(code)
    if fmt is None:
        logger.warning(f"Unknown league type {code}, defaulting to {LeagueFormat.REDRAFT.value}")
        return LeagueFormat.REDRAFT
    return fmt


def determine_waiver_type(code: int) -> WaiverType:
    waiver = _WAIVER_TYPES.get(code)
    if waiver is None:
        logger.warning(f"Unknown waiver type {code}, defaulting to {WaiverType.ROLLING.value}")
        return WaiverType.ROLLING
    return waiver


def determine_playoff_round_type(code: int, league_id: str | None = None) -> PlayoffRoundType:
    round_type = _PLAYOFF_ROUND_TYPES.get(code)
    if round_type is None:
        logger.warning(
            f"Unknown playoff_round_type {code} for league {league_id}, "
            f"defaulting to {PlayoffRoundType.ONE_WEEK_PER_ROUND.value}"
        )
        return PlayoffRoundType.ONE_WEEK_PER_ROUND
    return round_type


def determine_playoff_bye_teams_count(playoff_teams: int) -> int:
    return _PLAYOFF_BYES.get(playoff_teams, 0)


def determine_roster_type(best_ball: int) -> RosterType:
    return RosterType.CLASSIC if best_ball == 0 else RosterType.BEST_BALL


def playoff_round_names(playoff_teams: int) -> list[RoundName]:
    if playoff_teams <= 4:
        return [RoundName.SEMIFINALS, RoundName.FINALS]
    return [RoundName.QUARTERFINALS, RoundName.SEMIFINALS, RoundName.FINALS]


def weeks_for_round(
    round_type: PlayoffRoundType,
    playoff_week_start: int,
    round_index: int,
    is_championship: bool,
) -> list[int]:
    """
    Calendar weeks of a 1-based playoff round.
    Two-weeks-per-round shifts every later round by two weeks; under the
    two-week-championship variant only the championship round is widened.
    """
    if round_type == PlayoffRoundType.TWO_WEEKS_PER_ROUND:
        base = playoff_week_start + 2 * (round_index - 1)
        return [base, base + 1]
    base = playoff_week_start + round_index - 1
    if round_type == PlayoffRoundType.TWO_WEEK_CHAMPIONSHIP and is_championship:
        return [base, base + 1]
    return [base]


@dataclass
class WeekCalculations:
    regular_season_weeks: int
    total_weeks: int
    rounds: list[RoundName]
    round_to_weeks: dict[RoundName, list[int]]


def map_league_week_info(
    playoff_week_start: int,
    playoff_teams: int,
    round_type: PlayoffRoundType,
) -> WeekCalculations:
    """Round names, the weeks each round spans, and the resulting season length."""
    rounds = playoff_round_names(playoff_teams)
    round_to_weeks: dict[RoundName, list[int]] = {}
    for i, name in enumerate(rounds, start=1):
        round_to_weeks[name] = weeks_for_round(
            round_type, playoff_week_start, i, is_championship=(i == len(rounds))
        )
    last_week = max(max(weeks) for weeks in round_to_weeks.values())
    return WeekCalculations(
        regular_season_weeks=playoff_week_start - 1,
        total_weeks=last_week,
        rounds=rounds,
        round_to_weeks=round_to_weeks,
    )


def classify_league(snapshot: LeagueSnapshot, league_group_id: str) -> League:
    """Build the internal League row for one upstream league snapshot."""
    settings = snapshot.settings
    scoring_settings = {k: round(v, 2) for k, v in snapshot.scoring_settings.items()}
    round_type = determine_playoff_round_type(settings.playoff_round_type, snapshot.league_id)
    weeks = map_league_week_info(settings.playoff_week_start, settings.playoff_teams, round_type)
    return League(
        league_id=snapshot.league_id,
        league_group_id=league_group_id,
        league_name=snapshot.name,
        season=snapshot.season,
        status=snapshot.status,
        total_rosters=snapshot.total_rosters,
        roster_positions=list(snapshot.roster_positions),
        scoring_settings=scoring_settings,
        scoring_format=determine_scoring_format(snapshot.roster_positions, scoring_settings),
        league_format=determine_league_format(settings.type),
        roster_type=determine_roster_type(settings.best_ball),
        waiver_type=determine_waiver_type(settings.waiver_type),
        playoff_week_start=settings.playoff_week_start,
        playoff_teams=settings.playoff_teams,
        playoff_round_type=round_type,
        regular_season_weeks=weeks.regular_season_weeks,
        total_weeks=weeks.total_weeks,
        playoff_rounds=weeks.rounds,
        playoff_week_map=weeks.round_to_weeks,
        playoff_bye_teams_count=determine_playoff_bye_teams_count(settings.playoff_teams),
        previous_league_id=snapshot.previous_league_id,
        avatar_id=snapshot.avatar,
        waiver_budget=settings.waiver_budget,
        waiver_day_of_week=settings.waiver_day_of_week,
        trade_deadline=settings.trade_deadline,
        draft_rounds=settings.draft_rounds,
        reserve_slots=settings.reserve_slots,
        taxi_slots=settings.taxi_slots,
        taxi_deadline=settings.taxi_deadline,
        taxi_years=settings.taxi_years,
    )
