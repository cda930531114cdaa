"""
Weekly matchup grouping.

Turns one league-week of per-roster results into Matchup rows (pairs or byes)
and MatchupPlayer rows. The same raw shape is used for regular-season and
playoff weeks. Matchup identifiers are derived from (league, season, week,
roster pair), so re-running a week rewrites the same rows.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from league_history.models import Matchup, MatchupPlayer, MatchupStatus
from league_history.sleeper.records import RawResult

logger = logging.getLogger(__name__)

BENCH = "BN"
UNKNOWN_SLOT = "UNKNOWN"

MATCHUP_NAMESPACE = uuid.UUID("6f1c2a4e-8d0b-5e53-9a3f-3c1d7f6b2e90")


def matchup_uuid(
    league_id: str, season: str, week: int, roster_ids: Iterable[int | None]
) -> str:
    """Stable identifier for one pairing: same league-week and rosters -> same id."""
    rosters = sorted(r for r in roster_ids if r is not None)
    key = f"{league_id}|{season}|{week}|{'|'.join(str(r) for r in rosters)}"
    return str(uuid.uuid5(MATCHUP_NAMESPACE, key))


def _season_key(season: str) -> tuple[int, str]:
    return (int(season), "") if season.isdigit() else (0, season)


def map_matchup_status(
    season: str, week: int, current_season: str, current_week: int
) -> MatchupStatus:
    """
    Completed for any earlier season, or an earlier week of the current season;
    InProgress for the current week; Upcoming otherwise.
    """
    if _season_key(season) < _season_key(current_season):
        return MatchupStatus.COMPLETED
    if _season_key(season) > _season_key(current_season):
        return MatchupStatus.UPCOMING
    if week < current_week:
        return MatchupStatus.COMPLETED
    if week == current_week:
        return MatchupStatus.IN_PROGRESS
    return MatchupStatus.UPCOMING


def group_week_results(
    results: Sequence[RawResult], is_first_playoff_week: bool
) -> list[list[RawResult]]:
    """
    Partition a week's results by matchup_id. Results without a matchup_id are
    byes only in the league's first playoff week; any other week drops them.
    """
    groups: dict[str, list[RawResult]] = {}
    for r in results:
        if r.matchup_id is None:
            if not is_first_playoff_week:
                continue
            key = f"bye:{r.roster_id}"
        else:
            key = f"m:{r.matchup_id}"
        groups.setdefault(key, []).append(r)
    return list(groups.values())


def build_matchup(
    group: Sequence[RawResult],
    league_id: str,
    season: str,
    week: int,
    status: MatchupStatus,
) -> Matchup:
    """One Matchup from a group of one (bye) or two results."""
    if len(group) not in (1, 2):
        raise ValueError(
            f"League {league_id} week {week}: expected 1 or 2 rosters per matchup, got {len(group)}"
        )
    a = group[0]
    b = group[1] if len(group) == 2 else None
    score_one = round(a.points, 2)
    score_two = round(b.points, 2) if b is not None else None

    if b is None:
        winner: int | None = a.roster_id
    elif score_one > score_two:
        winner = a.roster_id
    elif score_two > score_one:
        winner = b.roster_id
    else:
        winner = None

    return Matchup(
        matchup_uuid=matchup_uuid(league_id, season, week, [r.roster_id for r in group]),
        league_id=league_id,
        matchup_status=status,
        season=season,
        week=week,
        matchup_id=a.matchup_id if b is not None else None,
        roster_one_id=a.roster_id,
        roster_two_id=b.roster_id if b is not None else None,
        roster_one_score=score_one,
        roster_two_score=score_two,
        winning_roster_id=winner,
    )


def build_player_entries(
    matchup: Matchup,
    group: Sequence[RawResult],
    roster_positions: Sequence[str],
) -> list[MatchupPlayer]:
    """Every rostered player on each side, with lineup slot (or bench) and points."""
    entries: list[MatchupPlayer] = []
    for result in group:
        starters = list(result.starters)
        for player_id in result.players:
            if player_id in starters:
                index = starters.index(player_id)
                slot = roster_positions[index] if index < len(roster_positions) else UNKNOWN_SLOT
                started = True
            else:
                slot = BENCH
                started = False
            entries.append(
                MatchupPlayer(
                    matchup_uuid=matchup.matchup_uuid,
                    roster_id=result.roster_id,
                    player_id=player_id,
                    roster_position=slot,
                    started=started,
                    points=round(result.players_points.get(player_id, 0.0), 2),
                    opposing_team=None,
                )
            )
    return entries


@dataclass
class WeekMatchups:
    week: int
    matchups: list[Matchup] = field(default_factory=list)
    players: list[MatchupPlayer] = field(default_factory=list)


def build_week(
    results: Sequence[RawResult],
    *,
    league_id: str,
    season: str,
    week: int,
    playoff_week_start: int,
    roster_positions: Sequence[str],
    current_season: str,
    current_week: int,
) -> WeekMatchups:
    """Group and score one league-week."""
    status = map_matchup_status(season, week, current_season, current_week)
    out = WeekMatchups(week=week)
    for group in group_week_results(results, is_first_playoff_week=(week == playoff_week_start)):
        if len(group) > 2:
            logger.warning(
                f"League {league_id} week {week}: matchup {group[0].matchup_id} has "
                f"{len(group)} rosters; skipping it"
            )
            continue
        matchup = build_matchup(group, league_id, season, week, status)
        out.matchups.append(matchup)
        out.players.extend(build_player_entries(matchup, group, roster_positions))
    return out
