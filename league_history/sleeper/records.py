"""
Typed upstream records.

Every Sleeper payload is parsed into one of these dataclasses at the client
boundary; nothing downstream touches raw JSON. Parsers raise KeyError,
TypeError or ValueError on malformed payloads; the client turns that into None.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


def _opt_int(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value)
    return s or None


def _int(value: Any, default: int = 0) -> int:
    if value is None:
        return default
    return int(value)


# ---------- Users ----------


@dataclass(frozen=True)
class User:
    user_id: str
    username: str
    display_name: str | None = None
    avatar: str | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> User:
        return cls(
            user_id=str(raw["user_id"]),
            username=str(raw.get("username") or raw.get("display_name") or ""),
            display_name=_opt_str(raw.get("display_name")),
            avatar=_opt_str(raw.get("avatar")),
        )


@dataclass(frozen=True)
class LeagueUser:
    user_id: str
    display_name: str | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> LeagueUser:
        return cls(user_id=str(raw["user_id"]), display_name=_opt_str(raw.get("display_name")))


# ---------- Leagues ----------


@dataclass(frozen=True)
class LeagueSettings:
    """Numeric settings codes as Sleeper reports them. Interpreted by services.classification."""
    type: int = 0
    best_ball: int = 0
    waiver_type: int = 0
    waiver_budget: int = 0
    waiver_day_of_week: int = 0
    trade_deadline: int = 0
    draft_rounds: int = 0
    reserve_slots: int = 0
    taxi_slots: int = 0
    taxi_deadline: int = 0
    taxi_years: int = 0
    playoff_week_start: int = 15
    playoff_teams: int = 6
    playoff_round_type: int = 0

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> LeagueSettings:
        raw = raw or {}
        defaults = cls()
        return cls(**{
            name: _int(raw.get(name), getattr(defaults, name))
            for name in cls.__dataclass_fields__
        })


@dataclass(frozen=True)
class LeagueSnapshot:
    """One season of a league as returned by /league/{id}."""
    league_id: str
    name: str
    season: str
    status: str
    total_rosters: int
    roster_positions: tuple[str, ...]
    scoring_settings: Mapping[str, float]
    settings: LeagueSettings
    previous_league_id: str | None = None
    avatar: str | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> LeagueSnapshot:
        previous = _opt_str(raw.get("previous_league_id"))
        if previous == "0":
            previous = None
        return cls(
            league_id=str(raw["league_id"]),
            name=str(raw.get("name") or ""),
            season=str(raw["season"]),
            status=str(raw.get("status") or ""),
            total_rosters=_int(raw.get("total_rosters")),
            roster_positions=tuple(str(p) for p in raw.get("roster_positions") or ()),
            scoring_settings={
                str(k): float(v) for k, v in (raw.get("scoring_settings") or {}).items()
            },
            settings=LeagueSettings.from_dict(raw.get("settings")),
            previous_league_id=previous,
            avatar=_opt_str(raw.get("avatar")),
        )


@dataclass(frozen=True)
class Roster:
    roster_id: int
    owner_id: str | None = None
    co_owners: tuple[str, ...] = ()

    @property
    def owner_ids(self) -> list[str]:
        """Primary owner first, then co-owners."""
        owners = [self.owner_id] if self.owner_id else []
        return owners + [c for c in self.co_owners if c]

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Roster:
        return cls(
            roster_id=int(raw["roster_id"]),
            owner_id=_opt_str(raw.get("owner_id")),
            co_owners=tuple(str(c) for c in raw.get("co_owners") or ()),
        )


# ---------- Weekly results ----------


@dataclass(frozen=True)
class RawResult:
    """One roster's line for one league-week. matchup_id None = no opponent this week."""
    roster_id: int
    matchup_id: int | None
    points: float
    players: tuple[str, ...] = ()
    starters: tuple[str, ...] = ()
    players_points: Mapping[str, float] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> RawResult:
        return cls(
            roster_id=int(raw["roster_id"]),
            matchup_id=_opt_int(raw.get("matchup_id")),
            points=float(raw.get("points") or 0.0),
            players=tuple(str(p) for p in raw.get("players") or ()),
            starters=tuple(str(p) for p in raw.get("starters") or ()),
            players_points={
                str(k): float(v or 0.0) for k, v in (raw.get("players_points") or {}).items()
            },
        )


# ---------- Brackets ----------


@dataclass(frozen=True)
class BracketReference:
    """`{"w": m}` or `{"l": m}`: this slot is the winner (or loser) of bracket node m."""
    node_id: int
    from_winner: bool

    @classmethod
    def from_dict(cls, raw: Any) -> BracketReference | None:
        if not isinstance(raw, Mapping):
            return None
        if "w" in raw and raw["w"] is not None:
            return cls(node_id=int(raw["w"]), from_winner=True)
        if "l" in raw and raw["l"] is not None:
            return cls(node_id=int(raw["l"]), from_winner=False)
        return None


@dataclass(frozen=True)
class BracketNode:
    """One slot of a winners/losers bracket (Sleeper keys: r, m, t1, t2, t1_from, t2_from, w, l, p)."""
    node_id: int
    round: int
    team_one: int | None = None
    team_two: int | None = None
    team_one_from: BracketReference | None = None
    team_two_from: BracketReference | None = None
    winner: int | None = None
    loser: int | None = None
    position: int | None = None

    @property
    def sources(self) -> tuple[BracketReference | None, BracketReference | None]:
        return self.team_one_from, self.team_two_from

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> BracketNode:
        return cls(
            node_id=int(raw["m"]),
            round=int(raw["r"]),
            team_one=_opt_int(raw.get("t1")),
            team_two=_opt_int(raw.get("t2")),
            team_one_from=BracketReference.from_dict(raw.get("t1_from")),
            team_two_from=BracketReference.from_dict(raw.get("t2_from")),
            winner=_opt_int(raw.get("w")),
            loser=_opt_int(raw.get("l")),
            position=_opt_int(raw.get("p")),
        )


# ---------- Global state & players ----------


@dataclass(frozen=True)
class NFLState:
    """The provider's current season/week cursor."""
    season: str
    week: int

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> NFLState:
        season = raw.get("league_season") or raw["season"]
        return cls(season=str(season), week=int(raw.get("week") or 0))


@dataclass(frozen=True)
class PlayerRecord:
    player_id: str
    full_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    team: str | None = None
    position: str | None = None
    fantasy_positions: tuple[str, ...] = ()
    number: int | None = None
    age: int | None = None
    birth_date: str | None = None
    college: str | None = None
    rookie_year: str | None = None
    weight: str | None = None
    height: str | None = None
    years_exp: int | None = None

    @classmethod
    def from_dict(cls, player_id: str, raw: Mapping[str, Any]) -> PlayerRecord:
        metadata = raw.get("metadata") or {}
        full_name = _opt_str(raw.get("full_name"))
        if full_name is None and (raw.get("first_name") or raw.get("last_name")):
            full_name = f"{raw.get('first_name') or ''} {raw.get('last_name') or ''}".strip()
        return cls(
            player_id=str(raw.get("player_id") or player_id),
            full_name=full_name,
            first_name=_opt_str(raw.get("first_name")),
            last_name=_opt_str(raw.get("last_name")),
            team=_opt_str(raw.get("team")),
            position=_opt_str(raw.get("position")),
            fantasy_positions=tuple(str(p) for p in raw.get("fantasy_positions") or ()),
            number=_opt_int(raw.get("number")),
            age=_opt_int(raw.get("age")),
            birth_date=_opt_str(raw.get("birth_date")),
            college=_opt_str(raw.get("college")),
            rookie_year=_opt_str(metadata.get("rookie_year")),
            weight=_opt_str(raw.get("weight")),
            height=_opt_str(raw.get("height")),
            years_exp=_opt_int(raw.get("years_exp")),
        )
