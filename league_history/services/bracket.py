"""
Playoff bracket resolution.

A Sleeper bracket is a flat list of nodes keyed by node id. Each node has a round,
two roster slots and, for later rounds, "winner of"/"loser of" references to
earlier nodes. This module maps those nodes onto already-persisted Matchup rows:

1. week assignment   - round index -> calendar week(s) via the league's round cadence
2. participants      - concrete roster ids, or advanced from the referenced node
3. linkage           - (week, roster, roster) in either order -> matchup_uuid
4. back-references   - referenced node's own matchup -> previous_matchup_one/two
5. round naming      - only for nodes fed by a "winner of" reference

Nodes are resolved round by round, earliest first, because step 2 and 4 read the
participants already resolved for earlier nodes.
"""
from __future__ import annotations

import logging
from typing import Iterable, Sequence

from league_history.models import (
    BracketType,
    League,
    Matchup,
    PlayoffMatchup,
    RoundName,
    SourceType,
)
from league_history.services.classification import weeks_for_round
from league_history.sleeper.records import BracketNode, BracketReference

logger = logging.getLogger(__name__)

Participants = tuple[int | None, int | None]


class MatchupLookup:
    """Persisted matchups indexed by (week, roster_a, roster_b) in both orderings."""

    def __init__(self, matchups: Iterable[Matchup] = ()) -> None:
        self._by_key: dict[tuple[int, int | None, int | None], str] = {}
        self._by_uuid: dict[str, Matchup] = {}
        for m in matchups:
            self.add(m)

    def add(self, matchup: Matchup) -> None:
        self._by_uuid[matchup.matchup_uuid] = matchup
        self._by_key[(matchup.week, matchup.roster_one_id, matchup.roster_two_id)] = matchup.matchup_uuid
        self._by_key[(matchup.week, matchup.roster_two_id, matchup.roster_one_id)] = matchup.matchup_uuid

    def find(self, week: int, roster_a: int | None, roster_b: int | None) -> str | None:
        # byes and unresolved slots never identify a bracket game
        if roster_a is None or roster_b is None:
            return None
        return self._by_key.get((week, roster_a, roster_b))

    def get(self, matchup_uuid: str) -> Matchup | None:
        return self._by_uuid.get(matchup_uuid)

    def __len__(self) -> int:
        return len(self._by_uuid)


def node_weeks(node: BracketNode, league: League) -> list[int]:
    """Calendar weeks of a node; the league's last playoff round is the championship."""
    return weeks_for_round(
        league.playoff_round_type,
        league.playoff_week_start,
        node.round,
        is_championship=node.round >= len(league.playoff_rounds),
    )


class BracketResolver:
    """Resolves one bracket (winners or losers) of one league."""

    def __init__(
        self,
        bracket_type: BracketType,
        nodes: Sequence[BracketNode],
        league: League,
        lookup: MatchupLookup,
    ) -> None:
        self.bracket_type = bracket_type
        self.league = league
        self.lookup = lookup
        self._nodes = {n.node_id: n for n in nodes}
        self._participants: dict[int, Participants] = {}

    def resolve(self) -> list[PlayoffMatchup]:
        rows: list[PlayoffMatchup] = []
        for node in sorted(self._nodes.values(), key=lambda n: (n.round, n.node_id)):
            participants = self._resolve_participants(node)
            self._participants[node.node_id] = participants
            for week in node_weeks(node, self.league):
                matchup_uuid = self.lookup.find(week, *participants)
                if matchup_uuid is None:
                    logger.debug(
                        f"League {self.league.league_id} {self.bracket_type.value} node "
                        f"{node.node_id}: no matchup for week {week} {participants}"
                    )
                    continue
                rows.append(self._build_row(node, week, matchup_uuid))
        return rows

    # ---------- participants ----------

    def _resolve_participants(self, node: BracketNode) -> Participants:
        one = node.team_one if node.team_one is not None else self._advanced(node.team_one_from)
        two = node.team_two if node.team_two is not None else self._advanced(node.team_two_from)
        return one, two

    def _advanced(self, ref: BracketReference | None) -> int | None:
        """Roster that came out of the referenced node as its winner (or loser)."""
        if ref is None:
            return None
        source = self._nodes.get(ref.node_id)
        if source is None:
            return None
        recorded = source.winner if ref.from_winner else source.loser
        if recorded is not None:
            return recorded
        return self._outcome_from_matchups(source, ref.from_winner)

    def _outcome_from_matchups(self, source: BracketNode, want_winner: bool) -> int | None:
        """Winner/loser of an earlier node from its persisted matchups, summed over the round's weeks."""
        one, two = self._participants.get(source.node_id, (None, None))
        if one is None or two is None:
            return None
        totals = {one: 0.0, two: 0.0}
        found = False
        for week in node_weeks(source, self.league):
            matchup_uuid = self.lookup.find(week, one, two)
            matchup = self.lookup.get(matchup_uuid) if matchup_uuid else None
            if matchup is None or matchup.roster_two_score is None:
                continue
            found = True
            totals[matchup.roster_one_id] += matchup.roster_one_score
            totals[matchup.roster_two_id] += matchup.roster_two_score
        if not found or totals[one] == totals[two]:
            return None
        winner, loser = (one, two) if totals[one] > totals[two] else (two, one)
        return winner if want_winner else loser

    # ---------- linkage ----------

    def _previous_matchup(self, ref: BracketReference | None) -> str | None:
        """matchup_uuid of the referenced node, in that node's last week."""
        if ref is None:
            return None
        source = self._nodes.get(ref.node_id)
        if source is None:
            return None
        one, two = self._participants.get(source.node_id, (None, None))
        return self.lookup.find(node_weeks(source, self.league)[-1], one, two)

    def _build_row(self, node: BracketNode, week: int, matchup_uuid: str) -> PlayoffMatchup:
        sources = [ref for ref in node.sources if ref is not None]
        fed_by_winner = any(ref.from_winner for ref in sources)

        round_name: RoundName | None = None
        if fed_by_winner:
            round_name = self.league.round_for_week(week)

        source_type: SourceType | None = None
        if fed_by_winner:
            source_type = SourceType.WINNER
        elif sources:
            source_type = SourceType.LOSER

        return PlayoffMatchup(
            matchup_uuid=matchup_uuid,
            bracket_type=self.bracket_type,
            round_name=round_name,
            playoff_position=node.position or None,
            previous_matchup_one=self._previous_matchup(node.team_one_from),
            previous_matchup_two=self._previous_matchup(node.team_two_from),
            source_type=source_type,
        )


def resolve_brackets(
    league: League,
    winners: Sequence[BracketNode],
    losers: Sequence[BracketNode],
    matchups: Iterable[Matchup],
) -> list[PlayoffMatchup]:
    """PlayoffMatchup rows for both brackets of a league against its persisted playoff matchups."""
    lookup = MatchupLookup(matchups)
    rows = BracketResolver(BracketType.WINNERS, winners, league, lookup).resolve()
    rows += BracketResolver(BracketType.LOSERS, losers, league, lookup).resolve()
    return rows
