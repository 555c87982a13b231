"""
Bracket Populator - fills pending knockout seats.

Three steps, each producing new match values (times and courts are never
touched):

- cross_seed_pairing: two groups, group winners kept apart
- randomized_pairing: seeded shuffle of the qualified list
- advance_bracket: winner / loser / placement seats from played matches
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, TypeVar, Union

from courtplan.services.diagnostics import DiagnosticsMixin, InvalidBracketFill
from courtplan.services.draw_types import (
    Decided,
    GroupStanding,
    MatchResult,
    Pending,
    PlannedMatch,
    ScheduledMatch,
    Seat,
    Side,
)

logger = logging.getLogger(__name__)

AnyMatch = TypeVar("AnyMatch", PlannedMatch, ScheduledMatch)

_UNRANKED = (float("inf"), float("inf"), float("inf"))


@dataclass
class BracketFill(DiagnosticsMixin):
    matches: List[Union[PlannedMatch, ScheduledMatch]] = field(default_factory=list)
    seat_ids: List[str] = field(default_factory=list)  # seat number - 1 → participant id


def _planned(match: Union[PlannedMatch, ScheduledMatch]) -> PlannedMatch:
    return match.match if isinstance(match, ScheduledMatch) else match


def _rebuild(original: AnyMatch, side_a: Side, side_b: Side) -> AnyMatch:
    if isinstance(original, ScheduledMatch):
        return original.with_match(original.match.with_sides(side_a, side_b))
    return original.with_sides(side_a, side_b)


def seed_seat_count(matches: Sequence[Union[PlannedMatch, ScheduledMatch]]) -> int:
    return sum(
        1
        for m in matches
        for seat in _planned(m).side_a + _planned(m).side_b
        if isinstance(seat, Pending) and seat.kind == "seed"
    )


def fill_seed_seats(matches: Sequence[AnyMatch], seat_ids: Sequence[str]) -> List[AnyMatch]:
    """Replace Pending(seed, n) with Decided(seat_ids[n - 1])."""

    def fill(seat: Seat) -> Seat:
        if isinstance(seat, Pending) and seat.kind == "seed" and seat.index <= len(seat_ids):
            return Decided(seat_ids[seat.index - 1])
        return seat

    filled: List[AnyMatch] = []
    for m in matches:
        pm = _planned(m)
        filled.append(_rebuild(m, tuple(fill(s) for s in pm.side_a), tuple(fill(s) for s in pm.side_b)))
    return filled


# ============================================================================
# Seeding into the first knockout round
# ============================================================================


def cross_seed_order(qualifiers_by_group: Mapping[str, Sequence[str]], seats_per_side: int) -> List[str]:
    """
    Seat order for two groups.

    Team brackets, for K = 1, 3, ...: A_K vs B_(K+1) fills the top half and
    B_K vs A_(K+1) the bottom half, so A1 and B1 can only meet in the final
    (a single qualifier per group plays A1 vs B1).
    Individual brackets, for K = 1, 3, ...: A_K + B_(K+1) vs B_K + A_(K+1).
    """
    groups = sorted(qualifiers_by_group)
    if len(groups) != 2:
        raise ValueError(f"Cross seeding needs exactly two groups, got {len(groups)}")
    a = list(qualifiers_by_group[groups[0]])
    b = list(qualifiers_by_group[groups[1]])
    if len(a) != len(b):
        raise ValueError(f"Groups sent different numbers of qualifiers ({len(a)} and {len(b)})")

    per_group = len(a)
    if seats_per_side == 1 and per_group == 1:
        return [a[0], b[0]]
    if seats_per_side == 1:
        top: List[str] = []
        bottom: List[str] = []
        for k in range(0, per_group - 1, 2):
            top.extend([a[k], b[k + 1]])
            bottom.extend([b[k], a[k + 1]])
        return top + bottom
    order: List[str] = []
    for k in range(0, per_group - 1, 2):
        order.extend([a[k], b[k + 1], b[k], a[k + 1]])
    return order


def cross_seed_pairing(
    knockout_matches: Sequence[AnyMatch],
    qualifiers_by_group: Mapping[str, Sequence[str]],
    category_id: Optional[str] = None,
) -> BracketFill:
    """Fill the seed seats of a two-group category by cross seeding."""
    result = BracketFill()
    seats = seed_seat_count(knockout_matches)
    if seats == 0:
        result.errors.append(InvalidBracketFill(category_id, "no seed seats to fill"))
        return result
    per_side = _seats_per_side(knockout_matches)
    try:
        order = cross_seed_order(qualifiers_by_group, per_side)
    except ValueError as e:
        result.errors.append(InvalidBracketFill(category_id, str(e)))
        return result
    if len(order) != seats:
        result.errors.append(InvalidBracketFill(category_id, f"{len(order)} qualifiers for {seats} seats"))
        return result
    result.seat_ids = order
    result.matches = fill_seed_seats(knockout_matches, order)
    logger.info("Category %s: cross seeded %d seats", category_id, seats)
    return result


def randomized_pairing(
    knockout_matches: Sequence[AnyMatch],
    qualified: Sequence[str],
    seed: Optional[int] = None,
    category_id: Optional[str] = None,
) -> BracketFill:
    """
    Shuffle the qualified list (Fisher-Yates via random.Random(seed)) and fill
    seats in order: two ids per match for teams, four for individuals.
    """
    result = BracketFill()
    seats = seed_seat_count(knockout_matches)
    if len(qualified) != seats or seats == 0:
        result.errors.append(InvalidBracketFill(category_id, f"{len(qualified)} qualifiers for {seats} seats"))
        return result
    order = [str(pid) for pid in qualified]
    random.Random(seed).shuffle(order)
    result.seat_ids = order
    result.matches = fill_seed_seats(knockout_matches, order)
    logger.info("Category %s: randomly seeded %d seats (seed=%s)", category_id, seats, seed)
    return result


def _seats_per_side(matches: Sequence[Union[PlannedMatch, ScheduledMatch]]) -> int:
    for m in matches:
        return len(_planned(m).side_a)
    return 1


# ============================================================================
# Advancing results
# ============================================================================


def _loser_rank_key(
    loser_ids: Tuple[str, ...],
    standings: Mapping[str, GroupStanding],
) -> Tuple[float, float, float]:
    """Best group standing among the players of a losing side; sides without one rank last."""
    keys = [standings[pid].rank_key for pid in loser_ids if pid in standings]
    return min(keys) if keys else _UNRANKED


def advance_bracket(
    matches: Sequence[AnyMatch],
    results: Sequence[MatchResult],
    standings: Optional[Mapping[str, GroupStanding]] = None,
    category_id: Optional[str] = None,
) -> List[AnyMatch]:
    """
    Resolve winner, loser and placement seats from completed results.

    - Pending(winner|loser, i, round) takes the winning/losing side of match i
      of that round once it is completed with a winner.
    - Pending(placement, r, round) takes the r-th best losing side of that
      round, once every match of the round is completed. Losing sides are
      ordered by group standing (wins, then game difference), bracket order
      breaking ties.

    Results tagged with another category than `category_id` are ignored.
    Seats that cannot be resolved yet stay pending.
    """
    standings = standings or {}
    planned = [_planned(m) for m in matches]
    if category_id is None and planned:
        category_id = planned[0].category_id
    by_position: Dict[Tuple[str, int], PlannedMatch] = {
        (pm.round_label, pm.bracket_index): pm for pm in planned if pm.bracket_index is not None
    }
    by_key: Dict[Tuple[str, int], MatchResult] = {
        (r.round_label, r.sequence): r for r in results if r.is_completed and r.belongs_to(category_id)
    }

    def source(round_label: str, index: int) -> Optional[MatchResult]:
        pm = by_position.get((round_label, index))
        if pm is None:
            return None
        return by_key.get((round_label, pm.sequence))

    ordered_losers: Dict[str, Optional[List[Tuple[str, ...]]]] = {}

    def round_losers(round_label: str) -> Optional[List[Tuple[str, ...]]]:
        if round_label not in ordered_losers:
            round_matches = sorted(
                (pm for pm in planned if pm.round_label == round_label),
                key=lambda pm: pm.bracket_index or 0,
            )
            round_results = [by_key.get((round_label, pm.sequence)) for pm in round_matches]
            if not round_results or any(r is None or r.winner_side is None for r in round_results):
                ordered_losers[round_label] = None
            else:
                losers = [r.loser_ids for r in round_results]
                order = sorted(range(len(losers)), key=lambda i: (_loser_rank_key(losers[i], standings), i))
                ordered_losers[round_label] = [losers[i] for i in order]
        return ordered_losers[round_label]

    def resolve(seat: Seat) -> Seat:
        if not isinstance(seat, Pending) or seat.kind == "seed" or seat.round_label is None:
            return seat
        ids: Tuple[str, ...] = ()
        if seat.kind in ("winner", "loser"):
            r = source(seat.round_label, seat.index)
            if r is not None and r.winner_side is not None:
                ids = r.winner_ids if seat.kind == "winner" else r.loser_ids
        else:
            losers = round_losers(seat.round_label)
            if losers is not None and seat.index <= len(losers):
                ids = losers[seat.index - 1]
        if seat.position < len(ids):
            return Decided(ids[seat.position])
        return seat

    advanced: List[AnyMatch] = []
    for m, pm in zip(matches, planned):
        advanced.append(_rebuild(m, tuple(resolve(s) for s in pm.side_a), tuple(resolve(s) for s in pm.side_b)))
    return advanced
