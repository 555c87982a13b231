"""
Format Planner - abstract matches for one category.

Turns the participants of a category and its format into the full list of
matches the category will play, before any court or time is chosen:

- single_elimination: bracket-fold seeded bracket, byes to the top seeds
- round_robin (teams): circle method, every pair once
- round_robin (individual): American rotation
- groups_knockout / individual_groups_knockout: a round robin per group,
  interleaved round by round, followed by a knockout bracket of pending
  seats and (optionally) placement matches

Input problems an operator can fix come back as diagnostics on the plan;
a plan with diagnostics has no matches.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from math import ceil
from typing import Dict, List, Optional, Sequence, Tuple

from courtplan.services import draw_rules
from courtplan.services.american_rotation import american_schedule
from courtplan.services.diagnostics import (
    Diagnostic,
    DiagnosticsMixin,
    IncompleteAssignment,
    InsufficientGroupSize,
    InsufficientParticipants,
)
from courtplan.services.draw_types import (
    CategoryConfig,
    Participant,
    Pending,
    PlannedMatch,
    Side,
    decided_side,
    seeded_order,
)

logger = logging.getLogger(__name__)

# (side_a, side_b) of one game inside a group round
GroupGame = Tuple[Side, Side]


@dataclass
class DrawPlan(DiagnosticsMixin):
    category: Optional[CategoryConfig] = None
    matches: List[PlannedMatch] = field(default_factory=list)
    groups: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def match_count(self) -> int:
        return len(self.matches)

    @property
    def rounds_by_label(self) -> Dict[str, int]:
        counts: Dict[str, int] = OrderedDict()
        for m in self.matches:
            counts[m.round_label] = counts.get(m.round_label, 0) + 1
        return counts

    @property
    def group_matches(self) -> List[PlannedMatch]:
        return [m for m in self.matches if draw_rules.is_group_label(m.round_label)]

    @property
    def knockout_matches(self) -> List[PlannedMatch]:
        return [m for m in self.matches if not draw_rules.is_group_label(m.round_label)]


class _MatchNumbering:
    """Hands out category-wide sequence numbers in emission order."""

    def __init__(self, category_id: Optional[str]):
        self.category_id = category_id
        self.matches: List[PlannedMatch] = []

    def add(
        self,
        round_label: str,
        stage_rank: int,
        round_number: int,
        side_a: Side,
        side_b: Side,
        group: Optional[str] = None,
        bracket_index: Optional[int] = None,
    ) -> PlannedMatch:
        match = PlannedMatch(
            category_id=self.category_id,
            round_label=round_label,
            sequence=len(self.matches) + 1,
            stage_rank=stage_rank,
            round_number=round_number,
            side_a=side_a,
            side_b=side_b,
            group=group,
            bracket_index=bracket_index,
        )
        self.matches.append(match)
        return match


# ============================================================================
# Entry point
# ============================================================================


def plan_category(
    participants: Sequence[Participant],
    category: CategoryConfig,
    seed: Optional[int] = None,
    available_slots: Optional[int] = None,
) -> DrawPlan:
    """
    Plan every match of a category.

    Args:
        participants: entrants in registration order (teams or individuals)
        category: category configuration
        seed: shuffles the American rotation; None keeps input order
        available_slots: caps the American round count when given
    """
    participants = list(participants)
    _check_participant_kinds(participants, category)

    if category.max_participants and len(participants) > category.max_participants:
        logger.warning(
            "Category %s has %d participants, above its limit of %d",
            category.id,
            len(participants),
            category.max_participants,
        )

    plan = DrawPlan(category=category)
    numbering = _MatchNumbering(category.id)

    if category.format == "single_elimination":
        plan.errors.extend(_plan_single_elimination(participants, category, numbering))
    elif category.format == "round_robin":
        plan.errors.extend(_plan_round_robin(participants, category, numbering, seed, available_slots, plan))
    else:
        plan.errors.extend(_plan_groups_knockout(participants, category, numbering, seed, plan))

    if plan.errors:
        plan.matches = []
        logger.info("Category %s not planned: %s", category.id, "; ".join(e.message for e in plan.errors))
        return plan

    plan.matches = numbering.matches
    logger.info(
        "Planned category %s (%s): %d participants, %d matches",
        category.id,
        category.format,
        len(participants),
        plan.match_count,
    )
    return plan


def _check_participant_kinds(participants: List[Participant], category: CategoryConfig) -> None:
    expected = "individual" if category.is_individual else "team"
    wrong = [p.id for p in participants if p.kind != expected]
    if wrong:
        raise ValueError(f"Category {category.id} ({category.format}) expects {expected} participants; got {wrong[:5]}")
    ids = [p.id for p in participants]
    if len(set(ids)) != len(ids):
        raise ValueError(f"Duplicate participant ids in category {category.id}")


# ============================================================================
# Single elimination
# ============================================================================


def _plan_single_elimination(
    participants: List[Participant],
    category: CategoryConfig,
    numbering: _MatchNumbering,
) -> List[Diagnostic]:
    n = len(participants)
    if n < draw_rules.MIN_TEAM_PARTICIPANTS:
        return [InsufficientParticipants(category.id, draw_rules.MIN_TEAM_PARTICIPANTS, n)]

    ordered = seeded_order(participants)
    size = draw_rules.next_power_of_two(n)
    positions = draw_rules.bracket_fold_positions(size)

    # Seed numbers above n are byes
    entries: List[Optional[Side]] = [decided_side([ordered[s - 1].id]) if s <= n else None for s in positions]
    first_round = [(entries[i], entries[i + 1]) for i in range(0, size, 2)]
    _emit_bracket(first_round, numbering, first_rank=1, seats_per_side=1, third_place=category.third_place_match)
    return []


def _emit_bracket(
    first_round: List[Tuple[Optional[Side], Optional[Side]]],
    numbering: _MatchNumbering,
    first_rank: int,
    seats_per_side: int,
    third_place: bool = False,
    placement_matches: bool = False,
) -> None:
    """
    Emit a knockout bracket from its first-round pairings.

    A pairing with a missing side is a bye: no match is played and the present
    side moves straight into the next round. Later rounds take the winners of
    consecutive bracket positions.

    3rd place (semifinal losers) is played just before the final. With
    placement_matches, a round with k >= 4 losers also feeds (k+1)th,
    (k+3)th, ... placement matches, ranked with the round that follows it.
    """
    round_label = draw_rules.knockout_round_label(len(first_round))
    rank = first_rank
    round_number = 1
    played = 0
    carried: List[Side] = []
    for index, (side_a, side_b) in enumerate(first_round, start=1):
        if side_a is None or side_b is None:
            carried.append(side_a if side_a is not None else side_b)
            continue
        numbering.add(round_label, rank, round_number, side_a, side_b, bracket_index=index)
        played += 1
        carried.append(_winner_side(round_label, index, seats_per_side))

    while len(carried) > 1:
        previous_label, previous_played = round_label, played
        rank += 1
        round_number += 1
        matches_in_round = len(carried) // 2
        round_label = draw_rules.knockout_round_label(matches_in_round)

        if (
            round_label == draw_rules.FINAL
            and previous_label == draw_rules.SEMIFINAL
            and previous_played == 2
            and (third_place or placement_matches)
        ):
            numbering.add(
                draw_rules.placement_label(3),
                rank,
                round_number,
                _loser_side(previous_label, 1, seats_per_side),
                _loser_side(previous_label, 2, seats_per_side),
            )

        played = 0
        next_carried: List[Side] = []
        for index in range(1, matches_in_round + 1):
            numbering.add(
                round_label,
                rank,
                round_number,
                carried[2 * index - 2],
                carried[2 * index - 1],
                bracket_index=index,
            )
            played += 1
            next_carried.append(_winner_side(round_label, index, seats_per_side))

        if placement_matches and previous_played >= 4:
            for t in range(previous_played // 2):
                numbering.add(
                    draw_rules.placement_label(previous_played + 1 + 2 * t),
                    rank,
                    round_number,
                    _placement_side(previous_label, 2 * t + 1, seats_per_side),
                    _placement_side(previous_label, 2 * t + 2, seats_per_side),
                )
        carried = next_carried


def _winner_side(round_label: str, index: int, seats_per_side: int) -> Side:
    return tuple(Pending("winner", index, round_label, position) for position in range(seats_per_side))


def _loser_side(round_label: str, index: int, seats_per_side: int) -> Side:
    return tuple(Pending("loser", index, round_label, position) for position in range(seats_per_side))


def _placement_side(round_label: str, rank_among_losers: int, seats_per_side: int) -> Side:
    return tuple(
        Pending("placement", rank_among_losers, round_label, position) for position in range(seats_per_side)
    )


# ============================================================================
# Round robin
# ============================================================================


def _plan_round_robin(
    participants: List[Participant],
    category: CategoryConfig,
    numbering: _MatchNumbering,
    seed: Optional[int],
    available_slots: Optional[int],
    plan: DrawPlan,
) -> List[Diagnostic]:
    n = len(participants)
    group = "A"
    plan.groups = {group: [p.id for p in participants]}

    if category.is_individual:
        if n < draw_rules.MIN_AMERICAN_PARTICIPANTS:
            return [InsufficientParticipants(category.id, draw_rules.MIN_AMERICAN_PARTICIPANTS, n)]
        rounds = category.american_rounds
        per_round = n // draw_rules.PLAYERS_PER_AMERICAN_MATCH
        if available_slots is not None and available_slots // per_round < rounds:
            logger.info(
                "Category %s: American rounds shortened from %d to %d to fit %d slots",
                category.id,
                rounds,
                available_slots // per_round,
                available_slots,
            )
            rounds = available_slots // per_round
        group_rounds = {group: _american_group_rounds(participants, rounds, seed)}
    else:
        if n < draw_rules.MIN_TEAM_PARTICIPANTS:
            return [InsufficientParticipants(category.id, draw_rules.MIN_TEAM_PARTICIPANTS, n)]
        group_rounds = {group: _circle_group_rounds(participants)}

    _emit_group_stage(group_rounds, numbering)
    return []


def _circle_group_rounds(members: List[Participant]) -> List[List[GroupGame]]:
    rounds: List[List[GroupGame]] = [[] for _ in range(draw_rules.rr_round_count(len(members)))]
    for round_index, _, idx_a, idx_b in draw_rules.rr_pairings_by_round(len(members)):
        rounds[round_index - 1].append((decided_side([members[idx_a].id]), decided_side([members[idx_b].id])))
    return rounds


def _american_group_rounds(members: List[Participant], rounds: int, seed: Optional[int]) -> List[List[GroupGame]]:
    schedule = american_schedule([p.id for p in members], rounds, seed=seed)
    return [[(decided_side(pair_a), decided_side(pair_b)) for pair_a, pair_b in games] for games in schedule]


def _emit_group_stage(group_rounds: Dict[str, List[List[GroupGame]]], numbering: _MatchNumbering) -> None:
    """Round 1 of every group, then round 2 of every group, ..."""
    round_total = max((len(r) for r in group_rounds.values()), default=0)
    for round_index in range(round_total):
        for group in sorted(group_rounds):
            rounds = group_rounds[group]
            if round_index >= len(rounds):
                continue
            for side_a, side_b in rounds[round_index]:
                numbering.add(
                    draw_rules.group_round_label(group),
                    draw_rules.GROUP_STAGE_RANK,
                    round_index + 1,
                    side_a,
                    side_b,
                    group=group,
                )


# ============================================================================
# Groups + knockout
# ============================================================================


def minimum_group_size(category: CategoryConfig) -> int:
    floor = draw_rules.minimum_participants(category.is_individual)
    return max(floor, ceil(category.knockout_size / category.number_of_groups))


def _validate_groups(participants: List[Participant], category: CategoryConfig) -> List[Diagnostic]:
    labels = draw_rules.group_names(category.number_of_groups)
    missing = tuple(p.id for p in participants if not p.group)
    invalid = tuple(sorted({p.group for p in participants if p.group and p.group not in labels}))
    if missing or invalid:
        return [IncompleteAssignment(category.id, missing=missing, invalid_groups=invalid)]

    required = minimum_group_size(category)
    errors: List[Diagnostic] = []
    for label in labels:
        size = sum(1 for p in participants if p.group == label)
        if size < required:
            errors.append(InsufficientGroupSize(category.id, label, required, size))
    return errors


def _plan_groups_knockout(
    participants: List[Participant],
    category: CategoryConfig,
    numbering: _MatchNumbering,
    seed: Optional[int],
    plan: DrawPlan,
) -> List[Diagnostic]:
    minimum = draw_rules.minimum_participants(category.is_individual)
    if len(participants) < minimum:
        return [InsufficientParticipants(category.id, minimum, len(participants))]

    errors = _validate_groups(participants, category)
    if errors:
        return errors

    labels = draw_rules.group_names(category.number_of_groups)
    members = {label: seeded_order(p for p in participants if p.group == label) for label in labels}
    plan.groups = {label: [p.id for p in members[label]] for label in labels}
    if category.group_size_target:
        oversized = [label for label in labels if len(members[label]) > category.group_size_target]
        if oversized:
            logger.warning(
                "Category %s: groups %s above the target size of %d",
                category.id,
                ", ".join(oversized),
                category.group_size_target,
            )

    group_rounds: Dict[str, List[List[GroupGame]]] = {}
    for label in labels:
        if category.is_individual:
            group_rounds[label] = _american_group_rounds(members[label], len(members[label]) - 1, seed)
        else:
            group_rounds[label] = _circle_group_rounds(members[label])
    _emit_group_stage(group_rounds, numbering)

    _emit_knockout_placeholders(category, numbering)
    return []


def _emit_knockout_placeholders(category: CategoryConfig, numbering: _MatchNumbering) -> None:
    """Knockout bracket whose first round seats are filled after qualification."""
    per_side = draw_rules.seats_per_side(category.is_individual)
    first_round_matches = draw_rules.stage_size(category.knockout_stage, False) // 2

    seat = 0
    first_round: List[Tuple[Optional[Side], Optional[Side]]] = []
    for _ in range(first_round_matches):
        side_a = tuple(Pending("seed", seat + k + 1) for k in range(per_side))
        side_b = tuple(Pending("seed", seat + per_side + k + 1) for k in range(per_side))
        seat += 2 * per_side
        first_round.append((side_a, side_b))

    _emit_bracket(
        first_round,
        numbering,
        first_rank=draw_rules.GROUP_STAGE_RANK + 1,
        seats_per_side=per_side,
        placement_matches=category.placement_matches,
    )
