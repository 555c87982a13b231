"""
Qualification from the group stage into the knockout bracket.

The bracket takes a fixed number of participants (team stages 2/4/8/16,
individual stages 4/8/16/32). Each group sends its top `qualified_per_group`;
when that does not add up, the best participants at the next position across
groups fill the remainder as wildcards.

Everything here is pure and repeatable, so it doubles as a preview.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Optional, Sequence, Union

from courtplan.services import draw_rules
from courtplan.services.diagnostics import DiagnosticsMixin, QualificationShortfall
from courtplan.services.draw_types import GroupStanding, MatchResult, Participant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QualificationPlan:
    qualified_per_group: int
    extra_wildcards_needed: int
    wildcard_source_position: int
    total_qualified: int


def compute_qualification_plan(
    number_of_groups: int,
    knockout_stage: Union[str, int, None],
    is_individual: bool,
) -> QualificationPlan:
    """
    qualified_per_group = floor(total / groups), the remainder comes from the
    next position as wildcards.

    3 groups into an 8-seat bracket → 2 per group + 2 wildcards from 3rd place
    4 groups into a 4-seat bracket  → 1 per group, no wildcards
    """
    if number_of_groups < 1:
        raise ValueError(f"number_of_groups must be >= 1, got {number_of_groups}")
    total = draw_rules.stage_size(knockout_stage, is_individual)
    qualified_per_group = total // number_of_groups
    return QualificationPlan(
        qualified_per_group=qualified_per_group,
        extra_wildcards_needed=total % number_of_groups,
        wildcard_source_position=qualified_per_group + 1,
        total_qualified=total,
    )


class _Tally:
    def __init__(self):
        self.played = 0
        self.wins = 0
        self.losses = 0
        self.games_won = 0
        self.games_lost = 0


def rank_group(
    completed_matches: Sequence[MatchResult],
    group_participants: Sequence[Union[str, Participant]],
    group: Optional[str] = None,
) -> List[GroupStanding]:
    """
    Standings of one group, recomputed from scratch.

    Only completed matches count. Both players of an individual side are
    credited with the side's games. Order: wins, then game difference, then
    games won; participants that stay tied keep their input order.
    """
    ids = [p.id if isinstance(p, Participant) else str(p) for p in group_participants]
    tallies: Dict[str, _Tally] = {pid: _Tally() for pid in ids}

    for match in completed_matches:
        if not match.is_completed:
            continue
        winner = match.winner_side
        for side, own, other in (("a", match.games_a, match.games_b), ("b", match.games_b, match.games_a)):
            side_ids = match.side_a_ids if side == "a" else match.side_b_ids
            for pid in side_ids:
                tally = tallies.get(pid)
                if tally is None:
                    continue
                tally.played += 1
                tally.games_won += own
                tally.games_lost += other
                if winner == side:
                    tally.wins += 1
                elif winner is not None:
                    tally.losses += 1

    standings = [
        GroupStanding(
            participant_id=pid,
            group=group,
            played=tallies[pid].played,
            wins=tallies[pid].wins,
            losses=tallies[pid].losses,
            games_won=tallies[pid].games_won,
            games_lost=tallies[pid].games_lost,
        )
        for pid in ids
    ]
    order = sorted(range(len(standings)), key=lambda i: (standings[i].rank_key, i))
    return [replace(standings[i], position=position) for position, i in enumerate(order, start=1)]


def select_wildcards(
    groups_standings: Mapping[str, Sequence[GroupStanding]],
    wildcard_source_position: int,
    extra_wildcards_needed: int,
) -> List[GroupStanding]:
    """
    Best `extra_wildcards_needed` participants at `wildcard_source_position`
    across the groups that have one, ranked like a group.
    """
    if extra_wildcards_needed <= 0:
        return []
    candidates: List[GroupStanding] = []
    for group in sorted(groups_standings):
        standings = groups_standings[group]
        if len(standings) >= wildcard_source_position:
            candidates.append(standings[wildcard_source_position - 1])
    order = sorted(range(len(candidates)), key=lambda i: (candidates[i].rank_key, i))
    return [candidates[i] for i in order[:extra_wildcards_needed]]


@dataclass
class QualificationResult(DiagnosticsMixin):
    plan: Optional[QualificationPlan] = None
    standings: Dict[str, List[GroupStanding]] = field(default_factory=dict)
    qualifiers_by_group: Dict[str, List[str]] = field(default_factory=dict)
    wildcards: List[GroupStanding] = field(default_factory=list)
    qualified: List[str] = field(default_factory=list)

    @property
    def standings_by_participant(self) -> Dict[str, GroupStanding]:
        return {s.participant_id: s for group in self.standings.values() for s in group}


def qualify_category(
    participants: Sequence[Participant],
    results: Sequence[MatchResult],
    number_of_groups: int,
    knockout_stage: Union[str, int, None],
    is_individual: bool,
    category_id: Optional[str] = None,
) -> QualificationResult:
    """
    Decide who goes through to the knockout bracket.

    `qualified` lists the guaranteed qualifiers group by group (A1, A2, B1,
    ...) followed by the wildcards. A count that differs from the bracket size
    is reported as QualificationShortfall.
    """
    plan = compute_qualification_plan(number_of_groups, knockout_stage, is_individual)
    group_results = [
        r
        for r in results
        if r.is_completed
        and draw_rules.is_group_label(r.round_label)
        and r.belongs_to(category_id)
    ]

    labels = draw_rules.group_names(number_of_groups)
    result = QualificationResult(plan=plan)
    for label in labels:
        members = [p for p in participants if p.group == label]
        label_results = [r for r in group_results if r.round_label == draw_rules.group_round_label(label)]
        result.standings[label] = rank_group(label_results, members, group=label)

    for label in labels:
        top = result.standings[label][: plan.qualified_per_group]
        result.qualifiers_by_group[label] = [s.participant_id for s in top]
        result.qualified.extend(result.qualifiers_by_group[label])

    result.wildcards = select_wildcards(result.standings, plan.wildcard_source_position, plan.extra_wildcards_needed)
    result.qualified.extend(s.participant_id for s in result.wildcards)

    if len(result.qualified) != plan.total_qualified:
        result.errors.append(QualificationShortfall(category_id, plan.total_qualified, len(result.qualified)))
        logger.warning(
            "Category %s: %d qualified, bracket needs %d",
            category_id,
            len(result.qualified),
            plan.total_qualified,
        )
    else:
        logger.info(
            "Category %s: %d per group + %d wildcard(s) from position %d",
            category_id,
            plan.qualified_per_group,
            len(result.wildcards),
            plan.wildcard_source_position,
        )
    return result
