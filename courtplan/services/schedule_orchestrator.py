"""
Schedule Orchestrator - whole-tournament pipeline

Build (before play):
1. Assign groups (groups formats arriving without them)
2. Plan every category
3. Check capacity over the total match count (optionally shorten matches)
4. Schedule all categories on one shared grid

Knockout (after the group stage):
1. Qualify from group results
2. Fill the bracket seats (cross seeding or random)
3. Resolve any winner/loser/placement seats already decided
4. Re-time the knockout around the played group matches

A build stopped by diagnostics before step 4 carries no schedule; callers
persist a build only when it has no diagnostics at all.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Sequence

from courtplan.services.bracket_populator import (
    BracketFill,
    advance_bracket,
    cross_seed_pairing,
    randomized_pairing,
)
from courtplan.services.diagnostics import DiagnosticsMixin
from courtplan.services.draw_rules import is_group_label
from courtplan.services.draw_types import CategoryConfig, MatchResult, Participant, PlannedMatch, ScheduledMatch
from courtplan.services.format_planner import DrawPlan, plan_category
from courtplan.services.group_assigner import GroupAssignment, assign_manually, assign_to_groups
from courtplan.services.multi_category_scheduler import schedule_all
from courtplan.services.qualification import QualificationResult, qualify_category
from courtplan.services.scheduler import ScheduleResult, schedule_category
from courtplan.services.time_grid import CapacityEstimate, TournamentSettings

logger = logging.getLogger(__name__)

PairingMode = Literal["auto", "cross_seed", "random"]

# ============================================================================
# Result Models
# ============================================================================


@dataclass
class CategoryInput:
    category: CategoryConfig
    participants: List[Participant]
    group_mapping: Optional[Dict[str, str]] = None  # participant_id → group, manual assignment


@dataclass
class CategorySchedule:
    category: CategoryConfig
    participants: List[Participant]
    plan: DrawPlan
    assignment: Optional[GroupAssignment] = None
    schedule: Optional[ScheduleResult] = None


@dataclass
class TournamentSchedule(DiagnosticsMixin):
    categories: Dict[str, CategorySchedule] = field(default_factory=OrderedDict)
    match_duration_minutes: int = 0
    capacity: Optional[CapacityEstimate] = None

    @property
    def total_matches(self) -> int:
        return sum(c.plan.match_count for c in self.categories.values())

    @property
    def scheduled(self) -> List[ScheduledMatch]:
        placed = [m for c in self.categories.values() if c.schedule for m in c.schedule.scheduled]
        return sorted(placed, key=lambda m: m.slot.key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "error" if self.has_errors() else "success",
            "total_matches": self.total_matches,
            "scheduled_matches": len(self.scheduled),
            "match_duration_minutes": self.match_duration_minutes,
            "categories": {
                key: {
                    "format": c.category.format,
                    "participants": len(c.participants),
                    "rounds": dict(c.plan.rounds_by_label),
                }
                for key, c in self.categories.items()
            },
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass
class KnockoutAdvance(DiagnosticsMixin):
    qualification: Optional[QualificationResult] = None
    fill: Optional[BracketFill] = None
    matches: List[PlannedMatch] = field(default_factory=list)
    schedule: Optional[ScheduleResult] = None


def _category_key(category: CategoryConfig) -> str:
    return category.id if category.id is not None else category.name


# ============================================================================
# Build
# ============================================================================


def _prepare_participants(
    item: CategoryInput,
    seed: Optional[int],
) -> Optional[GroupAssignment]:
    category = item.category
    if not category.is_groups_format:
        return None
    if item.group_mapping is not None:
        return assign_manually(item.participants, item.group_mapping, category.number_of_groups, category.id)
    if any(not p.group for p in item.participants):
        return assign_to_groups(item.participants, category.number_of_groups, seed=seed)
    return None


def build_tournament_schedule(
    settings: TournamentSettings,
    category_inputs: Sequence[CategoryInput],
    seed: Optional[int] = None,
    auto_adjust_duration: bool = False,
) -> TournamentSchedule:
    """
    Plan and schedule every category of a tournament.

    Args:
        settings: dates, hours, courts and match duration
        category_inputs: categories with their participants (and optional
            manual group maps)
        seed: used for group shuffles and American rotations
        auto_adjust_duration: switch to the suggested match duration when the
            configured one does not fit
    """
    result = TournamentSchedule(match_duration_minutes=settings.match_duration_minutes)
    available_slots = settings.grid().slot_count()

    # Steps 1-2: groups and plans
    for item in category_inputs:
        category = item.category
        participants = list(item.participants)
        assignment = _prepare_participants(item, seed)
        if assignment is not None:
            result.errors.extend(assignment.errors)
            if not assignment.has_errors():
                participants = assignment.participants

        plan = DrawPlan(category=category)
        if assignment is None or not assignment.has_errors():
            plan = plan_category(participants, category, seed=seed, available_slots=available_slots)
            result.errors.extend(plan.errors)

        result.categories[_category_key(category)] = CategorySchedule(
            category=category,
            participants=participants,
            plan=plan,
            assignment=assignment,
        )

    if result.has_errors():
        logger.info("Build stopped before scheduling: %d diagnostics", len(result.errors))
        return result

    # Step 3: capacity
    estimate = settings.estimate_capacity(result.total_matches)
    if not estimate.feasible and auto_adjust_duration and estimate.suggested_duration_minutes is not None:
        logger.info(
            "Match duration adjusted from %d to %d minutes",
            settings.match_duration_minutes,
            estimate.suggested_duration_minutes,
        )
        result.match_duration_minutes = estimate.suggested_duration_minutes
        estimate = settings.estimate_capacity(result.total_matches, result.match_duration_minutes)
    result.capacity = estimate
    if not estimate.feasible:
        result.errors.append(estimate.diagnostic())
        return result

    # Step 4: schedule
    grid = settings.grid(result.match_duration_minutes)
    multi = schedule_all(
        OrderedDict((key, c.plan.matches) for key, c in result.categories.items()),
        grid,
    )
    for key, category_schedule in result.categories.items():
        category_schedule.schedule = multi.results[key]
    result.errors.extend(multi.errors)

    logger.info(
        "Built schedule: %d categories, %d matches, %d placed, duration %d min",
        len(result.categories),
        result.total_matches,
        len(result.scheduled),
        result.match_duration_minutes,
    )
    return result


# ============================================================================
# Knockout
# ============================================================================


CROSS_SEED_STAGES = ("final", "semifinals")


def _cross_seeds(category: CategoryConfig) -> bool:
    return category.number_of_groups == 2 and category.knockout_stage in CROSS_SEED_STAGES


def advance_to_knockout(
    settings: TournamentSettings,
    category: CategoryConfig,
    participants: Sequence[Participant],
    scheduled: Sequence[ScheduledMatch],
    results: Sequence[MatchResult],
    pairing: PairingMode = "auto",
    seed: Optional[int] = None,
    match_duration_minutes: Optional[int] = None,
    reserved: Sequence[ScheduledMatch] = (),
) -> KnockoutAdvance:
    """
    Fill a groups category's knockout bracket and re-time it.

    `scheduled` is the category's current schedule; its group matches keep
    their slots. `reserved` holds other categories' matches that must not
    move. pairing "auto" cross seeds two groups playing a final or
    semifinals and shuffles otherwise. Results of other categories are
    ignored.
    """
    outcome = KnockoutAdvance()
    if not category.is_groups_format:
        raise ValueError(f"Category {category.id} ({category.format}) has no knockout stage to advance to")
    results = [r for r in results if r.belongs_to(category.id)]

    qualification = qualify_category(
        participants,
        results,
        category.number_of_groups,
        category.knockout_stage,
        category.is_individual,
        category_id=category.id,
    )
    outcome.qualification = qualification
    if qualification.has_errors():
        outcome.errors.extend(qualification.errors)
        return outcome

    group_stage = [m for m in scheduled if is_group_label(m.round_label)]
    knockout = [m.match for m in scheduled if not is_group_label(m.round_label)]

    if pairing == "auto":
        pairing = "cross_seed" if _cross_seeds(category) else "random"
    if pairing == "cross_seed":
        fill = cross_seed_pairing(knockout, qualification.qualifiers_by_group, category_id=category.id)
    else:
        fill = randomized_pairing(knockout, qualification.qualified, seed=seed, category_id=category.id)
    outcome.fill = fill
    if fill.has_errors():
        outcome.errors.extend(fill.errors)
        return outcome

    outcome.matches = advance_bracket(
        fill.matches, results, qualification.standings_by_participant, category_id=category.id
    )

    grid = settings.grid(match_duration_minutes)
    outcome.schedule = schedule_category(
        outcome.matches,
        grid,
        reserved=list(group_stage) + list(reserved),
        category_id=category.id,
    )
    outcome.errors.extend(outcome.schedule.errors)
    logger.info(
        "Category %s advanced to knockout: %d qualified, %d knockout matches placed",
        category.id,
        len(qualification.qualified),
        len(outcome.schedule.scheduled),
    )
    return outcome
