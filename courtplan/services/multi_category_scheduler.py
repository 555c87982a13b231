"""
Multi-category scheduling over one shared grid.

Time-driven greedy: slots are visited in time order and each free slot is
offered to the categories in rotating order. A category fills it with its
first pending match of its lowest unfinished stage rank that is gate-eligible
and whose participants are free. Every category keeps its own order and
round precedence; across categories the earliest available slot wins.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from courtplan.services.diagnostics import DiagnosticsMixin, SchedulingOverflow
from courtplan.services.draw_types import PlannedMatch, ScheduledMatch, TimeSlot
from courtplan.services.scheduler import Reservation, ScheduleResult, SchedulingState, match_order

logger = logging.getLogger(__name__)


@dataclass
class MultiScheduleResult(DiagnosticsMixin):
    results: Dict[Optional[str], ScheduleResult] = field(default_factory=OrderedDict)

    @property
    def scheduled(self) -> List[ScheduledMatch]:
        """All placed matches ordered by start, then court."""
        placed = [m for r in self.results.values() for m in r.scheduled]
        return sorted(placed, key=lambda m: m.slot.key)

    @property
    def overflow(self) -> List[PlannedMatch]:
        return [m for r in self.results.values() for m in r.overflow]


def _offer(pending: List[PlannedMatch], slot: TimeSlot, state: SchedulingState) -> Optional[int]:
    """Index of the match in `pending` that takes `slot`, or None."""
    if not pending:
        return None
    lowest_rank = pending[0].stage_rank
    for i, match in enumerate(pending):
        if match.stage_rank != lowest_rank:
            break
        if state.fits(match, slot):
            return i
    return None


def schedule_all(
    category_matches: Mapping[Optional[str], Sequence[PlannedMatch]],
    grid: Iterable[TimeSlot],
    reserved: Iterable[Reservation] = (),
) -> MultiScheduleResult:
    """
    Schedule several categories together.

    Args:
        category_matches: category id → planned matches (insertion order is
            the initial rotation order)
        grid: TimeGrid or any iterable of slots
        reserved: as for schedule_category
    """
    state = SchedulingState(reserved)
    keys = list(category_matches.keys())
    pending: Dict[Optional[str], List[PlannedMatch]] = {k: match_order(category_matches[k]) for k in keys}
    result = MultiScheduleResult(results=OrderedDict((k, ScheduleResult(category_id=k)) for k in keys))

    turn = 0
    for slot in sorted(grid):
        if not any(pending.values()):
            break
        if slot.key in state.taken:
            continue
        for offset in range(len(keys)):
            key = keys[(turn + offset) % len(keys)]
            index = _offer(pending[key], slot, state)
            if index is None:
                continue
            match = pending[key].pop(index)
            result.results[key].scheduled.append(state.place(match, slot))
            turn = (turn + offset + 1) % len(keys)
            break

    for key in keys:
        category_result = result.results[key]
        if pending[key]:
            category_result.overflow = pending[key]
            diagnostic = SchedulingOverflow(key, len(pending[key]), len(category_matches[key]))
            category_result.errors.append(diagnostic)
            result.errors.append(diagnostic)

    logger.info(
        "Scheduled %d categories: %d matches placed, %d overflow",
        len(keys),
        len(result.scheduled),
        len(result.overflow),
    )
    return result
