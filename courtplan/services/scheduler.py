"""
Scheduler: deterministic first-fit placement of one category's matches.

Matches are taken in (stage_rank, plan order). Each takes the earliest slot
that:
1. is not reserved or already used
2. has none of the match's decided participants playing at an overlapping time
3. starts no earlier than the end of every placed match of a lower stage
   rank in the same category

Once a match overflows, every match of a higher stage rank in its category
overflows too.

No rest rules, no court balancing, no randomness. Matches that fit nowhere
are returned as overflow with a SchedulingOverflow diagnostic.
"""

import logging
from bisect import bisect_left
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from courtplan.services.diagnostics import DiagnosticsMixin, SchedulingOverflow
from courtplan.services.draw_types import PlannedMatch, ScheduledMatch, TimeSlot

logger = logging.getLogger(__name__)

SlotKey = Tuple[datetime, int]
Reservation = Union[TimeSlot, ScheduledMatch, SlotKey]


@dataclass
class ScheduleResult(DiagnosticsMixin):
    category_id: Optional[str] = None
    scheduled: List[ScheduledMatch] = field(default_factory=list)
    overflow: List[PlannedMatch] = field(default_factory=list)

    @property
    def total_matches(self) -> int:
        return len(self.scheduled) + len(self.overflow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category_id": self.category_id,
            "scheduled_count": len(self.scheduled),
            "overflow_count": len(self.overflow),
            "errors": [e.to_dict() for e in self.errors],
        }


class ParticipantCalendar:
    """
    Tracks when each participant is already playing.

    Maps participant_id -> List[(start, end)]
    """

    def __init__(self):
        self._busy: Dict[str, List[Tuple[datetime, datetime]]] = defaultdict(list)

    def is_free(self, participant_ids: Iterable[str], slot: TimeSlot) -> bool:
        for pid in participant_ids:
            for start, end in self._busy.get(pid, ()):
                if slot.start < end and start < slot.end:
                    return False
        return True

    def book(self, participant_ids: Iterable[str], slot: TimeSlot) -> None:
        for pid in participant_ids:
            self._busy[pid].append((slot.start, slot.end))


class StageGate:
    """
    Round precedence per category: a match may not start before every
    placed match of a lower stage rank has ended, and no match may be placed
    after a lower stage rank has overflowed.
    """

    def __init__(self):
        self._latest_end: Dict[Tuple[Optional[str], int], datetime] = {}
        self._overflowed: Set[Tuple[Optional[str], int]] = set()

    def is_closed(self, category_id: Optional[str], stage_rank: int) -> bool:
        return any(cat == category_id and rank < stage_rank for cat, rank in self._overflowed)

    def close(self, category_id: Optional[str], stage_rank: int) -> None:
        self._overflowed.add((category_id, stage_rank))

    def earliest_start(self, category_id: Optional[str], stage_rank: int) -> Optional[datetime]:
        ends = [end for (cat, rank), end in self._latest_end.items() if cat == category_id and rank < stage_rank]
        return max(ends) if ends else None

    def record(self, category_id: Optional[str], stage_rank: int, end: datetime) -> None:
        key = (category_id, stage_rank)
        current = self._latest_end.get(key)
        if current is None or end > current:
            self._latest_end[key] = end


class SchedulingState:
    """Slots taken, participants busy and stage gates, shared by both schedulers."""

    def __init__(self, reserved: Iterable[Reservation] = ()):
        self.taken: Set[SlotKey] = set()
        self.calendar = ParticipantCalendar()
        self.gate = StageGate()
        for item in reserved:
            self.reserve(item)

    def reserve(self, item: Reservation) -> None:
        if isinstance(item, ScheduledMatch):
            # Already placed matches also block their players and gate later rounds
            self.taken.add(item.slot.key)
            self.calendar.book(item.match.participant_ids, item.slot)
            self.gate.record(item.category_id, item.match.stage_rank, item.slot.end)
        elif isinstance(item, TimeSlot):
            self.taken.add(item.key)
        else:
            start, court = item
            self.taken.add((start, court))

    def fits(self, match: PlannedMatch, slot: TimeSlot) -> bool:
        if slot.key in self.taken or self.gate.is_closed(match.category_id, match.stage_rank):
            return False
        earliest = self.gate.earliest_start(match.category_id, match.stage_rank)
        if earliest is not None and slot.start < earliest:
            return False
        return self.calendar.is_free(match.participant_ids, slot)

    def place(self, match: PlannedMatch, slot: TimeSlot) -> ScheduledMatch:
        self.taken.add(slot.key)
        self.calendar.book(match.participant_ids, slot)
        self.gate.record(match.category_id, match.stage_rank, slot.end)
        return ScheduledMatch(match=match, slot=slot)


def match_order(matches: Sequence[PlannedMatch]) -> List[PlannedMatch]:
    """Stable order: stage_rank, then plan order."""
    indexed = list(enumerate(matches))
    indexed.sort(key=lambda item: (item[1].stage_rank, item[0]))
    return [m for _, m in indexed]


def schedule_category(
    matches: Sequence[PlannedMatch],
    grid: Iterable[TimeSlot],
    reserved: Iterable[Reservation] = (),
    category_id: Optional[str] = None,
) -> ScheduleResult:
    """
    Place one category's matches on a grid.

    Args:
        matches: planned matches (pending seats are placed like any other)
        grid: TimeGrid or any iterable of slots
        reserved: slots (TimeSlot or (start, court)) that may not be used, or
            already scheduled matches to keep in place
        category_id: reported on the result and on overflow diagnostics
    """
    slots = sorted(grid)
    starts = [slot.start for slot in slots]
    state = SchedulingState(reserved)
    if category_id is None and matches:
        category_id = matches[0].category_id

    result = ScheduleResult(category_id=category_id)
    for match in match_order(matches):
        earliest = state.gate.earliest_start(match.category_id, match.stage_rank)
        first = bisect_left(starts, earliest) if earliest is not None else 0
        chosen: Optional[TimeSlot] = None
        for slot in slots[first:]:
            if state.fits(match, slot):
                chosen = slot
                break
        if chosen is None:
            result.overflow.append(match)
            state.gate.close(match.category_id, match.stage_rank)
            continue
        result.scheduled.append(state.place(match, chosen))

    if result.overflow:
        result.errors.append(SchedulingOverflow(category_id, len(result.overflow), len(matches)))
        logger.warning(
            "Category %s: %d of %d matches did not fit the time grid",
            category_id,
            len(result.overflow),
            len(matches),
        )
    logger.info("Category %s: scheduled %d matches", category_id, len(result.scheduled))
    return result
