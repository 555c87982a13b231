"""
Time grid: the finite set of (court, start) slots a tournament offers.

A day contributes every start `open + k * (duration + transition)` whose match
still ends by `close`, on every court. Slots are yielded ordered by start,
then court, and a grid can be iterated any number of times.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterator, List, Mapping, Optional, Tuple, Union

from courtplan.config import (
    DEFAULT_DAILY_END,
    DEFAULT_DAILY_START,
    DEFAULT_MATCH_DURATION_MINUTES,
    MIN_MATCH_DURATION_MINUTES,
    TRANSITION_MINUTES,
    parse_clock,
)
from courtplan.services.diagnostics import TimeWindowInfeasible
from courtplan.services.draw_types import TimeSlot
from courtplan.utils.courts import court_label_for_index

logger = logging.getLogger(__name__)


def _minutes_between(start_time: time, end_time: time) -> int:
    """Minutes from start_time to end_time (same-day)."""
    start_min = start_time.hour * 60 + start_time.minute
    end_min = end_time.hour * 60 + end_time.minute
    return end_min - start_min if end_min > start_min else 0


@dataclass(frozen=True)
class DailyWindow:
    """Operating hours of one day. An inactive window closes the day."""

    start: time
    end: time
    is_active: bool = True

    @classmethod
    def parse(cls, start: Union[str, time], end: Union[str, time], is_active: bool = True) -> "DailyWindow":
        return cls(
            start=parse_clock(start) if isinstance(start, str) else start,
            end=parse_clock(end) if isinstance(end, str) else end,
            is_active=is_active,
        )

    @property
    def minutes(self) -> int:
        if not self.is_active:
            return 0
        return _minutes_between(self.start, self.end)


DEFAULT_WINDOW = DailyWindow(DEFAULT_DAILY_START, DEFAULT_DAILY_END)


def slots_per_court(window_minutes: int, duration: int, transition: int) -> int:
    """Match starts that fit in a window on one court."""
    if window_minutes < duration or duration <= 0:
        return 0
    return (window_minutes - duration) // (duration + transition) + 1


class TimeGrid:
    def __init__(
        self,
        start_date: date,
        end_date: date,
        daily_window: DailyWindow,
        match_duration_minutes: int,
        court_count: int,
        overrides: Optional[Mapping[date, DailyWindow]] = None,
        transition_minutes: Optional[int] = None,
    ):
        if match_duration_minutes <= 0:
            raise ValueError(f"match_duration_minutes must be positive, got {match_duration_minutes}")
        if court_count < 0:
            raise ValueError(f"court_count must be >= 0, got {court_count}")
        self.start_date = start_date
        self.end_date = end_date
        self.daily_window = daily_window
        self.match_duration_minutes = match_duration_minutes
        self.court_count = court_count
        self.overrides: Dict[date, DailyWindow] = dict(overrides or {})
        self.transition_minutes = TRANSITION_MINUTES if transition_minutes is None else transition_minutes
        if self.transition_minutes < 0:
            raise ValueError(f"transition_minutes must be >= 0, got {self.transition_minutes}")

    def window_for(self, day: date) -> DailyWindow:
        return self.overrides.get(day, self.daily_window)

    def days(self) -> Iterator[Tuple[date, DailyWindow]]:
        """Active days in date order with their window."""
        day = self.start_date
        while day <= self.end_date:
            window = self.window_for(day)
            if window.is_active and window.minutes > 0:
                yield day, window
            day += timedelta(days=1)

    def __iter__(self) -> Iterator[TimeSlot]:
        duration = timedelta(minutes=self.match_duration_minutes)
        step = timedelta(minutes=self.match_duration_minutes + self.transition_minutes)
        for day, window in self.days():
            start = datetime.combine(day, window.start)
            close = datetime.combine(day, window.end)
            while start + duration <= close:
                for court in range(1, self.court_count + 1):
                    yield TimeSlot(start=start, court=court, end=start + duration, day=day)
                start += step

    def __len__(self) -> int:
        return self.slot_count()

    def slot_count(self) -> int:
        per_court = sum(
            slots_per_court(window.minutes, self.match_duration_minutes, self.transition_minutes)
            for _, window in self.days()
        )
        return per_court * self.court_count

    def court_minutes(self) -> int:
        """Total court-minutes of operating time."""
        return sum(window.minutes for _, window in self.days()) * self.court_count

    def longest_day_minutes(self) -> int:
        return max((window.minutes for _, window in self.days()), default=0)

    def with_duration(self, match_duration_minutes: int) -> "TimeGrid":
        return TimeGrid(
            self.start_date,
            self.end_date,
            self.daily_window,
            match_duration_minutes,
            self.court_count,
            overrides=self.overrides,
            transition_minutes=self.transition_minutes,
        )


def enumerate_slots(
    start_date: date,
    end_date: date,
    daily_window: DailyWindow,
    match_duration_minutes: int,
    court_count: int,
    overrides: Optional[Mapping[date, DailyWindow]] = None,
    transition_minutes: Optional[int] = None,
) -> List[TimeSlot]:
    return list(
        TimeGrid(
            start_date,
            end_date,
            daily_window,
            match_duration_minutes,
            court_count,
            overrides=overrides,
            transition_minutes=transition_minutes,
        )
    )


# ============================================================================
# Capacity
# ============================================================================


@dataclass
class CapacityEstimate:
    feasible: bool
    total_matches: int
    slot_count: int
    match_duration_minutes: int
    total_time_needed_minutes: int
    total_time_available_minutes: int
    suggested_duration_minutes: Optional[int]
    shortfall_matches: int

    def diagnostic(self) -> Optional[TimeWindowInfeasible]:
        if self.feasible:
            return None
        return TimeWindowInfeasible(
            total_matches=self.total_matches,
            available_slots=self.slot_count,
            total_time_needed_minutes=self.total_time_needed_minutes,
            total_time_available_minutes=self.total_time_available_minutes,
            suggested_duration_minutes=self.suggested_duration_minutes,
        )


def suggest_match_duration(grid: TimeGrid, total_matches: int, min_duration_minutes: Optional[int] = None) -> Optional[int]:
    """
    Largest whole-minute duration (>= the configured floor) whose grid still
    holds `total_matches` slots. None when even the floor does not fit.

    Slot count never grows with the duration, so a binary search is exact.
    """
    floor = MIN_MATCH_DURATION_MINUTES if min_duration_minutes is None else min_duration_minutes
    floor = max(1, floor)
    if grid.with_duration(floor).slot_count() < total_matches:
        return None
    lo, hi = floor, max(floor, grid.longest_day_minutes())
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if grid.with_duration(mid).slot_count() >= total_matches:
            lo = mid
        else:
            hi = mid - 1
    return lo


def estimate_grid_capacity(grid: TimeGrid, total_matches: int, min_duration_minutes: Optional[int] = None) -> CapacityEstimate:
    slot_count = grid.slot_count()
    feasible = slot_count >= total_matches
    if total_matches <= 0:
        suggested: Optional[int] = grid.match_duration_minutes
    else:
        suggested = suggest_match_duration(grid, total_matches, min_duration_minutes)

    estimate = CapacityEstimate(
        feasible=feasible,
        total_matches=total_matches,
        slot_count=slot_count,
        match_duration_minutes=grid.match_duration_minutes,
        total_time_needed_minutes=total_matches * (grid.match_duration_minutes + grid.transition_minutes),
        total_time_available_minutes=grid.court_minutes(),
        suggested_duration_minutes=suggested,
        shortfall_matches=max(0, total_matches - slot_count),
    )
    if not feasible:
        logger.info(
            "Capacity short: %d matches, %d slots at %d min (suggested %s)",
            total_matches,
            slot_count,
            grid.match_duration_minutes,
            suggested,
        )
    return estimate


def estimate_capacity(
    total_matches: int,
    court_count: int,
    start_date: date,
    end_date: date,
    daily_window: DailyWindow,
    match_duration_minutes: int,
    overrides: Optional[Mapping[date, DailyWindow]] = None,
    transition_minutes: Optional[int] = None,
    min_duration_minutes: Optional[int] = None,
) -> CapacityEstimate:
    grid = TimeGrid(
        start_date,
        end_date,
        daily_window,
        match_duration_minutes,
        court_count,
        overrides=overrides,
        transition_minutes=transition_minutes,
    )
    return estimate_grid_capacity(grid, total_matches, min_duration_minutes)


# ============================================================================
# Tournament settings
# ============================================================================


@dataclass(frozen=True)
class TournamentSettings:
    """Tournament-wide inputs of the scheduler."""

    start_date: date
    end_date: date
    daily_window: DailyWindow = DEFAULT_WINDOW
    match_duration_minutes: int = DEFAULT_MATCH_DURATION_MINUTES
    court_count: int = 1
    court_names: Optional[Tuple[str, ...]] = None
    overrides: Mapping[date, DailyWindow] = field(default_factory=dict)
    transition_minutes: int = TRANSITION_MINUTES

    def grid(self, match_duration_minutes: Optional[int] = None) -> TimeGrid:
        return TimeGrid(
            self.start_date,
            self.end_date,
            self.daily_window,
            match_duration_minutes or self.match_duration_minutes,
            self.court_count,
            overrides=self.overrides,
            transition_minutes=self.transition_minutes,
        )

    def estimate_capacity(self, total_matches: int, match_duration_minutes: Optional[int] = None) -> CapacityEstimate:
        return estimate_grid_capacity(self.grid(match_duration_minutes), total_matches)

    def court_label(self, court: int) -> str:
        return court_label_for_index(list(self.court_names) if self.court_names else None, court)
