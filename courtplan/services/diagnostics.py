"""
Diagnostics returned by the engine instead of partial results.

Every condition here is something an operator can fix (add courts, shorten
matches, extend dates, add participants) and retry, so they travel inside
result objects. Callers that prefer exceptions use raise_for_errors().
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple


INSUFFICIENT_PARTICIPANTS = "INSUFFICIENT_PARTICIPANTS"
INSUFFICIENT_GROUP_SIZE = "INSUFFICIENT_GROUP_SIZE"
INCOMPLETE_ASSIGNMENT = "INCOMPLETE_ASSIGNMENT"
SCHEDULING_OVERFLOW = "SCHEDULING_OVERFLOW"
QUALIFICATION_SHORTFALL = "QUALIFICATION_SHORTFALL"
TIME_WINDOW_INFEASIBLE = "TIME_WINDOW_INFEASIBLE"
INVALID_BRACKET_FILL = "INVALID_BRACKET_FILL"


class Diagnostic:
    """Base class: a stable code plus a human readable message."""

    code: str = ""

    @property
    def message(self) -> str:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        data = {"code": self.code, "message": self.message}
        data.update(self.details())
        return data

    def details(self) -> Dict[str, Any]:
        return {}


@dataclass(frozen=True)
class InsufficientParticipants(Diagnostic):
    category_id: Optional[str]
    required: int
    actual: int

    code = INSUFFICIENT_PARTICIPANTS

    @property
    def message(self) -> str:
        return (
            f"Category {self.category_id or '-'} needs at least {self.required} "
            f"participants, got {self.actual}"
        )

    def details(self) -> Dict[str, Any]:
        return {"category_id": self.category_id, "required": self.required, "actual": self.actual}


@dataclass(frozen=True)
class InsufficientGroupSize(Diagnostic):
    category_id: Optional[str]
    group: str
    required: int
    actual: int

    code = INSUFFICIENT_GROUP_SIZE

    @property
    def message(self) -> str:
        return (
            f"Group {self.group} of category {self.category_id or '-'} has {self.actual} "
            f"participants, at least {self.required} needed"
        )

    def details(self) -> Dict[str, Any]:
        return {
            "category_id": self.category_id,
            "group": self.group,
            "required": self.required,
            "actual": self.actual,
        }


@dataclass(frozen=True)
class IncompleteAssignment(Diagnostic):
    category_id: Optional[str]
    missing: Tuple[str, ...] = ()
    unknown: Tuple[str, ...] = ()
    invalid_groups: Tuple[str, ...] = ()

    code = INCOMPLETE_ASSIGNMENT

    @property
    def message(self) -> str:
        parts = []
        if self.missing:
            parts.append(f"{len(self.missing)} participant(s) without a group")
        if self.unknown:
            parts.append(f"{len(self.unknown)} unknown participant(s) in mapping")
        if self.invalid_groups:
            parts.append(f"unknown group label(s) {', '.join(self.invalid_groups)}")
        return "Group assignment incomplete: " + "; ".join(parts)

    def details(self) -> Dict[str, Any]:
        return {
            "category_id": self.category_id,
            "missing": list(self.missing),
            "unknown": list(self.unknown),
            "invalid_groups": list(self.invalid_groups),
        }


@dataclass(frozen=True)
class SchedulingOverflow(Diagnostic):
    category_id: Optional[str]
    unplaced: int
    total: int

    code = SCHEDULING_OVERFLOW

    @property
    def message(self) -> str:
        return (
            f"Time grid exhausted: {self.unplaced} of {self.total} matches of category "
            f"{self.category_id or '-'} could not be placed"
        )

    def details(self) -> Dict[str, Any]:
        return {"category_id": self.category_id, "unplaced": self.unplaced, "total": self.total}


@dataclass(frozen=True)
class QualificationShortfall(Diagnostic):
    category_id: Optional[str]
    expected: int
    actual: int

    code = QUALIFICATION_SHORTFALL

    @property
    def message(self) -> str:
        return f"Expected {self.expected} qualified participants but got {self.actual}"

    def details(self) -> Dict[str, Any]:
        return {"category_id": self.category_id, "expected": self.expected, "actual": self.actual}


@dataclass(frozen=True)
class TimeWindowInfeasible(Diagnostic):
    total_matches: int
    available_slots: int
    total_time_needed_minutes: int
    total_time_available_minutes: int
    suggested_duration_minutes: Optional[int]

    code = TIME_WINDOW_INFEASIBLE

    @property
    def message(self) -> str:
        text = (
            f"Not enough time: {self.total_matches} matches but only "
            f"{self.available_slots} slots available"
        )
        if self.suggested_duration_minutes is not None:
            text += f"; suggested match duration {self.suggested_duration_minutes} min"
        return text

    def details(self) -> Dict[str, Any]:
        return {
            "total_matches": self.total_matches,
            "available_slots": self.available_slots,
            "total_time_needed_minutes": self.total_time_needed_minutes,
            "total_time_available_minutes": self.total_time_available_minutes,
            "suggested_duration_minutes": self.suggested_duration_minutes,
        }


@dataclass(frozen=True)
class InvalidBracketFill(Diagnostic):
    category_id: Optional[str]
    reason: str

    code = INVALID_BRACKET_FILL

    @property
    def message(self) -> str:
        return f"Cannot fill knockout bracket: {self.reason}"

    def details(self) -> Dict[str, Any]:
        return {"category_id": self.category_id, "reason": self.reason}


class CourtPlanError(Exception):
    """Raised by raise_for_errors() when a result carries diagnostics."""

    def __init__(self, diagnostics: Sequence[Diagnostic]):
        self.diagnostics: List[Diagnostic] = list(diagnostics)
        super().__init__("; ".join(d.message for d in self.diagnostics))


@dataclass
class DiagnosticsMixin:
    """Adds the errors list and helpers shared by every engine result."""

    errors: List[Diagnostic] = field(default_factory=list)

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def raise_for_errors(self) -> None:
        if self.errors:
            raise CourtPlanError(self.errors)
