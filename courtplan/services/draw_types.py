"""
Engine value types shared by planning, scheduling and qualification.

Everything here is immutable for the duration of a run. Participant ids are
strings so that callers can feed database ids, UUIDs or names alike; the
record boundary (match_store) converts them.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Iterable, List, Literal, Optional, Sequence, Tuple, Union

from courtplan.config import DEFAULT_AMERICAN_ROUNDS
from courtplan.services import draw_rules
from courtplan.services.score_parser import ParsedScore, parse_score

ParticipantKind = Literal["team", "individual"]
PendingKind = Literal["seed", "winner", "loser", "placement"]

PENDING_KINDS = ("seed", "winner", "loser", "placement")


# ============================================================================
# Participants
# ============================================================================


@dataclass(frozen=True)
class Participant:
    """A doubles team (two players) or an individual player."""

    id: str
    name: str
    kind: ParticipantKind = "team"
    player_ids: Tuple[str, ...] = ()
    seed: Optional[int] = None
    group: Optional[str] = None
    category_id: Optional[str] = None

    def __post_init__(self):
        if self.kind == "team":
            if len(self.player_ids) != 2:
                raise ValueError(f"Team {self.id} must have exactly two players, got {len(self.player_ids)}")
        elif self.kind == "individual":
            if len(self.player_ids) != 1:
                raise ValueError(f"Individual {self.id} must have exactly one player id, got {len(self.player_ids)}")
        else:
            raise ValueError(f"Unknown participant kind: {self.kind}")

    @classmethod
    def team(
        cls,
        id: str,
        name: str,
        player_ids: Sequence[str],
        seed: Optional[int] = None,
        group: Optional[str] = None,
        category_id: Optional[str] = None,
    ) -> "Participant":
        return cls(
            id=str(id),
            name=name,
            kind="team",
            player_ids=tuple(str(p) for p in player_ids),
            seed=seed,
            group=group,
            category_id=category_id,
        )

    @classmethod
    def individual(
        cls,
        id: str,
        name: str,
        seed: Optional[int] = None,
        group: Optional[str] = None,
        category_id: Optional[str] = None,
        player_id: Optional[str] = None,
    ) -> "Participant":
        return cls(
            id=str(id),
            name=name,
            kind="individual",
            player_ids=(str(player_id if player_id is not None else id),),
            seed=seed,
            group=group,
            category_id=category_id,
        )

    @property
    def is_individual(self) -> bool:
        return self.kind == "individual"

    def with_group(self, group: Optional[str]) -> "Participant":
        return replace(self, group=group)


def seeded_order(participants: Iterable[Participant]) -> List[Participant]:
    """Seed ascending, unseeded last; input order kept among equals."""
    indexed = list(enumerate(participants))
    indexed.sort(key=lambda item: (item[1].seed is None, item[1].seed or 0, item[0]))
    return [p for _, p in indexed]


# ============================================================================
# Seats
# ============================================================================


@dataclass(frozen=True)
class Decided:
    """A seat whose occupant is known."""

    participant_id: str


@dataclass(frozen=True)
class Pending:
    """
    A seat filled later.

    - seed: knockout seat number `index` (1-based), filled by qualification
    - winner / loser: the winning or losing side of match `index` of `round_label`
    - placement: the `index`-th best losing side of `round_label`

    `position` selects the seat inside the source side (individual formats
    play two per side).
    """

    kind: PendingKind
    index: int
    round_label: Optional[str] = None
    position: int = 0

    def __post_init__(self):
        if self.kind not in PENDING_KINDS:
            raise ValueError(f"Unknown pending seat kind: {self.kind}")


Seat = Union[Decided, Pending]
Side = Tuple[Seat, ...]


def decided_side(participant_ids: Sequence[str]) -> Side:
    return tuple(Decided(str(pid)) for pid in participant_ids)


def side_ids(side: Side) -> List[str]:
    """Ids of the decided seats of a side, in seat order."""
    return [seat.participant_id for seat in side if isinstance(seat, Decided)]


def is_side_decided(side: Side) -> bool:
    return all(isinstance(seat, Decided) for seat in side)


# ============================================================================
# Category configuration
# ============================================================================


@dataclass(frozen=True)
class CategoryConfig:
    id: Optional[str]
    name: str
    format: str
    round_robin_type: str = "teams"
    number_of_groups: int = 1
    group_size_target: Optional[int] = None
    knockout_stage: Optional[str] = "semifinals"
    max_participants: Optional[int] = None
    rounds: Optional[int] = None
    third_place_match: bool = False
    placement_matches: bool = True

    def __post_init__(self):
        if self.format not in draw_rules.FORMATS:
            raise ValueError(f"Unknown category format: {self.format}")
        if self.round_robin_type not in ("teams", "individual"):
            raise ValueError(f"Unknown round robin type: {self.round_robin_type}")
        if self.number_of_groups < 1:
            raise ValueError(f"number_of_groups must be >= 1, got {self.number_of_groups}")
        # frozen: normalise the alias in place
        object.__setattr__(self, "knockout_stage", draw_rules.normalize_knockout_stage(self.knockout_stage))

    @property
    def is_individual(self) -> bool:
        if self.format == "individual_groups_knockout":
            return True
        return self.format == "round_robin" and self.round_robin_type == "individual"

    @property
    def is_groups_format(self) -> bool:
        return self.format in draw_rules.GROUPS_FORMATS

    @property
    def american_rounds(self) -> int:
        return self.rounds if self.rounds else DEFAULT_AMERICAN_ROUNDS

    @property
    def knockout_size(self) -> int:
        """Qualified participants the knockout bracket takes."""
        return draw_rules.stage_size(self.knockout_stage, self.is_individual)


# ============================================================================
# Matches
# ============================================================================


@dataclass(frozen=True)
class PlannedMatch:
    """A match before it is bound to a court and time."""

    category_id: Optional[str]
    round_label: str
    sequence: int
    stage_rank: int
    round_number: int
    side_a: Side
    side_b: Side
    group: Optional[str] = None
    bracket_index: Optional[int] = None

    @property
    def participant_ids(self) -> List[str]:
        return side_ids(self.side_a) + side_ids(self.side_b)

    @property
    def is_decided(self) -> bool:
        return is_side_decided(self.side_a) and is_side_decided(self.side_b)

    @property
    def key(self) -> Tuple[Optional[str], str, int]:
        return (self.category_id, self.round_label, self.sequence)

    def with_sides(self, side_a: Side, side_b: Side) -> "PlannedMatch":
        return replace(self, side_a=side_a, side_b=side_b)


@dataclass(frozen=True, order=True)
class TimeSlot:
    """One court for one match duration. Ordered by start, then court."""

    start: datetime
    court: int
    end: datetime = field(compare=False)
    day: date = field(compare=False)

    @property
    def key(self) -> Tuple[datetime, int]:
        return (self.start, self.court)

    def overlaps(self, other: "TimeSlot") -> bool:
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class ScheduledMatch:
    match: PlannedMatch
    slot: TimeSlot
    status: str = "scheduled"

    @property
    def category_id(self) -> Optional[str]:
        return self.match.category_id

    @property
    def round_label(self) -> str:
        return self.match.round_label

    @property
    def sequence(self) -> int:
        return self.match.sequence

    @property
    def start(self) -> datetime:
        return self.slot.start

    @property
    def end(self) -> datetime:
        return self.slot.end

    @property
    def court(self) -> int:
        return self.slot.court

    def with_match(self, match: PlannedMatch) -> "ScheduledMatch":
        return replace(self, match=match)


# ============================================================================
# Results and standings
# ============================================================================


@dataclass(frozen=True)
class MatchResult:
    """A match as read back from persistence, with its per-set games."""

    round_label: str
    sequence: int
    side_a_ids: Tuple[str, ...]
    side_b_ids: Tuple[str, ...]
    sets: Tuple[Tuple[int, int], ...] = ()
    status: str = "completed"
    category_id: Optional[str] = None

    @classmethod
    def from_score(
        cls,
        round_label: str,
        sequence: int,
        side_a_ids: Sequence[str],
        side_b_ids: Sequence[str],
        score,
        status: str = "completed",
        category_id: Optional[str] = None,
    ) -> "MatchResult":
        """Build from a score string ("6-3 4-6 10-7") or a parsed score."""
        parsed = score if isinstance(score, ParsedScore) else parse_score(score)
        if parsed is None:
            raise ValueError(f"Unreadable score for {round_label} #{sequence}: {score!r}")
        return cls(
            round_label=round_label,
            sequence=sequence,
            side_a_ids=tuple(str(p) for p in side_a_ids),
            side_b_ids=tuple(str(p) for p in side_b_ids),
            sets=tuple(parsed.sets),
            status=status,
            category_id=category_id,
        )

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    def belongs_to(self, category_id: Optional[str]) -> bool:
        """Untagged results, or a None category, match any category."""
        return category_id is None or self.category_id is None or self.category_id == category_id

    @property
    def games_a(self) -> int:
        return sum(a for a, _ in self.sets)

    @property
    def games_b(self) -> int:
        return sum(b for _, b in self.sets)

    @property
    def winner_side(self) -> Optional[str]:
        """'a', 'b', or None for an unfinished match or equal game totals."""
        if not self.is_completed:
            return None
        if self.games_a > self.games_b:
            return "a"
        if self.games_b > self.games_a:
            return "b"
        return None

    @property
    def winner_ids(self) -> Tuple[str, ...]:
        side = self.winner_side
        if side == "a":
            return self.side_a_ids
        if side == "b":
            return self.side_b_ids
        return ()

    @property
    def loser_ids(self) -> Tuple[str, ...]:
        side = self.winner_side
        if side == "a":
            return self.side_b_ids
        if side == "b":
            return self.side_a_ids
        return ()


@dataclass(frozen=True)
class GroupStanding:
    participant_id: str
    group: Optional[str] = None
    played: int = 0
    wins: int = 0
    losses: int = 0
    games_won: int = 0
    games_lost: int = 0
    position: int = 0

    @property
    def game_difference(self) -> int:
        return self.games_won - self.games_lost

    @property
    def rank_key(self) -> Tuple[int, int, int]:
        """Descending ranking key: wins, then game difference, then games won."""
        return (-self.wins, -self.game_difference, -self.games_won)
