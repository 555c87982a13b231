"""
Group assignment for the groups + knockout formats.

Random assignment deals a (seeded) shuffle into groups A, B, ... so that group
sizes differ by at most one. Manual assignment validates an operator's map.
"""

import logging
import random
from dataclasses import dataclass, field
from math import floor
from typing import Dict, List, Mapping, Optional, Sequence

from courtplan.services.diagnostics import DiagnosticsMixin, IncompleteAssignment
from courtplan.services.draw_rules import group_names
from courtplan.services.draw_types import Participant

logger = logging.getLogger(__name__)


def compute_group_capacities(participant_count: int, groups_count: int) -> List[int]:
    """
    Compute the size of each group.

    - base_size = floor(participant_count / groups_count)
    - the first `remainder` groups get base_size + 1

    Example: 10 participants in 3 groups → [4, 3, 3]
    """
    if groups_count <= 0:
        return []

    base_size = floor(participant_count / groups_count)
    remainder = participant_count % groups_count

    capacities = []
    for i in range(groups_count):
        if i < remainder:
            capacities.append(base_size + 1)
        else:
            capacities.append(base_size)

    return capacities


@dataclass
class GroupAssignment(DiagnosticsMixin):
    group_count: int = 0
    mapping: Dict[str, str] = field(default_factory=dict)  # participant_id → group
    participants: List[Participant] = field(default_factory=list)  # relabelled copies

    def members(self, group: str) -> List[str]:
        return [p.id for p in self.participants if p.group == group]

    @property
    def group_sizes(self) -> Dict[str, int]:
        sizes = {label: 0 for label in group_names(self.group_count)} if self.group_count else {}
        for label in self.mapping.values():
            sizes[label] = sizes.get(label, 0) + 1
        return sizes


def assign_to_groups(
    participants: Sequence[Participant],
    group_count: int,
    seed: Optional[int] = None,
) -> GroupAssignment:
    """
    Shuffle (only when `seed` is given) and deal participants into groups.

    Dealing one at a time fills exactly the capacities of
    compute_group_capacities(): earlier groups take the remainder.
    """
    labels = group_names(group_count)
    order = list(participants)
    if seed is not None:
        random.Random(seed).shuffle(order)

    mapping: Dict[str, str] = {}
    for i, participant in enumerate(order):
        mapping[participant.id] = labels[i % group_count]

    result = GroupAssignment(
        group_count=group_count,
        mapping=mapping,
        participants=[p.with_group(mapping[p.id]) for p in participants],
    )
    logger.info("Assigned %d participants to %d groups: %s", len(order), group_count, result.group_sizes)
    return result


def _normalize_label(label: Optional[str]) -> str:
    if label is None:
        return ""
    text = str(label).strip()
    if text.lower().startswith("group_"):
        text = text[len("group_"):]
    return text.upper()


def assign_manually(
    participants: Sequence[Participant],
    mapping: Mapping[str, Optional[str]],
    group_count: Optional[int] = None,
    category_id: Optional[str] = None,
) -> GroupAssignment:
    """
    Validate and apply an operator's participant → group map.

    Every participant needs exactly one group, the map may not name unknown
    participants, and with `group_count` labels must be among A, B, ...
    Anything else comes back as IncompleteAssignment and nothing is applied.
    """
    normalized = {str(pid): _normalize_label(label) for pid, label in mapping.items()}
    known = {p.id for p in participants}

    missing = tuple(p.id for p in participants if not normalized.get(p.id))
    unknown = tuple(sorted(pid for pid in normalized if pid not in known))

    used_labels = sorted({label for label in normalized.values() if label})
    if group_count is None:
        group_count = len(used_labels)
        allowed = set(used_labels)
    else:
        allowed = set(group_names(group_count))
    invalid = tuple(label for label in used_labels if label not in allowed)

    result = GroupAssignment(group_count=group_count)
    if missing or unknown or invalid:
        result.errors.append(
            IncompleteAssignment(category_id, missing=missing, unknown=unknown, invalid_groups=invalid)
        )
        logger.info(
            "Manual group assignment rejected: %d missing, %d unknown, invalid labels %s",
            len(missing),
            len(unknown),
            list(invalid),
        )
        return result

    result.mapping = {p.id: normalized[p.id] for p in participants}
    result.participants = [p.with_group(result.mapping[p.id]) for p in participants]
    return result
