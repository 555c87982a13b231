"""
Draw Rules (Single Source of Truth)

Formats, knockout stage sizes, round labels and the two pairing primitives
(round-robin circle method and bracket fold). All other modules import from
here. Do NOT duplicate these rules elsewhere.
"""

from typing import Dict, FrozenSet, List, Optional, Tuple, Union

# =============================================================================
# Formats
# =============================================================================

FORMATS: Tuple[str, ...] = (
    "single_elimination",
    "round_robin",
    "groups_knockout",
    "individual_groups_knockout",
)

GROUPS_FORMATS: FrozenSet[str] = frozenset({"groups_knockout", "individual_groups_knockout"})

# Minimum entrants per format family
MIN_TEAM_PARTICIPANTS = 2
MIN_AMERICAN_PARTICIPANTS = 4

# Players in one American doubles game
PLAYERS_PER_AMERICAN_MATCH = 4


# =============================================================================
# Knockout Stage Sizes
# =============================================================================

KNOCKOUT_STAGES: Tuple[str, ...] = ("final", "semifinals", "quarterfinals", "round_of_16")

DEFAULT_KNOCKOUT_STAGE = "semifinals"

# Qualified teams per stage
TEAM_STAGE_SIZES: Dict[str, int] = {
    "final": 2,
    "semifinals": 4,
    "quarterfinals": 8,
    "round_of_16": 16,
}

# Qualified individuals per stage (two per side)
INDIVIDUAL_STAGE_SIZES: Dict[str, int] = {
    "final": 4,
    "semifinals": 8,
    "quarterfinals": 16,
    "round_of_16": 32,
}

_STAGE_ALIASES: Dict[str, str] = {
    "round16": "round_of_16",
    "round_16": "round_of_16",
    "semifinal": "semifinals",
    "quarterfinal": "quarterfinals",
}


def normalize_knockout_stage(stage: Optional[str]) -> str:
    """Canonical stage name; None/"" means the default stage."""
    if stage is None or not str(stage).strip():
        return DEFAULT_KNOCKOUT_STAGE
    key = str(stage).strip().lower()
    key = _STAGE_ALIASES.get(key, key)
    if key not in TEAM_STAGE_SIZES:
        raise ValueError(f"Unknown knockout stage: {stage}")
    return key


def stage_size(stage: Union[str, int, None], is_individual: bool) -> int:
    """
    Qualified participants for a knockout stage.

    `stage` may be a stage name or already a size; a size must be one of the
    sizes of the participant kind.
    """
    sizes = INDIVIDUAL_STAGE_SIZES if is_individual else TEAM_STAGE_SIZES
    if isinstance(stage, int):
        if stage not in sizes.values():
            raise ValueError(f"Unsupported knockout size {stage} (allowed: {sorted(sizes.values())})")
        return stage
    return sizes[normalize_knockout_stage(stage)]


def seats_per_side(is_individual: bool) -> int:
    return 2 if is_individual else 1


def minimum_participants(is_american: bool) -> int:
    return MIN_AMERICAN_PARTICIPANTS if is_american else MIN_TEAM_PARTICIPANTS


# =============================================================================
# Round Labels
# =============================================================================

GROUP_LABEL_PREFIX = "group_"
FINAL = "final"
SEMIFINAL = "semifinal"
QUARTERFINAL = "quarterfinal"

# Group stages (and plain round robins) always come first
GROUP_STAGE_RANK = 1


def group_names(count: int) -> List[str]:
    """["A", "B", ...] for `count` groups."""
    if count < 1 or count > 26:
        raise ValueError(f"Group count must be 1..26, got {count}")
    return [chr(ord("A") + i) for i in range(count)]


def group_round_label(group: str) -> str:
    return f"{GROUP_LABEL_PREFIX}{group}"


def is_group_label(round_label: str) -> bool:
    return round_label.startswith(GROUP_LABEL_PREFIX)


def knockout_round_label(matches_in_round: int) -> str:
    """
    Label of a knockout round by its number of matches.
    1 → final, 2 → semifinal, 4 → quarterfinal, 8 → round_of_16, 16 → round_of_32
    """
    if matches_in_round == 1:
        return FINAL
    if matches_in_round == 2:
        return SEMIFINAL
    if matches_in_round == 4:
        return QUARTERFINAL
    return f"round_of_{matches_in_round * 2}"


def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def placement_label(position: int) -> str:
    """3 → '3rd_place', 5 → '5th_place', ..."""
    return f"{_ordinal(position)}_place"


def placement_position(round_label: str) -> Optional[int]:
    """Best position decided by a placement match label, None for other labels."""
    if not round_label.endswith("_place"):
        return None
    digits = ""
    for ch in round_label:
        if not ch.isdigit():
            break
        digits += ch
    return int(digits) if digits else None


# =============================================================================
# Round Robin (circle method)
# =============================================================================


def rr_matches_per_pool(pool_size: int) -> int:
    """C(n, 2) = n*(n-1)/2."""
    return (pool_size * (pool_size - 1)) // 2


def rr_round_count(pool_size: int) -> int:
    """
    Even n: n-1 rounds. Odd n: n rounds (with BYE).
    """
    if pool_size < 2:
        return 0
    if pool_size % 2 == 0:
        return pool_size - 1
    return pool_size


def rr_pairings_by_round(pool_size: int) -> List[Tuple[int, int, int, int]]:
    """
    Round-robin pairings. Returns list of (round_index, sequence_in_round, idx_a, idx_b).
    idx_a, idx_b are 0-based positions in the input order.

    Circle method: fix position 0, rotate the rest one step per round.
    For 4 entrants this gives 1v4 2v3 / 1v3 2v4 / 1v2 3v4.
    """
    n = pool_size
    if n < 2:
        return []
    n2 = n + 1 if n % 2 == 1 else n  # Add BYE for odd n
    half = n2 // 2
    rounds_count = n2 - 1
    bye_idx = n if n % 2 == 1 else -1

    result: List[Tuple[int, int, int, int]] = []
    positions = list(range(n2))

    for round_num in range(1, rounds_count + 1):
        seq = 0
        for i in range(half):
            a, b = positions[i], positions[n2 - 1 - i]
            if a == bye_idx or b == bye_idx:
                continue
            seq += 1
            result.append((round_num, seq, min(a, b), max(a, b)))
        # Rotate: keep 0, move last to second, shift others
        positions = [positions[0]] + [positions[-1]] + positions[1:-1]

    return result


# =============================================================================
# Brackets
# =============================================================================


def next_power_of_two(n: int) -> int:
    size = 1
    while size < n:
        size *= 2
    return size


def bracket_fold_positions(n: int) -> List[int]:
    """Standard bracket-fold positions for *n* entries (n a power of two).

    Returns a flat list of seed numbers in bracket position order.
    Consecutive pairs indicate which seeds meet if chalk holds:
      4-entry  -> [1, 4, 2, 3]       -> (1v4), (2v3)
      8-entry  -> [1, 8, 4, 5, ...]   -> (1v8), (4v5), ...
    Seed 1 and seed 2 can only meet in the final.
    """
    if n == 1:
        return [1]
    if n == 2:
        return [1, 2]

    half = bracket_fold_positions(n // 2)

    expanded: List[int] = []
    for s in half:
        expanded.append(s)
        expanded.append(n + 1 - s)

    mid = len(expanded) // 2
    top = expanded[:mid]
    bot = expanded[mid:]
    if len(bot) >= 4:
        bot = bot[:-4] + bot[-2:] + bot[-4:-2]

    return top + bot
