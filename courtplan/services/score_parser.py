"""
Score reading for played matches.

Accepts the shapes results arrive in:
  "6-4"                 → 1 set
  "6-3 4-6 7-5"         → 3 sets, games summed
  "6-3, 4-6, 7-5"       → comma separated variant
  {"sets": [{"a": 6, "b": 3}, ...]}
  {"display": "6-4"}
  [(6, 3), (4, 6)]      → per-set columns, (0, 0) sets ignored

Returns None when nothing can be read (non-fatal; the match counts as unplayed).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple


@dataclass
class ParsedScore:
    sets: List[Tuple[int, int]]  # (side_a_games, side_b_games) per set
    side_a_sets_won: int
    side_b_sets_won: int
    side_a_games: int
    side_b_games: int

    @property
    def winner(self) -> Optional[str]:
        """Side with more total games; None on equal totals."""
        if self.side_a_games > self.side_b_games:
            return "a"
        if self.side_b_games > self.side_a_games:
            return "b"
        return None


def parse_score(score: Any) -> Optional[ParsedScore]:
    if not score:
        return None

    if isinstance(score, str):
        raw = score
    elif isinstance(score, dict):
        if "sets" in score and isinstance(score["sets"], list):
            return _build([(int(s.get("a", 0)), int(s.get("b", 0))) for s in score["sets"]])
        raw = str(score.get("display") or score.get("score") or "")
    elif isinstance(score, (list, tuple)):
        return parse_set_columns(score)
    else:
        return None

    if not raw.strip():
        return None
    return _parse_score_string(raw.strip())


def parse_set_columns(columns: Sequence[Tuple[Optional[int], Optional[int]]]) -> Optional[ParsedScore]:
    """
    Read per-set column pairs (team1_score_setN, team2_score_setN).

    Unplayed sets are stored as 0-0 and are dropped; a match with no played
    set has no score.
    """
    sets = [(int(a or 0), int(b or 0)) for a, b in columns]
    sets = [s for s in sets if s != (0, 0)]
    if not sets:
        return None
    return _build(sets)


def _parse_score_string(raw: str) -> Optional[ParsedScore]:
    normalized = raw.replace(",", " ").strip()
    sets: List[Tuple[int, int]] = []
    for part in normalized.split():
        pair = part.split("-")
        if len(pair) != 2:
            return None
        try:
            a = int(pair[0])
            b = int(pair[1])
        except ValueError:
            return None
        sets.append((a, b))

    if not sets:
        return None
    return _build(sets)


def _build(sets: List[Tuple[int, int]]) -> Optional[ParsedScore]:
    if not sets or any(a < 0 or b < 0 for a, b in sets):
        return None
    return ParsedScore(
        sets=sets,
        side_a_sets_won=sum(1 for a, b in sets if a > b),
        side_b_sets_won=sum(1 for a, b in sets if b > a),
        side_a_games=sum(a for a, _ in sets),
        side_b_games=sum(b for _, b in sets),
    )
