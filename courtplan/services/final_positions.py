"""
Final classification from the deciding matches.

final        → winner 1, loser 2
3rd_place    → winner 3, loser 4
5th_place    → winner 5, loser 6, and so on

Both players of an individual side get the side's position.
"""

import logging
from typing import Dict, Optional, Sequence

from courtplan.services.draw_rules import FINAL, placement_position
from courtplan.services.draw_types import GroupStanding, MatchResult

logger = logging.getLogger(__name__)


def _best_position(round_label: str) -> Optional[int]:
    if round_label == FINAL:
        return 1
    return placement_position(round_label)


def compute_final_positions(results: Sequence[MatchResult]) -> Dict[str, int]:
    positions: Dict[str, int] = {}
    for result in results:
        best = _best_position(result.round_label)
        if best is None or result.winner_side is None:
            continue
        for pid in result.winner_ids:
            positions[pid] = best
        for pid in result.loser_ids:
            positions[pid] = best + 1
    logger.debug("Final positions decided for %d participants", len(positions))
    return positions


def positions_from_standings(standings: Sequence[GroupStanding]) -> Dict[str, int]:
    """Plain round robins finish in table order."""
    return {s.participant_id: s.position for s in standings if s.position}
