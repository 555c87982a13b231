"""
American format rotation: individuals change partner every round.

Each round the active players are split into doubles games. Players are
picked greedily so that partner repeats are avoided first and opponent
repeats second. When the player count is not a multiple of four, the players
with the most games played sit out, so byes rotate through the field.
"""

import logging
import random
from collections import defaultdict
from itertools import combinations
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from courtplan.services.draw_rules import MIN_AMERICAN_PARTICIPANTS, PLAYERS_PER_AMERICAN_MATCH

logger = logging.getLogger(__name__)

# A repeated partner costs as much as this many repeated opponents
PARTNER_REPEAT_WEIGHT = 4

Pair = Tuple[str, str]
Game = Tuple[Pair, Pair]


class EncounterLog:
    """Counts how often two players partnered or faced each other."""

    def __init__(self):
        self.partners: Dict[FrozenSet[str], int] = defaultdict(int)
        self.opponents: Dict[FrozenSet[str], int] = defaultdict(int)
        self.games_played: Dict[str, int] = defaultdict(int)
        self.sit_outs: Dict[str, int] = defaultdict(int)

    def partner_count(self, a: str, b: str) -> int:
        return self.partners.get(frozenset((a, b)), 0)

    def opponent_count(self, a: str, b: str) -> int:
        return self.opponents.get(frozenset((a, b)), 0)

    def game_cost(self, pair_a: Pair, pair_b: Pair) -> int:
        cost = PARTNER_REPEAT_WEIGHT * (self.partner_count(*pair_a) + self.partner_count(*pair_b))
        for x in pair_a:
            for y in pair_b:
                cost += self.opponent_count(x, y)
        return cost

    def record(self, game: Game) -> None:
        pair_a, pair_b = game
        self.partners[frozenset(pair_a)] += 1
        self.partners[frozenset(pair_b)] += 1
        for x in pair_a:
            for y in pair_b:
                self.opponents[frozenset((x, y))] += 1
        for player in pair_a + pair_b:
            self.games_played[player] += 1


def _pick_sit_outs(players: List[str], count: int, log: EncounterLog) -> List[str]:
    if count == 0:
        return []
    order = {pid: i for i, pid in enumerate(players)}
    # Most games first; among equals the one who sat out least, later entrants first
    ranked = sorted(players, key=lambda p: (-log.games_played[p], log.sit_outs[p], -order[p]))
    return ranked[:count]


def _best_game(active: List[str], log: EncounterLog) -> Game:
    """Cheapest game that includes the first remaining player."""
    anchor = active[0]
    rest = active[1:]
    best: Optional[Game] = None
    best_cost = 0
    for i, partner in enumerate(rest):
        others = rest[:i] + rest[i + 1:]
        for opp_a, opp_b in combinations(others, 2):
            game = ((anchor, partner), (opp_a, opp_b))
            cost = log.game_cost(*game)
            if best is None or cost < best_cost:
                best, best_cost = game, cost
                if cost == 0:
                    return best
    assert best is not None
    return best


def american_round(players: List[str], log: EncounterLog) -> List[Game]:
    """Build one round and record it in `log`."""
    sit_count = len(players) % PLAYERS_PER_AMERICAN_MATCH
    sitting = set(_pick_sit_outs(players, sit_count, log))
    active = [p for p in players if p not in sitting]

    games: List[Game] = []
    while len(active) >= PLAYERS_PER_AMERICAN_MATCH:
        game = _best_game(active, log)
        games.append(game)
        used = set(game[0] + game[1])
        active = [p for p in active if p not in used]

    for game in games:
        log.record(game)
    for p in sitting:
        log.sit_outs[p] += 1
    return games


def american_schedule(player_ids: Sequence[str], rounds: int, seed: Optional[int] = None) -> List[List[Game]]:
    """
    Games per round for an American rotation.

    Returns `rounds` lists of floor(n/4) games each. The player order is
    shuffled with `seed` when one is given; otherwise input order is used.
    """
    players = [str(p) for p in player_ids]
    if len(players) < MIN_AMERICAN_PARTICIPANTS:
        raise ValueError(f"American rotation needs at least {MIN_AMERICAN_PARTICIPANTS} players, got {len(players)}")
    if len(set(players)) != len(players):
        raise ValueError("American rotation player ids must be unique")
    if rounds < 0:
        raise ValueError(f"rounds must be >= 0, got {rounds}")

    if seed is not None:
        random.Random(seed).shuffle(players)

    log = EncounterLog()
    schedule = [american_round(players, log) for _ in range(rounds)]

    repeats = sum(1 for count in log.partners.values() if count > 1)
    logger.debug("American rotation: %d players, %d rounds, %d repeated partnerships", len(players), rounds, repeats)
    return schedule
