from courtplan.models.category import Category
from courtplan.models.match import Match
from courtplan.models.player import Player
from courtplan.models.team import Team
from courtplan.models.tournament import Tournament

__all__ = [
    "Tournament",
    "Category",
    "Team",
    "Player",
    "Match",
]
