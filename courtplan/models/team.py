from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtplan.models.tournament import Tournament


class Team(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    category_id: Optional[int] = Field(default=None, foreign_key="category.id", index=True)
    name: str
    player1_id: Optional[int] = Field(default=None, foreign_key="player.id")
    player2_id: Optional[int] = Field(default=None, foreign_key="player.id")
    seed: Optional[int] = Field(default=None)  # 1-based seed (1=highest)
    group_name: Optional[str] = Field(default=None)  # "A", "B", ...
    final_position: Optional[int] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="teams")
