from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtplan.models.tournament import Tournament


class Player(SQLModel, table=True):
    """A registered player. Doubles the individual participant of American formats."""

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    category_id: Optional[int] = Field(default=None, foreign_key="category.id", index=True)
    name: str
    seed: Optional[int] = Field(default=None)
    group_name: Optional[str] = Field(default=None)
    # Individual formats only; team players carry their team's position
    is_individual_entry: bool = Field(default=False)
    final_position: Optional[int] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="players")
