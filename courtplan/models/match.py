from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtplan.models.tournament import Tournament


class Match(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    category_id: Optional[int] = Field(default=None, foreign_key="category.id", index=True)
    round: str  # "group_A" | "quarterfinal" | "semifinal" | "final" | "3rd_place" | ...
    match_number: int
    scheduled_time: Optional[datetime] = Field(default=None)
    court: Optional[str] = Field(default=None)  # Court label, not index

    # Team formats (null while the seat is still pending)
    team1_id: Optional[int] = Field(default=None, foreign_key="team.id")
    team2_id: Optional[int] = Field(default=None, foreign_key="team.id")

    # Individual formats: players 1+2 form side 1, players 3+4 form side 2
    player1_individual_id: Optional[int] = Field(default=None, foreign_key="player.id")
    player2_individual_id: Optional[int] = Field(default=None, foreign_key="player.id")
    player3_individual_id: Optional[int] = Field(default=None, foreign_key="player.id")
    player4_individual_id: Optional[int] = Field(default=None, foreign_key="player.id")

    status: str = Field(default="scheduled")  # "scheduled" | "in_progress" | "completed"
    team1_score_set1: int = Field(default=0)
    team2_score_set1: int = Field(default=0)
    team1_score_set2: int = Field(default=0)
    team2_score_set2: int = Field(default=0)
    team1_score_set3: int = Field(default=0)
    team2_score_set3: int = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="matches")
