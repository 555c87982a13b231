from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtplan.models.tournament import Tournament


class Category(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "name", name="uq_tournament_category"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    name: str
    format: str  # "single_elimination" | "round_robin" | "groups_knockout" | "individual_groups_knockout"
    round_robin_type: str = Field(default="teams")  # "teams" | "individual"
    number_of_groups: int = Field(default=1)
    group_size_target: Optional[int] = Field(default=None)
    knockout_stage: str = Field(default="semifinals")  # "final" | "semifinals" | "quarterfinals" | "round_of_16"
    max_participants: Optional[int] = Field(default=None)
    rounds: Optional[int] = Field(default=None)  # American round count
    third_place_match: bool = Field(default=False)  # single_elimination only
    placement_matches: bool = Field(default=True)  # groups formats only
    qualified_per_group: Optional[int] = Field(default=None)  # Written back by write_qualification_plan

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="categories")
