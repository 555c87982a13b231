from datetime import date, datetime, time
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtplan.models.category import Category
    from courtplan.models.match import Match
    from courtplan.models.player import Player
    from courtplan.models.team import Team


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    start_date: date
    end_date: date
    daily_start_time: Optional[time] = Field(default=None)
    daily_end_time: Optional[time] = Field(default=None)
    # Per-day overrides: [{"date": "2026-05-02", "start_time": "10:00", "end_time": "18:00"}]
    daily_schedules: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON))
    match_duration_minutes: int = Field(default=15)
    number_of_courts: int = Field(default=1)
    court_names: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    status: str = Field(default="draft")  # "draft" | "active" | "completed"
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    categories: List["Category"] = Relationship(back_populates="tournament")
    teams: List["Team"] = Relationship(back_populates="tournament")
    players: List["Player"] = Relationship(back_populates="tournament")
    matches: List["Match"] = Relationship(back_populates="tournament")
