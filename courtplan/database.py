from pathlib import Path

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from courtplan.config import DATABASE_URL, SQL_ECHO

_is_sqlite = DATABASE_URL.startswith("sqlite")
_connect_args = {"check_same_thread": False} if _is_sqlite else {}

if _is_sqlite and DATABASE_URL != "sqlite://" and ":memory:" not in DATABASE_URL:
    db_path = DATABASE_URL.replace("sqlite:///", "", 1)
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

engine: Engine = create_engine(
    DATABASE_URL,
    echo=SQL_ECHO,
    connect_args=_connect_args,
)


def init_db(bind: Engine = engine) -> None:
    """Create all record tables"""
    # Import all models to ensure they're registered with SQLModel metadata
    from courtplan.models.category import Category  # noqa: F401
    from courtplan.models.match import Match  # noqa: F401
    from courtplan.models.player import Player  # noqa: F401
    from courtplan.models.team import Team  # noqa: F401
    from courtplan.models.tournament import Tournament  # noqa: F401

    SQLModel.metadata.create_all(bind)
