"""
Runtime defaults for the scheduling engine.

Values come from the environment (optionally a .env file) so an operator can
tune the transition buffer or default hours without touching code.
"""

import os
from datetime import time

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    if not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def parse_clock(value: str) -> time:
    """Parse 'HH:MM' (or 'HH:MM:SS') into a time."""
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Expected HH:MM, got {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    second = int(parts[2]) if len(parts) == 3 else 0
    return time(hour, minute, second)


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./courtplan.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")

# Fixed gap between two matches on the same court
TRANSITION_MINUTES = _env_int("COURTPLAN_TRANSITION_MINUTES", 5)

DEFAULT_MATCH_DURATION_MINUTES = _env_int("COURTPLAN_MATCH_DURATION_MINUTES", 15)
MIN_MATCH_DURATION_MINUTES = _env_int("COURTPLAN_MIN_MATCH_DURATION_MINUTES", 5)

DEFAULT_DAILY_START = parse_clock(os.getenv("COURTPLAN_DAILY_START", "09:00"))
DEFAULT_DAILY_END = parse_clock(os.getenv("COURTPLAN_DAILY_END", "21:00"))

# American (rotating partners) round count when a category does not set one
DEFAULT_AMERICAN_ROUNDS = _env_int("COURTPLAN_AMERICAN_ROUNDS", 7)
