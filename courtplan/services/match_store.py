"""
Record boundary between the engine and the SQLModel tables.

The only module that touches a Session. Engine ids are strings; database ids
are ints and are converted here. Rescheduling is stop-the-world: every match
of a category that is not completed is deleted and the new plan is inserted
in the same transaction.
"""

import logging
from datetime import date, timedelta
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from courtplan.config import DEFAULT_DAILY_END, DEFAULT_DAILY_START
from courtplan.models import Category, Match, Player, Team, Tournament
from courtplan.services.draw_types import (
    CategoryConfig,
    Decided,
    MatchResult,
    Participant,
    PlannedMatch,
    ScheduledMatch,
    Side,
    TimeSlot,
    decided_side,
)
from courtplan.services.qualification import QualificationPlan
from courtplan.services.score_parser import parse_set_columns
from courtplan.services.time_grid import DailyWindow, TournamentSettings
from courtplan.utils.courts import court_index_for_label, court_label_for_index

logger = logging.getLogger(__name__)


class MatchStoreError(Exception):
    """Record lookup failed (unknown tournament or category)"""

    pass


# ============================================================================
# Record → engine
# ============================================================================


def category_config_from_record(category: Category) -> CategoryConfig:
    return CategoryConfig(
        id=str(category.id),
        name=category.name,
        format=category.format,
        round_robin_type=category.round_robin_type or "teams",
        number_of_groups=category.number_of_groups or 1,
        group_size_target=category.group_size_target,
        knockout_stage=category.knockout_stage,
        max_participants=category.max_participants,
        rounds=category.rounds,
        third_place_match=bool(category.third_place_match),
        placement_matches=bool(category.placement_matches),
    )


def _daily_overrides(daily_schedules: Optional[List[Dict]]) -> Dict[date, DailyWindow]:
    """[{"date": "2026-05-02", "start_time": "10:00", "end_time": "18:00", "is_active": true}]"""
    overrides: Dict[date, DailyWindow] = {}
    for entry in daily_schedules or []:
        day = entry.get("date")
        if not day:
            continue
        day = date.fromisoformat(day) if isinstance(day, str) else day
        overrides[day] = DailyWindow.parse(
            entry.get("start_time") or DEFAULT_DAILY_START,
            entry.get("end_time") or DEFAULT_DAILY_END,
            is_active=bool(entry.get("is_active", True)),
        )
    return overrides


def tournament_settings_from_record(tournament: Tournament) -> TournamentSettings:
    return TournamentSettings(
        start_date=tournament.start_date,
        end_date=tournament.end_date,
        daily_window=DailyWindow(
            tournament.daily_start_time or DEFAULT_DAILY_START,
            tournament.daily_end_time or DEFAULT_DAILY_END,
        ),
        match_duration_minutes=tournament.match_duration_minutes,
        court_count=tournament.number_of_courts,
        court_names=tuple(tournament.court_names) if tournament.court_names else None,
        overrides=_daily_overrides(tournament.daily_schedules),
    )


def _get_category(session: Session, category_id: int) -> Category:
    category = session.get(Category, category_id)
    if not category:
        raise MatchStoreError(f"Category {category_id} not found")
    return category


def load_participants(session: Session, category_id: int) -> List[Participant]:
    """Teams (or individual entries for American formats) in registration order."""
    category = _get_category(session, category_id)
    config = category_config_from_record(category)
    cid = str(category_id)

    if config.is_individual:
        players = session.exec(
            select(Player)
            .where(Player.category_id == category_id, Player.is_individual_entry == True)  # noqa: E712
            .order_by(Player.created_at, Player.id)
        ).all()
        return [
            Participant.individual(str(p.id), p.name, seed=p.seed, group=p.group_name, category_id=cid)
            for p in players
        ]

    teams = session.exec(
        select(Team).where(Team.category_id == category_id).order_by(Team.created_at, Team.id)
    ).all()
    return [
        Participant.team(
            str(t.id),
            t.name,
            (
                str(t.player1_id) if t.player1_id is not None else f"team{t.id}-p1",
                str(t.player2_id) if t.player2_id is not None else f"team{t.id}-p2",
            ),
            seed=t.seed,
            group=t.group_name,
            category_id=cid,
        )
        for t in teams
    ]


def _row_sides(row: Match) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    if row.team1_id is not None or row.team2_id is not None:
        side_a = tuple(str(x) for x in (row.team1_id,) if x is not None)
        side_b = tuple(str(x) for x in (row.team2_id,) if x is not None)
    else:
        side_a = tuple(str(x) for x in (row.player1_individual_id, row.player2_individual_id) if x is not None)
        side_b = tuple(str(x) for x in (row.player3_individual_id, row.player4_individual_id) if x is not None)
    return side_a, side_b


def _row_sets(row: Match) -> Tuple[Tuple[int, int], ...]:
    parsed = parse_set_columns(
        [
            (row.team1_score_set1, row.team2_score_set1),
            (row.team1_score_set2, row.team2_score_set2),
            (row.team1_score_set3, row.team2_score_set3),
        ]
    )
    return tuple(parsed.sets) if parsed else ()


def _category_rows(session: Session, category_id: int) -> List[Match]:
    return list(
        session.exec(
            select(Match).where(Match.category_id == category_id).order_by(Match.match_number, Match.id)
        ).all()
    )


def load_results(session: Session, category_id: int) -> List[MatchResult]:
    results = []
    for row in _category_rows(session, category_id):
        side_a, side_b = _row_sides(row)
        results.append(
            MatchResult(
                round_label=row.round,
                sequence=row.match_number,
                side_a_ids=side_a,
                side_b_ids=side_b,
                sets=_row_sets(row),
                status=row.status,
                category_id=str(category_id),
            )
        )
    return results


def load_scheduled_matches(
    session: Session,
    category_id: int,
    planned: Sequence[PlannedMatch],
    settings: TournamentSettings,
) -> List[ScheduledMatch]:
    """
    Bind a category's plan to its persisted rows by (round, match number).

    Seats the rows already name replace the plan's pending seats; plan
    matches without a timed row are skipped.
    """
    rows = {(row.round, row.match_number): row for row in _category_rows(session, category_id)}
    duration = timedelta(minutes=settings.match_duration_minutes)
    court_names = list(settings.court_names) if settings.court_names else None

    bound: List[ScheduledMatch] = []
    for match in planned:
        row = rows.get((match.round_label, match.sequence))
        if row is None or row.scheduled_time is None:
            continue
        side_a, side_b = _row_sides(row)
        per_side = len(match.side_a)
        if len(side_a) == per_side and len(side_b) == per_side:
            match = match.with_sides(decided_side(side_a), decided_side(side_b))
        slot = TimeSlot(
            start=row.scheduled_time,
            court=court_index_for_label(court_names, row.court) or 1,
            end=row.scheduled_time + duration,
            day=row.scheduled_time.date(),
        )
        bound.append(ScheduledMatch(match=match, slot=slot, status=row.status))
    return bound


# ============================================================================
# Engine → record
# ============================================================================


def _int_ids(side: Side) -> List[Optional[int]]:
    return [int(seat.participant_id) if isinstance(seat, Decided) else None for seat in side]


def _match_row(tournament_id: int, category_id: int, scheduled: ScheduledMatch, court_names) -> Match:
    match = scheduled.match
    row = Match(
        tournament_id=tournament_id,
        category_id=category_id,
        round=match.round_label,
        match_number=match.sequence,
        scheduled_time=scheduled.start,
        court=court_label_for_index(court_names, scheduled.court),
        status=scheduled.status,
    )
    side_a, side_b = _int_ids(match.side_a), _int_ids(match.side_b)
    if len(match.side_a) == 2:
        row.player1_individual_id, row.player2_individual_id = side_a
        row.player3_individual_id, row.player4_individual_id = side_b
    else:
        row.team1_id = side_a[0] if side_a else None
        row.team2_id = side_b[0] if side_b else None
    return row


def replace_category_matches(
    session: Session,
    tournament_id: int,
    category_id: int,
    scheduled: Sequence[ScheduledMatch],
    court_names: Optional[Sequence[str]] = None,
) -> int:
    """
    Replace a category's schedule in one transaction.

    Completed matches are kept (and not re-inserted); every other match of the
    category is deleted, then `scheduled` is inserted with zeroed scores.
    Returns the number of inserted rows.
    """
    try:
        kept = set()
        for row in _category_rows(session, category_id):
            if row.status == "completed":
                kept.add((row.round, row.match_number))
            else:
                session.delete(row)

        inserted = 0
        for item in scheduled:
            if (item.round_label, item.sequence) in kept:
                continue
            session.add(_match_row(tournament_id, category_id, item, list(court_names) if court_names else None))
            inserted += 1

        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Replacing matches of category %s failed, transaction rolled back", category_id)
        raise

    logger.info(
        "Category %s: replaced schedule, %d kept completed, %d inserted",
        category_id,
        len(kept),
        inserted,
    )
    return inserted


def write_group_names(session: Session, category_id: int, mapping: Mapping[str, str]) -> int:
    """Persist a group assignment (participant id → group label)."""
    config = category_config_from_record(_get_category(session, category_id))
    model = Player if config.is_individual else Team
    updated = 0
    for pid, group in mapping.items():
        record = session.get(model, int(pid))
        if record is None or record.category_id != category_id:
            continue
        record.group_name = group
        session.add(record)
        updated += 1
    session.commit()
    return updated


def write_final_positions(session: Session, category_id: int, positions: Mapping[str, int]) -> int:
    """
    Store final positions. Team positions are also copied to the team's
    players so both show the same place.
    """
    config = category_config_from_record(_get_category(session, category_id))
    updated = 0
    for pid, position in positions.items():
        if config.is_individual:
            player = session.get(Player, int(pid))
            if player is None:
                continue
            player.final_position = position
            session.add(player)
        else:
            team = session.get(Team, int(pid))
            if team is None:
                continue
            team.final_position = position
            session.add(team)
            for player_id in (team.player1_id, team.player2_id):
                player = session.get(Player, player_id) if player_id is not None else None
                if player is not None:
                    player.final_position = position
                    session.add(player)
        updated += 1
    session.commit()
    logger.info("Category %s: wrote %d final positions", category_id, updated)
    return updated


def write_qualification_plan(session: Session, category_id: int, plan: QualificationPlan) -> Category:
    """Record how many participants per group went through to the knockout."""
    category = _get_category(session, category_id)
    category.qualified_per_group = plan.qualified_per_group
    session.add(category)
    session.commit()
    session.refresh(category)
    logger.info("Category %s: %d qualified per group", category_id, plan.qualified_per_group)
    return category
