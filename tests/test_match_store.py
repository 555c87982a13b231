"""
Tests for the record boundary: loading participants and results from the
tables and replacing a category's schedule.
"""

from datetime import date, datetime, time

import pytest
from sqlmodel import select

from courtplan.models import Category, Match, Player, Team, Tournament
from courtplan.services.format_planner import plan_category
from courtplan.services.match_store import (
    MatchStoreError,
    category_config_from_record,
    load_participants,
    load_results,
    load_scheduled_matches,
    replace_category_matches,
    tournament_settings_from_record,
    write_final_positions,
    write_group_names,
    write_qualification_plan,
)
from courtplan.services.qualification import compute_qualification_plan
from courtplan.services.scheduler import schedule_category


@pytest.fixture(name="tournament")
def tournament_fixture(session):
    tournament = Tournament(
        name="Spring Open",
        start_date=date(2026, 5, 1),
        end_date=date(2026, 5, 2),
        daily_start_time=time(9, 0),
        daily_end_time=time(12, 0),
        daily_schedules=[{"date": "2026-05-02", "start_time": "10:00", "end_time": "11:00"}],
        match_duration_minutes=15,
        number_of_courts=2,
        court_names=["Centre", "Court 2"],
    )
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


def _category(session, tournament, **kwargs):
    params = dict(tournament_id=tournament.id, name="Men", format="single_elimination")
    params.update(kwargs)
    category = Category(**params)
    session.add(category)
    session.commit()
    session.refresh(category)
    return category


def _teams(session, tournament, category, n):
    teams = []
    for i in range(1, n + 1):
        p1 = Player(tournament_id=tournament.id, category_id=category.id, name=f"Player {i}a")
        p2 = Player(tournament_id=tournament.id, category_id=category.id, name=f"Player {i}b")
        session.add(p1)
        session.add(p2)
        session.commit()
        team = Team(
            tournament_id=tournament.id,
            category_id=category.id,
            name=f"Team {i}",
            player1_id=p1.id,
            player2_id=p2.id,
            seed=i,
        )
        session.add(team)
        session.commit()
        session.refresh(team)
        teams.append(team)
    return teams


def _schedule(session, tournament, category):
    participants = load_participants(session, category.id)
    plan = plan_category(participants, category_config_from_record(category))
    settings = tournament_settings_from_record(tournament)
    return plan, settings, schedule_category(plan.matches, settings.grid()).scheduled


class TestRecordToEngine:
    def test_settings_from_record(self, tournament):
        settings = tournament_settings_from_record(tournament)
        assert settings.court_count == 2
        assert settings.court_names == ("Centre", "Court 2")
        assert settings.daily_window.start == time(9, 0)
        assert settings.overrides[date(2026, 5, 2)].start == time(10, 0)
        assert settings.court_label(1) == "Centre"

    def test_category_config(self, session, tournament):
        category = _category(
            session, tournament, format="groups_knockout", number_of_groups=2, knockout_stage="round16"
        )
        config = category_config_from_record(category)
        assert config.id == str(category.id)
        assert config.knockout_stage == "round_of_16"
        assert config.placement_matches is True

    def test_teams_loaded_in_registration_order(self, session, tournament):
        category = _category(session, tournament)
        teams = _teams(session, tournament, category, 3)
        participants = load_participants(session, category.id)
        assert [p.id for p in participants] == [str(t.id) for t in teams]
        assert participants[0].player_ids == (str(teams[0].player1_id), str(teams[0].player2_id))
        assert participants[2].seed == 3

    def test_individual_entries(self, session, tournament):
        category = _category(session, tournament, format="round_robin", round_robin_type="individual")
        for i in range(4):
            session.add(
                Player(tournament_id=tournament.id, category_id=category.id, name=f"P{i}", is_individual_entry=True)
            )
        session.add(Player(tournament_id=tournament.id, category_id=category.id, name="Spectator"))
        session.commit()
        participants = load_participants(session, category.id)
        assert len(participants) == 4
        assert all(p.is_individual for p in participants)

    def test_unknown_category(self, session):
        with pytest.raises(MatchStoreError):
            load_participants(session, 999)


class TestReplaceCategoryMatches:
    def test_round_trip(self, session, tournament):
        category = _category(session, tournament)
        _teams(session, tournament, category, 4)
        plan, settings, scheduled = _schedule(session, tournament, category)

        inserted = replace_category_matches(session, tournament.id, category.id, scheduled, settings.court_names)
        assert inserted == 3

        rows = session.exec(select(Match).order_by(Match.match_number)).all()
        assert [(r.round, r.court) for r in rows] == [
            ("semifinal", "Centre"),
            ("semifinal", "Court 2"),
            ("final", "Centre"),
        ]
        assert rows[2].team1_id is None

        bound = load_scheduled_matches(session, category.id, plan.matches, settings)
        assert [m.slot for m in bound] == [m.slot for m in scheduled]
        assert bound[0].match.participant_ids == scheduled[0].match.participant_ids

    def test_completed_matches_survive_a_rebuild(self, session, tournament):
        category = _category(session, tournament)
        _teams(session, tournament, category, 4)
        plan, settings, scheduled = _schedule(session, tournament, category)
        replace_category_matches(session, tournament.id, category.id, scheduled, settings.court_names)

        rows = session.exec(select(Match).order_by(Match.match_number)).all()
        rows[0].status = "completed"
        rows[0].team1_score_set1, rows[0].team2_score_set1 = 6, 3
        rows[1].status = "in_progress"
        session.add(rows[0])
        session.add(rows[1])
        session.commit()

        inserted = replace_category_matches(session, tournament.id, category.id, scheduled, settings.court_names)
        assert inserted == 2

        rows = session.exec(select(Match).order_by(Match.match_number)).all()
        assert [(r.match_number, r.status) for r in rows] == [(1, "completed"), (2, "scheduled"), (3, "scheduled")]
        assert rows[0].team1_score_set1 == 6

    def test_results_read_back(self, session, tournament):
        category = _category(session, tournament)
        teams = _teams(session, tournament, category, 2)
        session.add(
            Match(
                tournament_id=tournament.id,
                category_id=category.id,
                round="final",
                match_number=1,
                scheduled_time=datetime(2026, 5, 1, 9, 0),
                court="Centre",
                team1_id=teams[0].id,
                team2_id=teams[1].id,
                status="completed",
                team1_score_set1=4,
                team2_score_set1=6,
                team1_score_set2=3,
                team2_score_set2=6,
            )
        )
        session.commit()
        results = load_results(session, category.id)
        assert len(results) == 1
        assert results[0].sets == ((4, 6), (3, 6))
        assert results[0].winner_ids == (str(teams[1].id),)
        assert results[0].category_id == str(category.id)


class TestWriteBack:
    def test_group_names(self, session, tournament):
        category = _category(session, tournament, format="groups_knockout", number_of_groups=2)
        teams = _teams(session, tournament, category, 4)
        mapping = {str(teams[0].id): "A", str(teams[1].id): "B", "999": "A"}
        assert write_group_names(session, category.id, mapping) == 2
        session.refresh(teams[1])
        assert teams[1].group_name == "B"

    def test_final_positions_copied_to_players(self, session, tournament):
        category = _category(session, tournament)
        teams = _teams(session, tournament, category, 2)
        updated = write_final_positions(session, category.id, {str(teams[0].id): 1, str(teams[1].id): 2})
        assert updated == 2
        player = session.get(Player, teams[1].player2_id)
        assert player.final_position == 2
        session.refresh(teams[0])
        assert teams[0].final_position == 1

    def test_qualified_per_group_recorded(self, session, tournament):
        category = _category(session, tournament, format="groups_knockout", number_of_groups=3)
        plan = compute_qualification_plan(3, "quarterfinals", False)
        write_qualification_plan(session, category.id, plan)
        assert session.get(Category, category.id).qualified_per_group == 2
