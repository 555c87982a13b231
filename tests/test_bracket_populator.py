"""
Tests for filling knockout seats: cross seeding, random pairing and
advancing winners, losers and placement sides.
"""

from dataclasses import replace

import pytest

from courtplan.services.bracket_populator import (
    advance_bracket,
    cross_seed_order,
    cross_seed_pairing,
    fill_seed_seats,
    randomized_pairing,
    seed_seat_count,
)
from courtplan.services.diagnostics import INVALID_BRACKET_FILL
from courtplan.services.draw_types import CategoryConfig, Decided, GroupStanding, Pending
from courtplan.services.format_planner import plan_category
from courtplan.services.scheduler import schedule_category

from tests.factories import make_individuals, make_teams, play_all, settings, split_groups


def _knockout(n, groups, stage, fmt="groups_knockout"):
    category = CategoryConfig(id="c1", name="Open", format=fmt, number_of_groups=groups, knockout_stage=stage)
    if category.is_individual:
        participants = make_individuals(n, split_groups(n, groups))
    else:
        participants = make_teams(n, split_groups(n, groups))
    return plan_category(participants, category).knockout_matches


def _by_label(matches, label):
    return [m for m in matches if m.round_label == label]


def _ids(side):
    return [seat.participant_id if isinstance(seat, Decided) else None for seat in side]


class TestCrossSeeding:
    def test_team_semifinals(self):
        assert cross_seed_order({"A": ["a1", "a2"], "B": ["b1", "b2"]}, 1) == ["a1", "b2", "b1", "a2"]

    def test_team_quarterfinals(self):
        order = cross_seed_order({"A": ["a1", "a2", "a3", "a4"], "B": ["b1", "b2", "b3", "b4"]}, 1)
        assert order == ["a1", "b2", "a3", "b4", "b1", "a2", "b3", "a4"]

    def test_individual_quarterfinals_keep_pairs_together(self):
        order = cross_seed_order({"A": ["a1", "a2", "a3", "a4"], "B": ["b1", "b2", "b3", "b4"]}, 2)
        assert order == ["a1", "b2", "b1", "a2", "a3", "b4", "b3", "a4"]

    def test_group_winners_in_opposite_halves(self):
        knockout = _knockout(16, 2, "quarterfinals")
        qualifiers = {"A": ["t1", "t3", "t5", "t7"], "B": ["t2", "t4", "t6", "t8"]}
        fill = cross_seed_pairing(knockout, qualifiers)
        assert not fill.has_errors()
        quarterfinals = _by_label(fill.matches, "quarterfinal")
        top_half = {pid for m in quarterfinals[:2] for pid in m.participant_ids}
        bottom_half = {pid for m in quarterfinals[2:] for pid in m.participant_ids}
        assert top_half == {"t1", "t4", "t5", "t8"}
        assert bottom_half == {"t2", "t3", "t6", "t7"}

    def test_single_qualifier_per_group(self):
        assert cross_seed_order({"A": ["a1"], "B": ["b1"]}, 1) == ["a1", "b1"]

    def test_needs_two_groups(self):
        with pytest.raises(ValueError):
            cross_seed_order({"A": ["a1"], "B": ["b1"], "C": ["c1"]}, 1)

    def test_group_winners_kept_apart(self):
        knockout = _knockout(8, 2, "semifinals")
        fill = cross_seed_pairing(knockout, {"A": ["t1", "t3"], "B": ["t2", "t4"]}, category_id="c1")
        assert not fill.has_errors()
        semis = _by_label(fill.matches, "semifinal")
        assert (_ids(semis[0].side_a), _ids(semis[0].side_b)) == (["t1"], ["t4"])
        assert (_ids(semis[1].side_a), _ids(semis[1].side_b)) == (["t2"], ["t3"])
        assert seed_seat_count(fill.matches) == 0

    def test_individual_final_pairs_group_winners_with_runners_up(self):
        knockout = _knockout(8, 2, "final", fmt="individual_groups_knockout")
        fill = cross_seed_pairing(knockout, {"A": ["p1", "p3"], "B": ["p2", "p4"]})
        final = _by_label(fill.matches, "final")[0]
        assert _ids(final.side_a) == ["p1", "p4"]
        assert _ids(final.side_b) == ["p2", "p3"]

    def test_wrong_group_count_is_diagnostic(self):
        knockout = _knockout(12, 3, "semifinals")
        fill = cross_seed_pairing(knockout, {"A": ["t1"], "B": ["t2"], "C": ["t3"]}, category_id="c1")
        assert fill.matches == []
        assert fill.errors[0].code == INVALID_BRACKET_FILL

    def test_seat_count_mismatch_is_diagnostic(self):
        knockout = _knockout(16, 2, "quarterfinals")
        fill = cross_seed_pairing(knockout, {"A": ["t1", "t3"], "B": ["t2", "t4"]})
        assert fill.errors[0].code == INVALID_BRACKET_FILL


class TestRandomizedPairing:
    def test_every_qualifier_seated_once(self):
        knockout = _knockout(12, 3, "semifinals")
        fill = randomized_pairing(knockout, ["t1", "t2", "t3", "t5"], seed=4)
        assert sorted(fill.seat_ids) == ["t1", "t2", "t3", "t5"]
        semis = _by_label(fill.matches, "semifinal")
        seated = [pid for m in semis for pid in m.participant_ids]
        assert sorted(seated) == ["t1", "t2", "t3", "t5"]

    def test_same_seed_same_bracket(self):
        knockout = _knockout(16, 4, "quarterfinals")
        qualified = [f"t{i}" for i in range(1, 9)]
        assert randomized_pairing(knockout, qualified, seed=9).seat_ids == randomized_pairing(
            knockout, qualified, seed=9
        ).seat_ids

    def test_individuals_take_four_per_match(self):
        knockout = _knockout(16, 2, "semifinals", fmt="individual_groups_knockout")
        qualified = [f"p{i}" for i in range(1, 9)]
        fill = randomized_pairing(knockout, qualified, seed=1)
        semis = _by_label(fill.matches, "semifinal")
        assert [len(m.participant_ids) for m in semis] == [4, 4]

    def test_wrong_count_is_diagnostic(self):
        knockout = _knockout(12, 3, "semifinals")
        fill = randomized_pairing(knockout, ["t1", "t2", "t3"], seed=1, category_id="c1")
        assert fill.errors[0].code == INVALID_BRACKET_FILL
        assert fill.errors[0].category_id == "c1"


class TestAdvanceBracket:
    def _semifinals(self):
        knockout = _knockout(8, 2, "semifinals")
        return cross_seed_pairing(knockout, {"A": ["t1", "t3"], "B": ["t2", "t4"]}).matches

    def test_winners_reach_the_final(self):
        matches = self._semifinals()
        results = play_all(_by_label(matches, "semifinal"), winner_ids=["t3"])
        advanced = advance_bracket(matches, results)
        final = _by_label(advanced, "final")[0]
        assert (_ids(final.side_a), _ids(final.side_b)) == (["t1"], ["t3"])

    def test_losers_meet_for_third_place(self):
        matches = self._semifinals()
        results = play_all(_by_label(matches, "semifinal"), winner_ids=["t3"])
        third = _by_label(advance_bracket(matches, results), "3rd_place")[0]
        assert (_ids(third.side_a), _ids(third.side_b)) == (["t4"], ["t2"])

    def test_unplayed_source_stays_pending(self):
        matches = self._semifinals()
        results = play_all(_by_label(matches, "semifinal")[:1])
        final = _by_label(advance_bracket(matches, results), "final")[0]
        assert _ids(final.side_a) == ["t1"]
        assert final.side_b == (Pending("winner", 2, "semifinal"),)

    def test_drawn_match_stays_pending(self):
        matches = self._semifinals()
        results = play_all(_by_label(matches, "semifinal"), score=(6, 6))
        final = _by_label(advance_bracket(matches, results), "final")[0]
        assert not final.is_decided

    def test_results_of_another_category_ignored(self):
        matches = self._semifinals()
        results = [replace(r, category_id="c2") for r in play_all(_by_label(matches, "semifinal"))]
        final = _by_label(advance_bracket(matches, results), "final")[0]
        assert not final.is_decided
        assert final.participant_ids == []

    def test_repeatable(self):
        matches = self._semifinals()
        results = play_all(_by_label(matches, "semifinal"))
        once = advance_bracket(matches, results)
        assert advance_bracket(once, results) == once

    def test_scheduled_matches_keep_their_slots(self):
        matches = self._semifinals()
        scheduled = schedule_category(matches, settings(courts=2).grid()).scheduled
        results = play_all(_by_label([s.match for s in scheduled], "semifinal"))
        advanced = advance_bracket(scheduled, results)
        assert [m.slot for m in advanced] == [m.slot for m in scheduled]
        final = [m for m in advanced if m.round_label == "final"][0]
        assert final.match.is_decided

    def test_individual_winner_pairs_advance_together(self):
        knockout = _knockout(16, 2, "semifinals", fmt="individual_groups_knockout")
        fill = fill_seed_seats(knockout, [f"p{i}" for i in range(1, 9)])
        results = play_all(_by_label(fill, "semifinal"))
        final = _by_label(advance_bracket(fill, results), "final")[0]
        assert _ids(final.side_a) == ["p1", "p2"]
        assert _ids(final.side_b) == ["p5", "p6"]


class TestPlacementSeats:
    def _quarterfinals(self):
        knockout = _knockout(16, 4, "quarterfinals")
        # seats 1..8 → QF: t1-t2, t3-t4, t5-t6, t7-t8
        return fill_seed_seats(knockout, [f"t{i}" for i in range(1, 9)])

    def test_losers_ordered_by_group_standing(self):
        matches = self._quarterfinals()
        results = play_all(_by_label(matches, "quarterfinal"))
        standings = {
            "t2": GroupStanding("t2", wins=0),
            "t4": GroupStanding("t4", wins=1),
            "t6": GroupStanding("t6", wins=2),
            "t8": GroupStanding("t8", wins=3),
        }
        advanced = advance_bracket(matches, results, standings)
        fifth = _by_label(advanced, "5th_place")[0]
        seventh = _by_label(advanced, "7th_place")[0]
        assert (_ids(fifth.side_a), _ids(fifth.side_b)) == (["t8"], ["t6"])
        assert (_ids(seventh.side_a), _ids(seventh.side_b)) == (["t4"], ["t2"])

    def test_bracket_order_breaks_ties(self):
        matches = self._quarterfinals()
        results = play_all(_by_label(matches, "quarterfinal"))
        fifth = _by_label(advance_bracket(matches, results), "5th_place")[0]
        assert (_ids(fifth.side_a), _ids(fifth.side_b)) == (["t2"], ["t4"])

    def test_losers_without_standings_rank_last(self):
        matches = self._quarterfinals()
        results = play_all(_by_label(matches, "quarterfinal"))
        standings = {
            "t4": GroupStanding("t4", wins=0, games_won=2, games_lost=12),
            "t6": GroupStanding("t6", wins=1),
            "t8": GroupStanding("t8", wins=2),
        }
        seventh = _by_label(advance_bracket(matches, results, standings), "7th_place")[0]
        assert (_ids(seventh.side_a), _ids(seventh.side_b)) == (["t4"], ["t2"])

    def test_wait_for_the_whole_round(self):
        matches = self._quarterfinals()
        results = play_all(_by_label(matches, "quarterfinal")[:3])
        fifth = _by_label(advance_bracket(matches, results), "5th_place")[0]
        assert fifth.side_a == (Pending("placement", 1, "quarterfinal"),)
