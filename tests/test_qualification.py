"""
Tests for group standings, qualification plans and wildcards.
"""

from dataclasses import replace

import pytest

from courtplan.services.diagnostics import QUALIFICATION_SHORTFALL
from courtplan.services.draw_types import CategoryConfig
from courtplan.services.format_planner import plan_category
from courtplan.services.qualification import (
    compute_qualification_plan,
    qualify_category,
    rank_group,
    select_wildcards,
)

from tests.factories import make_individuals, make_teams, play_all, result, split_groups


def _boost(results, pid):
    """Make every win of `pid` a 6-0."""
    out = []
    for r in results:
        if pid in r.winner_ids:
            sets = ((6, 0),) if pid in r.side_a_ids else ((0, 6),)
            r = replace(r, sets=sets)
        out.append(r)
    return out


class TestQualificationPlan:
    def test_three_groups_into_quarterfinals(self):
        plan = compute_qualification_plan(3, "quarterfinals", False)
        assert (plan.qualified_per_group, plan.extra_wildcards_needed, plan.wildcard_source_position) == (2, 2, 3)
        assert plan.total_qualified == 8

    def test_four_groups_into_semifinals(self):
        plan = compute_qualification_plan(4, "semifinals", False)
        assert (plan.qualified_per_group, plan.extra_wildcards_needed, plan.wildcard_source_position) == (1, 0, 2)

    def test_individual_bracket_doubles_seats(self):
        plan = compute_qualification_plan(2, "final", True)
        assert plan.total_qualified == 4
        assert plan.qualified_per_group == 2

    def test_invalid_group_count(self):
        with pytest.raises(ValueError):
            compute_qualification_plan(0, "final", False)


class TestRankGroup:
    def test_wins_then_game_difference_then_games_won(self):
        results = [
            result("group_A", 1, ["t1"], ["t2"], [(6, 4)]),
            result("group_A", 2, ["t3"], ["t1"], [(6, 0)]),
            result("group_A", 3, ["t2"], ["t3"], [(7, 5)]),
        ]
        standings = rank_group(results, ["t1", "t2", "t3"], group="A")
        # all 1-1; differences t1 -4, t2 0, t3 +4
        assert [s.participant_id for s in standings] == ["t3", "t2", "t1"]
        assert [s.position for s in standings] == [1, 2, 3]
        assert standings[0].games_won == 11
        assert standings[0].group == "A"

    def test_games_won_breaks_equal_difference(self):
        results = [
            result("group_A", 1, ["t1"], ["t3"], [(7, 5)]),
            result("group_A", 2, ["t2"], ["t3"], [(6, 4)]),
        ]
        standings = rank_group(results, ["t2", "t1", "t3"])
        assert [s.participant_id for s in standings[:2]] == ["t1", "t2"]

    def test_full_tie_keeps_input_order(self):
        standings = rank_group([], ["t4", "t2", "t9"])
        assert [s.participant_id for s in standings] == ["t4", "t2", "t9"]
        assert all(s.played == 0 for s in standings)

    def test_only_completed_matches_count(self):
        results = [
            result("group_A", 1, ["t1"], ["t2"], [(6, 1)], status="in_progress"),
            result("group_A", 2, ["t2"], ["t1"], [(6, 1)]),
        ]
        standings = rank_group(results, ["t1", "t2"])
        assert standings[0].participant_id == "t2"
        assert standings[0].played == 1

    def test_individual_partners_both_credited(self):
        results = [result("group_A", 1, ["p1", "p2"], ["p3", "p4"], [(6, 3)])]
        standings = {s.participant_id: s for s in rank_group(results, ["p1", "p2", "p3", "p4"])}
        assert standings["p1"].wins == standings["p2"].wins == 1
        assert standings["p3"].losses == standings["p4"].losses == 1
        assert standings["p2"].games_won == 6

    def test_repeatable(self):
        results = [
            result("group_A", 1, ["t1"], ["t2"], [(6, 4), (3, 6), (10, 8)]),
            result("group_A", 2, ["t2"], ["t3"], [(6, 2)]),
        ]
        assert rank_group(results, ["t1", "t2", "t3"]) == rank_group(results, ["t1", "t2", "t3"])


class TestWildcards:
    def test_best_at_source_position(self):
        standings = {
            "A": rank_group([result("group_A", 1, ["t1"], ["t2"], [(6, 4)])], ["t1", "t2"], "A"),
            "B": rank_group([result("group_B", 1, ["t3"], ["t4"], [(6, 0)])], ["t3", "t4"], "B"),
        }
        wildcards = select_wildcards(standings, 2, 1)
        assert [w.participant_id for w in wildcards] == ["t2"]

    def test_none_needed(self):
        assert select_wildcards({"A": rank_group([], ["t1"])}, 2, 0) == []


class TestQualifyCategory:
    def _group_stage(self):
        teams = make_teams(12, split_groups(12, 3))
        category = CategoryConfig(
            id="c1", name="Open", format="groups_knockout", number_of_groups=3, knockout_stage="semifinals"
        )
        plan = plan_category(teams, category)
        return teams, plan.group_matches

    def test_group_winners_then_best_runner_up(self):
        teams, group_matches = self._group_stage()
        # groups: A t1 t4 t7 t10, B t2 t5 t8 t11, C t3 t6 t9 t12
        results = _boost(play_all(group_matches), "t5")
        qualification = qualify_category(teams, results, 3, "semifinals", False, category_id="c1")
        assert not qualification.has_errors()
        assert qualification.qualifiers_by_group == {"A": ["t1"], "B": ["t2"], "C": ["t3"]}
        assert [w.participant_id for w in qualification.wildcards] == ["t5"]
        assert qualification.qualified == ["t1", "t2", "t3", "t5"]

    def test_equal_runners_up_prefer_earlier_group(self):
        teams, group_matches = self._group_stage()
        qualification = qualify_category(teams, play_all(group_matches), 3, "semifinals", False)
        assert qualification.qualified[-1] == "t4"

    def test_standings_exposed_per_participant(self):
        teams, group_matches = self._group_stage()
        qualification = qualify_category(teams, play_all(group_matches), 3, "semifinals", False)
        standing = qualification.standings_by_participant["t10"]
        assert (standing.group, standing.position, standing.losses) == ("A", 4, 3)

    def test_knockout_results_ignored(self):
        teams, group_matches = self._group_stage()
        results = play_all(group_matches) + [result("semifinal", 99, ["t12"], ["t1"], [(6, 0)])]
        qualification = qualify_category(teams, results, 3, "semifinals", False)
        assert qualification.standings_by_participant["t12"].played == 3

    def test_other_category_results_ignored(self):
        teams, group_matches = self._group_stage()
        results = play_all(group_matches)
        foreign = replace(result("group_A", 1, ["t10"], ["t1"], [(6, 0)]), category_id="c2")
        qualification = qualify_category(teams, results + [foreign], 3, "semifinals", False, category_id="c1")
        assert qualification.qualifiers_by_group["A"] == ["t1"]

    def test_individual_groups(self):
        players = make_individuals(8, split_groups(8, 2))
        category = CategoryConfig(
            id="c1", name="Mixed", format="individual_groups_knockout", number_of_groups=2, knockout_stage="final"
        )
        plan = plan_category(players, category)
        qualification = qualify_category(players, play_all(plan.group_matches), 2, "final", True)
        assert not qualification.has_errors()
        assert len(qualification.qualified) == 4
        assert len(qualification.qualifiers_by_group["A"]) == 2

    def test_shortfall_reported(self):
        groups = {1: "A", 2: "A", 3: "A", 4: "B", 5: "B", 6: "C", 7: "C"}
        teams = make_teams(7, groups)
        qualification = qualify_category(teams, [], 3, "quarterfinals", False, category_id="c1")
        # 2 + 2 + 2 per group, only group A has a 3rd place for the 2 wildcards
        assert len(qualification.qualified) == 7
        error = qualification.errors[0]
        assert error.code == QUALIFICATION_SHORTFALL
        assert (error.expected, error.actual) == (8, 7)
