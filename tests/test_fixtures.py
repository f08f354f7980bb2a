from __future__ import annotations

from collections import Counter
from itertools import permutations

import pytest

from worldcup_sim.config import STAGE_QUALIFIER, STAGE_WORLD_CUP_GROUP
from worldcup_sim.errors import ConfigurationError, MatchStateError
from worldcup_sim.fixtures import (
    QUALIFIER_TEMPLATE,
    WORLD_CUP_GROUP_TEMPLATE,
    apply_match_result,
    attach_fixtures,
    expand_template,
    generate_matches,
    template_for,
)
from worldcup_sim.standings import apply_result, sort_standings
from worldcup_sim.structure import Group


def _make_group(team_ids, stage=STAGE_WORLD_CUP_GROUP) -> Group:
    letters = {t: chr(ord("A") + i) for i, t in enumerate(team_ids)}
    return Group(
        id="g1",
        name="Group A",
        stage=stage,
        team_ids=tuple(team_ids),
        letter_assignments=letters,
        draw_complete=True,
    )


def test_qualifier_template_is_double_round_robin():
    pairs = Counter((s.home, s.away) for s in QUALIFIER_TEMPLATE)
    assert len(QUALIFIER_TEMPLATE) == 20
    assert set(pairs) == set(permutations("ABCDE", 2))
    assert all(n == 1 for n in pairs.values())
    assert sorted(s.matchday for s in QUALIFIER_TEMPLATE) == list(range(1, 21))


def test_qualifier_second_leg_mirrors_first_leg():
    first = [s for s in QUALIFIER_TEMPLATE if not s.second_leg]
    second = [s for s in QUALIFIER_TEMPLATE if s.second_leg]
    assert len(first) == len(second) == 10
    for a, b in zip(first, second):
        assert (a.home, a.away) == (b.away, b.home)
        assert b.matchday == a.matchday + 10


def test_world_cup_template_order():
    assert [(s.matchday, s.home, s.away) for s in WORLD_CUP_GROUP_TEMPLATE] == [
        (1, "A", "B"),
        (1, "C", "D"),
        (2, "A", "C"),
        (2, "B", "D"),
        (3, "D", "A"),
        (3, "B", "C"),
    ]


def test_generate_matches_counts_by_group_size():
    five = _make_group(["t1", "t2", "t3", "t4", "t5"], stage=STAGE_QUALIFIER)
    four = _make_group(["t1", "t2", "t3", "t4"])
    assert len(generate_matches(five)) == 20
    assert len(generate_matches(four)) == 6
    assert all(m.stage == STAGE_QUALIFIER and not m.played for m in generate_matches(five))
    assert all(m.group_id == "g1" for m in generate_matches(four))


def test_generate_matches_requires_letters():
    group = Group(id="g1", name="Group A", stage=STAGE_WORLD_CUP_GROUP, team_ids=("a", "b", "c", "d"))
    with pytest.raises(ConfigurationError):
        generate_matches(group)


def test_expand_template_rejects_missing_or_shared_letters():
    with pytest.raises(ConfigurationError):
        expand_template({"a": "A", "b": "B", "c": "C"}, WORLD_CUP_GROUP_TEMPLATE, STAGE_WORLD_CUP_GROUP)
    with pytest.raises(ConfigurationError):
        expand_template(
            {"a": "A", "b": "A", "c": "C", "d": "D"}, WORLD_CUP_GROUP_TEMPLATE, STAGE_WORLD_CUP_GROUP
        )


def test_no_template_for_unsupported_size():
    with pytest.raises(ConfigurationError):
        template_for(6)


def test_world_cup_group_end_to_end():
    group = attach_fixtures(_make_group(["X", "Y", "Z", "W"]))
    assert [(m.matchday, m.home_team_id, m.away_team_id) for m in group.matches] == [
        (1, "X", "Y"),
        (1, "Z", "W"),
        (2, "X", "Z"),
        (2, "Y", "W"),
        (3, "W", "X"),
        (3, "Y", "Z"),
    ]

    scores = [(2, 0), (1, 1), (2, 0), (1, 1), (0, 1), (1, 1)]
    standings = group.standings
    for match, (h, a) in zip(group.matches, scores):
        standings = apply_result(standings, match.with_result(h, a))

    names = {"X": "X", "Y": "Y", "Z": "Z", "W": "W"}
    ranked = sort_standings(standings, names)
    # Y and Z finish level on points, goal difference and goals scored
    assert [s.team_id for s in ranked] == ["X", "W", "Y", "Z"]
    assert [s.points for s in ranked] == [9, 2, 2, 2]
    assert ranked[2].goal_difference == ranked[3].goal_difference == -2
    assert ranked[2].goals_for == ranked[3].goals_for == 2


def test_apply_match_result_returns_new_group():
    group = attach_fixtures(_make_group(["X", "Y", "Z", "W"]))
    first = group.matches[0]
    updated = apply_match_result(group, first.id, 3, 1)

    assert updated.find_match(first.id).played
    assert (updated.find_match(first.id).home_score, updated.find_match(first.id).away_score) == (3, 1)
    assert updated.standing_for("X").points == 3
    assert updated.standing_for("Y").goal_difference == -2
    assert updated.played_count == 1
    # the original group is untouched
    assert not group.find_match(first.id).played
    assert group.standing_for("X").points == 0

    with pytest.raises(MatchStateError):
        apply_match_result(updated, first.id, 0, 0)
    with pytest.raises(MatchStateError):
        apply_match_result(updated, "missing", 1, 0)
