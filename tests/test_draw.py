from __future__ import annotations

import numpy as np
import pytest

from worldcup_sim.catalog import Team
from worldcup_sim.config import STAGE_QUALIFIER, STAGE_WORLD_CUP_GROUP
from worldcup_sim.draw import (
    generate_groups,
    make_pots,
    pot_letter,
    snake_order,
    validate_group_distribution,
)
from worldcup_sim.errors import ConfigurationError
from worldcup_sim.fixtures import attach_fixtures

REGIONS = ["Europe", "America", "Africa", "Asia", "Oceania"]


def _make_teams(n: int, region=None) -> list[Team]:
    return [
        Team(
            id=f"T{i:03d}",
            name=f"Team {i:03d}",
            region=region or REGIONS[i % len(REGIONS)],
            skill=float(100 - i),
        )
        for i in range(n)
    ]


def test_pots_follow_skill_order():
    teams = _make_teams(64)
    pots = make_pots(list(reversed(teams)), 16)
    assert len(pots) == 4
    assert [t.id for t in pots[0]] == [t.id for t in teams[:16]]
    assert [t.id for t in pots[3]] == [t.id for t in teams[48:]]


def test_snake_order_alternates():
    assert snake_order(4, 0) == [0, 1, 2, 3]
    assert snake_order(4, 1) == [3, 2, 1, 0]
    assert snake_order(4, 2) == [0, 1, 2, 3]


def test_pot_letters():
    assert [pot_letter(k) for k in range(5)] == ["A", "B", "C", "D", "E"]
    with pytest.raises(ConfigurationError):
        pot_letter(26)


def test_world_cup_draw_is_a_bijection():
    teams = _make_teams(64)
    groups = generate_groups(teams, 16, STAGE_WORLD_CUP_GROUP, rng=np.random.default_rng(3), group_size=4)
    assert len(groups) == 16
    assert validate_group_distribution(groups, 4, expected_teams=64) == []
    drawn = sorted(t for g in groups for t in g.team_ids)
    assert drawn == sorted(t.id for t in teams)
    for group in groups:
        assert group.size == 4
        assert group.draw_complete
        assert sorted(group.letter_assignments.values()) == ["A", "B", "C", "D"]
        assert [s.team_id for s in group.standings] == list(group.team_ids)


def test_one_team_per_pot_in_each_group():
    teams = _make_teams(64)
    pots = make_pots(teams, 16)
    groups = generate_groups(teams, 16, STAGE_WORLD_CUP_GROUP, rng=np.random.default_rng(8), group_size=4)
    for group in groups:
        for team_id, letter in group.letter_assignments.items():
            pot = pots[ord(letter) - ord("A")]
            assert team_id in {t.id for t in pot}


def test_draw_is_reproducible_with_a_seed():
    teams = _make_teams(64)
    first = generate_groups(teams, 16, STAGE_WORLD_CUP_GROUP, rng=np.random.default_rng(42))
    second = generate_groups(teams, 16, STAGE_WORLD_CUP_GROUP, rng=np.random.default_rng(42))
    assert [g.team_ids for g in first] == [g.team_ids for g in second]
    assert [dict(g.letter_assignments) for g in first] == [dict(g.letter_assignments) for g in second]


def test_qualifier_draw_groups_of_five():
    teams = _make_teams(20, region="Europe")
    groups = generate_groups(
        teams, 4, STAGE_QUALIFIER, rng=np.random.default_rng(1), group_size=5, region="Europe"
    )
    assert validate_group_distribution(groups, 5, expected_teams=20) == []
    for group in groups:
        assert group.region == "Europe"
        assert len(attach_fixtures(group).matches) == 20


def test_draw_spreads_regions_when_possible():
    # pot 1 and pot 2 each hold one team of four distinct regions
    regions = ["Europe", "America", "Africa", "Asia"]
    teams = [
        Team(id=f"P{p}{r}", name=f"Pot {p} {region}", region=region, skill=float(90 - 10 * p - r))
        for p in range(2)
        for r, region in enumerate(regions)
    ]
    for seed in range(25):
        groups = generate_groups(teams, 4, STAGE_WORLD_CUP_GROUP, rng=np.random.default_rng(seed), group_size=2)
        assert validate_group_distribution(groups, 2, expected_teams=8) == []
        by_id = {t.id: t for t in teams}
        for group in groups:
            members = [by_id[t].region for t in group.team_ids]
            assert len(set(members)) == len(members)


def test_redraw_keeps_group_shells():
    teams = _make_teams(64)
    first = generate_groups(teams, 16, STAGE_WORLD_CUP_GROUP, rng=np.random.default_rng(5))
    second = generate_groups(teams, 16, STAGE_WORLD_CUP_GROUP, rng=np.random.default_rng(6), groups=first)
    assert [g.id for g in second] == [g.id for g in first]
    assert [g.name for g in second] == [g.name for g in first]


@pytest.mark.parametrize("count", [63, 65])
def test_wrong_team_count_is_a_configuration_error(count):
    with pytest.raises(ConfigurationError):
        generate_groups(_make_teams(count), 16, STAGE_WORLD_CUP_GROUP, rng=np.random.default_rng(0), group_size=4)


def test_duplicate_teams_rejected():
    teams = _make_teams(8)
    with pytest.raises(ConfigurationError):
        generate_groups(teams[:7] + teams[:1], 2, STAGE_WORLD_CUP_GROUP, rng=np.random.default_rng(0))
