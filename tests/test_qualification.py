from __future__ import annotations

import pytest

from worldcup_sim.config import STAGE_QUALIFIER
from worldcup_sim.errors import ConfigurationError, QualificationError
from worldcup_sim.qualification import (
    best_runners_up,
    group_rankings,
    select_qualifiers,
    top_n_per_group,
)
from worldcup_sim.structure import Group, TeamStanding


def _make_group(index: int, size: int = 5) -> Group:
    """Finished group whose runner-up strength varies with `index`."""
    team_ids = tuple(f"G{index:02d}T{pos}" for pos in range(size))
    standings = []
    for pos, team_id in enumerate(team_ids):
        points = 3 * (size - pos) + (index % 3 if pos == 1 else 0)
        standings.append(
            TeamStanding(team_id, played=8, points=points, goals_for=10 - pos, goal_difference=index % 5 - pos)
        )
    return Group(
        id=f"g{index:02d}",
        name=f"Group {index:02d}",
        stage=STAGE_QUALIFIER,
        team_ids=team_ids,
        standings=tuple(reversed(standings)),
    )


def _make_groups(n: int) -> list[Group]:
    return [_make_group(i) for i in range(n)]


def test_group_rankings_positions():
    ranking = group_rankings(_make_group(4))
    assert [e.position for e in ranking] == [1, 2, 3, 4, 5]
    assert ranking[0].team_id == "G04T0"
    assert ranking[1].group_id == "g04"


def test_top_n_per_group():
    groups = _make_groups(3)
    assert top_n_per_group(groups, 1) == ["G00T0", "G01T0", "G02T0"]
    assert top_n_per_group(groups, 2)[:2] == ["G00T0", "G00T1"]


def test_best_runners_up_ranked_across_groups():
    groups = _make_groups(6)
    best = best_runners_up(groups, 2)
    # groups 2 and 5 have the strongest runners-up; group 2's goal difference is better
    assert [e.team_id for e in best] == ["G02T1", "G05T1"]
    assert all(e.position == 2 for e in best)


def test_best_runners_up_needs_enough_groups():
    with pytest.raises(ConfigurationError):
        best_runners_up(_make_groups(3), 4)


def test_forty_two_winners_and_twenty_two_runners_up_make_sixty_four():
    qualified = select_qualifiers(_make_groups(42), 1, 22, expected_total=64)
    assert len(qualified) == 64
    assert len(set(qualified)) == 64
    assert sum(1 for t in qualified if t.endswith("T0")) == 42
    assert sum(1 for t in qualified if t.endswith("T1")) == 22


def test_qualified_count_mismatch_is_an_error():
    with pytest.raises(QualificationError, match="62 teams qualified, expected 64"):
        select_qualifiers(_make_groups(40), 1, 22, expected_total=64)


def test_best_placed_after_top_two():
    qualified = select_qualifiers(_make_groups(4), 2, 1)
    assert len(qualified) == 9
    assert qualified[-1].endswith("T2")
