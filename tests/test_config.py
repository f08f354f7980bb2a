from __future__ import annotations

import pytest

from worldcup_sim.config import (
    DEFAULT_FORMAT,
    ROUND_OF_16,
    ROUND_OF_32,
    WORLD_CUP_TEAM_COUNT,
    TournamentFormat,
)


def test_default_format():
    assert DEFAULT_FORMAT.expected_qualified == WORLD_CUP_TEAM_COUNT == 64
    assert DEFAULT_FORMAT.first_knockout_round == ROUND_OF_32
    assert DEFAULT_FORMAT.qualifier_group_size == 5


def test_smaller_format_starts_at_round_of_16():
    fmt = TournamentFormat(world_cup_group_count=8)
    assert fmt.expected_qualified == 32
    assert fmt.first_knockout_round == ROUND_OF_16


@pytest.mark.parametrize(
    "kwargs",
    [
        {"world_cup_group_count": 12},
        {"qualifier_group_size": 1},
        {"qualifier_direct_slots": 0},
        {"best_runners_up": -1},
    ],
)
def test_invalid_format(kwargs):
    with pytest.raises(ValueError):
        TournamentFormat(**kwargs)
