from __future__ import annotations

from itertools import combinations

import numpy as np
import pytest

from worldcup_sim.config import STAGE_QUALIFIER
from worldcup_sim.errors import MatchStateError
from worldcup_sim.standings import (
    apply_result,
    initialize_standings,
    recompute_standings,
    sort_standings,
    standing_sort_key,
    standings_frame,
)
from worldcup_sim.structure import Match, TeamStanding


def _played(home, away, h, a) -> Match:
    return Match(home_team_id=home, away_team_id=away, stage=STAGE_QUALIFIER).with_result(h, a)


def test_initialize_standings_zeroed():
    standings = initialize_standings(["a", "b"])
    assert [s.team_id for s in standings] == ["a", "b"]
    assert all(s.played == s.points == s.goals_for == 0 for s in standings)


def test_apply_result_win_and_goal_difference():
    before = initialize_standings(["a", "b", "c"])
    after = apply_result(before, _played("a", "b", 3, 1))
    a, b, c = after
    assert (a.played, a.won, a.points, a.goals_for, a.goals_against, a.goal_difference) == (1, 1, 3, 3, 1, 2)
    assert (b.played, b.lost, b.points, b.goal_difference) == (1, 1, 0, -2)
    assert c == TeamStanding(team_id="c")
    # input left untouched
    assert before[0].played == 0


def test_apply_result_draw():
    a, b = apply_result(initialize_standings(["a", "b"]), _played("a", "b", 2, 2))
    assert a.drawn == b.drawn == 1
    assert a.points == b.points == 1


def test_apply_result_ignores_unplayed_and_foreign_matches():
    standings = initialize_standings(["a", "b"])
    unplayed = Match(home_team_id="a", away_team_id="b", stage=STAGE_QUALIFIER)
    assert apply_result(standings, unplayed) == standings
    assert apply_result(standings, _played("a", "z", 1, 0)) == standings


def test_goal_difference_holds_over_many_results():
    teams = ["a", "b", "c", "d", "e"]
    matches = [_played(h, a, (i * 3) % 4, (i * 5) % 3) for i, (h, a) in enumerate(combinations(teams, 2))]
    standings = recompute_standings(teams, matches)
    for s in standings:
        assert s.goal_difference == s.goals_for - s.goals_against
        assert s.played == s.won + s.drawn + s.lost == 4
        assert s.points == 3 * s.won + s.drawn


def test_played_match_validation():
    with pytest.raises(MatchStateError):
        Match(home_team_id="a", away_team_id="b", stage=STAGE_QUALIFIER, played=True)
    with pytest.raises(MatchStateError):
        Match(home_team_id="a", away_team_id="b", stage=STAGE_QUALIFIER, home_score=1, away_score=0)
    with pytest.raises(MatchStateError):
        _played("a", "b", -1, 0)
    with pytest.raises(MatchStateError):
        _played("a", "b", 1, 0).with_result(2, 0)


def test_numpy_integer_scores_accepted():
    match = _played("a", "b", np.int64(2), np.int64(0))
    assert (match.home_score, match.away_score) == (2, 0)
    assert type(match.home_score) is int
    with pytest.raises(MatchStateError):
        _played("a", "b", 1.5, 0)
    with pytest.raises(MatchStateError):
        _played("a", "b", True, 0)


def test_sort_cascade():
    standings = [
        TeamStanding("low", points=3, goal_difference=5, goals_for=9),
        TeamStanding("gd", points=6, goal_difference=1, goals_for=4),
        TeamStanding("gf", points=6, goal_difference=1, goals_for=6),
        TeamStanding("top", points=9),
    ]
    assert [s.team_id for s in sort_standings(standings)] == ["top", "gf", "gd", "low"]


def test_sort_is_total_on_name_then_id():
    names = {"t1": "brazil", "t2": "Argentina", "t3": "Brazil", "t4": "Brazil"}
    standings = [TeamStanding(t, points=4) for t in ["t4", "t1", "t3", "t2"]]
    ranked = [s.team_id for s in sort_standings(standings, names)]
    assert ranked == ["t2", "t3", "t4", "t1"]
    keys = [standing_sort_key(s, names) for s in standings]
    assert len(set(keys)) == len(keys)


def test_standings_frame():
    standings = apply_result(initialize_standings(["a", "b"]), _played("a", "b", 0, 2))
    table = standings_frame(standings, {"a": "Alpha", "b": "Beta"})
    assert list(table.index) == ["b", "a"]
    assert table.loc["b", "position"] == 1
    assert table.loc["b", "team"] == "Beta"
    assert table.loc["a", "gd"] == -2
    assert list(table.columns) == ["position", "team", "played", "w", "d", "l", "gf", "ga", "gd", "points"]
