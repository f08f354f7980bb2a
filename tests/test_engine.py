from __future__ import annotations

import pytest

from worldcup_sim.config import EngineConfig
from worldcup_sim.engine import MatchOutcomeModel, update_team_skill


def test_scores_are_non_negative_integers():
    model = MatchOutcomeModel(random_state=0)
    for _ in range(200):
        outcome = model.simulate(75.0, 60.0)
        assert isinstance(outcome.home_score, int) and outcome.home_score >= 0
        assert isinstance(outcome.away_score, int) and outcome.away_score >= 0
        assert outcome.home_skill_delta == -outcome.away_skill_delta
        assert outcome.penalties is None


def test_seeded_models_repeat():
    a = MatchOutcomeModel(random_state=11)
    b = MatchOutcomeModel(random_state=11)
    assert [a.simulate(70, 65) for _ in range(25)] == [b.simulate(70, 65) for _ in range(25)]


def test_stronger_side_scores_more_on_average():
    model = MatchOutcomeModel(random_state=3)
    outcomes = [model.simulate(95.0, 35.0, disable_home_advantage=True) for _ in range(500)]
    assert sum(o.home_score for o in outcomes) > sum(o.away_score for o in outcomes)


def test_upsets_move_ratings_further():
    model = MatchOutcomeModel()
    favourite_win, _ = model.skill_deltas(90.0, 40.0, 1, 0)
    underdog_win, _ = model.skill_deltas(40.0, 90.0, 1, 0)
    assert 0 < favourite_win < underdog_win


def test_decision_always_has_a_winner():
    model = MatchOutcomeModel(random_state=5)
    level = 0
    for _ in range(300):
        outcome = model.simulate_with_decision(70.0, 70.0)
        if outcome.home_score == outcome.away_score:
            level += 1
            home_pens, away_pens = outcome.penalties
            assert home_pens != away_pens
        else:
            assert outcome.penalties is None
    assert level > 0


def test_skill_update_is_clamped():
    config = EngineConfig(skill_min=30.0, skill_max=100.0)
    assert update_team_skill(99.0, 5.0, config) == 100.0
    assert update_team_skill(31.0, -5.0, config) == 30.0
    assert update_team_skill(60.0, 2.0, config) == 62.0


def test_engine_config_bounds():
    config = EngineConfig.clamped(k_factor=500, home_advantage=-2)
    assert config.k_factor == 50.0
    assert config.home_advantage == 0.0
    with pytest.raises(ValueError):
        EngineConfig(skill_min=80.0, skill_max=60.0)
