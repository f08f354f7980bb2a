from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from worldcup_sim.config import DEFAULT_ENGINE_CONFIG, EngineConfig


BASE_EXPECTED_GOALS = 1.5
SKILL_DIFF_PER_GOAL = 50.0
MAX_EXPECTED_GOALS = 4.0
ELO_SCALE = 400.0
SHOOTOUT_KICKS = 5
PENALTY_BASE_RATE = 0.75
PENALTY_SKILL_RATE = 0.15


def _elo_win_prob(diff: float, scale: float = ELO_SCALE) -> float:
    return 1.0 / (1.0 + 10.0 ** (-diff / scale))


@dataclass(frozen=True)
class MatchOutcome:
    home_score: int
    away_score: int
    home_skill_delta: float
    away_skill_delta: float
    penalties: Optional[Tuple[int, int]] = None


def update_team_skill(skill: float, delta: float, config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> float:
    return max(config.skill_min, min(config.skill_max, float(skill) + float(delta)))


class MatchOutcomeModel:
    """
    Default match-outcome service. Goals are Poisson with a mean that moves
    one goal per 50 skill points of difference; ratings move Elo-style by
    `k_factor` times the surprise of the result.
    """

    def __init__(
        self,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
        rng: Optional[np.random.Generator] = None,
        random_state: Optional[int] = None,
    ):
        self.config = config
        self.rng = rng if rng is not None else np.random.default_rng(random_state)

    def _expected_goals(self, skill_diff: float) -> Tuple[float, float]:
        shift = skill_diff / SKILL_DIFF_PER_GOAL
        lam_h = min(max(BASE_EXPECTED_GOALS + shift, 0.0), MAX_EXPECTED_GOALS)
        lam_a = min(max(BASE_EXPECTED_GOALS - shift, 0.0), MAX_EXPECTED_GOALS)
        return lam_h, lam_a

    def _sample_score(self, lam_h: float, lam_a: float) -> Tuple[int, int]:
        home = self.rng.poisson(lam_h) if lam_h > 0.0 else 0
        away = self.rng.poisson(lam_a) if lam_a > 0.0 else 0
        return int(home), int(away)

    def skill_deltas(
        self, home_skill: float, away_skill: float, home_score: int, away_score: int
    ) -> Tuple[float, float]:
        expected_home = _elo_win_prob(home_skill - away_skill)
        if home_score > away_score:
            actual = 1.0
        elif home_score == away_score:
            actual = 0.5
        else:
            actual = 0.0
        delta = float(round(self.config.k_factor * (actual - expected_home)))
        return delta, -delta

    def simulate(
        self, home_skill: float, away_skill: float, disable_home_advantage: bool = False
    ) -> MatchOutcome:
        adjusted_home = home_skill if disable_home_advantage else home_skill + self.config.home_advantage
        lam_h, lam_a = self._expected_goals(adjusted_home - away_skill)
        home_score, away_score = self._sample_score(lam_h, lam_a)
        home_delta, away_delta = self.skill_deltas(home_skill, away_skill, home_score, away_score)
        return MatchOutcome(
            home_score=home_score,
            away_score=away_score,
            home_skill_delta=home_delta,
            away_skill_delta=away_delta,
        )

    def simulate_penalties(self, home_skill: float, away_skill: float) -> Tuple[int, int]:
        p_home = PENALTY_BASE_RATE + (home_skill / 100.0) * PENALTY_SKILL_RATE
        p_away = PENALTY_BASE_RATE + (away_skill / 100.0) * PENALTY_SKILL_RATE
        home = int(np.sum(self.rng.random(SHOOTOUT_KICKS) < p_home))
        away = int(np.sum(self.rng.random(SHOOTOUT_KICKS) < p_away))
        # sudden death
        while home == away:
            home += int(self.rng.random() < p_home)
            away += int(self.rng.random() < p_away)
        return home, away

    def simulate_with_decision(
        self, home_skill: float, away_skill: float, disable_home_advantage: bool = True
    ) -> MatchOutcome:
        outcome = self.simulate(home_skill, away_skill, disable_home_advantage)
        if outcome.home_score != outcome.away_score:
            return outcome
        return MatchOutcome(
            home_score=outcome.home_score,
            away_score=outcome.away_score,
            home_skill_delta=outcome.home_skill_delta,
            away_skill_delta=outcome.away_skill_delta,
            penalties=self.simulate_penalties(home_skill, away_skill),
        )
