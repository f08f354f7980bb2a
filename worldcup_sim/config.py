from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple


REGIONS: Tuple[str, ...] = ("Europe", "America", "Africa", "Asia", "Oceania")

QUALIFIER_GROUP_SIZE = 5
WORLD_CUP_GROUP_SIZE = 4
WORLD_CUP_GROUP_COUNT = 16
WORLD_CUP_TEAM_COUNT = WORLD_CUP_GROUP_COUNT * WORLD_CUP_GROUP_SIZE

QUALIFIER_DIRECT_SLOTS = 1
BEST_RUNNERS_UP_COUNT = 22

# Lower bound of each tier, checked in order.
TIER_THRESHOLDS: Tuple[Tuple[str, float], ...] = (
    ("Elite", 80.0),
    ("Strong", 65.0),
    ("Average", 50.0),
)
FALLBACK_TIER = "Weak"
TIERS: Tuple[str, ...] = ("Elite", "Strong", "Average", "Weak")

STAGE_QUALIFIER = "qualifier"
STAGE_WORLD_CUP_GROUP = "world-cup-group"
STAGE_WORLD_CUP_KNOCKOUT = "world-cup-knockout"

ROUND_OF_32 = "round-of-32"
ROUND_OF_16 = "round-of-16"
QUARTER_FINAL = "quarter-final"
SEMI_FINAL = "semi-final"
THIRD_PLACE = "third-place"
FINAL = "final"

# Bracket size -> first knockout round.
FIRST_ROUND_BY_GROUP_COUNT: Dict[int, str] = {
    16: ROUND_OF_32,
    8: ROUND_OF_16,
}


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


@dataclass(frozen=True)
class EngineConfig:
    """
    k_factor: Elo-style step size for skill updates.
    home_advantage: Skill points added to the home side when not neutral.
    skill_min: Lower bound a rating can be pushed to.
    skill_max: Upper bound a rating can be pushed to.
    """

    k_factor: float = 5.0
    home_advantage: float = 3.0
    skill_min: float = 30.0
    skill_max: float = 100.0

    def __post_init__(self):
        if self.skill_min >= self.skill_max:
            raise ValueError(
                f"skill_min ({self.skill_min}) must be below skill_max ({self.skill_max})"
            )

    @classmethod
    def clamped(
        cls,
        k_factor: float = 5.0,
        home_advantage: float = 3.0,
        skill_min: float = 30.0,
        skill_max: float = 100.0,
    ) -> "EngineConfig":
        return cls(
            k_factor=_clamp(float(k_factor), 1.0, 50.0),
            home_advantage=_clamp(float(home_advantage), 0.0, 10.0),
            skill_min=_clamp(float(skill_min), 0.0, 99.0),
            skill_max=_clamp(float(skill_max), 1.0, 100.0),
        )


DEFAULT_ENGINE_CONFIG = EngineConfig()


@dataclass(frozen=True)
class TournamentFormat:
    """
    Shape of one edition: qualifier groups per region feed a World Cup
    group stage whose size fixes the first knockout round.
    """

    regions: Tuple[str, ...] = REGIONS
    qualifier_group_size: int = QUALIFIER_GROUP_SIZE
    qualifier_direct_slots: int = QUALIFIER_DIRECT_SLOTS
    best_runners_up: int = BEST_RUNNERS_UP_COUNT
    world_cup_group_count: int = WORLD_CUP_GROUP_COUNT
    world_cup_group_size: int = WORLD_CUP_GROUP_SIZE
    engine: EngineConfig = field(default_factory=EngineConfig)

    def __post_init__(self):
        if self.world_cup_group_count not in FIRST_ROUND_BY_GROUP_COUNT:
            raise ValueError(
                f"Unsupported World Cup group count {self.world_cup_group_count}; "
                f"expected one of {sorted(FIRST_ROUND_BY_GROUP_COUNT)}"
            )
        if self.qualifier_group_size < 2 or self.world_cup_group_size < 2:
            raise ValueError("Group sizes must be at least 2")
        if self.qualifier_direct_slots < 1:
            raise ValueError("qualifier_direct_slots must be positive")
        if self.best_runners_up < 0:
            raise ValueError("best_runners_up must be non-negative")

    @property
    def expected_qualified(self) -> int:
        return self.world_cup_group_count * self.world_cup_group_size

    @property
    def first_knockout_round(self) -> str:
        return FIRST_ROUND_BY_GROUP_COUNT[self.world_cup_group_count]


DEFAULT_FORMAT = TournamentFormat()
