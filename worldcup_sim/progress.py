from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from worldcup_sim.config import (
    FINAL,
    QUARTER_FINAL,
    ROUND_OF_16,
    ROUND_OF_32,
    SEMI_FINAL,
)
from worldcup_sim.structure import Group, KnockoutBracket


@dataclass(frozen=True)
class GroupStageProgress:
    total_groups: int
    completed_groups: int
    total_matches: int
    played_matches: int
    percentage: int
    is_complete: bool


@dataclass(frozen=True)
class KnockoutProgress:
    current_round: str
    round_of_32_complete: bool
    round_of_16_complete: bool
    quarter_finals_complete: bool
    semi_finals_complete: bool
    third_place_complete: bool
    final_complete: bool
    percentage: int
    is_complete: bool


# Share of the knockout percentage carried by each round.
ROUND_WEIGHTS = {
    ROUND_OF_32: 25,
    ROUND_OF_16: 20,
    QUARTER_FINAL: 15,
    SEMI_FINAL: 15,
}
THIRD_PLACE_WEIGHT = 10
FINAL_WEIGHT = 15


def group_stage_progress(groups: Iterable[Group]) -> GroupStageProgress:
    groups = list(groups)
    total_matches = sum(len(g.matches) for g in groups)
    played_matches = sum(g.played_count for g in groups)
    completed = sum(1 for g in groups if g.is_complete)
    percentage = round(100 * played_matches / total_matches) if total_matches else 0
    return GroupStageProgress(
        total_groups=len(groups),
        completed_groups=completed,
        total_matches=total_matches,
        played_matches=played_matches,
        percentage=int(percentage),
        is_complete=bool(groups) and completed == len(groups),
    )


def qualifier_progress(qualifiers) -> GroupStageProgress:
    return group_stage_progress(g for groups in qualifiers.values() for g in groups)


def world_cup_group_progress(groups: Iterable[Group]) -> GroupStageProgress:
    return group_stage_progress(groups)


def _round_state(matches):
    total = len(matches)
    played = sum(1 for m in matches if m.played)
    return total, played, total > 0 and played == total


def knockout_progress(bracket: KnockoutBracket) -> KnockoutProgress:
    percentage = 0.0
    complete = {}
    for round_name, weight in ROUND_WEIGHTS.items():
        total, played, done = _round_state(bracket.round_matches(round_name))
        complete[round_name] = done
        if total:
            percentage += weight * played / total
    third_done = bool(bracket.third_place and bracket.third_place.played)
    final_done = bool(bracket.final and bracket.final.played)
    percentage += THIRD_PLACE_WEIGHT if third_done else 0
    percentage += FINAL_WEIGHT if final_done else 0

    if final_done:
        current = "complete"
    elif complete[SEMI_FINAL]:
        current = FINAL
    elif complete[QUARTER_FINAL]:
        current = SEMI_FINAL
    elif complete[ROUND_OF_16]:
        current = QUARTER_FINAL
    elif complete[ROUND_OF_32] or (bracket.round_matches(ROUND_OF_16) and not bracket.round_matches(ROUND_OF_32)):
        current = ROUND_OF_16
    else:
        current = ROUND_OF_32

    return KnockoutProgress(
        current_round=current,
        round_of_32_complete=complete[ROUND_OF_32],
        round_of_16_complete=complete[ROUND_OF_16],
        quarter_finals_complete=complete[QUARTER_FINAL],
        semi_finals_complete=complete[SEMI_FINAL],
        third_place_complete=third_done,
        final_complete=final_done,
        percentage=int(round(percentage)),
        is_complete=final_done and third_done,
    )
