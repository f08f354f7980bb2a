from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Tuple

from worldcup_sim.config import STAGE_QUALIFIER, STAGE_WORLD_CUP_GROUP
from worldcup_sim.errors import ConfigurationError
from worldcup_sim.standings import apply_result, initialize_standings
from worldcup_sim.structure import Group, Match


@dataclass(frozen=True)
class FixtureSlot:
    matchday: int
    home: str
    away: str
    second_leg: bool = False


# Five pot letters, each ordered pair exactly once: matchdays 1-10 are the
# first leg, 11-20 mirror them with home and away swapped.
QUALIFIER_TEMPLATE: Tuple[FixtureSlot, ...] = (
    FixtureSlot(1, "B", "E"),
    FixtureSlot(2, "D", "A"),
    FixtureSlot(3, "A", "C"),
    FixtureSlot(4, "E", "D"),
    FixtureSlot(5, "B", "A"),
    FixtureSlot(6, "C", "D"),
    FixtureSlot(7, "C", "E"),
    FixtureSlot(8, "D", "B"),
    FixtureSlot(9, "B", "C"),
    FixtureSlot(10, "E", "A"),
    FixtureSlot(11, "E", "B", True),
    FixtureSlot(12, "A", "D", True),
    FixtureSlot(13, "C", "A", True),
    FixtureSlot(14, "D", "E", True),
    FixtureSlot(15, "A", "B", True),
    FixtureSlot(16, "D", "C", True),
    FixtureSlot(17, "E", "C", True),
    FixtureSlot(18, "B", "D", True),
    FixtureSlot(19, "C", "B", True),
    FixtureSlot(20, "A", "E", True),
)

# Single round robin for four pot letters, two fixtures per matchday.
WORLD_CUP_GROUP_TEMPLATE: Tuple[FixtureSlot, ...] = (
    FixtureSlot(1, "A", "B"),
    FixtureSlot(1, "C", "D"),
    FixtureSlot(2, "A", "C"),
    FixtureSlot(2, "B", "D"),
    FixtureSlot(3, "D", "A"),
    FixtureSlot(3, "B", "C"),
)

TEMPLATES_BY_SIZE: Dict[int, Tuple[Tuple[FixtureSlot, ...], str]] = {
    5: (QUALIFIER_TEMPLATE, STAGE_QUALIFIER),
    4: (WORLD_CUP_GROUP_TEMPLATE, STAGE_WORLD_CUP_GROUP),
}


def template_letters(template: Tuple[FixtureSlot, ...]) -> List[str]:
    return sorted({s.home for s in template} | {s.away for s in template})


def template_for(group_size: int) -> Tuple[FixtureSlot, ...]:
    if group_size not in TEMPLATES_BY_SIZE:
        raise ConfigurationError(f"No fixture template for groups of {group_size}")
    return TEMPLATES_BY_SIZE[group_size][0]


def expand_template(
    letter_assignments: Mapping[str, str],
    template: Tuple[FixtureSlot, ...],
    stage: str,
    group_id=None,
) -> List[Match]:
    letter_to_team: Dict[str, str] = {}
    for team_id, letter in letter_assignments.items():
        if letter in letter_to_team:
            raise ConfigurationError(
                f"Pot letter {letter} assigned to both {letter_to_team[letter]} and {team_id}"
            )
        letter_to_team[letter] = team_id
    missing = [letter for letter in template_letters(template) if letter not in letter_to_team]
    if missing:
        raise ConfigurationError(f"Letter assignments missing pot letters: {missing}")
    return [
        Match(
            home_team_id=letter_to_team[slot.home],
            away_team_id=letter_to_team[slot.away],
            stage=stage,
            matchday=slot.matchday,
            group_id=group_id,
        )
        for slot in template
    ]


def generate_matches(group: Group) -> List[Match]:
    if not group.letter_assignments:
        raise ConfigurationError(f"{group.name} has no pot letters; run the draw first")
    template = template_for(group.size)
    return expand_template(group.letter_assignments, template, group.stage, group_id=group.id)


def attach_fixtures(group: Group) -> Group:
    return replace(
        group,
        matches=tuple(generate_matches(group)),
        standings=initialize_standings(group.team_ids),
    )


def apply_match_result(group: Group, match_id: str, home_score: int, away_score: int) -> Group:
    """
    Record one result in `group` and return the updated group. The input
    group is left untouched; a match that is already played is rejected.
    """
    played = group.find_match(match_id).with_result(home_score, away_score)
    return replace(
        group,
        matches=tuple(played if m.id == match_id else m for m in group.matches),
        standings=apply_result(group.standings, played),
    )
