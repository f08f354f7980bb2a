from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from worldcup_sim.errors import ConfigurationError, QualificationError
from worldcup_sim.standings import sort_standings, standing_sort_key
from worldcup_sim.structure import Group, TeamStanding

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankedEntry:
    team_id: str
    group_id: str
    group_name: str
    position: int
    standing: TeamStanding


def group_rankings(group: Group, names: Optional[Mapping[str, str]] = None) -> List[RankedEntry]:
    return [
        RankedEntry(
            team_id=s.team_id,
            group_id=group.id,
            group_name=group.name,
            position=pos,
            standing=s,
        )
        for pos, s in enumerate(sort_standings(group.standings, names), start=1)
    ]


def top_n_per_group(
    groups: Sequence[Group], top_n: int, names: Optional[Mapping[str, str]] = None
) -> List[str]:
    if top_n < 0:
        raise ConfigurationError("top_n must be non-negative")
    qualified: List[str] = []
    for group in groups:
        qualified.extend(e.team_id for e in group_rankings(group, names)[:top_n])
    return qualified


def best_runners_up(
    groups: Sequence[Group],
    count: int,
    names: Optional[Mapping[str, str]] = None,
    position: int = 2,
) -> List[RankedEntry]:
    """
    Ranks the team finishing `position` in every group against each other with
    the usual points, goal difference, goals scored, name cascade and keeps
    the best `count`.
    """
    if count < 0:
        raise ConfigurationError("count must be non-negative")
    candidates = []
    for group in groups:
        ranking = group_rankings(group, names)
        if len(ranking) >= position:
            candidates.append(ranking[position - 1])
    if count > len(candidates):
        raise ConfigurationError(
            f"Asked for {count} best runners-up but only {len(candidates)} groups have one"
        )
    candidates.sort(key=lambda e: standing_sort_key(e.standing, names))
    return candidates[:count]


def select_qualifiers(
    groups: Sequence[Group],
    top_n: int,
    best_runner_up_count: int,
    names: Optional[Mapping[str, str]] = None,
    expected_total: Optional[int] = None,
) -> List[str]:
    qualified = top_n_per_group(groups, top_n, names)
    if best_runner_up_count:
        extra = best_runners_up(groups, best_runner_up_count, names, position=top_n + 1)
        qualified.extend(e.team_id for e in extra)
    unique = list(dict.fromkeys(qualified))
    if len(unique) != len(qualified):
        raise ConfigurationError("Qualification selected the same team twice")
    if expected_total is not None and len(unique) != expected_total:
        raise QualificationError(len(unique), expected_total)
    logger.info(
        "Selected %d qualifiers (%d per group from %d groups, %d best runners-up)",
        len(unique),
        top_n,
        len(groups),
        best_runner_up_count,
    )
    return unique
