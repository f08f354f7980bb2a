from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from worldcup_sim.catalog import Team
from worldcup_sim.errors import ConfigurationError
from worldcup_sim.standings import initialize_standings
from worldcup_sim.structure import Group, new_id

logger = logging.getLogger(__name__)


def pot_letter(pot_index: int) -> str:
    if not 0 <= pot_index < 26:
        raise ConfigurationError(f"No pot letter for pot {pot_index}")
    return chr(ord("A") + pot_index)


def group_name(index: int) -> str:
    if index < 26:
        return f"Group {chr(ord('A') + index)}"
    return f"Group {index + 1}"


def strength_order(teams: Sequence[Team]) -> List[Team]:
    return sorted(teams, key=lambda t: (-float(t.skill), t.name, t.id))


def make_pots(teams: Sequence[Team], group_count: int) -> List[List[Team]]:
    if group_count <= 0:
        raise ConfigurationError("group_count must be positive")
    if len(teams) % group_count != 0:
        raise ConfigurationError(
            f"Cannot split {len(teams)} teams into {group_count} equal groups"
        )
    ordered = strength_order(teams)
    return [
        ordered[k * group_count : (k + 1) * group_count]
        for k in range(len(ordered) // group_count)
    ]


def snake_order(group_count: int, pot_index: int) -> List[int]:
    order = list(range(group_count))
    if pot_index % 2 == 1:
        order.reverse()
    return order


def _region_clash(team: Team, members: Sequence[Team]) -> bool:
    return any(m.region == team.region for m in members)


def _assign_pot(
    pot: Sequence[Team],
    pot_index: int,
    members: List[List[Team]],
    rng: np.random.Generator,
    spread_regions: bool = True,
) -> int:
    """
    Places one pot, one team per group, in snake order. A team that would
    share a region with its group is swapped with a draft neighbour when the
    swap leaves both teams clash-free; otherwise the clash is kept. Returns
    the number of clashes kept.
    """
    queue = list(pot)
    rng.shuffle(queue)
    order = snake_order(len(members), pot_index)
    placed: List[Optional[Team]] = [None] * len(order)
    tolerated = 0

    for i, target in enumerate(order):
        team = queue[i]
        if spread_regions and _region_clash(team, members[target]):
            nxt = i + 1
            prev = i - 1
            if (
                nxt < len(order)
                and not _region_clash(team, members[order[nxt]])
                and not _region_clash(queue[nxt], members[target])
            ):
                queue[i], queue[nxt] = queue[nxt], team
                team = queue[i]
            elif prev >= 0:
                other = placed[prev]
                other_group = members[order[prev]]
                rest = [m for m in other_group if m.id != other.id]
                if not _region_clash(team, rest) and not _region_clash(other, members[target]):
                    other_group.remove(other)
                    other_group.append(team)
                    placed[prev] = team
                    team = other
            if _region_clash(team, members[target]):
                tolerated += 1
                logger.debug(
                    "Draw keeps region clash: %s (%s) in group %d", team.name, team.region, target
                )
        members[target].append(team)
        placed[i] = team
    return tolerated


def generate_groups(
    teams: Sequence[Team],
    group_count: int,
    stage: str,
    rng: Optional[np.random.Generator] = None,
    group_size: Optional[int] = None,
    region: Optional[str] = None,
    groups: Optional[Sequence[Group]] = None,
) -> List[Group]:
    """
    Seeded draw: teams are ranked by skill into pots of `group_count`, each pot
    is shuffled and dealt to the groups in snake order, and every team gets
    the pot letter (A, B, ...) of the pot it came from.

    `groups` lets a caller redraw into existing group shells, keeping their
    ids and names.
    """
    rng = rng if rng is not None else np.random.default_rng()
    ids = [t.id for t in teams]
    if len(set(ids)) != len(ids):
        raise ConfigurationError("Draw received duplicate teams")
    if group_size is not None and len(teams) != group_count * group_size:
        raise ConfigurationError(
            f"Draw needs {group_count * group_size} teams for {group_count} groups "
            f"of {group_size}, got {len(teams)}"
        )
    if groups is not None and len(groups) != group_count:
        raise ConfigurationError(
            f"Draw expected {group_count} group shells, got {len(groups)}"
        )

    pots = make_pots(teams, group_count)
    members: List[List[Team]] = [[] for _ in range(group_count)]
    letters: List[Dict[str, str]] = [{} for _ in range(group_count)]
    tolerated = 0
    # a single-region draw has nothing to spread
    spread_regions = len({t.region for t in teams}) > 1
    for k, pot in enumerate(pots):
        letter = pot_letter(k)
        tolerated += _assign_pot(pot, k, members, rng, spread_regions)
        for g, ms in enumerate(members):
            letters[g][ms[k].id] = letter

    drawn: List[Group] = []
    for g in range(group_count):
        team_ids = tuple(t.id for t in members[g])
        shell_id = groups[g].id if groups is not None else new_id()
        shell_name = groups[g].name if groups is not None else group_name(g)
        drawn.append(
            Group(
                id=shell_id,
                name=shell_name,
                stage=stage,
                region=region,
                team_ids=team_ids,
                standings=initialize_standings(team_ids),
                letter_assignments=dict(letters[g]),
                draw_complete=True,
            )
        )
    logger.info(
        "Drew %d teams into %d groups (%s%s), %d region clash(es) kept",
        len(teams),
        group_count,
        stage,
        f", {region}" if region else "",
        tolerated,
    )
    return drawn


def validate_group_distribution(
    groups: Sequence[Group], group_size: int, expected_teams: Optional[int] = None
) -> List[str]:
    issues: List[str] = []
    for group in groups:
        if group.size != group_size:
            issues.append(f"{group.name} has {group.size} teams (expected {group_size})")
        letters = sorted(group.letter_assignments.values())
        if sorted(group.letter_assignments) != sorted(group.team_ids) or letters != [
            pot_letter(k) for k in range(group.size)
        ]:
            issues.append(f"{group.name} pot letters do not match its teams")
    all_ids = [t for g in groups for t in g.team_ids]
    if len(all_ids) != len(set(all_ids)):
        issues.append("Duplicate teams found in groups")
    if expected_teams is not None and len(all_ids) != expected_teams:
        issues.append(f"Expected {expected_teams} teams, found {len(all_ids)}")
    return issues
