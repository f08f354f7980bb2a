from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from worldcup_sim.structure import Match, TeamStanding


TABLE_COLUMNS = ["played", "w", "d", "l", "gf", "ga", "gd", "points"]


def initialize_standings(team_ids: Iterable[str]) -> Tuple[TeamStanding, ...]:
    return tuple(TeamStanding(team_id=t) for t in team_ids)


def _add_result(standing: TeamStanding, scored: int, conceded: int) -> TeamStanding:
    won = scored > conceded
    drawn = scored == conceded
    goals_for = standing.goals_for + scored
    goals_against = standing.goals_against + conceded
    return replace(
        standing,
        played=standing.played + 1,
        won=standing.won + int(won),
        drawn=standing.drawn + int(drawn),
        lost=standing.lost + int(not won and not drawn),
        goals_for=goals_for,
        goals_against=goals_against,
        goal_difference=goals_for - goals_against,
        points=standing.points + (3 if won else 1 if drawn else 0),
    )


def apply_result(standings: Sequence[TeamStanding], match: Match) -> Tuple[TeamStanding, ...]:
    """
    Returns a new standings tuple with `match` folded in. Unplayed matches and
    matches whose teams are not both present leave the input unchanged; the
    caller must apply each played match exactly once.
    """
    if not match.played or match.home_score is None or match.away_score is None:
        return tuple(standings)
    ids = {s.team_id for s in standings}
    if match.home_team_id not in ids or match.away_team_id not in ids:
        return tuple(standings)

    updated: List[TeamStanding] = []
    for s in standings:
        if s.team_id == match.home_team_id:
            updated.append(_add_result(s, match.home_score, match.away_score))
        elif s.team_id == match.away_team_id:
            updated.append(_add_result(s, match.away_score, match.home_score))
        else:
            updated.append(s)
    return tuple(updated)


def recompute_standings(team_ids: Iterable[str], matches: Iterable[Match]) -> Tuple[TeamStanding, ...]:
    standings = initialize_standings(team_ids)
    for m in matches:
        standings = apply_result(standings, m)
    return standings


def standing_sort_key(standing: TeamStanding, names: Optional[Mapping[str, str]] = None):
    name = (names or {}).get(standing.team_id, standing.team_id)
    # team_id last so the order stays total when two teams share a name
    return (
        -standing.points,
        -standing.goal_difference,
        -standing.goals_for,
        name.casefold(),
        name,
        standing.team_id,
    )


def sort_standings(
    standings: Iterable[TeamStanding], names: Optional[Mapping[str, str]] = None
) -> List[TeamStanding]:
    return sorted(standings, key=lambda s: standing_sort_key(s, names))


def standings_frame(
    standings: Iterable[TeamStanding], names: Optional[Mapping[str, str]] = None
) -> pd.DataFrame:
    ranked = sort_standings(standings, names)
    names = names or {}
    table = pd.DataFrame(
        [
            {
                "team": names.get(s.team_id, s.team_id),
                "played": s.played,
                "w": s.won,
                "d": s.drawn,
                "l": s.lost,
                "gf": s.goals_for,
                "ga": s.goals_against,
                "gd": s.goal_difference,
                "points": s.points,
            }
            for s in ranked
        ],
        columns=["team"] + TABLE_COLUMNS,
        index=pd.Index([s.team_id for s in ranked], name="team_id"),
    )
    table.insert(0, "position", range(1, len(table) + 1))
    return table
