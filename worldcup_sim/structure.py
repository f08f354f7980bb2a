from __future__ import annotations

import numbers
import uuid
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from worldcup_sim.config import (
    FINAL,
    QUARTER_FINAL,
    ROUND_OF_16,
    ROUND_OF_32,
    SEMI_FINAL,
    STAGE_WORLD_CUP_KNOCKOUT,
    THIRD_PLACE,
)
from worldcup_sim.errors import MatchStateError


def new_id() -> str:
    return uuid.uuid4().hex


def normalize_score(value):
    if isinstance(value, numbers.Integral) and not isinstance(value, bool):
        return int(value)
    return value


def _check_score(value: Optional[int], side: str) -> None:
    if value is None:
        raise MatchStateError(f"Played match is missing the {side} score")
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 0:
        raise MatchStateError(f"{side.capitalize()} score must be a non-negative integer, got {value!r}")


@dataclass(frozen=True)
class Match:
    home_team_id: str
    away_team_id: str
    stage: str
    id: str = field(default_factory=new_id)
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    played: bool = False
    matchday: Optional[int] = None
    group_id: Optional[str] = None

    def __post_init__(self):
        if self.home_team_id == self.away_team_id:
            raise MatchStateError(f"Match {self.id} pairs team {self.home_team_id} with itself")
        if self.played:
            _check_score(self.home_score, "home")
            _check_score(self.away_score, "away")
        elif self.home_score is not None or self.away_score is not None:
            raise MatchStateError(f"Unplayed match {self.id} cannot carry scores")

    def with_result(self, home_score: int, away_score: int) -> "Match":
        if self.played:
            raise MatchStateError(f"Match {self.id} has already been played")
        return replace(
            self,
            home_score=normalize_score(home_score),
            away_score=normalize_score(away_score),
            played=True,
        )


@dataclass(frozen=True)
class KnockoutMatch(Match):
    stage: str = STAGE_WORLD_CUP_KNOCKOUT
    round: str = ROUND_OF_32
    position: Optional[int] = None
    winner_id: Optional[str] = None
    loser_id: Optional[str] = None
    penalties: Optional[Tuple[int, int]] = None

    def __post_init__(self):
        super().__post_init__()
        if self.played != (self.winner_id is not None):
            raise MatchStateError(
                f"Knockout match {self.id} must have a winner exactly when it is played"
            )
        if self.penalties is not None:
            if not self.played or self.home_score != self.away_score:
                raise MatchStateError(
                    f"Penalties on {self.id} are only valid for a level, played match"
                )


@dataclass(frozen=True)
class TeamStanding:
    team_id: str
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_difference: int = 0
    points: int = 0


@dataclass(frozen=True)
class Group:
    id: str
    name: str
    stage: str
    region: Optional[str] = None
    team_ids: Tuple[str, ...] = ()
    matches: Tuple[Match, ...] = ()
    standings: Tuple[TeamStanding, ...] = ()
    letter_assignments: Mapping[str, str] = field(default_factory=dict)
    draw_complete: bool = False

    @property
    def size(self) -> int:
        return len(self.team_ids)

    @property
    def played_count(self) -> int:
        return sum(1 for m in self.matches if m.played)

    @property
    def is_complete(self) -> bool:
        return bool(self.matches) and all(m.played for m in self.matches)

    @property
    def any_played(self) -> bool:
        return any(m.played for m in self.matches)

    def find_match(self, match_id: str) -> Match:
        for m in self.matches:
            if m.id == match_id:
                return m
        raise MatchStateError(f"Match {match_id} not found in {self.name}")

    def standing_for(self, team_id: str) -> TeamStanding:
        for s in self.standings:
            if s.team_id == team_id:
                return s
        raise KeyError(team_id)


KNOCKOUT_ROUND_FIELDS: Dict[str, str] = {
    ROUND_OF_32: "round_of_32",
    ROUND_OF_16: "round_of_16",
    QUARTER_FINAL: "quarter_finals",
    SEMI_FINAL: "semi_finals",
}


@dataclass(frozen=True)
class KnockoutBracket:
    round_of_32: Tuple[KnockoutMatch, ...] = ()
    round_of_16: Tuple[KnockoutMatch, ...] = ()
    quarter_finals: Tuple[KnockoutMatch, ...] = ()
    semi_finals: Tuple[KnockoutMatch, ...] = ()
    third_place: Optional[KnockoutMatch] = None
    final: Optional[KnockoutMatch] = None

    def round_matches(self, round_name: str) -> Tuple[KnockoutMatch, ...]:
        if round_name == THIRD_PLACE:
            return (self.third_place,) if self.third_place else ()
        if round_name == FINAL:
            return (self.final,) if self.final else ()
        if round_name not in KNOCKOUT_ROUND_FIELDS:
            raise ValueError(f"Unknown knockout round: {round_name}")
        return getattr(self, KNOCKOUT_ROUND_FIELDS[round_name])

    def all_matches(self) -> Iterator[KnockoutMatch]:
        for name in KNOCKOUT_ROUND_FIELDS.values():
            yield from getattr(self, name)
        if self.third_place:
            yield self.third_place
        if self.final:
            yield self.final

    @property
    def is_empty(self) -> bool:
        return next(self.all_matches(), None) is None

    @property
    def any_played(self) -> bool:
        return any(m.played for m in self.all_matches())

    def find_match(self, match_id: str) -> KnockoutMatch:
        for m in self.all_matches():
            if m.id == match_id:
                return m
        raise MatchStateError(f"Knockout match {match_id} not found")

    def with_round(self, round_name: str, matches: List[KnockoutMatch]) -> "KnockoutBracket":
        if round_name in (THIRD_PLACE, FINAL):
            if len(matches) > 1:
                raise ValueError(f"{round_name} holds a single match")
            slot = "third_place" if round_name == THIRD_PLACE else "final"
            return replace(self, **{slot: matches[0] if matches else None})
        return replace(self, **{KNOCKOUT_ROUND_FIELDS[round_name]: tuple(matches)})

    def with_match(self, updated: KnockoutMatch) -> "KnockoutBracket":
        current = self.round_matches(updated.round)
        if not any(m.id == updated.id for m in current):
            raise MatchStateError(f"Knockout match {updated.id} not found in {updated.round}")
        return self.with_round(
            updated.round, [updated if m.id == updated.id else m for m in current]
        )


@dataclass(frozen=True)
class WorldCup:
    groups: Tuple[Group, ...]
    qualified_team_ids: Tuple[str, ...]
    knockout: KnockoutBracket = field(default_factory=KnockoutBracket)
    champion: Optional[str] = None
    runner_up: Optional[str] = None
    third_place: Optional[str] = None
    fourth_place: Optional[str] = None

    @property
    def groups_complete(self) -> bool:
        return bool(self.groups) and all(g.is_complete for g in self.groups)

    @property
    def any_played(self) -> bool:
        return any(g.any_played for g in self.groups) or self.knockout.any_played
