from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Mapping, Optional, Sequence, Tuple

from worldcup_sim.config import (
    FINAL,
    QUARTER_FINAL,
    ROUND_OF_16,
    ROUND_OF_32,
    SEMI_FINAL,
    THIRD_PLACE,
)
from worldcup_sim.errors import ConfigurationError, DrawLockedError, MatchStateError, StageTransitionError
from worldcup_sim.standings import sort_standings
from worldcup_sim.structure import Group, KnockoutBracket, KnockoutMatch, normalize_score

logger = logging.getLogger(__name__)

# (group index, finishing place) for home and away of each bracket position.
# Groups are taken in name order. Neighbouring groups cross over, and a
# group's winner and runner-up land in opposite halves of the draw, so they
# can only meet again in the final.
ROUND_OF_32_FROM_GROUPS: Tuple[Tuple[Tuple[int, int], Tuple[int, int]], ...] = (
    ((0, 1), (1, 2)),  # A1 v B2
    ((1, 1), (0, 2)),  # B1 v A2
    ((2, 1), (3, 2)),  # C1 v D2
    ((3, 1), (2, 2)),  # D1 v C2
    ((4, 1), (5, 2)),  # E1 v F2
    ((5, 1), (4, 2)),  # F1 v E2
    ((6, 1), (7, 2)),  # G1 v H2
    ((7, 1), (6, 2)),  # H1 v G2
    ((8, 1), (9, 2)),  # I1 v J2
    ((9, 1), (8, 2)),  # J1 v I2
    ((10, 1), (11, 2)),  # K1 v L2
    ((11, 1), (10, 2)),  # L1 v K2
    ((12, 1), (13, 2)),  # M1 v N2
    ((13, 1), (12, 2)),  # N1 v M2
    ((14, 1), (15, 2)),  # O1 v P2
    ((15, 1), (14, 2)),  # P1 v O2
)

ROUND_OF_16_FROM_GROUPS: Tuple[Tuple[Tuple[int, int], Tuple[int, int]], ...] = (
    ((0, 1), (1, 2)),  # A1 v B2
    ((1, 1), (0, 2)),  # B1 v A2
    ((2, 1), (3, 2)),  # C1 v D2
    ((3, 1), (2, 2)),  # D1 v C2
    ((4, 1), (5, 2)),  # E1 v F2
    ((5, 1), (4, 2)),  # F1 v E2
    ((6, 1), (7, 2)),  # G1 v H2
    ((7, 1), (6, 2)),  # H1 v G2
)

# (previous-round position, previous-round position) per new position.
ROUND_OF_16_FROM_ROUND_OF_32: Tuple[Tuple[int, int], ...] = tuple((p, p + 8) for p in range(8))
QUARTER_FINAL_PAIRS: Tuple[Tuple[int, int], ...] = ((0, 4), (2, 6), (1, 5), (3, 7))
SEMI_FINAL_PAIRS: Tuple[Tuple[int, int], ...] = ((0, 1), (2, 3))

GROUP_TABLES = {
    16: (ROUND_OF_32, ROUND_OF_32_FROM_GROUPS),
    8: (ROUND_OF_16, ROUND_OF_16_FROM_GROUPS),
}


@dataclass(frozen=True)
class KnockoutResolution:
    winner_id: str
    loser_id: str


def determine_winner(
    home_team_id: str,
    away_team_id: str,
    home_score: int,
    away_score: int,
    penalties: Optional[Tuple[int, int]] = None,
) -> Optional[KnockoutResolution]:
    if home_score > away_score:
        return KnockoutResolution(home_team_id, away_team_id)
    if away_score > home_score:
        return KnockoutResolution(away_team_id, home_team_id)
    if penalties is None:
        return None
    home_pens, away_pens = penalties
    if home_pens > away_pens:
        return KnockoutResolution(home_team_id, away_team_id)
    if away_pens > home_pens:
        return KnockoutResolution(away_team_id, home_team_id)
    return None


def resolve_knockout_match(
    match: KnockoutMatch,
    home_score: int,
    away_score: int,
    penalties: Optional[Tuple[int, int]] = None,
) -> Optional[KnockoutResolution]:
    return determine_winner(
        match.home_team_id, match.away_team_id, home_score, away_score, penalties
    )


def record_knockout_result(
    match: KnockoutMatch,
    home_score: int,
    away_score: int,
    penalties: Optional[Tuple[int, int]] = None,
) -> KnockoutMatch:
    if match.played:
        raise MatchStateError(f"Knockout match {match.id} has already been played")
    home_score, away_score = normalize_score(home_score), normalize_score(away_score)
    if penalties is not None and home_score != away_score:
        raise MatchStateError(
            f"Penalties given for {match.id} but normal time ended {home_score}-{away_score}"
        )
    if penalties is not None:
        penalties = (int(penalties[0]), int(penalties[1]))
        if min(penalties) < 0:
            raise MatchStateError(f"Penalty scores must be non-negative, got {penalties}")
    resolution = resolve_knockout_match(match, home_score, away_score, penalties)
    if resolution is None:
        raise MatchStateError(
            f"Knockout match {match.id} ended {home_score}-{away_score} "
            "and needs a decisive penalty score"
        )
    return replace(
        match,
        home_score=home_score,
        away_score=away_score,
        played=True,
        winner_id=resolution.winner_id,
        loser_id=resolution.loser_id,
        penalties=penalties,
    )


def is_round_complete(matches: Sequence[KnockoutMatch]) -> bool:
    return len(matches) > 0 and all(m.played and m.winner_id for m in matches)


def _top_two(groups: Sequence[Group], names: Optional[Mapping[str, str]]) -> List[Tuple[str, str]]:
    ordered = sorted(groups, key=lambda g: g.name)
    placed = []
    for group in ordered:
        if not group.is_complete:
            raise StageTransitionError(f"{group.name} has unplayed matches")
        ranking = sort_standings(group.standings, names)
        if len(ranking) < 2:
            raise ConfigurationError(f"{group.name} has fewer than two teams")
        placed.append((ranking[0].team_id, ranking[1].team_id))
    return placed


def bracket_from_groups(
    groups: Sequence[Group], names: Optional[Mapping[str, str]] = None
) -> List[KnockoutMatch]:
    if len(groups) not in GROUP_TABLES:
        raise ConfigurationError(
            f"Knockout bracket needs {sorted(GROUP_TABLES)} groups, got {len(groups)}"
        )
    round_name, table = GROUP_TABLES[len(groups)]
    placed = _top_two(groups, names)
    return [
        KnockoutMatch(
            home_team_id=placed[hg][hp - 1],
            away_team_id=placed[ag][ap - 1],
            round=round_name,
            position=pos,
        )
        for pos, ((hg, hp), (ag, ap)) in enumerate(table)
    ]


def generate_round_of_32(groups: Sequence[Group], names: Optional[Mapping[str, str]] = None) -> List[KnockoutMatch]:
    if len(groups) != 16:
        raise ConfigurationError(f"Round of 32 needs 16 groups, got {len(groups)}")
    return bracket_from_groups(groups, names)


def generate_round_of_16(groups: Sequence[Group], names: Optional[Mapping[str, str]] = None) -> List[KnockoutMatch]:
    if len(groups) != 8:
        raise ConfigurationError(f"Round of 16 from groups needs 8 groups, got {len(groups)}")
    return bracket_from_groups(groups, names)


def pair_winners(
    previous: Sequence[KnockoutMatch],
    pairs: Sequence[Tuple[int, int]],
    round_name: str,
) -> List[KnockoutMatch]:
    """Empty unless every match of `previous` has a winner."""
    if not is_round_complete(previous):
        return []
    by_position = {m.position: m for m in previous}
    missing = [p for pair in pairs for p in pair if p not in by_position]
    if missing:
        raise ConfigurationError(f"{round_name} needs previous positions {missing}")
    return [
        KnockoutMatch(
            home_team_id=by_position[a].winner_id,
            away_team_id=by_position[b].winner_id,
            round=round_name,
            position=pos,
        )
        for pos, (a, b) in enumerate(pairs)
    ]


def round_of_16_from_round_of_32(round_of_32: Sequence[KnockoutMatch]) -> List[KnockoutMatch]:
    return pair_winners(round_of_32, ROUND_OF_16_FROM_ROUND_OF_32, ROUND_OF_16)


def generate_quarter_finals(round_of_16: Sequence[KnockoutMatch]) -> List[KnockoutMatch]:
    return pair_winners(round_of_16, QUARTER_FINAL_PAIRS, QUARTER_FINAL)


def generate_semi_finals(quarter_finals: Sequence[KnockoutMatch]) -> List[KnockoutMatch]:
    return pair_winners(quarter_finals, SEMI_FINAL_PAIRS, SEMI_FINAL)


def generate_third_place_and_final(
    semi_finals: Sequence[KnockoutMatch],
) -> Tuple[Optional[KnockoutMatch], Optional[KnockoutMatch]]:
    if len(semi_finals) != 2 or not is_round_complete(semi_finals):
        return None, None
    first, second = sorted(semi_finals, key=lambda m: m.position or 0)
    third_place = KnockoutMatch(
        home_team_id=first.loser_id, away_team_id=second.loser_id, round=THIRD_PLACE
    )
    final = KnockoutMatch(
        home_team_id=first.winner_id, away_team_id=second.winner_id, round=FINAL
    )
    return third_place, final


FIRST_ROUND_GENERATORS = {
    16: generate_round_of_32,
    8: generate_round_of_16,
}

NEXT_ROUND = {
    ROUND_OF_32: (ROUND_OF_16, round_of_16_from_round_of_32),
    ROUND_OF_16: (QUARTER_FINAL, generate_quarter_finals),
    QUARTER_FINAL: (SEMI_FINAL, generate_semi_finals),
}


def current_round(bracket: KnockoutBracket) -> Optional[str]:
    if bracket.final is not None:
        return FINAL
    for round_name in (SEMI_FINAL, QUARTER_FINAL, ROUND_OF_16, ROUND_OF_32):
        if bracket.round_matches(round_name):
            return round_name
    return None


def start_bracket(groups: Sequence[Group], names: Optional[Mapping[str, str]] = None) -> KnockoutBracket:
    if len(groups) not in FIRST_ROUND_GENERATORS:
        raise ConfigurationError(
            f"Knockout bracket needs {sorted(FIRST_ROUND_GENERATORS)} groups, got {len(groups)}"
        )
    matches = FIRST_ROUND_GENERATORS[len(groups)](groups, names)
    return KnockoutBracket().with_round(matches[0].round, matches)


def build_next_knockout_round(bracket: KnockoutBracket) -> KnockoutBracket:
    """
    Adds the round after the latest one once all of its matches have a
    winner. Returns the bracket unchanged when the latest round is still in
    progress, when the final already exists, or when the bracket is empty.
    """
    latest = current_round(bracket)
    if latest is None or latest == FINAL:
        return bracket
    matches = bracket.round_matches(latest)
    if not is_round_complete(matches):
        return bracket
    if latest == SEMI_FINAL:
        third_place, final = generate_third_place_and_final(matches)
        logger.info("Semi-finals complete; third-place match and final drawn")
        return replace(bracket, third_place=third_place, final=final)
    next_round, generate = NEXT_ROUND[latest]
    logger.info("%s complete; generating %s", latest, next_round)
    return bracket.with_round(next_round, generate(matches))


def apply_knockout_result(
    bracket: KnockoutBracket,
    match_id: str,
    home_score: int,
    away_score: int,
    penalties: Optional[Tuple[int, int]] = None,
) -> KnockoutBracket:
    match = bracket.find_match(match_id)
    updated = record_knockout_result(match, home_score, away_score, penalties)
    return build_next_knockout_round(bracket.with_match(updated))


def regenerate_bracket(
    bracket: KnockoutBracket, groups: Sequence[Group], names: Optional[Mapping[str, str]] = None
) -> KnockoutBracket:
    if bracket.any_played:
        raise DrawLockedError("Cannot regenerate the knockout bracket after a knockout match was played")
    return start_bracket(groups, names)


@dataclass(frozen=True)
class Podium:
    champion: Optional[str] = None
    runner_up: Optional[str] = None
    third_place: Optional[str] = None
    fourth_place: Optional[str] = None

    @property
    def decided(self) -> bool:
        return self.champion is not None


def podium(bracket: KnockoutBracket) -> Podium:
    final = bracket.final
    third = bracket.third_place
    return Podium(
        champion=final.winner_id if final and final.played else None,
        runner_up=final.loser_id if final and final.played else None,
        third_place=third.winner_id if third and third.played else None,
        fourth_place=third.loser_id if third and third.played else None,
    )
