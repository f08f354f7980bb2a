from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from worldcup_sim.catalog import Team, index_teams, restore_skills, skill_snapshot, team_names
from worldcup_sim.config import (
    DEFAULT_FORMAT,
    FINAL,
    QUARTER_FINAL,
    ROUND_OF_16,
    ROUND_OF_32,
    SEMI_FINAL,
    STAGE_QUALIFIER,
    STAGE_WORLD_CUP_GROUP,
    THIRD_PLACE,
    TournamentFormat,
)
from worldcup_sim.draw import generate_groups, group_name
from worldcup_sim.engine import MatchOutcomeModel, update_team_skill
from worldcup_sim.errors import (
    ALLOWED,
    ConfigurationError,
    DrawLockedError,
    MatchStateError,
    StageTransitionError,
    TransitionCheck,
)
from worldcup_sim.fixtures import apply_match_result, attach_fixtures
from worldcup_sim.knockout import (
    apply_knockout_result,
    current_round,
    podium,
    regenerate_bracket,
    start_bracket,
)
from worldcup_sim.progress import knockout_progress, qualifier_progress, world_cup_group_progress
from worldcup_sim.qualification import select_qualifiers
from worldcup_sim.standings import standings_frame
from worldcup_sim.structure import Group, KnockoutBracket, Match, WorldCup, new_id

logger = logging.getLogger(__name__)

QUALIFIERS_IN_PROGRESS = "qualifiers-in-progress"
QUALIFIERS_COMPLETE = "qualifiers-complete"
WORLD_CUP_GROUPS_IN_PROGRESS = "world-cup-groups-in-progress"
WORLD_CUP_GROUPS_COMPLETE = "world-cup-groups-complete"
KNOCKOUT_IN_PROGRESS = "knockout-in-progress"
CHAMPION_DECIDED = "champion-decided"

ELIMINATION_LABELS = {
    STAGE_QUALIFIER: "0. Qualifying",
    STAGE_WORLD_CUP_GROUP: "1. Group",
    ROUND_OF_32: "2. Round of 32",
    ROUND_OF_16: "3. Round of 16",
    QUARTER_FINAL: "4. Quarterfinal",
    SEMI_FINAL: "5. Semifinal",
    "fourth-place": "5. Fourth place",
    THIRD_PLACE: "6. Third place",
    FINAL: "7. Final",
    "champion": "8. Champion",
}


class Tournament:
    """
    One edition: regional qualifier groups, a World Cup group stage drawn
    from the qualifiers, and a knockout bracket. Every mutation swaps in new
    group / bracket values; the aggregate itself is the only state.
    """

    def __init__(
        self,
        teams: Iterable[Team],
        name: str = "World Cup",
        year: int = 2026,
        fmt: TournamentFormat = DEFAULT_FORMAT,
        rng: Optional[np.random.Generator] = None,
        random_state: Optional[int] = None,
        tournament_id: Optional[str] = None,
    ):
        self.id = tournament_id or new_id()
        self.name = name
        self.year = int(year)
        self.fmt = fmt
        self.rng = rng if rng is not None else np.random.default_rng(random_state)
        self.teams: Dict[str, Team] = index_teams(teams)
        unknown = sorted({t.region for t in self.teams.values()}.difference(fmt.regions))
        if unknown:
            raise ConfigurationError(f"Teams belong to regions outside the format: {unknown}")
        self.original_skills = skill_snapshot(self.teams.values())
        self.qualifiers: Dict[str, Tuple[Group, ...]] = self._empty_qualifier_groups()
        self.world_cup: Optional[WorldCup] = None
        self.has_any_match_played = False

    def _empty_qualifier_groups(self) -> Dict[str, Tuple[Group, ...]]:
        size = self.fmt.qualifier_group_size
        qualifiers: Dict[str, Tuple[Group, ...]] = {}
        for region in self.fmt.regions:
            count = sum(1 for t in self.teams.values() if t.region == region)
            if count % size != 0:
                raise ConfigurationError(
                    f"{region} has {count} teams, not a multiple of the group size {size}"
                )
            qualifiers[region] = tuple(
                Group(id=new_id(), name=group_name(i), stage=STAGE_QUALIFIER, region=region)
                for i in range(count // size)
            )
        return qualifiers

    # -- lookups ---------------------------------------------------------

    @property
    def names(self) -> Dict[str, str]:
        return team_names(self.teams.values())

    def qualifier_groups(self) -> List[Group]:
        return [g for region in self.fmt.regions for g in self.qualifiers[region]]

    def world_cup_groups(self) -> List[Group]:
        return list(self.world_cup.groups) if self.world_cup else []

    @property
    def knockout(self) -> KnockoutBracket:
        return self.world_cup.knockout if self.world_cup else KnockoutBracket()

    def find_group(self, group_id: str) -> Group:
        for group in self.qualifier_groups() + self.world_cup_groups():
            if group.id == group_id:
                return group
        raise ConfigurationError(f"Group {group_id} not found")

    def _store_group(self, group: Group) -> None:
        if group.stage == STAGE_QUALIFIER:
            self.qualifiers[group.region] = tuple(
                group if g.id == group.id else g for g in self.qualifiers[group.region]
            )
        else:
            self.world_cup = replace(
                self.world_cup,
                groups=tuple(group if g.id == group.id else g for g in self.world_cup.groups),
            )

    # -- stage ------------------------------------------------------------

    @property
    def is_qualifiers_complete(self) -> bool:
        return qualifier_progress(self.qualifiers).is_complete

    @property
    def stage(self) -> str:
        if self.world_cup is None:
            return QUALIFIERS_COMPLETE if self.is_qualifiers_complete else QUALIFIERS_IN_PROGRESS
        if self.world_cup.knockout.is_empty:
            if self.world_cup.groups_complete:
                return WORLD_CUP_GROUPS_COMPLETE
            return WORLD_CUP_GROUPS_IN_PROGRESS
        if self.world_cup.champion is not None:
            return CHAMPION_DECIDED
        return KNOCKOUT_IN_PROGRESS

    # -- qualifier draw -----------------------------------------------------

    def can_generate_qualifier_draw(self) -> TransitionCheck:
        if self.has_any_match_played:
            return TransitionCheck(False, "Cannot regenerate the draw after matches have been played")
        if self.world_cup is not None:
            return TransitionCheck(False, "Cannot regenerate qualifiers once the World Cup has started")
        return ALLOWED

    def generate_qualifier_draw(self) -> Dict[str, Tuple[Group, ...]]:
        check = self.can_generate_qualifier_draw()
        if not check:
            logger.warning("Qualifier draw refused: %s", check.message)
            raise DrawLockedError(check.message)
        self.teams = restore_skills(self.teams, self.original_skills)
        drawn: Dict[str, Tuple[Group, ...]] = {}
        for region in self.fmt.regions:
            shells = self.qualifiers[region]
            if not shells:
                drawn[region] = ()
                continue
            region_teams = [t for t in self.teams.values() if t.region == region]
            groups = generate_groups(
                region_teams,
                len(shells),
                STAGE_QUALIFIER,
                rng=self.rng,
                group_size=self.fmt.qualifier_group_size,
                region=region,
                groups=shells,
            )
            drawn[region] = tuple(attach_fixtures(g) for g in groups)
        self.qualifiers = drawn
        self.has_any_match_played = False
        return drawn

    # -- group results --------------------------------------------------------

    def _check_group_open(self, group: Group) -> None:
        if not group.draw_complete:
            raise StageTransitionError(f"{group.name} has not been drawn yet")
        if group.stage == STAGE_QUALIFIER and self.world_cup is not None:
            raise StageTransitionError(f"{group.name} ({group.region}) is closed; the World Cup has started")
        if group.stage == STAGE_WORLD_CUP_GROUP and not self.knockout.is_empty:
            raise StageTransitionError(f"{group.name} is closed; the knockout stage has started")

    def _apply_skill_deltas(self, match: Match, home_delta: float, away_delta: float) -> None:
        for team_id, delta in ((match.home_team_id, home_delta), (match.away_team_id, away_delta)):
            if delta:
                team = self.teams[team_id]
                self.teams[team_id] = team.with_skill(
                    update_team_skill(team.skill, delta, self.fmt.engine)
                )

    def apply_match_result(
        self,
        group_id: str,
        match_id: str,
        home_score: int,
        away_score: int,
        home_skill_delta: float = 0.0,
        away_skill_delta: float = 0.0,
    ) -> Group:
        group = self.find_group(group_id)
        self._check_group_open(group)
        updated = apply_match_result(group, match_id, home_score, away_score)
        self._store_group(updated)
        self._apply_skill_deltas(updated.find_match(match_id), home_skill_delta, away_skill_delta)
        self.has_any_match_played = True
        return updated

    def simulate_match(self, group_id: str, match_id: str, model: MatchOutcomeModel) -> Group:
        group = self.find_group(group_id)
        match = group.find_match(match_id)
        if match.played:
            raise MatchStateError(f"Match {match_id} has already been played")
        home = self.teams[match.home_team_id]
        away = self.teams[match.away_team_id]
        outcome = model.simulate(
            home.skill, away.skill, disable_home_advantage=group.stage == STAGE_WORLD_CUP_GROUP
        )
        return self.apply_match_result(
            group_id,
            match_id,
            outcome.home_score,
            outcome.away_score,
            outcome.home_skill_delta,
            outcome.away_skill_delta,
        )

    def simulate_group(self, group_id: str, model: MatchOutcomeModel) -> Group:
        group = self.find_group(group_id)
        # one at a time: each result feeds the standings and ratings the next one sees
        for match in sorted(group.matches, key=lambda m: m.matchday or 0):
            if not match.played:
                group = self.simulate_match(group_id, match.id, model)
        return group

    def simulate_qualifiers(self, model: MatchOutcomeModel) -> None:
        if not all(g.draw_complete for g in self.qualifier_groups()):
            self.generate_qualifier_draw()
        for group in self.qualifier_groups():
            self.simulate_group(group.id, model)

    def simulate_world_cup_groups(self, model: MatchOutcomeModel) -> None:
        if self.world_cup is None:
            raise StageTransitionError("The World Cup has not started")
        for group in self.world_cup.groups:
            self.simulate_group(group.id, model)

    # -- World Cup ------------------------------------------------------------

    def can_advance_to_world_cup(self) -> TransitionCheck:
        if self.world_cup is not None:
            return TransitionCheck(False, "The World Cup has already been drawn")
        progress = qualifier_progress(self.qualifiers)
        if not progress.is_complete:
            return TransitionCheck(
                False,
                f"Complete all qualifier matches first "
                f"({progress.played_matches}/{progress.total_matches} played)",
            )
        return ALLOWED

    def _draw_world_cup_groups(self, qualified: List[str], shells=None) -> Tuple[Group, ...]:
        groups = generate_groups(
            [self.teams[t] for t in qualified],
            self.fmt.world_cup_group_count,
            STAGE_WORLD_CUP_GROUP,
            rng=self.rng,
            group_size=self.fmt.world_cup_group_size,
            groups=shells,
        )
        return tuple(attach_fixtures(g) for g in groups)

    def advance_to_world_cup(self) -> WorldCup:
        self.can_advance_to_world_cup().raise_for_failure()
        qualified = select_qualifiers(
            self.qualifier_groups(),
            self.fmt.qualifier_direct_slots,
            self.fmt.best_runners_up,
            names=self.names,
            expected_total=self.fmt.expected_qualified,
        )
        groups = self._draw_world_cup_groups(qualified)
        self.world_cup = WorldCup(groups=groups, qualified_team_ids=tuple(qualified))
        logger.info("%s %d: World Cup drawn with %d teams", self.name, self.year, len(qualified))
        return self.world_cup

    def can_regenerate_world_cup_draw(self) -> TransitionCheck:
        if self.world_cup is None:
            return TransitionCheck(False, "The World Cup has not been drawn yet")
        if self.world_cup.any_played:
            return TransitionCheck(False, "Cannot regenerate the World Cup draw after a World Cup match was played")
        return ALLOWED

    def regenerate_world_cup_draw(self) -> WorldCup:
        check = self.can_regenerate_world_cup_draw()
        if not check:
            logger.warning("World Cup redraw refused: %s", check.message)
            raise DrawLockedError(check.message)
        groups = self._draw_world_cup_groups(
            list(self.world_cup.qualified_team_ids), shells=self.world_cup.groups
        )
        self.world_cup = WorldCup(groups=groups, qualified_team_ids=self.world_cup.qualified_team_ids)
        return self.world_cup

    # -- knockout ---------------------------------------------------------------

    def can_advance_to_knockout(self) -> TransitionCheck:
        if self.world_cup is None:
            return TransitionCheck(False, "The World Cup has not been drawn yet")
        if not self.knockout.is_empty:
            return TransitionCheck(False, "The knockout bracket already exists")
        progress = world_cup_group_progress(self.world_cup.groups)
        if not progress.is_complete:
            return TransitionCheck(
                False,
                f"Complete all World Cup group matches first "
                f"({progress.played_matches}/{progress.total_matches} played)",
            )
        return ALLOWED

    def advance_to_knockout(self) -> KnockoutBracket:
        self.can_advance_to_knockout().raise_for_failure()
        bracket = start_bracket(self.world_cup.groups, self.names)
        self.world_cup = replace(self.world_cup, knockout=bracket)
        logger.info("%s %d: knockout stage starts at the %s", self.name, self.year, current_round(bracket))
        return bracket

    def regenerate_knockout_bracket(self) -> KnockoutBracket:
        if self.world_cup is None or self.knockout.is_empty:
            raise StageTransitionError("There is no knockout bracket to regenerate")
        bracket = regenerate_bracket(self.knockout, self.world_cup.groups, self.names)
        self.world_cup = replace(self.world_cup, knockout=bracket)
        return bracket

    def play_knockout_match(
        self,
        match_id: str,
        home_score: int,
        away_score: int,
        penalties: Optional[Tuple[int, int]] = None,
        home_skill_delta: float = 0.0,
        away_skill_delta: float = 0.0,
    ) -> KnockoutBracket:
        if self.world_cup is None or self.knockout.is_empty:
            raise StageTransitionError("The knockout stage has not started")
        match = self.knockout.find_match(match_id)
        bracket = apply_knockout_result(self.knockout, match_id, home_score, away_score, penalties)
        places = podium(bracket)
        self.world_cup = replace(
            self.world_cup,
            knockout=bracket,
            champion=places.champion,
            runner_up=places.runner_up,
            third_place=places.third_place,
            fourth_place=places.fourth_place,
        )
        self._apply_skill_deltas(match, home_skill_delta, away_skill_delta)
        self.has_any_match_played = True
        if places.decided and match.round == FINAL:
            logger.info(
                "%s %d champion: %s", self.name, self.year, self.teams[places.champion].name
            )
        return bracket

    def simulate_knockout_match(self, match_id: str, model: MatchOutcomeModel) -> KnockoutBracket:
        match = self.knockout.find_match(match_id)
        if match.played:
            raise MatchStateError(f"Knockout match {match_id} has already been played")
        home = self.teams[match.home_team_id]
        away = self.teams[match.away_team_id]
        outcome = model.simulate_with_decision(home.skill, away.skill)
        return self.play_knockout_match(
            match_id,
            outcome.home_score,
            outcome.away_score,
            outcome.penalties,
            outcome.home_skill_delta,
            outcome.away_skill_delta,
        )

    def simulate_knockout(self, model: MatchOutcomeModel) -> Optional[str]:
        if self.knockout.is_empty:
            self.advance_to_knockout()
        while self.world_cup.champion is None:
            pending = [m for m in self.knockout.all_matches() if not m.played]
            if not pending:
                raise StageTransitionError("Knockout bracket stalled without a champion")
            for match in pending:
                self.simulate_knockout_match(match.id, model)
        return self.world_cup.champion

    def simulate_all(self, model: MatchOutcomeModel) -> Optional[str]:
        self.simulate_qualifiers(model)
        self.advance_to_world_cup()
        self.simulate_world_cup_groups(model)
        self.advance_to_knockout()
        return self.simulate_knockout(model)

    # -- reporting ----------------------------------------------------------------

    def all_matches(self) -> List[Tuple[Optional[Group], Match]]:
        rows: List[Tuple[Optional[Group], Match]] = []
        for group in self.qualifier_groups() + self.world_cup_groups():
            rows.extend((group, m) for m in group.matches)
        rows.extend((None, m) for m in self.knockout.all_matches())
        return rows

    def results_frame(self) -> pd.DataFrame:
        names = self.names
        rows = []
        for group, m in self.all_matches():
            if not m.played:
                continue
            penalties = getattr(m, "penalties", None)
            winner = getattr(m, "winner_id", None)
            rows.append(
                {
                    "match_id": m.id,
                    "stage": m.stage,
                    "round": getattr(m, "round", None),
                    "region": group.region if group else None,
                    "group": group.name if group else None,
                    "matchday": m.matchday,
                    "home_team": names[m.home_team_id],
                    "away_team": names[m.away_team_id],
                    "home_score": m.home_score,
                    "away_score": m.away_score,
                    "went_penalties": penalties is not None,
                    "home_penalties": penalties[0] if penalties else None,
                    "away_penalties": penalties[1] if penalties else None,
                    "winner": names[winner] if winner else None,
                }
            )
        return pd.DataFrame(rows)

    def group_table(self, group_id: str) -> pd.DataFrame:
        return standings_frame(self.find_group(group_id).standings, self.names)

    def stage_of_elimination(self) -> Dict[str, str]:
        stages: Dict[str, str] = {}
        for group in self.qualifier_groups():
            for team_id in group.team_ids:
                stages[team_id] = ELIMINATION_LABELS[STAGE_QUALIFIER]
        for group in self.world_cup_groups():
            for team_id in group.team_ids:
                stages[team_id] = ELIMINATION_LABELS[STAGE_WORLD_CUP_GROUP]
        for m in self.knockout.all_matches():
            # third-place contenders are semi-finalists until that match is decided
            reached = SEMI_FINAL if m.round == THIRD_PLACE and not m.played else m.round
            for team_id in (m.home_team_id, m.away_team_id):
                stages[team_id] = ELIMINATION_LABELS[reached]
        wc = self.world_cup
        if wc is not None:
            if wc.fourth_place:
                stages[wc.fourth_place] = ELIMINATION_LABELS["fourth-place"]
            if wc.champion:
                stages[wc.champion] = ELIMINATION_LABELS["champion"]
        return stages

    def summary(self) -> Dict:
        matches = [m for _, m in self.all_matches()]
        if self.world_cup is None:
            status = "qualifiers"
        elif self.world_cup.champion is None:
            status = "world-cup"
        else:
            status = "completed"
        return {
            "id": self.id,
            "name": self.name,
            "year": self.year,
            "status": status,
            "stage": self.stage,
            "played_matches": sum(1 for m in matches if m.played),
            "total_matches": len(matches),
            "champion": self.world_cup.champion if self.world_cup else None,
        }

    def progress(self) -> Dict:
        return {
            "qualifiers": qualifier_progress(self.qualifiers),
            "world_cup_groups": world_cup_group_progress(self.world_cup_groups()),
            "knockout": knockout_progress(self.knockout),
        }
