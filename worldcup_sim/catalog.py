from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

import numpy as np
import pandas as pd

from worldcup_sim.config import FALLBACK_TIER, REGIONS, TIER_THRESHOLDS, TIERS
from worldcup_sim.errors import ConfigurationError


TEAM_COLUMNS = ["id", "name", "region", "skill"]


def calculate_tier(skill: float) -> str:
    for tier, lower in TIER_THRESHOLDS:
        if skill >= lower:
            return tier
    return FALLBACK_TIER


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    region: str
    skill: float

    @property
    def tier(self) -> str:
        return calculate_tier(self.skill)

    def with_skill(self, skill: float) -> "Team":
        return replace(self, skill=float(skill))


def index_teams(teams: Iterable[Team]) -> Dict[str, Team]:
    by_id: Dict[str, Team] = {}
    for team in teams:
        if team.id in by_id:
            raise ConfigurationError(f"Duplicate team id in catalog: {team.id}")
        by_id[team.id] = team
    return by_id


def team_names(teams: Iterable[Team]) -> Dict[str, str]:
    return {t.id: t.name for t in teams}


def group_teams_by_tier(teams: Iterable[Team]) -> Dict[str, List[Team]]:
    grouped: Dict[str, List[Team]] = {tier: [] for tier in TIERS}
    for team in teams:
        grouped[team.tier].append(team)
    return grouped


def tier_stats(teams: Iterable[Team]) -> Dict[str, int]:
    return {tier: len(ts) for tier, ts in group_teams_by_tier(teams).items()}


def skill_snapshot(teams: Iterable[Team]) -> Dict[str, float]:
    return {t.id: float(t.skill) for t in teams}


def restore_skills(teams: Mapping[str, Team], snapshot: Mapping[str, float]) -> Dict[str, Team]:
    return {
        team_id: team.with_skill(snapshot[team_id]) if team_id in snapshot else team
        for team_id, team in teams.items()
    }


def teams_frame(teams: Iterable[Team]) -> pd.DataFrame:
    df = pd.DataFrame(
        [
            {"id": t.id, "name": t.name, "region": t.region, "skill": t.skill, "tier": t.tier}
            for t in teams
        ],
        columns=TEAM_COLUMNS + ["tier"],
    )
    return df.sort_values(["skill", "name"], ascending=[False, True]).reset_index(drop=True)


def load_teams_csv(path: Path, regions=REGIONS) -> List[Team]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing team catalog: {path}")
    df = pd.read_csv(path)
    missing = set(TEAM_COLUMNS).difference(df.columns)
    if missing:
        raise ConfigurationError(f"Team catalog missing columns: {sorted(missing)}")
    for col in ("id", "name", "region"):
        df[col] = df[col].astype(str).str.strip()
    df["skill"] = pd.to_numeric(df["skill"], errors="raise").astype(float)
    unknown = sorted(set(df["region"]).difference(regions))
    if unknown:
        raise ConfigurationError(f"Team catalog has unknown regions: {unknown}")
    if df["id"].duplicated().any():
        dupes = df.loc[df["id"].duplicated(), "id"].unique().tolist()
        raise ConfigurationError(f"Team catalog contains duplicate ids: {sorted(dupes)}")
    return [
        Team(id=row.id, name=row.name, region=row.region, skill=float(row.skill))
        for row in df.itertuples(index=False)
    ]


def write_teams_csv(path: Path, teams: Iterable[Team]) -> None:
    df = teams_frame(teams)
    df[TEAM_COLUMNS].to_csv(path, index=False)


def generate_team_universe(
    region_counts: Mapping[str, int],
    rng: Optional[np.random.Generator] = None,
    skill_mean: float = 62.0,
    skill_sd: float = 12.0,
    skill_min: float = 30.0,
    skill_max: float = 100.0,
) -> List[Team]:
    """
    Synthetic catalog: `region_counts[region]` teams per region with normally
    distributed skill clipped to [skill_min, skill_max] and rounded.
    """
    rng = rng if rng is not None else np.random.default_rng()
    teams: List[Team] = []
    for region, count in region_counts.items():
        if count < 0:
            raise ConfigurationError(f"Negative team count for {region}")
        skills = np.clip(rng.normal(skill_mean, skill_sd, size=count), skill_min, skill_max)
        prefix = region[:3].upper()
        for i, skill in enumerate(np.round(skills), start=1):
            teams.append(
                Team(
                    id=f"{prefix}{i:03d}",
                    name=f"{region} {i:02d}",
                    region=region,
                    skill=float(skill),
                )
            )
    return teams
