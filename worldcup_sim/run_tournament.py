import argparse
import logging
from pathlib import Path
from typing import List, Optional

import numpy as np
import pandas as pd

from worldcup_sim.catalog import generate_team_universe, load_teams_csv, tier_stats
from worldcup_sim.config import DEFAULT_FORMAT
from worldcup_sim.engine import MatchOutcomeModel
from worldcup_sim.tournament import Tournament

logger = logging.getLogger(__name__)

# 42 qualifier groups of five: 42 winners + 22 best runners-up = 64.
DEFAULT_REGION_COUNTS = {
    "Europe": 55,
    "America": 50,
    "Africa": 50,
    "Asia": 45,
    "Oceania": 10,
}


def build_tournament(teams_csv: Optional[Path], seed: Optional[int], year: int) -> Tournament:
    rng = np.random.default_rng(seed)
    if teams_csv is not None:
        teams = load_teams_csv(teams_csv, DEFAULT_FORMAT.regions)
    else:
        teams = generate_team_universe(DEFAULT_REGION_COUNTS, rng=rng)
    logger.info("Catalog: %d teams, tiers %s", len(teams), tier_stats(teams))
    return Tournament(teams, name="World Cup", year=year, rng=rng)


def groups_frame(tournament: Tournament) -> pd.DataFrame:
    frames = []
    for group in tournament.world_cup_groups():
        table = tournament.group_table(group.id).reset_index()
        table.insert(0, "group", group.name)
        frames.append(table)
    return pd.concat(frames, ignore_index=True) if frames else pd.DataFrame()


def main(argv: Optional[List[str]] = None):
    ap = argparse.ArgumentParser(description="Simulate one World Cup edition from qualifiers to final")
    ap.add_argument("--teams", type=Path, default=None, help="Team catalog CSV (id,name,region,skill)")
    ap.add_argument("--seed", type=int, default=None, help="Seed for the draw and match simulation")
    ap.add_argument("--year", type=int, default=2026)
    ap.add_argument("--out", type=Path, default=None, help="Directory for results.csv and groups.csv")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    tournament = build_tournament(args.teams, args.seed, args.year)
    model = MatchOutcomeModel(tournament.fmt.engine, rng=tournament.rng)
    tournament.simulate_all(model)

    wc = tournament.world_cup
    names = tournament.names
    print(f"{tournament.name} {tournament.year}")
    for label, team_id in (
        ("Champion", wc.champion),
        ("Runner-up", wc.runner_up),
        ("Third", wc.third_place),
        ("Fourth", wc.fourth_place),
    ):
        print(f"  {label:<10} {names.get(team_id, '-')}")
    print()

    groups = groups_frame(tournament)
    with pd.option_context("display.max_rows", None, "display.width", 120):
        for name, table in groups.groupby("group", sort=True):
            print(name)
            print(table.drop(columns=["group", "team_id"]).to_string(index=False))
            print()

    if args.out is not None:
        args.out.mkdir(parents=True, exist_ok=True)
        tournament.results_frame().to_csv(args.out / "results.csv", index=False)
        groups.to_csv(args.out / "groups.csv", index=False)
        logger.info("Wrote results to %s", args.out)


if __name__ == "__main__":
    main()
