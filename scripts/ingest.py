from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

import typer
from loguru import logger
from rich import print

from props_app.config import load_config
from props_app.db.seed import seed_demo
from props_app.db.store import StatsStore
from props_app.ingest.load import LoadConfig, run_load

app = typer.Typer(add_completion=False)


def _db_path(db: Optional[Path]) -> Path:
    return db or load_config().db_path


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    if verbose:
        logger.remove()
        logger.add(sys.stderr, level="DEBUG")


@app.command("init-db")
def init_db(db: Optional[Path] = typer.Option(None, "--db", help="SQLite database path")):
    with StatsStore(_db_path(db)) as store:
        store.init_schema()
    print(f"[green]Schema ready[/green] at {_db_path(db)}")


@app.command()
def seed(db: Optional[Path] = typer.Option(None, "--db", help="SQLite database path")):
    with StatsStore(_db_path(db)) as store:
        games = seed_demo(store)
    print(f"[green]Seed complete[/green]: {games} games")


@app.command()
def load(
    games: Optional[Path] = typer.Option(None, "--games", help="Normalized game rows (.csv/.parquet)"),
    defense: Optional[Path] = typer.Option(None, "--defense", help="Weekly defense allowances (.csv/.parquet)"),
    derive_defense: bool = typer.Option(False, "--derive-defense", help="Build allowances from the game rows"),
    season: Optional[List[int]] = typer.Option(
        None, "--season", "-s", help="Repeat for each season, e.g. -s 2023 -s 2024"
    ),
    week: Optional[List[int]] = typer.Option(None, "--week", "-w", help="Only these weeks"),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database path"),
):
    if games is None and defense is None:
        raise typer.BadParameter("pass --games and/or --defense")
    cfg = LoadConfig(
        db_path=_db_path(db),
        game_stats_path=games,
        defense_path=defense,
        derive_defense=derive_defense,
        seasons=season or [],
        weeks=week or None,
    )
    res = run_load(cfg)
    print(res)


if __name__ == "__main__":
    app()
