from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich import print
from rich.table import Table

from props_app.config import load_config
from props_app.db.store import StatsStore
from props_app.projection.engine import predict_player_series, project_whatif, rank_adjusted_projection
from props_app.projection.errors import ProjectionError

app = typer.Typer(add_completion=False)


def _player_id(store: StatsStore, slug: str) -> str:
    player = store.get_player_by_slug(slug)
    if player is None:
        print(f"[red]No player with slug {slug}[/red]")
        raise typer.Exit(code=1)
    return player["player_id"]


@app.command()
def whatif(
    player: str = typer.Option(..., "--player", "-p", help="Player slug"),
    team: str = typer.Option(..., "--team", "-t", help="Opponent team abbreviation"),
    season: int = typer.Option(..., "--season", "-s"),
    week: int = typer.Option(..., "--week", "-w"),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database path"),
):
    cfg = load_config()
    with StatsStore(db or cfg.db_path) as store:
        try:
            result = project_whatif(
                {"playerId": _player_id(store, player), "teamAbbr": team, "season": season, "week": week},
                store.player_reader(),
                store.defense_reader(),
                cfg.weights,
            )
        except ProjectionError as e:
            print(f"[red]{e}[/red]")
            raise typer.Exit(code=1)
    print(result.as_dict())


@app.command()
def rank(
    baseline: float = typer.Option(..., "--baseline", "-b", help="Per-game average"),
    opp_defense: float = typer.Option(0.0, "--opp-defense", help="Opponent rank/percentile 0-100"),
    adjustment: Optional[float] = typer.Option(None, "--adjustment", "-a", help="Manual tweak in percent"),
    stat: str = typer.Option("unknown", "--stat", help="Stat key, e.g. pass_yds"),
):
    result = rank_adjusted_projection(
        {"statKey": stat, "baseline": baseline, "oppDefense": opp_defense, "adjustment": adjustment}
    )
    print(result.as_dict())


@app.command()
def series(
    player: str = typer.Option(..., "--player", "-p", help="Player slug"),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database path"),
):
    cfg = load_config()
    with StatsStore(db or cfg.db_path) as store:
        preds = predict_player_series(
            _player_id(store, player), store.player_reader(), store.defense_reader(), cfg.weights
        )

    table = Table(title=f"Predictions for {player}")
    for col in ("Season", "Week", "Pass", "Rush", "Rec"):
        table.add_column(col, justify="right")
    for p in preds.rows:
        table.add_row(
            str(p.season),
            str(p.week),
            *["—" if v is None else str(v) for v in (p.pred_pass, p.pred_rush, p.pred_rec)],
        )
    print(table)


if __name__ == "__main__":
    app()
