from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
from loguru import logger
from pydantic import BaseModel, Field

from props_app.db.store import DEFENSE_METRICS, StatsStore

GAME_REQUIRED = ["player_name", "season", "week"]
DEFENSE_REQUIRED = ["team_abbr", "season", "week"]

# game column -> defense column it feeds when allowances are derived from game rows
ALLOWED_FROM_GAME: Dict[str, str] = {
    "pass_yds": "pass_yds_allowed",
    "rush_yds": "rush_yds_allowed",
    "rec_yds": "rec_yds_allowed",
}


class LoadConfig(BaseModel):
    db_path: Path = Field(default_factory=lambda: Path("data/props.db"))
    game_stats_path: Optional[Path] = None
    defense_path: Optional[Path] = None
    derive_defense: bool = False
    seasons: List[int] = Field(default_factory=list)
    weeks: Optional[List[int]] = None


@dataclass
class LoadResult:
    players: int
    game_rows: int
    defense_rows: int


def read_table(path: Path, required: Optional[List[str]] = None) -> pd.DataFrame:
    """Read a normalized CSV or Parquet file with lower-cased column names."""
    path = Path(path)
    if path.suffix.lower() == ".parquet":
        df = pd.read_parquet(path)
    elif path.suffix.lower() == ".csv":
        df = pd.read_csv(path)
    else:
        raise ValueError(f"Unsupported file type for {path}; expected .csv or .parquet")

    df.columns = [str(c).strip().lower() for c in df.columns]
    for col in required or []:
        if col not in df.columns:
            raise ValueError(f"Missing required column {col} in {path.name}")
    logger.info(f"Read {len(df):,} rows from {path}")
    return df


def _filter_rows(df: pd.DataFrame, seasons: List[int], weeks: Optional[List[int]]) -> pd.DataFrame:
    if df.empty:
        return df
    if seasons:
        df = df[df["season"].isin(seasons)]
    if weeks:
        df = df[df["week"].isin(weeks)]
    return df.copy()


def _clean(value) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    # numeric ids come back as floats from CSV columns that contain blanks
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def load_game_stats(store: StatsStore, df: pd.DataFrame) -> Dict[str, int]:
    """
    Upsert players and replace their games; returns {"players": n, "game_rows": n}.

    Nothing is committed here. `run_load` commits game and defense rows together.
    """
    if df.empty:
        logger.warning("No game rows to load; skipping.")
        return {"players": 0, "game_rows": 0}

    player_ids: Dict[tuple, str] = {}
    for row in df.to_dict("records"):
        key = (
            str(row["player_name"]).strip(),
            _clean(row.get("external_id")),
            _clean(row.get("league")) or "nfl",
        )
        if key not in player_ids:
            player_ids[key] = store.upsert_player(
                key[0],
                position=_clean(row.get("position")),
                league=key[2].lower(),
                external_id=key[1],
            )
        store.replace_game_stat(player_ids[key], row)

    logger.info(f"Loaded {len(df):,} game rows for {len(player_ids)} players")
    return {"players": len(player_ids), "game_rows": len(df)}


def derive_defense_allowances(games: pd.DataFrame) -> pd.DataFrame:
    """
    Sum what each opponent gave up per week from player game rows.

    Rows without an opponent code are dropped.
    """
    cols = ["team_abbr", "season", "week"] + DEFENSE_METRICS
    if games.empty or "opp_abbr" not in games.columns:
        return pd.DataFrame(columns=cols)

    df = games[games["opp_abbr"].notna()].copy()
    df["opp_abbr"] = df["opp_abbr"].astype(str).str.strip().str.upper()
    df = df[df["opp_abbr"] != ""]
    for col in ALLOWED_FROM_GAME:
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0) if col in df.columns else 0

    out = (
        df.groupby(["opp_abbr", "season", "week"], as_index=False)[list(ALLOWED_FROM_GAME)]
        .sum()
        .rename(columns={"opp_abbr": "team_abbr", **ALLOWED_FROM_GAME})
    )
    for col in ["season", "week"] + DEFENSE_METRICS:
        out[col] = out[col].astype("int64")
    return out[cols]


def load_defense_stats(store: StatsStore, df: pd.DataFrame) -> int:
    """Replace defense rows by (team, season, week); uncommitted like `load_game_stats`."""
    if df.empty:
        logger.warning("No defense rows to load; skipping.")
        return 0
    for row in df.to_dict("records"):
        store.replace_defense_stat(row)
    logger.info(f"Loaded {len(df):,} defense rows")
    return len(df)


def run_load(cfg: LoadConfig) -> LoadResult:
    games = pd.DataFrame()
    if cfg.game_stats_path:
        games = _filter_rows(read_table(cfg.game_stats_path, GAME_REQUIRED), cfg.seasons, cfg.weeks)

    defense = pd.DataFrame()
    if cfg.defense_path:
        defense = _filter_rows(read_table(cfg.defense_path, DEFENSE_REQUIRED), cfg.seasons, cfg.weeks)
    elif cfg.derive_defense:
        defense = derive_defense_allowances(games)
        logger.info(f"Derived {len(defense):,} defense rows from game logs")

    with StatsStore(cfg.db_path) as store:
        store.init_schema()
        counts = load_game_stats(store, games)
        defense_rows = load_defense_stats(store, defense)
        store.commit()

    return LoadResult(
        players=counts["players"],
        game_rows=counts["game_rows"],
        defense_rows=defense_rows,
    )
