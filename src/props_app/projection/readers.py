"""
History readers feeding the projection engine.

Two contracts:
- PlayerHistoryReader: a player's games strictly before an optional (season, week)
  bound, oldest first.
- DefenseAllowanceReader: a team's mean yards allowed over the weeks of one season
  strictly before a given week.

SQLite readers run parameterized queries against the game_stats/defense_stats tables.
Frame readers serve the same contracts from pandas DataFrames (batch jobs, tests).
"""

from __future__ import annotations

import sqlite3
from typing import Iterable, List, Optional, Protocol, Tuple

import pandas as pd
from loguru import logger

from props_app.projection.engine import opponent_allowance_means
from props_app.projection.errors import ReaderError
from props_app.projection.models import AllowanceMeans, DefenseAllowance, GameStat

GAME_FIELDS = [
    "player_id",
    "season",
    "week",
    "opponent",
    "opp_abbr",
    "pass_yds",
    "rush_yds",
    "rec_yds",
    "pass_td",
    "interceptions",
]

DEFENSE_FIELDS = [
    "team_abbr",
    "season",
    "week",
    "pass_yds_allowed",
    "rush_yds_allowed",
    "rec_yds_allowed",
]


class PlayerHistoryReader(Protocol):
    def history(
        self, player_id: str, before: Optional[Tuple[int, int]] = None
    ) -> List[GameStat]:
        ...


class DefenseAllowanceReader(Protocol):
    def allowance_means(self, team_abbr: str, season: int, before_week: int) -> AllowanceMeans:
        ...


# ============================================================================
# SQLite
# ============================================================================

class SqlitePlayerHistoryReader:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def history(
        self, player_id: str, before: Optional[Tuple[int, int]] = None
    ) -> List[GameStat]:
        query = f"""
            SELECT {", ".join(GAME_FIELDS)}
            FROM game_stats
            WHERE player_id = ?
        """
        params: list = [player_id]
        if before is not None:
            season, week = before
            query += " AND (season < ? OR (season = ? AND week < ?))"
            params += [season, season, week]
        query += " ORDER BY season ASC, week ASC"

        try:
            df = pd.read_sql_query(query, self.conn, params=params)
        except (sqlite3.Error, pd.errors.DatabaseError) as e:
            logger.error(f"Failed to read game history for player {player_id}: {e}")
            raise ReaderError(f"game history read failed for {player_id}") from e

        logger.debug(f"Read {len(df)} games for player {player_id} before {before}")
        return [GameStat.from_row(row) for row in df.to_dict("records")]


class SqliteDefenseAllowanceReader:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def allowance_means(self, team_abbr: str, season: int, before_week: int) -> AllowanceMeans:
        query = """
            SELECT
                AVG(pass_yds_allowed) AS pass_yds,
                AVG(rush_yds_allowed) AS rush_yds,
                AVG(rec_yds_allowed) AS rec_yds
            FROM defense_stats
            WHERE team_abbr = ?
              AND season = ?
              AND week < ?
        """
        try:
            row = self.conn.execute(query, (team_abbr, season, before_week)).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Failed to read allowances for {team_abbr} {season} wk<{before_week}: {e}")
            raise ReaderError(f"defense allowance read failed for {team_abbr}") from e

        # AVG over zero rows yields a single all-NULL row
        if row is None:
            return AllowanceMeans.empty()
        pass_yds, rush_yds, rec_yds = row
        return AllowanceMeans(
            pass_yds=None if pass_yds is None else float(pass_yds),
            rush_yds=None if rush_yds is None else float(rush_yds),
            rec_yds=None if rec_yds is None else float(rec_yds),
        )


# ============================================================================
# pandas DataFrames
# ============================================================================

def _require_columns(df: pd.DataFrame, required: Iterable[str], what: str) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns {missing} in {what}")


class FramePlayerHistoryReader:
    """Serves player history from a DataFrame shaped like the game_stats table."""

    def __init__(self, games: pd.DataFrame):
        _require_columns(games, ["player_id", "season", "week"], "game frame")
        self.games = games.copy()
        self.games["player_id"] = self.games["player_id"].astype(str)

    @classmethod
    def from_records(cls, records: Iterable[GameStat]) -> "FramePlayerHistoryReader":
        rows = [{f: getattr(g, f) for f in GAME_FIELDS} for g in records]
        return cls(pd.DataFrame(rows, columns=GAME_FIELDS))

    def history(
        self, player_id: str, before: Optional[Tuple[int, int]] = None
    ) -> List[GameStat]:
        df = self.games[self.games["player_id"] == str(player_id)]
        if before is not None:
            season, week = before
            df = df[(df["season"] < season) | ((df["season"] == season) & (df["week"] < week))]
        df = df.sort_values(["season", "week"], kind="mergesort")
        return [GameStat.from_row(row) for row in df.to_dict("records")]


class FrameDefenseAllowanceReader:
    """Serves allowance means from a DataFrame shaped like the defense_stats table."""

    def __init__(self, defense: pd.DataFrame):
        _require_columns(defense, DEFENSE_FIELDS, "defense frame")
        self.defense = defense

    @classmethod
    def from_records(cls, records: Iterable[DefenseAllowance]) -> "FrameDefenseAllowanceReader":
        rows = [{f: getattr(d, f) for f in DEFENSE_FIELDS} for d in records]
        return cls(pd.DataFrame(rows, columns=DEFENSE_FIELDS))

    def allowance_means(self, team_abbr: str, season: int, before_week: int) -> AllowanceMeans:
        df = self.defense[self.defense["team_abbr"] == team_abbr]
        rows = [DefenseAllowance.from_row(r) for r in df.to_dict("records")]
        return opponent_allowance_means(rows, season, before_week)
