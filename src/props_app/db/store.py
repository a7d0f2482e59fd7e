"""
SQLite access for players, game logs and defensive allowances.

Writes are delete-then-insert by natural key, so re-importing the same rows is a no-op.
Leaving the store context commits; leaving it on an exception rolls back.
"""

from __future__ import annotations

import re
import sqlite3
import uuid
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

import pandas as pd
from loguru import logger

from props_app.projection.readers import SqliteDefenseAllowanceReader, SqlitePlayerHistoryReader

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

GAME_METRICS = ["pass_yds", "rush_yds", "rec_yds", "pass_td", "interceptions"]
DEFENSE_METRICS = ["pass_yds_allowed", "rush_yds_allowed", "rec_yds_allowed"]


def slugify(name: str, suffix: Optional[str] = None) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    if suffix:
        slug = f"{slug}-{suffix}"
    return slug


def _int_or_zero(value) -> int:
    if value is None or pd.isna(value):
        return 0
    return int(value)


class StatsStore:
    """Thin data-access object over the props SQLite database."""

    def __init__(self, db_path: Path = Path("data/props.db")):
        self.db_path = db_path
        self.conn: Optional[sqlite3.Connection] = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.conn is not None and exc_type is not None:
            logger.warning(f"Rolling back uncommitted changes to {self.db_path}: {exc_val}")
            self.conn.rollback()
        self.close()

    def connect(self) -> sqlite3.Connection:
        if self.conn is None:
            if str(self.db_path) != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(self.db_path)
            self.conn.execute("PRAGMA foreign_keys = ON")
        return self.conn

    def close(self) -> None:
        if self.conn:
            self.conn.commit()
            self.conn.close()
            self.conn = None

    @property
    def _conn(self) -> sqlite3.Connection:
        return self.connect()

    def init_schema(self) -> None:
        logger.info(f"Initializing schema in {self.db_path}")
        self._conn.executescript(SCHEMA_PATH.read_text(encoding="utf-8"))
        self._conn.commit()

    def ping(self) -> Dict[str, str]:
        now = self._conn.execute("SELECT datetime('now')").fetchone()[0]
        db = self._conn.execute("PRAGMA database_list").fetchone()
        return {"now": now, "db": db[2] or ":memory:"}

    # ------------------------------------------------------------------
    # Readers for the projection engine
    # ------------------------------------------------------------------

    def player_reader(self) -> SqlitePlayerHistoryReader:
        return SqlitePlayerHistoryReader(self._conn)

    def defense_reader(self) -> SqliteDefenseAllowanceReader:
        return SqliteDefenseAllowanceReader(self._conn)

    # ------------------------------------------------------------------
    # Players
    # ------------------------------------------------------------------

    def list_players(
        self,
        q: str = "",
        position: str = "",
        leagues: Optional[List[str]] = None,
        limit: int = 30,
        offset: int = 0,
    ) -> Tuple[pd.DataFrame, bool]:
        """Page through players by name; returns (rows, has_more)."""
        leagues = leagues or ["nfl", "cfb"]
        placeholders = ", ".join("?" for _ in leagues)
        query = f"""
            SELECT player_id, player_name, image_url, position, league, slug
            FROM players
            WHERE league IN ({placeholders})
        """
        params: list = list(leagues)
        if q.strip():
            query += " AND player_name LIKE ?"
            params.append(f"%{q.strip()}%")
        if position.strip():
            query += " AND position = ?"
            params.append(position.strip().upper())
        query += " ORDER BY player_name ASC LIMIT ? OFFSET ?"
        params += [limit + 1, offset]

        df = pd.read_sql_query(query, self._conn, params=params)
        has_more = len(df) > limit
        return df.head(limit), has_more

    def get_player_by_slug(self, slug: str) -> Optional[Dict]:
        df = pd.read_sql_query(
            """
            SELECT player_id, player_name, image_url, position, league, slug
            FROM players
            WHERE slug = ?
            LIMIT 1
            """,
            self._conn,
            params=(slug,),
        )
        if df.empty:
            return None
        return df.iloc[0].to_dict()

    def upsert_player(
        self,
        player_name: str,
        position: Optional[str] = None,
        league: str = "nfl",
        external_id: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> str:
        """
        Insert a player or update the position of the existing slug; returns player_id.

        Left uncommitted; the caller or the store context commits.
        """
        slug = slugify(player_name, external_id)
        pos = position.upper() if position else None
        self._conn.execute(
            """
            INSERT INTO players (player_id, player_name, image_url, position, league, slug)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT (slug) DO UPDATE SET position = excluded.position
            """,
            (str(uuid.uuid4()), player_name, image_url, pos, league, slug),
        )
        row = self._conn.execute("SELECT player_id FROM players WHERE slug = ?", (slug,)).fetchone()
        return row[0]

    # ------------------------------------------------------------------
    # Game stats
    # ------------------------------------------------------------------

    def get_game_stats(self, player_id: str) -> pd.DataFrame:
        return pd.read_sql_query(
            """
            SELECT id, player_id, season, week, game_date, opponent, opp_abbr,
                   pass_yds, rush_yds, rec_yds, pass_td, interceptions
            FROM game_stats
            WHERE player_id = ?
            ORDER BY season ASC, week ASC
            """,
            self._conn,
            params=(player_id,),
        )

    def replace_game_stat(self, player_id: str, row: Mapping) -> None:
        season, week = int(row["season"]), int(row["week"])
        self._conn.execute(
            "DELETE FROM game_stats WHERE player_id = ? AND season = ? AND week = ?",
            (player_id, season, week),
        )
        opp_abbr = row.get("opp_abbr")
        opponent = row.get("opponent")
        game_date = row.get("game_date")
        self._conn.execute(
            """
            INSERT INTO game_stats
                (player_id, season, week, game_date, opponent, opp_abbr,
                 pass_yds, rush_yds, rec_yds, pass_td, interceptions)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                player_id,
                season,
                week,
                game_date if isinstance(game_date, str) and game_date else None,
                opponent if isinstance(opponent, str) and opponent else None,
                opp_abbr.upper() if isinstance(opp_abbr, str) and opp_abbr else None,
                *[_int_or_zero(row.get(col)) for col in GAME_METRICS],
            ),
        )

    # ------------------------------------------------------------------
    # Defense
    # ------------------------------------------------------------------

    def get_defense_teams(self) -> List[str]:
        rows = self._conn.execute(
            "SELECT DISTINCT team_abbr FROM defense_stats ORDER BY team_abbr ASC"
        ).fetchall()
        return [r[0] for r in rows]

    def replace_defense_stat(self, row: Mapping) -> None:
        team = str(row["team_abbr"]).upper()
        season, week = int(row["season"]), int(row["week"])
        self._conn.execute(
            "DELETE FROM defense_stats WHERE team_abbr = ? AND season = ? AND week = ?",
            (team, season, week),
        )
        self._conn.execute(
            """
            INSERT INTO defense_stats
                (team_abbr, season, week, pass_yds_allowed, rush_yds_allowed, rec_yds_allowed)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (team, season, week, *[_int_or_zero(row.get(col)) for col in DEFENSE_METRICS]),
        )

    def commit(self) -> None:
        self._conn.commit()
