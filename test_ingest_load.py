"""Loading normalized game and defense rows into SQLite."""

import sqlite3

import pandas as pd
import pytest

from props_app.db.store import StatsStore
from props_app.ingest.load import LoadConfig, derive_defense_allowances, read_table, run_load


@pytest.fixture
def game_rows():
    return pd.DataFrame(
        [
            {"Player_Name": "Joe Burrow", "Position": "qb", "External_ID": "3915511", "Season": 2024,
             "Week": 1, "Opp_Abbr": "ne", "Pass_Yds": 164, "Rush_Yds": 0},
            {"Player_Name": "Joe Burrow", "Position": "qb", "External_ID": "3915511", "Season": 2024,
             "Week": 2, "Opp_Abbr": "KC", "Pass_Yds": 258, "Rush_Yds": 12},
            {"Player_Name": "Ja'Marr Chase", "Position": "WR", "External_ID": "4362628", "Season": 2024,
             "Week": 2, "Opp_Abbr": "KC", "Rec_Yds": 35},
            {"Player_Name": "Chase Brown", "Position": "RB", "External_ID": None, "Season": 2024,
             "Week": 2, "Opp_Abbr": None, "Rush_Yds": 40},
        ]
    )


def test_read_table_lowercases_and_checks_columns(tmp_path, game_rows):
    path = tmp_path / "games.csv"
    game_rows.to_csv(path, index=False)
    df = read_table(path, ["player_name", "season", "week"])
    assert "pass_yds" in df.columns
    with pytest.raises(ValueError):
        read_table(path, ["team_abbr"])


def test_read_table_rejects_unknown_extension(tmp_path):
    path = tmp_path / "games.txt"
    path.write_text("x")
    with pytest.raises(ValueError):
        read_table(path)


def test_derive_defense_allowances(game_rows):
    games = game_rows.rename(columns=str.lower)
    df = derive_defense_allowances(games)
    assert sorted(df["team_abbr"]) == ["KC", "NE"]
    kc = df[df["team_abbr"] == "KC"].iloc[0]
    assert kc["pass_yds_allowed"] == 258
    assert kc["rush_yds_allowed"] == 12
    assert kc["rec_yds_allowed"] == 35


def test_derive_without_opponent_column_is_empty():
    df = derive_defense_allowances(pd.DataFrame({"season": [2024], "week": [1]}))
    assert df.empty


def test_run_load_end_to_end(tmp_path, game_rows):
    path = tmp_path / "games.csv"
    game_rows.to_csv(path, index=False)
    db = tmp_path / "props.db"

    res = run_load(LoadConfig(db_path=db, game_stats_path=path, derive_defense=True))
    assert (res.players, res.game_rows, res.defense_rows) == (3, 4, 2)

    # Re-running replaces rows instead of duplicating them
    res = run_load(LoadConfig(db_path=db, game_stats_path=path, derive_defense=True))
    with StatsStore(db) as store:
        burrow = store.get_player_by_slug("joe-burrow-3915511")
        games = store.get_game_stats(burrow["player_id"])
        assert len(games) == 2
        assert games.iloc[0]["opp_abbr"] == "NE"
        assert store.get_defense_teams() == ["KC", "NE"]
        assert store.get_player_by_slug("chase-brown") is not None


def test_run_load_week_filter(tmp_path, game_rows):
    path = tmp_path / "games.parquet"
    game_rows.to_parquet(path, index=False)
    res = run_load(LoadConfig(db_path=tmp_path / "p.db", game_stats_path=path, weeks=[1]))
    assert res.game_rows == 1
    assert res.defense_rows == 0


def _count(db, table):
    with sqlite3.connect(db) as conn:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


def test_failed_load_leaves_no_partial_rows(tmp_path):
    path = tmp_path / "games.csv"
    pd.DataFrame(
        [
            {"player_name": "Joe Burrow", "league": "nfl", "season": 2024, "week": 1, "pass_yds": 164},
            {"player_name": "Vince Young", "league": "xfl", "season": 2024, "week": 2, "pass_yds": 258},
        ]
    ).to_csv(path, index=False)
    db = tmp_path / "props.db"

    with pytest.raises(sqlite3.IntegrityError):
        run_load(LoadConfig(db_path=db, game_stats_path=path, derive_defense=True))

    assert _count(db, "game_stats") == 0
    assert _count(db, "players") == 0
    assert _count(db, "defense_stats") == 0


def test_failed_reload_keeps_previous_rows(tmp_path, game_rows):
    good = tmp_path / "games.csv"
    game_rows.to_csv(good, index=False)
    db = tmp_path / "props.db"
    run_load(LoadConfig(db_path=db, game_stats_path=good))

    bad = tmp_path / "bad.csv"
    pd.DataFrame(
        [
            {"player_name": "Joe Burrow", "external_id": "3915511", "season": 2024, "week": 1,
             "pass_yds": 999},
            {"player_name": "Vince Young", "league": "xfl", "season": 2024, "week": 3, "pass_yds": 1},
        ]
    ).to_csv(bad, index=False)
    with pytest.raises(sqlite3.IntegrityError):
        run_load(LoadConfig(db_path=db, game_stats_path=bad))

    with StatsStore(db) as store:
        burrow = store.get_player_by_slug("joe-burrow-3915511")
        games = store.get_game_stats(burrow["player_id"])
    assert games["pass_yds"].tolist() == [164, 258]
    assert _count(db, "game_stats") == 4
