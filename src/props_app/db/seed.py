"""Demo rows: two quarterbacks and eight defenses over 2024 weeks 1-4."""

from __future__ import annotations

from loguru import logger

from props_app.db.store import StatsStore

SEASON = 2024

# (week, opp_abbr, home?, pass_yds, rush_yds, rec_yds, pass_td, interceptions)
DEMO_GAMES = {
    ("Patrick Mahomes", "QB"): [
        (1, "BAL", True, 312, 24, 0, 2, 1),
        (2, "CIN", False, 285, 18, 0, 2, 0),
        (3, "LAC", True, 348, 12, 0, 3, 1),
        (4, "LV", False, 299, 33, 0, 2, 0),
    ],
    ("Josh Allen", "QB"): [
        (1, "MIA", False, 276, 45, 0, 2, 1),
        (2, "NE", True, 334, 39, 0, 3, 2),
        (3, "NYJ", False, 301, 52, 0, 2, 0),
        (4, "PIT", True, 267, 28, 0, 1, 0),
    ],
}

# team -> (pass base, pass step, rush base, rush step, rec base, rec step)
DEMO_DEFENSES = {
    "BAL": (220, 5, 95, 2, 160, 4),
    "CIN": (245, 3, 110, 1, 175, 2),
    "LAC": (265, 2, 102, 2, 190, 3),
    "LV": (255, 1, 120, 1, 185, 2),
    "MIA": (230, 4, 100, 2, 170, 2),
    "NE": (215, 2, 105, 1, 155, 3),
    "NYJ": (205, 3, 98, 2, 150, 2),
    "PIT": (240, 2, 112, 2, 178, 3),
}


def seed_demo(store: StatsStore) -> int:
    """Write the demo players, games and allowances; returns game rows written."""
    store.init_schema()
    games = 0
    for (name, position), rows in DEMO_GAMES.items():
        player_id = store.upsert_player(name, position=position)
        for week, opp, home, pass_yds, rush_yds, rec_yds, pass_td, ints in rows:
            store.replace_game_stat(
                player_id,
                {
                    "season": SEASON,
                    "week": week,
                    "opponent": f"{'vs' if home else '@'} {opp}",
                    "opp_abbr": opp,
                    "pass_yds": pass_yds,
                    "rush_yds": rush_yds,
                    "rec_yds": rec_yds,
                    "pass_td": pass_td,
                    "interceptions": ints,
                },
            )
            games += 1

    for team, (p0, dp, r0, dr, c0, dc) in DEMO_DEFENSES.items():
        for week in (1, 2, 3, 4):
            store.replace_defense_stat(
                {
                    "team_abbr": team,
                    "season": SEASON,
                    "week": week,
                    "pass_yds_allowed": p0 + dp * week,
                    "rush_yds_allowed": r0 + dr * week,
                    "rec_yds_allowed": c0 + dc * week,
                }
            )

    store.commit()
    logger.info(f"Seeded {games} games and {len(DEMO_DEFENSES) * 4} defense rows")
    return games
