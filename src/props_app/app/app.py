from __future__ import annotations

from typing import Dict, Optional

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from props_app.config import load_config
from props_app.db.store import StatsStore
from props_app.projection.engine import predict_player_series, project_whatif
from props_app.projection.errors import ProjectionError
from props_app.props import PROP_METRICS, hit_rate, projection_vs_line

CFG = load_config()

CHART_METRICS: Dict[str, str] = {
    "passYds": "Pass Yards",
    "rushYds": "Rush Yards",
    "recYds": "Receiving Yards",
    "passTd": "Pass TD",
    "interceptions": "Interceptions",
}


@st.cache_data(show_spinner=False)
def load_players(q: str, pos: str, league: str) -> pd.DataFrame:
    leagues = [league] if league else CFG.leagues
    with StatsStore(CFG.db_path) as store:
        df, _ = store.list_players(q=q, position=pos, leagues=leagues, limit=500)
    return df


@st.cache_data(show_spinner=False)
def load_games(player_id: str) -> pd.DataFrame:
    with StatsStore(CFG.db_path) as store:
        return store.get_game_stats(player_id)


@st.cache_data(show_spinner=False)
def load_defense_teams() -> list:
    with StatsStore(CFG.db_path) as store:
        return store.get_defense_teams()


@st.cache_data(show_spinner=False)
def load_predictions(player_id: str) -> pd.DataFrame:
    with StatsStore(CFG.db_path) as store:
        series = predict_player_series(
            player_id, store.player_reader(), store.defense_reader(), CFG.weights
        )
    rows = [
        {"season": p.season, "week": p.week, "passYds": p.pred_pass, "rushYds": p.pred_rush, "recYds": p.pred_rec}
        for p in series.rows
    ]
    return pd.DataFrame(rows)


def _game_label(df: pd.DataFrame) -> pd.Series:
    opp = df["opponent"].fillna(df["opp_abbr"]).fillna("")
    return df["season"].astype(str) + " W" + df["week"].astype(str) + " " + opp


def render_metric_chart(games: pd.DataFrame, preds: pd.DataFrame, key: str, line: Optional[float]) -> None:
    col = PROP_METRICS[key]
    labels = _game_label(games)
    values = games[col].fillna(0)

    colors = "#3498db"
    if line is not None:
        colors = ["#2ecc71" if v >= line else "#e74c3c" for v in values]

    fig = go.Figure()
    fig.add_trace(go.Bar(name="Actual", x=labels, y=values, marker_color=colors))

    if key in ("passYds", "rushYds", "recYds") and not preds.empty:
        merged = games[["season", "week"]].merge(preds, on=["season", "week"], how="left")
        fig.add_trace(go.Scatter(
            name="Predicted",
            x=labels,
            y=merged[key],
            mode="lines+markers",
            line=dict(color="#f39c12", dash="dot"),
        ))

    if line is not None:
        fig.add_hline(y=line, line_dash="dash", line_color="#7f8c8d", annotation_text=f"Line {line:g}")

    fig.update_layout(
        title=CHART_METRICS[key],
        height=360,
        hovermode="x unified",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
    )
    st.plotly_chart(fig, use_container_width=True)

    rate = hit_rate(values.tolist(), line)
    if rate.pct is not None:
        st.caption(f"Hit rate: {rate.hits}/{rate.total} ({rate.pct}%)")


def render_whatif(player_id: str, games: pd.DataFrame, lines: Dict[str, Optional[float]]) -> None:
    st.subheader("What-If vs Defense")
    teams = load_defense_teams()
    if not teams:
        st.info("No defense rows loaded yet.")
        return

    default_season = int(games["season"].max()) if not games.empty else 2024
    c1, c2, c3 = st.columns(3)
    with c1:
        season = st.number_input("Season", value=default_season, step=1)
    with c2:
        week = st.number_input("Week", value=5, min_value=1, max_value=22, step=1)
    with c3:
        team = st.selectbox("Defense", teams, index=0)

    if not st.button("Predict"):
        return

    try:
        with StatsStore(CFG.db_path) as store:
            result = project_whatif(
                {"playerId": player_id, "teamAbbr": team, "season": int(season), "week": int(week)},
                store.player_reader(),
                store.defense_reader(),
                CFG.weights,
            )
    except ProjectionError as e:
        st.error(str(e))
        return

    cols = st.columns(3)
    for col, key in zip(cols, ("passYds", "rushYds", "recYds")):
        value = result.get(key)
        hit = projection_vs_line(value, lines.get(key))
        delta = None if hit is None else ("over line" if hit else "under line")
        with col:
            st.metric(CHART_METRICS[key], "—" if value is None else f"{value}", delta=delta)

    with st.expander("Components"):
        st.json(result.components.as_dict())


st.set_page_config(page_title="Player Props", page_icon="🏈", layout="wide")
st.title("Player Stats & Prop Lines")

with st.sidebar:
    q = st.text_input("Search by name", "")
    pos = st.selectbox("Position", ["", "QB", "RB", "WR", "TE"], index=0)
    league = st.selectbox(
        "League", [""] + CFG.leagues, index=0, format_func=lambda v: v.upper() if v else "All"
    )
    players = load_players(q, pos, league)
    if players.empty:
        st.warning("No players found.")
        st.stop()
    names = players["player_name"].tolist()
    choice = st.selectbox("Player", names, index=0)

player = players[players["player_name"] == choice].iloc[0]
games = load_games(player["player_id"])

st.header(f"{player['player_name']} ({player['position'] or '—'}, {player['league'].upper()})")

if games.empty:
    st.info("No games on record.")
    st.stop()

preds = load_predictions(player["player_id"])

lines: Dict[str, Optional[float]] = {}
line_cols = st.columns(len(CHART_METRICS))
for col, (key, label) in zip(line_cols, CHART_METRICS.items()):
    with col:
        raw = st.text_input(f"{label} line", "", key=f"line_{key}")
        try:
            lines[key] = float(raw) if raw.strip() else None
        except ValueError:
            st.error("Not a number")
            lines[key] = None

for key in CHART_METRICS:
    if games[PROP_METRICS[key]].fillna(0).sum() == 0 and lines.get(key) is None:
        continue
    render_metric_chart(games, preds, key, lines.get(key))

st.dataframe(games.drop(columns=["id", "player_id"]), hide_index=True, use_container_width=True)

st.divider()
render_whatif(player["player_id"], games, lines)
