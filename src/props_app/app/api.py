"""
JSON API over the stats database and the projection engine.

Routes:
- GET  /api/whatif                      health check
- POST /api/whatif                      data-driven (playerId/teamAbbr/season/week)
                                        or rank-based (baseline/oppDefense/adjustment)
- GET  /api/players                     ?q=&pos=&league=&page=
- GET  /api/players/<slug>              player + game log
- GET  /api/players/<slug>/predictions  predicted yards for every logged week
- GET  /api/players/<slug>/hit-rates    ?passYds=250.5&rushYds=...
- GET  /api/defense-teams
- GET  /api/dbcheck
"""

from __future__ import annotations

from typing import Callable, Optional

from flask import Flask, current_app, jsonify, request
from loguru import logger

from props_app.config import AppConfig, load_config
from props_app.db.store import StatsStore
from props_app.projection.engine import predict_player_series, project_whatif, rank_adjusted_projection
from props_app.projection.errors import InvalidProjectionInput, ReaderError
from props_app.props import PROP_METRICS, hit_rates_for_player


def _config() -> AppConfig:
    return current_app.config["PROPS_CONFIG"]


def _store() -> StatsStore:
    return current_app.config["STORE_FACTORY"]()


def _player_or_404(store: StatsStore, slug: str):
    player = store.get_player_by_slug(slug)
    if player is None:
        return None, (jsonify({"error": f"player not found: {slug}"}), 404)
    return player, None


def whatif_health():
    return jsonify({"ok": True})


def whatif():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({"error": "Bad Request"}), 400

    if "baseline" in body and "playerId" not in body:
        result = rank_adjusted_projection(body)
        return jsonify(result.as_dict())

    cfg = _config()
    with _store() as store:
        result = project_whatif(body, store.player_reader(), store.defense_reader(), cfg.weights)
    return jsonify(result.as_dict())


def list_players():
    cfg = _config()
    q = request.args.get("q", "")
    pos = request.args.get("pos", "")
    league = request.args.get("league", "").strip().lower()
    if league and league not in cfg.leagues:
        return jsonify({"error": f"unknown league: {league}"}), 400
    leagues = [league] if league else cfg.leagues
    try:
        page = max(1, int(request.args.get("page", 1)))
    except ValueError:
        page = 1
    limit = cfg.page_size

    with _store() as store:
        df, has_more = store.list_players(
            q=q, position=pos, leagues=leagues, limit=limit, offset=(page - 1) * limit
        )
    return jsonify({"players": df.to_dict("records"), "page": page, "hasMore": has_more})


def player_detail(slug: str):
    with _store() as store:
        player, err = _player_or_404(store, slug)
        if err:
            return err
        games = store.get_game_stats(player["player_id"])
    games = games.astype(object).where(games.notna(), None)
    return jsonify({"player": player, "games": games.to_dict("records")})


def player_predictions(slug: str):
    cfg = _config()
    with _store() as store:
        player, err = _player_or_404(store, slug)
        if err:
            return err
        series = predict_player_series(
            player["player_id"], store.player_reader(), store.defense_reader(), cfg.weights
        )
    out = {key: {str(week): value for week, value in weeks.items()} for key, weeks in series.as_dict().items()}
    return jsonify(out)


def player_hit_rates(slug: str):
    lines = {}
    for key in PROP_METRICS:
        raw = request.args.get(key)
        if raw is None or raw == "":
            continue
        try:
            lines[key] = float(raw)
        except ValueError:
            return jsonify({"error": f"invalid line for {key}: {raw}"}), 400

    with _store() as store:
        player, err = _player_or_404(store, slug)
        if err:
            return err
        games = store.get_game_stats(player["player_id"])
    rates = hit_rates_for_player(games, lines)
    return jsonify({key: rate.as_dict() for key, rate in rates.items()})


def defense_teams():
    with _store() as store:
        return jsonify({"teams": store.get_defense_teams()})


def dbcheck():
    try:
        with _store() as store:
            ping = store.ping()
    except Exception as e:
        logger.error(f"Database check failed: {e}")
        return jsonify({"ok": False, "error": str(e)}), 500
    return jsonify({"ok": True, "db": ping})


def _invalid_input(e: InvalidProjectionInput):
    return jsonify({"error": str(e)}), 400


def _reader_failed(e: ReaderError):
    logger.error(f"Projection read failed: {e}")
    return jsonify({"error": str(e)}), 502


def create_app(
    config: Optional[AppConfig] = None,
    store_factory: Optional[Callable[[], StatsStore]] = None,
) -> Flask:
    cfg = config or load_config()
    app = Flask(__name__)
    app.config["PROPS_CONFIG"] = cfg
    app.config["STORE_FACTORY"] = store_factory or (lambda: StatsStore(cfg.db_path))

    app.add_url_rule("/api/whatif", view_func=whatif_health, methods=["GET"])
    app.add_url_rule("/api/whatif", view_func=whatif, methods=["POST"])
    app.add_url_rule("/api/players", view_func=list_players, methods=["GET"])
    app.add_url_rule("/api/players/<slug>", view_func=player_detail, methods=["GET"])
    app.add_url_rule("/api/players/<slug>/predictions", view_func=player_predictions, methods=["GET"])
    app.add_url_rule("/api/players/<slug>/hit-rates", view_func=player_hit_rates, methods=["GET"])
    app.add_url_rule("/api/defense-teams", view_func=defense_teams, methods=["GET"])
    app.add_url_rule("/api/dbcheck", view_func=dbcheck, methods=["GET"])

    app.register_error_handler(InvalidProjectionInput, _invalid_input)
    app.register_error_handler(ReaderError, _reader_failed)
    return app


if __name__ == "__main__":
    app = create_app()
    print("=" * 50)
    print("STARTING PROPS API")
    print("Open browser to: http://127.0.0.1:5000/api/players")
    print("=" * 50)
    app.run(host="127.0.0.1", port=5000, debug=False, threaded=True, use_reloader=False)
