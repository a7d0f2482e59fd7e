"""HTTP contracts of the Flask API."""

import sqlite3

import pytest

from props_app.app.api import create_app
from props_app.config import AppConfig
from props_app.db.store import StatsStore


@pytest.fixture
def app(store, config):
    store.commit()
    app = create_app(config)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


def test_whatif_health(client):
    resp = client.get("/api/whatif")
    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True}


def test_whatif_data_driven(client, mahomes_id):
    resp = client.post(
        "/api/whatif",
        json={"playerId": mahomes_id, "teamAbbr": "BAL", "season": 2024, "week": 5},
    )
    assert resp.status_code == 200
    data = resp.get_json()
    assert (data["passYds"], data["rushYds"], data["recYds"]) == (279, 53, 68)
    assert data["components"]["gamesUsed"] == 3
    assert data["components"]["opponentMean"]["passYds"] == pytest.approx(232.5)


def test_whatif_week_one_is_null(client, mahomes_id):
    resp = client.post(
        "/api/whatif",
        json={"playerId": mahomes_id, "teamAbbr": "BAL", "season": 2024, "week": 1},
    )
    data = resp.get_json()
    assert resp.status_code == 200
    assert data["passYds"] is None and data["rushYds"] is None and data["recYds"] is None


def test_whatif_rank_mode(client):
    resp = client.post("/api/whatif", json={"statKey": "pass_yds", "baseline": 250, "oppDefense": 100})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["projection"] == 212.5
    assert data["method"] == "baseline*adj"


@pytest.mark.parametrize(
    "body",
    [
        {"playerId": "x", "teamAbbr": "BAL", "season": 2024, "week": 0},
        {"teamAbbr": "BAL", "season": 2024, "week": 2},
        {"baseline": "lots"},
    ],
)
def test_whatif_invalid_input(client, body):
    resp = client.post("/api/whatif", json=body)
    assert resp.status_code == 400
    assert "error" in resp.get_json()


def test_whatif_unparseable_body(client):
    resp = client.post("/api/whatif", data="not json", content_type="application/json")
    assert resp.status_code == 400


def test_whatif_read_failure_is_not_no_data(tmp_path):
    empty_db = tmp_path / "empty.db"
    app = create_app(AppConfig(db_path=empty_db))
    with app.test_client() as client:
        resp = client.post(
            "/api/whatif", json={"playerId": "p1", "teamAbbr": "BAL", "season": 2024, "week": 3}
        )
    assert resp.status_code == 502


def test_players_list_and_search(client):
    data = client.get("/api/players").get_json()
    assert [p["slug"] for p in data["players"]] == ["josh-allen", "patrick-mahomes"]
    assert data["hasMore"] is False
    data = client.get("/api/players?q=allen&pos=qb").get_json()
    assert [p["player_name"] for p in data["players"]] == ["Josh Allen"]


def test_players_filtered_by_league(client, store):
    store.upsert_player("Jalen Milroe", position="QB", league="cfb")
    store.commit()

    data = client.get("/api/players?league=cfb").get_json()
    assert [p["slug"] for p in data["players"]] == ["jalen-milroe"]
    data = client.get("/api/players?league=NFL").get_json()
    assert [p["slug"] for p in data["players"]] == ["josh-allen", "patrick-mahomes"]
    assert len(client.get("/api/players").get_json()["players"]) == 3

    resp = client.get("/api/players?league=xfl")
    assert resp.status_code == 400
    assert "error" in resp.get_json()


def test_player_detail(client):
    data = client.get("/api/players/josh-allen").get_json()
    assert data["player"]["player_name"] == "Josh Allen"
    assert [g["week"] for g in data["games"]] == [1, 2, 3, 4]
    assert client.get("/api/players/nobody").status_code == 404


def test_player_predictions(client):
    data = client.get("/api/players/patrick-mahomes/predictions").get_json()
    assert data["passYds"] == {"2": 286, "3": 286, "4": 292}
    assert "1" not in data["rushYds"]


def test_player_hit_rates(client):
    resp = client.get("/api/players/patrick-mahomes/hit-rates?passYds=299&passTd=2.5")
    data = resp.get_json()
    assert data["passYds"] == {"hits": 3, "total": 4, "pct": 75}
    assert data["passTd"]["hits"] == 1
    assert client.get("/api/players/patrick-mahomes/hit-rates?passYds=abc").status_code == 400


def test_defense_teams(client):
    assert client.get("/api/defense-teams").get_json()["teams"][:2] == ["BAL", "CIN"]


def test_dbcheck(client):
    data = client.get("/api/dbcheck").get_json()
    assert data["ok"] is True


class UnreachableStore(StatsStore):
    def ping(self):
        raise sqlite3.OperationalError("unable to open database file")


def test_dbcheck_failure(tmp_path):
    app = create_app(
        AppConfig(db_path=tmp_path / "x.db"),
        store_factory=lambda: UnreachableStore(tmp_path / "x.db"),
    )
    with app.test_client() as client:
        resp = client.get("/api/dbcheck")
    assert resp.status_code == 500
    assert resp.get_json()["ok"] is False
