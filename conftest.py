import pytest

from props_app.config import AppConfig
from props_app.db.seed import seed_demo
from props_app.db.store import StatsStore
from props_app.projection.models import DefenseAllowance, GameStat
from props_app.projection.readers import FrameDefenseAllowanceReader, FramePlayerHistoryReader


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "props.db"


@pytest.fixture
def store(db_path):
    with StatsStore(db_path) as s:
        seed_demo(s)
        yield s


@pytest.fixture
def mahomes_id(store):
    return store.get_player_by_slug("patrick-mahomes")["player_id"]


@pytest.fixture
def config(db_path):
    return AppConfig(db_path=db_path)


@pytest.fixture
def games():
    return [
        GameStat("p1", 2023, 17, opp_abbr="DEN", pass_yds=200, rush_yds=10, rec_yds=0),
        GameStat("p1", 2024, 1, opp_abbr="BAL", pass_yds=300, rush_yds=20, rec_yds=0),
        GameStat("p1", 2024, 2, opp_abbr="CIN", pass_yds=250, rush_yds=30, rec_yds=0),
        GameStat("p1", 2024, 3, opp_abbr="BAL", pass_yds=350, rush_yds=40, rec_yds=0),
        GameStat("p2", 2024, 1, opp_abbr="CIN", pass_yds=0, rush_yds=80, rec_yds=45),
    ]


@pytest.fixture
def allowances():
    return [
        DefenseAllowance("BAL", 2023, 17, 400, 200, 300),
        DefenseAllowance("BAL", 2024, 1, 220, 100, 160),
        DefenseAllowance("BAL", 2024, 2, 240, 120, 180),
        DefenseAllowance("BAL", 2024, 3, 500, 300, 400),
        DefenseAllowance("CIN", 2024, 1, 250, 110, 170),
    ]


@pytest.fixture
def player_reader(games):
    return FramePlayerHistoryReader.from_records(games)


@pytest.fixture
def defense_reader(allowances):
    return FrameDefenseAllowanceReader.from_records(allowances)
