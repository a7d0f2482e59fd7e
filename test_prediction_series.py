"""Predicted-vs-actual series: every logged game predicted from earlier games only."""

import pytest

from props_app.projection.engine import predict_player_series, predict_series
from props_app.projection.errors import InvalidProjectionInput
from props_app.projection.models import BlendWeights, GameStat
from props_app.projection.readers import FrameDefenseAllowanceReader


@pytest.fixture
def no_defense():
    return FrameDefenseAllowanceReader.from_records([])


def test_first_game_never_sees_its_own_stats(no_defense):
    history = [
        GameStat("p1", 2024, 1, opp_abbr="BAL", pass_yds=300),
        GameStat("p1", 2024, 2, opp_abbr="CIN", pass_yds=100),
    ]
    series = predict_series(history, no_defense)

    first, second = series.rows
    # Empty trailing window and no opponent rows: nothing to predict
    assert first.pred_pass is None
    assert 1 not in series.pass_yds
    # Game 2 only knows game 1
    assert second.pred_pass == 180  # 0.6 * 300
    assert series.pass_yds == {2: 180}


def test_changing_a_games_own_value_does_not_move_its_prediction(no_defense):
    base = [
        GameStat("p1", 2024, 1, pass_yds=200),
        GameStat("p1", 2024, 2, pass_yds=250),
        GameStat("p1", 2024, 3, pass_yds=300),
    ]
    changed = base[:2] + [GameStat("p1", 2024, 3, pass_yds=999)]

    assert predict_series(base, no_defense).pass_yds[3] == predict_series(changed, no_defense).pass_yds[3]


def test_trailing_window_slides(no_defense):
    history = [GameStat("p1", 2024, w, pass_yds=y) for w, y in [(1, 100), (2, 200), (3, 300), (4, 400), (5, 500)]]
    series = predict_series(history, no_defense)
    # Week 5 uses weeks 2-4 only: mean 300
    assert series.pass_yds[5] == 180
    series2 = predict_series(history, no_defense, BlendWeights(trailing_window=1))
    assert series2.pass_yds[5] == 240


def test_opponent_lookup_bounded_by_each_games_week(defense_reader):
    history = [
        GameStat("p1", 2024, 2, opp_abbr="BAL", pass_yds=300),
        GameStat("p1", 2024, 3, opp_abbr="BAL", pass_yds=300),
    ]
    series = predict_series(history, defense_reader)
    # Week 2 vs BAL: no player history, BAL week 1 only (220)
    assert series.pass_yds[2] == 88
    # Week 3 vs BAL: player 300, BAL weeks 1-2 (230), week 3's 500 excluded
    assert series.pass_yds[3] == 272


def test_game_without_opponent_code_uses_player_form_only(defense_reader):
    history = [
        GameStat("p1", 2024, 1, opp_abbr="BAL", pass_yds=300),
        GameStat("p1", 2024, 2, opp_abbr=None, pass_yds=100),
    ]
    series = predict_series(history, defense_reader)
    assert series.pass_yds == {2: 180}


def test_history_sorted_before_folding(no_defense):
    history = [
        GameStat("p1", 2024, 2, pass_yds=100),
        GameStat("p1", 2024, 1, pass_yds=300),
    ]
    assert predict_series(history, no_defense).pass_yds == {2: 180}


def test_seeded_player_series(store, mahomes_id):
    series = predict_player_series(mahomes_id, store.player_reader(), store.defense_reader())
    assert series.pass_yds == {2: 286, 3: 286, 4: 292}
    assert series.rush_yds == {2: 59, 3: 55, 4: 60}
    assert series.rec_yds == {2: 71, 3: 78, 4: 76}
    assert [p.week for p in series.rows] == [1, 2, 3, 4]


def test_series_requires_player_id(no_defense, player_reader):
    with pytest.raises(InvalidProjectionInput):
        predict_player_series("  ", player_reader, no_defense)
