# -*- coding: utf-8 -*-
"""
Defense-Adjusted Projection Engine

Blends a player's recent form with what the opponent has been giving up.

Projection Formula (per metric: pass / rush / rec yards):
- PlayerMean: average of the player's last N games before the target game (N = 3)
- OppMean: average yards the opponent allowed over earlier weeks of the same season
- Projection = W_PLAYER * PlayerMean + W_OPP * OppMean   (0.6 / 0.4)

Missing history:
- Both means missing -> no projection (None)
- One mean missing   -> that term contributes 0

Also provides the rank-based what-if: baseline * defense factor * manual adjustment,
with the defense factor running from 1.15 (percentile 0+) down to 0.85 (percentile 100).
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from loguru import logger
from pydantic import ValidationError

from props_app.projection.errors import InvalidProjectionInput
from props_app.projection.models import (
    METRICS,
    AllowanceMeans,
    BlendWeights,
    DefenseAllowance,
    GameStat,
    PredictionSeries,
    ProjectionComponents,
    ProjectionResult,
    RankWhatIfInput,
    RankWhatIfResult,
    SeriesPoint,
    WhatIfQuery,
)

if TYPE_CHECKING:
    from props_app.projection.readers import DefenseAllowanceReader, PlayerHistoryReader

DEFAULT_WEIGHTS = BlendWeights()

# Rank-based defense factor: 1.15 at percentile 0, 0.85 at percentile 100
DEFENSE_FACTOR_MAX = 1.15
DEFENSE_FACTOR_SPAN = 0.30


def round_half_up(value: float, digits: int = 0) -> Union[int, float]:
    """Round halves upward (2.5 -> 3, 212.25 -> 212.3 at one digit)."""
    if digits == 0:
        return int(math.floor(value + 0.5))
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


# ============================================================================
# Trailing averages and opponent allowances
# ============================================================================

def trailing_average(values: Sequence[float], count: int = 3) -> Optional[float]:
    """
    Mean of the last `count` values (fewer if the history is shorter).

    Args:
        values: Chronological values, oldest first
        count: Window size, >= 1

    Returns:
        The mean, or None for an empty history
    """
    if count < 1:
        raise ValueError(f"trailing window must be >= 1, got {count}")
    if len(values) == 0:
        return None
    tail = list(values)[-count:]
    return sum(tail) / len(tail)


def opponent_allowance_means(
    rows: Iterable[DefenseAllowance],
    season: int,
    before_week: int,
) -> AllowanceMeans:
    """
    Unweighted mean of a team's weekly allowances for weeks < before_week in `season`.

    Later weeks and other seasons are ignored so the game being projected never
    sees its own result.
    """
    prior = [r for r in rows if r.season == season and r.week < before_week]
    if not prior:
        return AllowanceMeans.empty()
    n = len(prior)
    return AllowanceMeans(
        pass_yds=sum(r.pass_yds_allowed for r in prior) / n,
        rush_yds=sum(r.rush_yds_allowed for r in prior) / n,
        rec_yds=sum(r.rec_yds_allowed for r in prior) / n,
    )


def blend(
    player_mean: Optional[float],
    opponent_mean: Optional[float],
    w_player: float = DEFAULT_WEIGHTS.w_player,
    w_opp: float = DEFAULT_WEIGHTS.w_opp,
) -> Optional[float]:
    """Weighted blend; a missing side counts as 0 unless both are missing."""
    if player_mean is None and opponent_mean is None:
        return None
    return w_player * (player_mean or 0.0) + w_opp * (opponent_mean or 0.0)


def _player_means(games: Sequence[GameStat], window: int) -> Dict[str, Optional[float]]:
    return {key: trailing_average([g.metric(key) for g in games], window) for key in METRICS}


def _blend_all(
    player_means: Mapping[str, Optional[float]],
    opp: AllowanceMeans,
    weights: BlendWeights,
) -> Dict[str, Optional[int]]:
    out: Dict[str, Optional[int]] = {}
    for key in METRICS:
        value = blend(player_means[key], opp.get(key), weights.w_player, weights.w_opp)
        out[key] = None if value is None else round_half_up(value)
    return out


# ============================================================================
# What-if: data-driven
# ============================================================================

def validate_whatif(payload: Union[WhatIfQuery, Mapping]) -> WhatIfQuery:
    """Coerce a request payload into a WhatIfQuery or raise InvalidProjectionInput."""
    if isinstance(payload, WhatIfQuery):
        return payload
    if not isinstance(payload, Mapping):
        raise InvalidProjectionInput("what-if request must be an object")
    try:
        return WhatIfQuery.model_validate(dict(payload))
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise InvalidProjectionInput(f"invalid what-if request: {fields}") from e


def project_whatif(
    query: Union[WhatIfQuery, Mapping],
    players: "PlayerHistoryReader",
    defenses: "DefenseAllowanceReader",
    weights: BlendWeights = DEFAULT_WEIGHTS,
) -> ProjectionResult:
    """
    Project pass/rush/rec yards for a player facing `team_abbr` in (season, week).

    Player form uses every game before the target, across seasons. Opponent form uses
    only earlier weeks of the target season. Blended values are rounded to integers.
    """
    q = validate_whatif(query)

    history = players.history(q.player_id, before=(q.season, q.week))
    player_means = _player_means(history, weights.trailing_window)
    opp = defenses.allowance_means(q.team_abbr, q.season, q.week)
    blended = _blend_all(player_means, opp, weights)

    logger.debug(
        f"What-if {q.player_id} vs {q.team_abbr} {q.season} wk{q.week}: "
        f"{len(history)} prior games -> {blended}"
    )

    return ProjectionResult(
        pass_yds=blended["passYds"],
        rush_yds=blended["rushYds"],
        rec_yds=blended["recYds"],
        components=ProjectionComponents(
            player_mean=player_means,
            opponent_mean=opp.as_dict(),
            games_used=min(len(history), weights.trailing_window),
            w_player=weights.w_player,
            w_opp=weights.w_opp,
            trailing_window=weights.trailing_window,
        ),
    )


# ============================================================================
# What-if: rank-based
# ============================================================================

def defense_factor(opp_defense: float) -> float:
    """
    Linear factor from an opponent rank/percentile value, clamped to [0, 100].

    Higher values shrink the projection (100 -> 0.85, 50 -> 1.0, near 0 -> 1.15).
    A value of 0 or below means no rank was supplied and gives 1.0.
    """
    if opp_defense > 0:
        clamped = max(0.0, min(100.0, opp_defense))
        return DEFENSE_FACTOR_MAX - clamped / 100 * DEFENSE_FACTOR_SPAN
    return 1.0


def rank_adjusted_projection(payload: Union[RankWhatIfInput, Mapping]) -> RankWhatIfResult:
    """baseline * defense factor * (1 + adjustment%), rounded to one decimal."""
    if isinstance(payload, RankWhatIfInput):
        inp = payload
    else:
        try:
            inp = RankWhatIfInput.model_validate(dict(payload))
        except (TypeError, ValueError) as e:
            raise InvalidProjectionInput(f"invalid rank what-if request: {e}") from e

    factor = defense_factor(inp.opp_defense)
    user_factor = 1 + inp.adjustment / 100 if inp.adjustment else 1.0
    projection = inp.baseline * factor * user_factor

    return RankWhatIfResult(
        projection=round_half_up(projection, 1),
        defense_factor=factor,
        user_factor=user_factor,
        inputs=inp,
    )


# ============================================================================
# Full-series predictions
# ============================================================================

def predict_series(
    history: Sequence[GameStat],
    defenses: "DefenseAllowanceReader",
    weights: BlendWeights = DEFAULT_WEIGHTS,
) -> PredictionSeries:
    """
    Predict every game already on record, as if made just before kickoff.

    Each game only sees the games before it: its trailing window is a slice of the
    preceding games, and its opponent lookup stops at its own week.
    """
    games: List[GameStat] = sorted(history, key=lambda g: (g.season, g.week))
    window = weights.trailing_window
    series = PredictionSeries()

    for i, game in enumerate(games):
        prior = games[max(0, i - window):i]
        player_means = _player_means(prior, window)

        if game.opp_abbr:
            opp = defenses.allowance_means(game.opp_abbr, game.season, game.week)
        else:
            logger.warning(
                f"No opponent code for {game.player_id} {game.season} wk{game.week}; "
                "projecting from player form only"
            )
            opp = AllowanceMeans.empty()

        blended = _blend_all(player_means, opp, weights)
        point = SeriesPoint(
            season=game.season,
            week=game.week,
            pred_pass=blended["passYds"],
            pred_rush=blended["rushYds"],
            pred_rec=blended["recYds"],
        )
        series.rows.append(point)

        for key in METRICS:
            value = point.get(key)
            if value is not None:
                series.for_metric(key)[game.week] = value

    logger.debug(f"Predicted {len(series.rows)} games")
    return series


def predict_player_series(
    player_id: str,
    players: "PlayerHistoryReader",
    defenses: "DefenseAllowanceReader",
    weights: BlendWeights = DEFAULT_WEIGHTS,
) -> PredictionSeries:
    if not player_id or not str(player_id).strip():
        raise InvalidProjectionInput("player id is required")
    return predict_series(players.history(str(player_id).strip()), defenses, weights)
