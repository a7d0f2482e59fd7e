from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

# Metric keys used in every result mapping, in display order.
METRICS: Tuple[str, ...] = ("passYds", "rushYds", "recYds")

# GameStat attribute behind each projected metric.
GAME_COLUMNS: Dict[str, str] = {
    "passYds": "pass_yds",
    "rushYds": "rush_yds",
    "recYds": "rec_yds",
}

# DefenseAllowance attribute behind each projected metric.
ALLOWANCE_COLUMNS: Dict[str, str] = {
    "passYds": "pass_yds_allowed",
    "rushYds": "rush_yds_allowed",
    "recYds": "rec_yds_allowed",
}


def _int_or_zero(value) -> int:
    if value is None or value != value:  # None or NaN
        return 0
    return int(value)


@dataclass(frozen=True)
class BlendWeights:
    """Blend weights and trailing window for defense-adjusted projections."""
    w_player: float = 0.6
    w_opp: float = 0.4
    trailing_window: int = 3


@dataclass(frozen=True)
class GameStat:
    """One player's stat line for one game."""
    player_id: str
    season: int
    week: int
    opp_abbr: Optional[str] = None
    opponent: Optional[str] = None
    pass_yds: int = 0
    rush_yds: int = 0
    rec_yds: int = 0
    pass_td: int = 0
    interceptions: int = 0

    @classmethod
    def from_row(cls, row: Dict) -> "GameStat":
        def _num(key: str) -> int:
            return _int_or_zero(row.get(key))

        opp_abbr = row.get("opp_abbr")
        if opp_abbr is not None and opp_abbr != opp_abbr:
            opp_abbr = None
        opponent = row.get("opponent")
        if opponent is not None and opponent != opponent:
            opponent = None
        return cls(
            player_id=str(row["player_id"]),
            season=int(row["season"]),
            week=int(row["week"]),
            opp_abbr=opp_abbr or None,
            opponent=opponent or None,
            pass_yds=_num("pass_yds"),
            rush_yds=_num("rush_yds"),
            rec_yds=_num("rec_yds"),
            pass_td=_num("pass_td"),
            interceptions=_num("interceptions"),
        )

    def metric(self, key: str) -> int:
        return getattr(self, GAME_COLUMNS[key])


@dataclass(frozen=True)
class DefenseAllowance:
    """Yards a defense gave up in a single game week."""
    team_abbr: str
    season: int
    week: int
    pass_yds_allowed: int = 0
    rush_yds_allowed: int = 0
    rec_yds_allowed: int = 0

    @classmethod
    def from_row(cls, row: Dict) -> "DefenseAllowance":
        return cls(
            team_abbr=str(row["team_abbr"]),
            season=int(row["season"]),
            week=int(row["week"]),
            pass_yds_allowed=_int_or_zero(row.get("pass_yds_allowed")),
            rush_yds_allowed=_int_or_zero(row.get("rush_yds_allowed")),
            rec_yds_allowed=_int_or_zero(row.get("rec_yds_allowed")),
        )


@dataclass(frozen=True)
class AllowanceMeans:
    """Average yards allowed per game over earlier weeks of a season."""
    pass_yds: Optional[float] = None
    rush_yds: Optional[float] = None
    rec_yds: Optional[float] = None

    @classmethod
    def empty(cls) -> "AllowanceMeans":
        return cls()

    def get(self, key: str) -> Optional[float]:
        return getattr(self, GAME_COLUMNS[key])

    def as_dict(self) -> Dict[str, Optional[float]]:
        return {key: self.get(key) for key in METRICS}


@dataclass(frozen=True)
class ProjectionComponents:
    """Inputs that went into a blended projection, kept for display/debugging."""
    player_mean: Dict[str, Optional[float]]
    opponent_mean: Dict[str, Optional[float]]
    games_used: int
    w_player: float
    w_opp: float
    trailing_window: int

    def as_dict(self) -> Dict:
        return {
            "playerMean": dict(self.player_mean),
            "opponentMean": dict(self.opponent_mean),
            "gamesUsed": self.games_used,
            "weights": {"player": self.w_player, "opp": self.w_opp},
            "trailingWindow": self.trailing_window,
        }


@dataclass(frozen=True)
class ProjectionResult:
    pass_yds: Optional[int]
    rush_yds: Optional[int]
    rec_yds: Optional[int]
    components: ProjectionComponents

    def get(self, key: str) -> Optional[int]:
        return getattr(self, GAME_COLUMNS[key])

    def as_dict(self) -> Dict:
        return {
            "passYds": self.pass_yds,
            "rushYds": self.rush_yds,
            "recYds": self.rec_yds,
            "components": self.components.as_dict(),
        }


@dataclass(frozen=True)
class SeriesPoint:
    """Prediction for one game already on record."""
    season: int
    week: int
    pred_pass: Optional[int]
    pred_rush: Optional[int]
    pred_rec: Optional[int]

    def get(self, key: str) -> Optional[int]:
        return {"passYds": self.pred_pass, "rushYds": self.pred_rush, "recYds": self.pred_rec}[key]


@dataclass
class PredictionSeries:
    """Week-keyed predictions per metric; weeks with no projection are omitted."""
    pass_yds: Dict[int, int] = field(default_factory=dict)
    rush_yds: Dict[int, int] = field(default_factory=dict)
    rec_yds: Dict[int, int] = field(default_factory=dict)
    rows: List[SeriesPoint] = field(default_factory=list)

    def for_metric(self, key: str) -> Dict[int, int]:
        return getattr(self, GAME_COLUMNS[key])

    def as_dict(self) -> Dict:
        return {
            "passYds": dict(self.pass_yds),
            "rushYds": dict(self.rush_yds),
            "recYds": dict(self.rec_yds),
        }


@dataclass(frozen=True)
class RankWhatIfResult:
    projection: float
    defense_factor: float
    user_factor: float
    inputs: "RankWhatIfInput"
    method: str = "baseline*adj"

    def as_dict(self) -> Dict:
        return {
            "projection": self.projection,
            "inputs": self.inputs.model_dump(by_alias=True),
            "method": self.method,
        }


class WhatIfQuery(BaseModel):
    """Data-driven what-if request: player X against defense Y in season S, week W."""
    player_id: str = Field(..., min_length=1, alias="playerId")
    team_abbr: str = Field(..., min_length=1, alias="teamAbbr")
    season: int = Field(..., ge=1)
    week: int = Field(..., ge=1)

    model_config = {"populate_by_name": True, "str_strip_whitespace": True}

    @field_validator("team_abbr")
    @classmethod
    def _upper_team(cls, v: str) -> str:
        return v.upper()


class RankWhatIfInput(BaseModel):
    """Simplified what-if: baseline average scaled by opponent percentile and a manual tweak."""
    stat_key: str = Field("unknown", alias="statKey")
    baseline: float = 0.0
    opp_defense: float = Field(0.0, alias="oppDefense")
    adjustment: Optional[float] = None

    model_config = {"populate_by_name": True, "allow_inf_nan": False}
