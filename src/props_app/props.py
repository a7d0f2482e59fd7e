"""Prop lines: how often a player's games cleared a line."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional

import numpy as np
import pandas as pd

# Metric key -> game_stats column
PROP_METRICS: Dict[str, str] = {
    "passYds": "pass_yds",
    "rushYds": "rush_yds",
    "recYds": "rec_yds",
    "passTd": "pass_td",
    "interceptions": "interceptions",
}


@dataclass(frozen=True)
class HitRate:
    hits: int
    total: int
    pct: Optional[int]

    def as_dict(self) -> Dict:
        return {"hits": self.hits, "total": self.total, "pct": self.pct}


def _missing(line: Optional[float]) -> bool:
    return line is None or (isinstance(line, float) and math.isnan(line))


def hit_rate(values: Iterable[float], line: Optional[float]) -> HitRate:
    """Games with value >= line; pct is None without games or without a line."""
    arr = np.asarray([v for v in values if v is not None], dtype=float)
    total = int(arr.size)
    if total == 0 or _missing(line):
        return HitRate(hits=0, total=total, pct=None)
    hits = int((arr >= line).sum())
    return HitRate(hits=hits, total=total, pct=int(math.floor(hits / total * 100 + 0.5)))


def hit_rates_for_player(games: pd.DataFrame, lines: Mapping[str, Optional[float]]) -> Dict[str, HitRate]:
    out: Dict[str, HitRate] = {}
    for key, line in lines.items():
        col = PROP_METRICS.get(key)
        if col is None:
            raise KeyError(f"Unknown prop metric {key}")
        values = games[col].fillna(0).tolist() if col in games.columns else []
        out[key] = hit_rate(values, line)
    return out


def projection_vs_line(projection: Optional[float], line: Optional[float]) -> Optional[bool]:
    if projection is None or _missing(line):
        return None
    return projection >= line
