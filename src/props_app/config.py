from __future__ import annotations

import os
from pathlib import Path
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field

from props_app.projection.models import BlendWeights


class AppConfig(BaseModel):
    db_path: Path = Field(default_factory=lambda: Path("data/props.db"))
    w_player: float = Field(0.6, ge=0)
    w_opp: float = Field(0.4, ge=0)
    trailing_window: int = Field(3, ge=1)
    leagues: List[str] = Field(default_factory=lambda: ["nfl", "cfb"])
    page_size: int = Field(30, ge=1)

    @property
    def weights(self) -> BlendWeights:
        return BlendWeights(
            w_player=self.w_player,
            w_opp=self.w_opp,
            trailing_window=self.trailing_window,
        )


def load_config(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Build an AppConfig from environment variables.

    PROPS_DB_PATH (or DATABASE_PATH), PROPS_W_PLAYER, PROPS_W_OPP and
    PROPS_TRAILING_WINDOW override the defaults. Bad values raise a pydantic
    ValidationError.
    """
    env = os.environ if env is None else env
    values = {}

    db_path = env.get("PROPS_DB_PATH") or env.get("DATABASE_PATH")
    if db_path:
        values["db_path"] = Path(db_path.strip())
    for key, field in (
        ("PROPS_W_PLAYER", "w_player"),
        ("PROPS_W_OPP", "w_opp"),
        ("PROPS_TRAILING_WINDOW", "trailing_window"),
    ):
        raw = env.get(key)
        if raw is not None and raw.strip():
            values[field] = raw.strip()

    return AppConfig(**values)
