"""Runtime configuration, read from ``TACTICS_*`` environment variables."""

import os
from functools import lru_cache

from pydantic import BaseModel, Field

ENV_PREFIX = "TACTICS_"


class TacticsSettings(BaseModel):
    database_url: str = "sqlite:///tactics.db"
    temporary_drawing_lifetime: float = Field(default=3.0, gt=0)  # seconds
    collision_threshold: float = Field(default=0.07, gt=0)
    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> TacticsSettings:
    """
    Build the settings once from the environment.

    Every field of TacticsSettings can be overridden with an upper-case variable, ex) TACTICS_DATABASE_URL.
    Unset variables keep the defaults.
    """
    overrides = {
        name: os.environ[f"{ENV_PREFIX}{name.upper()}"]
        for name in TacticsSettings.model_fields
        if f"{ENV_PREFIX}{name.upper()}" in os.environ
    }
    return TacticsSettings.model_validate(overrides)


def clear_settings_cache() -> None:
    """Forget the cached settings (ex. after changing the environment in a test)."""
    get_settings.cache_clear()
