"""Configuration for the TV time client."""

from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, Field


def _default_data_dir() -> Path:
    return Path.home() / ".tvtime"


class Config(BaseModel):
    """Local configuration for this device.

    Without Firebase credentials the client runs in local mode.
    """

    data_dir: Path = Field(default_factory=_default_data_dir)
    firebase_credentials_path: Path | None = None
    daily_bonus_minutes: Annotated[int, Field(ge=0)] = 30
    max_bonus_days: Annotated[int, Field(gt=0)] = 365
    poll_interval_seconds: Annotated[int, Field(gt=0)] = 60
    settle_delay_seconds: Annotated[float, Field(ge=0)] = 2.0


def load_config(path: Path) -> Config:
    """Load configuration from a JSON file, or defaults if there is none."""
    if not path.exists():
        return Config()
    return Config.model_validate_json(path.read_text())
