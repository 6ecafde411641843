from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator


class StoreSettings(BaseModel):
    path: Path = Path("./data/media.sqlite3")

    @field_validator("path", mode="before")
    @classmethod
    def _expand_path(cls, value: str | Path) -> Path:
        return Path(value).expanduser().resolve()


class ExtractionSettings(BaseModel):
    timeout_seconds: float = Field(default=15.0, gt=0)
    max_remote_bytes: int = Field(default=1024 * 1024, gt=0)
    user_agent: str = "stream-meta/0.1"


class SchedulerSettings(BaseModel):
    max_workers: int = Field(default=2, ge=1)


class PreferenceSettings(BaseModel):
    path: Optional[Path] = None
    retrieve_album_art: bool = False

    @field_validator("path", mode="before")
    @classmethod
    def _expand_path(cls, value: Optional[str | Path]) -> Optional[Path]:
        if value is None:
            return None
        return Path(value).expanduser().resolve()


class Settings(BaseModel):
    store: StoreSettings = StoreSettings()
    extraction: ExtractionSettings = ExtractionSettings()
    scheduler: SchedulerSettings = SchedulerSettings()
    preferences: PreferenceSettings = PreferenceSettings()

    @classmethod
    def load(cls, path: Path) -> "Settings":
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
        return cls.model_validate(raw or {})


def find_config(explicit_path: Optional[Path]) -> Path:
    if explicit_path:
        return explicit_path
    cwd = Path.cwd()
    for candidate in (cwd / "config.yaml", cwd / "config.yml"):
        if candidate.exists():
            return candidate
    raise FileNotFoundError("Could not find config.yaml - pass --config explicitly.")
