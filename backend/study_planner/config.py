import os
from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: Optional[str] = Field(None, alias="STUDY_PLANNER_DATABASE_URL")
    database_pool_size: int = Field(10, alias="STUDY_PLANNER_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="STUDY_PLANNER_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="STUDY_PLANNER_DATABASE_ECHO")
    persistence_mode: Literal["database", "legacy"] = Field(
        "database",
        alias="STUDY_PLANNER_PERSISTENCE_MODE",
    )
    legacy_data_dir: Optional[Path] = Field(None, alias="STUDY_PLANNER_LEGACY_DATA_DIR")
    catalog_path: Optional[Path] = Field(None, alias="STUDY_PLANNER_CATALOG_PATH")
    target_sessions_per_week: int = Field(12, ge=0, alias="STUDY_PLANNER_TARGET_SESSIONS_PER_WEEK")
    max_sessions_per_day: int = Field(3, ge=1, alias="STUDY_PLANNER_MAX_SESSIONS_PER_DAY")
    preferred_study_times: List[str] = Field(
        default_factory=lambda: ["16:00", "19:00", "20:00"],
        alias="STUDY_PLANNER_PREFERRED_STUDY_TIMES",
    )
    avoid_weekends: bool = Field(False, alias="STUDY_PLANNER_AVOID_WEEKENDS")
    batch_max_workers: int = Field(4, ge=1, alias="STUDY_PLANNER_BATCH_MAX_WORKERS")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[arg-type]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid planner configuration: {exc}") from exc
