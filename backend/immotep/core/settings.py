"""Runtime settings for the immotep batch jobs (env / .env driven)."""
from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BAN_CSV_URL = "https://api-adresse.data.gouv.fr/search/csv/"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # unrelated ENV entries are ignored
    )

    # storage
    SYNC_DATABASE_URL: Optional[str] = Field(None)

    # geocoding service
    GEOCODE_URL: str = Field(BAN_CSV_URL)
    GEOCODE_COLUMNS: str = Field("Address,City,ZipCode")  # comma separated
    GEOCODE_TIMEOUT: float = Field(120.0, gt=0)
    GEOCODE_THROTTLE: float = Field(0.0, ge=0)
    GEOCODE_MIN_BATCH: int = Field(100, ge=1)
    GEOCODE_MAX_BATCH: int = Field(5000, ge=1)

    # batch jobs
    INGEST_BATCH_SIZE: int = Field(500, ge=1)
    AGG_BATCH_SIZE: int = Field(200, ge=1)
    ZIPCODE_FILE: Optional[str] = Field(None)
    SOURCE_ENCODING: str = Field("utf-8")
    SHOW_PROGRESS: bool = Field(True)

    LOG_LEVEL: str = Field("INFO")

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.strip().upper()

    @property
    def geocode_columns(self) -> List[str]:
        return [c.strip() for c in self.GEOCODE_COLUMNS.split(",") if c.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


__all__ = ["BAN_CSV_URL", "Settings", "get_settings"]
