"""Unit tests for runtime settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from immotep.core.settings import BAN_CSV_URL, Settings


def test_defaults_match_documented_values(monkeypatch) -> None:
    """Settings without env should expose the documented defaults."""
    for name in ("GEOCODE_URL", "GEOCODE_COLUMNS", "INGEST_BATCH_SIZE", "AGG_BATCH_SIZE", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.GEOCODE_URL == BAN_CSV_URL
    assert settings.geocode_columns == ["Address", "City", "ZipCode"]
    assert settings.INGEST_BATCH_SIZE == 500
    assert settings.AGG_BATCH_SIZE == 200
    assert settings.LOG_LEVEL == "INFO"


def test_env_overrides_are_parsed(monkeypatch) -> None:
    """Env entries should override defaults with type coercion."""
    monkeypatch.setenv("GEOCODE_COLUMNS", "Address, ZipCode")
    monkeypatch.setenv("GEOCODE_MAX_BATCH", "1200")
    monkeypatch.setenv("SHOW_PROGRESS", "false")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.geocode_columns == ["Address", "ZipCode"]
    assert settings.GEOCODE_MAX_BATCH == 1200
    assert settings.SHOW_PROGRESS is False
    assert settings.LOG_LEVEL == "DEBUG"


def test_batch_bounds_must_be_positive(monkeypatch) -> None:
    """A zero batch bound should be refused at load time."""
    monkeypatch.setenv("GEOCODE_MIN_BATCH", "0")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
