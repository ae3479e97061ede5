"""Unit tests for the geocoding answer adapter."""

from __future__ import annotations

import pytest

from fake_ban import ban_row
from fixture_paths import fixture_path

from immotep.geocode.response_parser import (
    BAN_LAYOUT,
    GeocodedRow,
    RejectedRow,
    ResponseLayout,
    parse_response,
    parse_row,
)


def _fixture_body() -> str:
    return fixture_path("ban_answer.csv").read_text(encoding="utf-8")


def test_parse_fixture_answer() -> None:
    """Two geocoded rows and one without coordinates."""
    parsed = list(parse_response(_fixture_body()))

    assert len(parsed) == 3
    first, second, third = parsed
    assert first == GeocodedRow(
        tr_id=1,
        lat=44.851,
        lng=-0.5702,
        address="12 Rue des Lilas",
        zip_code=33000,
        city="Bordeaux",
        city_code="33063",
        status="ok",
    )
    assert second.city == "Mérignac"
    assert isinstance(third, RejectedRow)
    assert third.reason == "no coordinates"


def test_short_row_and_bad_id_are_rejected() -> None:
    assert parse_row(["1", "a"]).reason == "short row"
    row = ["x"] + ["1"] * (BAN_LAYOUT.min_columns - 1)
    assert parse_row(row).reason == "bad id"


def test_zero_coordinates_are_rejected() -> None:
    row = [""] * BAN_LAYOUT.min_columns
    row[0], row[4], row[5] = "7", "0", "0.0"

    assert parse_row(row).reason == "zero coordinates"


def test_layout_is_the_only_place_holding_offsets() -> None:
    """Moving an offset in the layout moves what is read."""
    layout = ResponseLayout(latitude=1, longitude=2, address=3, zip_code=4, city=5, city_code=6, status=7)
    row = ["5", "45.1", "1.2", "rue", "33000", "Ville", "33001", "ok"]

    parsed = parse_row(row, layout)

    assert layout.min_columns == 8
    assert (parsed.tr_id, parsed.lat, parsed.lng, parsed.city_code) == (5, 45.1, 1.2, "33001")


def test_empty_body_yields_nothing() -> None:
    assert list(parse_response("")) == []


@pytest.mark.parametrize("lat, lng", [("nan", "nan"), ("inf", "-0.58"), ("44.84", "-inf"), ("NaN", "1.5")])
def test_non_finite_coordinates_are_rejected(lat, lng) -> None:
    """NaN or infinite coordinates are never accepted."""
    parsed = parse_row(ban_row(1, lat=lat, lng=lng))

    assert isinstance(parsed, RejectedRow)
    assert parsed.reason == "no coordinates"
