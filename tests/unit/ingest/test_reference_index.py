"""Unit tests for the zip code reference index."""

from __future__ import annotations

from fixture_paths import fixture_path

from immotep.ingest.reference_index import CityRef, ReferenceIndex, read_zipcode_map
from immotep.models import UNRESOLVED_ZIP


def test_read_zipcode_map_indexes_names_and_codes() -> None:
    """Names get a hyphen alternate key; leading zeros are dropped."""
    by_name, by_code = read_zipcode_map(fixture_path("zipcodes.csv"))

    assert by_name["BORDEAUX"] == 33000
    assert by_name["SAINT MEDARD EN JALLES"] == 33160
    assert by_name["SAINT-MEDARD-EN-JALLES"] == 33160
    assert by_code["01001"] == 1400
    assert "broken" not in by_code


def test_read_zipcode_map_missing_file_is_empty(tmp_path) -> None:
    """A missing file should not abort the ingestion."""
    by_name, by_code = read_zipcode_map(tmp_path / "nope.csv")

    assert by_name == {}
    assert by_code == {}


def test_resolve_zip_prefers_city_code() -> None:
    """City code lookup wins over the name lookup."""
    index = ReferenceIndex()
    index.add_city(CityRef("33063", "Bordeaux", 33000))
    index.add_city(CityRef("33281", "Mérignac", 33700))

    assert index.resolve_zip("33063", "MERIGNAC") == 33000
    assert index.resolve_zip("99999", "Mérignac") == 33700
    assert index.resolve_zip("99999", "Nulle Part") == UNRESOLVED_ZIP


def test_zipcode_file_merges_under_storage_entries() -> None:
    """Entries from storage are kept when the file knows the same city."""
    index = ReferenceIndex()
    index.add_city(CityRef("33063", "Bordeaux", 33800))

    index.merge_zipcode_file(fixture_path("zipcodes.csv"))

    assert index.resolve_zip("33063", None) == 33800
    assert index.resolve_zip("33522", None) == 33160
    assert index.zip_for_name("saint médard en jalles") == 33160


def test_from_session_reads_cities(seeded_units) -> None:
    """The index should hold every city of the cities table."""
    with seeded_units() as session:
        index = ReferenceIndex.from_session(session)

    assert len(index) == 2
    assert index.zip_for_code("33063") == 33000
    assert index.zip_for_name("merignac") == 33700
