"""Unit tests for the BAN HTTP client."""

from __future__ import annotations

import pytest

from fake_ban import FakeBanSession, connection_error

from immotep.core.errors import GeocodeError
from immotep.geocode.ban_client import BanClient, build_payload


def test_build_payload_header_and_unresolved_zip() -> None:
    """Unresolved (-1) zips are sent empty."""
    payload = build_payload([(1, "12 RUE DES LILAS", 33000, "BORDEAUX"), (2, None, -1, "MERIGNAC")])

    assert payload.splitlines() == [
        "trid,Address,ZipCode,City",
        "1,12 RUE DES LILAS,33000,BORDEAUX",
        "2,,,MERIGNAC",
    ]


def test_geocode_csv_posts_multipart_form() -> None:
    """columns are repeated form fields, data is the CSV file part."""
    session = FakeBanSession()
    client = BanClient("http://ban.test/search/csv/", columns=["Address", "ZipCode"], timeout=5, session=session)

    body = client.geocode_csv(build_payload([(9, "1 RUE X", 33000, "BORDEAUX")]))

    post = session.posts[0]
    assert post["url"] == "http://ban.test/search/csv/"
    assert post["data"] == {"columns": ["Address", "ZipCode"]}
    assert post["files"]["data"][0] == "address.csv"
    assert post["timeout"] == 5
    assert body.splitlines()[1].startswith("9,")
    assert client.calls == 1


def test_non_2xx_raises_geocode_error() -> None:
    client = BanClient("http://ban.test/", session=FakeBanSession(status_code=503))

    with pytest.raises(GeocodeError) as exc_info:
        client.geocode_csv(build_payload([(1, "a", 33000, "b")]))

    assert exc_info.value.status_code == 503


def test_network_failure_raises_geocode_error() -> None:
    client = BanClient("http://ban.test/", session=FakeBanSession(error=connection_error()))

    with pytest.raises(GeocodeError):
        client.geocode_csv(build_payload([(1, "a", 33000, "b")]))


def test_close_closes_session() -> None:
    session = FakeBanSession()
    BanClient(session=session).close()

    assert session.closed
