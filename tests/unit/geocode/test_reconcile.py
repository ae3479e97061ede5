"""Unit tests for geocoding reconciliation."""

from __future__ import annotations

from datetime import date

from sqlalchemy import select

from fake_ban import FakeBanSession, ban_row, connection_error
from storage_faults import fail_first_call

from immotep.core.settings import Settings
from immotep.geocode import reconcile as reconcile_module
from immotep.geocode.ban_client import BanClient
from immotep.geocode.reconcile import (
    GeocodeReconciler,
    Selection,
    adaptive_batch_size,
    merge_update,
    reconcile,
)
from immotep.geocode.response_parser import GeocodedRow
from immotep.models import Transaction


def _add_transactions(session_factory, count: int, *, dep: str = "33", lat: float = 0.0, lng: float = 0.0) -> None:
    with session_factory() as session:
        for i in range(count):
            session.add(Transaction(
                date=date(2020, 1, 1),
                address=f"{i + 1} RUE DES LILAS",
                zip_code=-1,
                city="BORDEAUX",
                city_code=f"{dep}063",
                department_code=dep,
                price=200000.0,
                price_psqm=2000.0,
                area=100,
                lat=lat,
                lng=lng,
            ))
        session.commit()


def _rows(session_factory):
    with session_factory() as session:
        return session.execute(select(Transaction).order_by(Transaction.tr_id)).scalars().all()


def _reconciler(session_factory, fake: FakeBanSession, **kwargs) -> GeocodeReconciler:
    client = BanClient("http://ban.test/", session=fake)
    return GeocodeReconciler(session_factory, client, **kwargs)


def test_adaptive_batch_size_is_clamped() -> None:
    """count / 100 bounded to [100, 5000]."""
    assert adaptive_batch_size(50) == 100
    assert adaptive_batch_size(25_000) == 250
    assert adaptive_batch_size(10_000_000) == 5000


def test_resolved_dataset_makes_no_network_call(session_factory) -> None:
    """Incremental run over geocoded rows sends nothing and updates nothing."""
    _add_transactions(session_factory, 3, lat=44.8, lng=-0.5)
    fake = FakeBanSession()

    report = _reconciler(session_factory, fake).reconcile(Selection(incremental=True))

    assert fake.posts == []
    assert (report.selected, report.attempted, report.updated) == (0, 0, 0)


def test_incremental_run_updates_coordinates(session_factory) -> None:
    """Service values replace coordinates, address, zip and city."""
    _add_transactions(session_factory, 3)
    fake = FakeBanSession()

    report = _reconciler(session_factory, fake).reconcile(Selection())

    assert (report.attempted, report.updated, report.errored) == (3, 3, 0)
    rows = _rows(session_factory)
    assert all((r.lat, r.lng) == (44.84, -0.58) for r in rows)
    assert rows[0].address == "1 Rue Sainte-Catherine"
    assert rows[0].zip_code == 33000
    assert rows[0].city == "Bordeaux"
    assert rows[0].price == 200000.0


def test_second_incremental_run_is_a_no_op(session_factory) -> None:
    _add_transactions(session_factory, 2)
    fake = FakeBanSession()
    reconciler = _reconciler(session_factory, fake)
    reconciler.reconcile(Selection())

    report = reconciler.reconcile(Selection())

    assert len(fake.posts) == 1
    assert report.updated == 0


def test_http_failure_leaves_rows_unresolved(session_factory) -> None:
    """A non-2xx answer skips the batch, rows stay at (0, 0)."""
    _add_transactions(session_factory, 3)

    report = _reconciler(session_factory, FakeBanSession(status_code=500)).reconcile(Selection())

    assert (report.attempted, report.updated, report.errored) == (3, 0, 3)
    assert all((r.lat, r.lng) == (0.0, 0.0) for r in _rows(session_factory))


def test_network_failure_does_not_stop_later_batches(session_factory) -> None:
    """Each failed batch is counted, the run goes on to the end."""
    _add_transactions(session_factory, 4)
    fake = FakeBanSession(error=connection_error())

    report = _reconciler(session_factory, fake, min_batch=2, max_batch=2).reconcile(Selection())

    assert len(fake.posts) == 2
    assert report.batches == 2
    assert report.errored == 4


def test_unusable_answer_rows_are_errors(session_factory) -> None:
    """Zero coordinates, missing rows and unknown ids are counted as errored."""
    _add_transactions(session_factory, 3)

    def answer(request_row):
        trid = int(request_row["trid"])
        if trid == 1:
            return ban_row(trid, lat=0, lng=0)
        if trid == 2:
            return ban_row(999)
        return ban_row(trid)

    report = _reconciler(session_factory, FakeBanSession(answer)).reconcile(Selection())

    assert report.updated == 1
    assert report.errored == 2
    rows = _rows(session_factory)
    assert (rows[0].lat, rows[1].lat, rows[2].lat) == (0.0, 0.0, 44.84)


def test_keyset_paging_covers_every_row(session_factory) -> None:
    """Batches walk tr_id order, each row is sent once."""
    _add_transactions(session_factory, 5)
    fake = FakeBanSession()

    report = _reconciler(session_factory, fake, min_batch=2, max_batch=2).reconcile(Selection())

    sent = [int(r["trid"]) for post in fake.posts for r in post["rows"]]
    assert sent == [1, 2, 3, 4, 5]
    assert report.batches == 3
    assert report.updated == 5


def test_department_selection(session_factory) -> None:
    """Only the requested department is sent."""
    _add_transactions(session_factory, 2, dep="33")
    _add_transactions(session_factory, 2, dep="40")
    fake = FakeBanSession()

    report = _reconciler(session_factory, fake).reconcile(Selection(department="40"))

    assert report.selected == 2
    assert [r["trid"] for r in fake.posts[0]["rows"]] == ["3", "4"]


def test_full_selection_regeocodes_resolved_rows(session_factory) -> None:
    _add_transactions(session_factory, 2, lat=1.0, lng=1.0)

    report = _reconciler(session_factory, FakeBanSession()).reconcile(Selection(incremental=False, department="33"))

    assert report.updated == 2
    assert all(r.lat == 44.84 for r in _rows(session_factory))


def test_merge_update_keeps_sent_values_when_answer_is_empty() -> None:
    got = GeocodedRow(tr_id=1, lat=1.0, lng=2.0, address=None, zip_code=None, city=None, city_code=None, status=None)

    merged = merge_update((1, "12 RUE X", 33000, "BORDEAUX"), got)

    assert merged == {"tr_id": 1, "lat": 1.0, "lng": 2.0, "address": "12 RUE X", "city": "BORDEAUX", "zip_code": 33000}


def test_reconcile_builds_client_from_settings(session_factory, monkeypatch) -> None:
    """The module entry point honours the configured batch bounds."""
    _add_transactions(session_factory, 3)
    fake = FakeBanSession()
    monkeypatch.setattr("immotep.geocode.ban_client.make_http_session", lambda: fake)
    settings = Settings(_env_file=None, GEOCODE_URL="http://ban.test/", GEOCODE_MIN_BATCH=1, GEOCODE_MAX_BATCH=1)

    report = reconcile(Selection(), session_factory, settings)

    assert len(fake.posts) == 3
    assert report.updated == 3
    assert fake.closed


def test_rows_missing_from_answer_are_errors(session_factory) -> None:
    """Rows the service leaves out still add up: attempted == updated + errored."""
    _add_transactions(session_factory, 3)

    def answer(request_row):
        return None if request_row["trid"] == "2" else ban_row(request_row["trid"])

    report = _reconciler(session_factory, FakeBanSession(answer)).reconcile(Selection())

    assert (report.attempted, report.updated, report.errored) == (3, 2, 1)
    assert _rows(session_factory)[1].lat == 0.0


def test_non_finite_answer_keeps_row_selectable(session_factory) -> None:
    """A NaN answer is not stored, the row stays at (0, 0) for the next run."""
    _add_transactions(session_factory, 1)
    fake = FakeBanSession(lambda r: ban_row(r["trid"], lat="nan", lng="nan"))
    reconciler = _reconciler(session_factory, fake)

    report = reconciler.reconcile(Selection())

    assert (report.updated, report.errored) == (0, 1)
    assert (_rows(session_factory)[0].lat, _rows(session_factory)[0].lng) == (0.0, 0.0)
    assert reconciler.reconcile(Selection()).selected == 1


def test_failed_upsert_is_counted_and_next_batch_runs(session_factory, monkeypatch) -> None:
    """A storage error on one batch rolls it back; the following batch is still written."""
    _add_transactions(session_factory, 4)
    monkeypatch.setattr(reconcile_module, "upsert_rows", fail_first_call(reconcile_module.upsert_rows))

    report = _reconciler(session_factory, FakeBanSession(), min_batch=2, max_batch=2).reconcile(Selection())

    assert (report.attempted, report.updated, report.errored) == (4, 2, 2)
    assert [r.lat for r in _rows(session_factory)] == [0.0, 0.0, 44.84, 44.84]
