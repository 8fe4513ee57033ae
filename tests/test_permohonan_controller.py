from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from metrologi_portal.app.core.supabase import BackendError
from metrologi_portal.app.schemas.permohonan import PermohonanRead
from metrologi_portal.app.services.permohonan_controller import (
    LOAD_FAILED_MESSAGE,
    PROCESS_FAILED_MESSAGE,
    PROCESS_OK_MESSAGE,
    InvalidTransitionError,
    PermohonanController,
    PermohonanState,
    allowed_targets,
    can_process,
    derive_view,
    filter_requests,
    paginate,
    total_pages,
)

from tests.fixtures.fake_request_store import FakeRequestStore, GatedRequestStore, make_permohonan

FIXED_NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


def _items(*rows) -> list[PermohonanRead]:
    return [PermohonanRead.model_validate(row) for row in rows]


def _many(count: int) -> list[PermohonanRead]:
    return _items(*(make_permohonan(i) for i in range(count, 0, -1)))


# -- pure derivations ---------------------------------------------------


def test_search_matches_name_case_insensitively() -> None:
    items = _items(
        make_permohonan(1, nama_pemohon="Budi Santoso"),
        make_permohonan(2, nama_pemohon="Siti Aminah"),
    )
    for query in ("Budi", "budi", "BUDI", "bUdI"):
        result = filter_requests(items, query=query)
        assert [item.id for item in result] == [1]


def test_search_covers_email_equipment_type_and_brand() -> None:
    items = _items(
        make_permohonan(1, email="toko.makmur@mail.com"),
        make_permohonan(2, jenis_alat="Meteran Kain"),
        make_permohonan(3, merek_alat="Nagata"),
        make_permohonan(4, merek_alat=None),
    )
    assert [i.id for i in filter_requests(items, query="makmur")] == [1]
    assert [i.id for i in filter_requests(items, query="meteran")] == [2]
    assert [i.id for i in filter_requests(items, query="nagata")] == [3]


def test_filters_are_anded_and_preserve_order() -> None:
    items = _items(
        make_permohonan(5, status="pending", jenis_permohonan="tera_baru"),
        make_permohonan(4, status="pending", jenis_permohonan="tera_ulang"),
        make_permohonan(3, status="approved", jenis_permohonan="tera_baru"),
        make_permohonan(2, status="pending", jenis_permohonan="tera_baru"),
    )
    result = filter_requests(items, status_filter="pending", kind_filter="tera_baru")
    assert [i.id for i in result] == [5, 2]
    assert [i.id for i in filter_requests(items)] == [5, 4, 3, 2]


def test_pagination_scenario_23_rows() -> None:
    items = _many(23)
    assert total_pages(len(items), 10) == 3
    assert len(paginate(items, 10, 1)) == 10
    assert len(paginate(items, 10, 3)) == 3


def test_pages_concatenate_to_filtered_set() -> None:
    items = _many(17)
    pages = total_pages(len(items), 4)
    joined = [item for page in range(1, pages + 1) for item in paginate(items, 4, page)]
    assert joined == items


def test_paginate_clamps_page_number() -> None:
    items = _many(5)
    assert paginate(items, 10, 9) == items
    assert paginate(items, 10, 0) == items
    assert paginate([], 10, 2) == []


def test_total_pages_rejects_non_positive_page_size() -> None:
    with pytest.raises(ValueError):
        total_pages(3, 0)


def test_transition_table() -> None:
    assert allowed_targets("pending") == ("processing", "approved", "rejected")
    assert allowed_targets("processing") == ("approved", "rejected")
    assert allowed_targets("approved") == ()
    assert allowed_targets("rejected") == ()
    terminal = _items(make_permohonan(1, status="approved"), make_permohonan(2, status="rejected"))
    assert not any(can_process(item) for item in terminal)


def test_derive_view_counts_range_and_actions() -> None:
    items = _items(
        make_permohonan(3, status="pending"),
        make_permohonan(2, status="processing"),
        make_permohonan(1, status="rejected"),
    )
    view = derive_view(PermohonanState(requests=tuple(items), page_size=2, page=2))
    assert view.page == 2
    assert view.total_pages == 2
    assert [item.id for item in view.items] == [1]
    assert (view.range_start, view.range_end) == (3, 3)
    assert view.stats.total == 3
    assert (view.stats.pending, view.stats.processing, view.stats.rejected) == (1, 1, 1)
    assert view.actions == {}
    assert view.has_active_filter is False

    first = derive_view(PermohonanState(requests=tuple(items), page_size=2))
    assert first.actions == {3: ["processing", "approved", "rejected"], 2: ["approved", "rejected"]}


def test_derive_view_empty_range() -> None:
    view = derive_view(PermohonanState(query="nothing"))
    assert view.items == []
    assert (view.range_start, view.range_end) == (0, 0)
    assert view.has_active_filter is True


# -- controller ---------------------------------------------------------


@pytest.mark.asyncio
async def test_load_all_keeps_store_order() -> None:
    store = FakeRequestStore([make_permohonan(3), make_permohonan(2), make_permohonan(1)])
    controller = PermohonanController(store, page_size=10)

    assert await controller.load_all() is True
    assert [item.id for item in controller.state.requests] == [3, 2, 1]
    assert controller.state.loading is False


@pytest.mark.asyncio
async def test_process_then_reload_shows_new_status() -> None:
    store = FakeRequestStore([make_permohonan(1, status="pending")])
    controller = PermohonanController(store, clock=lambda: FIXED_NOW)
    await controller.load_all()

    ok = await controller.process(1, "approved", "OK, documents complete")

    assert ok is True
    item = controller.find(1)
    assert item.status == "approved"
    assert item.catatan_admin == "OK, documents complete"
    assert item.tanggal_diproses == FIXED_NOW
    assert store.updates == [
        (1, {"status": "approved", "tanggal_diproses": FIXED_NOW.isoformat(), "catatan_admin": "OK, documents complete"})
    ]
    assert controller.state.notice.message == PROCESS_OK_MESSAGE
    assert store.list_calls == 2


@pytest.mark.asyncio
async def test_processed_timestamp_not_before_call() -> None:
    store = FakeRequestStore([make_permohonan(1, status="processing")])
    controller = PermohonanController(store)
    await controller.load_all()
    before = datetime.now(timezone.utc)

    await controller.process(1, "rejected", "Dokumen tidak lengkap")

    assert controller.find(1).tanggal_diproses >= before.replace(microsecond=0)


@pytest.mark.asyncio
async def test_failed_load_keeps_previous_list() -> None:
    store = FakeRequestStore([make_permohonan(i) for i in range(5, 0, -1)])
    controller = PermohonanController(store)
    await controller.load_all()

    store.list_error = BackendError(status_code=None, message="Connection refused")
    assert await controller.load_all() is False

    assert len(controller.state.requests) == 5
    assert len(controller.view().items) == 5
    assert controller.state.notice.level == "error"
    assert controller.state.notice.message == LOAD_FAILED_MESSAGE


@pytest.mark.asyncio
async def test_dismissed_notice_leaves_list_untouched() -> None:
    store = FakeRequestStore([make_permohonan(2), make_permohonan(1)])
    controller = PermohonanController(store)
    await controller.load_all()
    store.list_error = BackendError(status_code=None, message="Connection refused")
    await controller.load_all()

    controller.dismiss_notice()

    assert controller.state.notice is None
    assert [item.id for item in controller.state.requests] == [2, 1]


@pytest.mark.asyncio
async def test_malformed_rows_count_as_failed_load() -> None:
    store = FakeRequestStore([make_permohonan(1)])
    controller = PermohonanController(store)
    await controller.load_all()

    store.rows = [{"id": "not-a-number"}]
    assert await controller.load_all() is False
    assert [item.id for item in controller.state.requests] == [1]


@pytest.mark.asyncio
async def test_successful_load_clears_error_notice() -> None:
    store = FakeRequestStore([make_permohonan(1)])
    store.list_error = BackendError(status_code=503, message="down")
    controller = PermohonanController(store)
    await controller.load_all()
    assert controller.state.notice.level == "error"

    store.list_error = None
    await controller.load_all()
    assert controller.state.notice is None


@pytest.mark.asyncio
async def test_stale_load_response_is_discarded() -> None:
    store = GatedRequestStore()
    controller = PermohonanController(store)

    first = asyncio.create_task(controller.load_all())
    await asyncio.sleep(0)
    second = asyncio.create_task(controller.load_all())
    await asyncio.sleep(0)
    assert len(store.pending) == 2

    store.release(1, [make_permohonan(2, status="approved"), make_permohonan(1)])
    assert await second is True
    store.release(0, [make_permohonan(1)])
    assert await first is False

    assert [item.id for item in controller.state.requests] == [2, 1]


@pytest.mark.asyncio
async def test_failed_process_keeps_dialog_values() -> None:
    store = FakeRequestStore([make_permohonan(1, status="pending")])
    controller = PermohonanController(store)
    await controller.load_all()
    controller.open_dialog(1)
    controller.choose_status("rejected")
    controller.set_note("Alat tidak sesuai")
    store.update_error = BackendError(status_code=500, message="internal error")

    assert await controller.confirm() is False

    dialog = controller.state.dialog
    assert dialog is not None
    assert (dialog.request_id, dialog.status, dialog.note) == (1, "rejected", "Alat tidak sesuai")
    assert controller.state.notice.message == PROCESS_FAILED_MESSAGE
    assert controller.state.processing is False
    assert controller.last_error.status_code == 500
    assert controller.find(1).status == "pending"


@pytest.mark.asyncio
async def test_confirm_disabled_until_status_chosen() -> None:
    store = FakeRequestStore([make_permohonan(1)])
    controller = PermohonanController(store)
    await controller.load_all()

    dialog = controller.open_dialog(1)
    assert dialog.can_confirm is False
    assert await controller.confirm() is False
    assert store.updates == []

    controller.choose_status("processing")
    assert await controller.confirm() is True
    assert controller.state.dialog is None
    assert controller.find(1).status == "processing"


@pytest.mark.asyncio
async def test_dialog_rejects_terminal_row_and_bad_status() -> None:
    store = FakeRequestStore([make_permohonan(1, status="approved"), make_permohonan(2)])
    controller = PermohonanController(store)
    await controller.load_all()

    with pytest.raises(InvalidTransitionError):
        controller.open_dialog(1)
    controller.open_dialog(2)
    with pytest.raises(InvalidTransitionError):
        controller.choose_status("pending")
    controller.cancel_dialog()
    assert controller.state.dialog is None


@pytest.mark.asyncio
async def test_process_rejects_non_target_status() -> None:
    store = FakeRequestStore([make_permohonan(1)])
    controller = PermohonanController(store)

    with pytest.raises(InvalidTransitionError):
        await controller.process(1, "pending", "")
    assert store.updates == []


@pytest.mark.asyncio
async def test_terminal_row_refused_by_store() -> None:
    store = FakeRequestStore([make_permohonan(1, status="approved", catatan_admin="Lengkap")])
    controller = PermohonanController(store)
    await controller.load_all()

    assert await controller.process(1, "rejected", "ubah") is False
    assert controller.last_error.status_code == 409
    assert controller.find(1).status == "approved"


@pytest.mark.asyncio
async def test_page_clamped_when_filter_shrinks_set() -> None:
    rows = [make_permohonan(i, nama_pemohon="Budi" if i <= 3 else f"Pemohon {i}") for i in range(25, 0, -1)]
    controller = PermohonanController(FakeRequestStore(rows), page_size=10)
    await controller.load_all()

    controller.set_page(3)
    assert controller.state.page == 3
    controller.set_query("budi")
    assert controller.state.page == 1
    view = controller.view()
    assert view.filtered_count == 3
    assert view.total_count == 25
