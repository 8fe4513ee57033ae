"""
Lifecycle controller for service requests (permohonan).

The controller holds one immutable snapshot of the request table plus
the admin's current search/filter/page selection (``PermohonanState``)
and replaces that snapshot wholesale on every change.  Everything the
admin sees is derived from the snapshot by pure functions
(``filter_requests``, ``paginate``, ``derive_view``) so the view can be
recomputed on every keystroke and tested without a store.

The only state-changing operation is ``process``: move a request to
``processing``, ``approved`` or ``rejected`` with an admin note.  The
allowed moves are::

    pending    -> processing | approved | rejected
    processing -> approved | rejected

``approved`` and ``rejected`` are terminal.  The controller offers the
action only for non-terminal rows (``can_process``) but does not
re-check the current status before sending the update; the store
refuses updates to terminal rows.

Loads are sequenced: every ``load_all`` call takes a new token and only
the response for the most recently dispatched load is applied.  Older
responses arriving late are discarded instead of overwriting newer
data.
"""

import itertools
import logging
import math
from collections import Counter
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..core.config import settings
from ..core.supabase import BackendError
from ..schemas.permohonan import (
    PermohonanPage,
    PermohonanRead,
    PermohonanStats,
    PermohonanStatus,
    ProcessStatus,
)


logger = logging.getLogger(__name__)

ALL = "all"

PROCESS_TARGETS: Tuple[str, ...] = tuple(s.value for s in ProcessStatus)
TERMINAL_STATUSES = frozenset({PermohonanStatus.APPROVED.value, PermohonanStatus.REJECTED.value})
TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    PermohonanStatus.PENDING.value: PROCESS_TARGETS,
    PermohonanStatus.PROCESSING.value: (
        PermohonanStatus.APPROVED.value,
        PermohonanStatus.REJECTED.value,
    ),
}

LOAD_FAILED_MESSAGE = "Gagal memuat data permohonan"
PROCESS_FAILED_MESSAGE = "Gagal memproses permohonan"
PROCESS_OK_MESSAGE = "Permohonan berhasil diproses"


class InvalidTransitionError(ValueError):
    """Raised for a status the process action cannot move a request to."""


# ---------------------------------------------------------------------------
# Pure derivations
# ---------------------------------------------------------------------------

def allowed_targets(status: str) -> Tuple[str, ...]:
    """Statuses the process action offers for a request in ``status``."""
    return TRANSITIONS.get(status, ())


def can_process(item: PermohonanRead) -> bool:
    return bool(allowed_targets(item.status))


def matches(item: PermohonanRead, query: str, status_filter: str, kind_filter: str) -> bool:
    """Search/filter predicate for one row.

    ``query`` is a case-insensitive substring of the applicant name,
    email, equipment type or equipment brand.  ``status_filter`` and
    ``kind_filter`` are either ``"all"`` or an exact value.
    """
    needle = query.lower()
    matches_search = any(
        needle in (value or "").lower()
        for value in (item.nama_pemohon, item.email, item.jenis_alat, item.merek_alat)
    )
    matches_status = status_filter == ALL or item.status == status_filter
    matches_kind = kind_filter == ALL or item.jenis_permohonan == kind_filter
    return matches_search and matches_status and matches_kind


def filter_requests(
    items: Iterable[PermohonanRead],
    query: str = "",
    status_filter: str = ALL,
    kind_filter: str = ALL,
) -> List[PermohonanRead]:
    """Rows satisfying every predicate, in their original order."""
    return [item for item in items if matches(item, query, status_filter, kind_filter)]


def total_pages(count: int, page_size: int) -> int:
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    return math.ceil(count / page_size)


def clamp_page(page: int, pages: int) -> int:
    """Clamp ``page`` into ``[1, max(1, pages)]``."""
    return max(1, min(page, max(1, pages)))


def paginate(items: Sequence[PermohonanRead], page_size: int, page: int) -> List[PermohonanRead]:
    """Slice ``[(page-1)*page_size, page*page_size)`` after clamping ``page``."""
    page = clamp_page(page, total_pages(len(items), page_size))
    start = (page - 1) * page_size
    return list(items[start:start + page_size])


def count_by_status(items: Iterable[PermohonanRead]) -> PermohonanStats:
    counts = Counter(item.status for item in items)
    return PermohonanStats(
        total=sum(counts.values()),
        pending=counts[PermohonanStatus.PENDING.value],
        processing=counts[PermohonanStatus.PROCESSING.value],
        approved=counts[PermohonanStatus.APPROVED.value],
        rejected=counts[PermohonanStatus.REJECTED.value],
    )


@dataclass(frozen=True)
class Notice:
    """Transient message for the admin (``success`` or ``error``)."""

    level: str
    message: str


@dataclass(frozen=True)
class ProcessDialog:
    """Values entered in the "Proses Permohonan" dialog."""

    request_id: int
    status: str = ""
    note: str = ""

    @property
    def can_confirm(self) -> bool:
        # the confirm button stays disabled until a status is chosen
        return bool(self.status)


@dataclass(frozen=True)
class PermohonanState:
    requests: Tuple[PermohonanRead, ...] = ()
    query: str = ""
    status_filter: str = ALL
    kind_filter: str = ALL
    page: int = 1
    page_size: int = 10
    loading: bool = False
    processing: bool = False
    dialog: Optional[ProcessDialog] = None
    notice: Optional[Notice] = None


def derive_view(state: PermohonanState) -> PermohonanPage:
    """Compute the table the admin sees from a state snapshot."""
    filtered = filter_requests(state.requests, state.query, state.status_filter, state.kind_filter)
    pages = total_pages(len(filtered), state.page_size)
    page = clamp_page(state.page, pages)
    items = paginate(filtered, state.page_size, page)
    return PermohonanPage(
        items=items,
        page=page,
        page_size=state.page_size,
        total_pages=pages,
        filtered_count=len(filtered),
        total_count=len(state.requests),
        range_start=(page - 1) * state.page_size + 1 if filtered else 0,
        range_end=min(page * state.page_size, len(filtered)),
        has_active_filter=bool(state.query) or state.status_filter != ALL or state.kind_filter != ALL,
        stats=count_by_status(state.requests),
        actions={item.id: list(allowed_targets(item.status)) for item in items if can_process(item)},
    )


def _status_value(status) -> str:
    return status.value if isinstance(status, Enum) else status


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class PermohonanController:
    """Searchable, paginated view of all service requests plus the
    process action, backed by a request store.

    Parameters
    ----------
    store
        Object with ``list_all`` and ``update`` coroutines (see
        ``services.request_store``).
    page_size : Optional[int]
        Rows per page; defaults to ``settings.page_size``.
    clock : Optional[Callable[[], datetime]]
        Source of the processed timestamp; defaults to UTC now.
    """

    def __init__(
        self,
        store,
        *,
        page_size: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self._state = PermohonanState(page_size=page_size or settings.page_size)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._load_tokens = itertools.count(1)
        self._latest_load = 0
        self.last_error: Optional[BackendError] = None

    @property
    def state(self) -> PermohonanState:
        return self._state

    def view(self) -> PermohonanPage:
        return derive_view(self._state)

    def find(self, request_id: int) -> Optional[PermohonanRead]:
        return next((item for item in self._state.requests if item.id == request_id), None)

    def _replace(self, **changes) -> None:
        self._state = replace(self._state, **changes)

    def _replace_clamped(self, **changes) -> None:
        """Replace state and pull ``page`` back in range if the filtered set shrank."""
        state = replace(self._state, **changes)
        filtered = filter_requests(state.requests, state.query, state.status_filter, state.kind_filter)
        self._state = replace(state, page=clamp_page(state.page, total_pages(len(filtered), state.page_size)))

    # -- selection --------------------------------------------------------

    def set_query(self, query: str) -> None:
        self._replace_clamped(query=query)

    def set_status_filter(self, status_filter: str) -> None:
        self._replace_clamped(status_filter=_status_value(status_filter))

    def set_kind_filter(self, kind_filter: str) -> None:
        self._replace_clamped(kind_filter=_status_value(kind_filter))

    def set_page(self, page: int) -> None:
        self._replace_clamped(page=page)

    def dismiss_notice(self) -> None:
        self._replace(notice=None)

    # -- process dialog ---------------------------------------------------

    def open_dialog(self, request_id: int) -> ProcessDialog:
        item = self.find(request_id)
        if item is None:
            raise ValueError(f"Permohonan {request_id} not found")
        if not can_process(item):
            raise InvalidTransitionError(f"Permohonan {request_id} is already {item.status}")
        dialog = ProcessDialog(request_id=request_id)
        self._replace(dialog=dialog)
        return dialog

    def choose_status(self, status: str) -> None:
        status = _status_value(status)
        if self._state.dialog is None:
            raise ValueError("No permohonan selected")
        if status not in PROCESS_TARGETS:
            raise InvalidTransitionError(f"Cannot process a permohonan to {status!r}")
        self._replace(dialog=replace(self._state.dialog, status=status))

    def set_note(self, note: str) -> None:
        if self._state.dialog is None:
            raise ValueError("No permohonan selected")
        self._replace(dialog=replace(self._state.dialog, note=note))

    def cancel_dialog(self) -> None:
        self._replace(dialog=None)

    async def confirm(self) -> bool:
        """Submit the open dialog.  A no-op while confirm is disabled."""
        dialog = self._state.dialog
        if dialog is None or not dialog.can_confirm or self._state.processing:
            return False
        return await self.process(dialog.request_id, dialog.status, dialog.note)

    # -- store round trips ------------------------------------------------

    async def load_all(self) -> bool:
        """Fetch every request, newest first, and replace the cached list.

        Returns ``True`` when the fetched list was applied.  On failure
        the previous list stays as it was and an error notice is set.
        """
        token = next(self._load_tokens)
        self._latest_load = token
        self._replace(loading=True)
        rows, error = await self.store.list_all()
        if token != self._latest_load:
            logger.debug("Discarding stale permohonan load %s (latest is %s)", token, self._latest_load)
            return False
        loaded: Tuple[PermohonanRead, ...] = ()
        if error is None:
            try:
                loaded = tuple(PermohonanRead.model_validate(row) for row in rows)
            except ValidationError as e:
                error = BackendError(status_code=None, message=f"Malformed permohonan row: {e}")
        if error is not None:
            self.last_error = error
            logger.error("Failed to load permohonan: %s", error.message)
            self._replace(loading=False, notice=Notice("error", LOAD_FAILED_MESSAGE))
            return False
        notice = self._state.notice
        if notice is not None and notice.level == "error":
            notice = None
        self._replace_clamped(requests=loaded, loading=False, notice=notice)
        logger.debug("Loaded %s permohonan", len(loaded))
        return True

    async def process(self, request_id: int, new_status: str, note: str = "") -> bool:
        """Move one request to ``new_status`` and resynchronise.

        Sends a single update setting ``status``, ``tanggal_diproses``
        (now) and ``catatan_admin``.  On success the dialog closes and
        the full list is reloaded.  On failure the dialog stays open
        with the entered values and an error notice is set.

        Raises
        ------
        InvalidTransitionError
            If ``new_status`` is not processing, approved or rejected.
        """
        new_status = _status_value(new_status)
        if new_status not in PROCESS_TARGETS:
            raise InvalidTransitionError(f"Cannot process a permohonan to {new_status!r}")
        note = note or ""
        processed_at = self._clock()

        dialog = self._state.dialog
        if dialog is not None and dialog.request_id == request_id:
            dialog = replace(dialog, status=new_status, note=note)
        self._replace(processing=True, dialog=dialog)

        ok, error = await self.store.update(
            request_id,
            {
                "status": new_status,
                "tanggal_diproses": processed_at.isoformat(),
                "catatan_admin": note,
            },
        )
        if not ok:
            self.last_error = error
            logger.error(
                "Failed to process permohonan %s to %s: %s",
                request_id,
                new_status,
                error.message if error else "unknown error",
            )
            self._replace(processing=False, notice=Notice("error", PROCESS_FAILED_MESSAGE))
            return False

        logger.info("Permohonan %s processed to %s", request_id, new_status)
        self._replace(processing=False, dialog=None, notice=Notice("success", PROCESS_OK_MESSAGE))
        await self.load_all()
        return True
