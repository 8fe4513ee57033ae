"""
Pydantic schemas for service requests (permohonan).

Field names follow the backend's ``permohonan`` columns so that rows
from either request store validate directly into ``PermohonanRead``.
``status`` and ``jenis_permohonan`` are kept as plain strings on the
read side: a row carrying a value this portal does not know about is
still listed, it just never matches a concrete filter and is never
offered for processing.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class PermohonanStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    APPROVED = "approved"
    REJECTED = "rejected"


class JenisPermohonan(str, Enum):
    """Request kind: initial calibration or periodic re-calibration."""

    TERA_BARU = "tera_baru"
    TERA_ULANG = "tera_ulang"


class ProcessStatus(str, Enum):
    """Statuses an admin may move a request to."""

    PROCESSING = "processing"
    APPROVED = "approved"
    REJECTED = "rejected"


class PermohonanRead(BaseModel):
    """A single applicant submission as stored by the backend."""

    id: int
    nama_pemohon: str
    email: str
    telepon: Optional[str] = None
    alamat: Optional[str] = None
    jenis_permohonan: str
    jenis_alat: str
    merek_alat: Optional[str] = None
    kapasitas: Optional[str] = None
    tahun_pembuatan: Optional[str] = None
    status: str = PermohonanStatus.PENDING.value
    tanggal_permohonan: Optional[datetime] = None
    tanggal_diproses: Optional[datetime] = None
    catatan_admin: Optional[str] = None
    dokumen_pendukung: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
        # PostgREST returns numeric columns as numbers
        "coerce_numbers_to_str": True,
    }


class PermohonanProcess(BaseModel):
    """Body of the "Proses Permohonan" dialog."""

    status: ProcessStatus = Field(..., description="New status: processing, approved or rejected")
    catatan_admin: str = Field("", description="Admin note or reason shown to the applicant")


class PermohonanProcessResult(BaseModel):
    """Outcome of a process action.

    ``permohonan`` is the row as re-read after the update; it is
    ``None`` when the update succeeded but the reload did not.
    """

    message: str
    permohonan: Optional[PermohonanRead] = None


class PermohonanStats(BaseModel):
    total: int = 0
    pending: int = 0
    processing: int = 0
    approved: int = 0
    rejected: int = 0


class PermohonanPage(BaseModel):
    """Filtered, paginated view of the service request table."""

    items: List[PermohonanRead]
    page: int
    page_size: int
    total_pages: int
    filtered_count: int
    total_count: int
    range_start: int = Field(..., description="1-based index of the first row shown (0 when empty)")
    range_end: int
    has_active_filter: bool
    stats: PermohonanStats
    # statuses the process action offers per row id
    actions: Dict[int, List[str]] = Field(default_factory=dict)
