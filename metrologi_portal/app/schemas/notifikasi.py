"""
Pydantic schemas for admin notifications.

Notifications announce new service requests and calibration expiry
for registered businesses.  ``dibaca`` ("read") is stored as 0/1 in
SQLite and exposed as a boolean.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class JenisNotifikasi(str, Enum):
    PERMOHONAN_BARU = "permohonan_baru"
    TERA_EXP_WARNING = "tera_exp_warning"
    TERA_EXPIRED = "tera_expired"


class NotifikasiRead(BaseModel):
    id: int
    jenis: str
    judul: str
    pesan: str
    pelaku_usaha_id: Optional[int] = None
    nama_pemilik: Optional[str] = None
    dibaca: bool
    created_at: str

    model_config = {"from_attributes": True}


class UnreadCount(BaseModel):
    unread: int


class ReminderResult(BaseModel):
    """Outcome of a calibration reminder sweep."""

    created: int
    expired: int
    warnings: int
