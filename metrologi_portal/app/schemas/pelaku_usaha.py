"""
Pydantic schemas for registered businesses (pelaku usaha) and their
measuring equipment (UTTP).

Timestamps are kept as ``str`` because SQLite returns them as stored.
Calibration dates are plain ``date`` values.
"""

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator


class JenisLapak(str, Enum):
    KIOS = "Kios"
    LOS = "Los"
    PKL = "PKL"


class StatusTera(str, Enum):
    AKTIF = "Aktif"
    PERLU_TERA_ULANG = "Perlu Tera Ulang"
    TIDAK_AKTIF = "Tidak Aktif"


class KondisiUttp(str, Enum):
    BAIK = "Baik"
    RUSAK = "Rusak"


class UttpCreate(BaseModel):
    jenis: str = Field(..., description="Equipment type, e.g. 'Timbangan Meja'")
    merk: Optional[str] = None
    kondisi: KondisiUttp = KondisiUttp.BAIK
    tahun_tera: Optional[int] = Field(None, ge=1900, le=2100)


class UttpRead(BaseModel):
    id: int
    pelaku_usaha_id: int
    jenis: str
    merk: Optional[str] = None
    kondisi: str
    tahun_tera: Optional[int] = None
    created_at: str

    model_config = {"from_attributes": True}


class PelakuUsahaBase(BaseModel):
    nama_pemilik: str
    jenis_lapak: JenisLapak
    lokasi: str
    jenis_dagangan: Optional[str] = None
    jumlah_te: int = Field(0, ge=0)
    jumlah_tm: int = Field(0, ge=0)
    jumlah_cb: int = Field(0, ge=0)
    jumlah_tbi: int = Field(0, ge=0)
    jumlah_tf: int = Field(0, ge=0)
    jumlah_dl: int = Field(0, ge=0)
    jumlah_at: int = Field(0, ge=0)
    catatan: Optional[str] = None
    tanggal_tera_terakhir: Optional[date] = None
    tanggal_exp_tera: Optional[date] = None
    status_tera: StatusTera = StatusTera.AKTIF


class PelakuUsahaCreate(PelakuUsahaBase):
    """Schema for registering a business."""
    pass


class PelakuUsahaUpdate(BaseModel):
    """Partial update; only provided fields are written."""

    nama_pemilik: str | None = None
    jenis_lapak: JenisLapak | None = None
    lokasi: str | None = None
    jenis_dagangan: str | None = None
    jumlah_te: int | None = Field(None, ge=0)
    jumlah_tm: int | None = Field(None, ge=0)
    jumlah_cb: int | None = Field(None, ge=0)
    jumlah_tbi: int | None = Field(None, ge=0)
    jumlah_tf: int | None = Field(None, ge=0)
    jumlah_dl: int | None = Field(None, ge=0)
    jumlah_at: int | None = Field(None, ge=0)
    catatan: str | None = None
    tanggal_tera_terakhir: date | None = None
    tanggal_exp_tera: date | None = None
    status_tera: StatusTera | None = None

    @field_validator(
        "nama_pemilik",
        "jenis_lapak",
        "lokasi",
        "jumlah_te",
        "jumlah_tm",
        "jumlah_cb",
        "jumlah_tbi",
        "jumlah_tf",
        "jumlah_dl",
        "jumlah_at",
        "status_tera",
    )
    @classmethod
    def reject_null(cls, v, info: ValidationInfo):
        """These columns may be omitted but never cleared."""
        if v is None:
            raise ValueError(f"{info.field_name} may not be null")
        return v


class PelakuUsahaRead(PelakuUsahaBase):
    id: int
    jenis_lapak: str
    status_tera: str
    uttp_count: int = 0
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}


class PelakuUsahaDetail(BaseModel):
    pelaku_usaha: PelakuUsahaRead
    uttp: List[UttpRead]
