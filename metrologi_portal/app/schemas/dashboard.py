"""
Pydantic schemas for the admin dashboard overview.
"""

from typing import List

from pydantic import BaseModel


class RecentPelakuUsaha(BaseModel):
    id: int
    nama: str
    jenis: str
    lokasi: str
    status: str
    uttp_count: int


class DashboardOverview(BaseModel):
    total_pelaku_usaha: int
    uttp_terdaftar: int
    tera_ulang_bulan_ini: int
    pelaku_usaha_baru: int
    recent: List[RecentPelakuUsaha]
