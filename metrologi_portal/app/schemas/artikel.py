"""
Pydantic schemas for articles shown on the public landing page.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator


class ArtikelStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


class ArtikelCreate(BaseModel):
    judul: str = Field(..., min_length=1)
    konten: str = Field(..., description="Article body as HTML")
    excerpt: Optional[str] = None
    gambar_url: Optional[str] = None
    status: ArtikelStatus = ArtikelStatus.DRAFT
    author: str


class ArtikelUpdate(BaseModel):
    judul: str | None = Field(None, min_length=1)
    konten: str | None = None
    excerpt: str | None = None
    gambar_url: str | None = None
    status: ArtikelStatus | None = None
    author: str | None = None

    @field_validator("judul", "konten", "status", "author")
    @classmethod
    def reject_null(cls, v, info: ValidationInfo):
        if v is None:
            raise ValueError(f"{info.field_name} may not be null")
        return v


class ArtikelRead(BaseModel):
    id: int
    judul: str
    konten: str
    excerpt: Optional[str] = None
    gambar_url: Optional[str] = None
    status: str
    author: str
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}


class ArtikelDetail(ArtikelRead):
    """A published article with its estimated reading time in minutes."""

    reading_time: int
