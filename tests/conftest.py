from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from metrologi_portal.app.core.config import settings
from metrologi_portal.app.core.db import get_connection, init_db
from metrologi_portal.app.core.security import get_identity
from metrologi_portal.app.main import app
from metrologi_portal.app.services.identity import create_admin
from metrologi_portal.app.services.request_store import get_request_store

from tests.fixtures.fake_identity import FakeIdentity
from tests.fixtures.fake_request_store import FakeRequestStore, make_permohonan

ADMIN_TOKEN = "admin-token"


@pytest.fixture
def portal_db(tmp_path, monkeypatch):
    path = tmp_path / "portal.db"
    monkeypatch.setattr(settings, "database_url", str(path))
    init_db()
    return path


@pytest.fixture
def admin(portal_db) -> dict:
    admin_id = create_admin("admin@metrologi.test", "rahasia", "Admin Metrologi")
    return {"admin_id": admin_id, "email": "admin@metrologi.test", "full_name": "Admin Metrologi"}


@pytest.fixture
def fake_store() -> FakeRequestStore:
    return FakeRequestStore(
        [
            make_permohonan(3, nama_pemohon="Budi Santoso", status="pending"),
            make_permohonan(2, nama_pemohon="Siti Aminah", status="processing", jenis_permohonan="tera_baru"),
            make_permohonan(1, nama_pemohon="Agus Salim", status="approved"),
        ]
    )


@pytest.fixture
def client(admin, fake_store):
    identity = FakeIdentity({ADMIN_TOKEN: admin})
    app.dependency_overrides[get_identity] = lambda: identity
    app.dependency_overrides[get_request_store] = lambda: fake_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


def insert_pelaku_usaha(**overrides) -> int:
    values = {
        "nama_pemilik": "Ibu Sari",
        "jenis_lapak": "Kios",
        "lokasi": "Blok A No. 3",
        "status_tera": "Aktif",
    }
    values.update(overrides)
    columns = list(values)
    conn = get_connection()
    try:
        cursor = conn.cursor()
        cursor.execute(
            f"INSERT INTO pelaku_usaha ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
            tuple(values[c] for c in columns),
        )
        conn.commit()
        return cursor.lastrowid
    finally:
        conn.close()
