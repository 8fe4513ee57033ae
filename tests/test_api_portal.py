from __future__ import annotations

from datetime import date, timedelta

import pytest

from metrologi_portal.app.core.db import get_connection
from metrologi_portal.app.core.security import get_identity
from metrologi_portal.app.core.supabase import BackendError
from metrologi_portal.app.main import app
from metrologi_portal.app.services.artikel_service import reading_time
from metrologi_portal.app.services.notifikasi_service import NotifikasiService

from tests.conftest import insert_pelaku_usaha


# -- auth ---------------------------------------------------------------


@pytest.fixture
def local_auth_client(client):
    app.dependency_overrides.pop(get_identity, None)
    return client


def test_login_me_logout_with_local_accounts(local_auth_client, admin) -> None:
    client = local_auth_client
    bad = client.post("/api/v1/auth/login", json={"email": admin["email"], "password": "salah"})
    assert bad.status_code == 401

    response = client.post("/api/v1/auth/login", json={"email": admin["email"], "password": "rahasia"})
    assert response.status_code == 200
    headers = {"Authorization": f"Bearer {response.json()['access_token']}"}

    me = client.get("/api/v1/auth/me", headers=headers)
    assert me.json() == admin

    assert client.post("/api/v1/auth/logout", headers=headers).status_code == 204
    assert client.get("/api/v1/auth/me", headers=headers).status_code == 401
    assert client.post("/api/v1/auth/logout", headers=headers).status_code == 401


# -- pelaku usaha -------------------------------------------------------


def test_pelaku_usaha_crud_with_uttp(client, auth_headers) -> None:
    created = client.post(
        "/api/v1/pelaku-usaha/",
        json={"nama_pemilik": "Pak Darto", "jenis_lapak": "Los", "lokasi": "Pasar Sentral Blok C", "jumlah_te": 2},
        headers=auth_headers,
    )
    assert created.status_code == 201
    pelaku_id = created.json()["id"]
    assert created.json()["status_tera"] == "Aktif"

    uttp = client.post(
        f"/api/v1/pelaku-usaha/{pelaku_id}/uttp",
        json={"jenis": "Timbangan Meja", "merk": "Camry", "tahun_tera": 2025},
        headers=auth_headers,
    )
    assert uttp.status_code == 201
    assert uttp.json()["kondisi"] == "Baik"

    detail = client.get(f"/api/v1/pelaku-usaha/{pelaku_id}", headers=auth_headers).json()
    assert detail["pelaku_usaha"]["uttp_count"] == 1
    assert [u["jenis"] for u in detail["uttp"]] == ["Timbangan Meja"]

    updated = client.put(
        f"/api/v1/pelaku-usaha/{pelaku_id}", json={"status_tera": "Perlu Tera Ulang"}, headers=auth_headers
    )
    assert updated.json()["status_tera"] == "Perlu Tera Ulang"
    assert updated.json()["nama_pemilik"] == "Pak Darto"

    assert client.delete(f"/api/v1/pelaku-usaha/{pelaku_id}", headers=auth_headers).status_code == 204
    assert client.get(f"/api/v1/pelaku-usaha/{pelaku_id}", headers=auth_headers).status_code == 404
    conn = get_connection()
    try:
        assert conn.execute("SELECT COUNT(*) FROM uttp").fetchone()[0] == 0
    finally:
        conn.close()


def test_pelaku_usaha_filters(client, auth_headers) -> None:
    insert_pelaku_usaha(nama_pemilik="Ibu Sari", jenis_lapak="Kios", lokasi="Blok A")
    insert_pelaku_usaha(nama_pemilik="Pak Budi", jenis_lapak="PKL", lokasi="Depan Pasar", status_tera="Tidak Aktif")

    def names(**params):
        response = client.get("/api/v1/pelaku-usaha/", params=params, headers=auth_headers)
        return sorted(row["nama_pemilik"] for row in response.json())

    assert names() == ["Ibu Sari", "Pak Budi"]
    assert names(jenis_lapak="semua", status_tera="semua") == ["Ibu Sari", "Pak Budi"]
    assert names(q="blok a") == ["Ibu Sari"]
    assert names(q="BUDI") == ["Pak Budi"]
    assert names(jenis_lapak="Kios") == ["Ibu Sari"]
    assert names(status_tera="Tidak Aktif") == ["Pak Budi"]


def test_pelaku_usaha_search_treats_wildcards_literally(client, auth_headers) -> None:
    insert_pelaku_usaha(nama_pemilik="Toko 100%", lokasi="Blok A")
    insert_pelaku_usaha(nama_pemilik="Toko 1000", lokasi="Blok B")
    insert_pelaku_usaha(nama_pemilik="Pak Ahmad", lokasi="Los_3")
    insert_pelaku_usaha(nama_pemilik="Pak Hasan", lokasi="Los 3")

    def names(q):
        response = client.get("/api/v1/pelaku-usaha/", params={"q": q}, headers=auth_headers)
        return sorted(row["nama_pemilik"] for row in response.json())

    assert names("100%") == ["Toko 100%"]
    assert names("los_3") == ["Pak Ahmad"]
    assert names("%") == ["Toko 100%"]


def test_pelaku_usaha_update_refuses_null_for_required_columns(client, auth_headers) -> None:
    pelaku_id = insert_pelaku_usaha(nama_pemilik="Ibu Sari", lokasi="Blok A")
    url = f"/api/v1/pelaku-usaha/{pelaku_id}"

    for field in ("nama_pemilik", "jenis_lapak", "lokasi", "status_tera", "jumlah_te"):
        response = client.put(url, json={field: None}, headers=auth_headers)
        assert response.status_code == 422, field

    cleared = client.put(url, json={"catatan": None, "tanggal_exp_tera": None}, headers=auth_headers)
    assert cleared.status_code == 200
    assert cleared.json()["nama_pemilik"] == "Ibu Sari"
    assert cleared.json()["catatan"] is None


def test_pelaku_usaha_unknown_id(client, auth_headers) -> None:
    assert client.put("/api/v1/pelaku-usaha/404", json={"lokasi": "x"}, headers=auth_headers).status_code == 404
    assert client.delete("/api/v1/pelaku-usaha/404", headers=auth_headers).status_code == 404
    response = client.post("/api/v1/pelaku-usaha/404/uttp", json={"jenis": "Meteran"}, headers=auth_headers)
    assert response.status_code == 404


# -- artikel ------------------------------------------------------------


def test_reading_time_strips_tags() -> None:
    assert reading_time("") == 1
    assert reading_time("<p>" + "kata " * 200 + "</p>") == 1
    assert reading_time("<p>" + "kata " * 201 + "</p>") == 2
    assert reading_time("<h1>Judul</h1><p>satu <b>dua</b></p>") == 1


def test_artikel_public_and_admin_views(client, auth_headers) -> None:
    body = "<p>" + "tera " * 450 + "</p>"
    draft = client.post(
        "/api/v1/artikel/",
        json={"judul": "Draf", "konten": body, "author": "Admin"},
        headers=auth_headers,
    )
    assert draft.status_code == 201
    published = client.post(
        "/api/v1/artikel/",
        json={"judul": "Jadwal Tera Ulang", "konten": body, "author": "Admin", "status": "published"},
        headers=auth_headers,
    ).json()

    public = client.get("/api/v1/artikel/").json()
    assert [a["judul"] for a in public] == ["Jadwal Tera Ulang"]

    detail = client.get(f"/api/v1/artikel/{published['id']}")
    assert detail.status_code == 200
    assert detail.json()["reading_time"] == 3
    assert client.get(f"/api/v1/artikel/{draft.json()['id']}").status_code == 404

    all_rows = client.get("/api/v1/artikel/admin/all", headers=auth_headers).json()
    assert len(all_rows) == 2
    assert client.get("/api/v1/artikel/admin/all").status_code == 401

    client.put(f"/api/v1/artikel/{draft.json()['id']}", json={"status": "published"}, headers=auth_headers)
    assert len(client.get("/api/v1/artikel/").json()) == 2
    assert client.delete(f"/api/v1/artikel/{published['id']}", headers=auth_headers).status_code == 204
    assert client.delete(f"/api/v1/artikel/{published['id']}", headers=auth_headers).status_code == 404


def test_artikel_update_refuses_null_for_required_columns(client, auth_headers) -> None:
    created = client.post(
        "/api/v1/artikel/",
        json={"judul": "Tera Ulang 2026", "konten": "isi", "author": "Admin", "excerpt": "ringkas"},
        headers=auth_headers,
    ).json()
    url = f"/api/v1/artikel/{created['id']}"

    for field in ("status", "judul", "konten", "author"):
        response = client.put(url, json={field: None}, headers=auth_headers)
        assert response.status_code == 422, field

    cleared = client.put(url, json={"excerpt": None}, headers=auth_headers)
    assert cleared.status_code == 200
    assert cleared.json()["excerpt"] is None
    assert cleared.json()["status"] == "draft"


def test_artikel_list_default_limit_is_three(client, auth_headers) -> None:
    for i in range(4):
        client.post(
            "/api/v1/artikel/",
            json={"judul": f"Artikel {i}", "konten": "isi", "author": "Admin", "status": "published"},
            headers=auth_headers,
        )

    assert len(client.get("/api/v1/artikel/").json()) == 3
    assert len(client.get("/api/v1/artikel/", params={"limit": 10}).json()) == 4


# -- notifikasi ---------------------------------------------------------


@pytest.mark.asyncio
async def test_tera_reminders_expired_warning_and_dedup(portal_db) -> None:
    today = date(2026, 10, 19)
    insert_pelaku_usaha(nama_pemilik="Expired", tanggal_exp_tera=(today - timedelta(days=1)).isoformat())
    insert_pelaku_usaha(nama_pemilik="Soon", tanggal_exp_tera=(today + timedelta(days=10)).isoformat())
    insert_pelaku_usaha(nama_pemilik="Later", tanggal_exp_tera=(today + timedelta(days=90)).isoformat())
    insert_pelaku_usaha(nama_pemilik="Unknown")

    result = await NotifikasiService.generate_tera_reminders(today=today, warning_days=30)
    assert (result.created, result.expired, result.warnings) == (2, 1, 1)

    again = await NotifikasiService.generate_tera_reminders(today=today, warning_days=30)
    assert again.created == 0

    items = await NotifikasiService.list_notifikasi()
    assert {(n.nama_pemilik, n.jenis) for n in items} == {
        ("Expired", "tera_expired"),
        ("Soon", "tera_exp_warning"),
    }


def test_notifikasi_read_flow(client, auth_headers) -> None:
    insert_pelaku_usaha(nama_pemilik="Expired", tanggal_exp_tera="2000-01-01")
    insert_pelaku_usaha(nama_pemilik="Also expired", tanggal_exp_tera="2001-01-01")

    generated = client.post("/api/v1/notifikasi/generate-tera-reminders", headers=auth_headers).json()
    assert generated["expired"] == 2
    assert client.get("/api/v1/notifikasi/unread-count", headers=auth_headers).json() == {"unread": 2}

    first = client.get("/api/v1/notifikasi/", headers=auth_headers).json()[0]
    assert first["dibaca"] is False
    assert client.put(f"/api/v1/notifikasi/{first['id']}/read", headers=auth_headers).status_code == 204
    unread = client.get("/api/v1/notifikasi/", params={"unread_only": True}, headers=auth_headers).json()
    assert len(unread) == 1

    assert client.put("/api/v1/notifikasi/read-all", headers=auth_headers).json() == {"unread": 0}
    assert client.get("/api/v1/notifikasi/unread-count", headers=auth_headers).json() == {"unread": 0}
    assert client.put("/api/v1/notifikasi/999/read", headers=auth_headers).status_code == 404


# -- dashboard ----------------------------------------------------------


def test_dashboard_overview(client, auth_headers, fake_store) -> None:
    this_month = date.today().strftime("%Y-%m-15T08:00:00+00:00")
    fake_store.rows[0].update(jenis_permohonan="tera_ulang", created_at=this_month)
    fake_store.rows[1].update(jenis_permohonan="tera_baru", created_at=this_month)
    fake_store.rows[2].update(jenis_permohonan="tera_ulang", created_at="2020-01-01T08:00:00+00:00")
    older = insert_pelaku_usaha(nama_pemilik="Lama", created_at="2020-01-01 08:00:00")
    newer = insert_pelaku_usaha(nama_pemilik="Baru")
    client.post(f"/api/v1/pelaku-usaha/{newer}/uttp", json={"jenis": "Timbangan"}, headers=auth_headers)

    overview = client.get("/api/v1/dashboard/overview", headers=auth_headers).json()

    assert overview["total_pelaku_usaha"] == 2
    assert overview["uttp_terdaftar"] == 1
    assert overview["tera_ulang_bulan_ini"] == 1
    assert overview["pelaku_usaha_baru"] == 1
    assert [r["id"] for r in overview["recent"]] == [newer, older]
    assert overview["recent"][0]["uttp_count"] == 1


def test_dashboard_store_failure_is_503(client, auth_headers, fake_store) -> None:
    fake_store.list_error = BackendError(status_code=503, message="backend down")

    assert client.get("/api/v1/dashboard/overview", headers=auth_headers).status_code == 503
