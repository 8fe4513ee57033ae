"""
SQLite database integration and simple migration system.

This module provides functions for obtaining a database connection
(``get_connection``), a cursor context manager (``get_cursor``) and
the migration runner applied on application start (``init_db``).

The migration mechanism stores applied migration versions in the
``migrations`` table and executes new migrations in order.  The
schema mirrors the hosted backend's tables so that the local database
can stand in for it (``REQUEST_STORE=sqlite``).
"""

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .config import settings


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: service requests, businesses and their equipment
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS permohonan (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            nama_pemohon TEXT NOT NULL,
            email TEXT NOT NULL,
            telepon TEXT,
            alamat TEXT,
            jenis_permohonan TEXT NOT NULL,
            jenis_alat TEXT NOT NULL,
            merek_alat TEXT,
            kapasitas TEXT,
            tahun_pembuatan TEXT,
            status TEXT NOT NULL DEFAULT 'pending',
            tanggal_permohonan TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            tanggal_diproses TIMESTAMP,
            catatan_admin TEXT,
            dokumen_pendukung TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS pelaku_usaha (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            nama_pemilik TEXT NOT NULL,
            jenis_lapak TEXT NOT NULL,
            lokasi TEXT NOT NULL,
            jenis_dagangan TEXT,
            jumlah_te INTEGER NOT NULL DEFAULT 0,
            jumlah_tm INTEGER NOT NULL DEFAULT 0,
            jumlah_cb INTEGER NOT NULL DEFAULT 0,
            jumlah_tbi INTEGER NOT NULL DEFAULT 0,
            jumlah_tf INTEGER NOT NULL DEFAULT 0,
            jumlah_dl INTEGER NOT NULL DEFAULT 0,
            jumlah_at INTEGER NOT NULL DEFAULT 0,
            catatan TEXT,
            tanggal_tera_terakhir DATE,
            tanggal_exp_tera DATE,
            status_tera TEXT NOT NULL DEFAULT 'Aktif',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS uttp (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            pelaku_usaha_id INTEGER NOT NULL,
            jenis TEXT NOT NULL,
            merk TEXT,
            kondisi TEXT NOT NULL DEFAULT 'Baik',
            tahun_tera INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(pelaku_usaha_id) REFERENCES pelaku_usaha(id)
        );

        CREATE INDEX IF NOT EXISTS idx_permohonan_created_at ON permohonan(created_at);
        CREATE INDEX IF NOT EXISTS idx_uttp_pelaku_usaha_id ON uttp(pelaku_usaha_id);
        """,
    ),
    # Migration 2: public articles and admin notifications
    (
        2,
        """
        CREATE TABLE IF NOT EXISTS artikel (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            judul TEXT NOT NULL,
            konten TEXT NOT NULL,
            excerpt TEXT,
            gambar_url TEXT,
            status TEXT NOT NULL DEFAULT 'draft',
            author TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS notifikasi (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            jenis TEXT NOT NULL,
            judul TEXT NOT NULL,
            pesan TEXT NOT NULL,
            pelaku_usaha_id INTEGER,
            dibaca INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(pelaku_usaha_id) REFERENCES pelaku_usaha(id)
        );

        CREATE INDEX IF NOT EXISTS idx_notifikasi_pelaku_usaha_id ON notifikasi(pelaku_usaha_id);
        """,
    ),
    # Migration 3: admin accounts, sessions and the audit trail
    (
        3,
        """
        CREATE TABLE IF NOT EXISTS admins (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE,
            full_name TEXT,
            password TEXT NOT NULL,
            disabled INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        -- One row per issued token; sign-out sets revoked_at.
        CREATE TABLE IF NOT EXISTS admin_sessions (
            jti TEXT PRIMARY KEY,
            admin_id INTEGER NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            revoked_at TIMESTAMP,
            FOREIGN KEY(admin_id) REFERENCES admins(id)
        );

        CREATE TABLE IF NOT EXISTS audit_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            admin_id INTEGER,
            action TEXT NOT NULL,
            object_type TEXT,
            object_id INTEGER,
            timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            details TEXT,
            FOREIGN KEY(admin_id) REFERENCES admins(id)
        );
        """,
    ),
]


def get_database_path() -> str:
    """Compute the path to the SQLite database file.

    If ``settings.database_url`` is an absolute path, use it directly.
    Otherwise resolve it relative to the package root.
    """
    db_url = settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent  # metrologi_portal/
    return str((base_dir / db_url).resolve())


def get_connection() -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    The connection uses a row factory to access columns by name.  No
    type detection is enabled: timestamps come back as the ISO strings
    they were stored as and are parsed by the pydantic schemas.
    """
    conn = sqlite3.connect(get_database_path())
    conn.row_factory = sqlite3.Row
    # SQLite ignores REFERENCES clauses unless enabled per connection
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_cursor() -> Iterator[sqlite3.Cursor]:
    """Context manager that yields a cursor and closes the connection on exit."""
    conn = get_connection()
    try:
        yield conn.cursor()
        conn.commit()
    finally:
        conn.close()


def init_db() -> None:
    """Initialise the database and apply pending migrations.

    Creates the ``migrations`` table if it does not exist, checks the
    current schema version, and applies any newer entries of
    ``MIGRATIONS``.  To change the schema, append a migration with an
    incremented version number.
    """
    with get_cursor() as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) as version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in MIGRATIONS:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                current_version = version
