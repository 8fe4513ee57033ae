"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
portal starts against a local SQLite database without any setup.  To
run against the hosted backend set ``REQUEST_STORE=supabase`` (and
optionally ``IDENTITY_PROVIDER=supabase``) together with the
``SUPABASE_URL`` and ``SUPABASE_ANON_KEY`` variables.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Metrologi Portal API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 8)))

    # Path or connection string for the SQLite database.  A relative
    # path is resolved relative to the package root by the ``db`` module.
    database_url: str = os.getenv("DATABASE_URL", "metrologi_portal.db")

    # Which backend holds service requests: ``sqlite`` (local database)
    # or ``supabase`` (hosted PostgREST API).
    request_store: str = os.getenv("REQUEST_STORE", "sqlite")

    # Which identity capability authenticates admins: ``local`` (admins
    # table + signed tokens) or ``supabase`` (GoTrue auth endpoints).
    identity_provider: str = os.getenv("IDENTITY_PROVIDER", "local")

    supabase_url: str = os.getenv("SUPABASE_URL", "")
    supabase_anon_key: str = os.getenv("SUPABASE_ANON_KEY", "")
    supabase_timeout: int = int(os.getenv("SUPABASE_TIMEOUT", "15"))

    # Rows per page in the service request table.
    page_size: int = int(os.getenv("PAGE_SIZE", "10"))

    # Businesses whose calibration expires within this many days get a
    # ``tera_exp_warning`` notification.
    tera_warning_days: int = int(os.getenv("TERA_WARNING_DAYS", "30"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables
# must be set before importing this module.
settings = Settings()
