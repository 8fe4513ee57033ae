"""Client for the hosted Supabase backend.

This module wraps the two HTTP surfaces of the hosted backend that the
portal talks to:

* the PostgREST table API under ``/rest/v1/<table>``, used by
  :class:`~metrologi_portal.app.services.request_store.SupabaseRequestStore`;
* the GoTrue auth API under ``/auth/v1``, used by
  :class:`~metrologi_portal.app.services.identity.SupabaseIdentity`.

Every call goes through :meth:`SupabaseClient.request`, which never
raises for HTTP or network failures.  Instead it returns a tuple
``(data, error)``: on success ``error`` is ``None``; on failure ``data``
is ``None`` and ``error`` is a :class:`BackendError` describing what
went wrong.  Callers decide how to surface the failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import requests


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackendError:
    """Structured failure returned by a backend call.

    Attributes:
        status_code: HTTP status of the failed response, or ``None`` when
            the backend could not be reached at all.
        message: Human readable description taken from the response body
            when available.
    """

    status_code: Optional[int]
    message: str


class SupabaseClient:
    """Thin ``requests`` wrapper around a Supabase project.

    The anon key is sent both as the ``apikey`` header and, unless a
    user access token is supplied per call, as the bearer token.
    """

    def __init__(
        self,
        *,
        base_url: str,
        anon_key: str,
        timeout: int = 15,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialise the client.

        Args:
            base_url: Project URL, e.g. ``https://xyz.supabase.co``.
            anon_key: Public anon key of the project.
            timeout: Per-request timeout in seconds.
            session: Optional requests session.  If not supplied a
                session will be created automatically.
        """
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self, access_token: Optional[str], extra: Optional[Dict[str, str]]) -> Dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token or self.anon_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Dict[str, Any] | None = None,
        json_body: Any | None = None,
        headers: Dict[str, str] | None = None,
        access_token: Optional[str] = None,
    ) -> Tuple[Optional[Any], Optional[BackendError]]:
        """Perform an HTTP request against the project.

        Args:
            method: HTTP method (``GET``, ``POST``, ``PATCH``, etc.).
            path: Path relative to :attr:`base_url` (e.g. ``/rest/v1/permohonan``).
            params: Query parameters to include in the request.
            json_body: JSON body to send with the request.
            headers: Additional headers (e.g. ``Prefer``).
            access_token: A user's access token to send instead of the
                anon key.
        Returns:
            A tuple ``(data, error)``.  ``data`` is the parsed JSON body
            (``None`` for empty bodies) and ``error`` is ``None`` on
            success.
        """
        url = f"{self.base_url}{path}"
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                headers=self._headers(access_token, headers),
                timeout=self.timeout,
            )
            response.raise_for_status()
            if response.content:
                return response.json(), None
            return None, None
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            message = ""
            if exc.response is not None:
                try:
                    err_json = exc.response.json()
                    if isinstance(err_json, dict):
                        message = (
                            err_json.get("message")
                            or err_json.get("msg")
                            or err_json.get("error_description")
                            or str(err_json)
                        )
                    else:
                        message = str(err_json)
                except ValueError:
                    message = exc.response.text
            if not message:
                message = str(exc)
            logger.error("Backend request %s %s failed (%s): %s", method, path, status, message)
            return None, BackendError(status_code=status, message=message)
        except requests.RequestException as exc:
            logger.error("Backend request %s %s failed: %s", method, path, exc)
            return None, BackendError(status_code=None, message=str(exc))

    # ------------------------------------------------------------------
    # PostgREST helpers
    # ------------------------------------------------------------------
    def select(
        self, table: str, *, params: Dict[str, Any] | None = None
    ) -> Tuple[Optional[Any], Optional[BackendError]]:
        """``GET /rest/v1/<table>`` with PostgREST query parameters."""
        query = {"select": "*"}
        if params:
            query.update(params)
        return self.request("GET", f"/rest/v1/{table}", params=query)

    def update(
        self, table: str, *, filters: Dict[str, str], values: Dict[str, Any]
    ) -> Tuple[Optional[Any], Optional[BackendError]]:
        """``PATCH /rest/v1/<table>`` returning the updated rows.

        ``filters`` are PostgREST operators such as ``{"id": "eq.4"}``.
        """
        return self.request(
            "PATCH",
            f"/rest/v1/{table}",
            params=filters,
            json_body=values,
            headers={"Prefer": "return=representation"},
        )
