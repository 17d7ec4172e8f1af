"""
Record store access for meeting rows.

Meetings live in a Supabase (PostgREST) table.  The pipeline only ever
updates an existing row by id; it never creates or deletes meetings.
"""

import logging
from typing import Any, Dict, Optional

import requests

from .errors import PersistenceError

logger = logging.getLogger(__name__)

STATUS_COLUMNS = (
    "id",
    "status",
    "transcript",
    "summary",
    "key_points",
    "action_items",
    "participants",
    "error_message",
    "started_at",
)


class SupabaseMeetingStore:
    def __init__(
        self,
        url: str,
        service_key: str,
        *,
        table: str = "meetings",
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._endpoint = f"{url.rstrip('/')}/rest/v1/{table}"
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        }
        self._timeout = timeout
        self._session = session or requests.Session()

    @staticmethod
    def _error_text(response: requests.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])
        return response.text or f"HTTP {response.status_code}"

    def update(self, meeting_id: str, fields: Dict[str, Any]) -> None:
        """Apply ``fields`` to the meeting row with id ``meeting_id``.

        Raises:
            PersistenceError: If the request fails or the store rejects it.
        """
        try:
            response = self._session.patch(
                self._endpoint,
                params={"id": f"eq.{meeting_id}"},
                headers={**self._headers, "Prefer": "return=minimal"},
                json=fields,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise PersistenceError(f"Database update failed: {exc}") from exc
        if not response.ok:
            raise PersistenceError(f"Database update failed: {self._error_text(response)}")

    def fetch(self, meeting_id: str) -> Optional[Dict[str, Any]]:
        """Return the status columns of a meeting, or ``None`` if absent."""
        try:
            response = self._session.get(
                self._endpoint,
                params={"id": f"eq.{meeting_id}", "select": ",".join(STATUS_COLUMNS)},
                headers=self._headers,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise PersistenceError(f"Failed to fetch meeting: {exc}") from exc
        if not response.ok:
            raise PersistenceError(f"Failed to fetch meeting: {self._error_text(response)}")
        try:
            rows = response.json()
        except ValueError as exc:
            raise PersistenceError("Failed to fetch meeting: response was not valid JSON") from exc
        if not isinstance(rows, list):
            raise PersistenceError("Failed to fetch meeting: unexpected response shape")
        return rows[0] if rows else None
