"""Remote note store over a PostgREST-style HTTP API.

Talks to ``<base_url>/rest/v1/notes`` with the project key in the
``apikey`` header. Row filters use PostgREST syntax (``id=eq.<id>``);
writes ask for the stored row back with ``Prefer: return=representation``.
Server-side access control decides what a key may read or change.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

import httpx

from ..errors import StoreError
from .models import Note, now_iso
from .store import check_fields

logger = logging.getLogger(__name__)

NOTES_PATH = "/rest/v1/notes"


class RestNoteStore:
    """HTTP client implementing the NoteStore interface.

    Usage:
        async with RestNoteStore(settings.store_url, settings.store_key) as store:
            notes = await store.list_notes(user_id)
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        *,
        access_token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the store client.

        Args:
            base_url: Root URL of the API server.
            api_key: Project key sent as ``apikey``.
            access_token: Signed-in user's token; falls back to the api key.
            timeout: Request timeout in seconds.
            transport: Custom transport (tests pass ``httpx.MockTransport``).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        headers = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
        bearer = access_token or api_key
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        self._headers = headers
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> RestNoteStore:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def _request(
        self,
        operation: str,
        method: str,
        *,
        note_id: str | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request, mapping transport and HTTP failures to StoreError."""
        try:
            response = await self._get_client().request(method, NOTES_PATH, **kwargs)
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            logger.warning("Note store unreachable during %s: %s", operation, e)
            raise StoreError(
                f"Note store unreachable: {e}",
                operation=operation,
                note_id=note_id,
            ) from e
        except httpx.HTTPError as e:
            logger.error("Note store %s failed: %s", operation, e)
            raise StoreError(f"Note store {operation} failed: {e}", operation=operation, note_id=note_id) from e

        if response.status_code >= 400:
            logger.error("Note store %s returned %d: %s", operation, response.status_code, response.text)
            raise StoreError(
                f"Note store {operation} failed with status {response.status_code}",
                operation=operation,
                note_id=note_id,
                status_code=response.status_code,
                # Client errors (permission, conflict) will not fix themselves.
                recoverable=response.status_code >= 500 or response.status_code == 429,
            )
        return response

    @staticmethod
    def _rows(response: httpx.Response) -> list[dict[str, Any]]:
        if not response.content:
            return []
        data = response.json()
        return data if isinstance(data, list) else [data]

    # =========================================================================
    # NoteStore
    # =========================================================================

    async def create(self, title: str, content: str, owner_id: str) -> Note:
        now = now_iso()
        payload = {
            "id": str(uuid4()),
            "title": title,
            "content": content,
            "user_id": owner_id,
            "created_at": now,
            "updated_at": now,
            "is_public": False,
        }
        response = await self._request(
            "create",
            "POST",
            json=payload,
            headers={"Prefer": "return=representation"},
        )
        rows = self._rows(response)
        return Note.from_dict(rows[0] if rows else payload)

    async def fetch(self, note_id: str) -> Note | None:
        response = await self._request(
            "fetch",
            "GET",
            note_id=note_id,
            params={"id": f"eq.{note_id}", "select": "*"},
        )
        rows = self._rows(response)
        return Note.from_dict(rows[0]) if rows else None

    async def list_notes(self, owner_id: str) -> list[Note]:
        response = await self._request(
            "list",
            "GET",
            params={"user_id": f"eq.{owner_id}", "select": "*", "order": "updated_at.desc"},
        )
        return [Note.from_dict(row) for row in self._rows(response)]

    async def update(self, note_id: str, fields: dict[str, Any]) -> Note:
        response = await self._request(
            "update",
            "PATCH",
            note_id=note_id,
            params={"id": f"eq.{note_id}"},
            json=check_fields(fields),
            headers={"Prefer": "return=representation"},
        )
        rows = self._rows(response)
        if not rows:
            raise StoreError("Note does not exist", operation="update", note_id=note_id, recoverable=False)
        return Note.from_dict(rows[0])

    async def delete(self, note_id: str) -> None:
        await self._request("delete", "DELETE", note_id=note_id, params={"id": f"eq.{note_id}"})

    async def fetch_by_share_token(self, token: str) -> Note | None:
        response = await self._request(
            "fetch_by_share_token",
            "GET",
            params={"share_token": f"eq.{token}", "select": "*"},
        )
        rows = self._rows(response)
        return Note.from_dict(rows[0]) if rows else None
