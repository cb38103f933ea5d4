"""
Support API Client
==================

Async HTTP driver for the TriageDesk endpoints, built on httpx.
"""

from typing import Any, Dict, Optional

import httpx

from triagedesk.config import settings
from triagedesk.core import SupportAPIError
from triagedesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class SupportAPIClient:
    """
    Thin wrapper over ``httpx.AsyncClient``.

    Non-2xx answers raise SupportAPIError with the server's ``error`` text.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout,
            transport=transport
        )

    async def __aenter__(self) -> "SupportAPIClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self._client.post(path, json=body)
        except httpx.HTTPError as e:
            raise SupportAPIError(0, "Could not connect to the server.", {"error": str(e)})

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.is_error:
            message = data.get("error") or "Something went wrong."
            logger.warning(
                "Support API call failed",
                extra={"path": path, "status_code": response.status_code, "error": message}
            )
            raise SupportAPIError(response.status_code, message)
        return data

    async def initiate(self, query: str) -> Dict[str, Any]:
        return await self._post("/api/ticket/initiate", {"query": query})

    async def chat(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send a chat turn; returns the ``aiMessage`` object."""
        data = await self._post("/api/chat", payload)
        return data["aiMessage"]

    async def escalate(self, ticket_id: int) -> str:
        data = await self._post("/api/ticket/escalate", {"ticketId": ticket_id})
        return data["message"]

    async def mark_urgent(self, ticket_id: int) -> str:
        data = await self._post("/api/ticket/urgent", {"ticketId": ticket_id})
        return data["message"]

    async def resolve(self, ticket_id: int, rating: int, comment: str) -> str:
        data = await self._post(
            "/api/ticket/resolve",
            {"ticketId": ticket_id, "rating": rating, "comment": comment}
        )
        return data["message"]
