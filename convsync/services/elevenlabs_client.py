"""ElevenLabs Conversational AI client with typed error classification."""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from convsync.config import get_settings
from convsync.errors import (
    RemoteAuthError,
    RemoteGenericError,
    RemoteNotFound,
    RemoteRateLimited,
    TransportError,
)

logger = logging.getLogger(__name__)
settings = get_settings()


def _upstream_message(response: httpx.Response) -> str | None:
    """Best-effort extraction of the upstream error message."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None

    detail = body.get("detail")
    if isinstance(detail, dict) and isinstance(detail.get("message"), str):
        return detail["message"]
    if isinstance(detail, str):
        return detail
    if isinstance(body.get("message"), str):
        return body["message"]
    return None


class ElevenLabsClient:
    """
    Client for the ElevenLabs Conversational AI API.

    Features:
    - Per-call ``xi-api-key`` credential header
    - Status codes mapped to typed errors (401/403, 404, 429, other)
    - Network failures reported separately as TransportError

    The client never retries; retry policy belongs to the caller.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = settings.elevenlabs_base_url,
        timeout: float = settings.elevenlabs_timeout_seconds,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

        self.headers: dict[str, str] = {
            "Accept": "application/json",
            "xi-api-key": api_key,
        }

    async def _request(
        self,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Issue a GET request and return the parsed JSON body."""
        url = f"{self.base_url}{path}"
        logger.debug(f"ElevenLabs request: GET {url}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, headers=self.headers, params=params)
        except httpx.RequestError as e:
            logger.error(f"ElevenLabs network error for {url}: {e}")
            raise TransportError(
                "Could not reach ElevenLabs API - check your network connection.",
                details={"url": url, "error": str(e)},
            ) from e

        if response.is_error:
            self._raise_for_status(response, path)

        try:
            return response.json()
        except ValueError as e:
            raise RemoteGenericError(
                "ElevenLabs returned a response that is not valid JSON.",
                status=response.status_code,
                details={"path": path},
            ) from e

    def _raise_for_status(self, response: httpx.Response, path: str) -> None:
        """Translate a non-2xx response into a typed remote error."""
        status = response.status_code
        message = _upstream_message(response)
        logger.warning(f"ElevenLabs non-OK response: {status} for {path} ({message})")

        details: dict[str, Any] = {"path": path}
        if message:
            details["upstream_message"] = message

        if status == 401:
            raise RemoteAuthError("Invalid ElevenLabs API key.", status=status, details=details)
        if status == 403:
            raise RemoteAuthError(
                "ElevenLabs API key lacks permission for this action.",
                status=status,
                details=details,
            )
        if status == 404:
            raise RemoteNotFound(
                f"ElevenLabs resource not found: {path}", status=status, details=details
            )
        if status == 429:
            raise RemoteRateLimited(
                "ElevenLabs rate limit hit. Please wait and retry.",
                status=status,
                details=details,
            )
        raise RemoteGenericError(
            message or f"ElevenLabs API error {status}", status=status, details=details
        )

    async def fetch_page(
        self,
        agent_id: str | None = None,
        cursor: str | None = None,
        page_size: int | None = None,
    ) -> dict[str, Any]:
        """
        Fetch one page of the conversation listing.

        Args:
            agent_id: Only list conversations of this agent
            cursor: Pagination cursor from the previous page
            page_size: Maximum items per page (upstream default when None)

        Returns:
            Parsed body: ``{"conversations": [...], "next_cursor": ...}``
        """
        params: dict[str, Any] = {}
        if page_size is not None:
            params["page_size"] = page_size
        if agent_id:
            params["agent_id"] = agent_id
        if cursor:
            params["cursor"] = cursor

        return await self._request("/conversations", params)

    async def fetch_detail(self, conversation_id: str) -> dict[str, Any]:
        """Fetch the full detail (transcript, charging, analysis) of one conversation."""
        return await self._request(f"/conversations/{quote(conversation_id, safe='')}")
