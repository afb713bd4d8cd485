"""
Client for the session share service.

A shared session gets a public URL plus a secret that authorizes pushing
updated documents for that session to the service.
"""

import logging
from typing import Any

import httpx

from config.defaults import SHARE_TIMEOUT_SECONDS

from .models import ShareInfo

logger = logging.getLogger(__name__)


class ShareClient:
    """
    Async HTTP client for ``/share_create`` and ``/share_sync``.

    Args:
        base_url: Root URL of the share service
        client: Optional preconfigured httpx client (owned by the caller)
    """

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=SHARE_TIMEOUT_SECONDS)

    async def create(self, session_id: str) -> ShareInfo:
        """
        Register a session with the share service.

        Raises:
            httpx.HTTPStatusError: If the service rejects the request
        """
        response = await self._client.post(
            f"{self.base_url}/share_create",
            json={"sessionID": session_id},
        )
        response.raise_for_status()
        info = ShareInfo.model_validate(response.json())
        logger.info("Shared session %s at %s", session_id, info.url)
        return info

    async def sync(self, session_id: str, secret: str, key: str, content: Any) -> None:
        """Push one storage document of a shared session."""
        response = await self._client.post(
            f"{self.base_url}/share_sync",
            json={
                "sessionID": session_id,
                "secret": secret,
                "key": key,
                "content": content,
            },
        )
        response.raise_for_status()
        logger.debug("Synced %s for session %s", key, session_id)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
