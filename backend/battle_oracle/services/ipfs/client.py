"""Async IPFS HTTP API client used as the settlement content store."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import IPFSConfig
from .exceptions import IPFSError, IPFSNotFoundError

logger = logging.getLogger(__name__)


class IPFSClient:
    """Stores settlement records on IPFS and reads them back by CID."""

    def __init__(
        self,
        config: IPFSConfig | None = None,
        project_id: str | None = None,
        project_secret: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or IPFSConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        if project_id and project_secret:
            self.auth: httpx.Auth | None = httpx.BasicAuth(project_id, project_secret)
        else:
            self.auth = None

        logger.info(
            f"Initialized IPFSClient ({self.config.api_url}, "
            f"auth={'enabled' if self.auth else 'disabled'})"
        )

    async def __aenter__(self) -> IPFSClient:
        self._client = httpx.AsyncClient(
            base_url=self.config.api_url.rstrip("/") + "/api/v0",
            timeout=self.config.timeout_seconds,
            auth=self.auth,
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Closed IPFSClient")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("IPFSClient must be used as async context manager")
        return self._client

    async def _post(self, endpoint: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.client.post(endpoint, **kwargs)
        except httpx.RequestError as e:
            raise IPFSError(f"IPFS request to {endpoint} failed: {e}") from e

        if response.status_code == 404:
            raise IPFSNotFoundError(f"IPFS content not found ({endpoint})", status_code=404)
        if response.status_code >= 400:
            raise IPFSError(
                f"IPFS {endpoint} failed with {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        return response

    async def put(self, data: bytes) -> str:
        """Add ``data`` to IPFS and return its CID."""
        response = await self._post(
            "add",
            params={"pin": str(self.config.pin).lower()},
            files={"file": (self.config.upload_filename, data, "application/json")},
        )
        try:
            cid = response.json()["Hash"]
        except (ValueError, KeyError) as e:
            raise IPFSError(f"Unexpected IPFS add response: {response.text}") from e

        logger.info(f"Uploaded {len(data)} bytes to IPFS: {cid}")
        return cid

    async def get(self, handle: str) -> bytes:
        """Read the content stored under CID ``handle``."""
        response = await self._post("cat", params={"arg": handle})
        return response.content


def create_ipfs_client(
    project_id: str | None = None,
    project_secret: str | None = None,
    config: IPFSConfig | None = None,
) -> IPFSClient:
    return IPFSClient(config or IPFSConfig(), project_id, project_secret)
