"""Async HTTP client for the storage service."""

from __future__ import annotations

import logging
from uuid import UUID

import httpx
from pydantic import ValidationError

from textcheck.errors import NotFoundError, UpstreamUnavailableError
from textcheck.schemas import BlobRecordOut

logger = logging.getLogger(__name__)


class BlobStoreClient:
    """Fetch blob metadata and content from the storage service.

    A 404 from the storage service becomes ``NotFoundError``. Any other
    failure (transport error, timeout, unexpected status, malformed body)
    becomes ``UpstreamUnavailableError``.

    Usage:
        async with BlobStoreClient("http://localhost:7002") as client:
            data, file_name = await client.fetch(file_id)
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self) -> BlobStoreClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_metadata(self, file_id: UUID) -> BlobRecordOut:
        response = await self._get(f"/api/files/meta/{file_id}", file_id)
        try:
            return BlobRecordOut.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.error("Invalid metadata format for file %s", file_id)
            raise UpstreamUnavailableError(f"Invalid metadata for file {file_id}") from exc

    async def get_content(self, file_id: UUID) -> bytes:
        response = await self._get(f"/api/files/content/{file_id}", file_id)
        return response.content

    async def fetch(self, file_id: UUID) -> tuple[bytes, str]:
        """Return ``(content, file_name)`` for a stored file."""
        metadata = await self.get_metadata(file_id)
        content = await self.get_content(file_id)
        return content, metadata.file_name

    async def _get(self, path: str, file_id: UUID) -> httpx.Response:
        try:
            response = await self._client.get(path)
        except httpx.HTTPError as exc:
            logger.error("Storage service unreachable for file %s: %s", file_id, exc)
            raise UpstreamUnavailableError(f"Storage service unreachable: {exc}") from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            logger.warning("File %s not found in storage service", file_id)
            raise NotFoundError(f"File {file_id} not found")
        if response.is_error:
            logger.error(
                "Storage service returned %d for %s", response.status_code, path
            )
            raise UpstreamUnavailableError(
                f"Storage service returned {response.status_code} for {path}"
            )
        return response
