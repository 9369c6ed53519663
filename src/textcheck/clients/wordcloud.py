"""Async client for the external word-cloud rendering API (QuickChart compatible)."""

from __future__ import annotations

import io
import logging
import time
from typing import Any

import httpx
from PIL import Image, UnidentifiedImageError

from textcheck.errors import RenderFailedError

logger = logging.getLogger(__name__)

# Fixed rendering parameters
RENDER_OPTIONS: dict[str, Any] = {
    "format": "png",
    "width": 800,
    "height": 400,
    "fontFamily": "sans-serif",
    "fontScale": 15,
    "scale": "linear",
}


class WordCloudClient:
    """Render text into a word-cloud PNG through an HTTP API.

    Every failure (transport error, timeout, non-success status, body that is
    not a PNG image) is raised as ``RenderFailedError``.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=transport)

    async def __aenter__(self) -> WordCloudClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def render(self, text: str) -> bytes:
        """Render ``text`` and return the PNG bytes."""
        start_time = time.time()
        try:
            response = await self._client.post(self._url, json={**RENDER_OPTIONS, "text": text})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise RenderFailedError(f"Word-cloud render failed: {exc}") from exc

        image_data = response.content
        _ensure_png(image_data)

        elapsed = (time.time() - start_time) * 1000  # ms
        logger.info(
            "[RENDER] %d chars → %d bytes PNG (%.0fms)", len(text), len(image_data), elapsed
        )
        return image_data


def _ensure_png(data: bytes) -> None:
    try:
        with Image.open(io.BytesIO(data)) as img:
            image_format = img.format
    except (UnidentifiedImageError, OSError) as exc:
        raise RenderFailedError("Renderer response is not an image") from exc

    if image_format != "PNG":
        raise RenderFailedError(f"Renderer returned {image_format}, expected PNG")
