"""Word-cloud artifact cache.

A rendered word cloud is stored once per analysis result: the first request
renders through the external API and records the file location on the
result; later requests read the stored PNG back without rendering.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol
from uuid import uuid4

import aiofiles
import aiofiles.os
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from textcheck.analysis.statistics import decode_text
from textcheck.errors import PersistenceFailedError, RenderFailedError
from textcheck.models.analysis import AnalysisResult
from textcheck.models.base import utcnow

logger = logging.getLogger(__name__)


class WordCloudRenderer(Protocol):
    """Anything that turns text into PNG bytes (see ``WordCloudClient``)."""

    async def render(self, text: str) -> bytes:
        ...


@dataclass
class RenderOutcome:
    """Result of a render attempt that must not abort the caller."""

    path: str | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.path is not None


def artifact_file_name(source_name: str, rendered_at: datetime, token: str | None = None) -> str:
    """Build ``wordcloud_<name>_<yyyyMMdd_HHmmss>_<token>.png`` with a filesystem-safe name.

    ``token`` defaults to a random hex fragment, so same-named files rendered
    in the same second never share a path.
    """
    safe_name = "".join(c if c.isalnum() or c in "._- " else "_" for c in source_name)
    token = token or uuid4().hex[:8]
    return f"wordcloud_{safe_name}_{rendered_at:%Y%m%d_%H%M%S}_{token}.png"


class ArtifactCache:
    """Render-once cache of word-cloud images keyed by analysis result."""

    def __init__(
        self,
        session: AsyncSession,
        renderer: WordCloudRenderer,
        artifact_dir: Path | str,
    ) -> None:
        self._session = session
        self._renderer = renderer
        self._artifact_dir = Path(artifact_dir).resolve()
        self._artifact_dir.mkdir(parents=True, exist_ok=True)

    async def load(self, analysis: AnalysisResult) -> bytes | None:
        """Return the stored image for ``analysis``, or None if there is none."""
        if not analysis.artifact_path:
            return None
        try:
            async with aiofiles.open(analysis.artifact_path, "rb") as f:
                return await f.read()
        except FileNotFoundError:
            logger.warning(
                "Word cloud for analysis %s missing at %s", analysis.id, analysis.artifact_path
            )
            return None

    async def render_or_fetch(
        self,
        analysis: AnalysisResult | None,
        data: bytes,
        file_name: str,
        *,
        check_cache: bool = True,
    ) -> bytes:
        """Return the cached image for ``analysis`` or render a new one.

        When ``analysis`` is given, a freshly rendered image is recorded on it
        so the next call is served from disk. Pass ``check_cache=False`` when
        the caller has already tried ``load``.

        Raises:
            RenderFailedError: If the renderer fails.
            PersistenceFailedError: If the image or its location cannot be stored.
        """
        if analysis is not None and check_cache:
            cached = await self.load(analysis)
            if cached is not None:
                logger.info("Serving cached word cloud for analysis %s", analysis.id)
                return cached

        image_data, path = await self._render_and_store(data, file_name)

        if analysis is not None:
            analysis.artifact_path = str(path)
            try:
                await self._session.commit()
            except SQLAlchemyError as exc:
                await self._session.rollback()
                raise PersistenceFailedError(
                    f"Could not record word cloud for analysis {analysis.id}"
                ) from exc

        return image_data

    async def try_render(self, data: bytes, file_name: str) -> RenderOutcome:
        """Render and store an image, reporting failure as a value instead of raising."""
        try:
            _, path = await self._render_and_store(data, file_name)
        except (RenderFailedError, PersistenceFailedError) as exc:
            logger.warning("Could not create word cloud for %s: %s", file_name, exc, exc_info=True)
            return RenderOutcome(error=exc)
        return RenderOutcome(path=str(path))

    async def discard(self, analysis: AnalysisResult) -> None:
        """Remove the stored image of ``analysis``, if any."""
        if not analysis.artifact_path:
            return
        try:
            await aiofiles.os.remove(analysis.artifact_path)
        except FileNotFoundError:
            pass
        except OSError:
            logger.warning("Could not remove word cloud %s", analysis.artifact_path, exc_info=True)

    async def _render_and_store(self, data: bytes, file_name: str) -> tuple[bytes, Path]:
        image_data = await self._renderer.render(decode_text(data))

        path = self._artifact_dir / artifact_file_name(file_name, utcnow())
        try:
            async with aiofiles.open(path, "xb") as f:
                await f.write(image_data)
        except OSError as exc:
            raise PersistenceFailedError(f"Could not write word cloud to {path}") from exc

        logger.info("Word cloud for %s saved to %s", file_name, path)
        return image_data, path
