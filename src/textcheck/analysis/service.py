"""Analysis pipeline: statistics, similarity scan and word-cloud artifact per file.

Per file the pipeline runs:
1. Return the stored result if the file was analyzed before (no recomputation)
2. Fetch metadata and content from the storage service
3. Decode UTF-8 (malformed sequences replaced) and compute statistics
4. Scan every previously analyzed file for similarity
5. Try to render the word cloud (failure leaves the artifact absent)
6. Persist the result and its matches in one commit
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from textcheck.analysis.artifacts import ArtifactCache
from textcheck.analysis.similarity import EXACT_NAME_SCORE, SimilarityScorer, names_match
from textcheck.analysis.statistics import compute_statistics, decode_text
from textcheck.errors import NotFoundError, PersistenceFailedError, TextcheckError
from textcheck.models.analysis import AnalysisResult, Match
from textcheck.models.base import utcnow

logger = logging.getLogger(__name__)


class BlobSource(Protocol):
    """Read access to stored files (see ``BlobStoreClient``)."""

    async def fetch(self, file_id: UUID) -> tuple[bytes, str]:
        ...

    async def get_content(self, file_id: UUID) -> bytes:
        ...


class AnalysisService:
    """Analyze stored files and manage their persisted results.

    Usage:
        async with session_factory() as session:
            artifacts = ArtifactCache(session, renderer, artifact_dir)
            service = AnalysisService(session, blob_client, artifacts, scorer)
            result = await service.analyze(file_id)
    """

    def __init__(
        self,
        session: AsyncSession,
        blobs: BlobSource,
        artifacts: ArtifactCache,
        scorer: SimilarityScorer,
        *,
        match_threshold: float = 30.0,
    ) -> None:
        self._session = session
        self._blobs = blobs
        self._artifacts = artifacts
        self._scorer = scorer
        self._match_threshold = match_threshold

    async def analyze(self, file_id: UUID) -> AnalysisResult:
        """Analyze a stored file, or return its existing result unchanged.

        Raises:
            NotFoundError: If the storage service does not know ``file_id``.
            UpstreamUnavailableError: If the storage service cannot be reached.
            PersistenceFailedError: If the result cannot be committed.
        """
        existing = await self.find_by_file_id(file_id)
        if existing is not None:
            logger.info("File %s already analyzed as %s, returning stored result", file_id, existing.id)
            return existing

        data, file_name = await self._blobs.fetch(file_id)
        logger.info("Analyzing %s (file %s)", file_name, file_id)

        text = decode_text(data)
        stats = compute_statistics(text)

        analysis_id = uuid4()
        matches = await self.scan_similarity(analysis_id, file_id, file_name, text)

        outcome = await self._artifacts.try_render(data, file_name)
        if not outcome.ok:
            logger.info("Analysis of %s continues without a word cloud", file_name)

        result = AnalysisResult(
            id=analysis_id,
            file_id=file_id,
            file_name=file_name,
            paragraph_count=stats.paragraph_count,
            word_count=stats.word_count,
            character_count=stats.character_count,
            analyzed_at=utcnow(),
            artifact_path=outcome.path,
            matches=matches,
        )
        self._session.add(result)
        try:
            await self._session.commit()
        except IntegrityError:
            # A concurrent request analyzed the same file first
            await self._session.rollback()
            await self._artifacts.discard(result)
            winner = await self.find_by_file_id(file_id)
            if winner is None:
                raise PersistenceFailedError(
                    f"Result for file {file_id} conflicted but none is stored"
                ) from None
            return winner
        except SQLAlchemyError as exc:
            await self._session.rollback()
            await self._artifacts.discard(result)
            raise PersistenceFailedError(f"Could not store analysis of {file_name}") from exc

        logger.info(
            "Analysis of %s complete: %d paragraphs, %d words, %d characters, %d matches",
            file_name,
            result.paragraph_count,
            result.word_count,
            result.character_count,
            len(matches),
        )
        return result

    async def scan_similarity(
        self,
        analysis_id: UUID,
        file_id: UUID,
        file_name: str,
        text: str,
    ) -> list[Match]:
        """Score ``text`` against every other analyzed file.

        Equal file names (ignoring case) score 100; otherwise the configured
        scorer decides. Only scores at or above the threshold become matches,
        kept in scan order.

        Prior contents are fetched concurrently, and only when the scorer
        reads content. A prior whose content cannot be fetched is skipped.
        """
        rows = await self._session.execute(
            select(AnalysisResult).where(AnalysisResult.file_id != file_id)
        )
        priors = rows.scalars().all()
        to_score = [p for p in priors if not names_match(file_name, p.file_name)]
        prior_texts = await self._prior_texts(to_score)
        matches: list[Match] = []

        for prior in priors:
            if names_match(file_name, prior.file_name):
                score = EXACT_NAME_SCORE
            elif prior.id not in prior_texts:
                continue
            else:
                score = self._scorer.score(text, prior_texts[prior.id])

            if score < self._match_threshold:
                continue

            matches.append(
                Match(
                    id=uuid4(),
                    analysis_result_id=analysis_id,
                    matched_file_id=prior.file_id,
                    matched_file_name=prior.file_name,
                    similarity_score=score,
                    position=len(matches),
                )
            )

        return matches

    async def get_by_id(self, analysis_id: UUID) -> AnalysisResult:
        result = await self._session.execute(
            select(AnalysisResult)
            .options(selectinload(AnalysisResult.matches))
            .where(AnalysisResult.id == analysis_id)
        )
        analysis = result.scalar_one_or_none()
        if analysis is None:
            raise NotFoundError(f"Analysis {analysis_id} not found")
        return analysis

    async def get_by_file_id(self, file_id: UUID) -> AnalysisResult:
        analysis = await self.find_by_file_id(file_id)
        if analysis is None:
            raise NotFoundError(f"No analysis for file {file_id}")
        return analysis

    async def find_by_file_id(self, file_id: UUID) -> AnalysisResult | None:
        result = await self._session.execute(
            select(AnalysisResult)
            .options(selectinload(AnalysisResult.matches))
            .where(AnalysisResult.file_id == file_id)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> Sequence[AnalysisResult]:
        result = await self._session.execute(
            select(AnalysisResult).options(selectinload(AnalysisResult.matches))
        )
        return result.scalars().all()

    async def delete(self, analysis_id: UUID) -> bool:
        """Delete a result together with its matches and stored word cloud.

        Returns False if no such result exists.
        """
        try:
            analysis = await self.get_by_id(analysis_id)
        except NotFoundError:
            logger.warning("Analysis %s not found for deletion", analysis_id)
            return False

        try:
            await self._session.delete(analysis)
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise PersistenceFailedError(f"Could not delete analysis {analysis_id}") from exc

        await self._artifacts.discard(analysis)
        logger.info("Deleted analysis %s", analysis_id)
        return True

    async def visualize(self, file_id: UUID) -> bytes:
        """Return the word cloud for a file, rendering it only when none is stored.

        The rendered image is cached on the file's analysis result when one
        exists; an unanalyzed file is rendered on every call.
        """
        existing = await self.find_by_file_id(file_id)
        if existing is not None:
            cached = await self._artifacts.load(existing)
            if cached is not None:
                logger.info("Serving cached word cloud for file %s", file_id)
                return cached

        data, file_name = await self._blobs.fetch(file_id)
        return await self._artifacts.render_or_fetch(existing, data, file_name, check_cache=False)

    async def _prior_texts(self, priors: Sequence[AnalysisResult]) -> dict[UUID, str]:
        """Map analysis id to prior text; unreachable priors are left out."""
        if not getattr(self._scorer, "uses_content", True):
            return {prior.id: "" for prior in priors}

        fetched = await asyncio.gather(
            *(self._prior_text(prior) for prior in priors), return_exceptions=True
        )
        texts: dict[UUID, str] = {}
        for prior, outcome in zip(priors, fetched):
            if isinstance(outcome, TextcheckError):
                logger.error("Similarity check against %s skipped", prior.file_name, exc_info=outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                texts[prior.id] = outcome
        if len(texts) < len(priors):
            logger.warning(
                "Scored %d of %d prior files; the rest were unreachable", len(texts), len(priors)
            )
        return texts

    async def _prior_text(self, prior: AnalysisResult) -> str:
        try:
            return decode_text(await self._blobs.get_content(prior.file_id))
        except NotFoundError:
            # The blob was deleted after analysis; its result still takes part
            logger.warning("Content of previously analyzed file %s is gone", prior.file_id)
            return ""
