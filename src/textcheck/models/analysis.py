"""Analysis result and similarity match models."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from textcheck.models.base import AnalysisBase, utcnow


class AnalysisResult(AnalysisBase):
    """Structural statistics for one stored file plus its similarity matches.

    ``file_id`` is a weak reference into the storage service: it is never
    joined or navigated, only looked up through the storage client. At most
    one result exists per file.
    """

    __tablename__ = "analysis_results"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    file_id: Mapped[UUID] = mapped_column(unique=True, index=True)
    file_name: Mapped[str] = mapped_column(String(255))
    paragraph_count: Mapped[int] = mapped_column(Integer)
    word_count: Mapped[int] = mapped_column(Integer)
    character_count: Mapped[int] = mapped_column(Integer)
    analyzed_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    artifact_path: Mapped[str | None] = mapped_column(String(1024))

    # Relationships
    matches: Mapped[list[Match]] = relationship(
        back_populates="analysis_result",
        cascade="all, delete-orphan",
        order_by="Match.position",
        passive_deletes=True,
    )


class Match(AnalysisBase):
    """A similarity hit between the owning result's file and a prior file."""

    __tablename__ = "similarity_matches"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    analysis_result_id: Mapped[UUID] = mapped_column(
        ForeignKey("analysis_results.id", ondelete="CASCADE"), index=True
    )
    matched_file_id: Mapped[UUID] = mapped_column(index=True)
    matched_file_name: Mapped[str] = mapped_column(String(255))
    similarity_score: Mapped[float] = mapped_column(Float)
    position: Mapped[int] = mapped_column(Integer, default=0)  # Scan order

    # Relationships
    analysis_result: Mapped[AnalysisResult] = relationship(back_populates="matches")
