"""Pydantic schemas for the JSON exchanged by the two services.

Keys are camelCase on the wire. Responses are emitted with ``None`` fields
excluded, and a match refers to its owning result by id only.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class BlobRecordOut(CamelModel):
    """Public metadata of a stored blob. The storage path is never included."""

    id: UUID
    file_name: str
    content_type: str
    size: int = Field(ge=0)
    uploaded_at: datetime
    content_hash: str


class MatchOut(CamelModel):
    id: UUID
    analysis_result_id: UUID
    matched_file_id: UUID
    matched_file_name: str
    similarity_score: float = Field(ge=0.0, le=100.0)


class AnalysisResultOut(CamelModel):
    id: UUID
    file_id: UUID
    file_name: str
    paragraph_count: int = Field(ge=0)
    word_count: int = Field(ge=0)
    character_count: int = Field(ge=0)
    analyzed_at: datetime
    artifact_path: str | None = None
    matches: list[MatchOut] = Field(default_factory=list)
