"""Blob model for content-addressable storage and deduplication."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from textcheck.models.base import StorageBase, utcnow


class BlobRecord(StorageBase):
    """Metadata for one stored payload.

    Blobs are identified by an opaque UUID and deduplicated by the base64
    MD5 digest of their bytes: identical content is stored once and every
    re-upload resolves to the same record.
    """

    __tablename__ = "blobs"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    file_name: Mapped[str] = mapped_column(String(255))
    content_type: Mapped[str] = mapped_column(String(255))
    size: Mapped[int] = mapped_column(BigInteger)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    storage_path: Mapped[str] = mapped_column(String(1024))
    # Unique so that two concurrent uploads of the same bytes cannot both insert
    content_hash: Mapped[str] = mapped_column(String(64), unique=True, index=True)

    def __repr__(self) -> str:
        return f"<BlobRecord(id={self.id}, name={self.file_name!r}, hash={self.content_hash!r})>"
