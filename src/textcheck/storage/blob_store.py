"""Content-addressed blob store with a metadata index.

Payloads live on disk, one file per blob id, under the configured storage
directory. The ``blobs`` table maps each id to its metadata and to the
base64 MD5 digest used as the dedup key.
"""

from __future__ import annotations

import base64
import hashlib
import logging
from collections.abc import Sequence
from pathlib import Path
from uuid import UUID, uuid4

import aiofiles
import aiofiles.os
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from textcheck.errors import NotFoundError, PersistenceFailedError, ValidationFailedError
from textcheck.models.blob import BlobRecord

logger = logging.getLogger(__name__)

MAX_FILE_NAME_LENGTH = 255


def compute_content_hash(data: bytes) -> str:
    """128-bit MD5 digest of ``data``, base64 encoded (24 characters)."""
    digest = hashlib.md5(data, usedforsecurity=False).digest()
    return base64.b64encode(digest).decode("ascii")


def base_file_name(declared: str) -> str:
    """Strip any client-side directory part from a declared upload name."""
    return declared.replace("\\", "/").rsplit("/", 1)[-1].strip()


class BlobStore:
    """Store and retrieve uploaded payloads, deduplicated by content hash.

    Usage:
        async with session_factory() as session:
            store = BlobStore(session, Path("./file_storage"))
            record = await store.put(data, "notes.txt", "text/plain")
    """

    def __init__(self, session: AsyncSession, storage_dir: Path | str) -> None:
        self._session = session
        self._storage_dir = Path(storage_dir).resolve()
        self._storage_dir.mkdir(parents=True, exist_ok=True)

    async def put(self, data: bytes, file_name: str, content_type: str) -> BlobRecord:
        """Store ``data`` unless identical bytes were stored before.

        Returns the existing record unchanged on a dedup hit. Otherwise writes
        the payload, inserts the row and returns the new record.

        Raises:
            ValidationFailedError: If the file name is empty or too long.
            PersistenceFailedError: If the payload or the row cannot be written.
        """
        content_hash = compute_content_hash(data)

        existing = await self.find_by_hash(content_hash)
        if existing is not None:
            logger.info("Content %s already stored as blob %s", content_hash, existing.id)
            return existing

        name = base_file_name(file_name)
        if not name:
            raise ValidationFailedError("A file name is required")
        if len(name) > MAX_FILE_NAME_LENGTH:
            raise ValidationFailedError(
                f"File name exceeds {MAX_FILE_NAME_LENGTH} characters"
            )

        blob_id = uuid4()
        payload_path = self._storage_dir / str(blob_id)
        record = BlobRecord(
            id=blob_id,
            file_name=name,
            content_type=content_type,
            size=len(data),
            storage_path=str(payload_path),
            content_hash=content_hash,
        )

        try:
            async with aiofiles.open(payload_path, "wb") as f:
                await f.write(data)
        except OSError as exc:
            logger.error("Failed to write payload for %s", name, exc_info=True)
            raise PersistenceFailedError(f"Could not write payload for {name}") from exc

        self._session.add(record)
        try:
            await self._session.commit()
        except IntegrityError:
            # Lost the race against a concurrent upload of the same bytes
            await self._session.rollback()
            await self._discard_payload(payload_path)
            winner = await self.find_by_hash(content_hash)
            if winner is None:
                raise PersistenceFailedError(
                    f"Insert for {content_hash} conflicted but no row holds that hash"
                ) from None
            logger.info("Concurrent upload stored %s first as blob %s", content_hash, winner.id)
            return winner
        except SQLAlchemyError as exc:
            await self._session.rollback()
            await self._discard_payload(payload_path)
            raise PersistenceFailedError(f"Could not record blob for {name}") from exc

        logger.info("Stored %s (%d bytes) as blob %s", name, record.size, blob_id)
        return record

    async def get(self, blob_id: UUID) -> tuple[bytes, str]:
        """Return the payload and content type of a blob.

        A row whose payload file has gone missing is reported as not found.
        """
        record = await self._session.get(BlobRecord, blob_id)
        if record is None:
            logger.warning("Blob %s not found", blob_id)
            raise NotFoundError(f"Blob {blob_id} not found")

        try:
            async with aiofiles.open(record.storage_path, "rb") as f:
                data = await f.read()
        except FileNotFoundError as exc:
            logger.error("Payload for blob %s missing at %s", blob_id, record.storage_path)
            raise NotFoundError(f"Blob {blob_id} not found") from exc
        except OSError as exc:
            logger.error("Failed to read payload for blob %s", blob_id, exc_info=True)
            raise PersistenceFailedError(f"Could not read blob {blob_id}") from exc

        return data, record.content_type

    async def get_metadata(self, blob_id: UUID) -> BlobRecord:
        record = await self._session.get(BlobRecord, blob_id)
        if record is None:
            logger.warning("Metadata for blob %s not found", blob_id)
            raise NotFoundError(f"Blob {blob_id} not found")
        return record

    async def list_all(self) -> Sequence[BlobRecord]:
        result = await self._session.execute(select(BlobRecord))
        return result.scalars().all()

    async def find_by_hash(self, content_hash: str) -> BlobRecord | None:
        result = await self._session.execute(
            select(BlobRecord).where(BlobRecord.content_hash == content_hash)
        )
        return result.scalar_one_or_none()

    async def delete(self, blob_id: UUID) -> bool:
        """Remove the payload, then the row.

        Returns False when the row or its payload is absent, or when removal
        fails part way. Analysis results referencing the blob are untouched.
        """
        record = await self._session.get(BlobRecord, blob_id)
        if record is None or not await aiofiles.os.path.exists(record.storage_path):
            logger.warning("Blob %s not found for deletion", blob_id)
            return False

        try:
            await aiofiles.os.remove(record.storage_path)
            await self._session.delete(record)
            await self._session.commit()
        except (OSError, SQLAlchemyError):
            logger.error("Failed to delete blob %s", blob_id, exc_info=True)
            await self._session.rollback()
            return False

        logger.info("Deleted blob %s", blob_id)
        return True

    async def _discard_payload(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError:
            logger.warning("Could not remove orphaned payload %s", path, exc_info=True)
