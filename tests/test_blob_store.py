"""Tests for the content-addressed blob store."""

from pathlib import Path
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from textcheck.db import create_session_factory
from textcheck.errors import NotFoundError, ValidationFailedError
from textcheck.storage import BlobStore, compute_content_hash
from textcheck.storage.blob_store import base_file_name


@pytest.fixture
def storage_dir(tmp_path: Path) -> Path:
    return tmp_path / "blobs"


@pytest.fixture
def store(storage_session: AsyncSession, storage_dir: Path) -> BlobStore:
    return BlobStore(storage_session, storage_dir)


class TestContentHash:
    def test_known_digest(self) -> None:
        # md5("hello") = 5d41402abc4b2a76b9719d911017c592
        assert compute_content_hash(b"hello") == "XUFAKrxLKna5cZ2REBfFkg=="

    def test_length(self) -> None:
        assert len(compute_content_hash(b"")) == 24


class TestBaseFileName:
    @pytest.mark.parametrize(
        ("declared", "expected"),
        [
            ("notes.txt", "notes.txt"),
            ("dir/sub/notes.txt", "notes.txt"),
            ("C:\\Users\\me\\notes.txt", "notes.txt"),
            ("  ", ""),
        ],
    )
    def test_strips_directories(self, declared: str, expected: str) -> None:
        assert base_file_name(declared) == expected


class TestPut:
    async def test_stores_payload_and_metadata(self, store: BlobStore, storage_dir: Path) -> None:
        record = await store.put(b"hello world", "hello.txt", "text/plain")

        assert record.file_name == "hello.txt"
        assert record.content_type == "text/plain"
        assert record.size == 11
        assert record.content_hash == compute_content_hash(b"hello world")
        assert Path(record.storage_path).parent == storage_dir.resolve()
        assert Path(record.storage_path).read_bytes() == b"hello world"

    async def test_duplicate_content_returns_existing_record(
        self, store: BlobStore, storage_dir: Path
    ) -> None:
        first = await store.put(b"same bytes", "a.txt", "text/plain")
        second = await store.put(b"same bytes", "b.txt", "text/plain")

        assert second.id == first.id
        assert second.file_name == "a.txt"
        assert len(list(storage_dir.iterdir())) == 1
        assert len(await store.list_all()) == 1

    async def test_different_content_gets_new_record(self, store: BlobStore) -> None:
        first = await store.put(b"one", "a.txt", "text/plain")
        second = await store.put(b"two", "a.txt", "text/plain")
        assert first.id != second.id

    async def test_empty_name_rejected(self, store: BlobStore, storage_dir: Path) -> None:
        with pytest.raises(ValidationFailedError):
            await store.put(b"data", "", "text/plain")
        assert list(storage_dir.iterdir()) == []

    async def test_long_name_rejected(self, store: BlobStore) -> None:
        with pytest.raises(ValidationFailedError):
            await store.put(b"data", "x" * 252 + ".txt", "text/plain")

    async def test_concurrent_insert_returns_winner(
        self, storage_engine: AsyncEngine, storage_dir: Path
    ) -> None:
        """The losing writer discards its payload and returns the stored row."""
        session_factory = create_session_factory(storage_engine)
        async with session_factory() as winner_session:
            winner = await BlobStore(winner_session, storage_dir).put(
                b"raced", "first.txt", "text/plain"
            )

        async with session_factory() as loser_session:
            loser = BlobStore(loser_session, storage_dir)
            real_find = loser.find_by_hash
            lookups = 0

            async def miss_first(content_hash: str):
                # First lookup misses, as if the winner had not committed yet
                nonlocal lookups
                lookups += 1
                return None if lookups == 1 else await real_find(content_hash)

            with patch.object(loser, "find_by_hash", AsyncMock(side_effect=miss_first)):
                result = await loser.put(b"raced", "second.txt", "text/plain")

            assert lookups == 2

        assert result.id == winner.id
        assert result.file_name == "first.txt"
        assert [p.name for p in storage_dir.iterdir()] == [str(winner.id)]


class TestGet:
    async def test_returns_bytes_and_content_type(self, store: BlobStore) -> None:
        record = await store.put(b"payload", "p.txt", "text/plain; charset=utf-8")

        data, content_type = await store.get(record.id)

        assert data == b"payload"
        assert content_type == "text/plain; charset=utf-8"

    async def test_unknown_id(self, store: BlobStore) -> None:
        with pytest.raises(NotFoundError):
            await store.get(uuid4())

    async def test_missing_payload_reported_as_not_found(self, store: BlobStore) -> None:
        record = await store.put(b"payload", "p.txt", "text/plain")
        Path(record.storage_path).unlink()

        with pytest.raises(NotFoundError):
            await store.get(record.id)

    async def test_metadata(self, store: BlobStore) -> None:
        record = await store.put(b"payload", "p.txt", "text/plain")
        meta = await store.get_metadata(record.id)
        assert meta.id == record.id
        assert meta.content_hash == record.content_hash

    async def test_metadata_unknown_id(self, store: BlobStore) -> None:
        with pytest.raises(NotFoundError):
            await store.get_metadata(uuid4())


class TestDelete:
    async def test_removes_row_and_payload(self, store: BlobStore) -> None:
        record = await store.put(b"to delete", "d.txt", "text/plain")
        path = Path(record.storage_path)

        assert await store.delete(record.id) is True

        assert not path.exists()
        assert await store.find_by_hash(record.content_hash) is None

    async def test_unknown_id(self, store: BlobStore) -> None:
        assert await store.delete(uuid4()) is False

    async def test_second_delete_returns_false(self, store: BlobStore) -> None:
        record = await store.put(b"to delete", "d.txt", "text/plain")
        assert await store.delete(record.id) is True
        assert await store.delete(record.id) is False

    async def test_missing_payload_keeps_row(self, store: BlobStore) -> None:
        record = await store.put(b"orphan", "o.txt", "text/plain")
        Path(record.storage_path).unlink()

        assert await store.delete(record.id) is False
        assert await store.find_by_hash(record.content_hash) is not None

    async def test_content_can_be_stored_again_after_delete(self, store: BlobStore) -> None:
        first = await store.put(b"again", "a.txt", "text/plain")
        await store.delete(first.id)

        second = await store.put(b"again", "a.txt", "text/plain")

        assert second.id != first.id
        assert Path(second.storage_path).exists()
