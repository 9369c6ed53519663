"""Shared pytest fixtures for textcheck tests."""

from __future__ import annotations

import io
from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

import httpx
import pytest
from fastapi import FastAPI
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from textcheck.analysis_app import create_app as create_analysis_app
from textcheck.clients import BlobStoreClient, WordCloudClient
from textcheck.config import Settings
from textcheck.db import create_engine, create_session_factory, init_db
from textcheck.errors import NotFoundError, RenderFailedError
from textcheck.models import AnalysisBase, AnalysisResult, StorageBase, utcnow
from textcheck.storage_app import create_app as create_storage_app


def create_test_image(width: int = 80, height: int = 40, format: str = "PNG") -> bytes:
    """Create a minimal test image."""
    img = Image.new("RGB", (width, height), color="white")
    buffer = io.BytesIO()
    img.save(buffer, format=format)
    return buffer.getvalue()


def make_settings(tmp_path: Path, **overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "storage_database_url": f"sqlite+aiosqlite:///{tmp_path / 'storage.db'}",
        "analysis_database_url": f"sqlite+aiosqlite:///{tmp_path / 'analysis.db'}",
        "storage_dir": str(tmp_path / "file_storage"),
        "artifact_dir": str(tmp_path / "wordcloud_storage"),
        "storage_service_url": "http://storage",
        "wordcloud_api_url": "http://render/wordcloud",
        "log_level": "DEBUG",
    }
    values.update(overrides)
    return Settings(**values)


class FakeRenderer:
    """Renderer double that counts calls and returns a real PNG."""

    def __init__(self, *, fail: bool = False) -> None:
        self.calls: list[str] = []
        self.fail = fail
        self.image = create_test_image()

    async def render(self, text: str) -> bytes:
        self.calls.append(text)
        if self.fail:
            raise RenderFailedError("renderer unavailable")
        return self.image


class FakeBlobSource:
    """In-memory stand-in for the storage service client."""

    def __init__(self) -> None:
        self.files: dict[UUID, tuple[bytes, str]] = {}
        self.fetch_calls: list[UUID] = []

    def add(self, content: bytes | str, file_name: str, file_id: UUID | None = None) -> UUID:
        file_id = file_id or uuid4()
        data = content.encode("utf-8") if isinstance(content, str) else content
        self.files[file_id] = (data, file_name)
        return file_id

    async def fetch(self, file_id: UUID) -> tuple[bytes, str]:
        self.fetch_calls.append(file_id)
        if file_id not in self.files:
            raise NotFoundError(f"File {file_id} not found")
        return self.files[file_id]

    async def get_content(self, file_id: UUID) -> bytes:
        if file_id not in self.files:
            raise NotFoundError(f"File {file_id} not found")
        return self.files[file_id][0]


@pytest.fixture
async def storage_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a storage database with its tables; dropped at the end."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'storage_unit.db'}")
    await init_db(engine, StorageBase)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(StorageBase.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def analysis_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create an analysis database with its tables; dropped at the end."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'analysis_unit.db'}")
    await init_db(engine, AnalysisBase)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(AnalysisBase.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def storage_session(storage_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    async with create_session_factory(storage_engine)() as session:
        yield session


@pytest.fixture
async def analysis_session(analysis_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    async with create_session_factory(analysis_engine)() as session:
        yield session


# Type alias for factory fixture
MakeAnalysis = Callable[..., AnalysisResult]


@pytest.fixture
def make_analysis() -> MakeAnalysis:
    """Factory fixture for creating AnalysisResult instances."""

    def _make(
        *,
        file_name: str = "prior.txt",
        file_id: UUID | None = None,
        artifact_path: str | None = None,
    ) -> AnalysisResult:
        return AnalysisResult(
            id=uuid4(),
            file_id=file_id or uuid4(),
            file_name=file_name,
            paragraph_count=1,
            word_count=1,
            character_count=1,
            analyzed_at=utcnow(),
            artifact_path=artifact_path,
            matches=[],
        )

    return _make


@pytest.fixture
def settings_for_test(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
async def storage_app(settings_for_test: Settings) -> AsyncGenerator[FastAPI, None]:
    """Storage service on SQLite. ASGITransport skips lifespan, so tables are created here."""
    app = create_storage_app(settings_for_test)
    await init_db(app.state.engine, StorageBase)

    yield app

    await app.state.engine.dispose()


@pytest.fixture
async def storage_client(storage_app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=storage_app), base_url="http://storage"
    ) as client:
        yield client


class RenderApi:
    """Mock word-cloud HTTP API recording the requests it receives."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.image = create_test_image()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, text="renderer error")
        return httpx.Response(200, content=self.image, headers={"content-type": "image/png"})


@pytest.fixture
def render_api() -> RenderApi:
    return RenderApi()


@pytest.fixture
async def analysis_app(
    settings_for_test: Settings,
    storage_app: FastAPI,
    render_api: RenderApi,
) -> AsyncGenerator[FastAPI, None]:
    """Analysis service talking to the storage app over ASGI and to a mock renderer."""
    blob_client = BlobStoreClient(
        settings_for_test.storage_service_url,
        transport=httpx.ASGITransport(app=storage_app),
    )
    renderer = WordCloudClient(
        settings_for_test.wordcloud_api_url,
        transport=httpx.MockTransport(render_api.handler),
    )
    app = create_analysis_app(settings_for_test, blob_client=blob_client, renderer=renderer)
    await init_db(app.state.engine, AnalysisBase)

    yield app

    await blob_client.aclose()
    await renderer.aclose()
    await app.state.engine.dispose()


@pytest.fixture
async def analysis_client(analysis_app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=analysis_app), base_url="http://analysis"
    ) as client:
        yield client


@pytest.fixture
def png_bytes() -> bytes:
    return create_test_image()


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def fake_blobs() -> FakeBlobSource:
    return FakeBlobSource()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return create_test_image(format="JPEG")
