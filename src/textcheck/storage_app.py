"""FastAPI application for the file storage service.

Run with: uvicorn textcheck.storage_app:app --port 7002
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from textcheck import __version__
from textcheck.api import files
from textcheck.api.errors import install_error_handlers
from textcheck.config import Settings, configure_logging, settings
from textcheck.db import create_engine, create_session_factory, init_db
from textcheck.models import StorageBase


def create_app(config: Settings | None = None) -> FastAPI:
    """Build the storage service from explicit configuration."""
    config = config or settings
    configure_logging(config.log_level)

    engine = create_engine(config.storage_database_url, echo=config.database_echo)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application lifespan handler."""
        await init_db(engine, StorageBase)
        yield
        await engine.dispose()

    app = FastAPI(
        title="textcheck storage",
        description="Content-addressed storage for uploaded text files",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.storage_dir = Path(config.storage_dir)

    install_error_handlers(app)
    app.include_router(files.router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "storage", "version": __version__}

    return app


app = create_app()
