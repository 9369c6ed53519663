"""FastAPI application for the text analysis service.

Run with: uvicorn textcheck.analysis_app:app --port 7003
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from textcheck import __version__
from textcheck.analysis.artifacts import WordCloudRenderer
from textcheck.analysis.service import BlobSource
from textcheck.analysis.similarity import RandomPlaceholderScorer, SimilarityScorer
from textcheck.api import analysis
from textcheck.api.errors import install_error_handlers
from textcheck.clients import BlobStoreClient, WordCloudClient
from textcheck.config import Settings, configure_logging, settings
from textcheck.db import create_engine, create_session_factory, init_db
from textcheck.models import AnalysisBase


def create_app(
    config: Settings | None = None,
    *,
    blob_client: BlobSource | None = None,
    renderer: WordCloudRenderer | None = None,
    scorer: SimilarityScorer | None = None,
) -> FastAPI:
    """Build the analysis service from explicit configuration.

    The storage client, renderer and scorer default to the real
    implementations; pass replacements to point the service elsewhere.
    Clients created here are closed on shutdown, injected ones are not.
    """
    config = config or settings
    configure_logging(config.log_level)

    engine = create_engine(config.analysis_database_url, echo=config.database_echo)

    owned_clients: list[BlobStoreClient | WordCloudClient] = []
    if blob_client is None:
        blob_client = BlobStoreClient(
            config.storage_service_url, timeout=config.http_timeout_seconds
        )
        owned_clients.append(blob_client)
    if renderer is None:
        renderer = WordCloudClient(config.wordcloud_api_url, timeout=config.http_timeout_seconds)
        owned_clients.append(renderer)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application lifespan handler."""
        await init_db(engine, AnalysisBase)
        yield
        for client in owned_clients:
            await client.aclose()
        await engine.dispose()

    app = FastAPI(
        title="textcheck analysis",
        description="Text statistics, similarity scan and word clouds for stored files",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.artifact_dir = Path(config.artifact_dir)
    app.state.blob_client = blob_client
    app.state.renderer = renderer
    app.state.scorer = scorer or RandomPlaceholderScorer(config.similarity_placeholder_max)
    app.state.match_threshold = config.similarity_match_threshold

    install_error_handlers(app)
    app.include_router(analysis.router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "analysis", "version": __version__}

    return app


app = create_app()
