"""
Text Analysis Router
Endpoints for running the analysis pipeline and reading its results.
"""
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from textcheck.analysis import AnalysisService, ArtifactCache
from textcheck.db import get_session
from textcheck.errors import NotFoundError
from textcheck.schemas import AnalysisResultOut


router = APIRouter(
    prefix="/api/text-analysis",
    tags=["text-analysis"],
    responses={404: {"description": "Not found"}},
)


async def get_analysis_service(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> AnalysisService:
    state = request.app.state
    artifacts = ArtifactCache(session, state.renderer, state.artifact_dir)
    return AnalysisService(
        session,
        state.blob_client,
        artifacts,
        state.scorer,
        match_threshold=state.match_threshold,
    )


@router.post(
    "/process/{file_id}",
    response_model=AnalysisResultOut,
    response_model_exclude_none=True,
    summary="Analyze a stored file"
)
async def process_file(file_id: UUID, service: AnalysisService = Depends(get_analysis_service)):
    """
    Run the analysis pipeline for a file held by the storage service.

    A file that was analyzed before returns its stored result unchanged.
    """
    return await service.analyze(file_id)


@router.get(
    "/result/{analysis_id}",
    response_model=AnalysisResultOut,
    response_model_exclude_none=True,
    summary="Get an analysis result"
)
async def get_result(analysis_id: UUID, service: AnalysisService = Depends(get_analysis_service)):
    return await service.get_by_id(analysis_id)


@router.get(
    "/all-results",
    response_model=list[AnalysisResultOut],
    response_model_exclude_none=True,
    summary="List all analysis results"
)
async def get_all_results(service: AnalysisService = Depends(get_analysis_service)):
    return await service.list_all()


@router.get(
    "/visualize/{file_id}",
    summary="Get the word cloud of a file",
    responses={200: {"content": {"image/png": {}}}},
)
async def visualize(file_id: UUID, service: AnalysisService = Depends(get_analysis_service)) -> Response:
    """Return the stored word cloud, rendering it first if none exists yet."""
    image = await service.visualize(file_id)
    return Response(content=image, media_type="image/png")


@router.delete("/remove/{analysis_id}", summary="Delete an analysis result")
async def remove_analysis(
    analysis_id: UUID,
    service: AnalysisService = Depends(get_analysis_service),
) -> dict[str, Any]:
    if not await service.delete(analysis_id):
        raise NotFoundError(f"Analysis {analysis_id} not found")
    return {"status": "deleted", "id": str(analysis_id)}
