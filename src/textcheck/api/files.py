"""
File Storage Router
Endpoints for uploading, listing, downloading, and deleting stored files.
"""
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from textcheck.db import get_session
from textcheck.errors import NotFoundError, ValidationFailedError
from textcheck.schemas import BlobRecordOut
from textcheck.storage import BlobStore

ACCEPTED_MEDIA_TYPE = "text/plain"


router = APIRouter(
    prefix="/api/files",
    tags=["files"],
    responses={404: {"description": "Not found"}},
)


def is_plain_text(content_type: str | None) -> bool:
    """True when the declared media type is text/plain (parameters ignored)."""
    if not content_type:
        return False
    return content_type.split(";", 1)[0].strip().lower() == ACCEPTED_MEDIA_TYPE


async def get_blob_store(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> BlobStore:
    return BlobStore(session, request.app.state.storage_dir)


@router.post(
    "/upload",
    response_model=BlobRecordOut,
    response_model_exclude_none=True,
    summary="Upload a text file"
)
async def upload_file(
    file: Annotated[UploadFile | None, File()] = None,
    store: BlobStore = Depends(get_blob_store),
):
    """
    Upload a plain-text file as multipart form data (part name ``file``).

    Identical content is stored once: re-uploading it returns the record
    created by the first upload.
    """
    if file is None:
        raise ValidationFailedError("A file must be provided")

    content = await file.read()
    if not content:
        raise ValidationFailedError("A file must be provided")

    if not is_plain_text(file.content_type):
        raise ValidationFailedError("Only plain text (.txt) files are supported")

    return await store.put(content, file.filename or "", file.content_type or ACCEPTED_MEDIA_TYPE)


@router.get(
    "",
    response_model=list[BlobRecordOut],
    response_model_exclude_none=True,
    summary="List all stored files"
)
async def list_files(store: BlobStore = Depends(get_blob_store)):
    return await store.list_all()


@router.get(
    "/metadata/{file_id}",
    response_model=BlobRecordOut,
    response_model_exclude_none=True,
    summary="Get file metadata"
)
@router.get(
    "/meta/{file_id}",
    response_model=BlobRecordOut,
    response_model_exclude_none=True,
    include_in_schema=False,
)
async def get_file_metadata(file_id: UUID, store: BlobStore = Depends(get_blob_store)):
    return await store.get_metadata(file_id)


@router.get("/content/{file_id}", include_in_schema=False)
@router.get("/{file_id}", summary="Download a file")
async def download_file(file_id: UUID, store: BlobStore = Depends(get_blob_store)) -> Response:
    """Return the raw stored bytes with their declared content type."""
    data, content_type = await store.get(file_id)
    return Response(content=data, media_type=content_type)


@router.delete("/{file_id}", summary="Delete a file")
async def delete_file(file_id: UUID, store: BlobStore = Depends(get_blob_store)) -> dict[str, Any]:
    """
    Delete a stored file and its payload.

    Analysis results that reference the file are left in place.
    """
    if not await store.delete(file_id):
        raise NotFoundError(f"File {file_id} not found")
    return {"status": "deleted", "id": str(file_id)}
