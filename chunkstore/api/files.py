"""Completed file API endpoints: listing, download and one-shot upload."""
import logging
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status

from chunkstore.api.deps import get_upload_service
from chunkstore.schemas.file import FileEntry, FileUploadResponse
from chunkstore.services.upload_service import UploadService
from chunkstore.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

router = APIRouter()


def _content_disposition(filename: str) -> str:
    name = filename.rsplit("/", 1)[-1]
    if name.isascii() and '"' not in name:
        return f'attachment; filename="{name}"'
    return f"attachment; filename*=UTF-8''{quote(name)}"


@router.get("/files", response_model=List[FileEntry])
async def list_files(service: UploadService = Depends(get_upload_service)):
    """List completed files. In-flight chunks and session records are never shown."""
    return await service.list_files()


@router.get("/files/{filename:path}")
async def download_file(
    filename: str,
    service: UploadService = Depends(get_upload_service)
):
    """Download a completed file as an attachment."""
    data, content_type = await service.download(filename)
    return Response(
        content=data,
        media_type=content_type,
        headers={"Content-Disposition": _content_disposition(filename)}
    )


@router.post("/files", response_model=FileUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    filename: Optional[str] = Form(None),
    service: UploadService = Depends(get_upload_service)
):
    """
    Upload a whole file in a single request.

    Args:
        file: File content (multipart form field ``file``)
        filename: Target name; defaults to the uploaded file's name

    Returns:
        FileUploadResponse: Stored name, size and content type
    """
    data = await file.read()
    return await service.put_file(filename or file.filename, data, file.content_type)
