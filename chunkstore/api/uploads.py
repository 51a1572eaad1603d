"""Chunked upload API endpoints."""
import logging

from fastapi import APIRouter, Depends, Request, status

from chunkstore.api.deps import get_upload_service
from chunkstore.schemas.upload import (
    ChunkAck,
    UploadAbandonResponse,
    UploadComplete,
    UploadCompleteResponse,
    UploadPrepare,
    UploadResponse,
    UploadStatusResponse,
)
from chunkstore.services.upload_service import UploadService
from chunkstore.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

router = APIRouter()


@router.post("/uploads", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def prepare_upload(
    payload: UploadPrepare,
    service: UploadService = Depends(get_upload_service)
):
    """
    Start a new chunked upload session.

    Args:
        payload: Target filename, optional content type and declared size

    Returns:
        UploadResponse: The new session, including its upload id
    """
    session = await service.prepare(
        filename=payload.filename,
        content_type=payload.content_type,
        declared_size=payload.declared_size
    )
    return UploadResponse(
        upload_id=session.upload_id,
        filename=session.filename,
        content_type=session.content_type,
        declared_size=session.declared_size,
        status=session.status,
        created_at=session.created_at
    )


@router.put("/uploads/{upload_id}/chunks/{part_index}", response_model=ChunkAck)
async def upload_chunk(
    upload_id: str,
    part_index: int,
    request: Request,
    service: UploadService = Depends(get_upload_service)
):
    """
    Upload one chunk. The request body is the raw chunk bytes.

    Re-sending an index replaces the earlier chunk.
    """
    data = await request.body()
    receipt = await service.upload_chunk(upload_id, part_index, data)
    return ChunkAck(upload_id=receipt.upload_id, part_index=receipt.part_index, size=receipt.size)


@router.post("/uploads/{upload_id}/complete", response_model=UploadCompleteResponse)
async def complete_upload(
    upload_id: str,
    payload: UploadComplete,
    service: UploadService = Depends(get_upload_service)
):
    """
    Assemble chunks ``0..chunk_count-1`` into the final file.

    Returns:
        UploadCompleteResponse: The stored file and any cleanup leftovers
    """
    result = await service.complete(upload_id, payload.chunk_count, payload.filename)
    return UploadCompleteResponse(
        upload_id=result.upload_id,
        filename=result.filename,
        size=result.size,
        content_type=result.content_type,
        strategy=result.strategy,
        status=result.status,
        cleanup_errors=result.cleanup_errors
    )


@router.get("/uploads/{upload_id}", response_model=UploadStatusResponse)
async def get_upload_status(
    upload_id: str,
    service: UploadService = Depends(get_upload_service)
):
    """Get upload progress: session details and the chunk indices received."""
    return await service.status(upload_id)


@router.delete("/uploads/{upload_id}", response_model=UploadAbandonResponse)
async def abandon_upload(
    upload_id: str,
    service: UploadService = Depends(get_upload_service)
):
    """Cancel an upload and delete its chunks and session."""
    report = await service.abandon(upload_id)
    logger.info("Upload %s abandoned", upload_id)
    return UploadAbandonResponse(
        upload_id=upload_id,
        deleted=len(report.deleted),
        cleanup_errors=dict(report.failed)
    )
