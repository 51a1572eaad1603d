"""Request dependencies shared by the routers."""
from fastapi import Request

from chunkstore.services.upload_service import UploadService


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.upload_service
