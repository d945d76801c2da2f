from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status

from requestkit.dependencies import get_upload_config, get_upload_dir
from requestkit.config import settings
from requestkit.jsonio.schemas import JSONResponseEnvelope
from requestkit.jsonio.service import write_json
from .schemas import UploadConfig
from .service import FileUploader


file_router = APIRouter()


@file_router.post("/upload", status_code=status.HTTP_201_CREATED, response_model=JSONResponseEnvelope)
async def upload_files(
    request: Request,
    config: Annotated[UploadConfig, Depends(get_upload_config)],
    upload_dir: Annotated[str, Depends(get_upload_dir)],
    rename: bool = Query(default=settings.RENAME_UPLOADS),
):
    """
    Accept a multipart/form-data body and store every file part in the upload directory.
    The body is read straight from the request stream.
    """
    uploaded = await FileUploader(config).upload_files(request, upload_dir, rename=rename)
    envelope = JSONResponseEnvelope(message=f"{len(uploaded)} file(s) uploaded", data=uploaded)
    return write_json(envelope, status_code=status.HTTP_201_CREATED)


@file_router.post("/upload-one", status_code=status.HTTP_201_CREATED, response_model=JSONResponseEnvelope)
async def upload_one_file(
    request: Request,
    config: Annotated[UploadConfig, Depends(get_upload_config)],
    upload_dir: Annotated[str, Depends(get_upload_dir)],
    rename: bool = Query(default=settings.RENAME_UPLOADS),
):
    uploaded = await FileUploader(config).upload_one_file(request, upload_dir, rename=rename)
    envelope = JSONResponseEnvelope(message="file uploaded", data=uploaded)
    return write_json(envelope, status_code=status.HTTP_201_CREATED)

