from typing import List

from fastapi import Request

from requestkit.config import settings
from requestkit.jsonio.schemas import JSONConfig
from requestkit.uploads.schemas import UploadConfig


def get_upload_config() -> UploadConfig:
    return UploadConfig.from_settings(settings)


def get_upload_dir() -> str:
    return settings.UPLOAD_DIR


def get_json_config() -> JSONConfig:
    return JSONConfig.from_settings(settings)


def get_static_dir() -> str:
    return settings.STATIC_DIR


def get_http_client(request: Request):
    """Shared httpx.AsyncClient owned by the application lifespan."""
    return request.app.state.http_client


def get_remote_allowed_hosts() -> List[str]:
    return settings.REMOTE_ALLOWED_HOSTS
