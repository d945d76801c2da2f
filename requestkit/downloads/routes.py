from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from requestkit.dependencies import get_static_dir
from .service import download_static_file


download_router = APIRouter()


@download_router.get("/download/{file_name}")
async def download_file(
    file_name: str,
    static_dir: Annotated[str, Depends(get_static_dir)],
    display_name: Optional[str] = None,
):
    """
    Send a file from the static directory as an attachment.
    `display_name` is the filename the client sees; it defaults to `file_name`.
    """
    return download_static_file(static_dir, file_name, display_name or file_name)
