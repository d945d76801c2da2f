import os
import logging

from fastapi.responses import FileResponse

from requestkit.errors import StaticFileNotFound, StaticFileUnreadable


logger = logging.getLogger("requestkit.downloads")

OCTET_STREAM = "application/octet-stream"


def download_static_file(directory: str, original_file_name: str, display_file_name: str) -> FileResponse:
    """
    Serve directory/original_file_name as an attachment named display_file_name.

    The content type is not classified; the body is sent as
    application/octet-stream.

    Raises:
        StaticFileNotFound: the file is missing or escapes directory.
        StaticFileUnreadable: the file exists but cannot be opened.
    """
    root = os.path.realpath(directory)
    file_path = os.path.realpath(os.path.join(root, original_file_name))

    if os.path.commonpath([root, file_path]) != root or not os.path.isfile(file_path):
        logger.warning(f"Static file not found: {original_file_name!r}")
        raise StaticFileNotFound(f"file {original_file_name} not found")

    if not os.access(file_path, os.R_OK):
        logger.error(f"Static file not readable: {file_path}")
        raise StaticFileUnreadable(f"file {original_file_name} cannot be read")

    return FileResponse(
        path=file_path,
        media_type=OCTET_STREAM,
        headers={"Content-Disposition": f'attachment; filename="{display_file_name}"'},
    )
