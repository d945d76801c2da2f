# upload pipeline
import os
import logging
from typing import List, Optional

import aiofiles
from fastapi import Request
from starlette.concurrency import run_in_threadpool

from requestkit.errors import PersistenceFailure, UnexpectedPartCount, UnsupportedType
from requestkit.streams import check_content_length, limit_stream
from requestkit.utils import random_string, sanitize_filename
from .multipart import FilePart, close_parts, parse_multipart
from .schemas import UploadConfig, UploadedFile
from .sniff import sniff_content_type


logger = logging.getLogger("requestkit.uploads")

RENAMED_TOKEN_LENGTH = 25
COPY_CHUNK_SIZE = 64 * 1024


class FileUploader:
    def __init__(self, config: Optional[UploadConfig] = None):
        self.config = config or UploadConfig()

    async def upload_files(self, request: Request, upload_dir: str, rename: bool = True) -> List[UploadedFile]:
        """
        Validate and save every file in a multipart request.

        Args:
            request: incoming request carrying a multipart/form-data body.
            upload_dir: existing directory the files are written to.
            rename: store each file under a random token plus its original extension.
        Returns:
            List[UploadedFile]: one entry per file part, in arrival order.
        """
        parts = await self._read_parts(request)
        try:
            return await self._process(parts, upload_dir, rename)
        finally:
            close_parts(parts)

    async def upload_one_file(self, request: Request, upload_dir: str, rename: bool = True) -> UploadedFile:
        """
        Same as upload_files but the request must carry exactly one file.
        Nothing is written when it carries none or several.
        """
        parts = await self._read_parts(request)
        try:
            if len(parts) != 1:
                raise UnexpectedPartCount(f"exactly one file must be uploaded, got {len(parts)}")
            uploaded = await self._process(parts, upload_dir, rename)
            return uploaded[0]
        finally:
            close_parts(parts)

    async def _read_parts(self, request: Request) -> List[FilePart]:
        limit = self.config.max_upload_size
        message = f"the uploaded file is too big, limit is {limit} bytes"
        check_content_length(request.headers, limit, message)
        return await parse_multipart(
            request.headers.get("content-type"),
            limit_stream(request.stream(), limit, message),
        )

    async def _process(self, parts: List[FilePart], upload_dir: str, rename: bool) -> List[UploadedFile]:
        # Classify everything first so a rejected type never leaves files behind
        content_types = []
        for part in parts:
            if part.in_memory:
                content_type = sniff_content_type(part.file)
            else:
                content_type = await run_in_threadpool(sniff_content_type, part.file)
            if not self.config.is_allowed(content_type):
                logger.warning(f"Rejected upload {part.filename!r}: sniffed type {content_type} not permitted")
                raise UnsupportedType(f"the uploaded file type {content_type} is not permitted")
            content_types.append(content_type)

        uploaded_files = []
        for part, content_type in zip(parts, content_types):
            new_file_name = self.output_file_name(part.filename, rename)
            file_size = await self._save(part, os.path.join(upload_dir, new_file_name))
            logger.info(f"Saved upload {part.filename!r} as {new_file_name} ({file_size} bytes)")

            uploaded_files.append(
                UploadedFile(
                    new_file_name=new_file_name,
                    original_file_name=part.filename,
                    file_size=file_size,
                    content_type=content_type,
                )
            )
        return uploaded_files

    @staticmethod
    def output_file_name(original_name: str, rename: bool) -> str:
        safe_name = sanitize_filename(original_name)
        if not rename:
            return safe_name
        _, ext = os.path.splitext(safe_name)
        return f"{random_string(RENAMED_TOKEN_LENGTH)}{ext}"

    async def _save(self, part: FilePart, file_path: str) -> int:
        written = 0
        try:
            # "x": never overwrite an existing file
            async with aiofiles.open(file_path, "xb") as f:
                while True:
                    chunk = await part.read(COPY_CHUNK_SIZE)
                    if not chunk:
                        break
                    await f.write(chunk)
                    written += len(chunk)
        except OSError as e:
            logger.error(f"Failed to save {file_path}: {e}")
            raise PersistenceFailure(f"failed to save {os.path.basename(file_path)}: {e.strerror or e}") from e
        return written
