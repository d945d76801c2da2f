from typing import AsyncIterator, Mapping, Optional
import logging

from requestkit.errors import PayloadTooLarge


logger = logging.getLogger("requestkit.streams")


def check_content_length(headers: Mapping[str, str], max_bytes: int, message: Optional[str] = None) -> None:
    """
    Reject early when the client already declares a body above the ceiling.
    A missing or unparseable header is left to the streaming check.
    """
    declared = headers.get("content-length")
    if not declared:
        return
    try:
        length = int(declared)
    except ValueError:
        return
    if length > max_bytes:
        logger.warning(f"Declared body of {length} bytes exceeds limit of {max_bytes}")
        raise PayloadTooLarge(message or f"body must not be larger than {max_bytes} bytes")


async def limit_stream(
    stream: AsyncIterator[bytes],
    max_bytes: int,
    message: Optional[str] = None,
) -> AsyncIterator[bytes]:
    """
    Re-yield chunks from stream, raising PayloadTooLarge as soon as the running
    total goes past max_bytes. Nothing past the ceiling is handed downstream.
    """
    total = 0
    async for chunk in stream:
        if not chunk:
            continue
        total += len(chunk)
        if total > max_bytes:
            logger.warning(f"Request body exceeded limit of {max_bytes} bytes")
            raise PayloadTooLarge(message or f"body must not be larger than {max_bytes} bytes")
        yield chunk


async def read_body(stream: AsyncIterator[bytes], max_bytes: int, message: Optional[str] = None) -> bytes:
    chunks = []
    async for chunk in limit_stream(stream, max_bytes, message):
        chunks.append(chunk)
    return b"".join(chunks)
