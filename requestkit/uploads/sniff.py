"""
Content sniffing for uploaded files.

Classification uses libmagic on the first 512 bytes of a file. The result
never depends on a client-declared Content-Type.
"""
from typing import IO

import magic

SNIFF_LEN = 512

OCTET_STREAM = "application/octet-stream"


def detect_content_type(data: bytes) -> str:
    """
    Return the detected media type for data, considering at most the first
    512 bytes. Always returns a value; anything libmagic cannot name is
    application/octet-stream.
    """
    detected = magic.from_buffer(data[:SNIFF_LEN], mime=True)
    if not detected:
        return OCTET_STREAM
    return detected.lower().strip()


def sniff_content_type(fileobj: IO[bytes]) -> str:
    """
    Classify a seekable file-like object from its first 512 bytes, then put the
    read position back where it was so the caller still sees the full stream.
    """
    position = fileobj.tell()
    try:
        head = fileobj.read(SNIFF_LEN)
    finally:
        fileobj.seek(position)
    return detect_content_type(head or b"")


def media_type_essence(media_type: str) -> str:
    """'text/plain; charset=utf-8' -> 'text/plain'"""
    return media_type.split(";", 1)[0].strip().lower()
