from dataclasses import dataclass
from tempfile import SpooledTemporaryFile
from typing import IO, AsyncIterator, List, Optional
import logging

from python_multipart import MultipartParser
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import parse_options_header
from starlette.concurrency import run_in_threadpool

from requestkit.errors import MalformedMultipart


logger = logging.getLogger("requestkit.uploads")

# parts larger than this spill from memory to a temporary file
SPOOL_MAX_SIZE = 1024 * 1024


@dataclass
class FilePart:
    """One file-bearing part of a multipart body, buffered and rewound."""
    field_name: str
    filename: str
    declared_type: Optional[str]
    file: IO[bytes]
    size: int = 0

    @property
    def in_memory(self) -> bool:
        # SpooledTemporaryFile sets _rolled once it has spilled to disk
        return not getattr(self.file, "_rolled", True)

    async def read(self, size: int = -1) -> bytes:
        if self.in_memory:
            return self.file.read(size)
        return await run_in_threadpool(self.file.read, size)

    def close(self) -> None:
        self.file.close()


def close_parts(parts: List[FilePart]) -> None:
    for part in parts:
        part.close()


def get_boundary(content_type: Optional[str]) -> bytes:
    media_type, params = parse_options_header(content_type or "")
    if media_type.lower() != b"multipart/form-data":
        raise MalformedMultipart("request Content-Type isn't multipart/form-data")
    boundary = params.get(b"boundary")
    if not boundary:
        raise MalformedMultipart("no multipart boundary param in Content-Type")
    return boundary


async def parse_multipart(content_type: Optional[str], stream: AsyncIterator[bytes]) -> List[FilePart]:
    """
    Parse a multipart/form-data body from stream.

    Returns the file parts (parts whose Content-Disposition carries a non-empty
    filename) in the order they arrived, each rewound to position 0. Plain form
    fields are skipped. On any error every buffered part is closed before the
    exception propagates.
    """
    boundary = get_boundary(content_type)

    parts: List[FilePart] = []
    state = {
        "header_field": bytearray(),
        "header_value": bytearray(),
        "headers": {},
        "current": None,
        "in_part": False,
    }

    def on_part_begin():
        state["headers"] = {}
        state["current"] = None
        state["in_part"] = True

    def on_header_field(data: bytes, start: int, end: int):
        state["header_field"].extend(data[start:end])

    def on_header_value(data: bytes, start: int, end: int):
        state["header_value"].extend(data[start:end])

    def on_header_end():
        name = bytes(state["header_field"]).decode("latin-1").strip().lower()
        state["headers"][name] = bytes(state["header_value"]).decode("latin-1")
        state["header_field"] = bytearray()
        state["header_value"] = bytearray()

    def on_headers_finished():
        disposition = state["headers"].get("content-disposition")
        if not disposition:
            raise MalformedMultipart("multipart part is missing Content-Disposition")

        _, options = parse_options_header(disposition)
        filename = options.get(b"filename")
        if not filename:
            # plain form field
            return

        part = FilePart(
            field_name=options.get(b"name", b"").decode("utf-8", errors="replace"),
            filename=filename.decode("utf-8", errors="replace"),
            declared_type=state["headers"].get("content-type"),
            file=SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE),
        )
        parts.append(part)
        state["current"] = part

    def on_part_data(data: bytes, start: int, end: int):
        part = state["current"]
        if part is None:
            return
        part.file.write(data[start:end])
        part.size += end - start

    def on_part_end():
        part = state["current"]
        if part is not None:
            part.file.seek(0)
        state["current"] = None
        state["in_part"] = False

    callbacks = {
        "on_part_begin": on_part_begin,
        "on_part_data": on_part_data,
        "on_part_end": on_part_end,
        "on_header_field": on_header_field,
        "on_header_value": on_header_value,
        "on_header_end": on_header_end,
        "on_headers_finished": on_headers_finished,
    }
    parser = MultipartParser(boundary, callbacks)

    try:
        async for chunk in stream:
            current = state["current"]
            if current is not None and not current.in_memory:
                await run_in_threadpool(parser.write, chunk)
            else:
                parser.write(chunk)
        parser.finalize()
        if state["in_part"]:
            raise MalformedMultipart("unexpected end of multipart body")
    except MultipartParseError as exc:
        close_parts(parts)
        raise MalformedMultipart(f"malformed multipart body: {exc}") from exc
    except BaseException:
        close_parts(parts)
        raise

    logger.debug(f"Parsed {len(parts)} file part(s) from multipart body")
    return parts
