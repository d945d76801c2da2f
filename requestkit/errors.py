from typing import Callable, Optional
from fastapi.requests import Request
from fastapi.responses import JSONResponse
from fastapi import FastAPI, status
import logging

from requestkit.jsonio.schemas import JSONResponseEnvelope


logger = logging.getLogger("requestkit.errors")


class RequestKitError(Exception):
    """Base class for all request toolkit exceptions."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "An error occurred", error_code: str = "error"):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


# ============================================ Size limits
class PayloadTooLarge(RequestKitError):
    """Request body exceeded the configured size ceiling."""
    status_code = 413

    def __init__(self, message: str = "request body too large"):
        super().__init__(message=message, error_code="payload_too_large")


# ============================================ Upload Errors
class UnsupportedType(RequestKitError):
    """Sniffed content type of an uploaded file is not in the allow-list."""
    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE

    def __init__(self, message: str = "the uploaded file type is not permitted"):
        super().__init__(message=message, error_code="unsupported_type")


class PersistenceFailure(RequestKitError):
    """Writing an uploaded file to disk failed."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "failed to save uploaded file"):
        super().__init__(message=message, error_code="persistence_failure")


class MalformedMultipart(RequestKitError):
    """Request body is not valid multipart/form-data."""

    def __init__(self, message: str = "request body is not valid multipart/form-data"):
        super().__init__(message=message, error_code="malformed_multipart")


class UnexpectedPartCount(RequestKitError):
    """Single-file upload received zero or several files."""

    def __init__(self, message: str = "exactly one file must be uploaded"):
        super().__init__(message=message, error_code="unexpected_part_count")


# ============================================ JSON Errors
class MalformedJSON(RequestKitError):
    """Body is empty, syntactically invalid, or has the wrong types."""

    def __init__(self, message: str = "body contains badly-formed JSON"):
        super().__init__(message=message, error_code="malformed_json")


class UnknownField(RequestKitError):
    """Body carries a key the destination does not declare."""

    def __init__(self, message: str = "body contains unknown key"):
        super().__init__(message=message, error_code="unknown_field")


class MultipleJSONValues(RequestKitError):
    """Body carries data after the first JSON value."""

    def __init__(self, message: str = "body must contain only one JSON value"):
        super().__init__(message=message, error_code="multiple_json_values")


class JSONEncodingError(RequestKitError):
    """Payload could not be marshaled to JSON."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "payload could not be encoded as JSON"):
        super().__init__(message=message, error_code="json_encoding_error")


class RemoteCallFailure(RequestKitError):
    """Raised when pushing JSON to a remote endpoint fails at the transport level."""
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str = "error communicating with remote endpoint"):
        super().__init__(message=message, error_code="remote_call_failure")


class RemoteHostNotAllowed(RequestKitError):
    """Push target host is not on the configured allow-list."""
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "remote host is not permitted"):
        super().__init__(message=message, error_code="remote_host_not_allowed")


# ============================================ Slug / static file Errors
class EmptyInput(RequestKitError):
    """Slug input was empty or produced an empty slug."""

    def __init__(self, message: str = "empty string not permitted"):
        super().__init__(message=message, error_code="empty_input")


class StaticFileNotFound(RequestKitError):
    """Requested static file does not exist."""
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "file not found"):
        super().__init__(message=message, error_code="file_not_found")


class StaticFileUnreadable(RequestKitError):
    """Requested static file exists but cannot be read."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "file cannot be read"):
        super().__init__(message=message, error_code="file_unreadable")


def create_exception_handler(
    status_code: Optional[int] = None,
) -> Callable[[Request, Exception], JSONResponse]:

    async def exception_handler(request: Request, exc: RequestKitError):
        code = status_code or exc.status_code
        logger.warning(f"{exc.error_code} at {request.method} {request.url.path}: {exc.message}")
        envelope = JSONResponseEnvelope(
            error=True,
            message=exc.message,
            data={"error_code": exc.error_code},
        )
        return JSONResponse(content=envelope.model_dump(mode="json"), status_code=code)

    return exception_handler


def register_all_errors(app: FastAPI):
    app.add_exception_handler(RequestKitError, create_exception_handler())
