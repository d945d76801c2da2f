import time
import json
import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from requestkit.config import settings
from requestkit.jsonio.service import error_json


logger = logging.getLogger("requestkit.middleware")


def get_status_color(status_code: int) -> str:
    if 200 <= status_code < 300:
        return "\033[92m"  # Green
    elif 400 <= status_code < 500:
        return "\033[93m"  # Yellow
    elif 500 <= status_code < 600:
        return "\033[91m"  # Red
    else:
        return "\033[0m"   # Default


def register_middleware(app: FastAPI):

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.error(f"HTTPException: {exc.detail} at {request.method} {request.url.path}")
        return error_json(exc.detail, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.error(f"Validation error at {request.method} {request.url.path}: {exc.errors()}")
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ()))
        return error_json(
            f"invalid value for {field}: {first.get('msg', 'validation failed')}",
            status_code=422,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception at {request.method} {request.url.path}: {exc}")
        return error_json("Internal Server Error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        status_color = get_status_color(response.status_code)
        reset_color = "\033[0m"

        client = f"{request.client.host}:{request.client.port}" if request.client else "-"
        log_msg = (
            f"{client} - {request.method} {request.url.path} - "
            f"Status: {status_color}{response.status_code}{reset_color} - Time: {process_time:.2f}s"
        )

        if response.status_code >= 400:
            body = b""
            async for chunk in response.body_iterator:
                body += chunk
            response = Response(
                content=body,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type,
            )
            try:
                error_content = json.loads(body.decode())
                reason = error_content.get("message", error_content)
            except (UnicodeDecodeError, ValueError, AttributeError):
                reason = body.decode(errors="ignore")
            log_msg += f" - Reason: {reason}"

        logger.info(log_msg)
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )
