from fastapi import FastAPI
from requestkit.middleware import register_middleware
from requestkit.errors import register_all_errors
from requestkit.config import settings
from requestkit.logging_config import setup_logging
from requestkit.utils import create_dir_if_not_exist
from requestkit.jsonio.schemas import JSONResponseEnvelope
from requestkit.jsonio.service import write_json
from requestkit.uploads.routes import file_router
from requestkit.jsonio.routes import json_router
from requestkit.downloads.routes import download_router
import uvicorn, os
from contextlib import asynccontextmanager
import logging
import httpx


version = "v1"

description = """
Request-handling helpers for web servers, exposed over HTTP.

Uploads are read straight from the multipart stream, classified by content sniffing rather than by the
client-declared type, checked against an allow-list and written under a random or sanitized name.
JSON bodies are size-bounded and decoded strictly (no unknown keys, exactly one value).
Static files are served as attachments under a caller-chosen name, and JSON payloads can be pushed to a remote endpoint.
"""

version_prefix = f"/api/{version}"

logger = logging.getLogger("requestkit")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    logger.info("Application starting...")
    create_dir_if_not_exist(settings.UPLOAD_DIR)
    create_dir_if_not_exist(settings.STATIC_DIR)
    app.state.http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.REMOTE_TIMEOUT))
    try:
        yield
    finally:
        await app.state.http_client.aclose()
        logger.info("Application shutting down...")


app = FastAPI(
    lifespan=lifespan,
    title="RequestKit",
    description=description,
    version=version,
    license_info={"name": "MIT License", "url": "https://opensource.org/license/mit"},
    openapi_url=f"{version_prefix}/openapi.json",
    docs_url=f"{version_prefix}/docs",
    redoc_url=f"{version_prefix}/redoc"
)


@app.get("/")
async def root():
    return write_json(JSONResponseEnvelope(message="Welcome to RequestKit API"))

# Register error handlers and middleware
register_all_errors(app)
register_middleware(app)

app.include_router(
    file_router,
    prefix=f"{version_prefix}/files",
    tags=["Files"]
)

app.include_router(
    download_router,
    prefix=f"{version_prefix}/files",
    tags=["Files"]
)

app.include_router(
    json_router,
    prefix=f"{version_prefix}/json",
    tags=["JSON"]
)

if __name__ == "__main__":
    ENV = os.getenv("ENV", "development")
    PORT = int(os.getenv("PORT", 10000))
    HOST = "0.0.0.0" if ENV == "production" else "localhost"

    uvicorn.run(
        app="main:app",
        host=HOST,
        port=PORT,
        reload=True if ENV == "development" else False,
        proxy_headers=True
    )
