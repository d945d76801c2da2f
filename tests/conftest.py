import os
import tempfile

# point the app-level directories somewhere disposable before settings load
_BASE_DIR = tempfile.mkdtemp(prefix="requestkit-tests-")
os.environ.setdefault("UPLOAD_DIR", os.path.join(_BASE_DIR, "uploads"))
os.environ.setdefault("STATIC_DIR", os.path.join(_BASE_DIR, "static"))

import pytest
from fastapi.testclient import TestClient

from main import app
from requestkit.dependencies import (
    get_json_config,
    get_remote_allowed_hosts,
    get_static_dir,
    get_upload_config,
    get_upload_dir,
)
from requestkit.jsonio.schemas import JSONConfig
from requestkit.uploads.schemas import UploadConfig


PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n"
    b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
    b"\x00\x00\x00\rIDATx\x9cc\xf8\xcf\xc0\xf0\x1f\x00\x05\x00\x01\xff\x89\x99=\x1d"
    b"\x00\x00\x00\x00IEND\xaeB`\x82"
)
GIF_BYTES = b"GIF89a\x01\x00\x01\x00\x80\x00\x00\xff\xff\xff\x00\x00\x00!\xf9\x04\x00\x00\x00\x00\x00,\x00\x00\x00\x00\x01\x00\x01\x00\x00\x02\x02D\x01\x00;"


@pytest.fixture()
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture()
def gif_bytes() -> bytes:
    return GIF_BYTES


@pytest.fixture()
def upload_dir(tmp_path) -> str:
    path = tmp_path / "uploads"
    path.mkdir()
    return str(path)


@pytest.fixture()
def static_dir(tmp_path) -> str:
    path = tmp_path / "static"
    path.mkdir()
    return str(path)


@pytest.fixture()
def client(upload_dir, static_dir):
    app.dependency_overrides[get_upload_dir] = lambda: upload_dir
    app.dependency_overrides[get_static_dir] = lambda: static_dir
    app.dependency_overrides[get_upload_config] = lambda: UploadConfig()
    app.dependency_overrides[get_json_config] = lambda: JSONConfig()
    app.dependency_overrides[get_remote_allowed_hosts] = lambda: ["example.test"]
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
