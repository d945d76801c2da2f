import logging
from typing import Any, Iterable, Mapping, Protocol

import httpx

from requestkit.errors import RemoteCallFailure, RemoteHostNotAllowed
from .schemas import RemoteResponse
from .service import JSON_MEDIA_TYPE, encode_json


logger = logging.getLogger("requestkit.jsonio")


class AsyncHTTPClient(Protocol):
    """Anything that can POST bytes and hand back an httpx-style response."""

    async def post(self, url: str, *, content: bytes, headers: Mapping[str, str]) -> httpx.Response:
        ...


def check_remote_host(url: str, allowed_hosts: Iterable[str]) -> None:
    """
    Raise RemoteHostNotAllowed unless url is http(s) and its host is listed.
    Host comparison is case-insensitive; an empty allow-list permits nothing.
    """
    try:
        target = httpx.URL(url)
    except httpx.InvalidURL as e:
        raise RemoteHostNotAllowed(f"remote url {url!r} is not valid") from e

    host = (target.host or "").lower()
    allowed = {h.strip().lower() for h in allowed_hosts}
    if target.scheme not in ("http", "https") or host not in allowed:
        logger.warning(f"Refused push to {url}: host not permitted")
        raise RemoteHostNotAllowed(f'remote host "{host or url}" is not permitted')


async def push_json_to_remote(url: str, payload: Any, client: AsyncHTTPClient) -> RemoteResponse:
    """
    POST payload as JSON to url through the injected client.

    The remote status is reported as-is; a 4xx/5xx answer is not an error here.
    Transport failures raise RemoteCallFailure, unencodable payloads raise
    JSONEncodingError. No retries.
    """
    body = encode_json(payload)
    headers = {"Content-Type": JSON_MEDIA_TYPE}

    try:
        response = await client.post(url, content=body, headers=headers)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.error(f"Push to {url} failed: {e!r}")
        raise RemoteCallFailure(f"error communicating with {url}: {e}") from e

    try:
        content = response.content
        logger.info(f"Pushed {len(body)} bytes to {url}: status {response.status_code}")
        return RemoteResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=content,
        )
    finally:
        await response.aclose()
