from typing import Annotated, List

from fastapi import APIRouter, Depends, Request

from requestkit.dependencies import get_http_client, get_json_config, get_remote_allowed_hosts
from requestkit.utils import slugify
from .remote import check_remote_host, push_json_to_remote
from .schemas import EchoPayload, JSONConfig, JSONResponseEnvelope, PushRequest, SlugRequest
from .service import read_json, write_json


json_router = APIRouter()


@json_router.post("/echo", response_model=JSONResponseEnvelope)
async def echo(
    request: Request,
    config: Annotated[JSONConfig, Depends(get_json_config)],
):
    """
    Strictly decode an EchoPayload and send it back.
    """
    payload = await read_json(request, EchoPayload, config)
    return write_json(JSONResponseEnvelope(message="ok", data=payload))


@json_router.post("/slugify", response_model=JSONResponseEnvelope)
async def make_slug(
    request: Request,
    config: Annotated[JSONConfig, Depends(get_json_config)],
):
    body = await read_json(request, SlugRequest, config)
    return write_json(JSONResponseEnvelope(message="ok", data={"slug": slugify(body.text)}))


@json_router.post("/push", response_model=JSONResponseEnvelope)
async def push(
    request: Request,
    config: Annotated[JSONConfig, Depends(get_json_config)],
    allowed_hosts: Annotated[List[str], Depends(get_remote_allowed_hosts)],
    client=Depends(get_http_client),
):
    """
    Forward `payload` as JSON to `url` and report what the remote answered.
    Only hosts listed in REMOTE_ALLOWED_HOSTS are reachable.
    """
    body = await read_json(request, PushRequest, config)
    check_remote_host(body.url, allowed_hosts)
    remote = await push_json_to_remote(body.url, body.payload, client)
    data = {
        "status_code": remote.status_code,
        "headers": remote.headers,
        "body": remote.text(),
    }
    return write_json(JSONResponseEnvelope(message="pushed", data=data))
