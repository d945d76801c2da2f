from pydantic import BaseModel, Field, model_serializer
from typing import Any, Dict, Optional


class JSONConfig(BaseModel):
    """Per-call limits for decoding a JSON request body."""

    max_json_size: int = Field(default=1024 * 1024, ge=0)
    allow_unknown_fields: bool = False

    @classmethod
    def from_settings(cls, settings) -> "JSONConfig":
        return cls(
            max_json_size=settings.MAX_JSON_SIZE,
            allow_unknown_fields=settings.ALLOW_UNKNOWN_FIELDS,
        )


class JSONResponseEnvelope(BaseModel):
    error: bool = False
    message: str = ""
    data: Optional[Any] = None

    @model_serializer(mode="wrap")
    def _omit_missing_data(self, handler):
        out = handler(self)
        if self.data is None:
            out.pop("data", None)
        return out


class RemoteResponse(BaseModel):
    status_code: int
    headers: Dict[str, str] = {}
    body: bytes = b""

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class EchoPayload(BaseModel):
    name: str
    message: Optional[str] = None
    tags: list[str] = []


class SlugRequest(BaseModel):
    text: str


class PushRequest(BaseModel):
    url: str
    payload: Any = None
