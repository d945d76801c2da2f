import json
from typing import Dict, List, Optional

import pytest
from pydantic import BaseModel, Field

from main import app
from requestkit.dependencies import get_json_config
from requestkit.errors import JSONEncodingError, MalformedJSON, MultipleJSONValues, UnknownField
from requestkit.jsonio.schemas import JSONConfig, JSONResponseEnvelope
from requestkit.jsonio.service import decode_json, encode_json, error_json, write_json


class Foo(BaseModel):
    foo: str


class Inner(BaseModel):
    size: int


class Outer(BaseModel):
    name: str
    inner: Optional[Inner] = None


class Basket(BaseModel):
    items: List[Inner]


class Aliased(BaseModel):
    user_name: str = Field(alias="userName")


class Labelled(BaseModel):
    labels: Dict[str, str]


STRICT = JSONConfig(max_json_size=1024)
LENIENT = JSONConfig(max_json_size=1024, allow_unknown_fields=True)


def test_decode_simple():
    result = decode_json(b'{"foo":"bar"}', Foo, STRICT)
    assert isinstance(result, Foo)
    assert result.foo == "bar"


def test_decode_surrounding_whitespace():
    assert decode_json(b' \n\t{"foo": "bar"}\r\n ', Foo, STRICT).foo == "bar"


@pytest.mark.parametrize("body", [b"", b"   \n\t "])
def test_decode_empty(body):
    with pytest.raises(MalformedJSON, match="body must not be empty"):
        decode_json(body, Foo, STRICT)


@pytest.mark.parametrize("body", [b'{"foo":}', b'{"foo": "bar"', b"{'foo': 'bar'}", b'{"foo": NaN}'])
def test_decode_badly_formed(body):
    with pytest.raises(MalformedJSON, match="badly-formed JSON"):
        decode_json(body, Foo, STRICT)


def test_decode_badly_formed_reports_position():
    with pytest.raises(MalformedJSON, match=r"at character 7"):
        decode_json(b'{"foo":}', Foo, STRICT)


def test_decode_invalid_utf8():
    with pytest.raises(MalformedJSON):
        decode_json(b'{"foo":"\xff"}', Foo, STRICT)


def test_decode_wrong_type():
    with pytest.raises(MalformedJSON, match='incorrect JSON type for field "foo"'):
        decode_json(b'{"foo": 1}', Foo, STRICT)


def test_decode_missing_field():
    with pytest.raises(MalformedJSON, match='missing required field "foo"'):
        decode_json(b"{}", Foo, STRICT)


def test_decode_unknown_field():
    with pytest.raises(UnknownField, match='body contains unknown key "baz"'):
        decode_json(b'{"foo":"bar","baz":1}', Foo, STRICT)


def test_decode_unknown_field_allowed():
    result = decode_json(b'{"foo":"bar","baz":1}', Foo, LENIENT)
    assert result.foo == "bar"
    assert not hasattr(result, "baz")


def test_unknown_field_in_nested_model():
    with pytest.raises(UnknownField, match='body contains unknown key "inner.colour"'):
        decode_json(b'{"name":"a","inner":{"size":1,"colour":"red"}}', Outer, STRICT)


def test_unknown_field_inside_list_of_models():
    with pytest.raises(UnknownField, match='body contains unknown key "items.1.extra"'):
        decode_json(b'{"items":[{"size":1},{"size":2,"extra":true}]}', Basket, STRICT)


def test_unknown_field_in_non_model_destination():
    with pytest.raises(UnknownField, match='body contains unknown key "0.colour"'):
        decode_json(b'[{"size":1,"colour":"red"}]', List[Inner], STRICT)


def test_nested_unknown_field_allowed():
    result = decode_json(b'{"name":"a","inner":{"size":1,"colour":"red"}}', Outer, LENIENT)
    assert result.inner.size == 1


def test_alias_is_a_known_key():
    result = decode_json(b'{"userName":"ada"}', Aliased, STRICT)
    assert result.user_name == "ada"


def test_free_form_dict_values_are_not_checked():
    result = decode_json(b'{"labels":{"anything":"goes"}}', Labelled, STRICT)
    assert result.labels == {"anything": "goes"}


def test_deeply_nested_body_is_malformed():
    depth = 200000
    body = b"[" * depth + b"]" * depth
    with pytest.raises(MalformedJSON, match="nesting too deep"):
        decode_json(body, list, JSONConfig(max_json_size=1 << 20))


def test_decode_does_not_change_model_config():
    decode_json(b'{"foo":"bar"}', Foo, STRICT)
    assert Foo.model_config.get("extra") is None
    assert Foo.model_validate({"foo": "bar", "other": 1}).foo == "bar"


@pytest.mark.parametrize("body", [b'{"foo":"bar"}{"foo":"baz"}', b'{"foo":"bar"} 1', b'{"foo":"bar"} x'])
def test_decode_multiple_values(body):
    with pytest.raises(MultipleJSONValues, match="only one JSON value"):
        decode_json(body, Foo, STRICT)


def test_decode_non_model_destinations():
    assert decode_json(b"[1, 2, 3]", List[int], STRICT) == [1, 2, 3]
    assert decode_json(b'{"a": 1}', Dict[str, int], STRICT) == {"a": 1}
    with pytest.raises(MalformedJSON):
        decode_json(b'["x"]', List[int], STRICT)


def test_encode_json():
    assert encode_json({"a": [1, 2], "b": None}) == b'{"a":[1,2],"b":null}'
    assert json.loads(encode_json(Foo(foo="é"))) == {"foo": "é"}


@pytest.mark.parametrize("payload", [float("nan"), {"x": float("inf")}, object()])
def test_encode_json_failure(payload):
    with pytest.raises(JSONEncodingError):
        encode_json(payload)


def test_write_json_round_trip_503():
    envelope = JSONResponseEnvelope(error=True, message="service unavailable")
    response = write_json(envelope, status_code=503)

    assert response.status_code == 503
    decoded = json.loads(response.body)
    assert decoded == {"error": True, "message": "service unavailable"}


def test_write_json_forces_content_type():
    response = write_json({"ok": True}, headers={"Content-Type": "text/plain", "X-Trace": "abc"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json"
    assert response.headers["x-trace"] == "abc"
    assert len(response.headers.getlist("content-type")) == 1


def test_error_json_default_status():
    response = error_json(ValueError("something broke"))

    assert response.status_code == 400
    assert json.loads(response.body) == {"error": True, "message": "something broke"}


def test_envelope_keeps_data_when_set():
    envelope = JSONResponseEnvelope(message="ok", data={"a": 1})
    assert envelope.model_dump() == {"error": False, "message": "ok", "data": {"a": 1}}


# ---------------------------------------------------------------- over HTTP

def test_echo(client):
    response = client.post("/api/v1/json/echo", json={"name": "ada", "tags": ["x"]})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json"
    assert response.json()["data"] == {"name": "ada", "message": None, "tags": ["x"]}


def test_echo_unknown_field(client):
    response = client.post("/api/v1/json/echo", json={"name": "ada", "admin": True})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] is True
    assert body["message"] == 'body contains unknown key "admin"'
    assert body["data"]["error_code"] == "unknown_field"


def test_echo_unknown_field_allowed(client):
    app.dependency_overrides[get_json_config] = lambda: JSONConfig(allow_unknown_fields=True)

    response = client.post("/api/v1/json/echo", json={"name": "ada", "admin": True})

    assert response.status_code == 200
    assert "admin" not in response.json()["data"]


def test_echo_too_large(client):
    app.dependency_overrides[get_json_config] = lambda: JSONConfig(max_json_size=3)

    response = client.post("/api/v1/json/echo", json={"name": "ada"})

    assert response.status_code == 413
    assert response.json()["message"] == "body must not be larger than 3 bytes"


def test_echo_two_values(client):
    response = client.post(
        "/api/v1/json/echo",
        content=b'{"name":"a"}{"name":"b"}',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["data"]["error_code"] == "multiple_json_values"


def test_echo_empty_body(client):
    response = client.post("/api/v1/json/echo", content=b"", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["message"] == "body must not be empty"


def test_slugify_endpoint(client):
    response = client.post("/api/v1/json/slugify", json={"text": "Hello World : ハローワールド"})

    assert response.status_code == 200
    assert response.json()["data"] == {"slug": "hello-world"}


def test_slugify_endpoint_empty(client):
    response = client.post("/api/v1/json/slugify", json={"text": "ハローワールド"})

    assert response.status_code == 400
    assert response.json()["data"]["error_code"] == "empty_input"


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"error": False, "message": "Welcome to RequestKit API"}


def test_echo_deeply_nested_body(client):
    depth = 100000
    response = client.post(
        "/api/v1/json/echo",
        content=b"[" * depth + b"]" * depth,
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["data"]["error_code"] == "malformed_json"
