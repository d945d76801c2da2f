import json
import logging
from functools import lru_cache
from typing import Any, Dict, Optional, Set, Tuple, Type, TypeVar, Union

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from pydantic import AliasChoices, BaseModel, ConfigDict, TypeAdapter, ValidationError
from pydantic.fields import FieldInfo
from starlette.responses import Response

from requestkit.errors import JSONEncodingError, MalformedJSON, MultipleJSONValues, UnknownField
from requestkit.streams import check_content_length, read_body
from .schemas import JSONConfig, JSONResponseEnvelope


logger = logging.getLogger("requestkit.jsonio")

T = TypeVar("T")

JSON_MEDIA_TYPE = "application/json"
_JSON_WHITESPACE = " \t\n\r"
NESTING_TOO_DEEP = "body contains badly-formed JSON (nesting too deep)"


def _reject_constant(name: str):
    # NaN, Infinity and -Infinity are not JSON
    raise ValueError(f"invalid literal {name}")


_decoder = json.JSONDecoder(parse_constant=_reject_constant)


@lru_cache(maxsize=None)
def _lenient_model(destination: Type[BaseModel]) -> Type[BaseModel]:
    """Return destination, or a subclass of it that ignores undeclared keys."""
    if destination.model_config.get("extra") != "forbid":
        return destination

    class _Model(destination):
        model_config = ConfigDict(extra="ignore")

    _Model.__name__ = destination.__name__
    _Model.__qualname__ = destination.__qualname__
    return _Model


def _field_path(loc) -> str:
    return ".".join(str(p) for p in loc)


def _input_keys(name: str, field: FieldInfo) -> Set[str]:
    keys = {name}
    if field.alias:
        keys.add(field.alias)
    alias = field.validation_alias
    if isinstance(alias, str):
        keys.add(alias)
    elif isinstance(alias, AliasChoices):
        keys.update(choice for choice in alias.choices if isinstance(choice, str))
    return keys


def _find_unknown_key(raw: Any, value: Any, path: Tuple = ()) -> Optional[Tuple]:
    """
    Walk the decoded JSON next to the validated result and return the path of
    the first object key no model along the way declares, at any depth.
    """
    if isinstance(value, BaseModel) and isinstance(raw, dict):
        declared = {}
        for name, field in type(value).model_fields.items():
            for key in _input_keys(name, field):
                declared[key] = name
        for key, item in raw.items():
            if key not in declared:
                return path + (key,)
            found = _find_unknown_key(item, getattr(value, declared[key], None), path + (key,))
            if found:
                return found
    elif isinstance(value, (list, tuple)) and isinstance(raw, list):
        for index, (item, validated) in enumerate(zip(raw, value)):
            found = _find_unknown_key(item, validated, path + (index,))
            if found:
                return found
    elif isinstance(value, dict) and isinstance(raw, dict):
        for key, item in raw.items():
            if key in value:
                found = _find_unknown_key(item, value[key], path + (key,))
                if found:
                    return found
    return None


def _translate_validation_error(exc: ValidationError) -> Exception:
    errors = exc.errors()
    for err in errors:
        if err["type"] == "extra_forbidden":
            return UnknownField(f'body contains unknown key "{_field_path(err["loc"])}"')

    err = errors[0]
    field = _field_path(err["loc"])
    if err["type"] == "missing":
        return MalformedJSON(f'body is missing required field "{field}"')
    if field:
        return MalformedJSON(f'body contains incorrect JSON type for field "{field}"')
    return MalformedJSON(f"body contains incorrect JSON type: {err['msg']}")


def _validate(value: Any, destination: Type[T], config: JSONConfig) -> T:
    try:
        if isinstance(destination, type) and issubclass(destination, BaseModel):
            if config.allow_unknown_fields:
                destination = _lenient_model(destination)
            result = destination.model_validate(value)
        else:
            result = TypeAdapter(destination).validate_python(value)
    except ValidationError as exc:
        raise _translate_validation_error(exc) from exc

    if not config.allow_unknown_fields:
        unknown = _find_unknown_key(value, result)
        if unknown:
            raise UnknownField(f'body contains unknown key "{_field_path(unknown)}"')
    return result


def decode_json(body: bytes, destination: Type[T], config: Optional[JSONConfig] = None) -> T:
    """
    Decode exactly one JSON value from body and validate it into destination.

    destination is a pydantic model class or any type a pydantic TypeAdapter
    accepts (dict, list[int], ...). A fresh value is returned; nothing is
    mutated in place.

    Raises:
        MalformedJSON: empty body, syntax error, invalid UTF-8, type mismatch,
            nesting deeper than the interpreter can decode.
        UnknownField: key not declared by the destination model, at any depth.
        MultipleJSONValues: anything but whitespace after the first value.
    """
    config = config or JSONConfig()

    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedJSON(f"body contains badly-formed JSON (invalid UTF-8 at byte {exc.start})") from exc

    start = len(text) - len(text.lstrip(_JSON_WHITESPACE))
    if start == len(text):
        raise MalformedJSON("body must not be empty")

    try:
        value, end = _decoder.raw_decode(text, start)
    except json.JSONDecodeError as exc:
        if exc.pos >= len(text):
            raise MalformedJSON("body contains badly-formed JSON") from exc
        raise MalformedJSON(f"body contains badly-formed JSON (at character {exc.pos})") from exc
    except ValueError as exc:
        raise MalformedJSON(f"body contains badly-formed JSON ({exc})") from exc
    except RecursionError as exc:
        raise MalformedJSON(NESTING_TOO_DEEP) from exc

    try:
        result = _validate(value, destination, config)
    except RecursionError as exc:
        raise MalformedJSON(NESTING_TOO_DEEP) from exc

    if text[end:].strip(_JSON_WHITESPACE):
        raise MultipleJSONValues("body must contain only one JSON value")

    return result


async def read_json(request: Request, destination: Type[T], config: Optional[JSONConfig] = None) -> T:
    """
    Read a size-bounded JSON body from request and decode it into destination.
    """
    config = config or JSONConfig()
    limit = config.max_json_size
    message = f"body must not be larger than {limit} bytes"

    check_content_length(request.headers, limit, message)
    body = await read_body(request.stream(), limit, message)
    return decode_json(body, destination, config)


def encode_json(payload: Any) -> bytes:
    """Marshal payload (pydantic models included) to compact UTF-8 JSON."""
    try:
        encoded = jsonable_encoder(payload)
        return json.dumps(
            encoded,
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
        ).encode("utf-8")
    except (TypeError, ValueError) as exc:
        logger.error(f"Failed to encode JSON payload: {exc}")
        raise JSONEncodingError(f"payload could not be encoded as JSON: {exc}") from exc


def write_json(
    payload: Any,
    status_code: int = status.HTTP_200_OK,
    headers: Optional[Dict[str, str]] = None,
) -> Response:
    """
    Build a JSON response. Extra headers are applied first; Content-Type is
    always application/json.
    """
    body = encode_json(payload)
    extra = {k: v for k, v in (headers or {}).items() if k.lower() != "content-type"}
    return Response(
        content=body,
        status_code=status_code,
        headers=extra,
        media_type=JSON_MEDIA_TYPE,
    )


def error_json(exc: Union[Exception, str], status_code: int = status.HTTP_400_BAD_REQUEST) -> Response:
    envelope = JSONResponseEnvelope(error=True, message=str(exc))
    return write_json(envelope, status_code=status_code)
