"""JSON transport for object lists.

``dumps``/``loads`` move a bare object list; ``pack``/``unpack`` wrap it in a
versioned frame carrying an xxh3 digest so a truncated or edited file is
caught before decoding.
"""
from typing import Any, List, Union

import orjson
import xxhash

from .config import MARSHAL_CONFIG
from .decoder import DecodeError

_OPTS = orjson.OPT_NON_STR_KEYS | orjson.OPT_SERIALIZE_NUMPY


def dumps(objects: List[Any]) -> str:
    return orjson.dumps(objects, option=_OPTS).decode()


def loads(data: Union[str, bytes]) -> List[Any]:
    try:
        objects = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise DecodeError(f"invalid JSON: {e}") from e
    if not isinstance(objects, list):
        raise DecodeError(f"object list expected, got {type(objects).__name__}")
    return objects


def digest(objects: List[Any]) -> str:
    return xxhash.xxh3_64_hexdigest(orjson.dumps(objects, option=_OPTS))


def pack(objects: List[Any]) -> bytes:
    return orjson.dumps(
        {
            "version": MARSHAL_CONFIG["wire_version"],
            "digest": digest(objects),
            "objects": objects,
        },
        option=_OPTS,
    )


def unpack(data: Union[str, bytes]) -> List[Any]:
    try:
        frame = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise DecodeError(f"invalid JSON: {e}") from e
    if not isinstance(frame, dict) or "objects" not in frame:
        raise DecodeError("not a packed object list")
    if frame.get("version") != MARSHAL_CONFIG["wire_version"]:
        raise DecodeError(f"unknown wire version: {frame.get('version')!r}")
    objects = frame["objects"]
    if not isinstance(objects, list):
        raise DecodeError(f"object list expected, got {type(objects).__name__}")
    if frame.get("digest") != digest(objects):
        raise DecodeError("digest mismatch")
    return objects


def load_any(data: Union[str, bytes]) -> List[Any]:
    """Accept either a bare object list or a packed frame."""
    if data.lstrip()[:1] in (b"{", "{"):
        return unpack(data)
    return loads(data)
