"""orjson transport and packed frames."""
import numpy as np
import orjson
import pytest

from slotgraph import DecodeError, dumps, encode, loads, pack, unpack
from slotgraph.json_util import digest, load_any
from sample_types import Node, Pair


def _objects():
    n = Node()
    n.Next = n
    return encode(Pair(A=3, B=n))


def test_dumps_loads():
    text = dumps(_objects())
    assert text == '[{"A":3,"B":1},{"Next":1}]'
    assert loads(text) == _objects()


def test_int_keys_and_numpy_values():
    assert loads(dumps([{1: None, 2: np.int64(5)}])) == [{"1": None, "2": 5}]


def test_loads_rejects_non_lists():
    with pytest.raises(DecodeError, match="object list expected"):
        loads('{"a": 1}')
    with pytest.raises(DecodeError, match="invalid JSON"):
        loads("[1,")


def test_pack_unpack():
    objects = _objects()
    blob = pack(objects)
    frame = orjson.loads(blob)
    assert frame["version"] == "slotgraph.v1"
    assert frame["digest"] == digest(objects)
    assert unpack(blob) == objects
    assert load_any(blob) == objects
    assert load_any(dumps(objects)) == objects


def test_unpack_detects_tampering():
    frame = orjson.loads(pack(_objects()))
    frame["objects"][0]["A"] = 4
    with pytest.raises(DecodeError, match="digest mismatch"):
        unpack(orjson.dumps(frame))


def test_unpack_checks_version():
    frame = orjson.loads(pack(_objects()))
    frame["version"] = "slotgraph.v0"
    with pytest.raises(DecodeError, match="unknown wire version"):
        unpack(orjson.dumps(frame))
    with pytest.raises(DecodeError, match="not a packed object list"):
        unpack(b"[1]")
