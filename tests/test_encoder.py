"""GraphEncoder: slot assignment, lenient omission and strict failures."""
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pytest

from slotgraph import EncodeError, GraphEncoder, Ref, TypeRegistry, encode
from sample_types import Cat, Dog, Job, Node, Pair, Zoo, zoo_types


def _noop():
    pass


# ----------------------------- roots -----------------------------------
def test_bare_aggregate_rejected():
    with pytest.raises(EncodeError, match="aggregate passed as value"):
        encode(Pair(), shape=Pair)


def test_dataclass_root_is_a_handle():
    assert encode(Pair(A=5)) == [{"A": 5}]
    assert encode(Pair(A=5), shape=Ref[Pair]) == [{"A": 5}]


def test_scalar_and_null_roots():
    assert encode(7) == [7]
    assert encode("x") == ["x"]
    assert encode(None) == [None]
    assert encode(None, shape=Ref[Node]) == [None]


def test_sequence_root_keeps_slot_zero():
    a, b = Node(), Node()
    objects = encode([a, b, a], shape=List[Ref[Node]])
    assert objects == [[1, 2, 1], {}, {}]


def test_unsupported_root_fails_even_lenient():
    with pytest.raises(EncodeError, match="type not supported"):
        encode(_noop, lenient=True)


# ----------------------------- lenient / strict --------------------------
def test_lenient_omits_unsupported_fields():
    objects = encode(Job("build", callback=_noop, hooks=[_noop], inbox=None), lenient=True)
    assert objects == [{"name": "build", "retries": 3}]


def test_strict_names_offending_type():
    with pytest.raises(EncodeError, match="type not supported"):
        encode(Job("build", callback=_noop), lenient=False)


def test_config_default_is_used(monkeypatch):
    from slotgraph import config

    monkeypatch.setitem(config.MARSHAL_CONFIG, "lenient", True)
    assert GraphEncoder().lenient is True
    assert GraphEncoder(lenient=False).lenient is False


def test_first_unsupported_element_drops_sequence():
    objects = encode(Job("j", hooks=[_noop, _noop]), lenient=True)
    assert "hooks" not in objects[0]


def test_later_unsupported_element_is_fatal():
    with pytest.raises(EncodeError, match="element 2"):
        encode([1, 2, _noop], shape=List[int], lenient=True)

    objects = encode({"xs": [_noop, 1]}, shape=Dict[str, List[int]], lenient=True)
    assert objects == [{}]


def test_dict_absent_value_vs_null_value():
    node = Node()
    value = {"gone": _noop, "null": None, "kept": node}
    objects = encode(value, shape=Dict[str, Ref[Node]], lenient=True)
    assert objects == [{"null": None, "kept": 1}, {}]


def test_dict_with_unsupported_keys():
    with pytest.raises(EncodeError, match="type not supported"):
        encode({(1, 2): 3}, shape=Dict[Tuple[int, int], int])
    with pytest.raises(EncodeError, match="type not supported"):
        encode({(1, 2): 3}, shape=Dict[Tuple[int, int], int], lenient=True)


# ----------------------------- polymorphism ------------------------------
def test_polymorphic_envelope():
    zoo = Zoo(star=Dog("rex"), anything=5, dog=Dog("fido"), animals=[Dog("a"), None])
    objects = encode(zoo, zoo_types())
    assert objects == [
        {
            "star": {"Dog": {"name": "rex"}},
            "animals": [{"Dog": {"name": "a"}}, None],
            "anything": {"int": 5},
            "dog": {"Dog": {"name": "fido"}},
        }
    ]


def test_polymorphic_by_reference_shares_slot():
    cat = Cat("tom")
    objects = encode(Zoo(star=cat, backup=cat), zoo_types())
    assert objects[0] == {"star": {"cat": 1}, "backup": {"cat": 1}, "animals": []}
    assert objects[1] == {"name": "tom", "lives": 9}


def test_unregistered_type_is_always_fatal():
    for lenient in (False, True):
        with pytest.raises(EncodeError, match="type not registered"):
            encode(Zoo(star=Dog("rex")), TypeRegistry(), lenient=lenient)


def test_poly_slot_checks_interface():
    with pytest.raises(EncodeError, match="cannot encode"):
        encode(Zoo(dog=Cat("tom")), zoo_types())


# ----------------------------- scalars & shapes --------------------------
def test_numpy_scalars_become_native():
    objects = encode([np.int32(3), np.int64(4)], shape=List[int])
    assert objects == [[3, 4]]
    assert all(type(x) is int for x in objects[0])
    assert encode(np.float32(0.5), shape=float) == [0.5]


def test_scalar_mismatch():
    with pytest.raises(EncodeError, match="cannot encode"):
        encode("3", shape=int)
    with pytest.raises(EncodeError, match="cannot encode"):
        encode(True, shape=int)


def test_fixed_length_sequence():
    assert encode((1, 2), shape=Tuple[int, int]) == [[1, 2]]
    with pytest.raises(EncodeError, match="length 3"):
        encode((1, 2, 3), shape=Tuple[int, int])


def test_optional_fields_and_nulls():
    objects = encode([None, 1], shape=List[Optional[int]])
    assert objects == [[None, 1]]


def test_untyped_containers_need_registered_types():
    with pytest.raises(EncodeError, match="type not registered"):
        encode([1, 2])
    types = TypeRegistry()
    types.register("int", int)
    assert encode([1, 2], types) == [[{"int": 1}, {"int": 2}]]
    assert encode({3: 1}, types) == [{3: {"int": 1}}]


def test_callable_in_polymorphic_field_is_fatal_in_both_modes():
    for lenient in (False, True):
        with pytest.raises(EncodeError, match="type not registered"):
            encode(Zoo(anything=_noop), zoo_types(), lenient=lenient)
        with pytest.raises(EncodeError, match="type not registered"):
            encode(_noop, shape=Any, lenient=lenient)


def test_float_overflow():
    with pytest.raises(EncodeError, match="cannot encode"):
        encode(10 ** 400, shape=float)


def test_encoder_shared_between_threads():
    enc = GraphEncoder()

    def ring(n):
        nodes = [Node() for _ in range(n)]
        for i, node in enumerate(nodes):
            node.Next = nodes[(i + 1) % n]
        return nodes[0]

    sizes = [5 + i % 20 for i in range(64)]
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda n: enc.encode(ring(n)), sizes))

    for n, objects in zip(sizes, results):
        assert objects == [{"Next": (i + 1) % n} for i in range(n)]
