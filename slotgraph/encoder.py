"""Graph → flat object list.

The encoder walks the value graph depth-first in pre-order.  Every object
reached through a ``Ref[...]`` gets a slot of its own, reserved *before* its
contents are visited; reaching the same object again (including through a
cycle) yields the reserved slot index.  Everything else is inlined into the
slot that contains it.

Unsupported leaves either abort (strict) or are reported as ``_ABSENT`` to the
caller (lenient), which then leaves them out.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from .config import MARSHAL_CONFIG
from .models import (
    Kind,
    MarshalError,
    Shape,
    describe,
    in_family,
    is_unsupported_value,
    shape_of,
    type_repr,
)
from .registry import TypeRegistry

log = logging.getLogger(__name__)


class EncodeError(MarshalError):
    """Raised when a value graph cannot be encoded."""


class _Absent:
    def __repr__(self):
        return "<absent>"


_ABSENT = _Absent()


class GraphEncoder:
    def __init__(self, registry: Optional[TypeRegistry] = None, lenient: Optional[bool] = None):
        self.registry = registry if registry is not None else TypeRegistry()
        self.lenient = MARSHAL_CONFIG["lenient"] if lenient is None else lenient

    def encode(self, root: Any, shape: Any = None) -> List[Any]:
        shape = shape_of(root) if shape is None else describe(shape)
        if shape.kind is Kind.AGGREGATE:
            raise EncodeError(f"aggregate passed as value: {type_repr(shape.hint)}")
        objects = _Encoding(self.registry, self.lenient).run(root, shape)
        log.debug("encoded %s into %d slot(s)", type_repr(shape.hint), len(objects))
        return objects


class _Encoding:
    """State of one encode call."""

    def __init__(self, registry: TypeRegistry, lenient: bool):
        self.registry = registry
        self.lenient = lenient
        self.objects: List[Any] = []
        self.slots: Dict[int, int] = {}   # id(obj) → slot
        self.pinned: List[Any] = []       # keeps ids unique for the whole call

    def run(self, root: Any, shape: Shape) -> List[Any]:
        if shape.kind is Kind.REFERENCE and root is not None:
            x = self._encode(root, shape)
        else:
            self.objects.append(None)  # slot 0 is always the root
            x = self._encode(root, shape)
            if x is not _ABSENT:
                self.objects[0] = x
        if x is _ABSENT:
            raise EncodeError(f"type not supported: {type_repr(shape.hint)}")
        return self.objects

    # ------------------------------------------------------------------
    def _encode(self, value: Any, shape: Shape) -> Any:
        kind = shape.kind
        if kind is Kind.UNSUPPORTED:
            return self._unsupported(value, shape)
        if value is None:
            return None
        if kind is Kind.POLYMORPHIC:
            # the registry decides, in both modes
            return self._polymorphic(value, shape)
        if is_unsupported_value(value):
            return self._unsupported(value, shape)

        if kind is Kind.SCALAR:
            return self._scalar(value, shape)
        if kind is Kind.AGGREGATE:
            return self._aggregate(value, shape)
        if kind is Kind.SEQUENCE:
            return self._sequence(value, shape)
        if kind is Kind.ASSOCIATIVE:
            return self._associative(value, shape)
        return self._reference(value, shape)

    def _unsupported(self, value: Any, shape: Shape) -> _Absent:
        what = type_repr(shape.hint) if shape.kind is Kind.UNSUPPORTED else type_repr(type(value))
        if not self.lenient:
            raise EncodeError(f"type not supported: {what}")
        log.debug("omitting unsupported value of type %s", what)
        return _ABSENT

    def _scalar(self, value: Any, shape: Shape) -> Any:
        if not in_family(value, shape.family):
            raise EncodeError(f"cannot encode {type_repr(type(value))} as {type_repr(shape.hint)}")
        if isinstance(value, np.generic):
            value = value.item()
        if shape.family == "float":
            try:
                return float(value)
            except OverflowError:
                raise EncodeError(f"cannot encode {value!r} as {type_repr(shape.hint)}") from None
        return value

    def _aggregate(self, value: Any, shape: Shape) -> Dict[str, Any]:
        if not isinstance(value, shape.py_type):
            raise EncodeError(f"cannot encode {type_repr(type(value))} as {type_repr(shape.hint)}")
        implicit = shape.implicit_null
        out: Dict[str, Any] = {}
        for name, field_shape in shape.fields:
            x = self._encode(getattr(value, name), field_shape)
            if x is _ABSENT:
                continue
            # null is left out only where the decoder restores null anyway
            if x is None and name in implicit:
                continue
            out[name] = x
        return out

    def _sequence(self, value: Any, shape: Shape) -> Any:
        if not isinstance(value, (list, tuple, np.ndarray)):
            raise EncodeError(f"cannot encode {type_repr(type(value))} as {type_repr(shape.hint)}")
        if shape.length is not None and len(value) != shape.length:
            raise EncodeError(
                f"length {len(value)} does not match {type_repr(shape.hint)}"
            )
        out: List[Any] = []
        for i, item in enumerate(value):
            x = self._encode(item, shape.elem)
            if x is _ABSENT:
                if i > 0:
                    # a sequence cannot be partially represented
                    raise EncodeError(
                        f"element {i} of {type_repr(shape.hint)} cannot be encoded"
                    )
                return _ABSENT
            out.append(x)
        return out

    def _associative(self, value: Any, shape: Shape) -> Any:
        if not isinstance(value, dict):
            raise EncodeError(f"cannot encode {type_repr(type(value))} as {type_repr(shape.hint)}")
        out: Dict[Any, Any] = {}
        for k, v in value.items():
            if not in_family(k, shape.key.family):
                raise EncodeError(f"key {k!r} does not match {type_repr(shape.hint)}")
            if isinstance(k, np.generic):
                k = k.item()
            x = self._encode(v, shape.elem)
            if x is _ABSENT:
                continue  # key and value both dropped
            out[k] = x    # None stays as an explicit null
        return out

    def _polymorphic(self, value: Any, shape: Shape) -> Dict[str, Any]:
        if shape.py_type is not None and not isinstance(value, shape.py_type):
            raise EncodeError(f"cannot encode {type_repr(type(value))} as {type_repr(shape.hint)}")
        found = self.registry.lookup(type(value))
        if found is None:
            # fatal in both modes
            raise EncodeError(f"type not registered: {type_repr(type(value))}")
        name, concrete = found
        x = self._encode(value, concrete)
        if x is _ABSENT:
            raise EncodeError(f"registered type could not be encoded: {type_repr(concrete.hint)}")
        return {name: x}

    def _reference(self, value: Any, shape: Shape) -> Any:
        handle = id(value)
        index = self.slots.get(handle)
        if index is not None:
            return index

        index = len(self.objects)
        self.slots[handle] = index
        self.pinned.append(value)
        self.objects.append(None)  # 자리 예약

        x = self._encode(value, shape.elem)
        if x is _ABSENT:
            del self.objects[index:]
            self.slots = {h: i for h, i in self.slots.items() if i < index}
            return _ABSENT
        self.objects[index] = x
        return index


def encode(root: Any, registry: Optional[TypeRegistry] = None, lenient: Optional[bool] = None,
           shape: Any = None) -> List[Any]:
    """Encode *root* into a flat object list (slot 0 is the root)."""
    return GraphEncoder(registry, lenient).encode(root, shape)
