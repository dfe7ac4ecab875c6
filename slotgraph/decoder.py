"""Flat object list → graph.

Decoding is driven by the declared shape of the destination.  Slots are
materialized lazily, the first time a reference points at them, and the new
instance is memoized *before* its contents are decoded so that cyclic and
shared references resolve to that one instance.

* Any structural mismatch between a slot and the destination shape raises
  :class:`DecodeError`; nothing is decoded best-effort.
* Struct fields missing from the source keep their dataclass defaults, which
  lets older object lists decode into newer types.
"""
from __future__ import annotations

import dataclasses
import logging
import math
import typing
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .models import (
    Kind,
    MarshalError,
    Shape,
    describe,
    in_family,
    strip_none,
    type_repr,
    zero_is_null,
)
from .registry import TypeRegistry

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
class DecodeError(MarshalError):
    """Raised when an object list cannot be decoded."""


class _Sentinel:
    def __init__(self, name: str):
        self.name = name

    def __repr__(self):
        return self.name


_UNSET = _Sentinel("<unset>")
_IN_PROGRESS = _Sentinel("<in progress>")

def _blank(shape: Shape, _building: Tuple[type, ...] = ()) -> Any:
    """Allocate an instance without ``__init__``; fields get defaults or zero values."""
    cls = shape.py_type
    building = _building + (cls,)
    shapes = dict(shape.fields)
    inst = cls.__new__(cls)
    for f in dataclasses.fields(cls):
        if f.default is not dataclasses.MISSING:
            value = f.default
        elif f.default_factory is not dataclasses.MISSING:
            value = f.default_factory()
        elif f.name in shapes:
            value = _zero(shapes[f.name], building)
        else:
            value = None
        object.__setattr__(inst, f.name, value)
    return inst


def _zero(shape: Shape, _building: Tuple[type, ...] = ()) -> Any:
    if zero_is_null(shape):
        return None
    if shape.kind is Kind.SCALAR:
        return shape.py_type()
    if shape.kind is Kind.AGGREGATE:
        if shape.py_type in _building:
            return None
        return _blank(shape, _building)
    if shape.length:
        return shape.py_type(_zero(shape.elem, _building) for _ in range(shape.length))
    return shape.py_type()


class GraphDecoder:
    def __init__(self, registry: Optional[TypeRegistry] = None):
        self.registry = registry if registry is not None else TypeRegistry()

    def decode(self, objects: Sequence[Any], target: Any) -> Any:
        if not isinstance(objects, (list, tuple)):
            raise DecodeError(f"object list expected, got {type_repr(type(objects))}")
        if not objects:
            raise DecodeError("nothing to decode")

        run = _Decoding(self.registry, objects)
        try:
            if dataclasses.is_dataclass(target) and not isinstance(target, type):
                # fill an existing instance in place
                shape = describe(type(target))
                run.memo[0], run.shapes[0] = target, shape
                run.fill(objects[0], shape, target)
                return target

            if not _is_type_hint(target):
                raise DecodeError(
                    f"destination type or instance expected, got {type_repr(type(target))}"
                )
            shape = describe(target)
            if shape.kind is Kind.UNSUPPORTED:
                raise DecodeError(f"target type not supported: {type_repr(shape.hint)}")
            if shape.kind is Kind.REFERENCE:
                return run.decode(0 if objects[0] is not None else None, shape)
            if shape.kind is Kind.AGGREGATE and objects[0] is None:
                return None
            # a bare class stands for a handle to it: slot 0 is its instance
            return run.deref(0, shape)
        finally:
            log.debug(
                "decoded %d slot(s), %d materialized",
                len(objects), sum(m is not _UNSET for m in run.memo),
            )


class _Decoding:
    """State of one decode call."""

    def __init__(self, registry: TypeRegistry, sources: Sequence[Any]):
        self.registry = registry
        self.sources = sources
        self.memo: List[Any] = [_UNSET] * len(sources)
        self.shapes: List[Optional[Shape]] = [None] * len(sources)

    def decode(self, src: Any, shape: Shape) -> Any:
        if src is None:
            return _zero(shape)

        kind = shape.kind
        if kind is Kind.SCALAR:
            if not in_family(src, shape.family):
                raise DecodeError(f"cannot decode {src!r} into {type_repr(shape.hint)}")
            try:
                return shape.py_type(src)
            except (OverflowError, ValueError):
                raise DecodeError(f"cannot decode {src!r} into {type_repr(shape.hint)}") from None

        if kind is Kind.AGGREGATE:
            inst = _blank(shape)
            self.fill(src, shape, inst)
            return inst

        if kind is Kind.SEQUENCE:
            items = self.items(src, shape)
            return items if shape.py_type is list else tuple(items)

        if kind is Kind.ASSOCIATIVE:
            return self.entries(src, shape, {})

        if kind is Kind.POLYMORPHIC:
            return self.polymorphic(src, shape)

        if kind is Kind.REFERENCE:
            index = self.index(src)
            if index is None:
                return None
            return self.deref(index, shape.elem)

        raise DecodeError(f"target type not supported: {type_repr(shape.hint)}")

    def fill(self, src: Any, shape: Shape, inst: Any) -> None:
        if not isinstance(src, dict) or any(not isinstance(k, str) for k in src):
            raise DecodeError(f"string-keyed map expected for {type_repr(shape.hint)}, got {src!r}")
        for name, field_shape in shape.fields:
            if name in src:
                object.__setattr__(inst, name, self.decode(src[name], field_shape))

    def items(self, src: Any, shape: Shape) -> List[Any]:
        if not isinstance(src, (list, tuple)):
            raise DecodeError(f"sequence expected for {type_repr(shape.hint)}, got {src!r}")
        if shape.length is not None and len(src) != shape.length:
            raise DecodeError(
                f"length {len(src)} does not match {type_repr(shape.hint)}"
            )
        return [self.decode(x, shape.elem) for x in src]

    def entries(self, src: Any, shape: Shape, out: Dict[Any, Any]) -> Dict[Any, Any]:
        if not isinstance(src, dict):
            raise DecodeError(f"map expected for {type_repr(shape.hint)}, got {src!r}")
        for k, v in src.items():
            key = self.key(k, shape)
            # a null entry stands for the value type's default
            out[key] = _zero(shape.elem) if v is None else self.decode(v, shape.elem)
        return out

    def key(self, k: Any, shape: Shape) -> Any:
        family = shape.key.family
        if in_family(k, family):
            try:
                return shape.key.py_type(k)
            except (OverflowError, ValueError):
                raise DecodeError(f"key {k!r} does not match {type_repr(shape.hint)}") from None
        if family == "int" and isinstance(k, str):
            # JSON turns integer keys into strings
            try:
                return shape.key.py_type(int(k, 10))
            except (OverflowError, ValueError):
                pass
        raise DecodeError(f"key {k!r} does not match {type_repr(shape.hint)}")

    def polymorphic(self, src: Any, shape: Shape) -> Any:
        if not isinstance(src, dict) or len(src) != 1:
            raise DecodeError(f"single-entry map expected for {type_repr(shape.hint)}, got {src!r}")
        (name, payload), = src.items()
        if not isinstance(name, str):
            raise DecodeError(f"type name must be a string, got {name!r}")
        concrete = self.registry.resolve(name)
        if concrete is None:
            raise DecodeError(f"type name not registered: {name!r}")
        value = self.decode(payload, concrete)
        if shape.py_type is not None and value is not None and not isinstance(value, shape.py_type):
            raise DecodeError(f"{name!r} is not a {type_repr(shape.hint)}")
        return value

    def index(self, src: Any) -> Optional[int]:
        if src is None:
            return None
        if isinstance(src, (bool, np.bool_)):
            raise DecodeError(f"invalid reference: {src!r}")
        if isinstance(src, (int, np.integer)):
            index = int(src)
        elif isinstance(src, (float, np.floating)):
            if not math.isfinite(src) or src != int(src):
                raise DecodeError(f"invalid reference: {src!r}")
            index = int(src)
        elif isinstance(src, str):
            if src != src.strip() or src[:1] in ("+", "-"):
                raise DecodeError(f"invalid reference: {src!r}")
            try:
                index = int(src, 0)
            except ValueError:
                raise DecodeError(f"invalid reference: {src!r}") from None
        else:
            raise DecodeError(f"invalid reference: {src!r}")
        if index < 0:
            raise DecodeError(f"invalid reference: {src!r}")
        if index >= len(self.sources):
            raise DecodeError(f"reference out of range: {index} (of {len(self.sources)} slots)")
        return index

    def deref(self, index: int, target: Shape) -> Any:
        memo = self.memo[index]
        if memo is _IN_PROGRESS:
            raise DecodeError(f"slot {index} refers to itself through an immutable value")
        if memo is not _UNSET:
            if not _compatible(memo, self.shapes[index], target):
                raise DecodeError(
                    f"slot {index} already decoded as {type_repr(self.shapes[index].hint)}, "
                    f"not {type_repr(target.hint)}"
                )
            return memo

        src = self.sources[index]
        kind = target.kind
        self.shapes[index] = target
        # cache first, then fill: cycles come back to this instance
        if kind is Kind.AGGREGATE:
            inst = self.memo[index] = _blank(target)
            self.fill(src, target, inst)
        elif kind is Kind.SEQUENCE and target.py_type is list:
            inst = self.memo[index] = []
            if src is not None:
                inst.extend(self.items(src, target))
        elif kind is Kind.ASSOCIATIVE:
            inst = self.memo[index] = {}
            if src is not None:
                self.entries(src, target, inst)
        else:
            self.memo[index] = _IN_PROGRESS
            inst = self.memo[index] = self.decode(src, target)
        return inst


def _compatible(memo: Any, prev: Shape, target: Shape) -> bool:
    """Whether a slot already decoded through *prev* may be reused as *target*."""
    if prev is target:
        return True
    if target.kind is Kind.AGGREGATE:
        return isinstance(memo, target.py_type)
    return prev.kind is target.kind and strip_none(prev.hint) == strip_none(target.hint)


def _is_type_hint(target: Any) -> bool:
    return (
        isinstance(target, (type, Shape))
        or target is Any
        or typing.get_origin(target) is not None
    )


def decode(objects: Sequence[Any], target: Any, registry: Optional[TypeRegistry] = None) -> Any:
    """Decode *objects* into a value of type *target* (or into a dataclass instance)."""
    return GraphDecoder(registry).decode(objects, target)
