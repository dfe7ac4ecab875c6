"""Type markers and runtime shape descriptors.

A *shape* is the one-time description of a declared type hint: which value
kind it is (scalar, aggregate, sequence, ...), and for containers the shapes
of their parts.  Encoder and decoder never inspect type hints directly, they
only walk :class:`Shape` objects produced by :func:`describe`.
"""
from __future__ import annotations

import asyncio
import ctypes
import dataclasses
import enum
import functools
import inspect
import queue
import types
import typing
from collections import abc
from typing import Annotated, Any, Dict, List, Optional, Tuple, TypeVar, Union

import numpy as np


class MarshalError(Exception):
    """Base class of every slotgraph error."""


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------
class _Marker:
    def __init__(self, name: str):
        self.name = name

    def __repr__(self):
        return self.name


REFERENCE = _Marker("REFERENCE")
POLYMORPHIC = _Marker("POLYMORPHIC")

T = TypeVar("T")

# Ref[Node] → shared / cyclic indirection, Poly[Base] → interface slot
Ref = Annotated[Optional[T], REFERENCE]
Poly = Annotated[Optional[T], POLYMORPHIC]


class Kind(enum.Enum):
    SCALAR = "scalar"
    AGGREGATE = "aggregate"
    SEQUENCE = "sequence"
    ASSOCIATIVE = "associative"
    REFERENCE = "reference"
    POLYMORPHIC = "polymorphic"
    UNSUPPORTED = "unsupported"


# scalar family → accepted runtime classes
SCALAR_FAMILIES: Dict[str, Tuple[type, ...]] = {
    "bool": (bool, np.bool_),
    "int": (int, np.integer),
    "float": (float, int, np.floating, np.integer),
    "str": (str, np.str_),
}
KEY_FAMILIES = ("int", "str")

UNSUPPORTED_VALUE_TYPES: Tuple[type, ...] = (
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    functools.partial,
    queue.Queue,
    queue.SimpleQueue,
    asyncio.Queue,
    ctypes._Pointer,
    ctypes.c_void_p,
    memoryview,
)


@dataclasses.dataclass(eq=False)
class Shape:
    kind: Kind
    hint: Any
    py_type: Optional[type] = None
    family: Optional[str] = None      # scalars only
    elem: Optional["Shape"] = None    # sequence item / dict value / reference target
    key: Optional["Shape"] = None     # dict key
    length: Optional[int] = None      # fixed-length sequences
    nullable: bool = False
    _fields: Optional[List[Tuple[str, "Shape"]]] = dataclasses.field(
        default=None, init=False, repr=False
    )
    _implicit_null: Optional[frozenset] = dataclasses.field(
        default=None, init=False, repr=False
    )

    @property
    def fields(self) -> List[Tuple[str, "Shape"]]:
        """Visible ``(name, shape)`` pairs of an aggregate, in declaration order.

        Resolved on first use so that self-referential dataclasses can be
        described before their field types are.
        """
        if self._fields is None:
            hints = typing.get_type_hints(self.py_type, include_extras=True)
            self._fields = [
                (f.name, describe(hints.get(f.name, Any)))
                for f in dataclasses.fields(self.py_type)
                if not f.name.startswith("_")
            ]
        return self._fields

    @property
    def implicit_null(self) -> frozenset:
        """Names of visible fields that decode back to ``None`` when left out."""
        if self._implicit_null is None:
            shapes = dict(self.fields)
            names = set()
            for f in dataclasses.fields(self.py_type):
                if f.name not in shapes:
                    continue
                if f.default is not dataclasses.MISSING:
                    if f.default is None:
                        names.add(f.name)
                elif f.default_factory is dataclasses.MISSING and zero_is_null(shapes[f.name]):
                    names.add(f.name)
            self._implicit_null = frozenset(names)
        return self._implicit_null

    @property
    def concrete(self) -> Optional[type]:
        """Runtime class of values of this shape, after stripping references."""
        s = self
        while s.kind is Kind.REFERENCE:
            s = s.elem
        if s.kind in (Kind.POLYMORPHIC, Kind.UNSUPPORTED):
            return None
        return s.py_type

    @property
    def supported(self) -> bool:
        s = self
        while s.kind is Kind.REFERENCE:
            s = s.elem
        return s.kind is not Kind.UNSUPPORTED

    def __repr__(self):
        return f"Shape({self.kind.value}, {type_repr(self.hint)})"


# ---------------------------------------------------------------------------
# describe()
# ---------------------------------------------------------------------------
_CACHE: Dict[Any, Shape] = {}


def describe(hint: Any) -> Shape:
    """Return the cached :class:`Shape` for a type hint."""
    if isinstance(hint, Shape):
        return hint
    try:
        return _CACHE[hint]
    except KeyError:
        pass
    except TypeError:  # unhashable hint
        return _describe(hint)
    shape = _CACHE[hint] = _describe(hint)
    return shape


def _unsupported(hint) -> Shape:
    return Shape(Kind.UNSUPPORTED, hint)


def _describe(hint: Any) -> Shape:
    origin = typing.get_origin(hint)
    args = typing.get_args(hint)

    if origin is Annotated:
        inner, *meta = args
        if any(m is REFERENCE for m in meta):
            return Shape(Kind.REFERENCE, hint, elem=describe(strip_none(inner)), nullable=True)
        if any(m is POLYMORPHIC for m in meta):
            base = strip_none(inner)
            return Shape(Kind.POLYMORPHIC, hint, py_type=_checkable(base), nullable=True)
        return describe(inner)

    if hint is Any or hint is object:
        return Shape(Kind.POLYMORPHIC, hint, nullable=True)

    if _is_union(origin):
        rest = [a for a in args if a is not type(None)]
        nullable = len(rest) != len(args)
        if len(rest) == 1:
            inner = describe(rest[0])
            return dataclasses.replace(inner, hint=hint, nullable=nullable or inner.nullable)
        return Shape(Kind.POLYMORPHIC, hint, nullable=True)

    if isinstance(hint, type) and origin is None:
        family = scalar_family(hint)
        if family is not None:
            return Shape(Kind.SCALAR, hint, py_type=hint, family=family)

    if hint is list or origin is list:
        return Shape(Kind.SEQUENCE, hint, py_type=list, elem=describe(args[0] if args else Any))

    if hint is tuple or origin is tuple:
        if not args or (len(args) == 2 and args[1] is Ellipsis):
            return Shape(Kind.SEQUENCE, hint, py_type=tuple, elem=describe(args[0] if args else Any))
        if args == ((),):  # tuple[()]
            return Shape(Kind.SEQUENCE, hint, py_type=tuple, elem=describe(Any), length=0)
        if any(a != args[0] for a in args):
            return _unsupported(hint)
        return Shape(Kind.SEQUENCE, hint, py_type=tuple, elem=describe(args[0]), length=len(args))

    if hint is dict or origin is dict:
        key = describe(args[0]) if args else describe(str)
        if key.kind is not Kind.SCALAR or key.family not in KEY_FAMILIES:
            return _unsupported(hint)
        return Shape(
            Kind.ASSOCIATIVE, hint, py_type=dict, key=key,
            elem=describe(args[1] if args else Any), nullable=True,
        )

    if origin is abc.Callable or hint is abc.Callable or hint is typing.Callable:
        return _unsupported(hint)

    if isinstance(hint, type) and origin is None:
        if issubclass(hint, UNSUPPORTED_VALUE_TYPES):
            return _unsupported(hint)
        if getattr(hint, "_is_protocol", False) or inspect.isabstract(hint):
            return Shape(Kind.POLYMORPHIC, hint, py_type=_checkable(hint), nullable=True)
        if dataclasses.is_dataclass(hint):
            return Shape(Kind.AGGREGATE, hint, py_type=hint)

    return _unsupported(hint)


def _is_union(origin) -> bool:
    return origin is Union or (hasattr(types, "UnionType") and origin is types.UnionType)


def strip_none(hint):
    if _is_union(typing.get_origin(hint)):
        rest = [a for a in typing.get_args(hint) if a is not type(None)]
        if len(rest) == 1:
            return rest[0]
        return Union[tuple(rest)]
    return hint


def _checkable(base) -> Optional[type]:
    """Class usable with isinstance() for an interface slot, if any."""
    if not isinstance(base, type) or base is object:
        return None
    if getattr(base, "_is_protocol", False) and not getattr(base, "_is_runtime_protocol", False):
        return None
    return base


def zero_is_null(shape: Shape) -> bool:
    """True when the zero value of *shape* is ``None``."""
    return shape.nullable or shape.kind not in (Kind.SCALAR, Kind.AGGREGATE, Kind.SEQUENCE)


def scalar_family(cls: type) -> Optional[str]:
    if issubclass(cls, (bool, np.bool_)):
        return "bool"
    if issubclass(cls, (int, np.integer)):
        return "int"
    if issubclass(cls, (float, np.floating)):
        return "float"
    if issubclass(cls, (str, np.str_)):
        return "str"
    return None


# ---------------------------------------------------------------------------
# value helpers
# ---------------------------------------------------------------------------
def is_unsupported_value(value: Any) -> bool:
    return isinstance(value, UNSUPPORTED_VALUE_TYPES)


def in_family(value: Any, family: str) -> bool:
    if family != "bool" and isinstance(value, (bool, np.bool_)):
        return False
    return isinstance(value, SCALAR_FAMILIES[family])


def shape_of(value: Any) -> Shape:
    """Infer a root shape from a value that came without a declared type."""
    if value is None:
        return describe(Ref[Any])
    cls = type(value)
    if dataclasses.is_dataclass(cls):
        return describe(Ref[cls])
    if isinstance(value, list):
        return describe(List[Any])
    if isinstance(value, tuple):
        return describe(Tuple[Any, ...])
    if isinstance(value, dict):
        keys = list(value)
        if keys and all(in_family(k, "int") for k in keys):
            return describe(Dict[int, Any])
        return describe(Dict[str, Any])
    if scalar_family(cls) is not None:
        return describe(cls)
    return _unsupported(cls)


def type_repr(hint: Any) -> str:
    if isinstance(hint, type) and typing.get_origin(hint) is None:
        return hint.__qualname__
    return repr(hint).replace("typing.", "")
