"""Name ↔ concrete type table used for polymorphic (interface-held) values.

Registration happens once, during setup; afterwards the registry is only
read.  There is no locking: finish all ``register*`` calls before encoding
or decoding from several threads.

    >>> types = TypeRegistry()
    >>> types.register_many(type_name(Circle), type_param("square", Ref[Square]))
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple

from .models import MarshalError, Shape, describe, type_repr

log = logging.getLogger(__name__)


class RegistrationError(MarshalError):
    """Raised when a type cannot be registered.

    A batch registration raises a single instance whose ``errors`` lists every
    individual failure.
    """

    def __init__(self, message: str, errors: Optional[List["RegistrationError"]] = None):
        super().__init__(message)
        self.errors = errors or [self]


class TypeParam(NamedTuple):
    name: str
    hint: Any


def type_param(name: str, hint: Any) -> TypeParam:
    return TypeParam(name, hint)


def type_name(hint: Any) -> TypeParam:
    """Pair a type with its own declared name (empty when it has none)."""
    return TypeParam(default_name(hint), hint)


def default_name(hint: Any) -> str:
    # Ref[...] and generic aliases carry no declared name
    if isinstance(hint, type) and not hasattr(hint, "__origin__"):
        return hint.__name__
    return ""


class TypeRegistry:
    def __init__(self):
        self._type_names: Dict[type, str] = {}
        self._name_shapes: Dict[str, Shape] = {}
        self._type_shapes: Dict[type, Shape] = {}

    # ------------------------------------------------------------------
    def register(self, name: str, hint: Any) -> None:
        shape = describe(hint)
        if not name:
            raise RegistrationError(f"no name for type: {type_repr(hint)}")
        if not shape.supported:
            raise RegistrationError(f"type not supported: {type_repr(hint)}")
        cls = shape.concrete
        if cls is None:
            raise RegistrationError(f"type is not concrete: {type_repr(hint)}")
        if cls in self._type_names:
            raise RegistrationError(f"type already registered: {type_repr(hint)}")
        if name in self._name_shapes:
            raise RegistrationError(f"type name already registered: {name!r}")

        self._type_names[cls] = name
        self._type_shapes[cls] = shape
        self._name_shapes[name] = shape
        log.debug("registered %s as %r", type_repr(hint), name)

    def register_default(self, hint: Any) -> None:
        self.register(default_name(hint), hint)

    def register_many(self, *params: Any) -> "TypeRegistry":
        """Register every entry, then raise one error joining all failures.

        Entries are :class:`TypeParam` pairs or bare types (registered under
        their default name).
        """
        errors: List[RegistrationError] = []
        for p in params:
            name, hint = p if isinstance(p, TypeParam) else type_name(p)
            try:
                self.register(name, hint)
            except RegistrationError as e:
                errors.append(e)
        if errors:
            raise RegistrationError("\n".join(str(e) for e in errors), errors)
        return self

    # ------------------------------------------------------------------
    def lookup(self, cls: type) -> Optional[Tuple[str, Shape]]:
        """Registered ``(name, shape)`` of a runtime class, or ``None``."""
        name = self._type_names.get(cls)
        if name is None:
            return None
        return name, self._type_shapes[cls]

    def resolve(self, name: str) -> Optional[Shape]:
        return self._name_shapes.get(name)

    def names(self) -> Iterable[str]:
        return self._name_shapes.keys()

    def __contains__(self, item) -> bool:
        if isinstance(item, str):
            return item in self._name_shapes
        return item in self._type_names

    def __len__(self):
        return len(self._name_shapes)

    def __repr__(self):
        return f"TypeRegistry({sorted(self._name_shapes)})"
