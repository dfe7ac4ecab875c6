"""Dataclasses shared by the test modules (module level so hints resolve)."""
from __future__ import annotations

import ctypes
import queue
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from slotgraph import Poly, Ref, TypeRegistry, type_name, type_param


# ----------------------------- linked nodes ----------------------------
@dataclass(eq=False)
class Node:
    Next: Ref[Node] = None


@dataclass(eq=False)
class Pair:
    A: int = 0
    B: Ref[Node] = None


@dataclass(eq=False)
class Tree:
    label: str = ""
    children: List[Ref[Tree]] = field(default_factory=list)
    parent: Ref[Tree] = None


# ----------------------------- polymorphism ----------------------------
class Animal(ABC):
    @abstractmethod
    def sound(self) -> str: ...


@dataclass
class Dog(Animal):
    name: str = ""

    def sound(self):
        return "woof"


@dataclass(eq=False)
class Cat(Animal):
    name: str = ""
    lives: int = 9

    def sound(self):
        return "meow"


@dataclass(eq=False)
class Zoo:
    star: Animal = None
    backup: Animal = None
    animals: List[Animal] = field(default_factory=list)
    anything: Any = None
    dog: Poly[Dog] = None


def zoo_types() -> TypeRegistry:
    types = TypeRegistry()
    types.register_many(type_name(Dog), type_param("cat", Ref[Cat]), type_param("int", int))
    return types


# ----------------------------- lenient mode ----------------------------
@dataclass
class Job:
    name: str = ""
    callback: Optional[Callable[[], None]] = None
    hooks: List[Callable[[], None]] = field(default_factory=list)
    inbox: Optional[queue.Queue] = None
    retries: int = 3


@dataclass
class Version2:
    name: str = "unnamed"
    added_later: List[int] = field(default_factory=lambda: [7])
    _cache: Dict[str, int] = field(default_factory=dict)


# ----------------------------- full graph ------------------------------
class Alt(ABC):
    @abstractmethod
    def alt(self): ...


@dataclass
class Alt1(Alt):
    Alt1: str = ""

    def alt(self):
        pass


@dataclass(eq=False)
class Alt2(Alt):
    Alt2: str = ""

    def alt(self):
        pass


@dataclass
class Empty:
    pass


@dataclass(eq=False)
class SubLevel:
    Blank: Empty = field(default_factory=Empty)
    Parent: Ref[TopLevel] = None


@dataclass(eq=False)
class TopLevel:
    Int: int = 0
    Uint16: np.uint16 = np.uint16(0)
    AltA: Alt = None
    AltB: Alt = None
    StructEmbedded: SubLevel = field(default_factory=SubLevel)
    StructIndirect: Ref[SubLevel] = None
    Self: Ref[TopLevel] = None
    Slice: List[Ref[TopLevel]] = field(default_factory=list)
    Array: Tuple[int, int] = (0, 0)
    MapBool: Dict[str, bool] = field(default_factory=dict)
    MapStructEmbedded: Dict[int, SubLevel] = field(default_factory=dict)
    MapStructIndirect: Dict[np.int64, Ref[SubLevel]] = field(default_factory=dict)
    NilPtr: Ref[SubLevel] = None
    NilMap: Optional[Dict[str, int]] = None
    UnsupportedMap: Dict[Tuple[int, int], int] = field(default_factory=dict)
    UnsupportedFunc: Callable[[], None] = None
    UnsupportedChan: queue.Queue = None
    UnsupportedUnsafe: ctypes.c_void_p = None


def top_types() -> TypeRegistry:
    types = TypeRegistry()
    types.register_many(type_name(Alt1), type_param("alt2ptr", Ref[Alt2]))
    return types


def top_level() -> TopLevel:
    x = TopLevel(
        Int=10,
        Uint16=np.uint16(20),
        AltA=Alt1("ALT-1"),
        AltB=Alt2("ALT-2"),
        StructEmbedded=SubLevel(),
        StructIndirect=SubLevel(),
        Array=(123, 456),
        MapBool={"t": True, "f": False},
        MapStructEmbedded={0: SubLevel()},
        MapStructIndirect={1: SubLevel(), -1: None},
        UnsupportedMap={},
        UnsupportedFunc=lambda: None,
        UnsupportedChan=queue.Queue(),
        UnsupportedUnsafe=ctypes.c_void_p(0),
    )
    x.StructEmbedded.Parent = x
    x.StructIndirect.Parent = x
    x.Self = x
    x.Slice = [x, None]
    return x


# ----------------------------- defaults --------------------------------
@dataclass
class WithDefault:
    x: Optional[int] = 5
    items: Optional[List[int]] = field(default_factory=lambda: [1])
    note: Optional[str] = None


@dataclass(eq=False)
class Required:
    count: int
    name: str
    tags: List[str]
    pair: Tuple[int, int]
    parent: Ref[Required]
    lookup: Dict[str, int]


@dataclass(eq=False)
class Mixed:
    a: Ref[List[int]] = None
    b: Ref[Dict[str, int]] = None
    c: Ref[List[str]] = None
