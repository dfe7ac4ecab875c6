"""Command‑line interface: **slotgraph inspect / roundtrip / bench**"""
from __future__ import annotations

import argparse
import importlib
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import MARSHAL_CONFIG
from .decoder import decode
from .encoder import encode
from .json_util import digest, dumps, load_any, loads
from .models import MarshalError, Ref
from .registry import TypeRegistry

# -----------------------------------------------------------------------------
# Helper I/O
# -----------------------------------------------------------------------------

def _load_objects(path: Path) -> List[Any]:
    return load_any(path.read_bytes())


def _import_attr(spec: str) -> Any:
    """``package.module:attr`` → attr"""
    mod_name, sep, attr = spec.partition(":")
    if not sep or not attr:
        sys.exit(f"❌ expected 'module:attr', got '{spec}'")
    obj = importlib.import_module(mod_name)
    for part in attr.split("."):
        obj = getattr(obj, part)
    return obj


def _load_registry(spec: Optional[str]) -> TypeRegistry:
    if not spec:
        return TypeRegistry()
    reg = _import_attr(spec)
    if callable(reg) and not isinstance(reg, TypeRegistry):
        reg = reg()
    if not isinstance(reg, TypeRegistry):
        sys.exit(f"❌ '{spec}' is not a TypeRegistry")
    return reg


def _summary(obj: Any) -> str:
    if obj is None:
        return "null"
    if isinstance(obj, list):
        return f"list[{len(obj)}]"
    if isinstance(obj, dict):
        keys = [str(k) for k in obj]
        more = ", …" if len(keys) > 5 else ""
        return f"map{{{', '.join(keys[:5])}{more}}}"
    return f"{type(obj).__name__} {obj!r}"


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

def cmd_inspect(ns) -> int:
    objects = _load_objects(ns.input)
    print(f"{ns.input}: {len(objects)} slot(s), digest {digest(objects)}")
    for i, obj in enumerate(objects[: ns.limit]):
        print(f"  [{i}] {_summary(obj)}")
    if len(objects) > ns.limit:
        print(f"  … {len(objects) - ns.limit} more")
    return 0


def cmd_roundtrip(ns) -> int:
    objects = _load_objects(ns.input)
    target = _import_attr(ns.type)
    registry = _load_registry(ns.registry)

    try:
        t0 = time.perf_counter()
        value = decode(objects, target, registry)
        dec_ms = (time.perf_counter() - t0) * 1000

        t0 = time.perf_counter()
        shape = None if isinstance(target, type) else target
        again = encode(value, registry, lenient=ns.lenient, shape=shape)
        enc_ms = (time.perf_counter() - t0) * 1000
    except MarshalError as e:
        print(f"❌ {e}")
        return 1

    if loads(dumps(again)) != loads(dumps(objects)):
        print(f"❌ mismatch: {len(objects)} slot(s) in, {len(again)} slot(s) out")
        return 1
    print(f"✓ round trip ok ({len(objects)} slots) | decode {dec_ms:.2f} ms | encode {enc_ms:.2f} ms")
    return 0


@dataclass
class BenchNode:
    value: int = 0
    tags: Dict[str, int] = field(default_factory=dict)
    next: Ref[BenchNode] = None
    shared: Ref[BenchNode] = None


def _ring(n: int) -> BenchNode:
    nodes = [BenchNode(value=i, tags={"even": i % 2}) for i in range(n)]
    for i, node in enumerate(nodes):
        node.next = nodes[(i + 1) % n]
        node.shared = nodes[0]
    return nodes[0]


def cmd_bench(ns) -> int:
    root = _ring(ns.n)

    t0 = time.perf_counter()
    objects = encode(root)
    enc_ms = (time.perf_counter() - t0) * 1000

    t0 = time.perf_counter()
    text = dumps(objects)
    json_ms = (time.perf_counter() - t0) * 1000

    t0 = time.perf_counter()
    back = decode(loads(text), BenchNode)
    dec_ms = (time.perf_counter() - t0) * 1000

    if back.shared is not back or back.next.shared is not back:
        print("❌ decoded ring lost its shared node")
        return 1
    print(
        f"n={ns.n:,} | encode {enc_ms:.2f} ms | json {json_ms:.2f} ms "
        f"({len(text):,} bytes) | decode {dec_ms:.2f} ms"
    )
    return 0


# -----------------------------------------------------------------------------
# Argument parsing
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="slotgraph", description="slotgraph object-list toolkit")
    sub = ap.add_subparsers(dest="cmd", required=True)

    # inspect --------------------------------------------------------
    sp = sub.add_parser("inspect", help="summarize an object list")
    sp.add_argument("input", type=Path)
    sp.add_argument("--limit", type=int, default=20, help="slots to list")
    sp.set_defaults(func=cmd_inspect)

    # roundtrip ------------------------------------------------------
    sp = sub.add_parser("roundtrip", help="decode into a type, re-encode, compare")
    sp.add_argument("input", type=Path)
    sp.add_argument("--type", "-t", required=True, help="module:Type of slot 0")
    sp.add_argument("--registry", "-r", help="module:attr holding a TypeRegistry")
    sp.add_argument("--lenient", action="store_true", default=MARSHAL_CONFIG["lenient"],
                    help="omit unsupported values instead of failing")
    sp.set_defaults(func=cmd_roundtrip)

    # bench ----------------------------------------------------------
    sp = sub.add_parser("bench", help="quick encode/decode benchmark")
    sp.add_argument("--n", type=int, default=200, help="ring size (recursion depth grows with it)")
    sp.set_defaults(func=cmd_bench)

    ns = ap.parse_args(argv)
    return ns.func(ns)


if __name__ == "__main__":
    sys.exit(main())
