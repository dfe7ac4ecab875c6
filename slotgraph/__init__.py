"""slotgraph - flatten shared, cyclic, polymorphic object graphs into plain lists."""

__version__ = "0.1.0"
__author__ = "YC Math"

from .models import (
    Kind,
    MarshalError,
    Poly,
    Ref,
    Shape,
    describe,
)
from .registry import (
    RegistrationError,
    TypeParam,
    TypeRegistry,
    type_name,
    type_param,
)
from .encoder import GraphEncoder, EncodeError, encode
from .decoder import GraphDecoder, DecodeError, decode
from .json_util import dumps, loads, pack, unpack

__all__ = [
    "Kind",
    "MarshalError",
    "Poly",
    "Ref",
    "Shape",
    "describe",
    "RegistrationError",
    "TypeParam",
    "TypeRegistry",
    "type_name",
    "type_param",
    "GraphEncoder",
    "EncodeError",
    "encode",
    "GraphDecoder",
    "DecodeError",
    "decode",
    "dumps",
    "loads",
    "pack",
    "unpack",
]
