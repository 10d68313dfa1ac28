"""hetmap — JSON codec for mappings with heterogeneous key and value types.

A mapping is written as a header naming the most common key type and the
most common value type, followed by one element per entry.  Only entries
whose key or value deviates from those main types carry their own type
tag, so a homogeneous mapping pays for its types once.

Quick start:
    >>> from hetmap import dumps, loads
    >>> doc = dumps({"x": 1, "y": 2, 3: "z"})
    >>> doc
    '{"a":"builtins.str","b":"builtins.int","c":[{"k":"x","v":1},{"k":"y","v":2},{"a":"builtins.int","b":"builtins.str","k":3,"v":"z"}]}'
    >>> loads(doc) == {"x": 1, "y": 2, 3: "z"}
    True

Types other than str/int/float/bool must be registered first:
    >>> from dataclasses import dataclass
    >>> from hetmap import default_registry
    >>> @dataclass(frozen=True)
    ... class Point:
    ...     x: int
    ...     y: int
    >>> registry = default_registry()
    >>> _ = registry.register_dataclass(Point, tag="point")
    >>> loads(dumps({Point(1, 2): "a"}, registry=registry), registry=registry)
    {Point(x=1, y=2): 'a'}
"""

from __future__ import annotations

import io
from typing import IO, Any, Mapping, MutableMapping, Optional, Union

from ._constants import (
    ELEMENTS_FIELD,
    KEY_FIELD,
    KEY_TYPE_FIELD,
    VALUE_FIELD,
    VALUE_TYPE_FIELD,
    __format_version__,
)
from ._decoder import MappingFactory, decode
from ._encoder import encode
from ._errors import (
    ERR_LEAF_CODEC,
    ERR_MALFORMED,
    ERR_UNKNOWN_TYPE,
    ERR_WRITER,
    HetMapError,
    LeafCodecFailure,
    MalformedDocument,
    UnknownType,
)
from ._inference import main_type, type_histogram
from ._registry import LeafCodec, TypeRegistry, default_registry, full_class_name
from ._tokens import Token, TokenReader, TokenWriter

__version__ = "1.0.0"

__all__ = [
    # Public API functions
    "dumps",
    "dump",
    "loads",
    "load",
    "encode",
    "decode",
    "main_type",
    "type_histogram",
    # Type registry
    "TypeRegistry",
    "LeafCodec",
    "default_registry",
    "full_class_name",
    # Token stream
    "Token",
    "TokenReader",
    "TokenWriter",
    # Exceptions
    "HetMapError",
    "MalformedDocument",
    "UnknownType",
    "LeafCodecFailure",
    # Error codes
    "ERR_MALFORMED",
    "ERR_UNKNOWN_TYPE",
    "ERR_LEAF_CODEC",
    "ERR_WRITER",
    # Document field names
    "KEY_TYPE_FIELD",
    "VALUE_TYPE_FIELD",
    "ELEMENTS_FIELD",
    "KEY_FIELD",
    "VALUE_FIELD",
]


# ── Text API ──────────────────────────────────────────────────

def dumps(
    mapping: Mapping[Any, Any],
    registry: Optional[TypeRegistry] = None,
    *,
    stable: bool = False,
) -> str:
    """Encode `mapping` as a tagged document string."""
    buf = io.StringIO()
    encode(mapping, TokenWriter(buf), registry, stable=stable)
    return buf.getvalue()


def loads(
    text: Union[str, bytes],
    registry: Optional[TypeRegistry] = None,
    factory: MappingFactory = dict,
) -> MutableMapping[Any, Any]:
    """Decode a tagged document string into a new `factory()` mapping."""
    return decode(TokenReader.from_text(text), registry, factory)


# ── File API ──────────────────────────────────────────────────

def dump(
    mapping: Mapping[Any, Any],
    fp: IO[str],
    registry: Optional[TypeRegistry] = None,
    *,
    stable: bool = False,
) -> None:
    """Encode `mapping` to the text file `fp`."""
    encode(mapping, TokenWriter(fp), registry, stable=stable)


def load(
    fp: IO[Any],
    registry: Optional[TypeRegistry] = None,
    factory: MappingFactory = dict,
) -> MutableMapping[Any, Any]:
    """Decode a tagged document from the file `fp`."""
    return decode(TokenReader.from_file(fp), registry, factory)
