"""hetmap type registry — the tag <-> leaf codec table.

A tag is a string naming one runtime type.  The registry maps each tag to
a LeafCodec: a pair of functions converting a value of that type to a
JSON node and back.  Nothing is loaded by name at runtime; every type the
codec may meet must be registered before encode/decode is called.

Lookup by value is by exact type.  A subclass is not covered by its
parent's codec because decoding would then produce the parent type.
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Type

from ._errors import LeafCodecFailure, UnknownType

if TYPE_CHECKING:
    from ._tokens import TokenReader

EncodeFunc = Callable[[Any], Any]
DecodeFunc = Callable[[Any], Any]


def full_class_name(cls: type) -> str:
    return "{}.{}".format(cls.__module__, cls.__qualname__)


@dataclass(frozen=True)
class LeafCodec:
    """Converts values of one runtime type to and from a JSON node."""

    tag: str
    """The tag written to documents for this type."""
    cls: type
    """The runtime type this codec handles."""
    encode: EncodeFunc
    """Value -> JSON node."""
    decode: DecodeFunc
    """JSON node -> value."""


class TypeRegistry:
    """A table of leaf codecs keyed by tag and by runtime type.

    Registration mutates the registry.  Once a registry is shared between
    threads it should only be read; derive a new one with `copy()` instead.
    """

    __slots__ = ("_by_tag", "_by_type")

    def __init__(self) -> None:
        self._by_tag: Dict[str, LeafCodec] = {}
        self._by_type: Dict[type, LeafCodec] = {}

    def register(
        self,
        cls: type,
        encode: EncodeFunc,
        decode: DecodeFunc,
        tag: Optional[str] = None,
    ) -> LeafCodec:
        """Register a codec for `cls`, replacing any previous one for the class or tag."""
        codec = LeafCodec(tag=tag or full_class_name(cls), cls=cls, encode=encode, decode=decode)
        old = self._by_type.pop(cls, None)
        if old is not None:
            self._by_tag.pop(old.tag, None)
        old = self._by_tag.pop(codec.tag, None)
        if old is not None:
            self._by_type.pop(old.cls, None)
        self._by_tag[codec.tag] = codec
        self._by_type[cls] = codec
        return codec

    def register_dataclass(self, cls: type, tag: Optional[str] = None) -> LeafCodec:
        """Register a dataclass as an object-shaped leaf.

        Field values must themselves be JSON data; nested dataclasses are
        not converted.  Fields declared with init=False are not written.
        """
        if not dataclasses.is_dataclass(cls):
            raise TypeError("{} is not a dataclass".format(full_class_name(cls)))
        fields = [f for f in dataclasses.fields(cls) if f.init]
        names = [f.name for f in fields]
        required = {
            f.name for f in fields
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING
        }
        codec_tag = tag or full_class_name(cls)

        def encode(value: Any) -> Dict[str, Any]:
            return {name: getattr(value, name) for name in names}

        def decode(node: Any) -> Any:
            if not isinstance(node, dict):
                raise LeafCodecFailure(
                    "expected an object for {}, got {}".format(codec_tag, type(node).__name__),
                    codec_tag,
                )
            unknown = set(node) - set(names)
            if unknown:
                raise LeafCodecFailure(
                    "unknown fields for {}: {}".format(codec_tag, ", ".join(sorted(unknown))),
                    codec_tag,
                )
            missing = required - set(node)
            if missing:
                raise LeafCodecFailure(
                    "missing fields for {}: {}".format(codec_tag, ", ".join(sorted(missing))),
                    codec_tag,
                )
            return cls(**node)

        return self.register(cls, encode, decode, tag=codec_tag)

    def has_tag(self, tag: str) -> bool:
        return tag in self._by_tag

    def resolve(self, tag: str) -> LeafCodec:
        """Return the codec registered under `tag`."""
        codec = self._by_tag.get(tag)
        if codec is not None:
            return codec
        raise UnknownType("no leaf codec registered for tag {!r}".format(tag), tag=tag)

    def codec_for(self, value: Any) -> LeafCodec:
        cls = type(value)
        codec = self._by_type.get(cls)
        if codec is not None:
            return codec
        raise UnknownType(
            "no leaf codec registered for type {}".format(full_class_name(cls)), cls=cls
        )

    def tag_of(self, value: Any) -> str:
        """Return the tag of the runtime type of `value`."""
        return self.codec_for(value).tag

    def dump_leaf(self, value: Any) -> Any:
        return self.codec_for(value).encode(value)

    def materialize(self, tag: str, reader: TokenReader) -> Any:
        """Decode the value node at the reader's current token as a `tag` value."""
        codec = self.resolve(tag)
        return codec.decode(reader.read_value())

    def copy(self) -> TypeRegistry:
        new = TypeRegistry()
        new._by_tag = dict(self._by_tag)
        new._by_type = dict(self._by_type)
        return new

    def __contains__(self, cls: object) -> bool:
        return cls in self._by_type

    def __len__(self) -> int:
        return len(self._by_tag)

    def __repr__(self) -> str:
        return "TypeRegistry({})".format(", ".join(sorted(self._by_tag)))


# ── Built-in scalar codecs ───────────────────────────────────
# Each decoder checks the exact node type; True is an int and 1.0 == 1,
# so isinstance and equality checks would let shapes cross over.

def _scalar_decoder(cls: Type[Any], accepted: tuple) -> DecodeFunc:
    tag = full_class_name(cls)

    def decode(node: Any) -> Any:
        # bool is a subclass of int; only the bool codec may accept it.
        if type(node) not in accepted:
            raise LeafCodecFailure(
                "expected {} node for {}, got {}".format(
                    "/".join(t.__name__ for t in accepted), tag, type(node).__name__
                ),
                tag,
            )
        try:
            return cls(node)
        except OverflowError as e:
            raise LeafCodecFailure("integer out of range for {}".format(tag), tag) from e

    return decode


def _encode_float(value: float) -> float:
    # JSON has no NaN or Infinity; fail before the encoder writes anything.
    if not math.isfinite(value):
        raise LeafCodecFailure(
            "non-finite float {!r} for builtins.float".format(value), "builtins.float"
        )
    return value


def default_registry() -> TypeRegistry:
    """Return a new registry preloaded with str, int, float and bool."""
    registry = TypeRegistry()
    registry.register(str, str, _scalar_decoder(str, (str,)))
    registry.register(int, int, _scalar_decoder(int, (int,)))
    # A float such as 2.0 is written as 2.0 and parses back as float, but
    # accept integral nodes too for documents written by other producers.
    registry.register(float, _encode_float, _scalar_decoder(float, (float, int)))
    registry.register(bool, bool, _scalar_decoder(bool, (bool,)))
    return registry
