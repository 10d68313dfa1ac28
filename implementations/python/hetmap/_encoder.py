"""hetmap encoder — mapping → tagged document.

    {"a": <main key tag>, "b": <main value tag>, "c": [
        {"k": <key leaf>, "v": <value leaf>},
        {"a": <key tag>, "k": <key leaf>, "v": <value leaf>},
        ...
    ]}

An element carries "a" (resp. "b") only when its key (resp. value) is
non-null and of a type other than the main one.  Overrides are written
before "k" and "v" because the decoder applies an override to the leaf
that follows it; a decoder never looks back.

The empty mapping is written as {} with no header and no element array.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Tuple

from ._constants import ELEMENTS_FIELD, KEY_FIELD, KEY_TYPE_FIELD, VALUE_FIELD, VALUE_TYPE_FIELD
from ._inference import main_type
from ._registry import TypeRegistry, default_registry
from ._tokens import TokenWriter

logger = logging.getLogger(__name__)


def encode(
    mapping: Mapping[Any, Any],
    writer: TokenWriter,
    registry: Optional[TypeRegistry] = None,
    *,
    stable: bool = False,
) -> None:
    """Write `mapping` to `writer` as one tagged document.

    `stable=True` breaks main-type ties by smallest tag instead of by
    first occurrence.  Raises UnknownType for a key or value whose type is
    not registered.  Every type lookup and every leaf codec call happens
    before the first write, so those failures leave the writer untouched.
    A leaf node the writer cannot serialize (ERR_WRITER) is only detected
    while writing and leaves partial output behind.
    """
    if registry is None:
        registry = default_registry()

    if len(mapping) == 0:
        writer.start_object()
        writer.end_object()
        return

    # Snapshot once: inference and output must see the same order.
    entries = list(mapping.items())
    main_key = main_type((k for k, _ in entries), registry, stable=stable)
    main_value = main_type((v for _, v in entries), registry, stable=stable)
    elements = [
        _prepare_element(registry, key, main_key, value, main_value)
        for key, value in entries
    ]

    writer.start_object()
    # A side with only null entries has no main type; omit its field.
    if main_key is not None:
        writer.field_name(KEY_TYPE_FIELD)
        writer.write_string(main_key)
    if main_value is not None:
        writer.field_name(VALUE_TYPE_FIELD)
        writer.write_string(main_value)

    writer.field_name(ELEMENTS_FIELD)
    writer.start_array()
    overrides = 0
    for element in elements:
        overrides += _write_element(writer, *element)
    writer.end_array()
    writer.end_object()

    logger.debug(
        "encoded %d entries (main key type %s, main value type %s, %d overrides)",
        len(entries), main_key, main_value, overrides,
    )


_Element = Tuple[Optional[str], Any, Optional[str], Any]


def _prepare_element(
    registry: TypeRegistry,
    key: Any,
    main_key: Optional[str],
    value: Any,
    main_value: Optional[str],
) -> _Element:
    """Return (key override, key node, value override, value node) for one entry.

    An override is None when the leaf is null or of the main type.
    """
    key_tag: Optional[str] = None
    key_node: Any = None
    if key is not None:
        codec = registry.codec_for(key)
        key_node = codec.encode(key)
        if codec.tag != main_key:
            key_tag = codec.tag
    value_tag: Optional[str] = None
    value_node: Any = None
    if value is not None:
        codec = registry.codec_for(value)
        value_node = codec.encode(value)
        if codec.tag != main_value:
            value_tag = codec.tag
    return key_tag, key_node, value_tag, value_node


def _write_element(
    writer: TokenWriter,
    key_tag: Optional[str],
    key_node: Any,
    value_tag: Optional[str],
    value_node: Any,
) -> int:
    """Write one element object; return how many override fields it carries."""
    overrides = 0
    writer.start_object()
    if key_tag is not None:
        writer.field_name(KEY_TYPE_FIELD)
        writer.write_string(key_tag)
        overrides += 1
    if value_tag is not None:
        writer.field_name(VALUE_TYPE_FIELD)
        writer.write_string(value_tag)
        overrides += 1
    writer.field_name(KEY_FIELD)
    _write_leaf(writer, key_node)
    writer.field_name(VALUE_FIELD)
    _write_leaf(writer, value_node)
    writer.end_object()
    return overrides


def _write_leaf(writer: TokenWriter, node: Any) -> None:
    if node is None:
        writer.write_null()
    else:
        writer.write_node(node)
