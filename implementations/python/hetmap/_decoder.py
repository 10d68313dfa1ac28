"""hetmap decoder — tagged document → mapping.

Two finite-state automata driven by one forward pass over the tokens.

Document automaton (the initial "{" has already been consumed):

    0  done
    1  inside the header object
    2  saw "a", next: main key tag (string)
    3  saw "b", next: main value tag (string)
    4  saw "c", next: "["
    5  saw an unrecognised field, next value is read and ignored
    6  inside the element array: "{" runs the element automaton, "]" goes to 1

Element automaton, one run per element object:

    1  inside the element object: "}" inserts (key, value)
    2  saw "a", next: key type override (string)
    3  saw "b", next: value type override (string)
    4  saw "k", next: key leaf or null
    5  saw "v", next: value leaf or null
    6  saw an unrecognised field, next value is read and ignored

An override only affects leaves read after it, so the encoder writes
"a"/"b" ahead of "k"/"v".  A reordered element decodes its leaf with the
main type, which normally fails in the leaf codec.

Every other token/state combination is a MalformedDocument naming the
token and the state.  Unrecognised fields are the only input skipped.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, MutableMapping, Optional, Tuple

from ._constants import (
    DOC_DONE,
    DOC_ELEMENTS,
    DOC_HEADER,
    DOC_IN_ARRAY,
    DOC_KEY_TYPE,
    DOC_UNKNOWN_FIELD,
    DOC_VALUE_TYPE,
    ELEM_FIELDS,
    ELEM_KEY,
    ELEM_KEY_TYPE,
    ELEM_UNKNOWN_FIELD,
    ELEM_VALUE,
    ELEM_VALUE_TYPE,
    ELEMENTS_FIELD,
    END_ARRAY,
    END_OBJECT,
    FIELD_NAME,
    KEY_FIELD,
    KEY_TYPE_FIELD,
    START_ARRAY,
    START_OBJECT,
    VALUE_FIELD,
    VALUE_NULL,
    VALUE_START_KINDS,
    VALUE_STRING,
    VALUE_TYPE_FIELD,
)
from ._errors import MalformedDocument
from ._registry import TypeRegistry, default_registry
from ._tokens import Token, TokenReader

logger = logging.getLogger(__name__)

MappingFactory = Callable[[], MutableMapping[Any, Any]]

_DOC_FIELD_STATES = {
    KEY_TYPE_FIELD: DOC_KEY_TYPE,
    VALUE_TYPE_FIELD: DOC_VALUE_TYPE,
    ELEMENTS_FIELD: DOC_ELEMENTS,
}

_ELEM_FIELD_STATES = {
    KEY_TYPE_FIELD: ELEM_KEY_TYPE,
    VALUE_TYPE_FIELD: ELEM_VALUE_TYPE,
    KEY_FIELD: ELEM_KEY,
    VALUE_FIELD: ELEM_VALUE,
}


def _next(reader: TokenReader, state: int) -> Token:
    tok = reader.next_token()
    if tok is None:
        raise MalformedDocument("premature end of document", None, state)
    return tok


def _unexpected(tok: Token, state: int) -> MalformedDocument:
    if tok.kind == FIELD_NAME:
        return MalformedDocument(
            "field {!r} in an unexpected position".format(tok.value), tok, state
        )
    return MalformedDocument("unexpected token {}".format(tok), tok, state)


# ── Document automaton ────────────────────────────────────────

def decode(
    reader: TokenReader,
    registry: Optional[TypeRegistry] = None,
    factory: MappingFactory = dict,
) -> MutableMapping[Any, Any]:
    """Read one tagged document from `reader` into a new `factory()` mapping.

    The reader must be positioned before the document's opening "{".
    Raises MalformedDocument for a token sequence outside the grammar and
    UnknownType for a tag with no registered codec.  Exceptions from leaf
    codecs propagate unchanged.  No partial result is returned.
    """
    if registry is None:
        registry = default_registry()

    first = reader.next_token()
    if first is None or first.kind != START_OBJECT:
        raise MalformedDocument(
            "document must start with an object, got {}".format(first or "end of document"),
            first,
        )

    result = factory()
    main_key: Optional[str] = None
    main_value: Optional[str] = None
    entries = 0
    state = DOC_HEADER

    while state != DOC_DONE:
        tok = _next(reader, state)
        kind = tok.kind

        if state == DOC_HEADER:
            if kind == FIELD_NAME:
                state = _DOC_FIELD_STATES.get(tok.value, DOC_UNKNOWN_FIELD)
            elif kind == END_OBJECT:
                state = DOC_DONE
            else:
                raise _unexpected(tok, state)

        elif state in (DOC_KEY_TYPE, DOC_VALUE_TYPE):
            if kind != VALUE_STRING:
                raise _unexpected(tok, state)
            # Resolve now so an unknown tag fails before any element is read.
            registry.resolve(tok.value)
            if state == DOC_KEY_TYPE:
                main_key = tok.value
            else:
                main_value = tok.value
            state = DOC_HEADER

        elif state == DOC_ELEMENTS:
            if kind != START_ARRAY:
                raise _unexpected(tok, state)
            state = DOC_IN_ARRAY

        elif state == DOC_UNKNOWN_FIELD:
            if kind not in VALUE_START_KINDS:
                raise _unexpected(tok, state)
            reader.skip_value()
            state = DOC_HEADER

        elif state == DOC_IN_ARRAY:
            if kind == START_OBJECT:
                key, value = _decode_element(reader, registry, main_key, main_value)
                result[key] = value
                entries += 1
            elif kind == END_ARRAY:
                state = DOC_HEADER
            else:
                raise _unexpected(tok, state)

    logger.debug(
        "decoded %d entries (main key type %s, main value type %s)",
        entries, main_key, main_value,
    )
    return result


# ── Element automaton ─────────────────────────────────────────

def _decode_element(
    reader: TokenReader,
    registry: TypeRegistry,
    key_tag: Optional[str],
    value_tag: Optional[str],
) -> Tuple[Any, Any]:
    """Consume one element object (its "{" already read) through its "}"."""
    key: Any = None
    value: Any = None
    state = ELEM_FIELDS

    while True:
        tok = _next(reader, state)
        kind = tok.kind

        if state == ELEM_FIELDS:
            if kind == FIELD_NAME:
                state = _ELEM_FIELD_STATES.get(tok.value, ELEM_UNKNOWN_FIELD)
                continue
            if kind == END_OBJECT:
                return key, value
            raise _unexpected(tok, state)

        if kind not in VALUE_START_KINDS:
            raise _unexpected(tok, state)

        if state in (ELEM_KEY_TYPE, ELEM_VALUE_TYPE):
            if kind != VALUE_STRING:
                raise _unexpected(tok, state)
            registry.resolve(tok.value)
            if state == ELEM_KEY_TYPE:
                key_tag = tok.value
            else:
                value_tag = tok.value
        elif state == ELEM_KEY:
            key = _read_leaf(reader, registry, key_tag, tok, state, "key")
        elif state == ELEM_VALUE:
            value = _read_leaf(reader, registry, value_tag, tok, state, "value")
        else:
            reader.skip_value()
        state = ELEM_FIELDS


def _read_leaf(
    reader: TokenReader,
    registry: TypeRegistry,
    tag: Optional[str],
    tok: Token,
    state: int,
    side: str,
) -> Any:
    # Null carries no type, so it needs neither a main type nor an override.
    if tok.kind == VALUE_NULL:
        return None
    if tag is None:
        raise MalformedDocument(
            "{} has no type: no main {} type and no override".format(side, side), tok, state
        )
    return registry.materialize(tag, reader)
