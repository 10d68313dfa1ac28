"""hetmap token stream — a pull reader and an event writer over JSON text.

The codec is written against a token-oriented view of JSON: the decoder
pulls one token at a time and drives its automaton, the encoder pushes
start/end/field/value events.  The standard library only parses whole
documents, so the reader parses with json.loads and then replays the
parsed tree as tokens, lazily and strictly forward.

Objects are parsed through object_pairs_hook so that field order and
repeated field names survive parsing.  The decoder's automaton depends on
field order; a plain dict would hide a reordered or duplicated field.
"""

from __future__ import annotations

import json
import math
from typing import IO, Any, Iterator, List, NamedTuple, Optional, Tuple, Union

from ._constants import (
    END_ARRAY,
    END_OBJECT,
    FIELD_NAME,
    SCALAR_KINDS,
    START_ARRAY,
    START_OBJECT,
    VALUE_FALSE,
    VALUE_FLOAT,
    VALUE_INT,
    VALUE_NULL,
    VALUE_STRING,
    VALUE_TRUE,
)
from ._errors import ERR_WRITER, HetMapError, MalformedDocument

DEFAULT_JSON_ENCODER = json.JSONEncoder(separators=(",", ":"), allow_nan=False)
"""Compact encoder used for every node the writer emits."""


class Token(NamedTuple):
    kind: str
    value: Any = None

    def __str__(self) -> str:
        if self.kind in (FIELD_NAME, VALUE_STRING, VALUE_INT, VALUE_FLOAT):
            return "{}({!r})".format(self.kind, self.value)
        return self.kind


_EXHAUSTED = object()


class _Pairs(list):
    """Ordered (name, value) pairs of one parsed JSON object."""


def _reject_constant(name: str) -> Any:
    raise MalformedDocument("JSON constant {} not allowed".format(name))


def _scalar_token(node: Any) -> Token:
    if isinstance(node, str):
        return Token(VALUE_STRING, node)
    # bool before int: isinstance(True, int) is True.
    if node is True:
        return Token(VALUE_TRUE, True)
    if node is False:
        return Token(VALUE_FALSE, False)
    if isinstance(node, int):
        return Token(VALUE_INT, node)
    if isinstance(node, float):
        # 1e999 parses to inf without going through parse_constant.
        if not math.isfinite(node):
            raise MalformedDocument("non-finite number {!r} not allowed".format(node))
        return Token(VALUE_FLOAT, node)
    if node is None:
        return Token(VALUE_NULL, None)
    raise MalformedDocument("unexpected parsed node {}".format(type(node).__name__))


def _iter_tokens(root: Any) -> Iterator[Token]:
    # Explicit stack: json.loads accepts nesting deeper than Python recursion allows.
    # Each frame is (remaining children, True for an object, False for an array).
    stack: List[Tuple[Iterator[Any], Optional[bool]]] = [(iter((root,)), None)]
    while stack:
        children, is_object = stack[-1]
        child = next(children, _EXHAUSTED)
        if child is _EXHAUSTED:
            stack.pop()
            if is_object is not None:
                yield Token(END_OBJECT if is_object else END_ARRAY)
            continue
        if is_object:
            name, child = child
            yield Token(FIELD_NAME, name)
        if isinstance(child, _Pairs):
            yield Token(START_OBJECT)
            stack.append((iter(child), True))
        elif isinstance(child, list):
            yield Token(START_ARRAY)
            stack.append((iter(child), False))
        else:
            yield _scalar_token(child)


# ── Reader ────────────────────────────────────────────────────

class TokenReader:
    """Forward-only token reader.

    `next_token()` advances and returns the new current token, or None once
    the document is exhausted.  `read_value()` consumes the value node that
    starts at the current token and returns it as plain JSON data.
    """

    def __init__(self, root: Any) -> None:
        self._tokens = _iter_tokens(root)
        self.current: Optional[Token] = None

    @classmethod
    def from_text(cls, text: Union[str, bytes]) -> "TokenReader":
        if isinstance(text, (bytes, bytearray)):
            try:
                text = bytes(text).decode("utf-8")
            except UnicodeDecodeError:
                raise MalformedDocument("invalid UTF-8 in document")
        try:
            root = json.loads(text, object_pairs_hook=_Pairs, parse_constant=_reject_constant)
        # ValueError also covers integers past the interpreter's digit limit.
        except (ValueError, RecursionError) as e:
            raise MalformedDocument("JSON parse error: {}".format(e)) from e
        return cls(root)

    @classmethod
    def from_file(cls, fp: IO[Any]) -> "TokenReader":
        return cls.from_text(fp.read())

    def next_token(self) -> Optional[Token]:
        self.current = next(self._tokens, None)
        return self.current

    def _next_required(self) -> Token:
        tok = self.next_token()
        if tok is None:
            raise MalformedDocument("premature end of document")
        return tok

    def read_value(self) -> Any:
        """Consume the value starting at the current token and return it.

        Objects come back as dicts (a repeated field keeps its last value),
        arrays as lists, scalars as themselves.
        """
        tok = self.current
        if tok is None:
            raise MalformedDocument("expected a value, reached end of document")
        return self._build(tok)

    def skip_value(self) -> None:
        self.read_value()

    def _build(self, tok: Token) -> Any:
        if tok.kind in SCALAR_KINDS:
            return tok.value
        if tok.kind not in (START_OBJECT, START_ARRAY):
            raise MalformedDocument("token {} does not start a value".format(tok), tok)

        # Each frame is [container, pending field name]; no recursion, see _iter_tokens.
        root: Any = {} if tok.kind == START_OBJECT else []
        frames: List[List[Any]] = [[root, None]]
        while frames:
            frame = frames[-1]
            container, name = frame
            tok = self._next_required()
            is_object = isinstance(container, dict)

            if tok.kind == (END_OBJECT if is_object else END_ARRAY) and name is None:
                frames.pop()
                continue
            if is_object and name is None:
                if tok.kind != FIELD_NAME:
                    raise MalformedDocument("expected a field name, got {}".format(tok), tok)
                frame[1] = tok.value
                continue

            if tok.kind in SCALAR_KINDS:
                node = tok.value
            elif tok.kind == START_OBJECT:
                node = {}
            elif tok.kind == START_ARRAY:
                node = []
            else:
                raise MalformedDocument("token {} does not start a value".format(tok), tok)

            if is_object:
                container[name] = node
                frame[1] = None
            else:
                container.append(node)
            if tok.kind in (START_OBJECT, START_ARRAY):
                frames.append([node, None])
        return root


# ── Writer ────────────────────────────────────────────────────

class _Frame:
    __slots__ = ("is_object", "count", "awaiting_value")

    def __init__(self, is_object: bool) -> None:
        self.is_object = is_object
        self.count = 0
        self.awaiting_value = False


class TokenWriter:
    """Event writer emitting compact JSON to a text stream.

    The writer checks event order (field names only directly inside an
    object, one value per field, balanced ends) and raises HetMapError with
    code ERR_WRITER on misuse.
    """

    def __init__(self, stream: IO[str]) -> None:
        self._stream = stream
        self._stack: List[_Frame] = []
        self._root_written = False

    @property
    def finished(self) -> bool:
        """True once a complete root value has been written."""
        return self._root_written and not self._stack

    def _before_value(self) -> None:
        if not self._stack:
            if self._root_written:
                raise HetMapError(ERR_WRITER, "document already has a root value")
            self._root_written = True
            return
        frame = self._stack[-1]
        if frame.is_object:
            if not frame.awaiting_value:
                raise HetMapError(ERR_WRITER, "value written inside an object without a field name")
            frame.awaiting_value = False
        else:
            if frame.count:
                self._stream.write(",")
            frame.count += 1

    def start_object(self) -> None:
        self._before_value()
        self._stream.write("{")
        self._stack.append(_Frame(is_object=True))

    def end_object(self) -> None:
        if not self._stack or not self._stack[-1].is_object or self._stack[-1].awaiting_value:
            raise HetMapError(ERR_WRITER, "end_object without a matching open object")
        self._stack.pop()
        self._stream.write("}")

    def start_array(self) -> None:
        self._before_value()
        self._stream.write("[")
        self._stack.append(_Frame(is_object=False))

    def end_array(self) -> None:
        if not self._stack or self._stack[-1].is_object:
            raise HetMapError(ERR_WRITER, "end_array without a matching open array")
        self._stack.pop()
        self._stream.write("]")

    def field_name(self, name: str) -> None:
        if not self._stack or not self._stack[-1].is_object:
            raise HetMapError(ERR_WRITER, "field name {!r} outside an object".format(name))
        frame = self._stack[-1]
        if frame.awaiting_value:
            raise HetMapError(ERR_WRITER, "field name {!r} written before the previous value".format(name))
        if frame.count:
            self._stream.write(",")
        frame.count += 1
        frame.awaiting_value = True
        self._stream.write(DEFAULT_JSON_ENCODER.encode(name))
        self._stream.write(":")

    def write_string(self, value: str) -> None:
        self.write_node(value)

    def write_null(self) -> None:
        self._before_value()
        self._stream.write("null")

    def write_node(self, node: Any) -> None:
        """Write one complete JSON value (a leaf produced by a codec)."""
        try:
            text = DEFAULT_JSON_ENCODER.encode(node)
        except (TypeError, ValueError) as e:
            raise HetMapError(ERR_WRITER, "node is not JSON-serializable: {}".format(e)) from e
        self._before_value()
        self._stream.write(text)
