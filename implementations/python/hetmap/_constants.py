"""hetmap constants — document field names, token kinds, and automaton states.

Field names are single letters to keep per-entry overhead small.  The
header and every element object reuse "a" and "b" for the key and value
type tags: in the header they name the main types, inside an element they
name an override.
"""

from __future__ import annotations

__format_version__ = "1"

# ── Document field names ─────────────────────────────────────
KEY_TYPE_FIELD: str = "a"
VALUE_TYPE_FIELD: str = "b"
ELEMENTS_FIELD: str = "c"
KEY_FIELD: str = "k"
VALUE_FIELD: str = "v"

# ── Token kinds ──────────────────────────────────────────────
# Names match what the decoder reports in MalformedDocument messages.
START_OBJECT: str = "START_OBJECT"
END_OBJECT: str = "END_OBJECT"
START_ARRAY: str = "START_ARRAY"
END_ARRAY: str = "END_ARRAY"
FIELD_NAME: str = "FIELD_NAME"
VALUE_STRING: str = "VALUE_STRING"
VALUE_INT: str = "VALUE_INT"
VALUE_FLOAT: str = "VALUE_FLOAT"
VALUE_TRUE: str = "VALUE_TRUE"
VALUE_FALSE: str = "VALUE_FALSE"
VALUE_NULL: str = "VALUE_NULL"

SCALAR_KINDS = frozenset(
    {VALUE_STRING, VALUE_INT, VALUE_FLOAT, VALUE_TRUE, VALUE_FALSE, VALUE_NULL}
)
# Tokens that may open a value node.
VALUE_START_KINDS = SCALAR_KINDS | {START_OBJECT, START_ARRAY}

# ── Document automaton states ────────────────────────────────
DOC_DONE: int = 0
DOC_HEADER: int = 1
DOC_KEY_TYPE: int = 2
DOC_VALUE_TYPE: int = 3
DOC_ELEMENTS: int = 4
DOC_UNKNOWN_FIELD: int = 5
DOC_IN_ARRAY: int = 6

# ── Element automaton states ─────────────────────────────────
ELEM_FIELDS: int = 1
ELEM_KEY_TYPE: int = 2
ELEM_VALUE_TYPE: int = 3
ELEM_KEY: int = 4
ELEM_VALUE: int = 5
ELEM_UNKNOWN_FIELD: int = 6
