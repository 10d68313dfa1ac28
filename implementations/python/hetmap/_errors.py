"""hetmap error codes and exception classes.

Every failure raised by the codec is a HetMapError.  The `.code` attribute
is a grep-friendly string that tests and the CLI compare against; the
subclasses carry the diagnostics specific to each kind.

Exceptions raised by caller-supplied leaf codecs are not wrapped.  They
propagate to the caller exactly as the codec raised them.
"""

from __future__ import annotations

from typing import Any, Optional

ERR_MALFORMED: str = "ERR_MALFORMED"        # token sequence violates the automaton
ERR_UNKNOWN_TYPE: str = "ERR_UNKNOWN_TYPE"  # tag or runtime type not registered
ERR_LEAF_CODEC: str = "ERR_LEAF_CODEC"      # built-in leaf codec got the wrong shape
ERR_WRITER: str = "ERR_WRITER"              # token writer used out of order


class HetMapError(Exception):
    """Base exception for hetmap encode/decode failures."""

    def __init__(self, code: str, msg: str = "") -> None:
        super().__init__(msg or code)
        self.code = code


class MalformedDocument(HetMapError):
    """The token stream does not follow the tagged-document grammar.

    `token` is the offending token (None at premature end of input) and
    `state` is the automaton state it was seen in.
    """

    def __init__(self, msg: str, token: Any = None, state: Optional[int] = None) -> None:
        if state is not None:
            msg = "{} (state={})".format(msg, state)
        super().__init__(ERR_MALFORMED, msg)
        self.token = token
        self.state = state


class UnknownType(HetMapError):
    """A tag (decode) or runtime type (encode) has no registered leaf codec."""

    def __init__(self, msg: str, tag: Optional[str] = None, cls: Optional[type] = None) -> None:
        super().__init__(ERR_UNKNOWN_TYPE, msg)
        self.tag = tag
        self.cls = cls


class LeafCodecFailure(HetMapError):
    def __init__(self, msg: str, tag: Optional[str] = None) -> None:
        super().__init__(ERR_LEAF_CODEC, msg)
        self.tag = tag
