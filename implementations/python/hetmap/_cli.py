"""hetmap command-line interface.

Usage:
    echo '[["x", 1], [2, "y"]]' | hetmap encode [--stable]
    echo '{"a":"builtins.str", ...}' | hetmap decode
    hetmap inspect --input doc.json
    hetmap version

The CLI works with the default registry (str, int, float, bool and null).
`encode` reads a JSON array of [key, value] pairs because JSON objects
cannot have non-string keys; `decode` prints the same shape back.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections import Counter
from typing import Any, Dict, List, Optional

from . import (
    ELEMENTS_FIELD,
    KEY_TYPE_FIELD,
    VALUE_TYPE_FIELD,
    HetMapError,
    __version__,
    dump,
    loads,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hetmap",
        description="hetmap — JSON codec for mappings with heterogeneous key/value types",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    # ── encode ──
    enc_p = sub.add_parser("encode", help="Encode [key, value] pairs as a tagged document")
    enc_p.add_argument("--input", "-i", metavar="FILE",
                       help="Read JSON from FILE instead of stdin")
    enc_p.add_argument("--stable", action="store_true",
                       help="Break main-type ties by smallest tag instead of first occurrence")

    # ── decode ──
    dec_p = sub.add_parser("decode", help="Decode a tagged document to [key, value] pairs")
    dec_p.add_argument("--input", "-i", metavar="FILE",
                       help="Read the document from FILE instead of stdin")

    # ── inspect ──
    insp_p = sub.add_parser("inspect", help="Summarise a tagged document's type tags")
    insp_p.add_argument("--input", "-i", metavar="FILE",
                        help="Read the document from FILE instead of stdin")

    # ── version ──
    sub.add_parser("version", help="Print version and exit")

    return parser


def _read_input(filepath: Optional[str]) -> bytes:
    """Read bytes from a file or stdin."""
    if filepath:
        with open(filepath, "rb") as f:
            return f.read()
    if sys.stdin.isatty():
        print("hetmap: reading from stdin (Ctrl-D to end)...", file=sys.stderr)
    return sys.stdin.buffer.read()


def _pairs_to_mapping(pairs: Any) -> Dict[Any, Any]:
    if not isinstance(pairs, list):
        raise ValueError("expected a JSON array of [key, value] pairs")
    mapping: Dict[Any, Any] = {}
    for i, pair in enumerate(pairs):
        if not isinstance(pair, list) or len(pair) != 2:
            raise ValueError("item {} is not a [key, value] pair".format(i))
        key, value = pair
        if isinstance(key, (list, dict)):
            raise ValueError("item {}: key must be a scalar or null".format(i))
        mapping[key] = value
    return mapping


def _cmd_encode(args: argparse.Namespace) -> None:
    mapping = _pairs_to_mapping(json.loads(_read_input(args.input)))
    dump(mapping, sys.stdout, stable=args.stable)
    sys.stdout.write("\n")


def _cmd_decode(args: argparse.Namespace) -> None:
    mapping = loads(_read_input(args.input))
    print(json.dumps([[k, v] for k, v in mapping.items()], ensure_ascii=False))


def _cmd_inspect(args: argparse.Namespace) -> None:
    doc = json.loads(_read_input(args.input))
    if not isinstance(doc, dict):
        raise ValueError("a tagged document is a JSON object")
    elements: List[Any] = doc.get(ELEMENTS_FIELD, [])
    if not isinstance(elements, list):
        raise ValueError("field {!r} must be an array".format(ELEMENTS_FIELD))

    key_overrides: Counter = Counter()
    value_overrides: Counter = Counter()
    for element in elements:
        if not isinstance(element, dict):
            raise ValueError("elements must be JSON objects")
        if KEY_TYPE_FIELD in element:
            key_overrides[element[KEY_TYPE_FIELD]] += 1
        if VALUE_TYPE_FIELD in element:
            value_overrides[element[VALUE_TYPE_FIELD]] += 1

    summary = {
        "main_key_type": doc.get(KEY_TYPE_FIELD),
        "main_value_type": doc.get(VALUE_TYPE_FIELD),
        "entries": len(elements),
        "key_overrides": dict(key_overrides),
        "value_overrides": dict(value_overrides),
    }
    print(json.dumps(summary, indent=2))


def main(argv: Optional[List[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == "version":
        print(f"hetmap {__version__}")
        return

    try:
        if args.command == "encode":
            _cmd_encode(args)
        elif args.command == "decode":
            _cmd_decode(args)
        elif args.command == "inspect":
            _cmd_inspect(args)
    except HetMapError as e:
        print(f"hetmap: error [{e.code}]: {e}", file=sys.stderr)
        sys.exit(2)
    except json.JSONDecodeError as e:
        print(f"hetmap: JSON parse error: {e}", file=sys.stderr)
        sys.exit(2)
    except ValueError as e:
        print(f"hetmap: invalid input: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
