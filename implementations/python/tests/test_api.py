"""Unit tests for the hetmap public API.

Organized by feature area.  Decoder automaton transitions are covered in
test_decoder.py and golden documents in test_conformance.py; these tests
exercise encode/decode contracts and round-trips.
"""

from __future__ import annotations

import io
import json
import os
import sys
import unittest
from collections import OrderedDict
from dataclasses import dataclass

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from hetmap import (
    ERR_LEAF_CODEC,
    ERR_MALFORMED,
    ERR_UNKNOWN_TYPE,
    LeafCodecFailure,
    MalformedDocument,
    UnknownType,
    default_registry,
    dump,
    dumps,
    load,
    loads,
)


@dataclass(frozen=True)
class ComplexObject:
    attribute1: object
    attribute2: object


@dataclass(frozen=True)
class ExtendedObject(ComplexObject):
    attribute3: float


class SortedDict(dict):
    """A dict that iterates in key order, standing in for a sorted container."""

    def __iter__(self):
        return iter(sorted(super().keys(), key=repr))

    def keys(self):
        return list(self)

    def values(self):
        return [self[k] for k in self]

    def items(self):
        return [(k, self[k]) for k in self]


def _registry():
    registry = default_registry()
    registry.register_dataclass(ComplexObject, tag="complex")
    registry.register_dataclass(ExtendedObject, tag="extended")
    return registry


KEY1 = ComplexObject("key1", "1key")
KEY2 = ComplexObject("key2", "2key")
KEY3 = ComplexObject("key3", "3key")
KEY_NULL = ComplexObject(None, "1key")
VALUE1 = ComplexObject("value1", "1value")
VALUE2 = ComplexObject("value2", "2value")
VALUE3 = ComplexObject("value3", "3value")
VALUE_NULL = ComplexObject("value3", None)
EXT1 = ExtendedObject("ext1", "object1", 1.0)
EXT2 = ExtendedObject("ext2", "object2", 2.0)


def _elements(doc: str) -> list:
    return json.loads(doc)["c"]


# ── Round-trip identity ───────────────────────────────────────

class TestRoundTrip(unittest.TestCase):
    """Same size, and every key maps to an equal value after decoding."""

    CASES = {
        "empty": {},
        "single": {KEY1: VALUE1},
        "three_pairs": {KEY1: VALUE1, KEY2: VALUE2, KEY3: VALUE3},
        "mixed_minority_extended": {KEY1: VALUE1, EXT1: EXT2, KEY3: VALUE3},
        "majority_keys_extended": {EXT1: VALUE1, KEY2: VALUE2, EXT2: VALUE3},
        "majority_values_extended": {KEY1: EXT1, KEY2: VALUE2, KEY3: EXT2},
        "null_entries": {KEY_NULL: VALUE1, KEY2: VALUE_NULL, KEY3: None, None: VALUE3},
    }

    def assertRoundTrip(self, mapping):
        registry = _registry()
        doc = dumps(mapping, registry=registry)
        decoded = loads(doc, registry=registry)
        self.assertEqual(len(decoded), len(mapping), doc)
        for key, value in mapping.items():
            self.assertIn(key, decoded, doc)
            self.assertEqual(decoded[key], value, doc)
            self.assertIs(type(decoded[key]), type(value), doc)

    def test_cases(self):
        for name, mapping in self.CASES.items():
            with self.subTest(name=name):
                self.assertRoundTrip(mapping)

    def test_builtin_scalars(self):
        self.assertRoundTrip({"a": 1, "b": 2.5, 3: "c", 4.0: True, False: None})

    def test_decoded_types_match_override(self):
        decoded = loads(dumps({1: "x", False: "y", "1": "z", 1.5: "w"}))
        self.assertEqual(
            sorted(type(k).__name__ for k in decoded), ["bool", "float", "int", "str"]
        )

    def test_round_trip_through_files(self):
        mapping = {KEY1: EXT1, KEY2: VALUE2}
        buf = io.StringIO()
        dump(mapping, buf, registry=_registry())
        buf.seek(0)
        self.assertEqual(load(buf, registry=_registry()), mapping)

    def test_bytes_input(self):
        doc = dumps({"k": "v"}).encode("utf-8")
        self.assertEqual(loads(doc), {"k": "v"})


# ── Empty mapping ─────────────────────────────────────────────

class TestEmptyMapping(unittest.TestCase):
    def test_encodes_to_empty_object(self):
        self.assertEqual(dumps({}), "{}")

    def test_decodes_to_empty_mapping(self):
        self.assertEqual(loads("{}"), {})

    def test_decodes_into_factory(self):
        result = loads("{}", factory=OrderedDict)
        self.assertIsInstance(result, OrderedDict)
        self.assertEqual(len(result), 0)


# ── Header and overrides ──────────────────────────────────────

class TestTagging(unittest.TestCase):
    def test_exact_document(self):
        doc = dumps({"x": 1, "y": 2, 3: "z"})
        self.assertEqual(
            doc,
            '{"a":"builtins.str","b":"builtins.int","c":['
            '{"k":"x","v":1},'
            '{"k":"y","v":2},'
            '{"a":"builtins.int","b":"builtins.str","k":3,"v":"z"}]}',
        )

    def test_homogeneous_mapping_has_no_overrides(self):
        doc = dumps({KEY1: VALUE1, KEY2: VALUE2, KEY3: VALUE3}, registry=_registry())
        header = json.loads(doc)
        self.assertEqual(header["a"], "complex")
        self.assertEqual(header["b"], "complex")
        for element in _elements(doc):
            self.assertEqual(sorted(element), ["k", "v"])

    def test_minority_key_type_tagged(self):
        doc = dumps({EXT1: VALUE1, KEY2: VALUE2, EXT2: VALUE3}, registry=_registry())
        self.assertEqual(json.loads(doc)["a"], "extended")
        tagged = [e for e in _elements(doc) if "a" in e]
        self.assertEqual(len(tagged), 1)
        self.assertEqual(tagged[0]["a"], "complex")
        self.assertEqual(tagged[0]["k"], {"attribute1": "key2", "attribute2": "2key"})
        self.assertFalse(any("b" in e for e in _elements(doc)))

    def test_minority_value_type_tagged(self):
        doc = dumps({KEY1: EXT1, KEY2: VALUE2, KEY3: EXT2}, registry=_registry())
        self.assertEqual(json.loads(doc)["b"], "extended")
        tagged = [e for e in _elements(doc) if "b" in e]
        self.assertEqual(len(tagged), 1)
        # Overrides go under "b" for values, never under "a".
        self.assertEqual(tagged[0]["b"], "complex")
        self.assertFalse(any("a" in e for e in _elements(doc)))

    def test_override_fields_precede_leaves(self):
        doc = dumps({1: 1, 2: 2, "s": "t"})
        self.assertIn('{"a":"builtins.str","b":"builtins.str","k":"s","v":"t"}', doc)

    def test_bool_is_not_int(self):
        doc = dumps({1: 0, 2: 0, False: 0})
        tagged = [e for e in _elements(doc) if "a" in e]
        self.assertEqual(tagged, [{"a": "builtins.bool", "k": False, "v": 0}])


# ── Main-type ties ────────────────────────────────────────────

class TestTies(unittest.TestCase):
    def test_tie_goes_to_first_encountered(self):
        self.assertEqual(json.loads(dumps({"x": 1, 2: 2}))["a"], "builtins.str")
        self.assertEqual(json.loads(dumps({2: 2, "x": 1}))["a"], "builtins.int")

    def test_stable_tie_goes_to_smallest_tag(self):
        self.assertEqual(json.loads(dumps({"x": 1, 2: 2}, stable=True))["a"], "builtins.int")
        self.assertEqual(json.loads(dumps({2: 2, "x": 1}, stable=True))["a"], "builtins.int")

    def test_stable_does_not_change_majority(self):
        doc = dumps({"x": 1, "y": 2, 3: 3}, stable=True)
        self.assertEqual(json.loads(doc)["a"], "builtins.str")


# ── Null handling ─────────────────────────────────────────────

class TestNulls(unittest.TestCase):
    def test_null_value_has_no_override(self):
        doc = dumps({"a": 1, "b": None})
        self.assertEqual(_elements(doc)[1], {"k": "b", "v": None})
        self.assertEqual(loads(doc), {"a": 1, "b": None})

    def test_null_key_has_no_override(self):
        doc = dumps({"a": 1, None: 2})
        self.assertEqual(_elements(doc)[1], {"k": None, "v": 2})
        decoded = loads(doc)
        self.assertEqual(len(decoded), 2)
        self.assertEqual(decoded[None], 2)

    def test_null_key_and_value(self):
        decoded = loads(dumps({"a": 1, None: None}))
        self.assertEqual(decoded, {"a": 1, None: None})

    def test_all_null_values_omit_value_header(self):
        doc = dumps({"a": None, "b": None})
        header = json.loads(doc)
        self.assertEqual(header["a"], "builtins.str")
        self.assertNotIn("b", header)
        self.assertEqual(loads(doc), {"a": None, "b": None})

    def test_only_null_entry(self):
        doc = dumps({None: None})
        self.assertEqual(doc, '{"c":[{"k":null,"v":null}]}')
        self.assertEqual(loads(doc), {None: None})


# ── Container flavours ────────────────────────────────────────

class TestContainerFlavours(unittest.TestCase):
    def test_sorted_to_hash(self):
        source = SortedDict({KEY3: VALUE3, KEY1: VALUE1, KEY2: VALUE2})
        decoded = loads(dumps(source, registry=_registry()), registry=_registry())
        self.assertIs(type(decoded), dict)
        self.assertEqual(decoded, dict(source))

    def test_hash_to_ordered(self):
        source = {KEY1: VALUE1, 2: "two", KEY3: None}
        decoded = loads(dumps(source, registry=_registry()), registry=_registry(),
                        factory=OrderedDict)
        self.assertIsInstance(decoded, OrderedDict)
        self.assertEqual(dict(decoded), source)

    def test_hash_to_sorted(self):
        source = {"b": 2, "a": 1, "c": 3}
        decoded = loads(dumps(source), factory=SortedDict)
        self.assertIsInstance(decoded, SortedDict)
        self.assertEqual(list(decoded.keys()), ["a", "b", "c"])


# ── Failures ──────────────────────────────────────────────────

class TestFailures(unittest.TestCase):
    def test_unregistered_key_type_on_encode(self):
        with self.assertRaises(UnknownType) as ctx:
            dumps({KEY1: "x"})
        self.assertEqual(ctx.exception.code, ERR_UNKNOWN_TYPE)
        self.assertIs(ctx.exception.cls, ComplexObject)

    def test_subclass_needs_its_own_registration(self):
        registry = default_registry()
        registry.register_dataclass(ComplexObject)
        with self.assertRaises(UnknownType):
            dumps({EXT1: 1}, registry=registry)

    def test_unknown_type_leaves_stream_untouched(self):
        buf = io.StringIO()
        with self.assertRaises(UnknownType):
            dump({"a": 1, "b": object()}, buf)
        self.assertEqual(buf.getvalue(), "")

    def test_non_finite_float_leaves_stream_untouched(self):
        for bad in (float("nan"), float("inf"), float("-inf")):
            with self.subTest(value=bad):
                buf = io.StringIO()
                with self.assertRaises(LeafCodecFailure) as ctx:
                    dump({"a": 1.0, "b": bad}, buf)
                self.assertEqual(ctx.exception.tag, "builtins.float")
                self.assertEqual(buf.getvalue(), "")

    def test_non_finite_float_key(self):
        with self.assertRaises(LeafCodecFailure):
            dumps({float("inf"): 1})

    def test_elements_replaced_by_string(self):
        with self.assertRaises(MalformedDocument) as ctx:
            loads('{"a":"builtins.str","b":"builtins.int","c":"oops"}')
        self.assertEqual(ctx.exception.code, ERR_MALFORMED)

    def test_unknown_override_tag(self):
        doc = '{"a":"builtins.str","b":"builtins.int","c":[{"a":"no.such.Type","k":"x","v":1}]}'
        with self.assertRaises(UnknownType) as ctx:
            loads(doc)
        self.assertEqual(ctx.exception.tag, "no.such.Type")

    def test_unknown_main_tag(self):
        with self.assertRaises(UnknownType):
            loads('{"a":"complex","b":"builtins.int","c":[]}')

    def test_leaf_shape_mismatch(self):
        with self.assertRaises(LeafCodecFailure) as ctx:
            loads('{"a":"builtins.int","b":"builtins.int","c":[{"k":"1","v":1}]}')
        self.assertEqual(ctx.exception.code, ERR_LEAF_CODEC)

    def test_caller_codec_error_propagates(self):
        registry = default_registry()

        def explode(node):
            raise RuntimeError("boom")

        registry.register(complex, lambda c: [c.real, c.imag], explode, tag="complex")
        doc = dumps({"z": 1j}, registry=registry)
        with self.assertRaises(RuntimeError):
            loads(doc, registry=registry)

    def test_invalid_json(self):
        with self.assertRaises(MalformedDocument):
            loads('{"a":')


if __name__ == "__main__":
    unittest.main()
