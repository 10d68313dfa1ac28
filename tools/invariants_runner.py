#!/usr/bin/env python3
# tools/invariants_runner.py
#
# Codec invariants (property tests) over random heterogeneous mappings.
#
# This runner:
# - generates random mappings mixing str/int/float/bool/None keys and values
# - encodes each one, decodes it back, and checks the invariants below
#
# Exit code:
#   0 -> all checks passed
#   1 -> invariant violation

import os, sys, json, random
from typing import Any, Dict, List, Tuple

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.join(ROOT, "implementations", "python"))

from hetmap import default_registry, dumps, loads, main_type, type_histogram

SEED = int(os.environ.get("HETMAP_SEED", "1337"))
TRIALS = int(os.environ.get("HETMAP_TRIALS", "2000"))
MAX_ENTRIES = int(os.environ.get("HETMAP_GEN_MAX_ENTRIES", "12"))
MAX_STR = int(os.environ.get("HETMAP_GEN_MAX_STR", "16"))

random.seed(SEED)
REGISTRY = default_registry()

def rand_utf8_string() -> str:
    # Generate scalars excluding surrogate range; include tricky chars occasionally.
    out = []
    for _ in range(random.randint(0, MAX_STR)):
        r = random.random()
        if r < 0.80:
            out.append(chr(random.randint(0x20, 0x7E)))
        elif r < 0.95:
            out.append(chr(random.randint(0xA0, 0xD7FF)))
        else:
            out.append(chr(random.randint(0x10000, 0x10FFFF)))
    return "".join(out)

def rand_leaf(weights: List[float]) -> Any:
    r = random.choices(["str", "int", "float", "bool", "null"], weights=weights)[0]
    if r == "str":
        return rand_utf8_string()
    if r == "int":
        return random.randint(-(2 ** 70), 2 ** 70) if random.random() < 0.1 else random.randint(-1000, 1000)
    if r == "float":
        return random.choice([0.0, -0.0, 1.5, 1e300]) if random.random() < 0.2 else random.uniform(-1e6, 1e6)
    if r == "bool":
        return random.random() < 0.5
    return None

def rand_weights() -> List[float]:
    # Skewed weights so most trials have a clear majority type, some are homogeneous.
    w = [random.random() for _ in range(5)]
    if random.random() < 0.25:
        keep = random.randrange(4)
        w = [1.0 if i == keep else 0.0 for i in range(5)]
    return w

def gen_mapping() -> Dict[Any, Any]:
    kw, vw = rand_weights(), rand_weights()
    d: Dict[Any, Any] = {}
    for _ in range(random.randint(0, MAX_ENTRIES)):
        k = rand_leaf(kw)
        # True == 1 == 1.0 share a dict slot; keep the first key's type.
        if k in d:
            continue
        d[k] = rand_leaf(vw)
    return d

def typed_items(m: Dict[Any, Any]) -> List[Tuple[Any, ...]]:
    # Equality alone would accept True for 1 and 1 for 1.0.
    return [(type(k), k, type(v), v) for k, v in m.items()]

def count_overrides(doc: str, field: str) -> int:
    return sum(1 for el in json.loads(doc).get("c", []) if field in el)

def expected_overrides(values: List[Any], stable: bool) -> int:
    hist = type_histogram(values, REGISTRY)
    main = main_type(values, REGISTRY, stable=stable)
    return sum(hist.values()) - (hist[main] if main is not None else 0)

def fail(label: str, m: Dict[Any, Any], doc: str) -> int:
    print("INVARIANT FAIL:", label)
    print("MAP:", repr(m)[:2000])
    print("DOC:", doc[:2000])
    return 1

def main() -> int:
    for t in range(TRIALS):
        m = gen_mapping()
        stable = random.random() < 0.3
        doc = dumps(m, stable=stable)

        # (1) Encode stability (encode twice, same text)
        if dumps(m, stable=stable) != doc:
            return fail("encode stability", m, doc)

        # (2) Round-trip identity, including leaf types and entry order
        back = loads(doc)
        if typed_items(back) != typed_items(m):
            return fail("round-trip identity", m, doc)

        # (3) Re-encoding the decoded mapping reproduces the document
        if dumps(back, stable=stable) != doc:
            return fail("re-encode fixpoint", m, doc)

        # (4) Override count equals the number of non-null minority entries
        keys, values = list(m.keys()), list(m.values())
        if count_overrides(doc, "a") != expected_overrides(keys, stable):
            return fail("key override count", m, doc)
        if count_overrides(doc, "b") != expected_overrides(values, stable):
            return fail("value override count", m, doc)

        # (5) A side with a single non-null type carries no overrides
        if len(type_histogram(keys, REGISTRY)) <= 1 and count_overrides(doc, "a"):
            return fail("homogeneous keys carry overrides", m, doc)
        if len(type_histogram(values, REGISTRY)) <= 1 and count_overrides(doc, "b"):
            return fail("homogeneous values carry overrides", m, doc)

        # (6) The main type is a most frequent type
        hist = type_histogram(keys, REGISTRY)
        main = main_type(keys, REGISTRY, stable=stable)
        if hist and hist[main] != max(hist.values()):
            return fail("main key type not a majority", m, doc)

    print(f"OK: invariants passed for TRIALS={TRIALS} seed={SEED}")
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
