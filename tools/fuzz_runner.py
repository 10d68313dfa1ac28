#!/usr/bin/env python3
# tools/fuzz_runner.py
#
# Decoder fuzzing.
#
# Generates three fuzz categories:
#   A) valid documents with random byte-level mutations
#   B) valid documents with element fields shuffled, renamed or dropped
#   C) random JSON trees shaped loosely like a document
#
# The decoder must either return a mapping or raise HetMapError. Any other
# exception prints a minimal repro payload and exits non-zero.

import os, sys, json, random, traceback
from typing import Any, Dict, List

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.join(ROOT, "implementations", "python"))

from hetmap import HetMapError, dumps, loads

SEED = int(os.environ.get("HETMAP_SEED", "4242"))
ROUNDS = int(os.environ.get("HETMAP_FUZZ_ROUNDS", "5000"))

random.seed(SEED)

FIELDS = ["a", "b", "c", "k", "v", "x"]
TAGS = ["builtins.str", "builtins.int", "builtins.float", "builtins.bool", "no.such.Type"]

def crash(label: str, raw: bytes, ctx: Dict[str, Any]) -> None:
    print("CRASH:", label)
    print("INPUT:", raw[:4000])
    print("CTX:", json.dumps(ctx)[:4000])
    traceback.print_exc()
    raise SystemExit(1)

def check(label: str, raw: bytes, ctx: Dict[str, Any]) -> str:
    try:
        loads(raw)
    except HetMapError as e:
        return e.code
    except Exception:
        crash(label, raw, ctx)
    return "ok"

# --- generators ---

def rand_ascii(nmax: int) -> str:
    n = random.randint(0, nmax)
    return "".join(chr(random.randint(0x20, 0x7E)) for _ in range(n))

def rand_scalar() -> Any:
    return random.choice([
        rand_ascii(8), random.randint(-50, 50), random.uniform(-10, 10),
        True, False, None,
    ])

def rand_mapping() -> Dict[Any, Any]:
    d: Dict[Any, Any] = {}
    for _ in range(random.randint(0, 6)):
        d.setdefault(rand_scalar(), rand_scalar())
    return d

def mutate_bytes(raw: bytes) -> bytes:
    b = bytearray(raw)
    for _ in range(random.randint(1, 4)):
        op = random.random()
        pos = random.randint(0, len(b))
        if op < 0.35 and b:
            del b[min(pos, len(b) - 1)]
        elif op < 0.70:
            b[pos:pos] = bytes([random.choice(b'{}[],:"0123456789aeklnrstuvbc\\ \xff')])
        elif b:
            b[min(pos, len(b) - 1)] = random.getrandbits(8)
    return bytes(b)

def mutate_elements(doc: Dict[str, Any]) -> List[Any]:
    # Pairs lists keep order and allow duplicate names once re-serialized.
    out: List[Any] = []
    for name, value in doc.items():
        if name != "c" or not isinstance(value, list):
            out.append([name, value])
            continue
        elements = []
        for el in value:
            items = list(el.items())
            r = random.random()
            if r < 0.3:
                random.shuffle(items)
            elif r < 0.5 and items:
                items.pop(random.randrange(len(items)))
            elif r < 0.7 and items:
                i = random.randrange(len(items))
                items[i] = (random.choice(FIELDS), items[i][1])
            elif r < 0.8:
                items.insert(random.randint(0, len(items)),
                             (random.choice(["a", "b"]), random.choice(TAGS + [None, 3])))
            elements.append(items)
        out.append(["c", elements])
    if random.random() < 0.2:
        random.shuffle(out)
    return out

def pairs_to_json(node: Any) -> str:
    # Serialize [[name, value], ...] shapes produced by mutate_elements as objects.
    if isinstance(node, list) and all(isinstance(p, (list, tuple)) and len(p) == 2 and isinstance(p[0], str) for p in node) and node:
        return "{" + ",".join(json.dumps(k) + ":" + pairs_to_json(v) for k, v in node) + "}"
    if isinstance(node, list):
        return "[" + ",".join(pairs_to_json(x) for x in node) + "]"
    return json.dumps(node)

def rand_docish(depth: int = 0) -> Any:
    if depth > 3 or random.random() < 0.3:
        return random.choice(TAGS + [rand_scalar()])
    if random.random() < 0.6:
        return {random.choice(FIELDS): rand_docish(depth + 1) for _ in range(random.randint(0, 4))}
    return [rand_docish(depth + 1) for _ in range(random.randint(0, 4))]

def main() -> int:
    outcomes: Dict[str, int] = {}
    for i in range(ROUNDS):
        r = random.random()

        # A) byte-level mutations of a valid document
        if r < 0.40:
            raw = mutate_bytes(dumps(rand_mapping()).encode("utf-8"))
            code = check("A byte mutation", raw, {"round": i})

        # B) element-level mutations (override after leaf, dropped fields, bad tags)
        elif r < 0.80:
            doc = json.loads(dumps(rand_mapping()))
            raw = pairs_to_json(mutate_elements(doc)).encode("utf-8")
            code = check("B element mutation", raw, {"round": i})

        # C) random document-shaped trees
        else:
            raw = json.dumps(rand_docish()).encode("utf-8")
            code = check("C random tree", raw, {"round": i})

        outcomes[code] = outcomes.get(code, 0) + 1

    summary = ", ".join("{}={}".format(k, v) for k, v in sorted(outcomes.items()))
    print(f"OK: fuzz rounds={ROUNDS} seed={SEED} (no crashes; {summary})")
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
