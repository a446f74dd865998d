from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, Tuple

GENESIS_HASH = "0" * 64
CHAIN_FIELDS = ("prev_hash", "hash")


def canonical_json(obj: Dict[str, Any]) -> str:
    # Deterministic JSON (no whitespace, sorted keys)
    return json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def compute_hash(prev_hash: str, payload: Dict[str, Any]) -> str:
    h = hashlib.sha256()
    h.update(prev_hash.encode("utf-8"))
    h.update(b"\n")
    h.update(canonical_json(payload).encode("utf-8"))
    return h.hexdigest()


def chain_record(*, payload: Dict[str, Any], prev_hash: str) -> Dict[str, Any]:
    rec = dict(payload)
    rec["prev_hash"] = prev_hash
    rec["hash"] = compute_hash(prev_hash, payload)
    return rec


def split_record(rec: Dict[str, Any]) -> Tuple[Dict[str, Any], str, str]:
    """Return (payload, prev_hash, hash) for a stored record."""
    payload = {k: v for k, v in rec.items() if k not in CHAIN_FIELDS}
    return payload, str(rec.get("prev_hash") or ""), str(rec.get("hash") or "")
