from __future__ import annotations

import json
import os
import threading
from typing import Any, Dict, Iterator, List, Optional

from pydantic import ValidationError as PydanticValidationError

from tempsudo.core.audit.hasher import GENESIS_HASH, chain_record, compute_hash, split_record
from tempsudo.core.audit.models import AuditAppendResult, AuditEntry, IntegrityReport
from tempsudo.core.errors import AuditWriteError


class AuditLog:
    """
    Append-only JSONL audit log.

    Each line is one AuditEntry plus `prev_hash`/`hash` fields chaining it to the
    previous line, so edits or deletions are detectable with verify_integrity().
    append() never raises for I/O problems; the failure comes back in the result.
    """

    def __init__(self, *, path: str, logger=None):
        self.path = path
        self.logger = logger
        self._lock = threading.Lock()
        self._head: Optional[str] = None

    # ---------- writing ----------
    def append(self, entry: AuditEntry) -> AuditAppendResult:
        payload = entry.model_dump(mode="json")
        with self._lock:
            try:
                prev = self._head if self._head is not None else self._read_head_hash()
                rec = chain_record(payload=payload, prev_hash=prev)
                os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(json.dumps(rec, ensure_ascii=False) + "\n")
                    f.flush()
                    os.fsync(f.fileno())
            except OSError as e:
                # Head is re-read from disk on the next append.
                self._head = None
                err = AuditWriteError(path=self.path, action=entry.action.value, principal=entry.principal, error=str(e))
                return AuditAppendResult(ok=False, entry=entry, error=err)
            self._head = str(rec["hash"])
        return AuditAppendResult(ok=True, entry=entry)

    def _read_head_hash(self) -> str:
        last: Optional[Dict[str, Any]] = None
        for rec in self.iter_records():
            last = rec
        if last is None:
            return GENESIS_HASH
        return str(last.get("hash") or GENESIS_HASH)

    # ---------- reading ----------
    def iter_records(self) -> Iterator[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    obj = json.loads(line)
                except ValueError:
                    continue
                if isinstance(obj, dict):
                    yield obj

    def tail(self, n: int = 100) -> List[AuditEntry]:
        """Most recent `n` entries in append order; empty when the log does not exist."""
        if not os.path.exists(self.path):
            return []
        try:
            records = list(self.iter_records())
        except OSError as e:
            if self.logger is not None:
                self.logger.warning(f"Audit log unreadable ({self.path}): {e}")
            return []
        n = int(n)
        if n <= 0:
            return []
        out: List[AuditEntry] = []
        for rec in reversed(records):
            payload, _prev, _hash = split_record(rec)
            try:
                out.append(AuditEntry.model_validate(payload))
            except PydanticValidationError:
                continue
            if len(out) == n:
                break
        out.reverse()
        return out

    def verify_integrity(self) -> IntegrityReport:
        if not os.path.exists(self.path):
            return IntegrityReport(ok=True, checked=0, message="audit log absent", head_hash=GENESIS_HASH)
        prev = GENESIS_HASH
        checked = 0
        with open(self.path, "r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    rec = json.loads(line)
                except ValueError:
                    return IntegrityReport(ok=False, checked=checked, broken_at_line=lineno, message="invalid json", head_hash=prev)
                payload, rec_prev, rec_hash = split_record(rec)
                if rec_prev != prev:
                    return IntegrityReport(ok=False, checked=checked, broken_at_line=lineno, message="prev_hash mismatch", head_hash=prev)
                if rec_hash != compute_hash(prev, payload):
                    return IntegrityReport(ok=False, checked=checked, broken_at_line=lineno, message="hash mismatch", head_hash=prev)
                prev = rec_hash
                checked += 1
        return IntegrityReport(ok=True, checked=checked, message="ok", head_hash=prev)
