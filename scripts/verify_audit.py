from __future__ import annotations

import argparse

from tempsudo.core.audit.store_jsonl import AuditLog
from tempsudo.core.config.manager import get_config


def main() -> int:
    ap = argparse.ArgumentParser(description="Verify the audit log hash chain")
    ap.add_argument("--root", default=".")
    ap.add_argument("--path", default=None, help="Audit log path (defaults to audit.audit_log_path).")
    args = ap.parse_args()
    path = args.path or get_config(root=args.root, logger=None, read_only=True).get().audit.audit_log_path
    rep = AuditLog(path=path).verify_integrity()
    if rep.ok:
        print(f"OK: {rep.checked} entries, head {rep.head_hash}")
        return 0
    print(f"BROKEN at line {rep.broken_at_line}: {rep.message} (after {rep.checked} valid entries)")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
