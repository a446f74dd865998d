from __future__ import annotations

import argparse
import sys
from typing import List

from tempsudo.core.audit.models import AuditAction, AuditEntry
from tempsudo.core.audit.store_jsonl import AuditLog
from tempsudo.core.config.manager import get_config
from tempsudo.core.errors import ArtifactRemovalError
from tempsudo.core.host.artifacts import SudoersArtifactWriter


def remove_orphans(writer: SudoersArtifactWriter, audit: AuditLog, *, actor: str) -> List[str]:
    """
    Remove every managed rule file on disk and record each as a REVOKE.

    Only meaningful while the service is stopped: its in-memory sessions are
    gone, so every file found is untracked.
    """
    removed: List[str] = []
    for ref in writer.list_artifacts():
        principal = writer.principal_for(ref) or ref
        try:
            writer.remove(ref)
        except ArtifactRemovalError as e:
            print(f"failed: {ref}: {e.context.get('error', e.user_message)}", file=sys.stderr)
            continue
        removed.append(ref)
        res = audit.append(AuditEntry(principal=principal, action=AuditAction.REVOKE, details="Orphaned rule removed", actor=actor))
        if not res.ok:
            print(f"warning: audit write failed for {principal}", file=sys.stderr)
    return removed


def main() -> int:
    ap = argparse.ArgumentParser(description="List (and optionally remove) sudo rule files left by a previous run")
    ap.add_argument("--root", default=".")
    ap.add_argument("--remove", action="store_true", help="Remove them (run only while the service is stopped).")
    ap.add_argument("--actor", default="operator")
    args = ap.parse_args()

    cfg = get_config(root=args.root, logger=None, read_only=True).get()
    writer = SudoersArtifactWriter(directory=cfg.privilege.artifact_dir, prefix=cfg.privilege.artifact_prefix, validate_with_visudo=False)
    refs = writer.list_artifacts()
    if not refs:
        print("No managed sudo rule files found.")
        return 0
    for ref in refs:
        print(f"{writer.principal_for(ref)}\t{ref}")
    if not args.remove:
        return 0
    removed = remove_orphans(writer, AuditLog(path=cfg.audit.audit_log_path), actor=args.actor)
    print(f"Removed {len(removed)} of {len(refs)}.")
    return 0 if len(removed) == len(refs) else 1


if __name__ == "__main__":
    raise SystemExit(main())
