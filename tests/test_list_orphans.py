from __future__ import annotations

import importlib.util
import os

from tempsudo.core.audit.store_jsonl import AuditLog
from tempsudo.core.host.artifacts import SudoersArtifactWriter

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _load_script(name: str):
    path = os.path.join(ROOT, "scripts", f"{name}.py")
    spec = importlib.util.spec_from_file_location(f"scripts_{name}", path)
    mod = importlib.util.module_from_spec(spec)
    assert spec.loader is not None
    spec.loader.exec_module(mod)
    return mod


def test_remove_orphans_cleans_and_audits(tmp_path):
    rules = tmp_path / "sudoers.d"
    rules.mkdir()
    writer = SudoersArtifactWriter(directory=str(rules), validate_with_visudo=False)
    writer.create("alice")
    writer.create("j.doe")
    (rules / "README").write_text("not ours\n", encoding="utf-8")
    audit = AuditLog(path=str(tmp_path / "audit.log"))

    mod = _load_script("list_orphans")
    removed = mod.remove_orphans(writer, audit, actor="operator")

    assert len(removed) == 2
    assert writer.list_artifacts() == []
    assert os.path.exists(rules / "README")
    entries = audit.tail()
    assert sorted(e.principal for e in entries) == ["alice", "j.doe"]
    assert {e.action.value for e in entries} == {"REVOKE"}
    assert {e.details for e in entries} == {"Orphaned rule removed"}
    assert audit.verify_integrity().ok is True
