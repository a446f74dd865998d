from __future__ import annotations

import json

from tempsudo.core.error_reporter import ErrorReporter, ErrorReporterConfig, normalize_exception
from tempsudo.core.errors import ArtifactRemovalError, NoActiveSession, ProbeError


def test_unknown_exception_normalized_and_redacted(tmp_path):
    p = tmp_path / "errors.jsonl"
    r = ErrorReporter(path=str(p))
    try:
        raise RuntimeError("boom")
    except RuntimeError as e:
        je = r.report_exception(e, trace_id="t1", subsystem="web", context={"token": "SECRET", "x": 1})
        assert je.code == "unknown_error"
        assert je.user_message
    obj = json.loads(p.read_text(encoding="utf-8").splitlines()[-1])
    assert obj["trace_id"] == "t1"
    assert obj["subsystem"] == "web"
    assert "SECRET" not in json.dumps(obj)
    assert "***REDACTED***" in json.dumps(obj)
    assert "internal_context" not in obj


def test_tracebacks_only_when_enabled(tmp_path):
    p = tmp_path / "errors.jsonl"
    r = ErrorReporter(path=str(p), cfg=ErrorReporterConfig(include_tracebacks=True))
    try:
        raise ValueError("kaput")
    except ValueError as e:
        r.report_exception(e, trace_id="t2", subsystem="sweeper")
    obj = json.loads(p.read_text(encoding="utf-8").splitlines()[-1])
    assert "kaput" in obj["internal_context"]["traceback"]


def test_subsystem_hints_map_to_taxonomy():
    assert isinstance(normalize_exception(OSError("x"), subsystem="probe", context={}), ProbeError)
    assert isinstance(normalize_exception(OSError("x"), subsystem="artifact.remove", context={}), ArtifactRemovalError)
    err = NoActiveSession(principal="alice")
    assert normalize_exception(err, subsystem="web", context={}) is err


def test_error_to_dict():
    d = NoActiveSession(principal="alice").to_dict()
    assert d["code"] == "no_active_session"
    assert d["recoverable"] is False
    assert d["context"] == {"principal": "alice"}


def test_tail_absent_is_empty(tmp_path):
    assert ErrorReporter(path=str(tmp_path / "x" / "e.jsonl")).tail() == []
