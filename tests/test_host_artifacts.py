from __future__ import annotations

import os
import stat

import pytest

from tempsudo.core.errors import ArtifactRemovalError, ArtifactWriteError
from tempsudo.core.host.artifacts import SudoersArtifactWriter, is_valid_principal


def _writer(tmp_path, **kw):
    d = tmp_path / "sudoers.d"
    d.mkdir(exist_ok=True)
    kw.setdefault("validate_with_visudo", False)
    return SudoersArtifactWriter(directory=str(d), **kw), d


def test_create_writes_rule_with_restrictive_mode(tmp_path):
    w, d = _writer(tmp_path)
    ref = w.create("alice")
    assert ref == str(d / "temp_sudo_alice")
    with open(ref, "r", encoding="utf-8") as f:
        assert f.read() == "alice ALL=(ALL) NOPASSWD:ALL\n"
    assert stat.S_IMODE(os.stat(ref).st_mode) == 0o440
    assert sorted(os.listdir(d)) == ["temp_sudo_alice"]


def test_ref_is_deterministic_and_recreate_overwrites(tmp_path):
    w, _ = _writer(tmp_path)
    assert w.artifact_ref("alice") == w.artifact_ref("alice")
    ref1 = w.create("alice")
    ref2 = w.create("alice")
    assert ref1 == ref2
    assert w.list_artifacts() == [ref1]


def test_dotted_names_avoid_dots_in_filename(tmp_path):
    w, _ = _writer(tmp_path)
    ref = w.create("john.doe")
    assert "." not in os.path.basename(ref)
    assert w.principal_for(ref) == "john.doe"


@pytest.mark.parametrize("name", ["", "../evil", "a b", "a\n", "x" * 40, "a/b", "al:ice"])
def test_invalid_names_rejected(tmp_path, name):
    w, d = _writer(tmp_path)
    assert is_valid_principal(name) is False
    with pytest.raises(ArtifactWriteError):
        w.create(name)
    assert os.listdir(d) == []


def test_create_fails_when_directory_missing(tmp_path):
    w = SudoersArtifactWriter(directory=str(tmp_path / "nope"), validate_with_visudo=False)
    with pytest.raises(ArtifactWriteError):
        w.create("alice")


def test_remove_and_missing_file_is_ok(tmp_path):
    w, d = _writer(tmp_path)
    ref = w.create("alice")
    w.remove(ref)
    assert os.listdir(d) == []
    w.remove(ref)


def test_remove_refuses_foreign_paths(tmp_path):
    w, _ = _writer(tmp_path)
    with pytest.raises(ArtifactRemovalError):
        w.remove(str(tmp_path / "temp_sudo_alice"))
    with pytest.raises(ArtifactRemovalError):
        w.remove(os.path.join(w.directory, "README"))


def test_remove_os_error_is_wrapped(tmp_path, monkeypatch):
    w, _ = _writer(tmp_path)
    ref = w.create("alice")

    def boom(_p):
        raise PermissionError("denied")

    monkeypatch.setattr(os, "remove", boom)
    with pytest.raises(ArtifactRemovalError):
        w.remove(ref)


def test_list_artifacts_ignores_unmanaged_files(tmp_path):
    w, d = _writer(tmp_path)
    (d / "README").write_text("x", encoding="utf-8")
    ref = w.create("bob")
    assert w.list_artifacts() == [ref]
    assert SudoersArtifactWriter(directory=str(tmp_path / "missing")).list_artifacts() == []


def test_visudo_rejection_leaves_no_file(tmp_path, monkeypatch):
    import subprocess

    w, d = _writer(tmp_path, validate_with_visudo=True, visudo_path="visudo")
    monkeypatch.setattr("tempsudo.core.host.artifacts.shutil.which", lambda _n: "/usr/sbin/visudo")
    monkeypatch.setattr(
        "tempsudo.core.host.artifacts.subprocess.run",
        lambda *a, **k: subprocess.CompletedProcess(args=a, returncode=1, stdout="", stderr="parse error"),
    )
    with pytest.raises(ArtifactWriteError):
        w.create("alice")
    assert os.listdir(d) == []


def test_missing_visudo_is_skipped_with_warning(tmp_path, monkeypatch):
    from tests.helpers.fakes import RecordingLogger

    log = RecordingLogger()
    w, _ = _writer(tmp_path, validate_with_visudo=True, visudo_path="visudo", logger=log)
    monkeypatch.setattr("tempsudo.core.host.artifacts.shutil.which", lambda _n: None)
    w.create("alice")
    w.create("bob")
    assert len(log.messages("warning")) == 1
