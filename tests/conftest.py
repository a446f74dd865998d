from __future__ import annotations

import os

import pytest

from tempsudo.core.audit.store_jsonl import AuditLog
from tempsudo.core.config.paths import ConfigFsPaths
from tempsudo.core.error_reporter import ErrorReporter
from tempsudo.core.privilege.manager import PrivilegeManager
from tempsudo.core.privilege.store import PrivilegeStore
from tempsudo.core.privilege.sweeper import ExpirySweeper
from tests.helpers.fakes import FakeArtifactWriter, FakeClock, FakeProbe, RecordingLogger


@pytest.fixture
def tmp_config_root(tmp_path):
    """
    Provides an isolated root with an empty config/ under tmp_path.
    """
    fs = ConfigFsPaths(root=str(tmp_path))
    os.makedirs(fs.config_dir, exist_ok=True)
    return fs


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def probe():
    return FakeProbe()


@pytest.fixture
def writer():
    return FakeArtifactWriter()


@pytest.fixture
def audit_path(tmp_path):
    return str(tmp_path / "logs" / "audit.jsonl")


@pytest.fixture
def audit(audit_path):
    return AuditLog(path=audit_path)


@pytest.fixture
def logger():
    return RecordingLogger()


@pytest.fixture
def error_reporter(tmp_path):
    return ErrorReporter(path=str(tmp_path / "logs" / "errors.jsonl"))


@pytest.fixture
def manager(probe, writer, audit, logger, error_reporter, clock):
    return PrivilegeManager(
        store=PrivilegeStore(),
        probe=probe,
        writer=writer,
        audit=audit,
        logger=logger,
        error_reporter=error_reporter,
        now=clock.now,
    )


@pytest.fixture
def sweeper(manager, logger, error_reporter, clock):
    return ExpirySweeper(
        store=manager.store,
        revoker=manager.revoker,
        interval_seconds=60,
        logger=logger,
        error_reporter=error_reporter,
        now=clock.now,
    )
