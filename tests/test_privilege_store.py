from __future__ import annotations

import threading
import time
from datetime import timedelta

import pytest

from tempsudo.core.privilege.models import Session
from tempsudo.core.privilege.store import PrivilegeStore
from tests.helpers.fakes import T0


def _session(principal: str, hours: float = 1.0) -> Session:
    return Session(principal=principal, artifact_ref=f"/x/temp_sudo_{principal}", granted_at=T0, expires_at=T0 + timedelta(hours=hours))


def test_put_get_remove_list():
    s = PrivilegeStore()
    assert s.get("alice") is None
    s.put("alice", _session("alice"))
    s.put("bob", _session("bob"))
    assert s.get("alice").principal == "alice"
    assert sorted(p for p, _ in s.list()) == ["alice", "bob"]
    assert s.count() == 2
    removed = s.remove("alice")
    assert removed is not None and removed.principal == "alice"
    assert s.remove("alice") is None
    assert "alice" not in s
    assert s.count() == 1


def test_put_replaces_existing_session():
    s = PrivilegeStore()
    s.put("alice", _session("alice", 1))
    s.put("alice", _session("alice", 4))
    assert s.count() == 1
    assert s.get("alice").expires_at == T0 + timedelta(hours=4)


def test_put_rejects_mismatched_key():
    s = PrivilegeStore()
    with pytest.raises(ValueError):
        s.put("bob", _session("alice"))


def test_list_is_a_snapshot():
    s = PrivilegeStore()
    s.put("alice", _session("alice"))
    snap = s.list()
    s.remove("alice")
    assert [p for p, _ in snap] == ["alice"]
    assert s.list() == []


def test_session_is_immutable_and_expiry_after_grant():
    sess = _session("alice")
    with pytest.raises(Exception):
        sess.expires_at = T0  # type: ignore[misc]
    with pytest.raises(Exception):
        Session(principal="alice", artifact_ref="/x", granted_at=T0, expires_at=T0)


def test_principal_locks_are_independent():
    s = PrivilegeStore()
    inside = threading.Event()
    release = threading.Event()
    other_done = threading.Event()

    def hold_alice():
        with s.principal_lock("alice"):
            inside.set()
            release.wait(timeout=5.0)

    def take_bob():
        with s.principal_lock("bob"):
            other_done.set()

    t1 = threading.Thread(target=hold_alice)
    t1.start()
    assert inside.wait(timeout=5.0)
    t2 = threading.Thread(target=take_bob)
    t2.start()
    assert other_done.wait(timeout=5.0)
    release.set()
    t1.join(timeout=5.0)
    t2.join(timeout=5.0)


def test_principal_lock_serializes_same_principal():
    s = PrivilegeStore()
    inside = threading.Event()
    release = threading.Event()
    second_entered = threading.Event()

    def first():
        with s.principal_lock("alice"):
            inside.set()
            release.wait(timeout=5.0)

    def second():
        with s.principal_lock("alice"):
            second_entered.set()

    t1 = threading.Thread(target=first)
    t1.start()
    assert inside.wait(timeout=5.0)
    t2 = threading.Thread(target=second)
    t2.start()
    assert second_entered.wait(timeout=0.2) is False
    release.set()
    assert second_entered.wait(timeout=5.0)
    t1.join(timeout=5.0)
    t2.join(timeout=5.0)


def test_principal_locks_are_released_when_idle():
    s = PrivilegeStore()
    with s.principal_lock("mallory"):
        assert "mallory" in s._principal_locks
    assert "mallory" not in s._principal_locks

    with s.principal_lock("alice"):
        s.put("alice", _session("alice"))
    assert "alice" in s._principal_locks

    with s.principal_lock("alice"):
        s.remove("alice")
        assert "alice" in s._principal_locks
    assert s._principal_locks == {}


def test_remove_outside_lock_drops_idle_entry():
    s = PrivilegeStore()
    with s.principal_lock("alice"):
        s.put("alice", _session("alice"))
    s.remove("alice")
    assert s._principal_locks == {}


def test_waiter_keeps_lock_alive_after_holder_leaves():
    s = PrivilegeStore()
    inside = threading.Event()
    release = threading.Event()
    got_it = threading.Event()

    def first():
        with s.principal_lock("alice"):
            inside.set()
            release.wait(timeout=5.0)

    def second():
        with s.principal_lock("alice"):
            got_it.set()

    t1 = threading.Thread(target=first)
    t1.start()
    assert inside.wait(timeout=5.0)
    t2 = threading.Thread(target=second)
    t2.start()
    for _ in range(100):
        if s._principal_locks["alice"].users == 2:
            break
        time.sleep(0.01)
    assert s._principal_locks["alice"].users == 2
    release.set()
    assert got_it.wait(timeout=5.0)
    t1.join(timeout=5.0)
    t2.join(timeout=5.0)
    assert s._principal_locks == {}
