from __future__ import annotations

import contextlib
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from tempsudo.core.privilege.models import Session


@dataclass
class _PrincipalLock:
    lock: threading.RLock = field(default_factory=threading.RLock)
    users: int = 0


class PrivilegeStore:
    """
    Authoritative in-memory map of principal -> active Session.

    Map operations are atomic with respect to each other. Callers that need a
    check-then-act sequence for one principal (grant, revoke, expiry) hold
    principal_lock(principal) around it; locks for different principals are
    independent so a slow host call for one user never stalls another.

    A principal's lock lives only while someone holds or waits on it, or while
    the principal has a session.

    Nothing here is durable: after a restart the map is empty and any rule
    files left on disk are orphans for the operator to clean up.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: Dict[str, Session] = {}
        self._principal_locks: Dict[str, _PrincipalLock] = {}

    def put(self, principal: str, session: Session) -> None:
        if session.principal != principal:
            raise ValueError(f"session principal {session.principal!r} does not match key {principal!r}")
        with self._lock:
            self._sessions[principal] = session

    def get(self, principal: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(principal)

    def remove(self, principal: str) -> Optional[Session]:
        with self._lock:
            session = self._sessions.pop(principal, None)
            self._drop_idle_lock(principal)
            return session

    def list(self) -> List[Tuple[str, Session]]:
        with self._lock:
            return list(self._sessions.items())

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, principal: object) -> bool:
        with self._lock:
            return principal in self._sessions

    @contextlib.contextmanager
    def principal_lock(self, principal: str) -> Iterator[None]:
        with self._lock:
            entry = self._principal_locks.get(principal)
            if entry is None:
                entry = _PrincipalLock()
                self._principal_locks[principal] = entry
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._lock:
                entry.users -= 1
                self._drop_idle_lock(principal)

    def _drop_idle_lock(self, principal: str) -> None:
        # caller holds self._lock
        entry = self._principal_locks.get(principal)
        if entry is not None and entry.users == 0 and principal not in self._sessions:
            del self._principal_locks[principal]
