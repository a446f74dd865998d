from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from tempsudo.core.audit.models import AuditEntry, IntegrityReport
from tempsudo.core.clock import utc_now
from tempsudo.core.privilege.grant import GrantEngine
from tempsudo.core.privilege.models import Session
from tempsudo.core.privilege.revoke import RevokeEngine
from tempsudo.core.privilege.store import PrivilegeStore


class PrivilegeManager:
    """
    Control-surface facade over the privilege core.

    Owns nothing global: every collaborator is passed in, so the web app, the
    sweeper and tests can each wire their own instance.
    """

    def __init__(
        self,
        *,
        store: PrivilegeStore,
        probe: Any,
        writer: Any,
        audit: Any,
        logger=None,
        error_reporter: Any = None,
        audit_tail_limit: int = 100,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.probe = probe
        self.writer = writer
        self.audit = audit
        self.logger = logger
        self.error_reporter = error_reporter
        self.audit_tail_limit = int(audit_tail_limit)
        self._now = now or utc_now
        self.granter = GrantEngine(store=store, probe=probe, writer=writer, audit=audit, logger=logger, error_reporter=error_reporter, now=self._now)
        self.revoker = RevokeEngine(store=store, writer=writer, audit=audit, logger=logger, error_reporter=error_reporter, now=self._now)

    # ---- mutations ----
    def grant(self, principal: str, duration_hours: float, *, request_id: Optional[str] = None, actor: str = "system") -> Session:
        return self.granter.grant(principal, duration_hours, request_id=request_id, actor=actor)

    def revoke(self, principal: str, *, actor: str = "system", reason: Optional[str] = None) -> Session:
        return self.revoker.revoke(principal, actor=actor, reason=reason)

    # ---- queries ----
    def list_principals(self) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for principal in self.probe.list_principals():
            session = self.store.get(principal)
            out.append(
                {
                    "principal": principal,
                    "groups": self.probe.groups(principal),
                    "has_active_grant": session is not None,
                    "session": session,
                }
            )
        return out

    def active_sessions(self) -> List[Session]:
        return [s for _p, s in sorted(self.store.list(), key=lambda kv: kv[1].expires_at)]

    def audit_tail(self, n: Optional[int] = None) -> List[AuditEntry]:
        return self.audit.tail(n or self.audit_tail_limit)

    def verify_audit(self) -> IntegrityReport:
        return self.audit.verify_integrity()

    def health(self) -> Dict[str, Any]:
        return {"status": "healthy", "timestamp": self._now(), "active_session_count": self.store.count()}
