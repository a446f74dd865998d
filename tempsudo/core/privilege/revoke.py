from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional

from tempsudo.core.audit.models import AuditAction, AuditEntry
from tempsudo.core.clock import utc_now
from tempsudo.core.errors import ArtifactRemovalError, NoActiveSession
from tempsudo.core.privilege.models import Session
from tempsudo.core.privilege.recording import record_audit
from tempsudo.core.privilege.store import PrivilegeStore

MANUAL_REASON = "Manual revocation"
SCHEDULER_ACTOR = "scheduler"
EXPIRED_REASON = "expired"


class RevokeEngine:
    """
    Removes a principal's rule file, then its session, then records the revoke.

    If the rule file cannot be removed the session stays in the store (so the
    next sweep or a manual call retries) and no revoke entry is written.
    """

    def __init__(
        self,
        *,
        store: PrivilegeStore,
        writer: Any,
        audit: Any,
        logger=None,
        error_reporter: Any = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.writer = writer
        self.audit = audit
        self.logger = logger
        self.error_reporter = error_reporter
        self._now = now or utc_now

    def revoke(self, principal: str, actor: str = "system", reason: Optional[str] = None, *, automatic: bool = False) -> Session:
        with self.store.principal_lock(principal):
            session = self.store.get(principal)
            if session is None:
                raise NoActiveSession(principal=principal)
            return self._revoke_locked(session, actor=actor, reason=reason or MANUAL_REASON, automatic=automatic)

    def revoke_if_expired(self, principal: str, *, now: datetime, actor: str = SCHEDULER_ACTOR, reason: str = EXPIRED_REASON) -> Optional[Session]:
        """
        Automatic revoke, decided under the principal lock.

        The expiry check is re-done on the current session, so a grant that
        replaced the session after the sweep took its snapshot is left alone.
        """
        with self.store.principal_lock(principal):
            session = self.store.get(principal)
            if session is None or not session.is_expired(now):
                return None
            return self._revoke_locked(session, actor=actor, reason=reason, automatic=True)

    def _revoke_locked(self, session: Session, *, actor: str, reason: str, automatic: bool) -> Session:
        principal = session.principal
        try:
            self.writer.remove(session.artifact_ref)
        except ArtifactRemovalError as e:
            if self.logger is not None:
                self.logger.error(f"Failed to revoke sudo access for {principal}: {e.context.get('error', e.user_message)}")
            raise
        except OSError as e:
            if self.logger is not None:
                self.logger.error(f"Failed to revoke sudo access for {principal}: {e}")
            raise ArtifactRemovalError(principal=principal, path=session.artifact_ref, error=str(e)) from e

        self.store.remove(principal)
        if self.logger is not None:
            self.logger.info(f"Sudo access revoked for {principal} ({reason})")

        record_audit(
            self.audit,
            AuditEntry(
                timestamp=self._now(),
                principal=principal,
                action=AuditAction.AUTO_REVOKE if automatic else AuditAction.REVOKE,
                details=reason,
                actor=actor,
            ),
            logger=self.logger,
            error_reporter=self.error_reporter,
        )
        return session
