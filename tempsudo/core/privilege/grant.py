from __future__ import annotations

import math
from datetime import timedelta
from typing import Any, Callable, Optional

from tempsudo.core.audit.models import AuditAction, AuditEntry
from tempsudo.core.clock import utc_now
from tempsudo.core.errors import ArtifactWriteError, InvalidDuration, UnknownPrincipal
from tempsudo.core.host.artifacts import is_valid_principal
from tempsudo.core.privilege.models import Session
from tempsudo.core.privilege.recording import record_audit
from tempsudo.core.privilege.store import PrivilegeStore


def validate_duration(duration_hours: Any) -> float:
    if isinstance(duration_hours, bool) or not isinstance(duration_hours, (int, float)):
        raise InvalidDuration(duration=str(duration_hours))
    hours = float(duration_hours)
    if not math.isfinite(hours) or hours <= 0:
        raise InvalidDuration(duration=str(duration_hours))
    return hours


def format_hours(hours: float) -> str:
    return f"{hours:g}"


class GrantEngine:
    """
    Validates and executes a grant: probe -> rule file -> store -> audit.

    Granting an already-elevated principal replaces its session (new expiry)
    and appends another GRANT entry; no prior revoke is needed.
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
        now: Optional[Callable[[], Any]] = None,
    ):
        self.store = store
        self.probe = probe
        self.writer = writer
        self.audit = audit
        self.logger = logger
        self.error_reporter = error_reporter
        self._now = now or utc_now

    def grant(self, principal: str, duration_hours: float, *, request_id: Optional[str] = None, actor: str = "system") -> Session:
        hours = validate_duration(duration_hours)
        principal = str(principal or "")
        # ProbeError propagates as-is: a failed lookup is not "no such user".
        if not is_valid_principal(principal) or not self.probe.exists(principal):
            raise UnknownPrincipal(principal=principal)

        with self.store.principal_lock(principal):
            replacing = principal in self.store
            granted_at = self._now()
            expires_at = granted_at + timedelta(hours=hours)
            try:
                ref = self.writer.create(principal)
            except ArtifactWriteError as e:
                if self.logger is not None:
                    self.logger.error(f"Failed to grant sudo access to {principal}: {e.context.get('error', e.user_message)}")
                raise
            except OSError as e:
                if self.logger is not None:
                    self.logger.error(f"Failed to grant sudo access to {principal}: {e}")
                raise ArtifactWriteError(principal=principal, error=str(e)) from e

            session = Session(
                principal=principal,
                artifact_ref=ref,
                granted_at=granted_at,
                expires_at=expires_at,
                request_id=request_id,
                granted_by=actor,
            )
            self.store.put(principal, session)
            if self.logger is not None:
                suffix = " (replaces the previous grant)" if replacing else ""
                self.logger.info(f"Sudo access granted to {principal} until {expires_at.isoformat()}{suffix}")

            record_audit(
                self.audit,
                AuditEntry(
                    timestamp=granted_at,
                    principal=principal,
                    action=AuditAction.GRANT,
                    details=f"Duration: {format_hours(hours)}h, Request: {request_id}",
                    actor=actor,
                ),
                logger=self.logger,
                error_reporter=self.error_reporter,
                trace_id=request_id,
            )
        return session
