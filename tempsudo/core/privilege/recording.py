from __future__ import annotations

from typing import Any, Optional

from tempsudo.core.audit.models import AuditAppendResult, AuditEntry


def record_audit(audit: Any, entry: AuditEntry, *, logger=None, error_reporter: Any = None, trace_id: Optional[str] = None) -> AuditAppendResult:
    """
    Append to the audit log and route a failed append to the operator channels.

    Never raises: the privilege change already happened and stands on its own.
    """
    result = audit.append(entry)
    if result.ok:
        return result
    err = result.error
    code = getattr(err, "code", "audit_write_error")
    if logger is not None:
        logger.error(f"Audit write failed for {entry.action.value} {entry.principal}: {getattr(err, 'context', {}).get('error', code)}")
    if error_reporter is not None and err is not None:
        error_reporter.write_error(err, trace_id=trace_id or entry.principal, subsystem="audit")
    return result
