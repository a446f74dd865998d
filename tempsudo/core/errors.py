from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from tempsudo.core.redaction import redact


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class TempSudoError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": redact(self.context or {}),
        }


# ---- Caller-facing rejections (nothing attempted, no partial state) ----
class InvalidDuration(TempSudoError):
    def __init__(self, user_message: str = "Duration must be a positive number of hours.", **ctx: Any):
        super().__init__("invalid_duration", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class UnknownPrincipal(TempSudoError):
    def __init__(self, user_message: str = "User does not exist on system.", **ctx: Any):
        super().__init__("unknown_principal", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class NoActiveSession(TempSudoError):
    def __init__(self, user_message: str = "No active sudo session found.", **ctx: Any):
        super().__init__("no_active_session", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class ValidationError(TempSudoError):
    def __init__(self, user_message: str = "Invalid request.", **ctx: Any):
        super().__init__("validation_error", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


# ---- Host failures (store left in its pre-call state) ----
class ProbeError(TempSudoError):
    def __init__(self, user_message: str = "Failed to query the host for the user.", **ctx: Any):
        super().__init__("probe_error", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class ArtifactWriteError(TempSudoError):
    def __init__(self, user_message: str = "Failed to grant sudo access.", **ctx: Any):
        super().__init__("artifact_write_error", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class ArtifactRemovalError(TempSudoError):
    def __init__(self, user_message: str = "Failed to revoke sudo access.", **ctx: Any):
        super().__init__("artifact_removal_error", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


# ---- Side channel (reported to operators, never to grant/revoke callers) ----
class AuditWriteError(TempSudoError):
    def __init__(self, user_message: str = "Failed to write to the audit log.", **ctx: Any):
        super().__init__("audit_write_error", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class ConfigError(TempSudoError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)
