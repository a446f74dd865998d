from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from tempsudo.core.clock import utc_now
from tempsudo.core.errors import AuditWriteError


class AuditAction(str, Enum):
    GRANT = "GRANT"
    REVOKE = "REVOKE"
    AUTO_REVOKE = "AUTO_REVOKE"


class AuditEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    timestamp: datetime = Field(default_factory=utc_now)
    principal: str = Field(min_length=1)
    action: AuditAction
    details: str = ""
    actor: str = "system"


@dataclass(frozen=True)
class AuditAppendResult:
    """Outcome of AuditLog.append; a failed append carries the error instead of raising."""

    ok: bool
    entry: AuditEntry
    error: Optional[AuditWriteError] = None


class IntegrityReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ok: bool
    checked: int
    broken_at_line: Optional[int] = None
    message: str = ""
    head_hash: Optional[str] = None
