from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Session(BaseModel):
    """
    One principal's active elevated-privilege grant.

    Sessions are immutable: a re-grant builds a new Session and replaces the
    stored one wholesale.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    principal: str = Field(min_length=1)
    artifact_ref: str = Field(min_length=1)
    granted_at: datetime
    expires_at: datetime
    request_id: Optional[str] = None
    granted_by: str = "system"

    @model_validator(mode="after")
    def _expiry_after_grant(self) -> "Session":
        if self.expires_at <= self.granted_at:
            raise ValueError("expires_at must be after granted_at")
        return self

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


class SweepFailure(BaseModel):
    model_config = ConfigDict(extra="forbid")

    principal: str
    code: str
    message: str

class SweepReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    started_at: datetime
    checked: int = 0
    revoked: List[str] = Field(default_factory=list)
    failures: List[SweepFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def summary(self) -> Dict[str, Any]:
        return {"checked": self.checked, "revoked": list(self.revoked), "failed": [f.principal for f in self.failures]}
