from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from tempsudo.core.privilege.models import Session


class GrantRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    principal: str = Field(min_length=1, max_length=64, validation_alias=AliasChoices("principal", "username"))
    duration_hours: float = Field(validation_alias=AliasChoices("duration_hours", "duration"))
    request_id: Optional[str] = Field(default=None, max_length=128, validation_alias=AliasChoices("request_id", "requestId"))
    actor: str = Field(default="web", min_length=1, max_length=128)


class GrantResponse(BaseModel):
    success: bool
    message: str
    expires_at: datetime


class RevokeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    principal: str = Field(min_length=1, max_length=64, validation_alias=AliasChoices("principal", "username"))
    reason: Optional[str] = Field(default=None, max_length=512)
    actor: str = Field(default="web", min_length=1, max_length=128)


class RevokeResponse(BaseModel):
    success: bool
    message: str


class PrincipalStatus(BaseModel):
    principal: str
    groups: List[str]
    has_active_grant: bool
    session: Optional[Session] = None


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    active_session_count: int
