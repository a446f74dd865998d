from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PrivilegeConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    artifact_dir: str = "/etc/sudoers.d"
    artifact_prefix: str = Field(default="temp_sudo_", min_length=1)
    artifact_mode: int = Field(default=0o440, ge=0, le=0o777)
    validate_with_visudo: bool = True
    visudo_path: str = "visudo"
    home_roots: List[str] = Field(default_factory=lambda: ["/home", "/Users"])

    @field_validator("artifact_prefix")
    @classmethod
    def _prefix_has_no_dot(cls, v: str) -> str:
        # sudo ignores include files whose names contain '.'
        if "." in v or "/" in v:
            raise ValueError("artifact_prefix must not contain '.' or '/'")
        return v


class AuditConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    audit_log_path: str = "/var/log/sudo-access-manager.log"
    tail_limit: int = Field(default=100, ge=1, le=10000)


class SweeperConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    enabled: bool = True
    sweep_interval_seconds: float = Field(default=60.0, gt=0)
    stop_timeout_seconds: float = Field(default=5.0, ge=0)


class WebConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    bind_host: str = "127.0.0.1"
    port: int = Field(default=3001, ge=1, le=65535)
    allowed_origins: List[str] = Field(default_factory=list)

    @field_validator("allowed_origins")
    @classmethod
    def _no_wildcard(cls, v: List[str]) -> List[str]:
        if any(o == "*" for o in v):
            raise ValueError("Wildcard CORS origins are not allowed.")
        return v


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    log_dir: str = "logs"
    level: str = "INFO"
    include_tracebacks: bool = False


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    privilege: PrivilegeConfig = Field(default_factory=PrivilegeConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    sweeper: SweeperConfig = Field(default_factory=SweeperConfig)
    web: WebConfig = Field(default_factory=WebConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
