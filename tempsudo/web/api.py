from __future__ import annotations

import threading
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tempsudo.core.audit.models import AuditEntry, IntegrityReport
from tempsudo.core.error_reporter import ErrorReporter
from tempsudo.core.errors import TempSudoError, ValidationError
from tempsudo.core.privilege.grant import format_hours
from tempsudo.core.privilege.manager import PrivilegeManager
from tempsudo.core.privilege.models import Session
from tempsudo.web.models import (
    GrantRequest,
    GrantResponse,
    HealthResponse,
    PrincipalStatus,
    RevokeRequest,
    RevokeResponse,
)

STATUS_BY_CODE = {
    "invalid_duration": 400,
    "unknown_principal": 400,
    "validation_error": 400,
    "no_active_session": 404,
}


def create_app(
    manager: PrivilegeManager,
    *,
    logger=None,
    error_reporter: Optional[ErrorReporter] = None,
    allowed_origins: Optional[List[str]] = None,
    draining_event: Optional[threading.Event] = None,
) -> FastAPI:
    app = FastAPI(title="Temporary Sudo Access Manager", version="0.1.0")
    reporter = error_reporter

    if allowed_origins:
        if any(o == "*" for o in allowed_origins):
            raise ValueError("Wildcard CORS origins are not allowed.")
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=False,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    @app.exception_handler(TempSudoError)
    async def tempsudo_error_handler(request: Request, exc: TempSudoError):
        if reporter is not None:
            reporter.write_error(exc, trace_id=str(exc.context.get("principal") or "web"), subsystem="web")
        code = STATUS_BY_CODE.get(exc.code, 500)
        return JSONResponse(status_code=code, content={"detail": exc.user_message, "code": exc.code})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        if reporter is not None:
            reporter.write_error(ValidationError(errors=[str(e.get("msg", "")) for e in exc.errors()]), trace_id="web", subsystem="web")
        return JSONResponse(status_code=400, content={"detail": "Invalid request.", "code": "validation_error"})

    def _refuse_if_draining() -> None:
        if draining_event is not None and draining_event.is_set():
            raise HTTPException(status_code=503, detail="Shutting down")

    # Blocking host calls: plain `def` endpoints run in the threadpool, so
    # requests for different users proceed concurrently.
    @app.get("/api/system/users", response_model=List[PrincipalStatus])
    def system_users():
        return manager.list_principals()

    @app.post("/api/sudo/grant", response_model=GrantResponse)
    def grant(req: GrantRequest):
        _refuse_if_draining()
        session = manager.grant(req.principal, req.duration_hours, request_id=req.request_id, actor=req.actor)
        return GrantResponse(
            success=True,
            message=f"Sudo access granted to {session.principal} for {format_hours(float(req.duration_hours))} hours",
            expires_at=session.expires_at,
        )

    @app.post("/api/sudo/revoke", response_model=RevokeResponse)
    def revoke(req: RevokeRequest):
        _refuse_if_draining()
        session = manager.revoke(req.principal, actor=req.actor, reason=req.reason)
        return RevokeResponse(success=True, message=f"Sudo access revoked for {session.principal}")

    @app.get("/api/sudo/active", response_model=List[Session])
    def active():
        return manager.active_sessions()

    @app.get("/api/sudo/logs", response_model=List[AuditEntry])
    def logs():
        return manager.audit_tail()

    @app.get("/api/sudo/logs/verify", response_model=IntegrityReport)
    def logs_verify():
        return manager.verify_audit()

    @app.get("/api/health", response_model=HealthResponse)
    def health():
        return manager.health()

    return app
