from __future__ import annotations

import json
import os
import threading
import time
import traceback
from dataclasses import dataclass
from typing import Any, Dict, Optional

from tempsudo.core.errors import (
    ArtifactRemovalError,
    ArtifactWriteError,
    AuditWriteError,
    ConfigError,
    ProbeError,
    TempSudoError,
)
from tempsudo.core.redaction import redact


@dataclass
class ErrorReporterConfig:
    include_tracebacks: bool = False


class ErrorReporter:
    """
    Operator-visible error channel: one redacted JSONL record per reported error.
    """

    def __init__(self, *, path: str = os.path.join("logs", "errors.jsonl"), cfg: Optional[ErrorReporterConfig] = None, logger=None):
        self.path = path
        self.cfg = cfg or ErrorReporterConfig()
        self.logger = logger
        self._lock = threading.Lock()
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)

    def report_exception(self, exc: BaseException, *, trace_id: str, subsystem: str, context: Optional[Dict[str, Any]] = None) -> TempSudoError:
        err = normalize_exception(exc, subsystem=subsystem, context=context or {})
        self.write_error(err, trace_id=trace_id, subsystem=subsystem, internal_exc=exc)
        return err

    def write_error(self, err: TempSudoError, *, trace_id: str, subsystem: str, internal_exc: Optional[BaseException] = None) -> None:
        entry: Dict[str, Any] = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "trace_id": trace_id,
            "subsystem": subsystem,
            "error_code": err.code,
            "severity": err.severity.value,
            "recoverable": bool(err.recoverable),
            "user_message": err.user_message,
            "safe_context": redact(err.context or {}),
        }
        if self.cfg.include_tracebacks and internal_exc is not None:
            entry["internal_context"] = {"traceback": "".join(traceback.format_exception(type(internal_exc), internal_exc, internal_exc.__traceback__, limit=30))}
        line = json.dumps(entry, ensure_ascii=False, default=str)
        try:
            with self._lock:
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
        except OSError as e:
            # Last resort: the process log is still operator-visible.
            if self.logger is not None:
                self.logger.error(f"Failed to write error report ({err.code}): {e}")

    def tail(self, n: int = 20) -> list[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                lines = f.readlines()
            return [json.loads(x) for x in lines[-max(1, int(n)) :]]
        except (OSError, ValueError):
            return []


def normalize_exception(exc: BaseException, *, subsystem: str, context: Dict[str, Any]) -> TempSudoError:
    if isinstance(exc, TempSudoError):
        return exc

    msg = str(exc)
    ctx = dict(context or {})

    # Map foreign exceptions by subsystem hint
    if subsystem == "config":
        return ConfigError("Configuration error.", error=msg, **ctx)
    if subsystem == "probe":
        return ProbeError(error=msg, **ctx)
    if subsystem == "artifact.create":
        return ArtifactWriteError(error=msg, **ctx)
    if subsystem == "artifact.remove":
        return ArtifactRemovalError(error=msg, **ctx)
    if subsystem == "audit":
        return AuditWriteError(error=msg, **ctx)

    return TempSudoError(code="unknown_error", user_message="Something went wrong.", context=ctx)
