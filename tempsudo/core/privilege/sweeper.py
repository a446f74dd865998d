from __future__ import annotations

import threading
from datetime import datetime
from typing import Any, Callable, Optional

from tempsudo.core.clock import utc_now
from tempsudo.core.error_reporter import normalize_exception
from tempsudo.core.errors import TempSudoError
from tempsudo.core.privilege.models import SweepFailure, SweepReport
from tempsudo.core.privilege.revoke import EXPIRED_REASON, SCHEDULER_ACTOR, RevokeEngine
from tempsudo.core.privilege.store import PrivilegeStore


class ExpirySweeper:
    """
    Background ticker that revokes every session past its expiry.

    Owns one daemon thread between start() and stop(). A tick that has begun
    always runs to completion; stop() only prevents the next one. State lives
    in the store, not here.
    """

    def __init__(
        self,
        *,
        store: PrivilegeStore,
        revoker: RevokeEngine,
        interval_seconds: float = 60.0,
        logger=None,
        error_reporter: Any = None,
        ops_logger: Any = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.store = store
        self.revoker = revoker
        self.interval_seconds = float(interval_seconds)
        self.logger = logger
        self.error_reporter = error_reporter
        self.ops_logger = ops_logger
        self._now = now or utc_now
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_report: Optional[SweepReport] = None
        self._report_lock = threading.Lock()

    # ---------- lifecycle ----------
    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="expiry-sweeper", daemon=True)
        self._thread.start()
        self._ops("sweeper_started", "ok", {"interval_seconds": self.interval_seconds})
        if self.logger is not None:
            self.logger.info(f"Expiry sweeper started (every {self.interval_seconds:g}s)")

    def stop(self, timeout: float = 5.0) -> bool:
        """Stop scheduling ticks; returns False if an in-flight tick outlived `timeout`."""
        self._stop.set()
        t = self._thread
        if t is not None and t.is_alive() and t is not threading.current_thread():
            t.join(timeout=timeout)
        stopped = t is None or not t.is_alive()
        self._ops("sweeper_stopped", "ok" if stopped else "timeout", {})
        return stopped

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()

    @property
    def last_report(self) -> Optional[SweepReport]:
        with self._report_lock:
            return self._last_report

    # ---------- sweep ----------
    def run_once(self, now: Optional[datetime] = None) -> SweepReport:
        now = now or self._now()
        report = SweepReport(started_at=now)
        for principal, session in self.store.list():
            report.checked += 1
            if not session.is_expired(now):
                continue
            try:
                revoked = self.revoker.revoke_if_expired(principal, now=now, actor=SCHEDULER_ACTOR, reason=EXPIRED_REASON)
            except TempSudoError as e:
                self._record_failure(report, principal, e, e)
                continue
            except Exception as e:  # noqa: BLE001
                err = normalize_exception(e, subsystem="sweeper", context={"principal": principal, "error": str(e)})
                self._record_failure(report, principal, err, e)
                continue
            if revoked is not None:
                report.revoked.append(principal)
        with self._report_lock:
            self._last_report = report
        if report.revoked or report.failures:
            self._ops("sweep", "ok" if report.ok else "partial", report.summary())
        return report

    def _run(self) -> None:
        while not self._stop.wait(timeout=self.interval_seconds):
            try:
                self.run_once()
            except Exception as e:  # noqa: BLE001
                # Keep ticking; a broken tick must not end enforcement.
                if self.logger is not None:
                    self.logger.error(f"Expiry sweep failed: {e}")

    # ---- internals ----
    def _record_failure(self, report: SweepReport, principal: str, err: TempSudoError, exc: BaseException) -> None:
        report.failures.append(SweepFailure(principal=principal, code=err.code, message=err.user_message))
        if self.logger is not None:
            self.logger.warning(f"Auto-revoke failed for {principal}: {err.code}")
        if self.error_reporter is not None:
            self.error_reporter.write_error(err, trace_id="sweep", subsystem="sweeper", internal_exc=exc)

    def _ops(self, event: str, outcome: str, details: dict) -> None:
        if self.ops_logger is None:
            return
        try:
            self.ops_logger.log(trace_id="sweeper", event=event, outcome=outcome, details=details)
        except OSError as e:
            if self.logger is not None:
                self.logger.warning(f"Ops log write failed: {e}")
