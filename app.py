from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
from typing import Optional

import uvicorn

from tempsudo.core.audit.store_jsonl import AuditLog
from tempsudo.core.config import get_config
from tempsudo.core.config.models import AppConfig
from tempsudo.core.error_reporter import ErrorReporter, ErrorReporterConfig
from tempsudo.core.errors import ConfigError
from tempsudo.core.host.artifacts import SudoersArtifactWriter
from tempsudo.core.host.probe import PosixSystemProbe
from tempsudo.core.logger import setup_logging
from tempsudo.core.ops_log import OpsLogger
from tempsudo.core.privilege import ExpirySweeper, PrivilegeManager, PrivilegeStore
from tempsudo.web.api import create_app


class WebServerHandle:
    def __init__(self, *, app, host: str, port: int, logger, draining_event: threading.Event):  # noqa: ANN001
        self.app = app
        self.host = host
        self.port = port
        self.logger = logger
        self.draining_event = draining_event
        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        cfg = uvicorn.Config(self.app, host=self.host, port=self.port, log_level="info")
        self._server = uvicorn.Server(cfg)

        def run() -> None:
            assert self._server is not None
            self._server.run()

        self._thread = threading.Thread(target=run, name="tempsudo-web", daemon=True)
        self._thread.start()
        self.logger.info(f"Temporary sudo access API running on http://{self.host}:{self.port}")

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def stop(self) -> None:
        self.draining_event.set()
        if self._server is not None:
            self._server.should_exit = True
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=3.0)


def build_manager(cfg: AppConfig, *, logger, error_reporter: ErrorReporter) -> PrivilegeManager:
    pcfg = cfg.privilege
    probe = PosixSystemProbe(home_roots=pcfg.home_roots, logger=logger)
    writer = SudoersArtifactWriter(
        directory=pcfg.artifact_dir,
        prefix=pcfg.artifact_prefix,
        mode=pcfg.artifact_mode,
        visudo_path=pcfg.visudo_path,
        validate_with_visudo=pcfg.validate_with_visudo,
        logger=logger,
    )
    audit = AuditLog(path=cfg.audit.audit_log_path, logger=logger)
    return PrivilegeManager(
        store=PrivilegeStore(),
        probe=probe,
        writer=writer,
        audit=audit,
        logger=logger,
        error_reporter=error_reporter,
        audit_tail_limit=cfg.audit.tail_limit,
    )


def _warn_orphans(manager: PrivilegeManager, logger) -> None:
    # The store starts empty, so any rule file already on disk outlived a previous run.
    orphans = manager.writer.list_artifacts()
    if orphans:
        logger.warning(f"{len(orphans)} sudo rule file(s) from a previous run are not tracked: {', '.join(orphans)}")
        logger.warning("Review them with scripts/list_orphans.py.")


def main() -> None:
    ap = argparse.ArgumentParser(description="Temporary sudo access manager (grant, auto-expire, audit)")
    ap.add_argument("--root", default=".", help="Directory holding config/ and logs/.")
    ap.add_argument("--host", default=None, help="Override web.bind_host.")
    ap.add_argument("--port", type=int, default=None, help="Override web.port.")
    ap.add_argument("--once", action="store_true", help="Run a single expiry sweep and exit (no web server).")
    args = ap.parse_args()

    boot_logger = logging.getLogger("tempsudo")
    try:
        config = get_config(root=args.root, logger=boot_logger)
    except ConfigError as e:
        print(f"Configuration error: {e.user_message} {e.context}", file=sys.stderr)
        sys.exit(2)
    cfg = config.get()

    log_dir = cfg.logging.log_dir if os.path.isabs(cfg.logging.log_dir) else os.path.join(args.root, cfg.logging.log_dir)
    logger = setup_logging(log_dir, level=cfg.logging.level)
    ops = OpsLogger(path=os.path.join(log_dir, "ops.jsonl"))
    error_reporter = ErrorReporter(
        path=os.path.join(log_dir, "errors.jsonl"),
        cfg=ErrorReporterConfig(include_tracebacks=cfg.logging.include_tracebacks),
        logger=logger,
    )

    manager = build_manager(cfg, logger=logger, error_reporter=error_reporter)
    sweeper = ExpirySweeper(
        store=manager.store,
        revoker=manager.revoker,
        interval_seconds=cfg.sweeper.sweep_interval_seconds,
        logger=logger,
        error_reporter=error_reporter,
        ops_logger=ops,
    )

    if args.once:
        report = sweeper.run_once()
        logger.info(f"Sweep complete: {report.summary()}")
        sys.exit(0 if report.ok else 1)

    ops.log(trace_id="startup", event="startup", outcome="ok", details={"artifact_dir": cfg.privilege.artifact_dir, "audit_log": cfg.audit.audit_log_path})
    _warn_orphans(manager, logger)

    draining_event = threading.Event()
    fastapi_app = create_app(
        manager,
        logger=logger,
        error_reporter=error_reporter,
        allowed_origins=list(cfg.web.allowed_origins),
        draining_event=draining_event,
    )
    web = WebServerHandle(
        app=fastapi_app,
        host=args.host or cfg.web.bind_host,
        port=int(args.port or cfg.web.port),
        logger=logger,
        draining_event=draining_event,
    )

    shutdown = threading.Event()

    def _on_signal(signum, _frame) -> None:  # noqa: ANN001
        logger.info(f"Received signal {signum}; shutting down.")
        shutdown.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    if cfg.sweeper.enabled:
        sweeper.start()
        logger.info("Active sessions will be monitored and auto-expired")
    else:
        logger.warning("Expiry sweeper disabled by config: grants will not expire on their own.")
    web.start()

    try:
        while not shutdown.wait(timeout=1.0):
            if not web.is_alive():
                logger.error("Web server thread exited; shutting down.")
                break
    finally:
        web.stop()
        stopped = sweeper.stop(timeout=cfg.sweeper.stop_timeout_seconds)
        remaining = manager.store.count()
        if remaining:
            logger.warning(f"Exiting with {remaining} active session(s); their sudo rule files stay on disk.")
        ops.log(trace_id="shutdown", event="shutdown", outcome="ok" if stopped else "sweeper_timeout", details={"active_sessions": remaining})


if __name__ == "__main__":
    main()
