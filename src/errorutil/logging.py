from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

from rich.logging import RichHandler

from .config import ReporterConfig
from .types import LogRecord


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class JsonlEventLogger:
    """
    Writes reporter events as JSON lines, a local audit trail of what was sent.

    Each line is a dict that includes at least:
    - time_utc
    - run_id
    - event
    - level
    - severity, context_type, object_type (when a record is involved)
    - exc_type, exc_msg (optional)

    Usage example
    -------------
        ev = JsonlEventLogger(path=Path("logs/events_abc.jsonl"), run_id="abc")
        ev.write(event="submission_failed", level="ERROR", record=rec, exc=exc)
    """
    path: Path
    run_id: str
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def write(
        self,
        *,
        event: str,
        level: str,
        record: Optional[LogRecord] = None,
        exc: Optional[BaseException] = None,
        message: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        payload: dict[str, Any] = {
            "time_utc": _utc_now_iso(),
            "run_id": self.run_id,
            "event": event,
            "level": level,
        }
        if record is not None:
            payload["severity"] = record.severity.value
            payload["context_type"] = record.context_type
            payload["object_type"] = record.object_type
            payload["error_type"] = record.error_type
        if message:
            payload["message"] = message
        if context:
            payload["context"] = dict(context)
        if exc is not None:
            payload["exc_type"] = type(exc).__name__
            payload["exc_msg"] = str(exc)

        line = json.dumps(payload, ensure_ascii=False, default=str) + "\n"
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line)


class _RunContextFilter(logging.Filter):
    def __init__(self, *, run_id: str) -> None:
        super().__init__()
        self._run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        # Ensure `run_id` exists for formatter
        if not hasattr(record, "run_id"):
            setattr(record, "run_id", self._run_id)
        return True


def configure_logging(*, cfg: ReporterConfig) -> tuple[logging.Logger, Optional[JsonlEventLogger]]:
    """
    Configure console (+ optional file) logging for the ``errorutil`` namespace.

    A file handler and a JSONL event logger are only created when
    ``cfg.log_dir`` is set.

    Returns
    -------
    logger
        The configured "errorutil" logger.
    event_logger
        JsonlEventLogger if cfg.write_jsonl and cfg.log_dir, else None.

    Usage example
    -------------
        logger, event_logger = configure_logging(cfg=cfg)
        reporter = ErrorReporter(cfg=cfg, sink=sink, event_logger=event_logger)
    """
    run_id = cfg.resolved_run_id()

    logger = logging.getLogger("errorutil")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.filters.clear()
    logger.propagate = False

    logger.addFilter(_RunContextFilter(run_id=run_id))

    console_handler = RichHandler(show_path=False, rich_tracebacks=False)
    console_handler.setLevel(cfg.console_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    event_logger = None
    if cfg.log_dir is not None:
        log_dir = cfg.log_dir
        log_dir.mkdir(parents=True, exist_ok=True)

        # File handler (always plain)
        file_handler = logging.FileHandler(log_dir / f"run_{run_id}.log", encoding="utf-8")
        file_handler.setLevel(cfg.file_level)
        # Filters on a logger do not run for child loggers, so the handler needs its own.
        file_handler.addFilter(_RunContextFilter(run_id=run_id))
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)sZ | run=%(run_id)s | %(name)s | %(levelname)s | %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

        if cfg.write_jsonl:
            event_logger = JsonlEventLogger(path=log_dir / f"events_{run_id}.jsonl", run_id=run_id)

    logger.debug("Logging configured (run_id=%s, log_dir=%s)", run_id, cfg.log_dir)
    return logger, event_logger
