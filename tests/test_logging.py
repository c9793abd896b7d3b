from __future__ import annotations

import json
import logging
from pathlib import Path

from errorutil.config import ReporterConfig
from errorutil.logging import JsonlEventLogger, configure_logging
from errorutil.types import LogRecord, Severity


def _record() -> LogRecord:
    return LogRecord(
        object_type="Account",
        record_url="https://example.org",
        severity=Severity.HIGH,
        context_type="ValueError",
        error_type="JavaScript Error",
        full_message="nope",
    )


def test_jsonl_event_logger_writes_valid_lines(tmp_path: Path) -> None:
    path = tmp_path / "logs" / "events_abc.jsonl"
    ev = JsonlEventLogger(path=path, run_id="abc")

    ev.write(event="record_submitted", level="INFO", record=_record())
    ev.write(event="fallback_failed", level="ERROR", exc=ValueError("nope"), context={"attempt": 2})

    lines = path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2

    a = json.loads(lines[0])
    assert a["run_id"] == "abc"
    assert a["event"] == "record_submitted"
    assert a["level"] == "INFO"
    assert a["severity"] == "High"
    assert a["context_type"] == "ValueError"
    assert a["object_type"] == "Account"
    assert "time_utc" in a

    b = json.loads(lines[1])
    assert b["event"] == "fallback_failed"
    assert b["exc_type"] == "ValueError"
    assert b["exc_msg"] == "nope"
    assert b["context"] == {"attempt": 2}
    assert "severity" not in b


def test_configure_logging_without_log_dir_has_console_only() -> None:
    cfg = ReporterConfig(run_id="testrun", console_level=logging.CRITICAL)

    logger, event_logger = configure_logging(cfg=cfg)

    assert event_logger is None
    assert logger.name == "errorutil"
    assert len(logger.handlers) == 1
    assert not any(isinstance(h, logging.FileHandler) for h in logger.handlers)


def test_configure_logging_creates_log_file_and_writes(tmp_path: Path) -> None:
    cfg = ReporterConfig(
        log_dir=tmp_path / "logs",
        run_id="testrun",
        write_jsonl=False,
        console_level=logging.CRITICAL,  # keep test output quiet
        file_level=logging.DEBUG,
    )

    logger, event_logger = configure_logging(cfg=cfg)
    assert event_logger is None

    log_path = cfg.log_dir / "run_testrun.log"
    assert log_path.exists()

    logging.getLogger("errorutil.reporter").warning("hello world")

    text = log_path.read_text(encoding="utf-8")
    assert "hello world" in text
    assert "run=testrun" in text
    assert "errorutil.reporter" in text


def test_configure_logging_returns_event_logger_when_enabled(tmp_path: Path) -> None:
    cfg = ReporterConfig(
        log_dir=tmp_path / "logs",
        run_id="testrun",
        write_jsonl=True,
        console_level=logging.CRITICAL,
    )
    _, event_logger = configure_logging(cfg=cfg)
    assert event_logger is not None
    assert event_logger.path == cfg.log_dir / "events_testrun.jsonl"
    assert event_logger.run_id == "testrun"


def test_configure_logging_is_idempotent(tmp_path: Path) -> None:
    cfg = ReporterConfig(log_dir=tmp_path / "logs", run_id="testrun", console_level=logging.CRITICAL)
    configure_logging(cfg=cfg)
    logger, _ = configure_logging(cfg=cfg)
    assert len(logger.handlers) == 2
