"""
errorutil: format errors into structured records and ship them to a log backend.

Key primitives
--------------
- log_error() / log_error_high(): fire-and-forget logging at Med / High severity
- ErrorReporter: builds records, submits them, handles the single fallback
- ReporterConfig / FieldMap: channel, envelope and field identifier mapping
- HttpLogSink: httpx-based sink posting envelopes to an HTTP endpoint
- configure_logging(): console + file logging, optional JSONL event logger
- reported() / guard(): report exceptions raised by a block or callable
"""

from .config import ConfigError, FieldMap, ReporterConfig, load_config
from .guards import guard, reported
from .logging import JsonlEventLogger, configure_logging
from .reporter import (
    ErrorReporter,
    current_record_url,
    get_reporter,
    log_error,
    log_error_high,
    set_reporter,
)
from .transport import HttpLogSink, LogSink
from .types import ErrorUtilError, LogRecord, ResponseError, Severity
from .version import __version__

__all__ = [
    "ConfigError",
    "ErrorReporter",
    "ErrorUtilError",
    "FieldMap",
    "HttpLogSink",
    "JsonlEventLogger",
    "LogRecord",
    "LogSink",
    "ReporterConfig",
    "ResponseError",
    "Severity",
    "__version__",
    "configure_logging",
    "current_record_url",
    "get_reporter",
    "guard",
    "load_config",
    "log_error",
    "log_error_high",
    "reported",
    "set_reporter",
]
