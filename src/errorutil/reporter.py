from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine, Optional

from rich.console import Console

from .config import ConfigError, ReporterConfig
from .formatting import build_envelope, build_record
from .logging import JsonlEventLogger
from .payloads import UnrecognizedPayload, classify_payload
from .transport import HttpLogSink, LogSink
from .types import Severity

# Location of the page/request being served; set per request or task.
current_record_url: ContextVar[Optional[str]] = ContextVar("errorutil_record_url", default=None)


async def _cancel_pending() -> None:
    current = asyncio.current_task()
    tasks = [task for task in asyncio.all_tasks() if task is not current]
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


class _BackgroundLoop:
    """Private event loop on a daemon thread, for callers without a running loop."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None

    def submit(self, coro: Coroutine[Any, Any, Any]) -> concurrent.futures.Future:
        with self._lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(target=loop.run_forever, name="errorutil-reporter", daemon=True)
                thread.start()
                self._loop, self._thread = loop, thread
            loop = self._loop
        return asyncio.run_coroutine_threadsafe(coro, loop)

    def close(self) -> None:
        """Cancel whatever is still running on the loop, then stop it."""
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop, self._thread = None, None
        if loop is None or thread is None:
            return
        asyncio.run_coroutine_threadsafe(_cancel_pending(), loop).result()
        loop.call_soon_threadsafe(loop.stop)
        thread.join()
        loop.close()


@dataclass
class ErrorReporter:
    """
    Formats errors into log records and forwards them to a log sink.

    ``log_error`` and ``log_error_high`` are fire-and-forget: they return
    before the submission settles and never raise. A failed submission is
    re-logged once at Med severity; if that fails too, the failure goes to the
    diagnostic console and is dropped.

    Usage example
    -------------
        reporter = ErrorReporter(sink=HttpLogSink("https://logs.example.org/ingest"))
        try:
            do_work()
        except Exception as exc:
            reporter.log_error(exc, "billing.sync", "Invoice__c")
    """

    sink: LogSink
    cfg: ReporterConfig = field(default_factory=ReporterConfig)
    location: Optional[Callable[[], Optional[str]]] = None
    console: Console = field(default_factory=lambda: Console(stderr=True))
    event_logger: Optional[JsonlEventLogger] = None
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("errorutil.reporter"))

    def __post_init__(self) -> None:
        """Initialize in-flight bookkeeping."""
        self._tasks: set[asyncio.Task] = set()
        self._futures: set[concurrent.futures.Future] = set()
        self._futures_lock = threading.Lock()
        self._background = _BackgroundLoop()

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def log_error(self, payload: Any, context_type: Optional[str] = None, object_type: Optional[str] = None) -> None:
        """Log an error with Med severity. Returns immediately."""
        self._dispatch(payload, Severity.MED, context_type, object_type)

    def log_error_high(self, payload: Any, context_type: Optional[str] = None, object_type: Optional[str] = None) -> None:
        """Log an error with High severity. Returns immediately."""
        self._dispatch(payload, Severity.HIGH, context_type, object_type)

    async def submit(
        self,
        payload: Any,
        severity: Severity,
        context_type: Optional[str] = None,
        object_type: Optional[str] = None,
        *,
        record_url: Optional[str] = None,
    ) -> Any:
        """
        Build one record from `payload` and await the sink.

        Returns the sink's acknowledgement, or None when an unrecognized
        payload is ignored. Raises whatever the sink raises.
        """
        url = record_url if record_url is not None else self.current_location()
        kind = classify_payload(payload)

        if isinstance(kind, UnrecognizedPayload):
            if not self.cfg.log_unrecognized:
                self.logger.debug("Ignoring error payload of unrecognized type %s", type(payload).__name__)
                return None
            self.logger.warning("Logging error payload of unrecognized type %s", type(payload).__name__)

        record = build_record(
            kind,
            severity=severity,
            context_type=context_type,
            object_type=object_type,
            record_url=url,
        )
        if isinstance(kind, UnrecognizedPayload) and self.event_logger is not None:
            self.event_logger.write(event="payload_unrecognized", level="WARNING", record=record)

        envelope = build_envelope(record, self.cfg)
        try:
            ack = await self.sink(envelope)
        except Exception as exc:
            self.logger.warning(
                "Log submission failed: %s (%s)",
                str(exc),
                type(exc).__name__,
            )
            if self.event_logger is not None:
                self.event_logger.write(event="submission_failed", level="WARNING", record=record, exc=exc)
            raise

        self.logger.debug("Submitted %s record (context=%s)", record.severity.value, record.context_type)
        if self.event_logger is not None:
            self.event_logger.write(event="record_submitted", level="INFO", record=record)
        return ack

    def current_location(self) -> str:
        """Return the record URL for a call made now."""
        if self.location is not None:
            try:
                value = self.location()
            except Exception as exc:
                self.logger.warning("Location provider failed: %s (%s)", str(exc), type(exc).__name__)
                value = None
            if value is not None:
                return value
        return current_record_url.get() or self.cfg.record_url

    # ------------------------------------------------------------------
    # In-flight submissions
    # ------------------------------------------------------------------

    async def drain(self) -> None:
        """Wait for submissions scheduled on the running event loop."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for submissions started outside an event loop.

        Returns True if all of them settled within `timeout`.
        """
        with self._futures_lock:
            pending = list(self._futures)
        if not pending:
            return True
        _, not_done = concurrent.futures.wait(pending, timeout=timeout)
        return not not_done

    def close(self, timeout: Optional[float] = None) -> None:
        """
        Flush background submissions and stop the background loop.

        Submissions still running after `timeout` are cancelled and dropped.
        A later ``log_error`` starts a fresh background loop.
        """
        if not self.flush(timeout):
            with self._futures_lock:
                unfinished = list(self._futures)
            self.logger.warning("Cancelling %d unfinished log submission(s)", len(unfinished))
            for future in unfinished:
                future.cancel()
        self._background.close()
        with self._futures_lock:
            self._futures.clear()

    def pending(self) -> int:
        """Return the number of submissions still in flight."""
        with self._futures_lock:
            return len(self._tasks) + len(self._futures)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _dispatch(self, payload: Any, severity: Severity, context_type: Optional[str], object_type: Optional[str]) -> None:
        coro = self._report(payload, severity, context_type, object_type, self.current_location())
        try:
            self._schedule(coro)
        except Exception as exc:
            coro.close()
            self.logger.error("Could not schedule log submission: %s (%s)", str(exc), type(exc).__name__)
            self.console.print(f"[errorutil] could not log error: {type(exc).__name__}: {exc}", markup=False)

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            future = self._background.submit(coro)
            with self._futures_lock:
                self._futures.add(future)
            future.add_done_callback(self._forget_future)
            return

        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _forget_future(self, future: concurrent.futures.Future) -> None:
        with self._futures_lock:
            self._futures.discard(future)

    async def _report(
        self,
        payload: Any,
        severity: Severity,
        context_type: Optional[str],
        object_type: Optional[str],
        url: str,
    ) -> None:
        try:
            await self.submit(payload, severity, context_type, object_type, record_url=url)
        except Exception as failure:
            try:
                await self.submit(
                    failure,
                    Severity.MED,
                    self.cfg.fallback_context_type,
                    self.cfg.fallback_object_type,
                    record_url=url,
                )
            except Exception as exc:
                self.logger.error("Fallback log submission failed: %s (%s)", str(exc), type(exc).__name__)
                if self.event_logger is not None:
                    self.event_logger.write(event="fallback_failed", level="ERROR", exc=exc)
                self.console.print(f"[errorutil] could not log error: {type(exc).__name__}: {exc}", markup=False)


_default_reporter: Optional[ErrorReporter] = None
_default_lock = threading.Lock()


def set_reporter(reporter: Optional[ErrorReporter]) -> None:
    """Install (or clear, with None) the process-wide default reporter."""
    global _default_reporter
    with _default_lock:
        _default_reporter = reporter


def get_reporter() -> ErrorReporter:
    """
    Return the default reporter, creating it from the environment if needed.

    The environment prefix is ``ERRORUTIL_``; ``ERRORUTIL_ENDPOINT_URL`` must
    be set when no reporter was installed with ``set_reporter``.
    """
    global _default_reporter
    with _default_lock:
        if _default_reporter is None:
            cfg = ReporterConfig.from_env(default=ReporterConfig(env_prefix="ERRORUTIL_"))
            if cfg.endpoint_url is None:
                raise ConfigError(
                    "No default reporter. Call set_reporter() or set ERRORUTIL_ENDPOINT_URL."
                )
            _default_reporter = ErrorReporter(sink=HttpLogSink(cfg.endpoint_url, timeout=cfg.timeout), cfg=cfg)
        return _default_reporter


def _default_or_console() -> Optional[ErrorReporter]:
    try:
        return get_reporter()
    except ConfigError as exc:
        logging.getLogger("errorutil.reporter").error("%s", exc)
        Console(stderr=True).print(f"[errorutil] {exc}", markup=False)
        return None


def log_error(payload: Any, context_type: Optional[str] = None, object_type: Optional[str] = None) -> None:
    """Log an error with Med severity through the default reporter."""
    reporter = _default_or_console()
    if reporter is not None:
        reporter.log_error(payload, context_type, object_type)


def log_error_high(payload: Any, context_type: Optional[str] = None, object_type: Optional[str] = None) -> None:
    """Log an error with High severity through the default reporter."""
    reporter = _default_or_console()
    if reporter is not None:
        reporter.log_error_high(payload, context_type, object_type)
