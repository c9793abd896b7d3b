from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Iterator, Optional, TypeVar

from .reporter import ErrorReporter
from .types import Severity

T = TypeVar("T")


def _send(reporter: ErrorReporter, exc: BaseException, severity: Severity, context_type: str, object_type: Optional[str]) -> None:
    if severity == Severity.HIGH:
        reporter.log_error_high(exc, context_type, object_type)
    else:
        reporter.log_error(exc, context_type, object_type)


@contextmanager
def reported(
    reporter: ErrorReporter,
    context_type: str,
    object_type: Optional[str] = None,
    *,
    severity: Severity = Severity.MED,
    suppress: bool = False,
) -> Iterator[None]:
    """
    Context manager that logs any exception raised inside the block.

    Behavior
    --------
    - suppress=False: exception is logged, then re-raised.
    - suppress=True: exception is logged and swallowed; caller continues after the block.

    Only ``Exception`` subclasses are logged; ``KeyboardInterrupt`` and friends pass through.

    Usage example
    -------------
        with reported(reporter, "sync_accounts", "Account", severity=Severity.HIGH):
            sync_accounts()
    """
    try:
        yield
    except Exception as exc:
        _send(reporter, exc, severity, context_type, object_type)
        if not suppress:
            raise


def guard(
    reporter: ErrorReporter,
    context_type: str,
    fn: Callable[[], T],
    *,
    object_type: Optional[str] = None,
    severity: Severity = Severity.MED,
    default: Optional[T] = None,
) -> Optional[T]:
    """
    Execute a callable, logging and swallowing any exception it raises.

    Returns
    -------
    value
        The callable result on success; otherwise `default`.

    Usage example
    -------------
        invoice = guard(reporter, "load_invoice", lambda: load_invoice(pk), object_type="Invoice__c")
        if invoice is None:
            return
    """
    try:
        return fn()
    except Exception as exc:
        _send(reporter, exc, severity, context_type, object_type)
        return default
