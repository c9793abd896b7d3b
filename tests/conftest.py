from __future__ import annotations

import io
from typing import Any, Callable, Mapping, Optional

import pytest
from rich.console import Console

from errorutil import reporter as reporter_mod


class RecordingSink:
    """Async log sink double: records envelopes, optionally failing the first calls."""

    def __init__(self, *, fail_times: int = 0, error: Optional[BaseException] = None) -> None:
        self.calls: list[Mapping[str, Any]] = []
        self.fail_times = fail_times
        self.error = error if error is not None else RuntimeError("sink down")

    async def __call__(self, envelope: Mapping[str, Any]) -> Any:
        self.calls.append(envelope)
        if len(self.calls) <= self.fail_times:
            raise self.error
        return {"success": True}

    def fields(self, index: int) -> Mapping[str, Any]:
        return self.calls[index]["customExceptionLog"]["fields"]


@pytest.fixture
def make_sink() -> Callable[..., RecordingSink]:
    return RecordingSink


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=200)


@pytest.fixture(autouse=True)
def _reset_default_reporter() -> Any:
    yield
    reporter_mod.set_reporter(None)
