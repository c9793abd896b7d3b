"""Log sinks: the async operation that receives envelopes."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Mapping, Optional

import httpx

from .types import ResponseError

logger = logging.getLogger("errorutil.transport")

LogSink = Callable[[Mapping[str, Any]], Awaitable[Any]]


def _response_body(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {"message": response.text} if response.text else {}
    if isinstance(data, dict):
        return data
    # Salesforce-style APIs answer with a list of error objects.
    if isinstance(data, list) and data and isinstance(data[0], dict):
        return {**data[0], "output": data}
    return {"output": data}


class HttpLogSink:
    """
    POSTs envelopes as JSON to a log ingestion endpoint.

    A response with status >= 400 raises ``ResponseError`` carrying the status,
    reason phrase and parsed body, so a failed submission can be re-logged as a
    response-style payload. Network errors propagate as ``httpx.HTTPError``.

    Usage example
    -------------
        sink = HttpLogSink("https://logs.example.org/ingest", timeout=3.0)
        reporter = ErrorReporter(sink=sink)
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        headers: Optional[Mapping[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout = httpx.Timeout(timeout)
        self.headers = dict(headers or {})
        self._transport = transport

    async def __call__(self, envelope: Mapping[str, Any]) -> Any:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers=self.headers,
            transport=self._transport,
        ) as client:
            response = await client.post(self.url, json=dict(envelope))

        if response.status_code >= 400:
            body = _response_body(response)
            logger.debug("Log endpoint answered %s for %s", response.status_code, self.url)
            raise ResponseError(
                response.status_code,
                response.reason_phrase,
                body,
                error_type=body.get("errorCode") or body.get("errorType") or "HTTP Error",
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text
