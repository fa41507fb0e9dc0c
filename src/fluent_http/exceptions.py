"""Exceptions raised by the HTTP client."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Mapping

if TYPE_CHECKING:
    from .response import Response


SUMMARY_LENGTH = 120


class HttpClientError(Exception):
    """Base exception for all client failures."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: object = None,
        headers: Mapping[str, object] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.headers = dict(headers) if headers is not None else {}
        self.cause = cause


class RequestError(HttpClientError):
    """Raised on demand for a response with a 4xx or 5xx status."""

    def __init__(self, response: "Response") -> None:
        super().__init__(
            self.prepare_message(response),
            status_code=response.status(),
            body=response.body(),
            headers=response.headers(),
        )
        self.response = response

    @staticmethod
    def prepare_message(response: "Response") -> str:
        message = f"HTTP request returned status code {response.status()}"
        summary = body_summary(response.body())
        if summary is None:
            return message
        return f"{message}:\n{summary}\n"


class HttpConnectionError(HttpClientError):
    """Raised when the transport failed and no response was ever received."""


class HttpTimeoutError(HttpConnectionError):
    """Raised when the last attempt exceeded the configured timeout."""


class InvalidMutationError(HttpClientError, TypeError):
    """Raised on item assignment or deletion against response data."""


def body_summary(body: str, truncate_at: int = SUMMARY_LENGTH) -> str | None:
    """Return a one-line preview of ``body``, or ``None`` when it is empty or binary."""
    if not body:
        return None
    summary = body[:truncate_at]
    if not _is_text(summary):
        return None
    summary = re.sub(r"[\r\n]+", " ", summary).strip()
    if len(body) > truncate_at:
        summary += " (truncated...)"
    return summary


def _is_text(value: str) -> bool:
    return all(char in "\r\n\t" or (char.isprintable() and char != "\ufffd") for char in value)
