"""Response wrapper returned by :class:`fluent_http.HttpClient`."""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, Callable, Union

import httpx

from .cookies import CookieJar
from .exceptions import InvalidMutationError, RequestError
from .models import TransferStats

_UNSET: Any = object()

StatusMatcher = Union[int, Callable[[int, "Response"], bool]]
FailureCallback = Callable[["Response", RequestError], Any]


class Response:
    """Read-only view over an ``httpx.Response``.

    ``cookie_jar`` and ``transfer_stats`` are attached by the client once the
    attempt that produced the response has completed.
    """

    cookie_jar: CookieJar | None = None
    transfer_stats: TransferStats | None = None

    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self._decoded: Any = _UNSET

    def body(self) -> str:
        return self._response.text

    def content(self) -> bytes:
        return self._response.content

    def json(self, key: str | None = None, default: Any = None) -> Any:
        """Return the decoded JSON body, or the value under ``key``.

        The body is decoded once; an undecodable body reads as ``None``.
        """
        if self._decoded is _UNSET:
            try:
                self._decoded = json.loads(self.body())
            except ValueError:
                self._decoded = None

        if key is None:
            return self._decoded
        if isinstance(self._decoded, dict) and self._decoded.get(key) is not None:
            return self._decoded[key]
        return default

    def object(self) -> Any:
        try:
            return json.loads(self.body(), object_hook=lambda value: SimpleNamespace(**value))
        except ValueError:
            return None

    def header(self, header: str) -> str:
        return self._response.headers.get(header, "")

    def headers(self) -> dict[str, list[str]]:
        headers: dict[str, list[str]] = {}
        for key, value in self._response.headers.raw:
            headers.setdefault(key.decode("latin-1"), []).append(value.decode("latin-1"))
        return headers

    def status(self) -> int:
        return self._response.status_code

    def reason(self) -> str:
        return self._response.reason_phrase

    def url(self) -> str:
        return str(self._response.url)

    def http_version(self) -> str:
        return self._response.http_version

    def effective_uri(self) -> str | None:
        if self.transfer_stats is None:
            return None
        return self.transfer_stats.effective_uri

    def successful(self) -> bool:
        return 200 <= self.status() < 300

    def redirect(self) -> bool:
        return 300 <= self.status() < 400

    def failed(self) -> bool:
        return self.server_error() or self.client_error()

    def client_error(self) -> bool:
        return 400 <= self.status() < 500

    def server_error(self) -> bool:
        return self.status() >= 500

    def cookies(self) -> CookieJar | None:
        return self.cookie_jar

    def handler_stats(self) -> dict[str, Any]:
        if self.transfer_stats is None:
            return {}
        return dict(self.transfer_stats.handler_stats)

    def close(self) -> "Response":
        self._response.close()
        return self

    def to_httpx_response(self) -> httpx.Response:
        return self._response

    def to_exception(self) -> RequestError | None:
        if self.failed():
            return RequestError(self)
        return None

    def throw(self, callback: FailureCallback | None = None) -> "Response":
        """Raise :class:`RequestError` if a client or server error occurred.

        ``callback`` is called with the response and the exception before it
        is raised.
        """
        exception = self.to_exception()
        if exception is None:
            return self
        if callback is not None:
            callback(self, exception)
        raise exception

    def throw_if(self, condition: bool | Callable[["Response"], bool], callback: FailureCallback | None = None) -> "Response":
        if callable(condition):
            condition = condition(self)
        return self.throw(callback) if condition else self

    def throw_if_status(self, status_code: StatusMatcher) -> "Response":
        if callable(status_code):
            return self.throw() if status_code(self.status(), self) else self
        return self.throw() if self.status() == status_code else self

    def throw_unless_status(self, status_code: StatusMatcher) -> "Response":
        if callable(status_code):
            return self if status_code(self.status(), self) else self.throw()
        return self if self.status() == status_code else self.throw()

    def throw_if_client_error(self) -> "Response":
        return self.throw() if self.client_error() else self

    def throw_if_server_error(self) -> "Response":
        return self.throw() if self.server_error() else self

    def __contains__(self, key: str) -> bool:
        decoded = self.json()
        return isinstance(decoded, dict) and decoded.get(key) is not None

    def __getitem__(self, key: Any) -> Any:
        decoded = self.json()
        if not isinstance(decoded, dict):
            raise KeyError(key)
        return decoded[key]

    def __setitem__(self, key: Any, value: Any) -> None:
        raise InvalidMutationError("Response data may not be mutated using item access.")

    def __delitem__(self, key: Any) -> None:
        raise InvalidMutationError("Response data may not be mutated using item access.")

    def __str__(self) -> str:
        return self.body()

    def __repr__(self) -> str:
        return f"<Response [{self.status()}]>"
