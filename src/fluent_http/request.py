"""Read-only view of a request about to be sent."""

from __future__ import annotations

import json
from typing import Any, Mapping, Sequence
from urllib.parse import parse_qsl

import httpx

from .models import FilePart


class Request:
    """Wrap a finalized ``httpx.Request``.

    ``data`` holds the decoded payload when the caller already knows it (the
    multipart parts, for instance); otherwise it is decoded from the body on
    first use and kept.
    """

    def __init__(self, request: httpx.Request, data: Any = None) -> None:
        self._request = request
        self._data = data

    def method(self) -> str:
        return self._request.method

    def url(self) -> str:
        return str(self._request.url)

    def has_header(self, key: str, value: str | Sequence[str] | None = None) -> bool:
        values = self._request.headers.get_list(key)
        if value is None:
            return bool(values)
        if not values:
            return False
        expected = [value] if isinstance(value, str) else list(value)
        return all(item in values for item in expected)

    def has_headers(self, headers: str | Mapping[str, str | Sequence[str] | None]) -> bool:
        if isinstance(headers, str):
            headers = {headers: None}
        return all(self.has_header(key, value) for key, value in headers.items())

    def header(self, key: str) -> list[str]:
        return self._request.headers.get_list(key)

    def headers(self) -> dict[str, list[str]]:
        headers: dict[str, list[str]] = {}
        for key, value in self._request.headers.raw:
            headers.setdefault(key.decode("latin-1"), []).append(value.decode("latin-1"))
        return headers

    def body(self) -> str:
        return self._request.read().decode("utf-8", errors="replace")

    def has_file(self, name: str, value: Any = None, filename: str | None = None) -> bool:
        if not self.is_multipart():
            return False
        for part in self._data or []:
            part = FilePart.from_field(name, part)
            if part.name != name:
                continue
            if value and part.contents != value:
                continue
            if filename and part.filename != filename:
                continue
            return True
        return False

    def data(self) -> Any:
        """Return the decoded form parameters or JSON payload."""
        if self._data is None:
            if self.is_form():
                self._data = dict(parse_qsl(self.body(), keep_blank_values=True))
            elif self.is_json():
                try:
                    self._data = json.loads(self.body()) if self.body() else {}
                except ValueError:
                    self._data = {}
        return self._data if self._data is not None else {}

    def is_form(self) -> bool:
        return self.has_header("Content-Type", "application/x-www-form-urlencoded")

    def is_json(self) -> bool:
        return "json" in self._request.headers.get("Content-Type", "")

    def is_multipart(self) -> bool:
        return "multipart" in self._request.headers.get("Content-Type", "")

    def to_httpx_request(self) -> httpx.Request:
        return self._request

    def __repr__(self) -> str:
        return f"<Request [{self.method()} {self.url()}]>"
