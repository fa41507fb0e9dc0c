"""Transport middlewares.

A middleware is any callable taking the transport a client would use and
returning the transport to use instead. ``HttpClient.with_middleware``
applies them in registration order, so the last one registered sees each
request first.
"""

from __future__ import annotations

from typing import Any, Callable, MutableSequence, Union

import httpx


Transport = Union[httpx.BaseTransport, httpx.AsyncBaseTransport]
Middleware = Callable[[Transport], Transport]


class HistoryTransport(httpx.BaseTransport, httpx.AsyncBaseTransport):
    """Record every request/response pair passing through ``inner``."""

    def __init__(self, inner: Transport, container: MutableSequence[dict[str, Any]]) -> None:
        self._inner = inner
        self._container = container

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        response = self._inner.handle_request(request)  # type: ignore[union-attr]
        self._container.append({"request": request, "response": response})
        return response

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        response = await self._inner.handle_async_request(request)  # type: ignore[union-attr]
        self._container.append({"request": request, "response": response})
        return response

    def close(self) -> None:
        self._inner.close()  # type: ignore[union-attr]

    async def aclose(self) -> None:
        await self._inner.aclose()  # type: ignore[union-attr]


def history(container: MutableSequence[dict[str, Any]]) -> Middleware:
    """Middleware appending ``{"request": ..., "response": ...}`` to ``container``."""

    def middleware(transport: Transport) -> Transport:
        return HistoryTransport(transport, container)

    return middleware
