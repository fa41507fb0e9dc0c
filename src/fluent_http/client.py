"""Fluent HTTP client builder."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import pprint
import random
import time
from datetime import datetime
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Iterable, Mapping

import httpx
from pydantic import BaseModel
from uritemplate import expand

from .cookies import CookieJar
from .exceptions import HttpConnectionError, HttpTimeoutError
from .middleware import Middleware, Transport
from .models import FilePart, TransferStats
from .options import DEFAULT_OPTIONS, BodyFormat, merge_options, without_header
from .request import Request
from .response import Response
from .security import redact_url, sanitize_headers

logger = logging.getLogger(__name__)

BeforeSendingCallback = Callable[[Request, Mapping[str, Any]], Any]

_SCHEMES = ("http://", "https://")


def _coerce_json_payload(payload: Any) -> Any:
    if payload is None:
        return None
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    if isinstance(payload, Mapping):
        return dict(payload)
    return payload


def _encode_json(payload: Any) -> bytes:
    return json.dumps(_coerce_json_payload(payload), separators=(",", ":")).encode("utf-8")


def _normalize_headers(headers: Mapping[str, Any] | None) -> dict[str, str]:
    if not headers:
        return {}
    return {str(key): str(value) for key, value in headers.items()}


def _coerce_query_params(query: Any) -> Any:
    if not isinstance(query, Mapping):
        return query
    normalized: dict[str, Any] = {}
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            normalized[key] = ["" if v is None else v for v in value]
            continue
        if isinstance(value, datetime):
            normalized[key] = value.isoformat()
            continue
        normalized[key] = value
    return normalized


def _flatten_form(data: Any, prefix: str | None = None) -> dict[str, Any]:
    """Flatten nested mappings and lists into bracketed field names (``a[b]``, ``a[0]``)."""
    if not isinstance(data, (Mapping, list, tuple)):
        return {prefix: data} if prefix is not None else {}
    items = data.items() if isinstance(data, Mapping) else enumerate(data)
    fields: dict[str, Any] = {}
    for key, value in items:
        name = str(key) if prefix is None else f"{prefix}[{key}]"
        if isinstance(value, (Mapping, list, tuple)):
            fields.update(_flatten_form(value, name))
        elif value is not None:
            fields[name] = value
    return fields


def _build_auth(auth: Any) -> httpx.Auth | None:
    if auth is None or isinstance(auth, httpx.Auth):
        return auth
    username, password, *rest = auth
    if rest and str(rest[0]).lower() == "digest":
        return httpx.DigestAuth(username, password)
    return httpx.BasicAuth(username, password)


def _build_timeout(options: Mapping[str, Any]) -> httpx.Timeout:
    return httpx.Timeout(options.get("timeout") or None, connect=options.get("connect_timeout") or None)


def _connection_error(exc: httpx.RequestError) -> HttpConnectionError:
    if isinstance(exc, httpx.TimeoutException):
        return HttpTimeoutError("Request timed out", cause=exc)
    return HttpConnectionError(str(exc) or type(exc).__name__, cause=exc)


class HttpClient:
    """Accumulate request configuration through chained calls, then send it.

    Usage:
        >>> client = HttpClient(base_url="https://api.example.com")
        >>> response = client.with_token("secret").with_retries(3).get("/users", {"page": 2})
        >>> response.throw_if_server_error().json("data")

    Body content and attached files are one-shot: they are cleared by every
    send. Everything else (headers, auth, query parameters, URL parameters,
    cookies, transport policy) persists across sends.
    """

    default_timeout = 5
    default_connect_timeout = 5
    default_max_redirects = 5
    default_tries = 1
    retry_max_delay = 10.0
    jitter_range = 0.35

    def __init__(
        self,
        *,
        base_url: str = "",
        timeout: float = default_timeout,
        connect_timeout: float = default_connect_timeout,
        tries: int = default_tries,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._base_url = base_url
        self._cookies = CookieJar()
        self._options: Mapping[str, Any] = MappingProxyType(
            merge_options(DEFAULT_OPTIONS, {"timeout": timeout, "connect_timeout": connect_timeout})
        )
        self._url_parameters: dict[str, Any] = {}
        self._body_format = BodyFormat.JSON
        self._pending_body: Any = None
        self._pending_files: list[FilePart] = []
        self._tries = tries
        self._backoff = 0.0
        self._async = False
        self._before_sending_callbacks: list[BeforeSendingCallback] = []
        self._middlewares: list[Middleware] = []
        self._transport: Transport | None = None
        self._client: httpx.Client | httpx.AsyncClient | None = None
        self._transfer_stats: TransferStats | None = None

        self.as_json()
        if headers:
            self.with_headers(headers)

    @property
    def options(self) -> Mapping[str, Any]:
        return self._options

    @property
    def cookies(self) -> CookieJar:
        return self._cookies

    def _merge(self, *options: Mapping[str, Any]) -> "HttpClient":
        self._options = MappingProxyType(merge_options(self._options, *options))
        return self

    def _set_option(self, key: str, value: Any) -> "HttpClient":
        options = dict(self._options)
        options[key] = value
        self._options = MappingProxyType(options)
        return self

    def merged_options(self, *overrides: Mapping[str, Any] | None) -> dict[str, Any]:
        """Return the client options combined with ``overrides``."""
        return merge_options(self._options, *overrides)

    def base_url(self, url: str) -> "HttpClient":
        self._base_url = url
        return self

    def with_transport(self, transport: Transport) -> "HttpClient":
        """Send through ``transport`` instead of a default ``httpx`` transport."""
        self._transport = transport
        return self

    def with_middleware(self, middleware: Middleware) -> "HttpClient":
        self._middlewares.append(middleware)
        return self

    def set_client(self, client: httpx.Client | httpx.AsyncClient) -> "HttpClient":
        """Send through ``client``; transport, verify and redirect limits are then its own."""
        self._client = client
        return self

    def with_body(self, content: str | bytes, content_type: str = "application/json") -> "HttpClient":
        self.body_format(BodyFormat.BODY)
        self._pending_body = content
        return self.content_type(content_type)

    def as_json(self) -> "HttpClient":
        return self.body_format(BodyFormat.JSON).content_type("application/json")

    def as_form(self) -> "HttpClient":
        return self.body_format(BodyFormat.FORM).content_type("application/x-www-form-urlencoded")

    def as_multipart(self) -> "HttpClient":
        # the transport writes its own header carrying the boundary
        self._options = MappingProxyType(without_header(self._options, "Content-Type"))
        return self.body_format(BodyFormat.MULTIPART)

    def body_format(self, body_format: BodyFormat | str) -> "HttpClient":
        self._body_format = BodyFormat(body_format)
        return self

    def attach(
        self,
        name: str | Iterable[Any],
        contents: Any = "",
        filename: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> "HttpClient":
        """Attach a file, or several when ``name`` is a list of descriptors.

        Descriptors are either tuples applied positionally or mappings of
        keyword arguments.
        """
        if not isinstance(name, str):
            for file in name:
                if isinstance(file, Mapping):
                    self.attach(**file)
                else:
                    self.attach(*file)
            return self

        self.as_multipart()
        self._pending_files.append(
            FilePart(name=name, contents=contents, filename=filename, headers=dict(headers or {}))
        )
        return self

    def with_query_parameters(self, parameters: Mapping[str, Any]) -> "HttpClient":
        return self._merge({"params": dict(parameters)})

    def content_type(self, content_type: str) -> "HttpClient":
        return self._merge({"headers": {"Content-Type": content_type}})

    def accept_json(self) -> "HttpClient":
        return self.accept("application/json")

    def accept(self, content_type: str) -> "HttpClient":
        return self.with_headers({"Accept": content_type})

    def with_headers(self, headers: Mapping[str, str]) -> "HttpClient":
        return self._merge({"headers": dict(headers)})

    def with_basic_auth(self, username: str, password: str) -> "HttpClient":
        return self._set_option("auth", (username, password))

    def with_digest_auth(self, username: str, password: str) -> "HttpClient":
        return self._set_option("auth", (username, password, "digest"))

    def with_token(self, token: str, token_type: str = "Bearer") -> "HttpClient":
        return self.with_headers({"Authorization": f"{token_type} {token}".strip()})

    def with_user_agent(self, user_agent: str) -> "HttpClient":
        return self.with_headers({"User-Agent": user_agent.strip()})

    def with_url_parameters(self, parameters: Mapping[str, Any] | None = None) -> "HttpClient":
        self._url_parameters = dict(parameters or {})
        return self

    def with_cookies(self, cookies: Mapping[str, str], domain: str) -> "HttpClient":
        for name, value in cookies.items():
            self._cookies.set_cookie(name, value, domain=domain, discard=True)
        return self

    def max_redirects(self, limit: int) -> "HttpClient":
        return self._set_option("allow_redirects", {"max": limit})

    def without_redirecting(self) -> "HttpClient":
        return self._set_option("allow_redirects", False)

    def without_verifying(self) -> "HttpClient":
        return self._set_option("verify", False)

    def timeout(self, seconds: float) -> "HttpClient":
        return self._set_option("timeout", seconds)

    def connect_timeout(self, seconds: float) -> "HttpClient":
        return self._set_option("connect_timeout", seconds)

    def with_options(self, options: Mapping[str, Any]) -> "HttpClient":
        return self._merge(options)

    def with_retries(self, tries: int, backoff: float = 0.0) -> "HttpClient":
        """Make up to ``tries`` attempts per send.

        Attempts follow each other immediately unless ``backoff`` is set, in
        which case the n-th retry waits ``backoff * 2**(n-1)`` seconds plus
        jitter.
        """
        self._tries = tries
        self._backoff = backoff
        return self

    def asynchronous(self, flag: bool = True) -> "HttpClient":
        """Make verb methods return an awaitable instead of a :class:`Response`."""
        self._async = flag
        return self

    def before_sending(self, callback: BeforeSendingCallback) -> "HttpClient":
        self._before_sending_callbacks.append(callback)
        return self

    def dump(self, *values: Any) -> "HttpClient":
        def callback(request: Request, options: Mapping[str, Any]) -> None:
            for value in (*values, request, dict(options)):
                pprint.pprint(value)

        return self.before_sending(callback)

    def dd(self, *values: Any) -> "HttpClient":
        def callback(request: Request, options: Mapping[str, Any]) -> None:
            for value in (*values, request, dict(options)):
                pprint.pprint(value)
            raise SystemExit(1)

        return self.before_sending(callback)

    def get(self, url: str, query: Mapping[str, Any] | str | None = None) -> Response | Awaitable[Response]:
        return self.send("GET", url, {} if query is None else {"params": query})

    def head(self, url: str, query: Mapping[str, Any] | str | None = None) -> Response | Awaitable[Response]:
        return self.send("HEAD", url, {} if query is None else {"params": query})

    def post(self, url: str, data: Any = None) -> Response | Awaitable[Response]:
        return self.send("POST", url, self._body_options(data))

    def patch(self, url: str, data: Any = None) -> Response | Awaitable[Response]:
        return self.send("PATCH", url, self._body_options(data))

    def put(self, url: str, data: Any = None) -> Response | Awaitable[Response]:
        return self.send("PUT", url, self._body_options(data))

    def delete(self, url: str, data: Any = None) -> Response | Awaitable[Response]:
        return self.send("DELETE", url, self._body_options(data or None))

    def _body_options(self, data: Any) -> dict[str, Any]:
        if data is None:
            return {}
        return {self._body_format.value: data}

    def send(self, method: str, url: str, options: Mapping[str, Any] | None = None) -> Response | Awaitable[Response]:
        """Send the configured request.

        In asynchronous mode the returned coroutine has not started; awaiting
        it runs the attempts.
        """
        self._check_client_mode()
        if not url.startswith(_SCHEMES):
            url = (self._base_url.rstrip("/") + "/" + url.lstrip("/")).lstrip("/")

        url = self._expand_url_parameters(url)
        options = self._parse_http_options(dict(options or {}))
        self._pending_body, self._pending_files = None, []

        resolved = self.merged_options(options)
        method = method.upper()
        if self._async:
            return self._send_with_retries_async(method, url, resolved, self._body_format)
        return self._send_with_retries(method, url, resolved, self._body_format)

    def _check_client_mode(self) -> None:
        if self._client is None:
            return
        if self._async and not isinstance(self._client, httpx.AsyncClient):
            raise TypeError("asynchronous() sends need an httpx.AsyncClient; set_client() was given a sync client.")
        if not self._async and not isinstance(self._client, httpx.Client):
            raise TypeError("Synchronous sends need an httpx.Client; call asynchronous() to use an httpx.AsyncClient.")

    def _expand_url_parameters(self, url: str) -> str:
        if not self._url_parameters:
            return url
        return expand(url, self._url_parameters)

    def _parse_http_options(self, options: dict[str, Any]) -> dict[str, Any]:
        key = self._body_format.value

        if options.get(key) is not None:
            if self._body_format is BodyFormat.MULTIPART:
                options[key] = self._parse_multipart_body_format(options[key])
            elif self._body_format is BodyFormat.BODY:
                options[key] = self._pending_body

            if isinstance(options[key], list):
                options[key] = [*options[key], *self._pending_files]
            elif isinstance(options[key], Mapping) and self._pending_files:
                options[key] = {**options[key], **{part.name: part.contents for part in self._pending_files}}
        elif self._body_format is BodyFormat.MULTIPART:
            options[key] = list(self._pending_files)
        else:
            options[key] = self._pending_body

        return options

    @staticmethod
    def _parse_multipart_body_format(data: Mapping[str, Any] | Iterable[Any]) -> list[FilePart]:
        if isinstance(data, Mapping):
            return [FilePart.from_field(str(key), value) for key, value in data.items()]
        return [FilePart.model_validate(part) for part in data]

    def _request_kwargs(self, options: Mapping[str, Any], body_format: BodyFormat) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "headers": _normalize_headers(options.get("headers")),
            "params": _coerce_query_params(options.get("params")),
            "cookies": options.get("cookies"),
            "timeout": _build_timeout(options),
        }
        body = options.get(body_format.value)
        if body is None:
            return kwargs
        if body_format is BodyFormat.JSON:
            kwargs["content"] = _encode_json(body)
        elif body_format is BodyFormat.FORM:
            kwargs["data"] = _flatten_form(body) if isinstance(body, Mapping) else body
        elif body_format is BodyFormat.MULTIPART:
            if body:
                kwargs["files"] = [part.to_httpx() for part in body]
        else:
            kwargs["content"] = body
        return kwargs

    def _redirect_policy(self, allow_redirects: Any) -> tuple[bool, int]:
        if isinstance(allow_redirects, Mapping):
            return True, int(allow_redirects.get("max", self.default_max_redirects))
        return bool(allow_redirects), self.default_max_redirects

    def _build_transport(self, options: Mapping[str, Any], factory: Callable[..., Transport]) -> Transport:
        transport = self._transport if self._transport is not None else factory(verify=options.get("verify", True))
        for middleware in self._middlewares:
            transport = middleware(transport)
        return transport

    def build_client(self, options: Mapping[str, Any] | None = None) -> httpx.Client:
        options = self._options if options is None else options
        _, max_redirects = self._redirect_policy(options.get("allow_redirects"))
        return httpx.Client(
            transport=self._build_transport(options, httpx.HTTPTransport),
            cookies=self._cookies.jar,
            max_redirects=max_redirects,
            trust_env=False,
        )

    def build_async_client(self, options: Mapping[str, Any] | None = None) -> httpx.AsyncClient:
        options = self._options if options is None else options
        _, max_redirects = self._redirect_policy(options.get("allow_redirects"))
        return httpx.AsyncClient(
            transport=self._build_transport(options, httpx.AsyncHTTPTransport),
            cookies=self._cookies.jar,
            max_redirects=max_redirects,
            trust_env=False,
        )

    def _explicit_client(self) -> Any:
        self._client.cookies = self._cookies.jar  # type: ignore[union-attr]
        return contextlib.nullcontext(self._client)

    def _run_before_sending(self, request: httpx.Request, options: Mapping[str, Any], body_format: BodyFormat) -> None:
        logger.debug(
            "Sending %s %s headers=%s",
            request.method,
            redact_url(str(request.url)),
            sanitize_headers(dict(request.headers)),
        )
        if not self._before_sending_callbacks:
            return
        data = options.get("files") if body_format is BodyFormat.MULTIPART else None
        wrapped = Request(request, data=data)
        for callback in self._before_sending_callbacks:
            callback(wrapped, MappingProxyType(dict(options)))

    def _record_transfer_stats(self, raw: httpx.Response, options: Mapping[str, Any], total_time: float) -> None:
        stats = TransferStats(
            effective_uri=str(raw.url),
            handler_stats={
                "http_version": raw.http_version,
                "status_code": raw.status_code,
                "redirect_count": len(raw.history),
                "total_time": total_time,
            },
        )
        on_stats = options.get("on_stats")
        if callable(on_stats):
            stats = on_stats(stats) or stats
        self._transfer_stats = stats

    def _populate_response(self, response: Response) -> Response:
        response.cookie_jar = self._cookies
        response.transfer_stats = self._transfer_stats
        return response

    def _retry_delay(self, attempt: int) -> float:
        if self._backoff <= 0:
            return 0.0
        base = self._backoff * (2 ** max(0, attempt - 1))
        jitter = random.uniform(0, self.jitter_range)
        return min(self.retry_max_delay, base + jitter)

    def _send_request(self, method: str, url: str, options: Mapping[str, Any], body_format: BodyFormat) -> Response:
        follow_redirects, _ = self._redirect_policy(options.get("allow_redirects"))
        client_context = self._explicit_client() if self._client is not None else self.build_client(options)
        with client_context as client:
            request = client.build_request(method, url, **self._request_kwargs(options, body_format))
            self._run_before_sending(request, options, body_format)
            started = time.perf_counter()
            raw = client.send(request, auth=_build_auth(options.get("auth")), follow_redirects=follow_redirects)
        self._record_transfer_stats(raw, options, time.perf_counter() - started)
        return Response(raw)

    def _send_with_retries(self, method: str, url: str, options: Mapping[str, Any], body_format: BodyFormat) -> Response:
        remaining = self._tries
        attempt = 0
        response: Response | None = None
        while True:
            remaining -= 1
            attempt += 1
            try:
                response = self._send_request(method, url, options, body_format)
            except httpx.RequestError as exc:
                if remaining < 1:
                    if response is not None:
                        return self._populate_response(response)
                    raise _connection_error(exc) from exc
                logger.info("Retrying %s %s after %s (%d attempts left)", method, redact_url(url), exc, remaining)
                time.sleep(self._retry_delay(attempt))
                continue

            if response.successful() or remaining < 1:
                return self._populate_response(response)
            logger.info(
                "Retrying %s %s after status %d (%d attempts left)",
                method,
                redact_url(url),
                response.status(),
                remaining,
            )
            time.sleep(self._retry_delay(attempt))

    async def _send_request_async(
        self,
        method: str,
        url: str,
        options: Mapping[str, Any],
        body_format: BodyFormat,
    ) -> Response:
        follow_redirects, _ = self._redirect_policy(options.get("allow_redirects"))
        client_context = self._explicit_client() if self._client is not None else self.build_async_client(options)
        async with client_context as client:
            request = client.build_request(method, url, **self._request_kwargs(options, body_format))
            self._run_before_sending(request, options, body_format)
            started = time.perf_counter()
            raw = await client.send(request, auth=_build_auth(options.get("auth")), follow_redirects=follow_redirects)
        self._record_transfer_stats(raw, options, time.perf_counter() - started)
        return Response(raw)

    async def _send_with_retries_async(
        self,
        method: str,
        url: str,
        options: Mapping[str, Any],
        body_format: BodyFormat,
    ) -> Response:
        remaining = self._tries
        attempt = 0
        response: Response | None = None
        while True:
            remaining -= 1
            attempt += 1
            try:
                response = await self._send_request_async(method, url, options, body_format)
            except httpx.RequestError as exc:
                if remaining < 1:
                    if response is not None:
                        return self._populate_response(response)
                    raise _connection_error(exc) from exc
                logger.info("Retrying %s %s after %s (%d attempts left)", method, redact_url(url), exc, remaining)
                await asyncio.sleep(self._retry_delay(attempt))
                continue

            if response.successful() or remaining < 1:
                return self._populate_response(response)
            logger.info(
                "Retrying %s %s after status %d (%d attempts left)",
                method,
                redact_url(url),
                response.status(),
                remaining,
            )
            await asyncio.sleep(self._retry_delay(attempt))
