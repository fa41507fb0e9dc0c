"""Fluent HTTP client builder on top of httpx."""

from .client import HttpClient
from .cookies import CookieJar
from .exceptions import (
    HttpClientError,
    HttpConnectionError,
    HttpTimeoutError,
    InvalidMutationError,
    RequestError,
)
from .middleware import history
from .models import FilePart, TransferStats
from .options import MERGEABLE_OPTIONS, BodyFormat, merge_options
from .request import Request
from .response import Response

__all__ = [
    "BodyFormat",
    "CookieJar",
    "FilePart",
    "HttpClient",
    "HttpClientError",
    "HttpConnectionError",
    "HttpTimeoutError",
    "InvalidMutationError",
    "MERGEABLE_OPTIONS",
    "Request",
    "RequestError",
    "Response",
    "TransferStats",
    "history",
    "merge_options",
]
