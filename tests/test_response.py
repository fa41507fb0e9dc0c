from __future__ import annotations

import httpx
import pytest

from fluent_http.exceptions import InvalidMutationError, RequestError, body_summary
from fluent_http.models import TransferStats
from fluent_http.response import Response


def make_response(status_code: int = 200, **kwargs: object) -> Response:
    return Response(httpx.Response(status_code, **kwargs))


def test_status_class_predicates() -> None:
    for status in range(200, 300):
        response = make_response(status)
        assert response.successful()
        assert not response.failed()

    for status in range(300, 400):
        response = make_response(status)
        assert response.redirect()
        assert not response.failed()

    for status in range(400, 500):
        response = make_response(status)
        assert response.client_error()
        assert response.failed()
        assert not response.successful()

    for status in range(500, 600):
        response = make_response(status)
        assert response.server_error()
        assert response.failed()
        assert not response.client_error()


def test_body_headers_and_passthrough_accessors() -> None:
    response = make_response(
        201,
        text="Hello World",
        headers={"X-Trace": "abc"},
        request=httpx.Request("GET", "https://example.org/hello"),
    )

    assert response.status() == 201
    assert response.reason() == "Created"
    assert response.body() == "Hello World"
    assert response.content() == b"Hello World"
    assert str(response) == "Hello World"
    assert response.header("X-Trace") == "abc"
    assert response.header("Missing") == ""
    assert response.headers()["X-Trace"] == ["abc"]
    assert response.url() == "https://example.org/hello"
    assert response.http_version() == "HTTP/1.1"


def test_json_returns_full_payload_or_value_for_key() -> None:
    response = make_response(json={"id": "cd_1", "empty": None})

    assert response.json() == {"id": "cd_1", "empty": None}
    assert response.json("id") == "cd_1"
    assert response.json("missing", "fallback") == "fallback"
    assert response.json("empty", "fallback") == "fallback"


def test_json_is_decoded_once(monkeypatch) -> None:
    response = make_response(json={"a": 1})
    first = response.json()

    monkeypatch.setattr(response, "body", lambda: '{"a": 2}')

    assert response.json() is first
    assert response.json("a") == 1


def test_json_of_undecodable_body_is_none() -> None:
    assert make_response(text="not json").json() is None
    assert make_response(204).json() is None


def test_object_decodes_to_attribute_access() -> None:
    response = make_response(json={"user": {"name": "ada"}, "tags": [{"id": 1}]})

    decoded = response.object()

    assert decoded.user.name == "ada"
    assert decoded.tags[0].id == 1
    assert response.object() is not decoded


def test_item_access_reads_decoded_json() -> None:
    response = make_response(json={"id": "cd_1"})

    assert response["id"] == "cd_1"
    assert "id" in response
    assert "missing" not in response


def test_item_access_on_non_object_body_raises_key_error() -> None:
    with pytest.raises(KeyError):
        make_response(text="not json")["id"]
    with pytest.raises(KeyError):
        make_response(json=[1, 2])["id"]
    with pytest.raises(KeyError):
        make_response(json={"id": "cd_1"})["missing"]


def test_item_assignment_and_deletion_fail() -> None:
    response = make_response(json={"id": "cd_1"})

    with pytest.raises(InvalidMutationError, match="may not be mutated"):
        response["id"] = "other"
    with pytest.raises(InvalidMutationError):
        response["new"] = 1
    with pytest.raises(InvalidMutationError):
        del response["id"]
    with pytest.raises(TypeError):
        del response["missing"]

    assert response.json() == {"id": "cd_1"}


def test_cookies_and_transfer_stats_default_to_empty() -> None:
    response = make_response()

    assert response.cookies() is None
    assert response.handler_stats() == {}
    assert response.effective_uri() is None


def test_attached_transfer_stats_are_exposed() -> None:
    response = make_response()
    response.transfer_stats = TransferStats(
        effective_uri="https://example.org/final",
        handler_stats={"redirect_count": 1},
    )

    assert response.effective_uri() == "https://example.org/final"
    assert response.handler_stats() == {"redirect_count": 1}


def test_to_exception_only_for_failed_responses() -> None:
    assert make_response(200).to_exception() is None
    assert make_response(302).to_exception() is None

    exception = make_response(404, text="not here").to_exception()

    assert isinstance(exception, RequestError)
    assert exception.status_code == 404
    assert exception.response.status() == 404


def test_exception_message_includes_body_summary() -> None:
    exception = make_response(500, text="Houston,\nwe have a problem").to_exception()

    assert str(exception) == "HTTP request returned status code 500:\nHouston, we have a problem\n"


def test_exception_message_without_body() -> None:
    exception = make_response(503).to_exception()

    assert str(exception) == "HTTP request returned status code 503"


def test_body_summary_truncates_long_bodies() -> None:
    summary = body_summary("x" * 200)

    assert summary == "x" * 120 + " (truncated...)"


def test_body_summary_skips_binary_bodies() -> None:
    assert body_summary("\x00\x01\x02") is None
    assert body_summary("") is None


def test_throw_raises_for_failed_response_after_callback() -> None:
    response = make_response(422, text="invalid")
    seen: list[tuple[Response, RequestError]] = []

    with pytest.raises(RequestError) as excinfo:
        response.throw(lambda failed, exception: seen.append((failed, exception)))

    assert seen == [(response, excinfo.value)]
    assert excinfo.value.response is response


def test_throw_returns_response_when_not_failed() -> None:
    response = make_response(200)
    called: list[object] = []

    assert response.throw(lambda *args: called.append(args)) is response
    assert called == []


def test_throw_if_honours_condition() -> None:
    response = make_response(500)

    assert response.throw_if(False) is response
    assert response.throw_if(lambda candidate: candidate.status() == 404) is response
    with pytest.raises(RequestError):
        response.throw_if(True)


def test_throw_if_status_with_code_and_predicate() -> None:
    response = make_response(404)

    assert response.throw_if_status(500) is response
    with pytest.raises(RequestError):
        response.throw_if_status(404)
    with pytest.raises(RequestError):
        response.throw_if_status(lambda status, candidate: status >= 400)


def test_throw_unless_status_with_code_and_predicate() -> None:
    response = make_response(404)

    assert response.throw_unless_status(404) is response
    assert response.throw_unless_status(lambda status, candidate: status == 404) is response
    with pytest.raises(RequestError):
        response.throw_unless_status(200)

    # only failed responses raise
    assert make_response(200).throw_unless_status(201).status() == 200


def test_throw_if_client_and_server_error() -> None:
    client_error = make_response(400)
    server_error = make_response(502)

    assert client_error.throw_if_server_error() is client_error
    assert server_error.throw_if_client_error() is server_error
    with pytest.raises(RequestError):
        client_error.throw_if_client_error()
    with pytest.raises(RequestError):
        server_error.throw_if_server_error()


def test_close_releases_underlying_response() -> None:
    response = make_response(text="done")

    assert response.close() is response
    assert response.to_httpx_response().is_closed
