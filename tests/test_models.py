from __future__ import annotations

from fluent_http.cookies import CookieJar
from fluent_http.models import FilePart


def test_file_part_from_positional_descriptor() -> None:
    part = FilePart.model_validate(("document", b"contents", "report.txt", {"X-Part": "1"}))

    assert part.name == "document"
    assert part.contents == b"contents"
    assert part.filename == "report.txt"
    assert part.headers == {"X-Part": "1"}


def test_file_part_from_field_derives_name_for_scalars() -> None:
    part = FilePart.from_field("title", "Quarterly")

    assert part == FilePart(name="title", contents="Quarterly")
    assert part.to_httpx() == ("title", (None, "Quarterly", None, {}))


def test_file_part_from_field_keeps_descriptor_name() -> None:
    part = FilePart.from_field("ignored", {"name": "avatar", "contents": b"png", "filename": "a.png"})

    assert part.name == "avatar"
    assert part.to_httpx() == ("avatar", ("a.png", b"png", None, {}))


def test_cookie_jar_stores_session_cookies_by_domain() -> None:
    jar = CookieJar()
    jar.set_cookie("TestCookie", "testing", domain="example.org")

    cookie = jar.get_cookie_by_name("TestCookie")

    assert cookie is not None
    assert cookie.value == "testing"
    assert cookie.domain == "example.org"
    assert cookie.discard is True
    assert jar.get("TestCookie", domain="example.org") == "testing"


def test_cookie_jar_lookup_of_unknown_cookie() -> None:
    assert CookieJar().get_cookie_by_name("missing") is None


def test_file_part_renders_scalar_contents_as_text() -> None:
    assert FilePart.from_field("count", 1).contents == "1"
    assert FilePart.from_field("ratio", 0.5).contents == "0.5"
    assert FilePart.from_field("enabled", False).contents == "false"
    assert FilePart.from_field("empty", None).contents == ""
    assert FilePart.from_field("raw", b"bytes").contents == b"bytes"
