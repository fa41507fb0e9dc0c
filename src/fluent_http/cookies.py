"""Cookie jar shared between the builder and the responses it produces."""

from __future__ import annotations

from http.cookiejar import Cookie

import httpx


class CookieJar(httpx.Cookies):
    """``httpx.Cookies`` with lookup helpers for single cookies."""

    def set_cookie(
        self,
        name: str,
        value: str,
        *,
        domain: str = "",
        path: str = "/",
        discard: bool = True,
    ) -> None:
        """Store a cookie scoped to ``domain``; ``discard`` marks it session-only."""
        cookie = Cookie(
            version=0,
            name=name,
            value=value,
            port=None,
            port_specified=False,
            domain=domain,
            domain_specified=bool(domain),
            domain_initial_dot=domain.startswith("."),
            path=path,
            path_specified=bool(path),
            secure=False,
            expires=None,
            discard=discard,
            comment=None,
            comment_url=None,
            rest={"HttpOnly": None},
            rfc2109=False,
        )
        self.jar.set_cookie(cookie)

    def get_cookie_by_name(self, name: str) -> Cookie | None:
        for cookie in self.jar:
            if cookie.name == name:
                return cookie
        return None
