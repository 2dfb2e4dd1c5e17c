from __future__ import annotations

import re
from collections.abc import Sequence
from functools import lru_cache

from waypoint import status
from waypoint.conf import settings
from waypoint.datastructures import Header
from waypoint.enums import HeaderEnum, HTTPMethod
from waypoint.protocols.middleware import MiddlewareProtocol, Next
from waypoint.requests import Request
from waypoint.responses import Response, prepare_response


@lru_cache(maxsize=256)
def wildcard_pattern(pattern: str) -> re.Pattern[str]:
    """
    Compiles a pattern where `*` stands for any run of characters.
    """
    return re.compile("^" + ".*".join(re.escape(part) for part in pattern.split("*")) + r"\Z")


def matches_any(value: str, patterns: Sequence[str]) -> bool:
    return any(
        pattern == value or wildcard_pattern(pattern).match(value) for pattern in patterns
    )


class HandleCors(MiddlewareProtocol):
    """
    Adds the Cross-Origin Resource Sharing headers to the responses of the
    configured paths and answers preflight requests directly.

    Every option defaults to the matching `cors_*` setting.

    Args:
        paths (Sequence[str]): Path patterns the middleware applies to, `*`
            matching any run of characters.
        allowed_origins (Sequence[str]): Allowed origins. `*` allows any and
            wildcards such as `https://*.example.com` are supported.
        allowed_methods (Sequence[str]): Methods allowed for cross origin calls.
        allowed_headers (Sequence[str]): Request headers allowed for cross origin calls.
        exposed_headers (Sequence[str]): Response headers exposed to the browser.
        max_age (int): Seconds a preflight answer may be cached.
        allow_credentials (bool): Whether cookies and credentials are allowed.
    """

    def __init__(
        self,
        paths: Sequence[str] | None = None,
        allowed_origins: Sequence[str] | None = None,
        allowed_methods: Sequence[str] | None = None,
        allowed_headers: Sequence[str] | None = None,
        exposed_headers: Sequence[str] | None = None,
        max_age: int | None = None,
        allow_credentials: bool | None = None,
    ) -> None:
        self.paths = list(paths if paths is not None else settings.cors_paths)
        self.allowed_origins = list(
            allowed_origins if allowed_origins is not None else settings.cors_allowed_origins
        )
        self.allowed_methods = [
            method.upper()
            for method in (
                allowed_methods if allowed_methods is not None else settings.cors_allowed_methods
            )
        ]
        self.allowed_headers = [
            header.lower()
            for header in (
                allowed_headers if allowed_headers is not None else settings.cors_allowed_headers
            )
        ]
        self.exposed_headers = list(
            exposed_headers if exposed_headers is not None else settings.cors_exposed_headers
        )
        self.max_age = max_age if max_age is not None else settings.cors_max_age
        self.allow_credentials = (
            allow_credentials if allow_credentials is not None else settings.cors_allow_credentials
        )

        self.allow_all_origins = "*" in self.allowed_origins
        self.allow_all_methods = "*" in self.allowed_methods
        self.allow_all_headers = "*" in self.allowed_headers

    def handle(self, request: Request, next: Next) -> Response:
        if not self.has_matching_path(request):
            return prepare_response(request, next(request))

        if self.is_preflight_request(request):
            response = self.handle_preflight_request(request)
            response.headers.add_vary_header("Access-Control-Request-Method")
            return response

        response = prepare_response(request, next(request))
        if request.method == HTTPMethod.OPTIONS:
            response.headers.add_vary_header("Access-Control-Request-Method")
        return self.add_actual_request_headers(response, request)

    def has_matching_path(self, request: Request) -> bool:
        return matches_any(request.route_path, self.paths)

    def is_cors_request(self, request: Request) -> bool:
        return HeaderEnum.ORIGIN in request.headers

    def is_preflight_request(self, request: Request) -> bool:
        return (
            request.method == HTTPMethod.OPTIONS
            and "access-control-request-method" in request.headers
        )

    def is_origin_allowed(self, origin: str) -> bool:
        if self.allow_all_origins:
            return True
        return matches_any(origin, self.allowed_origins)

    def handle_preflight_request(self, request: Request) -> Response:
        response = Response(status_code=status.HTTP_204_NO_CONTENT)
        headers = response.headers
        self.configure_allowed_origin(headers, request)

        if HeaderEnum.ACCESS_CONTROL_ALLOW_ORIGIN in headers:
            self.configure_allow_credentials(headers)

            if self.allow_all_methods:
                allowed = request.headers["access-control-request-method"].upper()
            else:
                allowed = ", ".join(self.allowed_methods)
            headers["Access-Control-Allow-Methods"] = allowed

            if self.allow_all_headers:
                allowed = request.headers.get("access-control-request-headers", "")
                headers.add_vary_header("Access-Control-Request-Headers")
            else:
                allowed = ", ".join(self.allowed_headers)
            if allowed:
                headers["Access-Control-Allow-Headers"] = allowed

            if self.max_age:
                headers["Access-Control-Max-Age"] = str(self.max_age)
        return response

    def add_actual_request_headers(self, response: Response, request: Request) -> Response:
        headers = response.headers
        self.configure_allowed_origin(headers, request)

        if HeaderEnum.ACCESS_CONTROL_ALLOW_ORIGIN in headers:
            self.configure_allow_credentials(headers)
            if self.exposed_headers:
                headers["Access-Control-Expose-Headers"] = ", ".join(self.exposed_headers)
        return response

    def configure_allowed_origin(self, headers: Header, request: Request) -> None:
        if self.allow_all_origins and not self.allow_credentials:
            headers[HeaderEnum.ACCESS_CONTROL_ALLOW_ORIGIN] = "*"
            return

        if self.is_single_origin_allowed():
            headers[HeaderEnum.ACCESS_CONTROL_ALLOW_ORIGIN] = self.allowed_origins[0]
            return

        # The answer depends on the origin, caches must key on it.
        origin = request.headers.get(HeaderEnum.ORIGIN)
        if origin is not None and self.is_cors_request(request) and self.is_origin_allowed(origin):
            headers[HeaderEnum.ACCESS_CONTROL_ALLOW_ORIGIN] = origin
        headers.add_vary_header(HeaderEnum.ORIGIN.value)

    def configure_allow_credentials(self, headers: Header) -> None:
        if self.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"

    def is_single_origin_allowed(self) -> bool:
        if self.allow_all_origins or len(self.allowed_origins) != 1:
            return False
        return "*" not in self.allowed_origins[0]
