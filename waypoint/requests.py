from __future__ import annotations

import copy
import json
from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qsl

from waypoint.datastructures import Header, QueryParams
from waypoint.enums import HeaderEnum
from waypoint.types import Empty, Scope


def normalize_path(path: str) -> str:
    """
    The form of a request path the matcher works with: no leading or
    trailing slashes, and `/` for the root.
    """
    return path.strip("/") or "/"


class Request:
    """
    An HTTP request message.

    Requests are treated as values. The `with_*` methods return a modified
    copy and leave the original untouched, so middleware can hand a changed
    request to the next stage without affecting earlier ones.
    """

    __slots__ = (
        "method",
        "path",
        "headers",
        "body",
        "query_params",
        "parsed_body",
        "attributes",
    )

    def __init__(
        self,
        method: str = "GET",
        path: str = "/",
        headers: Mapping[str, Any] | Header | None = None,
        body: bytes = b"",
        query_params: Mapping[str, Any] | QueryParams | str | None = None,
        parsed_body: Any = None,
        attributes: dict[str, Any] | None = None,
    ) -> None:
        self.method = method.upper()
        self.path = path or "/"
        self.headers = headers if isinstance(headers, Header) else Header(headers)
        self.body = body
        if isinstance(query_params, str):
            query_params = QueryParams(parse_qsl(query_params, keep_blank_values=True))
        elif not isinstance(query_params, QueryParams):
            query_params = QueryParams(query_params or {})
        self.query_params = query_params
        self.parsed_body = parsed_body
        self.attributes: dict[str, Any] = dict(attributes or {})

    @classmethod
    def from_scope(cls, scope: Scope, body: bytes = b"") -> Request:
        """
        Builds a request from an ASGI HTTP scope and the already received body.
        """
        root_path = scope.get("root_path", "")
        path = scope["path"]
        if root_path and path.startswith(root_path):
            path = path[len(root_path) :]
        return cls(
            method=scope["method"],
            path=path,
            headers=Header(scope.get("headers", [])),
            body=body,
            query_params=scope.get("query_string", b"").decode("latin-1"),
        )

    @property
    def route_path(self) -> str:
        return normalize_path(self.path)

    def _replace(self, **changes: Any) -> Request:
        clone = copy.copy(self)
        for key, value in changes.items():
            object.__setattr__(clone, key, value)
        return clone

    def with_attribute(self, name: str, value: Any) -> Request:
        return self._replace(attributes={**self.attributes, name: value})

    def without_attribute(self, name: str) -> Request:
        attributes = dict(self.attributes)
        attributes.pop(name, None)
        return self._replace(attributes=attributes)

    def with_parsed_body(self, parsed_body: Any) -> Request:
        return self._replace(parsed_body=parsed_body)

    def with_method(self, method: str) -> Request:
        return self._replace(method=method.upper())

    def with_header(self, name: str, value: str) -> Request:
        headers = self.headers.copy()
        headers[name] = value
        return self._replace(headers=headers)

    def attribute(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    @property
    def route(self) -> Any:
        """
        The matched route, once the router has attached it.
        """
        return self.attributes.get("route")

    @property
    def user(self) -> Any:
        return self.attributes.get("user")

    @property
    def content_type(self) -> str:
        return self.headers.get(HeaderEnum.CONTENT_TYPE, "").split(";")[0].strip().lower()

    def text(self) -> str:
        return self.body.decode("utf-8")

    def json(self) -> Any:
        return json.loads(self.body or b"null")

    def input(self, key: str, default: Any = Empty) -> Any:
        """
        Reads a value from the parsed body first and the query string second.
        """
        if isinstance(self.parsed_body, Mapping) and key in self.parsed_body:
            return self.parsed_body[key]
        if key in self.query_params:
            return self.query_params[key]
        return None if default is Empty else default

    def bearer_token(self) -> str | None:
        header = self.headers.get(HeaderEnum.AUTHORIZATION, "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None
        return token.strip()

    def accepts_json(self) -> bool:
        accept = self.headers.get(HeaderEnum.ACCEPT, "")
        return "/json" in accept or "+json" in accept

    def is_ajax(self) -> bool:
        return self.headers.get(HeaderEnum.X_REQUESTED_WITH, "") == "XMLHttpRequest"

    def wants_json(self) -> bool:
        """
        Whether the client would rather get a JSON response than HTML.
        """
        return self.accepts_json() or self.is_ajax()

    expects_json = wants_json

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(method={self.method!r}, path={self.path!r})"
