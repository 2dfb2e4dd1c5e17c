from __future__ import annotations

import json
from typing import Any
from urllib.parse import parse_qsl

from waypoint.enums import HTTPMethod, MediaType
from waypoint.exceptions import BadRequest
from waypoint.protocols.middleware import MiddlewareProtocol, Next
from waypoint.requests import Request
from waypoint.routing.results import Continue


class ParseBody(MiddlewareProtocol):
    """
    Decodes JSON and urlencoded request bodies into `request.parsed_body`.

    Bodies of other content types are left alone. A malformed JSON body
    is rejected with `BadRequest`.
    """

    skip_methods = (HTTPMethod.GET, HTTPMethod.HEAD, HTTPMethod.OPTIONS)

    def handle(self, request: Request, next: Next) -> Continue:
        if request.parsed_body is not None or not request.body:
            return Continue(request)
        if request.method in self.skip_methods:
            return Continue(request)
        return Continue(request.with_parsed_body(self.parse(request)))

    def parse(self, request: Request) -> Any:
        content_type = request.content_type
        if content_type == MediaType.JSON or content_type.endswith("+json"):
            try:
                return json.loads(request.body)
            except (ValueError, UnicodeDecodeError) as exc:
                raise BadRequest(detail=f"Malformed JSON body: {exc}") from exc
        if content_type == MediaType.FORM:
            return dict(parse_qsl(request.body.decode("latin-1"), keep_blank_values=True))
        return None
