from __future__ import annotations

from enum import IntEnum

from waypoint.conf.enums import StrEnum


class MatchStatus(IntEnum):
    """
    Outcome of evaluating the compiled matcher against a method and path.
    """

    NOT_FOUND = 0
    FOUND = 1
    METHOD_NOT_ALLOWED = 2


class HTTPMethod(StrEnum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    @classmethod
    def to_list(cls) -> list[str]:
        return [method.value for method in cls]


class HeaderEnum(StrEnum):
    ACCEPT = "Accept"
    ACCESS_CONTROL_ALLOW_ORIGIN = "Access-Control-Allow-Origin"
    ALLOW = "Allow"
    AUTHORIZATION = "Authorization"
    CONTENT_TYPE = "Content-Type"
    LOCATION = "Location"
    ORIGIN = "Origin"
    VARY = "Vary"
    X_REQUESTED_WITH = "X-Requested-With"

    @classmethod
    def to_set(cls) -> set[str]:
        return {header.value for header in cls}


class MediaType(StrEnum):
    JSON = "application/json"
    HTML = "text/html"
    TEXT = "text/plain"
    FORM = "application/x-www-form-urlencoded"
    OCTET = "application/octet-stream"
