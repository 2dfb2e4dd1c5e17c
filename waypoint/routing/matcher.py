from __future__ import annotations

from collections.abc import Mapping
from re import Pattern
from typing import TYPE_CHECKING, NamedTuple

from waypoint._internal._path import is_static
from waypoint.enums import HTTPMethod, MatchStatus

if TYPE_CHECKING:
    from waypoint.routing.route import Route


class MatchOutcome(NamedTuple):
    status: MatchStatus
    route: Route | None = None
    parameters: dict[str, str] = {}
    allowed_methods: list[str] = []


class RouteMatcher:
    """
    A compiled lookup over the registered routes.

    Static URIs are answered from a dictionary. URIs with placeholders are
    tried in registration order against their compiled patterns. A `HEAD`
    request falls back to the `GET` routes.
    """

    def __init__(self, routes: Mapping[str, Mapping[str, Route]], default_pattern: str) -> None:
        self.static: dict[str, dict[str, Route]] = {}
        self.variable: dict[str, list[tuple[Pattern[str], Route]]] = {}

        for method, by_uri in routes.items():
            for uri, route in by_uri.items():
                if is_static(uri):
                    self.static.setdefault(method, {})[uri] = route
                else:
                    self.variable.setdefault(method, []).append(
                        (route.compile(default_pattern), route)
                    )

    def dispatch(self, method: str, path: str) -> MatchOutcome:
        """
        Matches a method and a normalized path (see `Request.route_path`).
        """
        method = method.upper()
        outcome = self._dispatch_method(method, path)
        if outcome is not None:
            return outcome

        if method == HTTPMethod.HEAD:
            outcome = self._dispatch_method(HTTPMethod.GET.value, path)
            if outcome is not None:
                return outcome

        allowed = self.allowed_methods(path, exclude=method)
        if allowed:
            return MatchOutcome(MatchStatus.METHOD_NOT_ALLOWED, allowed_methods=allowed)
        return MatchOutcome(MatchStatus.NOT_FOUND)

    def allowed_methods(self, path: str, exclude: str | None = None) -> list[str]:
        """
        The methods some route accepts for `path`, static routes first.
        """
        allowed = [
            method
            for method, by_uri in self.static.items()
            if method != exclude and path in by_uri
        ]
        for method in self.variable:
            if method == exclude or method in allowed:
                continue
            if self._match_variable(method, path) is not None:
                allowed.append(method)
        return allowed

    def _dispatch_method(self, method: str, path: str) -> MatchOutcome | None:
        route = self.static.get(method, {}).get(path)
        if route is not None:
            return MatchOutcome(MatchStatus.FOUND, route, {})
        return self._match_variable(method, path)

    def _match_variable(self, method: str, path: str) -> MatchOutcome | None:
        candidates = (path, "") if path == "/" else (path,)
        for pattern, route in self.variable.get(method, []):
            for candidate in candidates:
                match = pattern.fullmatch(candidate)
                if match is not None:
                    parameters = {
                        key: value for key, value in match.groupdict().items() if value is not None
                    }
                    return MatchOutcome(MatchStatus.FOUND, route, parameters)
        return None
