from __future__ import annotations

import threading
from collections.abc import Iterator
from typing import TYPE_CHECKING

from waypoint import status
from waypoint.conf import settings
from waypoint.enums import HTTPMethod, MatchStatus
from waypoint.exceptions import MethodNotAllowed, NotFound
from waypoint.logging import log_matcher_compiled
from waypoint.responses import Response
from waypoint.routing.matcher import RouteMatcher
from waypoint.routing.results import Matched, MatchResult, Preflight
from waypoint.routing.route import Route

if TYPE_CHECKING:
    from waypoint.requests import Request


class RouteCollection:
    """
    Every registered route, indexed by method and URI, by name and by
    controller action.

    Registering a route for a method and URI that already has one replaces
    it. The compiled matcher is built on the first match and dropped
    whenever a route is added.
    """

    def __init__(self, default_pattern: str | None = None) -> None:
        self.default_pattern = default_pattern
        self.routes: dict[str, dict[str, Route]] = {}
        self.all_routes: dict[str, Route] = {}
        self.name_list: dict[str, Route] = {}
        self.action_list: dict[str, Route] = {}
        self._matcher: RouteMatcher | None = None
        self._lock = threading.Lock()

    def add(self, route: Route) -> Route:
        self.add_to_collections(route)
        self.add_lookups(route)
        self._matcher = None
        return route

    def add_to_collections(self, route: Route) -> None:
        for method in route.methods:
            self.routes.setdefault(method, {})[route.uri] = route
        self.all_routes["|".join(route.methods) + route.uri] = route

    def add_lookups(self, route: Route) -> None:
        name = route.get_name()
        if name:
            self.name_list[name] = route

        identifier = route.identifier
        if identifier:
            self.action_list[identifier] = route

    def refresh_name_lookups(self) -> None:
        """
        Rebuilds the name index. Names can be set after a route was added,
        for example `router.get(...).name("home")`.
        """
        self.name_list = {}
        for route in self.all_routes.values():
            name = route.get_name()
            if name:
                self.name_list[name] = route

    def refresh_action_lookups(self) -> None:
        self.action_list = {}
        for route in self.all_routes.values():
            if route.identifier:
                self.action_list[route.identifier] = route

    def compile(self) -> RouteMatcher:
        """
        The compiled matcher, built once until the next `add()`.
        """
        matcher = self._matcher
        if matcher is not None:
            return matcher
        with self._lock:
            if self._matcher is None:
                self._matcher = RouteMatcher(
                    self.routes, self.default_pattern or settings.default_parameter_pattern
                )
                log_matcher_compiled(len(self))
            return self._matcher

    def match(self, request: Request) -> MatchResult:
        """
        Finds the route for the request.

        Returns:
            `Matched` with a copy of the route bound to the request
            parameters, or `Preflight` with the answer to an `OPTIONS`
            request on a path that has no `OPTIONS` route.

        Raises:
            NotFound: When no route matches the path.
            MethodNotAllowed: When routes match the path but none accepts
                the method.
        """
        outcome = self.compile().dispatch(request.method, request.route_path)

        if outcome.status is MatchStatus.FOUND:
            assert outcome.route is not None
            return Matched(outcome.route.bind(outcome.parameters))
        if outcome.status is MatchStatus.METHOD_NOT_ALLOWED:
            return self.get_route_for_methods(request, outcome.allowed_methods)
        raise NotFound.for_path(request.path)

    def get_route_for_methods(self, request: Request, methods: list[str]) -> Preflight:
        if request.method == HTTPMethod.OPTIONS:
            response = Response(
                status_code=status.HTTP_200_OK, headers={"Allow": ", ".join(methods)}
            )
            return Preflight(response, list(methods))
        raise MethodNotAllowed.for_request(request.method, request.path, methods)

    def has_named_route(self, name: str) -> bool:
        return self.get_by_name(name) is not None

    def get_by_name(self, name: str) -> Route | None:
        return self.name_list.get(name)

    def get_by_action(self, action: str) -> Route | None:
        return self.action_list.get(action)

    def get(self, method: str | None = None) -> list[Route]:
        if method is None:
            return self.get_routes()
        return list(self.routes.get(method.upper(), {}).values())

    def get_routes(self) -> list[Route]:
        return list(self.all_routes.values())

    def get_routes_by_method(self) -> dict[str, dict[str, Route]]:
        return {method: dict(routes) for method, routes in self.routes.items()}

    def get_routes_by_name(self) -> dict[str, Route]:
        return dict(self.name_list)

    def __iter__(self) -> Iterator[Route]:
        return iter(self.get_routes())

    def __len__(self) -> int:
        return len(self.all_routes)
