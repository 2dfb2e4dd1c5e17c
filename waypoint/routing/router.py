from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from importlib import import_module
from typing import Any

from waypoint._internal._inflection import singularize
from waypoint._internal._path import join_paths
from waypoint.conf import settings
from waypoint.container import Container
from waypoint.context import dispatching, get_current_request, get_current_route
from waypoint.exceptions import ImproperlyConfigured, NoMatchFound
from waypoint.logging import log_route_match, log_route_registered, log_router_finalized
from waypoint.requests import Request
from waypoint.responses import Response, prepare_response
from waypoint.routing.actions import split_action_options
from waypoint.routing.collection import RouteCollection
from waypoint.routing.groups import GroupAttributes, as_list
from waypoint.routing.middleware import MiddlewareResolver
from waypoint.routing.mixins import RoutingMethodsMixin
from waypoint.routing.pipeline import Pipeline
from waypoint.routing.resolvers import CallableResolver, ControllerResolver
from waypoint.routing.results import MatchResult, Preflight
from waypoint.routing.route import Route
from waypoint.types import MiddlewareReference

ROUTE_OPTIONS = frozenset({"as", "name", "prefix", "middleware", "excluded_middleware", "where"})

RESOURCE_ACTIONS: dict[str, tuple[tuple[str, ...], bool]] = {
    # action: (methods, takes the resource parameter)
    "index": (("GET",), False),
    "store": (("POST",), False),
    "show": (("GET",), True),
    "update": (("PUT", "PATCH"), True),
    "destroy": (("DELETE",), True),
}

GroupRoutes = Callable[["RouteRegistrar"], Any] | str


class RouteRegistrar(RoutingMethodsMixin):
    """
    Registers routes on a router with a fixed set of group attributes.

    Every group gets its own registrar carrying the merged attributes, so
    nesting never needs shared state.

    ```python
    def api(routes: RouteRegistrar) -> None:
        routes.get("/users", list_users, name="index")

    router.group({"prefix": "api", "as": "api.", "middleware": ["auth"]}, api)
    router.prefix("admin").middleware("auth").group(admin_routes)
    ```
    """

    def __init__(self, router: Router, attributes: GroupAttributes) -> None:
        self.router = router
        self.attributes = attributes

    def add_route(
        self, methods: str | Iterable[str], uri: str, action: Any, **options: Any
    ) -> Route:
        return self.router.create_route(methods, uri, action, self.attributes, options)

    def group(
        self,
        attributes: Mapping[str, Any] | GroupAttributes | GroupRoutes | Sequence[GroupRoutes] | None,
        routes: GroupRoutes | Sequence[GroupRoutes] | None = None,
    ) -> RouteRegistrar:
        """
        Registers `routes` with `attributes` merged into the current ones.

        `routes` is a callable receiving the scoped registrar, the dotted
        path of a module defining a `register(routes)` function, or a list
        of those. Scoped registrars can omit the attributes,
        `router.prefix("admin").group(admin_routes)`.
        """
        if routes is None:
            attributes, routes = None, attributes  # type: ignore[assignment]
        merged = self.attributes.merge(GroupAttributes.from_mapping(attributes))
        self.router.load_routes(RouteRegistrar(self.router, merged), routes)
        return self

    def scoped(self, **attributes: Any) -> RouteRegistrar:
        return RouteRegistrar(self.router, self.attributes.merge(attributes))

    def prefix(self, prefix: str) -> RouteRegistrar:
        return self.scoped(prefix=prefix)

    def name(self, name: str) -> RouteRegistrar:
        return self.scoped(**{"as": name})

    def middleware(self, *middleware: MiddlewareReference) -> RouteRegistrar:
        return self.scoped(middleware=list(middleware))

    def without_middleware(self, *middleware: MiddlewareReference) -> RouteRegistrar:
        return self.scoped(excluded_middleware=list(middleware))

    def controller(self, controller: type | str) -> RouteRegistrar:
        return self.scoped(controller=controller)

    def namespace(self, namespace: str) -> RouteRegistrar:
        return self.scoped(namespace=namespace)

    def where(self, wheres: Mapping[str, str]) -> RouteRegistrar:
        return self.scoped(where=dict(wheres))

    def api_resource(
        self,
        name: str,
        controller: type | str,
        *,
        only: Iterable[str] | None = None,
        except_: Iterable[str] | None = None,
        parameters: Mapping[str, str] | None = None,
        names: Mapping[str, str] | None = None,
        middleware: Sequence[MiddlewareReference] | MiddlewareReference | None = None,
        excluded_middleware: Sequence[MiddlewareReference] | MiddlewareReference | None = None,
        where: Mapping[str, str] | None = None,
    ) -> list[Route]:
        """
        Registers the five API routes of a resource controller.

        For `api_resource("users", UserController)`:

        | Method        | URI            | Action    | Name            |
        | ------------- | -------------- | --------- | --------------- |
        | GET           | `users`        | `index`   | `users.index`   |
        | POST          | `users`        | `store`   | `users.store`   |
        | GET           | `users/{user}` | `show`    | `users.show`    |
        | PUT, PATCH    | `users/{user}` | `update`  | `users.update`  |
        | DELETE        | `users/{user}` | `destroy` | `users.destroy` |

        Args:
            name: The resource name, used as prefix and route name prefix.
            controller: The controller class or its dotted path.
            only: Register only these actions.
            except_: Register every action but these.
            parameters: Overrides the placeholder name, keyed by resource name.
            names: Overrides the route name suffix, keyed by action.
            middleware: Middleware applied to every resource route.
            excluded_middleware: Middleware removed from every resource route.
            where: Placeholder constraints.

        Returns:
            The registered routes, in the order above.
        """
        resource = name.strip("/")
        parameter = (parameters or {}).get(resource) or singularize(
            resource.rsplit("/", 1)[-1]
        ).replace("-", "_")
        names = dict(names or {})

        actions = [
            action
            for action in RESOURCE_ACTIONS
            if (only is None or action in only) and (except_ is None or action not in except_)
        ]
        registered: list[Route] = []

        def register(routes: RouteRegistrar) -> None:
            for action in actions:
                methods, with_parameter = RESOURCE_ACTIONS[action]
                uri = f"/{{{parameter}}}" if with_parameter else "/"
                route = routes.add_route(methods, uri, action)
                registered.append(route.name(names.get(action, action)))

        self.group(
            {
                "prefix": resource,
                "as": resource.replace("/", ".") + ".",
                "controller": controller,
                "middleware": as_list(middleware),
                "excluded_middleware": as_list(excluded_middleware),
                "where": dict(where or {}),
            },
            register,
        )
        return registered

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(attributes={self.attributes!r})"


class Router(RouteRegistrar):
    """
    Registers routes and dispatches requests to them.

    Dispatching a request goes through four steps: the route collection
    finds and binds the route, the route middleware is resolved, the
    pipeline runs the middleware around the route action, and the returned
    value is turned into a `Response`.

    The router is finalized on the first dispatch (or by calling
    `finalize()`). From then on the route table is read only and can be
    shared by concurrent dispatches.

    **Example**

    ```python
    router = Router()
    router.get("/users/{user}", show_user, name="users.show")

    response = router.dispatch(Request("GET", "/users/42"))
    ```
    """

    def __init__(
        self,
        container: Container | None = None,
        routes: RouteCollection | None = None,
        *,
        middleware_aliases: Mapping[str, Any] | None = None,
        middleware_groups: Mapping[str, Sequence[MiddlewareReference]] | None = None,
        middleware_priority: Sequence[Any] | None = None,
    ) -> None:
        super().__init__(self, GroupAttributes())
        self.container = container or Container()
        self.routes = routes if routes is not None else RouteCollection()
        self.middleware_resolver = MiddlewareResolver(
            middleware_aliases, middleware_groups, middleware_priority
        )
        self._finalized = False
        self._lock = threading.Lock()

        self.container.instance(Router, self)
        self.container.instance("router", self)
        self.container.bind(Request, lambda container: get_current_request())
        self.container.bind(Route, lambda container: get_current_route())
        if not self.container.bound(ControllerResolver):
            self.container.singleton(ControllerResolver)
        if not self.container.bound(CallableResolver):
            self.container.singleton(CallableResolver)

    def _ensure_registering(self) -> None:
        if self._finalized:
            raise ImproperlyConfigured(
                "The router is finalized, routes and middleware can no longer be registered."
            )

    # Registration

    def create_route(
        self,
        methods: str | Iterable[str],
        uri: str,
        action: Any,
        attributes: GroupAttributes,
        options: Mapping[str, Any] | None = None,
    ) -> Route:
        """
        Builds a route with the group attributes folded in and adds it to
        the collection.
        """
        self._ensure_registering()

        action, action_options = split_action_options(action)
        route_options = {**action_options, **(options or {})}
        unknown = set(route_options) - ROUTE_OPTIONS
        if unknown:
            raise ImproperlyConfigured(f"Unknown route option(s): {', '.join(sorted(unknown))}.")

        merged = attributes.route_options(route_options)
        route = self.new_route(
            methods,
            join_paths([attributes.prefix, route_options.get("prefix"), uri]),
            attributes.qualify_action(action),
            **merged,
        )
        self.routes.add(route)
        log_route_registered(route)
        return route

    def new_route(
        self, methods: str | Iterable[str], uri: str, action: Any, **options: Any
    ) -> Route:
        return Route(methods, uri, action, container=self.container, **options)

    def load_routes(
        self, registrar: RouteRegistrar, routes: GroupRoutes | Sequence[GroupRoutes]
    ) -> None:
        for group_routes in routes if isinstance(routes, (list, tuple)) else [routes]:
            if isinstance(group_routes, str):
                module = import_module(group_routes)
                register = getattr(module, settings.route_registration_function, None)
                if not callable(register):
                    raise ImproperlyConfigured(
                        f"Module '{group_routes}' does not define a "
                        f"'{settings.route_registration_function}' function."
                    )
                register(registrar)
            elif callable(group_routes):
                group_routes(registrar)
            else:
                raise ImproperlyConfigured(f"Cannot load routes from {group_routes!r}.")

    # Middleware configuration

    def alias_middleware(self, name: str, middleware: Any) -> Router:
        self._ensure_registering()
        self.middleware_resolver.aliases[name] = middleware
        return self

    def middleware_group(self, name: str, middleware: Sequence[MiddlewareReference]) -> Router:
        self._ensure_registering()
        self.middleware_resolver.groups[name] = list(middleware)
        return self

    def prepend_middleware_to_group(self, group: str, middleware: MiddlewareReference) -> Router:
        self._ensure_registering()
        items = self.middleware_resolver.groups.setdefault(group, [])
        if middleware not in items:
            items.insert(0, middleware)
        return self

    def push_middleware_to_group(self, group: str, middleware: MiddlewareReference) -> Router:
        self._ensure_registering()
        items = self.middleware_resolver.groups.setdefault(group, [])
        if middleware not in items:
            items.append(middleware)
        return self

    def has_middleware_group(self, name: str) -> bool:
        return name in self.middleware_resolver.groups

    def get_middleware(self) -> dict[str, Any]:
        """
        The middleware aliases.
        """
        return dict(self.middleware_resolver.aliases)

    def get_middleware_groups(self) -> dict[str, list[MiddlewareReference]]:
        return {name: list(items) for name, items in self.middleware_resolver.groups.items()}

    @property
    def middleware_priority(self) -> list[Any]:
        return list(self.middleware_resolver.priority)

    @middleware_priority.setter
    def middleware_priority(self, priority: Sequence[Any]) -> None:
        self.set_middleware_priority(priority)

    def set_middleware_priority(self, priority: Sequence[Any]) -> Router:
        self._ensure_registering()
        self.middleware_resolver.priority = list(priority)
        return self

    def resolve_middleware(
        self,
        middleware: Iterable[MiddlewareReference],
        excluded: Iterable[MiddlewareReference] = (),
    ) -> list[MiddlewareReference]:
        return self.middleware_resolver.resolve(middleware, excluded)

    def gather_route_middleware(self, route: Route) -> list[MiddlewareReference]:
        if route.resolved_middleware is not None:
            return list(route.resolved_middleware)
        return self.resolve_middleware(route.gather_middleware(), route.excluded_middleware())

    # Lifecycle

    def finalize(self) -> Router:
        """
        Ends the registration phase.

        Every route computes its parameter names, pattern and middleware
        chain, the name and action lookups are rebuilt and the matcher is
        compiled. Calling it again does nothing.
        """
        if self._finalized:
            return self
        with self._lock:
            if self._finalized:
                return self
            default_pattern = self.routes.default_pattern or settings.default_parameter_pattern
            for route in self.routes:
                if route.container is None:
                    route.set_container(self.container)
                route.finalize(self.resolve_middleware, default_pattern)
            self.routes.refresh_name_lookups()
            self.routes.refresh_action_lookups()
            self.routes.compile()
            self._finalized = True
        log_router_finalized(len(self.routes))
        return self

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    # Dispatching

    def dispatch(self, request: Request) -> Response:
        """
        Runs the request through the matched route and its middleware.

        Raises:
            NotFound: When no route matches the path.
            MethodNotAllowed: When the path exists but not for this method.
        """
        self.finalize()
        result = self.find_route(request)
        if isinstance(result, Preflight):
            return result.response
        return self.run_route(request, result.route)

    def find_route(self, request: Request) -> MatchResult:
        result = self.routes.match(request)
        log_route_match(request, result)
        return result

    def run_route(self, request: Request, route: Route) -> Response:
        for key, value in route.parameters.items():
            request = request.with_attribute(key, value)
        request = request.with_attribute("route", route)

        with dispatching(request, route):
            return prepare_response(request, self.run_route_within_stack(route, request))

    def run_route_within_stack(self, route: Route, request: Request) -> Any:
        middleware = [] if self.should_skip_middleware() else self.gather_route_middleware(route)

        def destination(request: Request) -> Response:
            with dispatching(request, route):
                return prepare_response(request, route.run(request))

        return Pipeline(self.container).send(request).through(middleware).then(destination)

    def should_skip_middleware(self) -> bool:
        if self.container.bound("middleware.disable"):
            return self.container.make("middleware.disable") is True
        return bool(settings.disable_middleware)

    # Introspection

    def get_routes(self) -> RouteCollection:
        return self.routes

    def set_routes(self, routes: RouteCollection) -> None:
        self._ensure_registering()
        for route in routes:
            route.set_container(self.container)
        self.routes = routes

    def get_by_name(self, name: str) -> Route | None:
        if not self._finalized:
            self.routes.refresh_name_lookups()
        return self.routes.get_by_name(name)

    def get_by_action(self, action: str) -> Route | None:
        if not self._finalized:
            self.routes.refresh_action_lookups()
        return self.routes.get_by_action(action)

    def has(self, *names: str) -> bool:
        return all(self.get_by_name(name) is not None for name in names)

    has_route = has

    def url(self, name: str, **parameters: Any) -> str:
        """
        Builds the path of a named route.

        Raises:
            NoMatchFound: When no route has this name.
        """
        route = self.get_by_name(name)
        if route is None:
            raise NoMatchFound(name)
        return route.url(**parameters)

    def current(self) -> Route | None:
        """
        The route being dispatched in the current context.
        """
        return get_current_route()

    def current_route_name(self) -> str | None:
        route = self.current()
        return route.get_name() if route is not None else None

    def current_route_named(self, *patterns: str) -> bool:
        route = self.current()
        return route is not None and route.named(*patterns)
