from __future__ import annotations

import copy
import re
from collections.abc import Callable, Iterable, Mapping
from re import Pattern
from typing import TYPE_CHECKING, Any

from waypoint._internal._path import compile_path, parameter_names, parse_uri, replace_params
from waypoint.conf import settings
from waypoint.container import Container
from waypoint.enums import HTTPMethod
from waypoint.exceptions import ImproperlyConfigured, RouteNotBound
from waypoint.routing.actions import ControllerAction, InlineHandler, RouteAction, parse_action
from waypoint.routing.middleware import unique_middleware
from waypoint.routing.results import unwrap
from waypoint.types import MiddlewareReference

if TYPE_CHECKING:
    from waypoint.requests import Request
    from waypoint.routing.resolvers import CallableResolver, ControllerResolver

UUID_PATTERN = "[\\da-fA-F]{8}-[\\da-fA-F]{4}-[\\da-fA-F]{4}-[\\da-fA-F]{4}-[\\da-fA-F]{12}"


def normalize_methods(methods: str | Iterable[str]) -> list[str]:
    """
    Upper cases and deduplicates the methods. `GET` always brings `HEAD` along.
    """
    if isinstance(methods, str):
        methods = [methods]
    normalized: list[str] = []
    for method in methods:
        method = str(method).upper()
        if method not in normalized:
            normalized.append(method)
    if HTTPMethod.GET in normalized and HTTPMethod.HEAD not in normalized:
        normalized.append(HTTPMethod.HEAD.value)
    return normalized


class Route:
    """
    A single routable endpoint: the methods and URI it answers to, the
    action it runs and the attributes attached during registration.

    Registration attributes can only change until the route is finalized.
    Matching a request never changes a registered route, it produces a
    bound copy through `bind()` that carries the request parameters.
    """

    def __init__(
        self,
        methods: str | Iterable[str],
        uri: str,
        action: Any,
        *,
        name: str | None = None,
        prefix: str | None = None,
        middleware: Iterable[MiddlewareReference] | None = None,
        excluded_middleware: Iterable[MiddlewareReference] | None = None,
        wheres: Mapping[str, str] | None = None,
        container: Container | None = None,
    ) -> None:
        self.methods: list[str] = normalize_methods(methods)
        self.action: RouteAction = parse_action(action)
        self.container = container
        self.wheres: dict[str, str] = {}
        self._name: str | None = name or None
        self._prefix: str | None = prefix or None
        self._middleware: list[MiddlewareReference] = list(middleware or [])
        self._excluded_middleware: list[MiddlewareReference] = list(excluded_middleware or [])
        self._parameters: dict[str, Any] | None = None
        self._original_parameters: dict[str, Any] | None = None
        self._controller: Any = None
        self._finalized = False

        # Filled in by finalize().
        self._parameter_names: tuple[str, ...] | None = None
        self._pattern: Pattern[str] | None = None
        self._computed_middleware: list[MiddlewareReference] | None = None
        self.resolved_middleware: list[MiddlewareReference] | None = None

        self.set_uri(uri)
        if wheres:
            self.where(wheres)

    def _ensure_mutable(self) -> None:
        if self._finalized or self._parameters is not None:
            raise ImproperlyConfigured(
                f"Route '{self.uri}' can no longer be changed once the router is finalized."
            )

    # Registration

    def set_uri(self, uri: str) -> Route:
        self._ensure_mutable()
        parsed = parse_uri(uri)
        self.uri = parsed.uri
        self.binding_fields = parsed.binding_fields
        return self

    def prefix(self, prefix: str | None) -> Route:
        """
        Adds a prefix in front of the URI.
        """
        self._ensure_mutable()
        prefix = (prefix or "").strip("/")
        if not prefix:
            return self
        self._prefix = "/".join(part for part in (prefix, self._prefix) if part)
        return self.set_uri(f"{prefix}/{self.uri.lstrip('/')}")

    def get_prefix(self) -> str | None:
        return self._prefix

    def name(self, name: str) -> Route:
        """
        Appends to the route name, so a group name prefix such as
        `"users."` stays in front.
        """
        self._ensure_mutable()
        self._name = (self._name or "") + name
        return self

    def get_name(self) -> str | None:
        return self._name

    def named(self, *patterns: str) -> bool:
        """
        Whether the route name matches any of the patterns. A trailing `*`
        matches any suffix.
        """
        if self._name is None:
            return False
        for pattern in patterns:
            if pattern.endswith("*") and self._name.startswith(pattern[:-1]):
                return True
            if self._name == pattern:
                return True
        return False

    def where(self, name: str | Mapping[str, str], expression: str | None = None) -> Route:
        """
        Constrains placeholders with regular expressions.

        ```python
        router.get("/users/{user}", show).where("user", "[0-9]+")
        router.get("/{year}/{slug}", post).where({"year": "[0-9]{4}"})
        ```
        """
        self._ensure_mutable()
        wheres = dict(name) if isinstance(name, Mapping) else {name: expression}
        for key, value in wheres.items():
            if value is None:
                raise ImproperlyConfigured(f"The constraint of '{key}' cannot be empty.")
            self.wheres[key] = value
        return self

    def where_number(self, *names: str) -> Route:
        return self.where({name: "[0-9]+" for name in names})

    def where_alpha(self, *names: str) -> Route:
        return self.where({name: "[a-zA-Z]+" for name in names})

    def where_alpha_numeric(self, *names: str) -> Route:
        return self.where({name: "[a-zA-Z0-9]+" for name in names})

    def where_uuid(self, *names: str) -> Route:
        return self.where({name: UUID_PATTERN for name in names})

    def where_in(self, name: str, values: Iterable[str]) -> Route:
        return self.where(name, "|".join(re.escape(str(value)) for value in values))

    def middleware(self, *middleware: MiddlewareReference) -> Route:
        """
        Appends middleware to the route.
        """
        self._ensure_mutable()
        for item in middleware:
            if isinstance(item, (list, tuple)):
                self._middleware.extend(item)
            else:
                self._middleware.append(item)
        return self

    def get_middleware(self) -> list[MiddlewareReference]:
        return list(self._middleware)

    def without_middleware(self, *middleware: MiddlewareReference) -> Route:
        """
        Excludes middleware the route would otherwise inherit.
        """
        self._ensure_mutable()
        for item in middleware:
            if isinstance(item, (list, tuple)):
                self._excluded_middleware.extend(item)
            else:
                self._excluded_middleware.append(item)
        return self

    def excluded_middleware(self) -> list[MiddlewareReference]:
        return list(self._excluded_middleware)

    def set_container(self, container: Container) -> Route:
        self.container = container
        return self

    # Action

    def is_controller_action(self) -> bool:
        return isinstance(self.action, ControllerAction)

    @property
    def identifier(self) -> str | None:
        return self.action.identifier

    def get_controller_class(self) -> type | None:
        if isinstance(self.action, ControllerAction):
            return self.action.controller
        return None

    def get_controller_method(self) -> str | None:
        if isinstance(self.action, ControllerAction):
            return self.action.method
        return None

    def get_controller(self) -> Any:
        """
        The controller instance, built through the container once per
        bound route.
        """
        if not isinstance(self.action, ControllerAction):
            return None
        if self._controller is None:
            self._controller = self.get_container().make(self.action.controller)
        return self._controller

    def get_action(self, key: str | None = None) -> Any:
        action: dict[str, Any] = {
            "uses": (
                self.action.handler
                if isinstance(self.action, InlineHandler)
                else self.action.identifier
            ),
            "as": self._name,
            "prefix": self._prefix,
            "middleware": self.get_middleware(),
            "excluded_middleware": self.excluded_middleware(),
            "where": dict(self.wheres),
        }
        if isinstance(self.action, ControllerAction):
            action["controller"] = self.action.identifier
        if key is None:
            return action
        return action.get(key)

    def get_container(self) -> Container:
        if self.container is None:
            self.container = Container()
        return self.container

    def controller_resolver(self) -> ControllerResolver:
        from waypoint.routing.resolvers import ControllerResolver

        container = self.get_container()
        if container.bound(ControllerResolver):
            return container.make(ControllerResolver)
        return ControllerResolver(container)

    def callable_resolver(self) -> CallableResolver:
        from waypoint.routing.resolvers import CallableResolver

        container = self.get_container()
        if container.bound(CallableResolver):
            return container.make(CallableResolver)
        return CallableResolver(container)

    def run(self, request: Request | None = None) -> Any:
        """
        Runs the action and returns whatever it produced. A `Respond`
        short circuit is unwrapped into the response it carries.
        """
        if isinstance(self.action, ControllerAction):
            result = self.controller_resolver().dispatch(
                self, self.get_controller(), self.action.method, request
            )
        else:
            result = self.callable_resolver().dispatch(self, self.action.handler, request)
        return unwrap(result)

    # Middleware

    def controller_middleware(self) -> list[MiddlewareReference]:
        if not isinstance(self.action, ControllerAction):
            return []
        if not callable(getattr(self.action.controller, "get_middleware", None)):
            return []
        return self.controller_resolver().get_middleware(
            self.get_controller(), self.action.method
        )

    def gather_middleware(self) -> list[MiddlewareReference]:
        """
        Route and controller middleware, deduplicated, in declaration order.
        """
        if self._computed_middleware is not None:
            return list(self._computed_middleware)
        return unique_middleware([*self._middleware, *self.controller_middleware()])

    # Parameters

    def parameter_names(self) -> tuple[str, ...]:
        if self._parameter_names is not None:
            return self._parameter_names
        return parameter_names(self.uri)

    def compile(self, default_pattern: str | None = None) -> Pattern[str]:
        if self._pattern is not None:
            return self._pattern
        return compile_path(
            self.uri, self.wheres, default_pattern or settings.default_parameter_pattern
        )

    def bind(self, parameters: Mapping[str, Any]) -> Route:
        """
        Returns a copy of the route bound to the matched parameters.

        Only declared placeholders with a non empty string value are kept,
        so an optional placeholder that matched nothing is absent.
        """
        names = self.parameter_names()
        bound = copy.copy(self)
        bound._parameters = {
            key: value
            for key, value in parameters.items()
            if key in names and isinstance(value, str) and value
        }
        bound._original_parameters = dict(bound._parameters)
        bound._controller = None
        return bound

    def has_parameters(self) -> bool:
        return self._parameters is not None

    def has_parameter(self, name: str) -> bool:
        return self.has_parameters() and self.parameters.get(name) is not None

    @property
    def parameters(self) -> dict[str, Any]:
        """
        Raises:
            RouteNotBound: When the route was not matched yet.
        """
        if self._parameters is None:
            raise RouteNotBound(self.uri)
        return self._parameters

    def parameter(self, name: str, default: Any = None) -> Any:
        return self.parameters.get(name, default)

    def original_parameter(self, name: str, default: Any = None) -> Any:
        if self._original_parameters is None:
            raise RouteNotBound(self.uri)
        return self._original_parameters.get(name, default)

    def set_parameter(self, name: str, value: Any) -> None:
        self.parameters[name] = value

    def forget_parameter(self, name: str) -> None:
        self.parameters.pop(name, None)

    def parameters_without_nulls(self) -> dict[str, Any]:
        return {key: value for key, value in self.parameters.items() if value is not None}

    def url(self, **parameters: Any) -> str:
        return replace_params(self.uri, parameters)

    # Lifecycle

    def finalize(
        self,
        resolve_middleware: Callable[[list[Any], list[Any]], list[Any]] | None = None,
        default_pattern: str | None = None,
    ) -> Route:
        """
        Computes everything derived from the registration attributes once,
        so dispatching never writes to a shared route.
        """
        if self._finalized:
            return self
        self._parameter_names = parameter_names(self.uri)
        self._pattern = self.compile(default_pattern)
        self._computed_middleware = unique_middleware(
            [*self._middleware, *self.controller_middleware()]
        )
        if resolve_middleware is not None:
            self.resolved_middleware = resolve_middleware(
                self._computed_middleware, self.excluded_middleware()
            )
        self._controller = None
        self._finalized = True
        return self

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(methods={self.methods!r}, uri={self.uri!r}, "
            f"name={self._name!r}, action={self.action!r})"
        )
