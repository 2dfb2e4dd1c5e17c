from __future__ import annotations

import inspect
from collections.abc import Callable
from types import UnionType
from typing import TYPE_CHECKING, Any, Union, get_args, get_origin

from waypoint.container import Container, describe, is_injectable, safe_type_hints
from waypoint.context import get_current_request
from waypoint.exceptions import DependencyResolutionError
from waypoint.requests import Request
from waypoint.routing.controllers import ControllerMiddlewareOptions, method_excluded_by_options
from waypoint.types import MiddlewareReference

if TYPE_CHECKING:
    from waypoint.routing.route import Route


def _unwrap_optional(annotation: Any) -> Any:
    if get_origin(annotation) in (Union, UnionType):
        arguments = [argument for argument in get_args(annotation) if argument is not type(None)]
        if len(arguments) == 1:
            return arguments[0]
    return annotation


class ParameterResolver:
    """
    Works out the arguments of a route handler.

    Each parameter is satisfied, in order, by:

    1. the route parameter with the same name;
    2. the current request, for parameters typed as `Request` or untyped
       parameters called `request`;
    3. the bound route, for parameters typed as `Route`;
    4. the container, for any other class annotation;
    5. the parameter default.

    Anything left raises `DependencyResolutionError`.
    """

    def __init__(self, container: Container) -> None:
        self.container = container

    def resolve_parameters(
        self, route: Route, target: Callable[..., Any], request: Request | None = None
    ) -> tuple[list[Any], dict[str, Any]]:
        from waypoint.routing.route import Route

        route_parameters = route.parameters_without_nulls()
        request = request or get_current_request()
        hints = safe_type_hints(target)
        name = describe(target)

        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        consumed: set[str] = set()

        for parameter in inspect.signature(target).parameters.values():
            if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
                continue
            if parameter.kind is inspect.Parameter.VAR_KEYWORD:
                kwargs.update(
                    {key: value for key, value in route_parameters.items() if key not in consumed}
                )
                continue

            annotation = _unwrap_optional(hints.get(parameter.name, inspect.Parameter.empty))

            if parameter.name in route_parameters:
                value = route_parameters[parameter.name]
                consumed.add(parameter.name)
            elif inspect.isclass(annotation) and issubclass(annotation, Request):
                if request is None:
                    raise DependencyResolutionError(parameter.name, name, "no current request")
                value = request
            elif (
                annotation is inspect.Parameter.empty
                and parameter.name == "request"
                and request is not None
            ):
                value = request
            elif inspect.isclass(annotation) and issubclass(annotation, Route):
                value = route
            elif is_injectable(annotation) and (
                self.container.bound(annotation) or parameter.default is inspect.Parameter.empty
            ):
                try:
                    value = self.container.resolve(annotation)
                except DependencyResolutionError as exc:
                    raise DependencyResolutionError(parameter.name, name, exc.detail) from exc
            elif parameter.default is not inspect.Parameter.empty:
                continue
            else:
                raise DependencyResolutionError(parameter.name, name)

            if parameter.kind is inspect.Parameter.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[parameter.name] = value

        return args, kwargs


class CallableResolver(ParameterResolver):
    """
    Runs inline route handlers.
    """

    def dispatch(
        self, route: Route, handler: Callable[..., Any], request: Request | None = None
    ) -> Any:
        args, kwargs = self.resolve_parameters(route, handler, request)
        return handler(*args, **kwargs)


class ControllerResolver(ParameterResolver):
    """
    Runs controller actions and reads the middleware controllers declare.
    """

    def dispatch(
        self, route: Route, controller: Any, method: str, request: Request | None = None
    ) -> Any:
        """
        Calls `method` on `controller` with the resolved parameters.

        Controllers defining `call_action` receive the call instead so they
        can wrap every action.
        """
        args, kwargs = self.resolve_parameters(route, getattr(controller, method), request)

        if callable(getattr(controller, "call_action", None)):
            return controller.call_action(method, args, kwargs)
        return getattr(controller, method)(*args, **kwargs)

    def get_middleware(self, controller: Any, method: str) -> list[MiddlewareReference]:
        """
        The controller middleware whose `only`/`except` options allow `method`.
        """
        if not callable(getattr(controller, "get_middleware", None)):
            return []

        middleware: list[MiddlewareReference] = []
        for entry in controller.get_middleware():
            if isinstance(entry, dict):
                item, options = entry["middleware"], entry.get("options", {})
            elif isinstance(entry, ControllerMiddlewareOptions):
                item, options = entry.middleware, entry.options
            else:
                item, options = entry, {}
            if not method_excluded_by_options(method, options):
                middleware.append(item)
        return middleware
