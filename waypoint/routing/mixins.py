from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from waypoint.enums import HTTPMethod
from waypoint.types import MiddlewareReference

if TYPE_CHECKING:
    from waypoint.routing.route import Route

ANY_METHODS: tuple[str, ...] = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")


class RoutingMethodsMixin:
    """
    The verb helpers shared by the router and its scoped registrars.

    Every helper registers a route when an action is given and returns it.
    Without an action it returns a decorator instead.

    ```python
    router.get("/users/{user}", show_user, name="users.show")

    @router.post("/users", name="users.store")
    def store_user(request: Request): ...
    ```
    """

    def add_route(
        self,
        methods: str | Iterable[str],
        uri: str,
        action: Any,
        **options: Any,
    ) -> Route:
        raise NotImplementedError("`add_route()` must be implemented in subclasses.")

    def forward_route(
        self,
        methods: str | Iterable[str],
        uri: str,
        action: Any = None,
        name: str | None = None,
        middleware: Sequence[MiddlewareReference] | MiddlewareReference | None = None,
        where: Mapping[str, str] | None = None,
    ) -> Any:
        options: dict[str, Any] = {}
        if name is not None:
            options["name"] = name
        if middleware is not None:
            options["middleware"] = middleware
        if where is not None:
            options["where"] = where

        if action is not None:
            return self.add_route(methods, uri, action, **options)

        def wrapper(func: Callable[..., Any]) -> Callable[..., Any]:
            self.add_route(methods, uri, func, **options)
            return func

        return wrapper

    def get(
        self,
        uri: str,
        action: Any = None,
        *,
        name: str | None = None,
        middleware: Sequence[MiddlewareReference] | MiddlewareReference | None = None,
        where: Mapping[str, str] | None = None,
    ) -> Any:
        """
        Registers a `GET` route, which also answers `HEAD`.

        Args:
            uri (str): The URI pattern, for example `/users/{user}`.
            action (Any, optional): The handler or controller reference. Without
                it a decorator is returned.
            name (str | None, optional): The route name, appended to the group name.
            middleware (optional): Middleware declared on the route.
            where (Mapping[str, str] | None, optional): Placeholder constraints.

        Returns:
            The `Route`, or a decorator when no action is given.
        """
        return self.forward_route(
            [HTTPMethod.GET.value], uri, action, name=name, middleware=middleware, where=where
        )

    def post(
        self,
        uri: str,
        action: Any = None,
        *,
        name: str | None = None,
        middleware: Sequence[MiddlewareReference] | MiddlewareReference | None = None,
        where: Mapping[str, str] | None = None,
    ) -> Any:
        return self.forward_route(
            [HTTPMethod.POST.value], uri, action, name=name, middleware=middleware, where=where
        )

    def put(
        self,
        uri: str,
        action: Any = None,
        *,
        name: str | None = None,
        middleware: Sequence[MiddlewareReference] | MiddlewareReference | None = None,
        where: Mapping[str, str] | None = None,
    ) -> Any:
        return self.forward_route(
            [HTTPMethod.PUT.value], uri, action, name=name, middleware=middleware, where=where
        )

    def patch(
        self,
        uri: str,
        action: Any = None,
        *,
        name: str | None = None,
        middleware: Sequence[MiddlewareReference] | MiddlewareReference | None = None,
        where: Mapping[str, str] | None = None,
    ) -> Any:
        return self.forward_route(
            [HTTPMethod.PATCH.value], uri, action, name=name, middleware=middleware, where=where
        )

    def delete(
        self,
        uri: str,
        action: Any = None,
        *,
        name: str | None = None,
        middleware: Sequence[MiddlewareReference] | MiddlewareReference | None = None,
        where: Mapping[str, str] | None = None,
    ) -> Any:
        return self.forward_route(
            [HTTPMethod.DELETE.value], uri, action, name=name, middleware=middleware, where=where
        )

    def options(
        self,
        uri: str,
        action: Any = None,
        *,
        name: str | None = None,
        middleware: Sequence[MiddlewareReference] | MiddlewareReference | None = None,
        where: Mapping[str, str] | None = None,
    ) -> Any:
        return self.forward_route(
            [HTTPMethod.OPTIONS.value], uri, action, name=name, middleware=middleware, where=where
        )

    def any(
        self,
        uri: str,
        action: Any = None,
        *,
        name: str | None = None,
        middleware: Sequence[MiddlewareReference] | MiddlewareReference | None = None,
        where: Mapping[str, str] | None = None,
    ) -> Any:
        """
        Registers a route answering every verb.
        """
        return self.forward_route(
            ANY_METHODS, uri, action, name=name, middleware=middleware, where=where
        )

    def match(
        self,
        methods: str | Iterable[str],
        uri: str,
        action: Any = None,
        *,
        name: str | None = None,
        middleware: Sequence[MiddlewareReference] | MiddlewareReference | None = None,
        where: Mapping[str, str] | None = None,
    ) -> Any:
        """
        Registers a route for the given verbs.

        ```python
        router.match(["PUT", "PATCH"], "/users/{user}", update_user)
        ```
        """
        return self.forward_route(
            methods, uri, action, name=name, middleware=middleware, where=where
        )
