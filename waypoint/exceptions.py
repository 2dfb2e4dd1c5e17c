from __future__ import annotations

import http
from collections.abc import Sequence
from typing import Any

from waypoint import status


class WaypointException(Exception):
    def __init__(self, *args: Any, detail: str = ""):
        self.detail = detail
        super().__init__(*(str(arg) for arg in args if arg), self.detail)

    def __repr__(self) -> str:  # pragma: no cover
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return "".join(self.args).strip()


class HTTPException(WaypointException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        *args: Any,
        status_code: int | None = None,
        detail: str | None = None,
        headers: dict[str, str] | None = None,
        **extra: Any,
    ) -> None:
        detail = detail or getattr(self, "detail", None)
        status_code = status_code or getattr(self, "status_code", None)
        if not detail:
            detail = args[0] if args else http.HTTPStatus(status_code or self.status_code).phrase
            args = args[1:]
        self.status_code = status_code
        self.detail = detail
        self.headers = headers
        self.args = (f"{self.status_code}: {self.detail}", *args)
        self.extra = extra

    def __str__(self) -> str:
        return f"{self.status_code}: {self.detail}"

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        return f"{class_name}(status_code={self.status_code!r}, detail={self.detail!r})"


class ImproperlyConfigured(HTTPException, ValueError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class BadRequest(HTTPException, ValueError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Bad request."


class NotAuthorized(HTTPException):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Not Authorized."


class AuthenticationError(NotAuthorized):
    """
    Raised when a request could not be authenticated.

    `redirect_to` is where browsers are sent. Clients that expect JSON
    receive the 401 instead.
    """

    detail = "Unauthenticated."

    def __init__(
        self,
        *args: Any,
        guards: Sequence[str] | None = None,
        redirect_to: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.guards = list(guards or [])
        self.redirect_to = redirect_to


class PermissionDenied(HTTPException):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "You do not have permission to perform this action."


class NotFound(HTTPException, ValueError):
    detail = "The resource cannot be found."
    status_code = status.HTTP_404_NOT_FOUND

    @classmethod
    def for_path(cls, path: str) -> NotFound:
        return cls(detail=f"The route {path} could not be found.")


class MethodNotAllowed(HTTPException):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED

    def __init__(
        self,
        allowed_methods: Sequence[str],
        *args: Any,
        detail: str | None = None,
        headers: dict[str, str] | None = None,
        **extra: Any,
    ) -> None:
        self.allowed_methods = list(allowed_methods)
        headers = {**(headers or {}), "Allow": ", ".join(self.allowed_methods)}
        super().__init__(*args, detail=detail, headers=headers, **extra)

    @classmethod
    def for_request(cls, method: str, path: str, allowed_methods: Sequence[str]) -> MethodNotAllowed:
        supported = ", ".join(allowed_methods)
        return cls(
            allowed_methods,
            detail=(
                f"The {method} method is not supported for route {path}. "
                f"Supported methods: {supported}."
            ),
        )


class RouteNotBound(WaypointException, RuntimeError):
    """
    Raised when the parameters of a route are read before the route
    was matched against a request.
    """

    def __init__(self, uri: str) -> None:
        super().__init__(detail=f"Route '{uri}' is not bound.")


class DependencyResolutionError(WaypointException, TypeError):
    """
    Raised when a handler or controller parameter cannot be satisfied
    from the route parameters, the request or the container.
    """

    def __init__(self, parameter: str, target: str, reason: str | None = None) -> None:
        self.parameter = parameter
        self.target = target
        message = f"Unresolvable dependency resolving [{parameter}] in {target}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(detail=message)


class NoMatchFound(WaypointException, LookupError):
    """
    Raised when a URL is requested for a route name that is not registered.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(detail=f"Route [{name}] not defined.")
