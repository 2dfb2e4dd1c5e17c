from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from waypoint.requests import Request
    from waypoint.responses import Response

Next = Callable[["Request"], Any]


@runtime_checkable
class MiddlewareProtocol(Protocol):  # pragma: no cover
    """
    A unit of request processing composed around the route handler.

    `handle` receives the request, the continuation and any parameters
    declared with the `name:arg1,arg2` syntax. It may return a response,
    a `Continue` to let the pipeline call the next stage, or a `Respond`
    to short circuit.
    """

    def handle(self, request: Request, next: Next, *parameters: str) -> Any: ...


@runtime_checkable
class TerminableMiddleware(Protocol):  # pragma: no cover
    def terminate(self, request: Request, response: Response) -> None: ...
