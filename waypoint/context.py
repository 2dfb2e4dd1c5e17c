from __future__ import annotations

import contextvars
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from waypoint.requests import Request
    from waypoint.routing.route import Route

current_request: contextvars.ContextVar[Request | None] = contextvars.ContextVar(
    "current_request", default=None
)
current_route: contextvars.ContextVar[Route | None] = contextvars.ContextVar(
    "current_route", default=None
)


@contextmanager
def dispatching(request: Request, route: Route) -> Generator[None, None, None]:
    """
    Marks `request` and `route` as the ones being dispatched for the
    duration of the block.
    """
    request_token = current_request.set(request)
    route_token = current_route.set(route)
    try:
        yield
    finally:
        current_route.reset(route_token)
        current_request.reset(request_token)


def get_current_request() -> Request | None:
    return current_request.get()


def get_current_route() -> Route | None:
    return current_route.get()
