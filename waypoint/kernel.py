from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from waypoint import status
from waypoint.conf import settings
from waypoint.container import Container
from waypoint.enums import HTTPMethod
from waypoint.exceptions import AuthenticationError, HTTPException, MethodNotAllowed, NotFound
from waypoint.logging import log_exception
from waypoint.requests import Request
from waypoint.responses import JSONResponse, PlainText, RedirectResponse, Response, prepare_response
from waypoint.routing.pipeline import Pipeline
from waypoint.routing.router import Router
from waypoint.types import MiddlewareReference


class ExceptionHandler:
    """
    Reports exceptions to the log and renders them into responses.

    Subclass it and bind the subclass in the container to change either
    step.

    ```python
    class Handler(ExceptionHandler):
        dont_report = [OrderRejected]

    container.singleton(ExceptionHandler, Handler)
    ```
    """

    dont_report: list[type[BaseException]] = []

    def __init__(self, debug: bool | None = None) -> None:
        self.debug = settings.debug if debug is None else debug

    def should_report(self, exc: BaseException) -> bool:
        return not isinstance(exc, tuple(self.dont_report))

    def report(self, exc: BaseException) -> None:
        if not self.should_report(exc):
            return
        status_code = (exc.status_code or 500) if isinstance(exc, HTTPException) else None
        log_exception(exc, status_code)

    def render(self, request: Request, exc: BaseException) -> Response:
        """
        Builds the response sent for `exc`.

        Clients that want JSON get `{"detail": ..., "status_code": ...}`,
        everyone else plain text. Unauthenticated browsers are redirected.
        """
        if isinstance(exc, AuthenticationError) and exc.redirect_to and not request.wants_json():
            return RedirectResponse(exc.redirect_to)

        if isinstance(exc, HTTPException):
            status_code = exc.status_code or status.HTTP_500_INTERNAL_SERVER_ERROR
            detail = exc.detail
            headers = exc.headers
        else:
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
            detail = str(exc) if self.debug else "Internal Server Error"
            headers = None

        if request.wants_json():
            return JSONResponse(
                {"detail": detail, "status_code": status_code},
                status_code=status_code,
                headers=headers,
            )
        return PlainText(str(detail), status_code=status_code, headers=headers)


class Kernel:
    """
    The entry point of a request: runs the global middleware around the
    router and turns any exception into a response.

    The middleware groups, aliases and priority default to the settings
    and are copied to the router when the kernel is created.

    **Example**

    ```python
    router = Router()
    router.get("/", home)

    kernel = Kernel(router)
    response = kernel.handle(Request("GET", "/"))
    kernel.terminate(request, response)
    ```
    """

    def __init__(
        self,
        router: Router | None = None,
        container: Container | None = None,
        *,
        middleware: Sequence[MiddlewareReference] | None = None,
        middleware_groups: Mapping[str, Sequence[MiddlewareReference]] | None = None,
        middleware_aliases: Mapping[str, Any] | None = None,
        middleware_priority: Sequence[Any] | None = None,
        exception_handler: ExceptionHandler | None = None,
    ) -> None:
        if container is None:
            container = router.container if router is not None else Container()
        self.container = container
        self.router = router if router is not None else Router(container)

        self.middleware: list[MiddlewareReference] = list(
            settings.middleware if middleware is None else middleware
        )
        self.middleware_groups = {
            name: list(items)
            for name, items in (
                settings.middleware_groups if middleware_groups is None else middleware_groups
            ).items()
        }
        self.middleware_aliases = dict(
            settings.middleware_aliases if middleware_aliases is None else middleware_aliases
        )
        self.middleware_priority = list(
            settings.middleware_priority if middleware_priority is None else middleware_priority
        )

        self.container.instance(Kernel, self)
        if exception_handler is not None:
            self.container.instance(ExceptionHandler, exception_handler)
        elif not self.container.bound(ExceptionHandler):
            self.container.singleton(ExceptionHandler)

        self.sync_middleware_to_router()

    def sync_middleware_to_router(self) -> None:
        self.router.set_middleware_priority(self.middleware_priority)
        for name, items in self.middleware_groups.items():
            self.router.middleware_group(name, items)
        for name, middleware in self.middleware_aliases.items():
            self.router.alias_middleware(name, middleware)

    def has_middleware(self, middleware: MiddlewareReference) -> bool:
        return middleware in self.middleware

    def prepend_middleware(self, middleware: MiddlewareReference) -> Kernel:
        if middleware not in self.middleware:
            self.middleware.insert(0, middleware)
        return self

    def push_middleware(self, middleware: MiddlewareReference) -> Kernel:
        if middleware not in self.middleware:
            self.middleware.append(middleware)
        return self

    def handle(self, request: Request) -> Response:
        """
        Sends the request through the global middleware and the router.
        Never raises, every exception is reported and rendered.
        """
        try:
            response = self.send_request_through_router(request)
        except Exception as exc:
            handler = self.get_exception_handler()
            handler.report(exc)
            response = handler.render(request, exc)

        if request.method == HTTPMethod.HEAD:
            response.without_body()
        return response

    def send_request_through_router(self, request: Request) -> Response:
        self.router.finalize()
        middleware = [] if self.router.should_skip_middleware() else self.middleware

        result = (
            Pipeline(self.container)
            .send(request)
            .through(middleware)
            .then(self.router.dispatch)
        )
        return prepare_response(request, result)

    def terminate(self, request: Request, response: Response) -> None:
        """
        Calls `terminate(request, response)` on the global and route
        middleware that define it, once the response was sent.
        """
        pipeline = Pipeline(self.container)
        middleware = [*self.middleware, *self.gather_route_middleware(request)]

        for instance in pipeline.resolve_pipes(middleware):
            terminate = getattr(instance, "terminate", None)
            if callable(terminate):
                terminate(request, response)

    def gather_route_middleware(self, request: Request) -> list[MiddlewareReference]:
        route = request.route
        if route is None:
            try:
                route = getattr(self.router.find_route(request), "route", None)
            except (NotFound, MethodNotAllowed):
                return []
        if route is None:
            return []
        return self.router.gather_route_middleware(route)

    def get_exception_handler(self) -> ExceptionHandler:
        return self.container.make(ExceptionHandler)
