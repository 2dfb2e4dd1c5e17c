from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable
from functools import reduce
from typing import Any

from waypoint._internal._module_loading import import_string, looks_like_import_path
from waypoint.container import Container
from waypoint.exceptions import ImproperlyConfigured
from waypoint.middleware.base import DefineMiddleware
from waypoint.routing.middleware import BoundMiddleware, parse_middleware
from waypoint.routing.results import Continue, Respond

Stack = Callable[[Any], Any]


class Pipeline:
    """
    Sends a value through a list of stages around a final destination.

    The stages are folded from the right: the last stage wraps the
    destination, the one before wraps that, and so on. Each stage receives
    the value and the continuation, and returns either a result, a
    `Continue` carrying the value for the next stage, or a `Respond`
    carrying the final result.

    No exception is caught here, whatever a stage raises reaches the caller
    of `then()`.

    ```python
    response = (
        Pipeline(container)
        .send(request)
        .through([HandleCors, "auth"])
        .then(lambda request: route.run(request))
    )
    ```
    """

    def __init__(self, container: Container | None = None) -> None:
        self.container = container
        self.passable: Any = None
        self.pipes: list[Any] = []
        self.method = "handle"

    def send(self, passable: Any) -> Pipeline:
        self.passable = passable
        return self

    def through(self, *pipes: Any) -> Pipeline:
        """
        Sets the stages, either as positional arguments or as one list.
        """
        if len(pipes) == 1 and isinstance(pipes[0], (list, tuple)):
            self.pipes = list(pipes[0])
        else:
            self.pipes = list(pipes)
        return self

    def pipe(self, *pipes: Any) -> Pipeline:
        self.pipes.extend(pipes)
        return self

    def via(self, method: str) -> Pipeline:
        """
        The method called on object stages, `handle` by default.
        """
        self.method = method
        return self

    def then(self, destination: Stack) -> Any:
        pipeline = reduce(self.carry, reversed(self.pipes), self.prepare_destination(destination))
        return pipeline(self.passable)

    def then_return(self) -> Any:
        return self.then(lambda passable: passable)

    def prepare_destination(self, destination: Stack) -> Stack:
        def run_destination(passable: Any) -> Any:
            result = destination(passable)
            if isinstance(result, Respond):
                return result.response
            return result

        return run_destination

    def carry(self, stack: Stack, pipe: Any) -> Stack:
        def run_stage(passable: Any) -> Any:
            result = self.call_pipe(pipe, passable, stack)
            if isinstance(result, Continue):
                return stack(result.request)
            if isinstance(result, Respond):
                return result.response
            return result

        return run_stage

    def call_pipe(self, pipe: Any, passable: Any, stack: Stack) -> Any:
        parameters: tuple[str, ...] = ()
        if isinstance(pipe, BoundMiddleware):
            pipe, parameters = pipe.middleware, pipe.parameters

        if isinstance(pipe, str):
            pipe, parameters = parse_middleware(pipe)
        pipe = self.resolve_pipe(pipe)

        if not inspect.isroutine(pipe):
            handler = getattr(pipe, self.method, None)
            if callable(handler):
                return handler(passable, stack, *parameters)
        if callable(pipe):
            return pipe(passable, stack, *parameters)
        raise ImproperlyConfigured(f"Middleware {pipe!r} is not callable.")

    def get_container(self) -> Container:
        if self.container is None:
            self.container = Container()
        return self.container

    def resolve_pipe(self, pipe: Any) -> Any:
        """
        Turns a stage declaration into the object that gets called.

        Dotted paths are imported, classes are built through the container
        and `DefineMiddleware` is instantiated with its arguments.
        """
        container = self.get_container()
        if isinstance(pipe, str):
            if container.bound(pipe):
                return container.make(pipe)
            if not looks_like_import_path(pipe):
                raise ImproperlyConfigured(
                    f"Middleware '{pipe}' is neither a registered alias nor an import path."
                )
            try:
                pipe = import_string(pipe)
            except ImportError as exc:
                raise ImproperlyConfigured(f"Cannot import middleware '{pipe}': {exc}") from exc
        if isinstance(pipe, DefineMiddleware):
            return pipe()
        if inspect.isclass(pipe):
            return container.make(pipe)
        return pipe

    def resolve_pipes(self, pipes: Iterable[Any]) -> list[Any]:
        """
        The objects the given stages resolve to, plain functions excluded.
        Used to reach middleware that must be told when the response was sent.
        """
        resolved: list[Any] = []
        for pipe in pipes:
            if isinstance(pipe, BoundMiddleware):
                pipe = pipe.middleware
            if isinstance(pipe, str):
                pipe = parse_middleware(pipe)[0]
            pipe = self.resolve_pipe(pipe)
            if not inspect.isroutine(pipe):
                resolved.append(pipe)
        return resolved
