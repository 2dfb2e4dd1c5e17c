from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any, Generic, ParamSpec, cast

from waypoint._internal._module_loading import import_string

P = ParamSpec("P")


class DefineMiddleware(Generic[P]):
    """
    Wrapper that creates the middleware class with constructor arguments.

    ```python
    router.get("/reports", reports).middleware(
        DefineMiddleware("myapp.middleware.Throttle", limit=60)
    )
    ```
    """

    __slots__ = ("args", "kwargs", "middleware_or_string")

    def __init__(self, cls: Callable[..., Any] | str, *args: P.args, **kwargs: P.kwargs) -> None:
        self.middleware_or_string = cls
        self.args = args
        self.kwargs = kwargs

    @property
    def middleware(self) -> Callable[..., Any]:
        middleware_or_string = self.middleware_or_string
        if isinstance(middleware_or_string, str):
            self.middleware_or_string = middleware_or_string = import_string(middleware_or_string)
        return cast(Callable[..., Any], middleware_or_string)

    def __call__(self) -> Any:
        return self.middleware(*self.args, **self.kwargs)

    def __iter__(self) -> Iterator[Any]:
        return iter((self.middleware, self.args, self.kwargs))

    def __repr__(self) -> str:
        args_repr = ", ".join(
            [getattr(self.middleware, "__name__", repr(self.middleware))]
            + [f"{value!r}" for value in self.args]
            + [f"{key}={value!r}" for key, value in self.kwargs.items()]
        )
        return f"{self.__class__.__name__}({args_repr})"


Middleware = DefineMiddleware
