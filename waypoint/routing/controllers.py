from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from waypoint.types import MiddlewareReference


@dataclass
class ControllerMiddlewareOptions:
    """
    The middleware a controller registers and the methods it applies to.

    Calling `only()` or `except_()` narrows the options in place, which
    allows the fluent form `self.middleware("auth").only("store", "update")`.
    """

    middleware: MiddlewareReference
    options: dict[str, list[str]] = field(default_factory=dict)

    def only(self, *methods: str) -> ControllerMiddlewareOptions:
        self.options["only"] = _flatten(methods)
        return self

    def except_(self, *methods: str) -> ControllerMiddlewareOptions:
        self.options["except"] = _flatten(methods)
        return self


def _flatten(methods: Iterable[Any]) -> list[str]:
    flat: list[str] = []
    for method in methods:
        if isinstance(method, (list, tuple)):
            flat.extend(method)
        else:
            flat.append(method)
    return flat


def method_excluded_by_options(method: str, options: dict[str, list[str]]) -> bool:
    """
    Whether `only`/`except` options rule the controller method out.
    """
    if "only" in options and method not in options["only"]:
        return True
    return "except" in options and method in options["except"]


class Controller:
    """
    Base class for controllers.

    Controllers are built through the container for every request, so the
    constructor can declare its services as typed arguments.

    ```python
    class UserController(Controller):
        def __init__(self, users: UserRepository) -> None:
            super().__init__()
            self.users = users
            self.middleware("auth").except_("index")

        def index(self):
            return self.users.all()

        def show(self, user: str):
            return self.users.find(user)
    ```
    """

    __is_controller__: bool = True

    def __init__(self) -> None:
        self._middleware: list[ControllerMiddlewareOptions] = []

    def middleware(
        self,
        *middleware: MiddlewareReference,
        only: Iterable[str] | None = None,
        except_: Iterable[str] | None = None,
    ) -> ControllerMiddlewareOptions:
        """
        Registers middleware on the controller. With several middleware the
        returned options object belongs to the last one.
        """
        if not hasattr(self, "_middleware"):
            self._middleware = []

        options = None
        for item in middleware:
            options = ControllerMiddlewareOptions(item)
            if only is not None:
                options.only(*only)
            if except_ is not None:
                options.except_(*except_)
            self._middleware.append(options)
        assert options is not None, "At least one middleware is required."
        return options

    def get_middleware(self) -> list[ControllerMiddlewareOptions]:
        return list(getattr(self, "_middleware", []))

    def call_action(self, method: str, args: list[Any], kwargs: dict[str, Any]) -> Any:
        """
        Invokes a controller method. Override to wrap every action.
        """
        return getattr(self, method)(*args, **kwargs)
