"""
The two shapes a route action can take.

An action is either an `InlineHandler`, a plain callable invoked with the
resolved parameters, or a `ControllerAction`, a controller class plus the
name of the method to call on a fresh instance of it.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeAlias

from waypoint._internal._module_loading import import_string, object_path
from waypoint.exceptions import ImproperlyConfigured

INVOKE_METHOD = "__call__"


@dataclass(frozen=True)
class InlineHandler:
    handler: Callable[..., Any]

    @property
    def identifier(self) -> None:
        return None

    def __repr__(self) -> str:
        name = getattr(self.handler, "__qualname__", repr(self.handler))
        return f"{self.__class__.__name__}({name})"


@dataclass(frozen=True)
class ControllerAction:
    controller: type
    method: str = INVOKE_METHOD

    def __post_init__(self) -> None:
        if not inspect.isclass(self.controller):
            raise ImproperlyConfigured(f"Controller {self.controller!r} must be a class.")
        if not any(
            callable(vars(klass).get(self.method)) for klass in self.controller.__mro__[:-1]
        ):
            raise ImproperlyConfigured(
                f"Controller {self.controller.__qualname__} has no method '{self.method}'."
            )

    @property
    def identifier(self) -> str:
        """
        The reference routes are looked up by, `package.module.Class@method`.
        Invokable controllers are referenced by the class path alone.
        """
        path = object_path(self.controller)
        if self.method == INVOKE_METHOD:
            return path
        return f"{path}@{self.method}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.identifier})"


RouteAction: TypeAlias = InlineHandler | ControllerAction


def split_reference(reference: str) -> tuple[str, str]:
    """
    Splits `Class@method` into its parts. A reference without `@` points
    at an invokable controller.
    """
    controller, _, method = reference.partition("@")
    return controller, method or INVOKE_METHOD


def load_controller(reference: str | type) -> type:
    if inspect.isclass(reference):
        return reference
    try:
        controller = import_string(reference)
    except ImportError as exc:
        raise ImproperlyConfigured(f"Cannot import controller '{reference}': {exc}") from exc
    if not inspect.isclass(controller):
        raise ImproperlyConfigured(f"'{reference}' does not reference a controller class.")
    return controller


def parse_action(action: Any) -> RouteAction:
    """
    Converts any supported action declaration into a `RouteAction`.

    Supported shapes:

    * a function or any other callable object: `InlineHandler`;
    * a class: an invokable controller, its `__call__` is dispatched;
    * `"package.module.Class@method"` or `"package.module.Class"`;
    * `(Class, "method")` or `("package.module.Class", "method")`;
    * an already parsed `InlineHandler` or `ControllerAction`.

    Raises:
        ImproperlyConfigured: When the action has none of those shapes.
    """
    if isinstance(action, (InlineHandler, ControllerAction)):
        return action
    if inspect.isclass(action):
        return ControllerAction(action)
    if isinstance(action, str):
        controller, method = split_reference(action)
        return ControllerAction(load_controller(controller), method)
    if isinstance(action, (tuple, list)) and len(action) == 2 and isinstance(action[1], str):
        return ControllerAction(load_controller(action[0]), action[1])
    if callable(action):
        return InlineHandler(action)
    raise ImproperlyConfigured(f"Invalid route action: {action!r}.")


def split_action_options(action: Any) -> tuple[Any, dict[str, Any]]:
    """
    Separates the action from the route options when the action is given as
    a mapping such as `{"uses": "app.UserController@show", "as": "users.show"}`.
    """
    if not isinstance(action, Mapping):
        return action, {}
    options = dict(action)
    if "uses" not in options:
        raise ImproperlyConfigured(f"Route action {action!r} has no 'uses' entry.")
    return options.pop("uses"), options
