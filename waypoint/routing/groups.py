from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from waypoint._internal._path import join_paths
from waypoint.exceptions import ImproperlyConfigured
from waypoint.routing.actions import INVOKE_METHOD, split_reference
from waypoint.types import MiddlewareReference

GROUP_KEYS = frozenset(
    {"prefix", "as", "name", "middleware", "excluded_middleware", "namespace", "controller", "where"}
)


def as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


@dataclass(frozen=True)
class GroupAttributes:
    """
    The attributes a group hands down to every route registered inside it.

    Instances are immutable. Nesting a group produces a new value through
    `merge()`, the outer value is never touched.

    * `prefix`: path segments, joined outer to inner.
    * `as_`: route name prefix, concatenated outer to inner.
    * `middleware` and `excluded_middleware`: concatenated outer to inner.
    * `namespace`: module path prepended to string controller references.
    * `controller`: the controller that bare method names such as `"store"` refer to.
    * `where`: placeholder constraints, inner entries win.
    """

    prefix: str = ""
    as_: str = ""
    middleware: tuple[MiddlewareReference, ...] = ()
    excluded_middleware: tuple[MiddlewareReference, ...] = ()
    namespace: str | None = None
    controller: type | str | None = None
    where: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_mapping(cls, attributes: Mapping[str, Any] | GroupAttributes | None) -> GroupAttributes:
        """
        Builds the attributes from the mapping given to `Router.group()`.

        Raises:
            ImproperlyConfigured: On unknown keys.
        """
        if isinstance(attributes, GroupAttributes):
            return attributes
        attributes = dict(attributes or {})
        unknown = set(attributes) - GROUP_KEYS
        if unknown:
            raise ImproperlyConfigured(
                f"Unknown route group attribute(s): {', '.join(sorted(unknown))}."
            )
        return cls(
            prefix=(attributes.get("prefix") or "").strip("/"),
            as_=attributes.get("as", attributes.get("name")) or "",
            middleware=tuple(as_list(attributes.get("middleware"))),
            excluded_middleware=tuple(as_list(attributes.get("excluded_middleware"))),
            namespace=(attributes.get("namespace") or "").strip(".") or None,
            controller=attributes.get("controller"),
            where=MappingProxyType(dict(attributes.get("where") or {})),
        )

    def merge(self, new: GroupAttributes | Mapping[str, Any]) -> GroupAttributes:
        """
        Returns the attributes of a group nested inside this one.
        """
        new = GroupAttributes.from_mapping(new)
        return GroupAttributes(
            prefix=self.format_prefix(new.prefix),
            as_=self.as_ + new.as_,
            middleware=self.middleware + new.middleware,
            excluded_middleware=self.excluded_middleware + new.excluded_middleware,
            namespace=self.format_namespace(new.namespace),
            controller=new.controller if new.controller is not None else self.controller,
            where=MappingProxyType({**self.where, **new.where}),
        )

    def format_prefix(self, new_prefix: str) -> str:
        if not new_prefix:
            return self.prefix
        return join_paths([self.prefix, new_prefix]).strip("/")

    def format_namespace(self, new_namespace: str | None) -> str | None:
        """
        A nested namespace is relative to the enclosing one unless it already
        starts with it.
        """
        if not new_namespace:
            return self.namespace
        if not self.namespace or new_namespace.startswith(self.namespace + "."):
            return new_namespace
        return f"{self.namespace}.{new_namespace}"

    def prefix_uri(self, uri: str) -> str:
        return join_paths([self.prefix, uri])

    def qualify_action(self, action: Any) -> Any:
        """
        Expands string and tuple actions with the group controller and
        namespace. `"store"` inside a group whose controller is
        `UserController` becomes `(UserController, "store")`.
        """
        if isinstance(action, str):
            if "@" not in action and self.controller is not None and "." not in action:
                controller = self.controller
                if isinstance(controller, str):
                    controller = self.qualify_controller(controller)
                return (controller, action)
            controller, method = split_reference(action)
            controller = self.qualify_controller(controller)
            if method == INVOKE_METHOD and "@" not in action:
                return controller
            return f"{controller}@{method}"
        if isinstance(action, (tuple, list)) and len(action) == 2 and isinstance(action[0], str):
            return (self.qualify_controller(action[0]), action[1])
        return action

    def qualify_controller(self, controller: str) -> str:
        if not self.namespace or controller.startswith(self.namespace + "."):
            return controller
        return f"{self.namespace}.{controller}"

    def route_options(self, options: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """
        The route level attributes once this group is merged into `options`,
        the options a single route declares.
        """
        options = dict(options or {})
        return {
            "name": self.as_ + (options.get("as") or options.get("name") or ""),
            "prefix": join_paths([self.prefix, options.get("prefix") or ""]).strip("/") or None,
            "middleware": [*self.middleware, *as_list(options.get("middleware"))],
            "excluded_middleware": [
                *self.excluded_middleware,
                *as_list(options.get("excluded_middleware")),
            ],
            "wheres": {**self.where, **dict(options.get("where") or {})},
        }
