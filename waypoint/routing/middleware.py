"""
Middleware name resolution and ordering.

Routes declare middleware as aliases (`"auth"`), alias with parameters
(`"throttle:60,1"`), group names (`"api"`), dotted paths, classes or
plain callables. Before a route runs, the declaration is expanded into
concrete middleware, the exclusions are removed, duplicates dropped and
the priority list applied.
"""

from __future__ import annotations

import inspect
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from waypoint._internal._module_loading import object_path
from waypoint.exceptions import ImproperlyConfigured
from waypoint.logging import log_middleware_chain
from waypoint.types import MiddlewareReference


@dataclass(frozen=True)
class BoundMiddleware:
    """
    A concrete middleware (class or instance) together with the
    parameters declared after the colon of an alias, `"role:admin"`.
    """

    middleware: Any
    parameters: tuple[str, ...] = ()


def parse_middleware(name: str) -> tuple[str, tuple[str, ...]]:
    """
    Splits `"name:arg1,arg2"` into the name and its parameters.
    """
    name, _, raw = name.partition(":")
    parameters = tuple(parameter for parameter in raw.split(",") if parameter) if raw else ()
    return name, parameters


def _with_parameters(target: Any, parameters: tuple[str, ...]) -> MiddlewareReference:
    if not parameters:
        return target
    if isinstance(target, str):
        return f"{target}:{','.join(parameters)}"
    return BoundMiddleware(target, parameters)


def resolve_middleware_name(
    name: MiddlewareReference,
    aliases: Mapping[str, Any],
    groups: Mapping[str, Sequence[MiddlewareReference]],
) -> list[MiddlewareReference]:
    """
    Expands one middleware declaration.

    Anything that is not a string is already concrete and is returned as
    is. Group names are flattened recursively, aliases are replaced by
    their target keeping any `:parameters` suffix.
    """
    if not isinstance(name, str):
        return [name]
    if name in groups:
        return _resolve_group(name, aliases, groups, seen=())

    base, parameters = parse_middleware(name)
    if base in aliases:
        return [_with_parameters(aliases[base], parameters)]
    return [name]


def _resolve_group(
    group: str,
    aliases: Mapping[str, Any],
    groups: Mapping[str, Sequence[MiddlewareReference]],
    seen: tuple[str, ...],
) -> list[MiddlewareReference]:
    if group in seen:
        cycle = " -> ".join((*seen, group))
        raise ImproperlyConfigured(f"Middleware group cycle detected: {cycle}.")

    results: list[MiddlewareReference] = []
    for middleware in groups[group]:
        if isinstance(middleware, str) and middleware in groups:
            results.extend(_resolve_group(middleware, aliases, groups, (*seen, group)))
            continue
        results.extend(resolve_middleware_name(middleware, aliases, {}))
    return results


def middleware_key(middleware: MiddlewareReference) -> Any:
    """
    The value middleware are compared by. Strings and bound middleware
    compare by value, anything else by identity.
    """
    if isinstance(middleware, (str, BoundMiddleware)):
        return middleware
    return ("id", id(middleware))


def unique_middleware(middleware: Iterable[MiddlewareReference]) -> list[MiddlewareReference]:
    """
    Drops repeated middleware, keeping the first occurrence.
    """
    seen: set[Any] = set()
    result: list[MiddlewareReference] = []
    for item in middleware:
        key = middleware_key(item)
        if key in seen:
            continue
        seen.add(key)
        result.append(item)
    return result


def middleware_names(middleware: MiddlewareReference) -> Iterator[str]:
    """
    The names a middleware can be recognised by in the priority list: its
    dotted path without parameters, then the dotted paths of its bases.
    """
    target: Any = middleware
    if isinstance(target, BoundMiddleware):
        target = target.middleware
    if isinstance(target, str):
        yield parse_middleware(target)[0]
        return

    cls = target if inspect.isclass(target) else None
    if cls is None and not inspect.isfunction(target) and not inspect.ismethod(target):
        cls = type(target)
    if cls is None:
        yield object_path(target)
        return
    for base in cls.__mro__[:-1]:
        yield object_path(base)


def priority_keys(priority: Iterable[Any]) -> list[str]:
    keys: list[str] = []
    for item in priority:
        if isinstance(item, str):
            keys.append(parse_middleware(item)[0])
        else:
            keys.append(next(middleware_names(item)))
    return keys


def priority_index(priority: Sequence[str], middleware: MiddlewareReference) -> int | None:
    for name in middleware_names(middleware):
        if name in priority:
            return priority.index(name)
    return None


def sort_middleware(
    priority: Sequence[Any], middleware: Sequence[MiddlewareReference]
) -> list[MiddlewareReference]:
    """
    Orders middleware so those named in `priority` keep its relative order.

    Walking the list, whenever a prioritised middleware appears after one
    with a higher priority index it is moved right in front of that one and
    the walk starts over. Middleware absent from the priority list are
    never reordered among themselves.
    """
    keys = priority_keys(priority)
    middleware = list(middleware)

    restart = True
    while restart:
        restart = False
        last_index = 0
        last_priority: int | None = None

        for index, item in enumerate(middleware):
            current = priority_index(keys, item)
            if current is None:
                continue
            if last_priority is not None and current < last_priority:
                middleware.insert(last_index, middleware.pop(index))
                restart = True
                break
            last_index = index
            last_priority = current

    return unique_middleware(middleware)


def is_excluded(middleware: MiddlewareReference, excluded: Sequence[MiddlewareReference]) -> bool:
    """
    A middleware is excluded when it equals an excluded entry, when an
    excluded entry names it without parameters, or when it is a subclass
    of an excluded class.
    """
    key = middleware_key(middleware)
    names = list(middleware_names(middleware))
    for entry in excluded:
        if middleware_key(entry) == key:
            return True
        if isinstance(entry, str) and ":" not in entry and names and names[0] == entry:
            return True
        if inspect.isclass(entry):
            target = middleware.middleware if isinstance(middleware, BoundMiddleware) else middleware
            if inspect.isclass(target) and issubclass(target, entry):
                return True
            if object_path(entry) in names:
                return True
    return False


class MiddlewareResolver:
    """
    Holds the alias map, the groups and the priority list, and turns a
    route declaration into the concrete chain the pipeline runs.
    """

    def __init__(
        self,
        aliases: Mapping[str, Any] | None = None,
        groups: Mapping[str, Sequence[MiddlewareReference]] | None = None,
        priority: Sequence[Any] | None = None,
    ) -> None:
        self.aliases: dict[str, Any] = dict(aliases or {})
        self.groups: dict[str, list[MiddlewareReference]] = {
            name: list(items) for name, items in (groups or {}).items()
        }
        self.priority: list[Any] = list(priority or [])

    def expand(self, middleware: Iterable[MiddlewareReference]) -> list[MiddlewareReference]:
        expanded: list[MiddlewareReference] = []
        for name in middleware:
            expanded.extend(resolve_middleware_name(name, self.aliases, self.groups))
        return expanded

    def resolved_priority(self) -> list[Any]:
        """
        The priority list with aliases replaced by their target.
        """
        resolved: list[Any] = []
        for item in self.priority:
            resolved.extend(
                resolve_middleware_name(item, self.aliases, {}) if isinstance(item, str) else [item]
            )
        return resolved

    def resolve(
        self,
        middleware: Iterable[MiddlewareReference],
        excluded: Iterable[MiddlewareReference] = (),
    ) -> list[MiddlewareReference]:
        declared = self.expand(middleware)
        removed = self.expand(excluded)

        chain = [item for item in unique_middleware(declared) if not is_excluded(item, removed)]
        chain = sort_middleware(self.resolved_priority(), chain)
        log_middleware_chain(chain)
        return chain
