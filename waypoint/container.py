from __future__ import annotations

import inspect
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar, cast, get_type_hints, overload

from waypoint._internal._module_loading import import_string, looks_like_import_path
from waypoint.exceptions import DependencyResolutionError

T = TypeVar("T")


@dataclass(frozen=True)
class Binding:
    factory: Callable[..., Any] | type
    shared: bool = False


def safe_type_hints(func: Callable[..., Any]) -> dict[str, Any]:
    """
    Type hints of a callable, falling back to the raw annotations when
    some of them cannot be evaluated.
    """
    try:
        return get_type_hints(func)
    except Exception:
        return dict(getattr(func, "__annotations__", {}))


def is_injectable(annotation: Any) -> bool:
    """
    Builtin types such as `str` or `int` are values, never services.
    Neither are typing constructs.
    """
    if annotation is inspect.Parameter.empty:
        return False
    return inspect.isclass(annotation) and annotation.__module__ not in ("builtins", "typing")


def describe(target: Any) -> str:
    if isinstance(target, str):
        return target
    return getattr(target, "__qualname__", None) or type(target).__qualname__


class Container:
    """
    A small service locator.

    Keys are usually classes but any hashable works. Classes that were
    never bound are built on demand by resolving their constructor
    arguments from their type hints.

    **Example**

    ```python
    container = Container()
    container.singleton(UserRepository, lambda c: DatabaseUserRepository(c.make(Connection)))

    repository = container.make(UserRepository)
    ```
    """

    def __init__(self) -> None:
        self._bindings: dict[Any, Binding] = {}
        self._instances: dict[Any, Any] = {}
        self._lock = threading.RLock()
        self.instance(Container, self)
        self.instance("container", self)

    def bind(
        self, key: Any, factory: Callable[..., Any] | type | None = None, shared: bool = False
    ) -> None:
        """
        Registers how `key` is built.

        Args:
            key: The lookup key.
            factory: A class to build or a callable receiving the container.
                Defaults to the key itself.
            shared: Whether the first built instance is reused.
        """
        with self._lock:
            self._instances.pop(key, None)
            self._bindings[key] = Binding(factory if factory is not None else key, shared)

    def singleton(self, key: Any, factory: Callable[..., Any] | type | None = None) -> None:
        self.bind(key, factory, shared=True)

    def instance(self, key: Any, value: T) -> T:
        with self._lock:
            self._instances[key] = value
        return value

    def forget_instance(self, key: Any) -> None:
        with self._lock:
            self._instances.pop(key, None)

    def bound(self, key: Any) -> bool:
        return key in self._instances or key in self._bindings

    has = bound

    @overload
    def resolve(self, key: type[T]) -> T: ...

    @overload
    def resolve(self, key: Any) -> Any: ...

    def resolve(self, key: Any) -> Any:
        """
        Returns the instance registered for `key`, building it when needed.

        Raises:
            DependencyResolutionError: When nothing is bound to the key and it
                cannot be built.
        """
        if key in self._instances:
            return self._instances[key]

        binding = self._bindings.get(key)
        if binding is None:
            return self._build_unbound(key)

        if not binding.shared:
            return self._make(binding.factory)

        with self._lock:
            if key not in self._instances:
                self._instances[key] = self._make(binding.factory)
            return self._instances[key]

    make = resolve

    def __getitem__(self, key: Any) -> Any:
        return self.resolve(key)

    def __contains__(self, key: Any) -> bool:
        return self.bound(key)

    def _make(self, factory: Callable[..., Any] | type) -> Any:
        if inspect.isclass(factory):
            return self.build(factory)
        return factory(self)

    def _build_unbound(self, key: Any) -> Any:
        if inspect.isclass(key):
            return self.build(key)
        if isinstance(key, str) and looks_like_import_path(key):
            try:
                target = import_string(key)
            except ImportError as exc:
                raise DependencyResolutionError(key, "container", str(exc)) from exc
            return self._make(target)
        raise DependencyResolutionError(describe(key), "container", "target is not bound")

    def build(self, cls: type[T]) -> T:
        """
        Instantiates `cls`, resolving every constructor argument that has
        no default from its type hint.
        """
        if inspect.isabstract(cls) or getattr(cls, "_is_protocol", False):
            raise DependencyResolutionError(
                describe(cls), "container", "target is not instantiable"
            )

        init = cls.__init__
        if init is object.__init__:
            return cls()

        hints = safe_type_hints(init)
        kwargs: dict[str, Any] = {}
        for name, parameter in inspect.signature(init).parameters.items():
            if name == "self" or parameter.kind in (
                inspect.Parameter.VAR_POSITIONAL,
                inspect.Parameter.VAR_KEYWORD,
            ):
                continue
            annotation = hints.get(name, inspect.Parameter.empty)

            if is_injectable(annotation) and (
                self.bound(annotation) or parameter.default is inspect.Parameter.empty
            ):
                kwargs[name] = self.resolve(annotation)
            elif parameter.default is inspect.Parameter.empty:
                raise DependencyResolutionError(name, f"{describe(cls)}.__init__")
        return cast(T, cls(**kwargs))
