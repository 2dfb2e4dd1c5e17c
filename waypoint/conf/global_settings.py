from __future__ import annotations

import copy
import json
import os
from types import UnionType
from typing import Annotated, Any, Union, get_args, get_origin, get_type_hints

from waypoint.conf.enums import EnvironmentType
from waypoint.logging import LoggingConfig, StandardLoggingConfig
from waypoint.types import Doc


def safe_get_type_hints(cls: type) -> dict[str, Any]:
    """
    Type hints of a settings class and all of its bases.

    Each base is evaluated against its own module, never against the class
    namespace, where `dict` and `tuple` are methods. Falls back to the raw
    annotations of the whole hierarchy when some of them cannot be evaluated.
    """
    try:
        return get_type_hints(cls, localns={}, include_extras=True)
    except Exception:
        annotations: dict[str, Any] = {}
        for base in reversed(cls.__mro__):
            annotations.update(base.__dict__.get("__annotations__", {}))
        return annotations


class BaseSettings:
    """
    Base of all the settings.

    Every annotated attribute can be overridden by an environment variable
    with the same name in upper case. The raw string is cast to the
    annotated type. Lists are comma separated and dictionaries are JSON.
    """

    __type_hints__: dict[str, Any] = None
    __truthy__: set[str] = {"true", "1", "yes", "on", "y"}

    def __init__(self, **kwargs: Any) -> None:
        cls = self.__class__
        if cls.__dict__.get("__type_hints__") is None:
            cls.__type_hints__ = safe_get_type_hints(cls)

        for key, typ in cls.__type_hints__.items():
            if key.startswith("_"):
                continue
            base_type = self._extract_base_type(typ)

            env_value = os.getenv(key.upper(), None)
            if key in kwargs:
                value = kwargs[key]
            elif env_value is not None:
                value = self._cast(env_value, base_type)
            else:
                # Class level defaults are shared, never hand them out directly.
                value = copy.deepcopy(getattr(self, key, None))
            setattr(self, key, value)

        for key, value in kwargs.items():
            if key not in cls.__type_hints__:
                setattr(self, key, value)

        self.post_init()

    def post_init(self) -> None:
        """
        Post-initialization hook, called once every setting is loaded.
        """
        ...

    def _extract_base_type(self, typ: Any) -> Any:
        origin = get_origin(typ)
        if origin is Annotated:
            return get_args(typ)[0]
        return typ

    def _cast(self, value: str, typ: Any) -> Any:
        """
        Casts the value to the specified type.

        Args:
            value (str): The raw value read from the environment.
            typ (type): The annotated type of the setting.
        Returns:
            Any: The casted value.
        Raises:
            ValueError: If the value cannot be cast to the specified type.
        """
        try:
            origin = get_origin(typ)
            if origin is Union or origin is UnionType:
                non_none_types = [t for t in get_args(typ) if t is not type(None)]
                if len(non_none_types) == 1:
                    typ = non_none_types[0]
                    origin = get_origin(typ)
                else:
                    raise ValueError(f"Cannot cast to ambiguous Union type: {typ}")

            if typ is bool or str(typ) == "bool":
                return value.lower() in self.__truthy__
            if origin in (list, tuple, set) or typ in (list, tuple, set):
                items = [item.strip() for item in value.split(",") if item.strip()]
                return (origin or typ)(items)
            if origin is dict or typ is dict:
                return json.loads(value)
            return typ(value)
        except Exception:
            type_name = getattr(typ, "__name__", str(typ))
            raise ValueError(f"Cannot cast value '{value}' to type '{type_name}'") from None

    def dict(
        self,
        exclude_none: bool = False,
        upper: bool = False,
        exclude: set[str] | None = None,
    ) -> dict[str, Any]:
        """
        Dumps all the settings into a python dictionary.
        """
        result = {}
        exclude = exclude or set()

        for key in self.__class__.__type_hints__ or {}:
            if key in exclude or key.startswith("_"):
                continue
            value = getattr(self, key, None)
            if exclude_none and value is None:
                continue
            result[key.upper() if upper else key] = value
        return result

    def tuple(
        self,
        exclude_none: bool = False,
        upper: bool = False,
        exclude: set[str] | None = None,
    ) -> list[tuple[str, Any]]:
        """
        Dumps all the settings into a list of tuples.
        """
        return list(self.dict(exclude_none=exclude_none, upper=upper, exclude=exclude).items())


class RoutingSettings(BaseSettings):
    default_parameter_pattern: Annotated[
        str,
        Doc(
            """
            The regular expression a `{placeholder}` must match when the route
            declares no `where` constraint for it.
            """
        ),
    ] = "[^/]+"
    route_registration_function: Annotated[
        str,
        Doc(
            """
            The function looked up when a route group is given as a dotted
            module path, for example `router.group({"prefix": "api"}, "myapp.routes.api")`.

            The function receives the scoped registrar as its only argument.
            """
        ),
    ] = "register"


class MiddlewareSettings(RoutingSettings):
    middleware: Annotated[
        list[str],
        Doc(
            """
            Global middleware run by the `Kernel` around the router for
            every request, in declaration order.
            """
        ),
    ] = [
        "waypoint.middleware.cors.HandleCors",
        "waypoint.middleware.body_parsing.ParseBody",
    ]
    middleware_groups: Annotated[
        dict[str, list[str]],
        Doc(
            """
            Named lists of middleware that routes and groups can reference
            by the group name. Entries may be aliases or other groups.
            """
        ),
    ] = {"api": [], "web": []}
    middleware_aliases: Annotated[
        dict[str, str],
        Doc(
            """
            Short names mapped to dotted paths of middleware classes.

            **Example**

            ```python
            router.get("/me", profile).middleware("auth")
            ```
            """
        ),
    ] = {
        "auth": "waypoint.middleware.authentication.Authenticate",
        "cors": "waypoint.middleware.cors.HandleCors",
        "body": "waypoint.middleware.body_parsing.ParseBody",
    }
    middleware_priority: Annotated[
        list[str],
        Doc(
            """
            Middleware listed here always run in this relative order, whatever
            order a route declares them in. Unlisted middleware keep their
            declared position.
            """
        ),
    ] = [
        "waypoint.middleware.cors.HandleCors",
        "waypoint.middleware.body_parsing.ParseBody",
        "waypoint.middleware.authentication.Authenticate",
    ]
    disable_middleware: Annotated[
        bool,
        Doc(
            """
            Skips every route middleware. Mostly useful in tests.
            """
        ),
    ] = False


class CorsSettings(MiddlewareSettings):
    cors_paths: Annotated[
        list[str],
        Doc(
            """
            Path patterns the CORS middleware applies to. A `*` matches any
            sequence of characters.
            """
        ),
    ] = ["api/*"]
    cors_allowed_origins: Annotated[list[str], Doc("Allowed origins, `*` for any.")] = ["*"]
    cors_allowed_methods: Annotated[list[str], Doc("Allowed methods, `*` for any.")] = ["*"]
    cors_allowed_headers: Annotated[list[str], Doc("Allowed request headers.")] = ["*"]
    cors_exposed_headers: Annotated[list[str], Doc("Headers exposed to the browser.")] = []
    cors_max_age: Annotated[int, Doc("Seconds a preflight response may be cached.")] = 0
    cors_allow_credentials: Annotated[
        bool, Doc("Whether `Access-Control-Allow-Credentials` is sent.")
    ] = False


class Settings(CorsSettings):
    debug: Annotated[
        bool,
        Doc(
            """
            Boolean indicating if server errors should expose their message
            in the rendered response.

            !!! Tip
                Do not use this in production as `True`.
            """
        ),
    ] = False
    environment: Annotated[
        str | None,
        Doc(
            """
            Optional string indicating the environment where the settings are running.
            """
        ),
    ] = EnvironmentType.PRODUCTION
    logging_level: Annotated[
        str,
        Doc(
            """
            The logging level used by the default logging configuration.
            """
        ),
    ] = "INFO"
    login_url: Annotated[
        str,
        Doc(
            """
            Where unauthenticated browser requests are redirected to.
            """
        ),
    ] = "/login"

    @property
    def logging_config(self) -> LoggingConfig | None:  # noqa
        """
        An instance of `LoggingConfig`.

        Default:
            StandardLoggingConfig()
        """
        return StandardLoggingConfig(level=self.logging_level)
