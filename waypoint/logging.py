from __future__ import annotations

import logging.config
import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Annotated, Any, cast

from waypoint.protocols.logging import LoggerProtocol
from waypoint.types import Doc

if TYPE_CHECKING:
    from waypoint.requests import Request
    from waypoint.routing.route import Route


class LoggerProxy:
    """
    Proxy for the real logger used by Waypoint.

    Nothing is configured until the first attribute access, which lets
    applications bind their own logger before any route is registered.
    """

    def __init__(self) -> None:
        self._logger: LoggerProtocol | None = None
        self._lock: threading.RLock = threading.RLock()

    def bind_logger(self, logger: LoggerProtocol | None) -> None:  # noqa
        with self._lock:
            self._logger = logger

    def __getattr__(self, item: str) -> Any:
        with self._lock:
            if not self._logger:
                setup_logging()
                return getattr(self._logger, item)
            return getattr(self._logger, item)


logger: LoggerProtocol = cast(LoggerProtocol, LoggerProxy())


class LoggingConfig(ABC):
    """
    Base of every logging configuration understood by `setup_logging`.

    **Example**

    ```python
    from waypoint.logging import StandardLoggingConfig, setup_logging

    setup_logging(StandardLoggingConfig(level="INFO"))
    ```
    """

    __logging_levels__: list[str] = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

    def __init__(
        self,
        level: Annotated[
            str,
            Doc(
                """
                The logging level.
                """
            ),
        ] = "DEBUG",
        **kwargs: Any,
    ) -> None:
        levels: str = ", ".join(self.__logging_levels__)
        assert level.upper() in self.__logging_levels__, (
            f"'{level}' is not a valid logging level. Available levels: '{levels}'."
        )

        self.level = level.upper()
        self.options = kwargs
        self.skip_setup_configure: bool = kwargs.get("skip_setup_configure", False)

    def configure(self) -> None:
        """
        Configures the logging settings.
        """
        raise NotImplementedError("`configure()` must be implemented in subclasses.")

    @abstractmethod
    def get_logger(self) -> Any:
        """
        Returns the logger instance.
        """
        raise NotImplementedError("`get_logger()` must be implemented in subclasses.")


class StandardLoggingConfig(LoggingConfig):
    def __init__(self, config: dict[str, Any] | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.config = config or self.default_config()

    def default_config(self) -> dict[str, Any]:  # noqa
        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "[%(asctime)s] %(levelname)s in %(module)s: %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                "waypoint": {
                    "level": self.level,
                    "handlers": ["console"],
                    "propagate": False,
                },
            },
        }

    def configure(self) -> None:
        logging.config.dictConfig(self.config)

    def get_logger(self) -> Any:
        return logging.getLogger("waypoint")


def setup_logging(logging_config: LoggingConfig | None = None) -> None:
    """
    Sets up the logging system for the routing core.

    If a custom `LoggingConfig` is provided, it will be used to configure
    the logging system. Otherwise, the `logging_config` of the active
    settings is used, falling back to a default `StandardLoggingConfig`.

    Args:
        logging_config: An optional instance of `LoggingConfig` to customize
            the logging behavior.

    Raises:
        ValueError: If the provided `logging_config` is not an instance of `LoggingConfig`.
    """
    if logging_config is not None and not isinstance(logging_config, LoggingConfig):
        raise ValueError("`logging_config` must be an instance of LoggingConfig.")

    if logging_config is None:
        from waypoint.conf import settings

        logging_config = settings.logging_config

    config = logging_config or StandardLoggingConfig()

    if not config.skip_setup_configure:
        config.configure()

    _logger = config.get_logger()
    logger.bind_logger(_logger)


# Routing events logged by the dispatch core.


def log_route_registered(route: Route) -> None:
    name = route.get_name()
    suffix = f" as '{name}'" if name else ""
    logger.debug(f"Registered route {route.methods} {route.uri}{suffix}.")


def log_router_finalized(route_count: int) -> None:
    logger.debug(f"Router finalized with {route_count} routes.")


def log_matcher_compiled(route_count: int) -> None:
    logger.debug(f"Compiled route matcher over {route_count} routes.")


def log_route_match(request: Request, result: Any) -> None:
    logger.debug(f"{request.method} {request.path} matched {result!r}.")


def log_middleware_chain(chain: list[Any]) -> None:
    logger.debug(f"Resolved middleware chain: {chain!r}")


def log_exception(exc: BaseException, status_code: int | None = None) -> None:
    """
    Client errors (below 500) are logged at info level without a traceback.
    Everything else is an error.
    """
    if status_code is not None and status_code < 500:
        logger.info(f"{exc.__class__.__name__}: {exc}")
        return
    logger.error(f"Unhandled {exc.__class__.__name__}: {exc}", exc_info=exc)
