from typing import Any

import pytest

from waypoint.exceptions import NotFound
from waypoint.logging import LoggingConfig, StandardLoggingConfig, log_exception, setup_logging
from waypoint.requests import Request
from waypoint.routing import Router


class ListLogger:
    def __init__(self, sink: list[str]):
        self.sink = sink

    def info(self, event: str, *args, **kwargs):
        self.sink.append(event)

    def debug(self, event: str, *args, **kwargs):
        self.sink.append(event)

    def warning(self, event: str, *args, **kwargs):
        self.sink.append(event)

    def error(self, event: str, *args, **kwargs):
        self.sink.append(event)

    def critical(self, event: str, *args, **kwargs):
        self.sink.append(event)


class ListLoggingConfig(LoggingConfig):
    def __init__(self, sink_list, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.sink_list = sink_list
        self.configured = False

    def configure(self) -> None:
        self.configured = True

    def get_logger(self) -> Any:
        return ListLogger(self.sink_list)


def test_custom_logging_config():
    sink = []
    config = ListLoggingConfig(sink_list=sink)
    setup_logging(config)

    from waypoint.logging import logger

    logger.info("Info message")

    assert config.configured
    assert sink == ["Info message"]


def test_skip_setup_configure():
    config = ListLoggingConfig(sink_list=[], skip_setup_configure=True)

    setup_logging(config)

    assert not config.configured


def test_routing_logs_registration_and_dispatch():
    sink = []
    setup_logging(ListLoggingConfig(sink_list=sink))

    router = Router()
    router.get("/users/{user}", lambda user: user)
    router.dispatch(Request("GET", "/users/US1"))

    assert "Registered route ['GET', 'HEAD'] users/{user}." in sink
    assert "Router finalized with 1 routes." in sink
    assert any(message.startswith("GET /users/US1 matched Matched(") for message in sink)


def test_named_routes_are_logged_with_their_name():
    sink = []
    setup_logging(ListLoggingConfig(sink_list=sink))

    Router().post("/users", lambda: "ok", name="users.store")

    assert "Registered route ['POST'] users as 'users.store'." in sink


@pytest.mark.parametrize(
    "exc,status_code,message",
    [
        (NotFound.for_path("/missing"), 404, "NotFound: 404: The route /missing could not be found."),
        (RuntimeError("boom"), None, "Unhandled RuntimeError: boom"),
        (RuntimeError("boom"), 503, "Unhandled RuntimeError: boom"),
    ],
)
def test_log_exception(exc, status_code, message):
    sink = []
    setup_logging(ListLoggingConfig(sink_list=sink))

    log_exception(exc, status_code)

    assert sink == [message]


def test_invalid_logging_config():
    with pytest.raises(ValueError):
        setup_logging(logging_config="not_a_valid_config")


def test_standard_logging_fallback():
    setup_logging()

    from waypoint.logging import logger

    assert hasattr(logger, "info")
    assert hasattr(logger, "debug")


def test_standard_logging_config_uses_the_waypoint_logger():
    config = StandardLoggingConfig(level="warning")

    assert config.level == "WARNING"
    assert config.get_logger().name == "waypoint"
    assert config.config["loggers"]["waypoint"]["level"] == "WARNING"


@pytest.mark.parametrize("level", ["waypoint", "5-da", "verbose"])
def test_invalid_level(level):
    with pytest.raises(AssertionError):
        ListLoggingConfig(sink_list=[], level=level)

