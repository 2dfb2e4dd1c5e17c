import pytest

from waypoint import logging as waypoint_logging


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def clean_logger():
    waypoint_logging.logger.bind_logger(None)
    yield
    waypoint_logging.logger.bind_logger(None)
