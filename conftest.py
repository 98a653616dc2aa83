import logging

import pytest

import observation
from observation import Registry
from tests.helpers import EventHistory

logging.basicConfig(level=logging.DEBUG)


@pytest.fixture(scope="function", autouse=True)
def reset():
    yield
    observation.registry().reset()


@pytest.fixture(scope="function")
def registry() -> Registry:
    with Registry() as instance:
        yield instance


@pytest.fixture(scope="function")
def event_history(registry) -> EventHistory:
    history = EventHistory()
    registry.add_listener(history)
    return history
