import pytest

from hub_simulator import HubClient, ManualScheduler, SimulatorConfig


class EventRecorder:
    """Collects (event, args) pairs dispatched by a hub client."""

    def __init__(self):
        self.calls = []

    def attach(self, hub, *event_names):
        for name in event_names:
            hub.on(name, self._make_handler(name))
        return self

    def _make_handler(self, name):
        def handler(*args):
            self.calls.append((name, args))

        return handler

    def names(self):
        return [name for name, _ in self.calls]

    def of(self, event_name):
        return [args for name, args in self.calls if name == event_name]


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def config():
    return SimulatorConfig(random_seed=1234)


@pytest.fixture
def hub(config, scheduler):
    client = HubClient(config, scheduler=scheduler)
    yield client
    client.close()


@pytest.fixture
def connected_hub(hub, scheduler, config):
    future = hub.start_connection()
    scheduler.advance(config.connect_delay_s)
    assert future.result(timeout=0) is True
    return hub


@pytest.fixture
def recorder():
    return EventRecorder()
