from datetime import datetime, timedelta, timezone

import pytest

from backend import RoomStore
from gateway import SessionGateway
from membership import MembershipCoordinator

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeConnection:
    """Records every frame the gateway sends to it."""

    def __init__(self, connection_id: str, fail: bool = False):
        self.id = connection_id
        self.fail = fail
        self.frames = []

    async def send(self, frame):
        if self.fail:
            raise ConnectionError("socket closed")
        self.frames.append(frame)

    def events(self):
        return [frame["event"] for frame in self.frames]

    def of(self, event):
        return [frame["data"] for frame in self.frames if frame["event"] == event]

    def clear(self):
        self.frames.clear()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return RoomStore()


@pytest.fixture
def coordinator(store):
    return MembershipCoordinator(store)


@pytest.fixture
def gateway(store, coordinator, clock):
    return SessionGateway(store, coordinator, clock=clock, send_timeout=1.0)


@pytest.fixture
def connect(gateway):
    def _connect(connection_id, **kwargs):
        connection = FakeConnection(connection_id, **kwargs)
        gateway.register(connection)
        return connection
    return _connect
