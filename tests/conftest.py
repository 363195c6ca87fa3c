import random
from typing import List

import pytest

from game.entities import Table
from matchmaking import RoomRegistry


class FakeSocket:
    """Stands in for aiohttp's WebSocketResponse in gateway tests."""

    def __init__(self, fail: bool = False):
        self.sent: List[dict] = []
        self.fail = fail
        self.closed = False

    async def send_json(self, data, dumps=None):
        if self.fail:
            raise ConnectionResetError("socket is gone")
        self.sent.append(data)

    async def close(self):
        self.closed = True

    def types(self) -> List[str]:
        return [m["type"] for m in self.sent]

    def of_type(self, kind: str) -> List[dict]:
        return [m for m in self.sent if m["type"] == kind]


@pytest.fixture
def table():
    return Table()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def registry(table, rng):
    return RoomRegistry(table=table, rng=rng)


@pytest.fixture
def fake_socket():
    return FakeSocket
