import asyncio
import socket
from collections import deque

import pytest
from websockets.frames import Frame, Opcode


class FakeConnection:
    """Соединение по сценарию: каждый ping выпускает очередную пачку кадров.

    Элемент пачки: Frame, None (пир закрыл сессию) или исключение.
    Когда кадров нет, next_frame ждёт бесконечно.
    """

    def __init__(self, script, close_delay=0.0):
        self.script = deque(script)
        self.frames = deque()
        self.pings = []
        self.log = []
        self.closed = 0
        self.close_delay = close_delay

    async def send_ping(self, payload=b""):
        self.pings.append(payload)
        self.log.append("ping")
        if self.script:
            self.frames.extend(self.script.popleft())

    async def next_frame(self):
        await asyncio.sleep(0)
        if not self.frames:
            await asyncio.Event().wait()
        item = self.frames.popleft()
        if isinstance(item, Exception):
            raise item
        if item is not None and item.opcode is Opcode.PONG:
            self.log.append("pong")
        return item

    async def close(self):
        self.closed += 1
        if self.close_delay:
            await asyncio.sleep(self.close_delay)


@pytest.fixture
def fake_connection():
    return FakeConnection


@pytest.fixture
def pong():
    def make(payload=b""):
        return Frame(Opcode.PONG, payload)
    return make


@pytest.fixture
def text():
    def make(message="tick"):
        return Frame(Opcode.TEXT, message.encode())
    return make


@pytest.fixture
def free_port():
    """Порт, на котором гарантированно никто не слушает."""
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
