import asyncio
import logging
import ssl
from collections import deque
from typing import Deque, Optional

from websockets.client import ClientProtocol
from websockets.exceptions import InvalidState
from websockets.frames import CloseCode, Frame, Opcode
from websockets.protocol import State
from websockets.uri import WebSocketURI

from . import config, tls
from .errors import HandshakeError, TransportError

logger = logging.getLogger(__name__)


class Connection:
    """Одна WebSocket-сессия поверх asyncio-потоков.

    Кадры разбирает sans-I/O ClientProtocol из websockets, поэтому pong виден
    как обычный входящий кадр. На входящие ping протокол отвечает сам.
    """

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
                 protocol: ClientProtocol):
        self.reader = reader
        self.writer = writer
        self.protocol = protocol
        self._frames: Deque[Frame] = deque()
        self._eof = False
        self._peer_closed = False
        self._closed = False

    @property
    def state(self) -> State:
        return self.protocol.state

    async def _handshake(self):
        request = self.protocol.connect()
        self.protocol.send_request(request)
        try:
            await self._flush()
            while self.protocol.state is State.CONNECTING:
                data = await self._read()
                exc = self.protocol.handshake_exc
                if exc is not None:
                    raise HandshakeError(str(exc) or exc.__class__.__name__) from exc
                if not data:
                    raise HandshakeError("connection closed during handshake")
        except TransportError as e:
            raise HandshakeError(str(e)) from e
        self._collect_frames()
        logger.debug("handshake complete: %s", request.path)

    async def _read(self) -> bytes:
        try:
            data = await self.reader.read(config.READ_SIZE)
        except OSError as e:
            raise TransportError(f"read failed: {e}") from e
        if data:
            self.protocol.receive_data(data)
        else:
            self._eof = True
            self.protocol.receive_eof()
        try:
            await self._flush()
        except TransportError:
            # ответ на close мог не дойти: пир уже закрыл сокет
            if self.protocol.state in (State.CONNECTING, State.OPEN):
                raise
            logger.debug("peer went away before close reply was sent")
        return data

    async def _flush(self):
        try:
            for data in self.protocol.data_to_send():
                if data:
                    self.writer.write(data)
                elif self.writer.can_write_eof():
                    self.writer.write_eof()
            await self.writer.drain()
        except OSError as e:
            raise TransportError(f"write failed: {e}") from e

    def _collect_frames(self):
        for event in self.protocol.events_received():
            if isinstance(event, Frame):
                self._frames.append(event)

    async def send_ping(self, payload: bytes = b"") -> None:
        if self._peer_closed:
            # ответа всё равно не будет: next_frame вернёт None
            logger.debug("session closed by peer, ping not sent")
            return
        try:
            self.protocol.send_ping(payload)
        except InvalidState as e:
            raise TransportError(f"cannot send ping: {e}") from e
        await self._flush()

    async def next_frame(self) -> Optional[Frame]:
        """Следующий входящий кадр; None, когда пир закрыл сессию."""
        while not self._frames:
            if self._peer_closed:
                return None
            # кадры, разобранные до ошибки, уже отданы; EOFError означает
            # обрыв без close-кадра, это конец потока
            exc = self.protocol.parser_exc
            if exc is not None and not isinstance(exc, EOFError):
                raise TransportError(f"protocol error: {exc}") from exc
            data = await self._read()
            self._collect_frames()
            if not data:
                self._peer_closed = True

        frame = self._frames.popleft()
        if frame.opcode is Opcode.CLOSE:
            logger.debug("close frame received")
            self._peer_closed = True
            self._frames.clear()
            return None
        return frame

    async def _drain(self):
        while not self._eof:
            await self._read()

    async def close(self):
        if self._closed:
            return
        self._closed = True
        try:
            if self.protocol.state is State.OPEN:
                self.protocol.send_close(CloseCode.NORMAL_CLOSURE)
                await self._flush()
            await asyncio.wait_for(self._drain(), config.CLOSE_TIMEOUT)
        except (TransportError, asyncio.TimeoutError) as e:
            logger.warning("closing handshake failed: %s", str(e) or "timed out")
        finally:
            self.writer.close()
            try:
                await self.writer.wait_closed()
            except OSError as e:
                logger.warning("socket close failed: %s", e)


async def _open(wsuri: WebSocketURI, ssl_context: Optional[ssl.SSLContext]) -> Connection:
    kwargs = {}
    if wsuri.secure:
        kwargs["ssl"] = ssl_context or tls.default_context()
        kwargs["server_hostname"] = wsuri.host
    try:
        reader, writer = await asyncio.open_connection(wsuri.host, wsuri.port, **kwargs)
    except OSError as e:
        raise HandshakeError(str(e) or e.__class__.__name__) from e

    conn = Connection(reader, writer, ClientProtocol(wsuri))
    try:
        await conn._handshake()
    except BaseException:
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug("socket close after failed handshake: %s", e)
        raise
    return conn


async def open_connection(wsuri: WebSocketURI, ssl_context: Optional[ssl.SSLContext] = None,
                          open_timeout: float = config.OPEN_TIMEOUT) -> Connection:
    try:
        return await asyncio.wait_for(_open(wsuri, ssl_context), open_timeout)
    except asyncio.TimeoutError as e:
        raise HandshakeError(f"timed out after {open_timeout}s") from e
