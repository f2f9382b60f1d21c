import asyncio
import enum
import logging
import struct
import time
from dataclasses import dataclass
from typing import Callable, Optional

from websockets.frames import Opcode

logger = logging.getLogger(__name__)

SEQ_FMT = "!I"


class LossReason(enum.Enum):
    CLOSED = "closed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ProbeOutcome:
    seq: int
    rtt: Optional[float] = None  # секунды
    reason: Optional[LossReason] = None

    @classmethod
    def success(cls, seq: int, rtt: float) -> "ProbeOutcome":
        return cls(seq, rtt=rtt)

    @classmethod
    def lost(cls, seq: int, reason: LossReason) -> "ProbeOutcome":
        return cls(seq, reason=reason)

    @property
    def ok(self) -> bool:
        return self.rtt is not None

    @property
    def rtt_ms(self) -> Optional[float]:
        return None if self.rtt is None else self.rtt * 1000


def ping_token(seq: int) -> bytes:
    return struct.pack(SEQ_FMT, seq & 0xFFFFFFFF)


async def _wait_for_pong(conn, token: bytes, clock: Callable[[], float]) -> Optional[float]:
    """Время прихода подходящего pong или None, если сессия закончилась."""
    while True:
        frame = await conn.next_frame()
        if frame is None:
            return None
        if frame.opcode is not Opcode.PONG:
            logger.debug("skipping %s frame while waiting for pong", frame.opcode.name)
            continue
        if token and bytes(frame.data) != token:
            logger.debug("skipping stale pong %r (expected %r)", bytes(frame.data), token)
            continue
        return clock()


async def probe(conn, seq: int, timeout: Optional[float] = None,
                stop: Optional[asyncio.Event] = None, tagged: bool = False,
                clock: Callable[[], float] = time.perf_counter) -> ProbeOutcome:
    """Одна проба: ping и ожидание соответствующего pong.

    Без tagged pong не несёт номера, и первый пришедший pong считается
    ответом на последний ping. С tagged в ping кладётся номер пробы, и
    засчитывается только pong с тем же содержимым.

    TransportError из соединения не перехватывается: сессия после неё
    непригодна для следующих проб.
    """
    token = ping_token(seq) if tagged else b""
    start = clock()
    await conn.send_ping(token)
    logger.debug("ping %d sent (%d byte payload)", seq, len(token))

    waiter = asyncio.ensure_future(_wait_for_pong(conn, token, clock))
    tasks = {waiter}
    if stop is not None:
        tasks.add(asyncio.ensure_future(stop.wait()))
    try:
        done, _ = await asyncio.wait(tasks, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    if waiter in done:
        arrived = waiter.result()
        if arrived is None:
            return ProbeOutcome.lost(seq, LossReason.CLOSED)
        return ProbeOutcome.success(seq, arrived - start)
    if stop is not None and stop.is_set():
        return ProbeOutcome.lost(seq, LossReason.CANCELLED)
    return ProbeOutcome.lost(seq, LossReason.TIMEOUT)
