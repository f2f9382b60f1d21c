import asyncio
import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from . import config
from .correlator import LossReason, ProbeOutcome, probe
from .errors import TransportError

logger = logging.getLogger(__name__)


class PingState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    DONE = "done"


@dataclass
class RunResult:
    outcomes: List[ProbeOutcome] = field(default_factory=list)
    error: Optional[TransportError] = None
    cancelled: bool = False
    elapsed: float = 0.0  # секунды, от handshake до конца цикла проб

    @property
    def sent(self) -> int:
        return len(self.outcomes)


class Pinger:
    """Последовательные пробы по одной сессии.

    В полёте всегда не больше одной пробы: следующий ping уходит только
    после того, как ожидание предыдущего pong закончилось.
    """

    def __init__(self, opener: Callable[[], Awaitable], count: int = config.DEFAULT_COUNT,
                 interval: float = config.DEFAULT_INTERVAL, timeout: Optional[float] = None,
                 tagged: bool = False,
                 on_outcome: Optional[Callable[[ProbeOutcome], None]] = None,
                 stop: Optional[asyncio.Event] = None,
                 sleep: Callable[[float], Awaitable] = asyncio.sleep,
                 clock: Callable[[], float] = time.perf_counter):
        self.opener = opener
        self.count = count
        self.interval = interval
        self.timeout = timeout
        self.tagged = tagged
        self.on_outcome = on_outcome
        self.stop = stop
        self.sleep = sleep
        self.clock = clock
        self.state = PingState.IDLE

    def _set_state(self, state: PingState):
        logger.debug("pinger %s -> %s", self.state.value, state.value)
        self.state = state

    def _stopped(self) -> bool:
        return self.stop is not None and self.stop.is_set()

    async def run(self) -> RunResult:
        # HandshakeError уходит наверх: проб ещё не было, отчитываться не о чем
        start = self.clock()
        conn = await self.opener()
        result = RunResult()
        self._set_state(PingState.RUNNING)
        try:
            await self._probe_loop(conn, result)
        except TransportError as e:
            logger.debug("run aborted after %d probes: %s", result.sent, e)
            result.error = e
        finally:
            result.elapsed = self.clock() - start
            self._set_state(PingState.DRAINING)
            await conn.close()
            self._set_state(PingState.DONE)
        return result

    async def _probe_loop(self, conn, result: RunResult):
        for seq in range(1, self.count + 1):
            if self._stopped():
                result.cancelled = True
                break

            outcome = await probe(conn, seq, timeout=self.timeout, stop=self.stop,
                                  tagged=self.tagged)
            result.outcomes.append(outcome)
            if self.on_outcome is not None:
                self.on_outcome(outcome)

            if outcome.reason is LossReason.CANCELLED:
                result.cancelled = True
                break
            if outcome.reason is LossReason.CLOSED:
                logger.info("session closed by peer during probe %d", seq)
                break

            if seq < self.count:
                await self._pause()

    async def _pause(self):
        if self.stop is None:
            await self.sleep(self.interval)
            return
        tasks = [asyncio.ensure_future(self.sleep(self.interval)),
                 asyncio.ensure_future(self.stop.wait())]
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
