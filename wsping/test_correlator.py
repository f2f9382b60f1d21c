import asyncio
import struct

import pytest

from wsping.correlator import LossReason, ProbeOutcome, ping_token, probe
from wsping.errors import TransportError


def run(coro):
    return asyncio.run(coro)


def fixed_clock(*ticks):
    return iter(ticks).__next__


def test_pong_after_chatter_is_success(fake_connection, pong, text):
    conn = fake_connection([[text("a"), text("b"), pong()]])
    outcome = run(probe(conn, 1, clock=fixed_clock(10.0, 10.0125)))
    assert outcome.ok
    assert outcome.seq == 1
    assert outcome.rtt == pytest.approx(0.0125)
    assert outcome.rtt_ms == pytest.approx(12.5)
    assert conn.pings == [b""]


def test_close_before_pong_is_lost(fake_connection):
    conn = fake_connection([[None]])
    outcome = run(probe(conn, 3))
    assert outcome == ProbeOutcome.lost(3, LossReason.CLOSED)
    assert outcome.rtt_ms is None


def test_non_pong_frames_never_count(fake_connection, text):
    conn = fake_connection([[text(), text(), None]])
    outcome = run(probe(conn, 1))
    assert not outcome.ok
    assert outcome.reason is LossReason.CLOSED


def test_timeout_without_reply(fake_connection, text):
    conn = fake_connection([[text()]])
    outcome = run(probe(conn, 2, timeout=0.05))
    assert outcome.reason is LossReason.TIMEOUT


def test_stop_event_cancels_wait(fake_connection):
    async def scenario():
        stop = asyncio.Event()
        stop.set()
        return await probe(fake_connection([]), 1, stop=stop)

    assert run(scenario()).reason is LossReason.CANCELLED


def test_reply_wins_over_unset_stop(fake_connection, pong):
    async def scenario():
        return await probe(fake_connection([[pong()]]), 1, stop=asyncio.Event())

    assert run(scenario()).ok


def test_tagged_ping_carries_sequence(fake_connection, pong):
    conn = fake_connection([[pong(ping_token(7))]])
    outcome = run(probe(conn, 7, tagged=True))
    assert outcome.ok
    assert conn.pings == [struct.pack("!I", 7)]


def test_tagged_ping_skips_stale_pong(fake_connection, pong):
    conn = fake_connection([[pong(ping_token(1)), pong(b""), None]])
    outcome = run(probe(conn, 2, tagged=True))
    assert outcome.reason is LossReason.CLOSED


def test_untagged_takes_first_pong(fake_connection, pong):
    conn = fake_connection([[pong(ping_token(1))]])
    assert run(probe(conn, 2)).ok


def test_transport_error_propagates(fake_connection, text):
    conn = fake_connection([[text(), TransportError("connection reset")]])
    with pytest.raises(TransportError, match="reset"):
        run(probe(conn, 1))
