import math

import pytest

from wsping.correlator import LossReason, ProbeOutcome
from wsping.stats import compute_statistics


def successes(*rtts_ms):
    return [ProbeOutcome.success(i, ms / 1000) for i, ms in enumerate(rtts_ms, 1)]


def test_four_replies():
    stats = compute_statistics(successes(10, 12, 11, 13), elapsed=3.0421)
    assert stats.sent == 4
    assert stats.received == 4
    assert stats.loss == 0.0
    assert stats.time_ms == pytest.approx(3042.1)
    assert stats.avg_ms == pytest.approx(11.5)
    assert stats.min_ms == pytest.approx(10)
    assert stats.max_ms == pytest.approx(13)
    assert stats.mdev_ms == pytest.approx(math.sqrt(1.25))
    assert stats.min_ms <= stats.avg_ms <= stats.max_ms


def test_single_reply_has_zero_mdev():
    stats = compute_statistics(successes(42.5))
    assert stats.mdev_ms == 0.0
    assert stats.avg_ms == stats.min_ms == stats.max_ms


def test_partial_loss():
    outcomes = successes(20) + [ProbeOutcome.lost(2, LossReason.CLOSED)]
    stats = compute_statistics(outcomes)
    assert (stats.sent, stats.received) == (2, 1)
    assert stats.loss == pytest.approx(50.0)
    assert stats.avg_ms == pytest.approx(20)


def test_nothing_received():
    outcomes = [ProbeOutcome.lost(1, LossReason.TIMEOUT), ProbeOutcome.lost(2, LossReason.TIMEOUT)]
    stats = compute_statistics(outcomes)
    assert stats.received == 0
    assert stats.loss == 100.0
    assert stats.min_ms is None
    assert stats.max_ms is None
    assert stats.avg_ms is None
    assert stats.mdev_ms is None


def test_no_probes():
    stats = compute_statistics([])
    assert stats.sent == 0
    assert stats.loss == 0.0
