from typing import List

from .correlator import ProbeOutcome
from .stats import Statistics


def banner(url: str, ip: str, count: int, interval: int) -> str:
    return f"PING {url} ({ip}) with {count} pings, {interval}s interval..."


def probe_line(scheme: str, ip: str, outcome: ProbeOutcome) -> str:
    if outcome.ok:
        return f"{scheme} {ip}: ping_seq={outcome.seq} latency={outcome.rtt_ms:.3f}ms"
    return f"{scheme} to {ip}: ping_seq={outcome.seq} No pong received"


def summary(host: str, stats: Statistics) -> List[str]:
    lines = [
        "",
        f"--- {host} ping statistics ---",
        f"{stats.sent} requests submitted, {stats.received} received, "
        f"{stats.loss:.2f}% responses failed, time {stats.time_ms:.0f}ms",
    ]
    if stats.received:
        lines.append(
            f"Ping-pong latency: {stats.avg_ms:.3f}ms (Min: {stats.min_ms:.3f}ms, "
            f"Max: {stats.max_ms:.3f}ms, Avg: {stats.avg_ms:.4f}ms, Mdev: {stats.mdev_ms:.2f}ms)"
        )
    return lines
