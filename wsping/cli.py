import argparse
import asyncio
import logging
import signal
import sys

from websockets.exceptions import InvalidURI
from websockets.uri import WebSocketURI, parse_uri

from . import config, report, tls
from .connection import open_connection
from .errors import ConfigError, HandshakeError
from .log import setup_logger
from .resolver import resolve
from .scheduler import Pinger
from .stats import compute_statistics

logger = logging.getLogger(__name__)


def positive_int(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return n


def non_negative_int(value: str) -> int:
    n = int(value)
    if n < 0:
        raise argparse.ArgumentTypeError(f"must be a non-negative integer, got {value}")
    return n


def positive_float(value: str) -> float:
    x = float(value)
    if x <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return x


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wsping",
        description="Measure round-trip latency with WebSocket ping/pong frames.",
    )
    parser.add_argument("url", help="WebSocket URL to ping (ws:// or wss://)")
    parser.add_argument("-c", "--count", type=positive_int, default=config.DEFAULT_COUNT,
                        help="Number of pings to send")
    parser.add_argument("-i", "--interval", type=non_negative_int, default=config.DEFAULT_INTERVAL,
                        help="Interval between pings in seconds")
    parser.add_argument("-W", "--timeout", type=positive_float, default=None,
                        help="Seconds to wait for each pong (default: until the session ends)")
    parser.add_argument("--tag", action="store_true",
                        help="Put the sequence number into each ping and require it in the pong")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")
    return parser


def parse_url(url: str) -> WebSocketURI:
    try:
        return parse_uri(url)
    except InvalidURI as e:
        raise ConfigError(f"Invalid WebSocket URL {url!r}: {e}") from e


async def ping(args: argparse.Namespace, wsuri: WebSocketURI, ssl_context=None) -> int:
    ip = await resolve(wsuri.host, wsuri.port)
    scheme = "wss" if wsuri.secure else "ws"
    print(report.banner(args.url, ip, args.count, args.interval))

    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    try:
        loop.add_signal_handler(signal.SIGINT, stop.set)
        sigint_installed = True
    except (NotImplementedError, RuntimeError):
        logger.debug("SIGINT handler is not supported, run cannot be interrupted cleanly")
        sigint_installed = False

    pinger = Pinger(
        lambda: open_connection(wsuri, ssl_context=ssl_context),
        count=args.count,
        interval=args.interval,
        timeout=args.timeout,
        tagged=args.tag,
        on_outcome=lambda outcome: print(report.probe_line(scheme, ip, outcome), flush=True),
        stop=stop,
    )
    try:
        result = await pinger.run()
    finally:
        if sigint_installed:
            loop.remove_signal_handler(signal.SIGINT)

    for line in report.summary(wsuri.host, compute_statistics(result.outcomes, result.elapsed)):
        print(line)

    if result.error is not None:
        print(f"wsping: connection failed after {result.sent} probes: {result.error}",
              file=sys.stderr)
        return 1
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logger(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        wsuri = parse_url(args.url)
        ssl_context = tls.install_default()
        return asyncio.run(ping(args, wsuri, ssl_context if wsuri.secure else None))
    except ConfigError as e:
        print(f"wsping: {e}", file=sys.stderr)
        return 1
    except HandshakeError as e:
        print(f"wsping: handshake with {args.url} failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
