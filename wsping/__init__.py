"""WebSocket ping: RTT по управляющим кадрам ping/pong."""

__version__ = "0.1.0"
