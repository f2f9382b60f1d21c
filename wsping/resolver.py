import asyncio
import logging
import socket

from .errors import ResolveError

logger = logging.getLogger(__name__)


async def resolve(host: str, port: int) -> str:
    """Возвращает IP первого адреса из getaddrinfo (только для вывода)."""
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise ResolveError(f"Cannot resolve {host}: {e}") from e
    if not infos:
        raise ResolveError(f"Cannot resolve {host}: no addresses")
    ip = infos[0][4][0]
    logger.debug("resolved %s -> %s (%d addresses)", host, ip, len(infos))
    return ip
