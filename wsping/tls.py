import logging
import ssl
from typing import Optional

logger = logging.getLogger(__name__)

_context: Optional[ssl.SSLContext] = None


def install_default(cafile: Optional[str] = None) -> ssl.SSLContext:
    """Создаёт клиентский TLS-контекст процесса.

    Вызывается один раз до открытия сокетов; повторный вызов ничего не меняет
    и возвращает уже установленный контекст.
    """
    global _context
    if _context is not None:
        logger.debug("TLS context already installed")
        return _context
    _context = ssl.create_default_context(cafile=cafile)
    logger.debug("TLS context installed (cafile=%s)", cafile)
    return _context


def default_context() -> ssl.SSLContext:
    if _context is None:
        raise RuntimeError("TLS context is not installed, call install_default() first")
    return _context
