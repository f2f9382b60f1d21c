class WsPingError(Exception):
    """Базовая ошибка wsping."""


class ConfigError(WsPingError):
    """Некорректный URL или параметры запуска."""


class ResolveError(ConfigError):
    pass


class HandshakeError(WsPingError):
    """Соединение не установлено: отказ TCP, ошибка TLS, отклонённый upgrade."""


class TransportError(WsPingError):
    """Сессия стала непригодной посреди прогона (reset, нарушение протокола)."""
