DEFAULT_COUNT = 4
DEFAULT_INTERVAL = 1  # секунды

READ_SIZE = 65536
OPEN_TIMEOUT = 10.0
CLOSE_TIMEOUT = 2.0

