import statistics
from dataclasses import dataclass
from typing import Iterable, Optional

from .correlator import ProbeOutcome


@dataclass
class Statistics:
    sent: int
    received: int
    loss: float  # проценты
    time_ms: float = 0.0
    min_ms: Optional[float] = None
    max_ms: Optional[float] = None
    avg_ms: Optional[float] = None
    mdev_ms: Optional[float] = None


def compute_statistics(outcomes: Iterable[ProbeOutcome], elapsed: float = 0.0) -> Statistics:
    """Итоговая статистика по завершённому прогону.

    sent считает только пробы, давшие результат. Задержки считаются по
    успешным пробам в миллисекундах; mdev это стандартное отклонение по
    генеральной совокупности (pstdev), для одной пробы оно равно 0.
    """
    outcomes = list(outcomes)
    rtts = [o.rtt_ms for o in outcomes if o.ok]

    sent = len(outcomes)
    received = len(rtts)
    loss = (sent - received) / sent * 100 if sent else 0.0
    result = Statistics(sent=sent, received=received, loss=loss, time_ms=elapsed * 1000)

    if rtts:
        avg = statistics.fmean(rtts)
        result.min_ms = min(rtts)
        result.max_ms = max(rtts)
        result.avg_ms = avg
        result.mdev_ms = statistics.pstdev(rtts, mu=avg)
    return result
