# quizhub/utils/stats.py
"""
Числовые утилиты для подсчёта баллов и агрегатов
"""
from decimal import Decimal, ROUND_HALF_UP


def round_half_up(value):
    """Округление до целого, половины вверх (75.5 -> 76), в отличие от round()"""
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def percent(part, total):
    """Целый процент part от total; при total == 0 возвращает 0"""
    if not total:
        return 0
    return round_half_up(100 * part / total)


def mean(values):
    """Среднее значение; None для пустой последовательности"""
    values = list(values)
    if not values:
        return None
    return sum(values) / len(values)
