"""Ключи периодов учета прогресса.

Период - календарный месяц в формате ``YYYY-MM``. Все остальные модули
получают период явным параметром и не вычисляют "сейчас" самостоятельно.
"""
import re

from django.utils import timezone

from .exceptions import ValidationError

PERIOD_PATTERN = re.compile(r'(\d{4})-(0[1-9]|1[0-2])')


def format_period(year, month):
    return f'{year:04d}-{month:02d}'


def parse_period(period):
    if not isinstance(period, str):
        raise ValidationError(f'Период должен быть строкой формата YYYY-MM, получено: {period!r}')

    match = PERIOD_PATTERN.fullmatch(period)
    if not match:
        raise ValidationError(f'Период должен быть в формате YYYY-MM, получено: {period}')

    return int(match.group(1)), int(match.group(2))


def current_period(now=None):
    today = timezone.localdate(now)
    return format_period(today.year, today.month)


def next_period(period):
    year, month = parse_period(period)
    if month == 12:
        return format_period(year + 1, 1)
    return format_period(year, month + 1)


def previous_period(period):
    year, month = parse_period(period)
    if month == 1:
        return format_period(year - 1, 12)
    return format_period(year, month - 1)


def period_range(start, end):
    """Все периоды от ``start`` до ``end`` включительно, по возрастанию."""
    parse_period(start)
    parse_period(end)
    periods = []
    period = start
    while period <= end:
        periods.append(period)
        period = next_period(period)
    return periods
