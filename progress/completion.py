"""Правила выполнения, общие для сервера и клиента.

Модуль не зависит от Django, чтобы его можно было использовать в клиенте API.
"""


def percentage(count, target):
    if target <= 0:
        return 0.0
    return min(100.0, 100.0 * count / target)


def is_complete(count, target):
    return target > 0 and count >= target
