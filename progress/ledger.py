"""Хранилище счетчиков прогресса: одна строка на пару (сущность, период).

Все изменения счетчиков выполняются арифметикой на стороне базы данных под
блокировкой строки, поэтому параллельные увеличения одной строки не теряются.
"""
import logging
from dataclasses import dataclass

from django.db import DatabaseError, IntegrityError, models, transaction
from django.db.models import F, Value
from django.db.models.functions import Greatest
from django.utils import timezone

from .exceptions import DuplicateSeedError, StorageError, ValidationError
from .models import GoalProgress, SubgoalProgress
from .periods import parse_period

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CounterChange:
    before: int
    after: int
    row: models.Model

    def crossed_up(self, target):
        return self.before < target <= self.after

    def crossed_down(self, target):
        return self.after < target <= self.before


def validate_delta(delta, name='increment_by'):
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError(f'{name} должно быть целым числом, получено: {delta!r}')


class ProgressLedger:
    def __init__(self, model, entity_field):
        self.model = model
        self.entity_field = entity_field
        self.entity_key = f'{entity_field}_id'

    def __repr__(self):
        return f'ProgressLedger({self.model.__name__})'

    def _lookup(self, entity_id, period):
        parse_period(period)
        return {self.entity_key: entity_id, 'period': period}

    def _storage_error(self, action, entity_id, period, exc):
        logger.error(
            f'Ошибка {action} {self.model._meta.db_table}: {self.entity_field}={entity_id}, '
            f'период {period}: {exc}'
        )
        return StorageError(f'Ошибка хранилища при {action} прогресса')

    def get_count(self, entity_id, period):
        lookup = self._lookup(entity_id, period)
        try:
            count = self.model.objects.filter(**lookup).values_list('completed_count', flat=True).first()
        except DatabaseError as e:
            raise self._storage_error('чтении', entity_id, period, e) from e
        return count or 0

    def get_row(self, entity_id, period):
        """Строка за период или несохраненная строка с нулем, если ее нет."""
        lookup = self._lookup(entity_id, period)
        try:
            row = self.model.objects.filter(**lookup).first()
        except DatabaseError as e:
            raise self._storage_error('чтении', entity_id, period, e) from e
        return row or self.model(completed_count=0, **lookup)

    def counts(self, entity_ids, period):
        parse_period(period)
        try:
            rows = self.model.objects.filter(
                **{f'{self.entity_key}__in': list(entity_ids), 'period': period}
            ).values_list(self.entity_key, 'completed_count')
            return dict(rows)
        except DatabaseError as e:
            raise self._storage_error('чтении', list(entity_ids), period, e) from e

    def insert_row(self, entity_id, period, count=0):
        validate_delta(count, name='completed_count')
        lookup = self._lookup(entity_id, period)
        try:
            with transaction.atomic():
                return self.model.objects.create(completed_count=max(count, 0), **lookup)
        except IntegrityError as e:
            if self.model.objects.filter(**lookup).exists():
                raise DuplicateSeedError(
                    f'Прогресс {self.entity_field}={entity_id} за {period} уже существует'
                ) from e
            raise self._storage_error('создании', entity_id, period, e) from e
        except DatabaseError as e:
            raise self._storage_error('создании', entity_id, period, e) from e

    def upsert_zero(self, entity_id, period):
        """Создает нулевую строку за период, если ее еще нет.

        Существующая строка никогда не перезаписывается. Возвращает True,
        если строка была создана этим вызовом.
        """
        try:
            self.insert_row(entity_id, period)
        except DuplicateSeedError:
            logger.debug(f'{self.entity_field}={entity_id}: строка за {period} уже есть')
            return False
        return True

    def carry_over(self, entity_id, period, count):
        """Переносит накопленный счетчик в период.

        Строка, созданная переносом и еще не измененная пользователем, при
        повторном запуске выравнивается по ``count``. Строка, которую уже
        меняли увеличением или пересчетом, не трогается. Возвращает True,
        если счетчик за период изменился.
        """
        validate_delta(count, name='completed_count')
        count = max(count, 0)
        lookup = self._lookup(entity_id, period)
        try:
            with transaction.atomic():
                row, created = self.model.objects.select_for_update().get_or_create(
                    defaults={'completed_count': count, 'carried_over': True},
                    **lookup
                )
                if created:
                    return True
                if not row.carried_over or row.completed_count == count:
                    return False

                self.model.objects.filter(pk=row.pk).update(completed_count=count, updated_at=timezone.now())
        except DatabaseError as e:
            raise self._storage_error('переносе', entity_id, period, e) from e

        logger.debug(f'{self.entity_field}={entity_id}: перенос за {period} обновлен до {count}')
        return True

    def increment_by(self, entity_id, period, delta):
        validate_delta(delta)
        lookup = self._lookup(entity_id, period)

        try:
            with transaction.atomic():
                self.model.objects.get_or_create(**lookup)
                row = self.model.objects.select_for_update().get(**lookup)
                before = row.completed_count

                self.model.objects.filter(pk=row.pk).update(
                    completed_count=Greatest(
                        F('completed_count') + delta, Value(0),
                        output_field=models.IntegerField()
                    ),
                    carried_over=False,
                    updated_at=timezone.now()
                )
                row.refresh_from_db(fields=['completed_count', 'carried_over', 'updated_at'])
        except DatabaseError as e:
            raise self._storage_error('изменении', entity_id, period, e) from e

        return CounterChange(before=before, after=row.completed_count, row=row)

    def set_count(self, entity_id, period, value):
        validate_delta(value, name='completed_count')
        if value < 0:
            raise ValidationError(f'completed_count не может быть отрицательным, получено: {value}')

        lookup = self._lookup(entity_id, period)
        try:
            with transaction.atomic():
                row, _ = self.model.objects.update_or_create(
                    defaults={'completed_count': value, 'carried_over': False},
                    **lookup
                )
        except DatabaseError as e:
            raise self._storage_error('записи', entity_id, period, e) from e
        return row

    def history(self, entity_id):
        return self.model.objects.filter(**{self.entity_key: entity_id}).order_by('period')


goal_ledger = ProgressLedger(GoalProgress, 'goal')
subgoal_ledger = ProgressLedger(SubgoalProgress, 'subgoal')
