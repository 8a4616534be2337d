import logging

from django.db import DatabaseError, transaction
from django.utils import timezone

from goals.models import Goal, Subgoal
from .aggregation import recalculate_goal_from_subgoals
from .exceptions import NotFoundError, StorageError, ValidationError
from .ledger import goal_ledger, subgoal_ledger, validate_delta
from .periods import current_period, parse_period

logger = logging.getLogger(__name__)


def validate_step(delta, name):
    validate_delta(delta, name)
    if delta < 1:
        raise ValidationError(f'{name} должно быть не меньше 1, получено: {delta}')


def apply_subgoal_delta(subgoal, period, delta):
    """Меняет счетчик подцели и пересчитывает цель, если пересечен порог выполнения."""
    change = subgoal_ledger.increment_by(subgoal.id, period, delta)
    target = subgoal.target_count

    if delta > 0:
        crossed = change.crossed_up(target)
    else:
        crossed = change.crossed_down(target)

    if crossed:
        logger.debug(
            f'Подцель {subgoal.id}: {change.before} -> {change.after} при цели {target}, '
            f'пересчет цели {subgoal.goal_id}'
        )
        recalculate_goal_from_subgoals(subgoal.goal, period)

    return change


def deactivate_subgoal_and_recalculate(subgoal, period):
    try:
        with transaction.atomic():
            Subgoal.objects.filter(pk=subgoal.pk).update(is_active=False, updated_at=timezone.now())
            subgoal.is_active = False
            recalculate_goal_from_subgoals(subgoal.goal, period)
    except DatabaseError as e:
        raise StorageError(f'Ошибка хранилища при удалении подцели {subgoal.id}') from e


class ProgressMutator:
    """Команды изменения прогресса от имени пользователя.

    Каждый метод соответствует одной удаленной процедуре клиента. Сущности
    ищутся только среди активных объектов пользователя; чужие и удаленные
    объекты неотличимы от несуществующих.
    """

    def __init__(self, user, period=None):
        if period is not None:
            parse_period(period)
        self.user = user
        self.period = period

    def resolve_period(self):
        return self.period or current_period()

    def _get_goal(self, goal_id):
        try:
            return Goal.objects.owned_by(self.user).active().get(pk=goal_id)
        except Goal.DoesNotExist:
            raise NotFoundError(f'Цель с ID {goal_id} не найдена')
        except DatabaseError as e:
            raise StorageError('Ошибка хранилища при чтении цели') from e

    def _get_subgoal(self, subgoal_id, include_inactive=False):
        subgoals = Subgoal.objects.owned_by(self.user).select_related('goal').filter(goal__is_active=True)
        if not include_inactive:
            subgoals = subgoals.active()
        try:
            return subgoals.get(pk=subgoal_id)
        except Subgoal.DoesNotExist:
            raise NotFoundError(f'Подцель с ID {subgoal_id} не найдена')
        except DatabaseError as e:
            raise StorageError('Ошибка хранилища при чтении подцели') from e

    def get_current_period(self):
        return self.resolve_period()

    def increment_goal(self, goal_id, delta=1):
        validate_delta(delta)
        if delta == 0:
            raise ValidationError('increment_by не может быть равно 0')

        goal = self._get_goal(goal_id)
        if goal.counts_subgoals:
            raise ValidationError(
                f'Прогресс цели {goal.id} считается по подцелям, прямое изменение недоступно'
            )

        change = goal_ledger.increment_by(goal.id, self.resolve_period(), delta)
        return change.row

    def increment_subgoal(self, subgoal_id, delta=1):
        validate_step(delta, 'increment_by')
        subgoal = self._get_subgoal(subgoal_id)
        return apply_subgoal_delta(subgoal, self.resolve_period(), delta).row

    def decrement_subgoal(self, subgoal_id, delta=1):
        validate_step(delta, 'decrement_by')
        subgoal = self._get_subgoal(subgoal_id)
        return apply_subgoal_delta(subgoal, self.resolve_period(), -delta).row

    def recalculate_goal(self, goal_id):
        goal = self._get_goal(goal_id)
        period = self.resolve_period()
        recalculate_goal_from_subgoals(goal, period)
        return goal_ledger.get_row(goal.id, period)

    def delete_subgoal_and_recalculate(self, subgoal_id):
        # повторный вызов для уже удаленной подцели только пересчитывает цель
        subgoal = self._get_subgoal(subgoal_id, include_inactive=True)
        period = self.resolve_period()
        deactivate_subgoal_and_recalculate(subgoal, period)
        logger.info(f'Подцель {subgoal.id} удалена пользователем {self.user.id}')
        return goal_ledger.get_row(subgoal.goal_id, period)

    def initialize_period(self, period=None):
        period = period or self.resolve_period()
        parse_period(period)

        try:
            goal_ids = list(Goal.objects.owned_by(self.user).active().values_list('id', flat=True))
            subgoal_ids = list(
                Subgoal.objects.owned_by(self.user).active()
                .filter(goal__is_active=True)
                .values_list('id', flat=True)
            )
        except DatabaseError as e:
            raise StorageError('Ошибка хранилища при чтении целей') from e

        seeded_goals = sum(1 for goal_id in goal_ids if goal_ledger.upsert_zero(goal_id, period))
        seeded_subgoals = sum(1 for subgoal_id in subgoal_ids if subgoal_ledger.upsert_zero(subgoal_id, period))

        return {
            'period': period,
            'seeded_goals': seeded_goals,
            'seeded_subgoals': seeded_subgoals,
        }
