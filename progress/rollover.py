"""Переход прогресса в следующий период.

Запускается внешним планировщиком (HTTP или manage.py rollover_period) и
безопасен при повторном запуске: заполнение периода нулями не перезаписывает
существующие строки, перенос разовой подцели догоняет ее счетчик, пока
строку следующего периода не меняли, а пересчет цели не зависит от ее
прежнего значения.
Ошибка по отдельной подцели или цели записывается в журнал и не прерывает
обработку остальных.
"""
import logging
from dataclasses import dataclass, field
from typing import List

from django.db import DatabaseError

from goals.models import Goal
from .aggregation import recalculate_goal_from_subgoals
from .completion import is_complete
from .exceptions import ProgressError, StorageError
from .ledger import goal_ledger, subgoal_ledger
from .models import RolloverLog, SubgoalProgress
from .mutator import deactivate_subgoal_and_recalculate
from .periods import current_period, next_period, parse_period

logger = logging.getLogger(__name__)


@dataclass
class RolloverSummary:
    current_period: str
    next_period: str
    deleted_subgoals: int = 0
    reset_subgoals: int = 0
    carried_subgoals: int = 0
    seeded_goals: int = 0
    errors: List[dict] = field(default_factory=list)

    @property
    def failed(self):
        return len(self.errors)

    @property
    def total_processed(self):
        return self.deleted_subgoals + self.reset_subgoals

    @property
    def first_error_type(self):
        return self.errors[0]['type'] if self.errors else None

    def add_error(self, entity, entity_id, exc):
        self.errors.append({
            'entity': entity,
            'id': entity_id,
            'type': exc.__class__.__name__,
            'error': str(exc)
        })

    def as_response(self):
        return {
            'success': True,
            'message': 'Переход периода выполнен',
            'currentPeriod': self.current_period,
            'nextPeriod': self.next_period,
            'deletedSubgoals': self.deleted_subgoals,
            'resetSubgoals': self.reset_subgoals,
            'carriedSubgoals': self.carried_subgoals,
            'seededGoals': self.seeded_goals,
            'failed': self.failed,
            'firstErrorType': self.first_error_type,
            'totalProcessed': self.total_processed,
        }


class PeriodRolloverJob:
    def __init__(self, period=None, triggered_by=None):
        if period is not None:
            parse_period(period)
        self.period = period
        self.triggered_by = triggered_by

    def run(self):
        current = self.period or current_period()
        summary = RolloverSummary(current_period=current, next_period=next_period(current))

        logger.info(f'Запуск перехода периода {summary.current_period} -> {summary.next_period}')

        try:
            for progress in self._subgoal_progress(current):
                self._process_subgoal(progress, summary)

            for goal_id in self._active_goal_ids():
                self._seed_goal(goal_id, summary)
        except StorageError as e:
            logger.exception(f'Переход периода {current} прерван: {e}')
            self._save_log(summary, success=False, fatal=e)
            raise

        logger.info(
            f'Переход периода {current} завершен: удалено {summary.deleted_subgoals}, '
            f'сброшено {summary.reset_subgoals}, перенесено {summary.carried_subgoals}, '
            f'целей {summary.seeded_goals}, ошибок {summary.failed}'
        )
        self._save_log(summary, success=True)
        return summary

    def _subgoal_progress(self, period):
        try:
            return list(
                SubgoalProgress.objects
                .filter(period=period, subgoal__is_active=True, subgoal__goal__is_active=True)
                .select_related('subgoal__goal')
                .order_by('subgoal_id')
            )
        except DatabaseError as e:
            raise StorageError('Не удалось получить подцели с прогрессом за период') from e

    def _active_goal_ids(self):
        try:
            return list(Goal.objects.active().order_by('id').values_list('id', flat=True))
        except DatabaseError as e:
            raise StorageError('Не удалось получить активные цели') from e

    def _process_subgoal(self, progress, summary):
        subgoal = progress.subgoal
        count = progress.completed_count

        try:
            if not subgoal.is_one_time:
                subgoal_ledger.upsert_zero(subgoal.id, summary.next_period)
                summary.reset_subgoals += 1
                logger.info(f'Сброшена повторяющаяся подцель {subgoal.id} на {summary.next_period}')
            elif is_complete(count, subgoal.target_count):
                deactivate_subgoal_and_recalculate(subgoal, summary.current_period)
                summary.deleted_subgoals += 1
                logger.info(f'Удалена выполненная разовая подцель {subgoal.id}')
                return
            elif subgoal_ledger.carry_over(subgoal.id, summary.next_period, count):
                summary.carried_subgoals += 1
        except (ProgressError, DatabaseError) as e:
            logger.exception(f'Ошибка обработки подцели {subgoal.id}: {e}')
            summary.add_error('subgoal', subgoal.id, e)
            return

        try:
            recalculate_goal_from_subgoals(subgoal.goal, summary.next_period)
        except (ProgressError, DatabaseError) as e:
            logger.exception(f'Ошибка пересчета цели {subgoal.goal_id}: {e}')
            summary.add_error('goal', subgoal.goal_id, e)

    def _seed_goal(self, goal_id, summary):
        try:
            goal_ledger.upsert_zero(goal_id, summary.next_period)
        except (ProgressError, DatabaseError) as e:
            logger.exception(f'Ошибка инициализации цели {goal_id} на {summary.next_period}: {e}')
            summary.add_error('goal', goal_id, e)
            return
        summary.seeded_goals += 1

    def _save_log(self, summary, success, fatal=None):
        errors = list(summary.errors)
        if fatal is not None:
            errors.append({'entity': 'job', 'id': None, 'type': fatal.__class__.__name__, 'error': str(fatal)})

        try:
            RolloverLog.objects.create(
                current_period=summary.current_period,
                next_period=summary.next_period,
                triggered_by=self.triggered_by,
                success=success,
                deleted_subgoals=summary.deleted_subgoals,
                reset_subgoals=summary.reset_subgoals,
                carried_subgoals=summary.carried_subgoals,
                seeded_goals=summary.seeded_goals,
                failed=summary.failed,
                errors=errors
            )
        except DatabaseError:
            logger.exception(f'Не удалось сохранить журнал перехода периода {summary.current_period}')
