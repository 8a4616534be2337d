"""Производные значения прогресса.

Счетчики в журнале хранятся "как есть" (допускается перевыполнение), а
процент выполнения ограничивается 100 только при расчете. Здесь же собираются
представления для дашборда: цели пользователя вместе с подцелями и их
прогрессом за период, история по периодам и суммы по месяцам.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from django.db import DatabaseError
from django.db.models import Sum

from goals.models import Goal, Subgoal
from .completion import is_complete, percentage
from .exceptions import StorageError, ValidationError
from .ledger import goal_ledger, subgoal_ledger
from .models import GoalProgress
from .periods import period_range, previous_period

logger = logging.getLogger(__name__)


@dataclass
class SubgoalView:
    id: int
    goal_id: int
    title: str
    kind: str
    target_count: int
    current_progress: int
    completion_percentage: float
    is_completed: bool


@dataclass
class GoalView:
    id: int
    title: str
    kind: str
    counting: str
    target_count: int
    start_date: date
    end_date: Optional[date]
    background_color: Optional[str]
    created_at: datetime
    period: str
    current_progress: int
    completion_percentage: float
    is_completed: bool
    subgoals: List[SubgoalView] = field(default_factory=list)


@dataclass
class PeriodPoint:
    period: str
    completed_count: int
    completion_percentage: float
    is_completed: bool


@dataclass
class PeriodTotal:
    period: str
    total_completed: int


def recalculate_goal_from_subgoals(goal, period):
    """Пересчитывает счетчик цели как число выполненных активных подцелей.

    Результат зависит только от текущего состояния подцелей, а не от прежнего
    значения счетчика цели, поэтому повторный вызов дает тот же результат.
    Для целей с прямым подсчетом счетчик не меняется.
    """
    if not goal.counts_subgoals:
        logger.debug(f'Цель {goal.id} считается напрямую, пересчет по подцелям пропущен')
        return goal_ledger.get_count(goal.id, period)

    try:
        subgoals = list(goal.subgoals.active().values_list('id', 'target_count'))
    except DatabaseError as e:
        raise StorageError('Ошибка хранилища при чтении подцелей') from e

    counts = subgoal_ledger.counts([subgoal_id for subgoal_id, _ in subgoals], period)
    completed = sum(
        1 for subgoal_id, target in subgoals
        if is_complete(counts.get(subgoal_id, 0), target)
    )

    goal_ledger.set_count(goal.id, period, completed)
    logger.debug(f'Цель {goal.id}: {completed} из {len(subgoals)} подцелей выполнено за {period}')
    return completed


def subgoal_view(subgoal, count):
    return SubgoalView(
        id=subgoal.id,
        goal_id=subgoal.goal_id,
        title=subgoal.title,
        kind=subgoal.kind,
        target_count=subgoal.target_count,
        current_progress=count,
        completion_percentage=percentage(count, subgoal.target_count),
        is_completed=is_complete(count, subgoal.target_count),
    )


def goal_view(goal, count, period, subgoals=()):
    return GoalView(
        id=goal.id,
        title=goal.title,
        kind=goal.kind,
        counting=goal.counting,
        target_count=goal.target_count,
        start_date=goal.start_date,
        end_date=goal.end_date,
        background_color=goal.background_color,
        created_at=goal.created_at,
        period=period,
        current_progress=count,
        completion_percentage=percentage(count, goal.target_count),
        is_completed=is_complete(count, goal.target_count),
        subgoals=list(subgoals),
    )


def build_goal_views(user, period):
    """Активные цели пользователя (новые первыми) с подцелями и прогрессом за период."""
    try:
        goals = list(Goal.objects.owned_by(user).active().order_by('-created_at', '-id'))
        subgoals = list(
            Subgoal.objects.owned_by(user).active().filter(goal__in=[goal.id for goal in goals])
        )
    except DatabaseError as e:
        raise StorageError('Ошибка хранилища при чтении целей') from e

    goal_counts = goal_ledger.counts([goal.id for goal in goals], period)
    subgoal_counts = subgoal_ledger.counts([subgoal.id for subgoal in subgoals], period)

    subgoals_by_goal = defaultdict(list)
    for subgoal in subgoals:
        subgoals_by_goal[subgoal.goal_id].append(
            subgoal_view(subgoal, subgoal_counts.get(subgoal.id, 0))
        )

    return [
        goal_view(goal, goal_counts.get(goal.id, 0), period, subgoals_by_goal[goal.id])
        for goal in goals
    ]


def goal_history(goal, until):
    """Прогресс цели по всем периодам без пропусков: от первой записи до ``until``."""
    rows = {row.period: row.completed_count for row in goal_ledger.history(goal.id)}
    start = min([until, *rows])
    end = max([until, *rows])

    points = []
    for period in period_range(start, end):
        count = rows.get(period, 0)
        points.append(PeriodPoint(
            period=period,
            completed_count=count,
            completion_percentage=percentage(count, goal.target_count),
            is_completed=is_complete(count, goal.target_count),
        ))
    return points


def monthly_totals(user, until, months=12):
    if months < 1:
        raise ValidationError(f'months должно быть положительным, получено: {months}')

    start = until
    for _ in range(months - 1):
        start = previous_period(start)
    periods = period_range(start, until)

    totals = dict(
        GoalProgress.objects.filter(goal__user=user, period__in=periods)
        .values('period')
        .annotate(total=Sum('completed_count'))
        .values_list('period', 'total')
    )
    return [PeriodTotal(period=period, total_completed=totals.get(period) or 0) for period in periods]
