from io import StringIO
from unittest import mock

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from goals.models import GoalKind, Subgoal
from progress.exceptions import StorageError, ValidationError
from progress.ledger import goal_ledger, subgoal_ledger
from progress.models import RolloverLog
from progress.mutator import ProgressMutator
from progress.rollover import PeriodRolloverJob

from conftest import PERIOD, NEXT_PERIOD


@pytest.fixture
def board(parent_goal, direct_goal, make_subgoal):
    done_once = make_subgoal(parent_goal, title='Купить кроссовки', kind=GoalKind.ONE_TIME, target_count=1)
    open_once = make_subgoal(parent_goal, title='Записаться', kind=GoalKind.ONE_TIME, target_count=3)
    weekly = make_subgoal(parent_goal, title='Бегать', kind=GoalKind.RECURRING, target_count=2)
    idle = make_subgoal(parent_goal, title='Растяжка', kind=GoalKind.RECURRING, target_count=1)

    subgoal_ledger.set_count(done_once.id, PERIOD, 1)
    subgoal_ledger.set_count(open_once.id, PERIOD, 1)
    subgoal_ledger.set_count(weekly.id, PERIOD, 5)
    goal_ledger.set_count(parent_goal.id, PERIOD, 2)
    goal_ledger.set_count(direct_goal.id, PERIOD, 4)

    return {
        'done_once': done_once,
        'open_once': open_once,
        'weekly': weekly,
        'idle': idle,
    }


def test_rollover_applies_lifecycle_rules(board, parent_goal, direct_goal):
    summary = PeriodRolloverJob(period=PERIOD).run()

    assert summary.current_period == PERIOD
    assert summary.next_period == NEXT_PERIOD
    assert summary.deleted_subgoals == 1
    assert summary.reset_subgoals == 1
    assert summary.carried_subgoals == 1
    assert summary.seeded_goals == 2
    assert summary.failed == 0
    assert summary.total_processed == 2

    board['done_once'].refresh_from_db()
    assert board['done_once'].is_active is False

    assert subgoal_ledger.get_count(board['open_once'].id, NEXT_PERIOD) == 1
    assert subgoal_ledger.get_count(board['weekly'].id, NEXT_PERIOD) == 0
    assert not subgoal_ledger.counts([board['idle'].id], NEXT_PERIOD)

    # текущий период пересчитан после удаления выполненной разовой подцели
    assert goal_ledger.get_count(parent_goal.id, PERIOD) == 1
    assert goal_ledger.get_count(parent_goal.id, NEXT_PERIOD) == 0
    assert goal_ledger.counts([direct_goal.id], NEXT_PERIOD) == {direct_goal.id: 0}

    # прошлый период не изменяется
    assert goal_ledger.get_count(direct_goal.id, PERIOD) == 4
    assert subgoal_ledger.get_count(board['weekly'].id, PERIOD) == 5


def test_rollover_does_not_overwrite_next_period(board, direct_goal):
    subgoal_ledger.set_count(board['weekly'].id, NEXT_PERIOD, 1)
    goal_ledger.set_count(direct_goal.id, NEXT_PERIOD, 3)

    PeriodRolloverJob(period=PERIOD).run()

    assert subgoal_ledger.get_count(board['weekly'].id, NEXT_PERIOD) == 1
    assert goal_ledger.get_count(direct_goal.id, NEXT_PERIOD) == 3


def test_rollover_rerun_changes_nothing(board, parent_goal, direct_goal):
    PeriodRolloverJob(period=PERIOD).run()
    snapshot = {
        'goals': goal_ledger.counts([parent_goal.id, direct_goal.id], NEXT_PERIOD),
        'subgoals': subgoal_ledger.counts([s.id for s in board.values()], NEXT_PERIOD),
        'active': set(Subgoal.objects.active().values_list('id', flat=True)),
    }

    summary = PeriodRolloverJob(period=PERIOD).run()

    assert summary.deleted_subgoals == 0
    assert summary.carried_subgoals == 0
    assert goal_ledger.counts([parent_goal.id, direct_goal.id], NEXT_PERIOD) == snapshot['goals']
    assert subgoal_ledger.counts([s.id for s in board.values()], NEXT_PERIOD) == snapshot['subgoals']
    assert set(Subgoal.objects.active().values_list('id', flat=True)) == snapshot['active']


def test_rollover_rerun_picks_up_later_work(parent_goal, make_subgoal):
    book = make_subgoal(parent_goal, title='Прочитать книгу', kind=GoalKind.ONE_TIME, target_count=10)
    mutator = ProgressMutator(parent_goal.user, period=PERIOD)

    mutator.increment_subgoal(book.id, 1)
    PeriodRolloverJob(period=PERIOD).run()
    mutator.increment_subgoal(book.id, 3)
    summary = PeriodRolloverJob(period=PERIOD).run()

    assert summary.carried_subgoals == 1
    assert subgoal_ledger.get_count(book.id, PERIOD) == 4
    assert subgoal_ledger.get_count(book.id, NEXT_PERIOD) == 4


def test_rollover_rerun_keeps_work_done_in_next_period(parent_goal, make_subgoal):
    book = make_subgoal(parent_goal, title='Прочитать книгу', kind=GoalKind.ONE_TIME, target_count=10)
    ProgressMutator(parent_goal.user, period=PERIOD).increment_subgoal(book.id, 2)

    PeriodRolloverJob(period=PERIOD).run()
    ProgressMutator(parent_goal.user, period=NEXT_PERIOD).decrement_subgoal(book.id, 1)
    summary = PeriodRolloverJob(period=PERIOD).run()

    assert summary.carried_subgoals == 0
    assert subgoal_ledger.get_count(book.id, NEXT_PERIOD) == 1


def test_rollover_skips_removed_goals(board, parent_goal):
    parent_goal.is_active = False
    parent_goal.save()

    summary = PeriodRolloverJob(period=PERIOD).run()

    assert summary.deleted_subgoals == 0
    assert summary.reset_subgoals == 0
    assert summary.seeded_goals == 1
    assert not goal_ledger.counts([parent_goal.id], NEXT_PERIOD)


def test_rollover_continues_after_entity_failure(board, parent_goal):
    with mock.patch.object(subgoal_ledger, 'upsert_zero', side_effect=StorageError('Ошибка хранилища')):
        summary = PeriodRolloverJob(period=PERIOD).run()

    assert summary.failed == 1
    assert summary.first_error_type == 'StorageError'
    assert summary.errors[0]['id'] == board['weekly'].id
    assert summary.deleted_subgoals == 1
    assert summary.carried_subgoals == 1
    assert summary.seeded_goals == 2

    log = RolloverLog.objects.get()
    assert log.success is True
    assert log.failed == 1
    assert log.errors[0]['entity'] == 'subgoal'


def test_rollover_listing_failure_is_fatal(board, admin):
    with mock.patch.object(PeriodRolloverJob, '_active_goal_ids',
                           side_effect=StorageError('Не удалось получить активные цели')):
        with pytest.raises(StorageError):
            PeriodRolloverJob(period=PERIOD, triggered_by=admin).run()

    log = RolloverLog.objects.get()
    assert log.success is False
    assert log.triggered_by == admin
    assert log.errors[-1]['entity'] == 'job'


def test_rollover_response_shape(board):
    response = PeriodRolloverJob(period=PERIOD).run().as_response()

    assert response['success'] is True
    assert response['deletedSubgoals'] == 1
    assert response['resetSubgoals'] == 1
    assert response['totalProcessed'] == 2
    assert response['firstErrorType'] is None


def test_rollover_of_december_moves_to_next_year(direct_goal):
    summary = PeriodRolloverJob(period='2024-12').run()

    assert summary.next_period == '2025-01'
    assert goal_ledger.counts([direct_goal.id], '2025-01') == {direct_goal.id: 0}


def test_rollover_rejects_malformed_period(db):
    with pytest.raises(ValidationError):
        PeriodRolloverJob(period='2024-3')


def test_rollover_command(board):
    out = StringIO()
    call_command('rollover_period', period=PERIOD, stdout=out)

    assert f'{PERIOD} -> {NEXT_PERIOD}' in out.getvalue()
    assert RolloverLog.objects.count() == 1


def test_rollover_command_reports_bad_period(db):
    with pytest.raises(CommandError):
        call_command('rollover_period', period='2024-13')
