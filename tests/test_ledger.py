import threading
from unittest import mock

import pytest
from django.db import DatabaseError, connection, connections
from django.db.models import F, QuerySet
from django.test.utils import CaptureQueriesContext

from progress.exceptions import DuplicateSeedError, StorageError, ValidationError
from progress.ledger import goal_ledger, subgoal_ledger
from progress.models import GoalProgress

from conftest import PERIOD, NEXT_PERIOD


def test_missing_row_reads_as_zero(direct_goal):
    assert goal_ledger.get_count(direct_goal.id, PERIOD) == 0

    row = goal_ledger.get_row(direct_goal.id, PERIOD)
    assert row.pk is None
    assert row.completed_count == 0
    assert row.period == PERIOD


def test_upsert_zero_never_overwrites(direct_goal):
    goal_ledger.set_count(direct_goal.id, PERIOD, 5)

    assert goal_ledger.upsert_zero(direct_goal.id, PERIOD) is False
    assert goal_ledger.get_count(direct_goal.id, PERIOD) == 5


def test_upsert_zero_is_idempotent(direct_goal):
    assert goal_ledger.upsert_zero(direct_goal.id, PERIOD) is True
    assert goal_ledger.upsert_zero(direct_goal.id, PERIOD) is False
    assert GoalProgress.objects.filter(goal=direct_goal).count() == 1


def test_insert_row_reports_duplicate(direct_goal):
    goal_ledger.insert_row(direct_goal.id, PERIOD)

    with pytest.raises(DuplicateSeedError):
        goal_ledger.insert_row(direct_goal.id, PERIOD)


def test_carry_over_follows_source_until_touched(parent_goal, make_subgoal):
    subgoal = make_subgoal(parent_goal)

    assert subgoal_ledger.carry_over(subgoal.id, NEXT_PERIOD, 1) is True
    assert subgoal_ledger.carry_over(subgoal.id, NEXT_PERIOD, 1) is False
    assert subgoal_ledger.carry_over(subgoal.id, NEXT_PERIOD, 4) is True
    assert subgoal_ledger.get_count(subgoal.id, NEXT_PERIOD) == 4

    subgoal_ledger.increment_by(subgoal.id, NEXT_PERIOD, -1)

    assert subgoal_ledger.carry_over(subgoal.id, NEXT_PERIOD, 7) is False
    assert subgoal_ledger.get_count(subgoal.id, NEXT_PERIOD) == 3


def test_carry_over_keeps_existing_row(parent_goal, make_subgoal):
    subgoal = make_subgoal(parent_goal)
    subgoal_ledger.upsert_zero(subgoal.id, NEXT_PERIOD)

    assert subgoal_ledger.carry_over(subgoal.id, NEXT_PERIOD, 2) is False
    assert subgoal_ledger.get_count(subgoal.id, NEXT_PERIOD) == 0


def test_increment_creates_row_and_reports_change(direct_goal):
    change = goal_ledger.increment_by(direct_goal.id, PERIOD, 3)

    assert (change.before, change.after) == (0, 3)
    assert change.row.completed_count == 3
    assert goal_ledger.get_count(direct_goal.id, PERIOD) == 3


def test_decrement_floors_at_zero(direct_goal):
    goal_ledger.set_count(direct_goal.id, PERIOD, 2)

    change = goal_ledger.increment_by(direct_goal.id, PERIOD, -5)

    assert (change.before, change.after) == (2, 0)
    assert goal_ledger.get_count(direct_goal.id, PERIOD) == 0


def test_increments_are_not_lost_with_stale_reads(direct_goal):
    stale = goal_ledger.get_row(direct_goal.id, PERIOD)

    for _ in range(5):
        goal_ledger.increment_by(direct_goal.id, PERIOD, 1)

    assert stale.completed_count == 0
    assert goal_ledger.get_count(direct_goal.id, PERIOD) == 5


def test_increment_lands_on_top_of_concurrent_write(direct_goal):
    goal_ledger.set_count(direct_goal.id, PERIOD, 2)
    original_get = QuerySet.get

    def get_then_concurrent_write(queryset, *args, **kwargs):
        row = original_get(queryset, *args, **kwargs)
        if queryset.model is GoalProgress and queryset.query.select_for_update:
            # другой запрос успел увеличить счетчик после чтения строки
            GoalProgress.objects.filter(pk=row.pk).update(completed_count=F('completed_count') + 5)
        return row

    with mock.patch.object(QuerySet, 'get', get_then_concurrent_write):
        change = goal_ledger.increment_by(direct_goal.id, PERIOD, 1)

    assert change.before == 2
    assert change.after == 8
    assert goal_ledger.get_count(direct_goal.id, PERIOD) == 8


def test_increment_is_computed_by_database(direct_goal):
    goal_ledger.upsert_zero(direct_goal.id, PERIOD)

    with CaptureQueriesContext(connection) as queries:
        goal_ledger.increment_by(direct_goal.id, PERIOD, 3)

    updates = [query['sql'] for query in queries.captured_queries if query['sql'].startswith('UPDATE')]
    assert len(updates) == 1
    assert '"completed_count" + ' in updates[0]


def test_periods_are_independent(direct_goal):
    goal_ledger.increment_by(direct_goal.id, PERIOD, 2)
    goal_ledger.increment_by(direct_goal.id, NEXT_PERIOD, 1)

    assert goal_ledger.counts([direct_goal.id], PERIOD) == {direct_goal.id: 2}
    assert [row.period for row in goal_ledger.history(direct_goal.id)] == [PERIOD, NEXT_PERIOD]


@pytest.mark.parametrize('delta', [True, 1.5, '1', None])
def test_increment_rejects_non_integer_delta(direct_goal, delta):
    with pytest.raises(ValidationError):
        goal_ledger.increment_by(direct_goal.id, PERIOD, delta)
    assert not GoalProgress.objects.exists()


def test_malformed_period_is_rejected_before_storage(direct_goal):
    with mock.patch.object(GoalProgress.objects, 'get_or_create') as get_or_create:
        with pytest.raises(ValidationError):
            goal_ledger.increment_by(direct_goal.id, '2024-3', 1)
    get_or_create.assert_not_called()


def test_set_count_rejects_negative(direct_goal):
    with pytest.raises(ValidationError):
        goal_ledger.set_count(direct_goal.id, PERIOD, -1)


def test_database_failure_becomes_storage_error(direct_goal):
    with mock.patch.object(GoalProgress.objects, 'filter', side_effect=DatabaseError('connection lost')):
        with pytest.raises(StorageError) as exc_info:
            goal_ledger.get_count(direct_goal.id, PERIOD)

    assert isinstance(exc_info.value.__cause__, DatabaseError)


@pytest.mark.django_db(transaction=True)
@pytest.mark.skipif(connection.vendor != 'postgresql', reason='SQLite сериализует запись, нужна PostgreSQL')
def test_concurrent_increments_sum_up(direct_goal):
    workers, per_worker = 8, 10
    errors = []

    def work():
        try:
            for _ in range(per_worker):
                goal_ledger.increment_by(direct_goal.id, PERIOD, 1)
        except Exception as e:
            errors.append(e)
        finally:
            connections.close_all()

    threads = [threading.Thread(target=work) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert goal_ledger.get_count(direct_goal.id, PERIOD) == workers * per_worker
