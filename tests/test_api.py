from unittest import mock

import pytest
from rest_framework.test import APIClient

from core.models import AuthToken, User
from goals.models import Goal, Subgoal
from progress.exceptions import StorageError
from progress.ledger import goal_ledger, subgoal_ledger
from progress.models import RolloverLog
from progress.periods import current_period, next_period
from progress.rollover import PeriodRolloverJob


@pytest.fixture
def period():
    return current_period()


def test_register_and_login(db):
    client = APIClient()

    response = client.post('/api/users/', {
        'username': 'new_user',
        'password': 'Secret123',
        'confirm_password': 'Secret123'
    }, format='json')
    assert response.status_code == 201
    assert response.data['role'] == User.UserRole.USER

    response = client.post('/api/users/login/', {'username': 'new_user', 'password': 'Secret123'}, format='json')
    assert response.status_code == 200
    assert AuthToken.objects.filter(key=response.data['token'], is_active=True).exists()


def test_login_with_wrong_password(user):
    response = APIClient().post('/api/users/login/', {'username': user.username, 'password': 'nope'}, format='json')
    assert response.status_code == 401
    assert response.data['success'] is False


def test_logout_deactivates_token(api_client):
    assert api_client.post('/api/users/logout/').status_code == 200
    assert api_client.get('/api/progress/period/').status_code == 401


def test_progress_requires_token(db):
    assert APIClient().get('/api/progress/current/').status_code == 401


def test_unknown_token_is_rejected(db):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION='0' * 64)
    assert client.get('/api/progress/current/').status_code == 401


def test_current_period(api_client, period):
    response = api_client.get('/api/progress/period/')

    assert response.status_code == 200
    assert response.data == {'period': period, 'next_period': next_period(period)}


def test_goal_crud_is_owner_scoped(api_client, user, make_goal, other_user):
    make_goal(owner=other_user, title='Чужая')

    response = api_client.post('/api/goals/', {
        'title': 'Читать',
        'kind': 'recurring',
        'target_count': 4
    }, format='json')
    assert response.status_code == 201
    goal_id = response.data['id']
    assert response.data['user_id'] == user.id
    assert response.data['counting'] == Goal.Counting.DIRECT

    response = api_client.get('/api/goals/')
    assert response.status_code == 200
    assert [goal['id'] for goal in response.data['results']] == [goal_id]

    response = api_client.patch(f'/api/goals/{goal_id}/', {'target_count': 6}, format='json')
    assert response.status_code == 200
    assert response.data['target_count'] == 6


def test_goal_create_validates_input(api_client):
    response = api_client.post('/api/goals/', {'title': 'Читать', 'kind': 'recurring', 'target_count': 0},
                               format='json')
    assert response.status_code == 400
    assert 'target_count' in response.data

    response = api_client.post('/api/goals/', {
        'title': 'Читать',
        'kind': 'recurring',
        'start_date': '2024-05-01',
        'end_date': '2024-04-01'
    }, format='json')
    assert response.status_code == 400
    assert 'end_date' in response.data


def test_foreign_goal_is_not_found(api_client, make_goal, other_user):
    foreign = make_goal(owner=other_user)

    assert api_client.get(f'/api/goals/{foreign.id}/').status_code == 404
    assert api_client.patch(f'/api/goals/{foreign.id}/', {'title': 'Чужая'}, format='json').status_code == 404
    assert api_client.delete(f'/api/goals/{foreign.id}/').status_code == 404
    assert api_client.post(f'/api/progress/goals/{foreign.id}/increment/', {}, format='json').status_code == 404


def test_goal_delete_is_soft(api_client, direct_goal, period):
    goal_ledger.set_count(direct_goal.id, period, 2)

    assert api_client.delete(f'/api/goals/{direct_goal.id}/').status_code == 204

    direct_goal.refresh_from_db()
    assert direct_goal.is_active is False
    assert goal_ledger.get_count(direct_goal.id, period) == 2
    assert api_client.get(f'/api/goals/{direct_goal.id}/').status_code == 404
    assert api_client.get('/api/progress/current/').data == []


def test_goal_with_subgoals_cannot_switch_to_direct(api_client, parent_goal, make_subgoal):
    make_subgoal(parent_goal)

    response = api_client.patch(f'/api/goals/{parent_goal.id}/', {'counting': 'direct'}, format='json')

    assert response.status_code == 400
    assert 'counting' in response.data


def test_subgoal_requires_subgoal_counted_parent(api_client, direct_goal, parent_goal):
    response = api_client.post('/api/goals/subgoals/', {
        'goal': direct_goal.id,
        'title': 'Глава 1',
        'kind': 'one_time'
    }, format='json')
    assert response.status_code == 400
    assert 'goal' in response.data

    response = api_client.post('/api/goals/subgoals/', {
        'goal': parent_goal.id,
        'title': 'Первая пробежка',
        'kind': 'one_time',
        'target_count': 1
    }, format='json')
    assert response.status_code == 201
    assert response.data['goal_id'] == parent_goal.id


def test_subgoal_cannot_be_attached_to_foreign_goal(api_client, make_goal, other_user):
    foreign = make_goal(owner=other_user, counting='subgoals')

    response = api_client.post('/api/goals/subgoals/', {
        'goal': foreign.id,
        'title': 'Чужая',
        'kind': 'one_time'
    }, format='json')

    assert response.status_code == 400


def test_subgoal_list_filters_by_goal(api_client, parent_goal, make_goal, make_subgoal):
    other_parent = make_goal(counting='subgoals')
    subgoal = make_subgoal(parent_goal)
    make_subgoal(other_parent)

    response = api_client.get('/api/goals/subgoals/', {'goal': parent_goal.id})

    assert response.status_code == 200
    assert [item['id'] for item in response.data['results']] == [subgoal.id]


def test_subgoal_target_change_recalculates_parent(api_client, parent_goal, make_subgoal, period):
    subgoal = make_subgoal(parent_goal, target_count=3)
    subgoal_ledger.set_count(subgoal.id, period, 2)

    response = api_client.patch(f'/api/goals/subgoals/{subgoal.id}/', {'target_count': 2}, format='json')

    assert response.status_code == 200
    assert goal_ledger.get_count(parent_goal.id, period) == 1


def test_goal_increment(api_client, direct_goal, period):
    response = api_client.post(f'/api/progress/goals/{direct_goal.id}/increment/', {'increment_by': 2},
                               format='json')

    assert response.status_code == 200
    assert response.data['completed_count'] == 2
    assert response.data['period'] == period


@pytest.mark.parametrize('payload', [{'increment_by': 0}, {'increment_by': 'abc'}, {'increment_by': 1.5}])
def test_goal_increment_rejects_bad_delta(api_client, direct_goal, payload):
    response = api_client.post(f'/api/progress/goals/{direct_goal.id}/increment/', payload, format='json')
    assert response.status_code == 400


def test_goal_increment_rejected_for_subgoal_counted_goal(api_client, parent_goal):
    response = api_client.post(f'/api/progress/goals/{parent_goal.id}/increment/', {}, format='json')
    assert response.status_code == 400


def test_subgoal_progress_flows_into_dashboard(api_client, parent_goal, make_subgoal, period):
    subgoal = make_subgoal(parent_goal, target_count=2)

    response = api_client.post(f'/api/progress/subgoals/{subgoal.id}/increment/', {'increment_by': 3},
                               format='json')
    assert response.status_code == 200
    assert response.data['completed_count'] == 3

    response = api_client.get('/api/progress/current/')
    assert response.status_code == 200

    [goal] = response.data
    assert goal['id'] == parent_goal.id
    assert goal['period'] == period
    assert goal['current_progress'] == 1
    assert goal['completion_percentage'] == 33.33
    assert goal['subgoals'][0]['current_progress'] == 3
    assert goal['subgoals'][0]['completion_percentage'] == 100.0
    assert goal['subgoals'][0]['is_completed'] is True

    response = api_client.post(f'/api/progress/subgoals/{subgoal.id}/decrement/', {'decrement_by': 2},
                               format='json')
    assert response.status_code == 200
    assert goal_ledger.get_count(parent_goal.id, period) == 0


def test_dashboard_for_explicit_period(api_client, direct_goal):
    goal_ledger.set_count(direct_goal.id, '2023-07', 1)

    response = api_client.get('/api/progress/current/', {'period': '2023-07'})

    assert response.status_code == 200
    assert response.data[0]['current_progress'] == 1
    assert api_client.get('/api/progress/current/', {'period': '2023-7'}).status_code == 400
    assert api_client.get('/api/progress/current/', {'period': 'x2023-07y'}).status_code == 400


def test_recalculate_endpoint(api_client, parent_goal, make_subgoal, period):
    subgoal = make_subgoal(parent_goal, target_count=1)
    subgoal_ledger.set_count(subgoal.id, period, 1)

    response = api_client.post(f'/api/progress/goals/{parent_goal.id}/recalculate/')

    assert response.status_code == 200
    assert response.data['completed_count'] == 1


def test_delete_subgoal_endpoints(api_client, parent_goal, make_subgoal, period):
    first = make_subgoal(parent_goal, target_count=1)
    second = make_subgoal(parent_goal, target_count=1)
    subgoal_ledger.set_count(first.id, period, 1)
    subgoal_ledger.set_count(second.id, period, 1)
    goal_ledger.set_count(parent_goal.id, period, 2)

    response = api_client.post(f'/api/progress/subgoals/{first.id}/delete/')
    assert response.status_code == 200
    assert response.data['completed_count'] == 1

    assert api_client.delete(f'/api/goals/subgoals/{second.id}/').status_code == 204
    assert goal_ledger.get_count(parent_goal.id, period) == 0
    assert not Subgoal.objects.active().exists()


def test_initialize_period(api_client, direct_goal, parent_goal, make_subgoal):
    make_subgoal(parent_goal)

    response = api_client.post('/api/progress/initialize/', {'period': '2030-01'}, format='json')

    assert response.status_code == 200
    assert response.data == {'period': '2030-01', 'seeded_goals': 2, 'seeded_subgoals': 1}
    assert api_client.post('/api/progress/initialize/', {'period': '2030-1'}, format='json').status_code == 400
    assert api_client.post('/api/progress/initialize/', {'period': 'x2030-01y'}, format='json').status_code == 400


def test_goal_history_endpoint(api_client, direct_goal, period):
    goal_ledger.set_count(direct_goal.id, period, 1)

    response = api_client.get(f'/api/progress/goals/{direct_goal.id}/history/')

    assert response.status_code == 200
    assert response.data[-1] == {
        'period': period,
        'completed_count': 1,
        'completion_percentage': 25.0,
        'is_completed': False
    }


def test_monthly_totals_endpoint(api_client, direct_goal, period):
    goal_ledger.set_count(direct_goal.id, period, 3)

    response = api_client.get('/api/progress/totals/', {'months': 2})

    assert response.status_code == 200
    assert response.data[-1] == {'period': period, 'total_completed': 3}
    assert len(response.data) == 2
    assert api_client.get('/api/progress/totals/', {'months': 0}).status_code == 400
    assert api_client.get('/api/progress/totals/', {'months': 'x'}).status_code == 400


def test_rollover_requires_admin(api_client):
    assert api_client.post('/api/progress/rollover/', {}, format='json').status_code == 403
    assert api_client.get('/api/progress/rollover/').status_code == 403


def test_rollover_endpoint(admin_client, admin, direct_goal):
    response = admin_client.post('/api/progress/rollover/', {'period': '2024-03'}, format='json')

    assert response.status_code == 200
    assert response.data['success'] is True
    assert response.data['nextPeriod'] == '2024-04'
    assert response.data['seededGoals'] == 1
    assert response.data['failed'] == 0

    response = admin_client.get('/api/progress/rollover/')
    assert response.status_code == 200
    [log] = response.data['results']
    assert log['triggered_by_id'] == admin.id
    assert log['success'] is True


def test_rollover_endpoint_reports_fatal_failure(admin_client):
    with mock.patch.object(PeriodRolloverJob, '_active_goal_ids',
                           side_effect=StorageError('Не удалось получить активные цели')):
        response = admin_client.post('/api/progress/rollover/', {}, format='json')

    assert response.status_code == 500
    assert response.data == {'success': False, 'error': 'Не удалось получить активные цели'}
    assert RolloverLog.objects.get().success is False
