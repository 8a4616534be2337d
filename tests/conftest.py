import pytest
from rest_framework.test import APIClient

from core.models import AuthToken, User
from goals.models import Goal, GoalKind, Subgoal

PERIOD = '2024-03'
NEXT_PERIOD = '2024-04'


@pytest.fixture
def make_user(db):
    def factory(username='alice', role=User.UserRole.USER):
        user = User(username=username, role=role)
        user.set_password('Secret123')
        user.save()
        return user
    return factory


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def other_user(make_user):
    return make_user('bob')


@pytest.fixture
def admin(make_user):
    return make_user('root', role=User.UserRole.ADMIN)


def authorized_client(user):
    client = APIClient()
    token = AuthToken.create_token(user)
    client.credentials(HTTP_AUTHORIZATION=token.key)
    return client


@pytest.fixture
def api_client(user):
    return authorized_client(user)


@pytest.fixture
def admin_client(admin):
    return authorized_client(admin)


@pytest.fixture
def make_goal(user):
    def factory(owner=None, **fields):
        fields.setdefault('title', 'Тренировки')
        fields.setdefault('kind', GoalKind.RECURRING)
        fields.setdefault('target_count', 3)
        return Goal.objects.create(user=owner or user, **fields)
    return factory


@pytest.fixture
def make_subgoal():
    def factory(goal, **fields):
        fields.setdefault('title', 'Пробежка')
        fields.setdefault('kind', GoalKind.ONE_TIME)
        fields.setdefault('target_count', 2)
        return Subgoal.objects.create(goal=goal, user=goal.user, **fields)
    return factory


@pytest.fixture
def direct_goal(make_goal):
    return make_goal(title='Книги', counting=Goal.Counting.DIRECT, target_count=4)


@pytest.fixture
def parent_goal(make_goal):
    return make_goal(title='Марафон', counting=Goal.Counting.SUBGOALS, target_count=3)
