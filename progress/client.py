"""HTTP-клиент API прогресса и кэш с оптимистичными обновлениями.

Кэш меняет локальный счетчик до ответа сервера (``apply``), после ответа
принимает значение сервера (``commit``) или, при ошибке, отбрасывает
предположение и перечитывает снимок с сервера (``revert``).
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import requests

from .completion import is_complete, percentage

logger = logging.getLogger(__name__)

GOAL = 'goal'
SUBGOAL = 'subgoal'


class ProgressAPIError(Exception):
    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class ProgressClient:
    def __init__(self, base_url: str = "http://127.0.0.1:8080/api", token: str = None,
                 session: requests.Session = None, timeout: float = 10):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.token = None
        self.session = session or requests.Session()
        self.session.headers.update({'Content-Type': 'application/json'})

        if token:
            self.set_token(token)

    def set_token(self, token):
        self.token = token
        self.session.headers.update({'Authorization': token})

    def make_request(self, method, endpoint, data=None):
        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        try:
            if method.upper() == 'GET':
                response = self.session.get(url, params=data, timeout=self.timeout)
            elif method.upper() == 'POST':
                response = self.session.post(url, json=data, timeout=self.timeout)
            elif method.upper() == 'PATCH':
                response = self.session.patch(url, json=data, timeout=self.timeout)
            elif method.upper() == 'DELETE':
                response = self.session.delete(url, timeout=self.timeout)
            else:
                raise ValueError(f"Unsupported method: {method}")

            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            payload = _json_or_text(e.response)
            logger.error(f"Request failed: {method} {url} - {e.response.status_code} {payload}")
            raise ProgressAPIError(str(e), status_code=e.response.status_code, payload=payload) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Request failed: {method} {url} - {e}")
            raise ProgressAPIError(str(e)) from e

        if response.status_code != 204:
            return response.json()
        return None

    def register(self, username, password):
        return self.make_request('POST', 'users/', {
            'username': username,
            'password': password,
            'confirm_password': password
        })

    def login(self, username, password):
        result = self.make_request('POST', 'users/login/', {'username': username, 'password': password})
        self.set_token(result['token'])
        return result

    def create_goal(self, **fields):
        return self.make_request('POST', 'goals/', fields)

    def create_subgoal(self, goal_id, **fields):
        return self.make_request('POST', 'goals/subgoals/', {'goal': goal_id, **fields})

    def get_current_period(self):
        return self.make_request('GET', 'progress/period/')['period']

    def current_progress(self, period=None):
        params = {'period': period} if period else None
        return self.make_request('GET', 'progress/current/', params)

    def goal_history(self, goal_id):
        return self.make_request('GET', f'progress/goals/{goal_id}/history/')

    def monthly_totals(self, months=12):
        return self.make_request('GET', 'progress/totals/', {'months': months})

    def increment_goal(self, goal_id, delta=1):
        return self.make_request('POST', f'progress/goals/{goal_id}/increment/', {'increment_by': delta})

    def recalculate_goal(self, goal_id):
        return self.make_request('POST', f'progress/goals/{goal_id}/recalculate/')

    def increment_subgoal(self, subgoal_id, delta=1):
        return self.make_request('POST', f'progress/subgoals/{subgoal_id}/increment/', {'increment_by': delta})

    def decrement_subgoal(self, subgoal_id, delta=1):
        return self.make_request('POST', f'progress/subgoals/{subgoal_id}/decrement/', {'decrement_by': delta})

    def delete_subgoal(self, subgoal_id):
        return self.make_request('POST', f'progress/subgoals/{subgoal_id}/delete/')

    def initialize_period(self, period=None):
        return self.make_request('POST', 'progress/initialize/', {'period': period} if period else {})

    def rollover(self, period=None):
        return self.make_request('POST', 'progress/rollover/', {'period': period} if period else {})


def _json_or_text(response):
    try:
        return response.json()
    except ValueError:
        return response.text


@dataclass
class CachedProgress:
    kind: str
    id: int
    target_count: int
    current_progress: int
    goal_id: Optional[int] = None

    @property
    def completion_percentage(self):
        return percentage(self.current_progress, self.target_count)

    @property
    def is_completed(self):
        return is_complete(self.current_progress, self.target_count)


@dataclass
class PendingUpdate:
    kind: str
    entity_id: int
    delta: int
    previous: int
    speculative: int
    state: str = 'pending'


@dataclass
class OptimisticProgressCache:
    client: ProgressClient
    period: Optional[str] = None
    goals: Dict[int, CachedProgress] = field(default_factory=dict)
    subgoals: Dict[int, CachedProgress] = field(default_factory=dict)
    pending: List[PendingUpdate] = field(default_factory=list)

    def refresh(self):
        """Перечитывает авторитетный снимок с сервера."""
        views = self.client.current_progress(self.period)

        self.goals.clear()
        self.subgoals.clear()
        for goal in views:
            self.goals[goal['id']] = CachedProgress(
                kind=GOAL,
                id=goal['id'],
                target_count=goal['target_count'],
                current_progress=goal['current_progress']
            )
            for subgoal in goal['subgoals']:
                self.subgoals[subgoal['id']] = CachedProgress(
                    kind=SUBGOAL,
                    id=subgoal['id'],
                    target_count=subgoal['target_count'],
                    current_progress=subgoal['current_progress'],
                    goal_id=goal['id']
                )
        self.pending.clear()
        return views

    def get(self, kind, entity_id):
        entries = self.goals if kind == GOAL else self.subgoals
        try:
            return entries[entity_id]
        except KeyError:
            raise KeyError(f'{kind} {entity_id} отсутствует в кэше') from None

    def apply(self, kind, entity_id, delta):
        entry = self.get(kind, entity_id)
        update = PendingUpdate(
            kind=kind,
            entity_id=entity_id,
            delta=delta,
            previous=entry.current_progress,
            speculative=max(entry.current_progress + delta, 0)
        )
        entry.current_progress = update.speculative
        self.pending.append(update)
        return update

    def commit(self, update, row):
        entry = self.get(update.kind, update.entity_id)
        entry.current_progress = row['completed_count']
        update.state = 'committed'
        self.pending.remove(update)

        # сервер пересчитал цель, если подцель пересекла порог
        if update.kind == SUBGOAL and (is_complete(update.previous, entry.target_count)
                                       != entry.is_completed):
            self.refresh()
            return self.get(update.kind, update.entity_id)
        return entry

    def revert(self, update):
        logger.warning(f'Откат {update.kind} {update.entity_id}: {update.previous} -> {update.speculative}')
        update.state = 'reverted'
        self.refresh()

    def _mutate(self, kind, entity_id, delta, call):
        update = self.apply(kind, entity_id, delta)
        try:
            row = call()
        except ProgressAPIError:
            self.revert(update)
            raise
        return self.commit(update, row)

    def increment_goal(self, goal_id, delta=1):
        return self._mutate(GOAL, goal_id, delta, lambda: self.client.increment_goal(goal_id, delta))

    def increment_subgoal(self, subgoal_id, delta=1):
        return self._mutate(SUBGOAL, subgoal_id, delta, lambda: self.client.increment_subgoal(subgoal_id, delta))

    def decrement_subgoal(self, subgoal_id, delta=1):
        return self._mutate(SUBGOAL, subgoal_id, -delta, lambda: self.client.decrement_subgoal(subgoal_id, delta))
