from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from core.models import User


class GoalKind(models.TextChoices):
    ONE_TIME = 'one_time', 'Разовая'
    RECURRING = 'recurring', 'Повторяющаяся'


class ActiveQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def owned_by(self, user):
        return self.filter(user=user)


class Goal(models.Model):
    class Counting(models.TextChoices):
        DIRECT = 'direct', 'Прямое увеличение'
        SUBGOALS = 'subgoals', 'По подцелям'

    class Meta:
        db_table = 'goals'
        ordering = ['-created_at', '-id']

    id = models.BigAutoField(primary_key=True)

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='goals'
    )

    title = models.CharField(
        'Заголовок',
        max_length=255
    )

    kind = models.CharField(
        'Тип',
        max_length=20,
        choices=GoalKind.choices,
        default=GoalKind.RECURRING
    )

    target_count = models.PositiveIntegerField(
        'Целевое количество',
        default=1,
        validators=[MinValueValidator(1)]
    )

    counting = models.CharField(
        'Способ подсчета прогресса',
        max_length=20,
        choices=Counting.choices,
        default=Counting.DIRECT
    )

    start_date = models.DateField('Дата начала', default=timezone.localdate)
    end_date = models.DateField('Дата окончания', null=True, blank=True)
    background_color = models.CharField('Цвет фона', max_length=32, null=True, blank=True)
    is_active = models.BooleanField('Активна', default=True)
    created_at = models.DateTimeField('Создан', auto_now_add=True)
    updated_at = models.DateTimeField('Обновлен', auto_now=True)

    objects = ActiveQuerySet.as_manager()

    def __str__(self):
        return self.title

    @property
    def counts_subgoals(self):
        return self.counting == self.Counting.SUBGOALS


class Subgoal(models.Model):
    class Meta:
        db_table = 'subgoals'
        ordering = ['created_at', 'id']

    id = models.BigAutoField(primary_key=True)

    goal = models.ForeignKey(
        Goal,
        on_delete=models.CASCADE,
        related_name='subgoals'
    )

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='subgoals'
    )

    title = models.CharField(
        'Заголовок',
        max_length=255
    )

    kind = models.CharField(
        'Тип',
        max_length=20,
        choices=GoalKind.choices,
        default=GoalKind.ONE_TIME
    )

    target_count = models.PositiveIntegerField(
        'Целевое количество',
        default=1,
        validators=[MinValueValidator(1)]
    )

    is_active = models.BooleanField('Активна', default=True)
    created_at = models.DateTimeField('Создан', auto_now_add=True)
    updated_at = models.DateTimeField('Обновлен', auto_now=True)

    objects = ActiveQuerySet.as_manager()

    def __str__(self):
        return self.title

    @property
    def is_one_time(self):
        return self.kind == GoalKind.ONE_TIME
