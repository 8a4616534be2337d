from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from core.models import User
from goals.models import Goal, Subgoal


class ProgressRow(models.Model):
    class Meta:
        abstract = True
        ordering = ['period']

    id = models.BigAutoField(primary_key=True)
    period = models.CharField('Период (YYYY-MM)', max_length=7)
    completed_count = models.PositiveIntegerField('Выполнено', default=0)
    carried_over = models.BooleanField('Перенесен из прошлого периода', default=False)
    created_at = models.DateTimeField('Создан', auto_now_add=True)
    updated_at = models.DateTimeField('Обновлен', auto_now=True)


class GoalProgress(ProgressRow):
    class Meta(ProgressRow.Meta):
        db_table = 'goal_progress'
        constraints = [
            models.UniqueConstraint(fields=['goal', 'period'], name='goal_progress_goal_period_uniq')
        ]

    goal = models.ForeignKey(
        Goal,
        on_delete=models.CASCADE,
        related_name='progress'
    )


class SubgoalProgress(ProgressRow):
    class Meta(ProgressRow.Meta):
        db_table = 'subgoal_progress'
        constraints = [
            models.UniqueConstraint(fields=['subgoal', 'period'], name='subgoal_progress_subgoal_period_uniq')
        ]

    subgoal = models.ForeignKey(
        Subgoal,
        on_delete=models.CASCADE,
        related_name='progress'
    )


class RolloverLog(models.Model):
    class Meta:
        db_table = 'rollover_logs'
        ordering = ['-created_at', '-id']

    id = models.BigAutoField(
        primary_key=True
    )

    current_period = models.CharField(
        max_length=7
    )

    next_period = models.CharField(
        max_length=7
    )

    triggered_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='rollover_logs'
    )

    success = models.BooleanField(
        default=True
    )

    deleted_subgoals = models.PositiveIntegerField(
        default=0
    )

    reset_subgoals = models.PositiveIntegerField(
        default=0
    )

    carried_subgoals = models.PositiveIntegerField(
        default=0
    )

    seeded_goals = models.PositiveIntegerField(
        default=0
    )

    failed = models.PositiveIntegerField(
        default=0
    )

    errors = models.JSONField(
        default=list,
        encoder=DjangoJSONEncoder
    )

    created_at = models.DateTimeField(auto_now_add=True)
