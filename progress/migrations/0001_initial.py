import django.core.serializers.json
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ('core', '0001_initial'),
        ('goals', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='GoalProgress',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('period', models.CharField(max_length=7, verbose_name='Период (YYYY-MM)')),
                ('completed_count', models.PositiveIntegerField(default=0, verbose_name='Выполнено')),
                ('carried_over', models.BooleanField(default=False, verbose_name='Перенесен из прошлого периода')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Создан')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Обновлен')),
                ('goal', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='progress',
                                           to='goals.goal')),
            ],
            options={
                'db_table': 'goal_progress',
                'ordering': ['period'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='SubgoalProgress',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('period', models.CharField(max_length=7, verbose_name='Период (YYYY-MM)')),
                ('completed_count', models.PositiveIntegerField(default=0, verbose_name='Выполнено')),
                ('carried_over', models.BooleanField(default=False, verbose_name='Перенесен из прошлого периода')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Создан')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Обновлен')),
                ('subgoal', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='progress',
                                              to='goals.subgoal')),
            ],
            options={
                'db_table': 'subgoal_progress',
                'ordering': ['period'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='RolloverLog',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('current_period', models.CharField(max_length=7)),
                ('next_period', models.CharField(max_length=7)),
                ('success', models.BooleanField(default=True)),
                ('deleted_subgoals', models.PositiveIntegerField(default=0)),
                ('reset_subgoals', models.PositiveIntegerField(default=0)),
                ('carried_subgoals', models.PositiveIntegerField(default=0)),
                ('seeded_goals', models.PositiveIntegerField(default=0)),
                ('failed', models.PositiveIntegerField(default=0)),
                ('errors', models.JSONField(default=list, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('triggered_by', models.ForeignKey(blank=True, null=True,
                                                   on_delete=django.db.models.deletion.SET_NULL,
                                                   related_name='rollover_logs', to='core.user')),
            ],
            options={
                'db_table': 'rollover_logs',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.AddConstraint(
            model_name='goalprogress',
            constraint=models.UniqueConstraint(fields=('goal', 'period'), name='goal_progress_goal_period_uniq'),
        ),
        migrations.AddConstraint(
            model_name='subgoalprogress',
            constraint=models.UniqueConstraint(fields=('subgoal', 'period'),
                                               name='subgoal_progress_subgoal_period_uniq'),
        ),
    ]
