import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Goal',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=255, verbose_name='Заголовок')),
                ('kind', models.CharField(choices=[('one_time', 'Разовая'), ('recurring', 'Повторяющаяся')],
                                          default='recurring', max_length=20, verbose_name='Тип')),
                ('target_count', models.PositiveIntegerField(
                    default=1, validators=[django.core.validators.MinValueValidator(1)],
                    verbose_name='Целевое количество')),
                ('counting', models.CharField(choices=[('direct', 'Прямое увеличение'), ('subgoals', 'По подцелям')],
                                              default='direct', max_length=20,
                                              verbose_name='Способ подсчета прогресса')),
                ('start_date', models.DateField(default=django.utils.timezone.localdate, verbose_name='Дата начала')),
                ('end_date', models.DateField(blank=True, null=True, verbose_name='Дата окончания')),
                ('background_color', models.CharField(blank=True, max_length=32, null=True,
                                                      verbose_name='Цвет фона')),
                ('is_active', models.BooleanField(default=True, verbose_name='Активна')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Создан')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Обновлен')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='goals',
                                           to='core.user')),
            ],
            options={
                'db_table': 'goals',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='Subgoal',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=255, verbose_name='Заголовок')),
                ('kind', models.CharField(choices=[('one_time', 'Разовая'), ('recurring', 'Повторяющаяся')],
                                          default='one_time', max_length=20, verbose_name='Тип')),
                ('target_count', models.PositiveIntegerField(
                    default=1, validators=[django.core.validators.MinValueValidator(1)],
                    verbose_name='Целевое количество')),
                ('is_active', models.BooleanField(default=True, verbose_name='Активна')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Создан')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Обновлен')),
                ('goal', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='subgoals',
                                           to='goals.goal')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='subgoals',
                                           to='core.user')),
            ],
            options={
                'db_table': 'subgoals',
                'ordering': ['created_at', 'id'],
            },
        ),
    ]
