import secrets

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('username', models.CharField(max_length=50, unique=True, validators=[
                    django.core.validators.MinLengthValidator(3),
                    django.core.validators.RegexValidator(
                        message='Только буквы, цифры и подчеркивания', regex='^[a-zA-Z0-9_]+$')
                ], verbose_name='Имя пользователя')),
                ('password_hash', models.CharField(help_text='BCrypt хэш пароля', max_length=255,
                                                   verbose_name='Хэш пароля')),
                ('role', models.CharField(choices=[('user', 'Пользователь'), ('admin', 'Администратор')],
                                          default='user', max_length=20, verbose_name='Роль')),
                ('is_active', models.BooleanField(default=True, verbose_name='Активен')),
                ('last_login', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Создан')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Обновлен')),
            ],
            options={
                'db_table': 'users',
            },
        ),
        migrations.CreateModel(
            name='AuthToken',
            fields=[
                ('key', models.CharField(default=secrets.token_hex, editable=False, max_length=64, primary_key=True,
                                         serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('expires_at', models.DateTimeField()),
                ('last_used', models.DateTimeField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='auth_tokens',
                                           to='core.user')),
            ],
            options={
                'db_table': 'auth_tokens',
            },
        ),
    ]
