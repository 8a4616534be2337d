from django.core.management.base import BaseCommand, CommandError

from progress.exceptions import ProgressError
from progress.rollover import PeriodRolloverJob


class Command(BaseCommand):
    help = 'Переводит прогресс целей и подцелей в следующий период'

    def add_arguments(self, parser):
        parser.add_argument(
            '--period',
            help='Завершаемый период в формате YYYY-MM (по умолчанию текущий)'
        )

    def handle(self, *args, **options):
        try:
            summary = PeriodRolloverJob(period=options.get('period')).run()
        except ProgressError as e:
            raise CommandError(str(e.detail)) from e

        self.stdout.write(self.style.SUCCESS(
            f'Переход {summary.current_period} -> {summary.next_period}: '
            f'удалено {summary.deleted_subgoals}, сброшено {summary.reset_subgoals}, '
            f'перенесено {summary.carried_subgoals}, целей {summary.seeded_goals}'
        ))
        for error in summary.errors:
            self.stdout.write(self.style.WARNING(f"- {error['entity']} {error['id']}: {error['error']}"))
