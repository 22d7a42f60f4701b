"""
Fill a company with a year of demo pipeline data
"""
from django.core.management.base import BaseCommand, CommandError

from apps.core.demo import DemoDataSeeder
from apps.core.models import Company


class Command(BaseCommand):
    help = 'Create demo leads, meetings, tasks and reminders for a company'

    def add_arguments(self, parser):
        parser.add_argument('--company', required=True, help='Company slug')
        parser.add_argument('--scale', type=float, default=1.0, help='Fraction of the full data set (default 1.0)')
        parser.add_argument('--seed', type=int, default=None, help='Random seed for reproducible data')

    def handle(self, *args, **options):
        try:
            company = Company.objects.get(slug=options['company'])
        except Company.DoesNotExist:
            raise CommandError(f"Company '{options['company']}' does not exist")

        self.stdout.write(f'Seeding demo data for {company.name}...')

        try:
            counts = DemoDataSeeder(company, scale=options['scale'], seed=options['seed']).run()
        except ValueError as e:
            raise CommandError(str(e))

        for name, count in counts.items():
            self.stdout.write(f'  {name}: {count}')

        self.stdout.write(self.style.SUCCESS('Demo data created successfully!'))
