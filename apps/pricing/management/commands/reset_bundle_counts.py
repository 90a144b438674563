import logging

from django.core.management.base import BaseCommand, CommandError

from apps.pricing.application.tasks import reset_bundle_daily_counts

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Reset the daily sold count of every bundle to 0'

    def add_arguments(self, parser):
        parser.add_argument(
            '--sync',
            action='store_true',
            help='Execute synchronously instead of using Celery task queue'
        )

    def handle(self, **options):
        if options['sync']:
            self.stdout.write('Running in synchronous mode...')
            result = reset_bundle_daily_counts()

            if not result['success']:
                raise CommandError('Failed to reset bundle counts')

            logger.info("Bundle daily counts reset from command line")
            self.stdout.write(
                self.style.SUCCESS(
                    f"Reset {result['bundles_reset']} bundle(s)"
                )
            )
        else:
            self.stdout.write('Dispatching Celery task...')
            task = reset_bundle_daily_counts.delay()

            self.stdout.write(
                self.style.SUCCESS(
                    f'Task dispatched with ID: {task.id}'
                )
            )
