import time

from django.core.management.base import BaseCommand

from outbox.dispatcher import dispatch_pending


class Command(BaseCommand):
    help = "Deliver pending outbox messages (activity records, notifications) that are due for a retry."

    def add_arguments(self, parser):
        parser.add_argument('--limit', type=int, default=100, help="Maximum messages per batch")
        parser.add_argument(
            '--loop', type=int, default=0, metavar='SECONDS',
            help="Keep running, sleeping SECONDS between batches",
        )

    def handle(self, *args, **options):
        while True:
            delivered, failed = dispatch_pending(limit=options['limit'])
            self.stdout.write(f"delivered={delivered} failed={failed}")
            if not options['loop']:
                break
            time.sleep(options['loop'])
