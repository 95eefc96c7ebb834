from django.core.management.base import BaseCommand

from journeys.services.departments import recount_queues


class Command(BaseCommand):
    help = "Rebuild department queue counters from the checkpoints waiting or in service."

    def add_arguments(self, parser):
        parser.add_argument('--hospital', help='Only recount departments of this hospital id')

    def handle(self, *args, **options):
        changed = recount_queues(options.get('hospital'))
        for row in changed:
            self.stdout.write(f"{row['name']} ({row['id']}): {row['from']} -> {row['to']}")
        self.stdout.write(self.style.SUCCESS(f"Recounted queues, {len(changed)} department(s) changed"))
