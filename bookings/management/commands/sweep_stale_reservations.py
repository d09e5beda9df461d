from django.core.management.base import BaseCommand

from bookings.sweeper import sweep_stale


class Command(BaseCommand):
    help = 'Cancel web reservations left unpaid past the stale threshold'

    def handle(self, *args, **options):
        cancelled = sweep_stale()
        self.stdout.write(self.style.SUCCESS(f'Cancelled {cancelled} stale reservation(s)'))
