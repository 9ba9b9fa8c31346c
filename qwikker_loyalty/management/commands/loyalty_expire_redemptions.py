"""Management command to close finished redemption display windows."""

from django.core.management.base import BaseCommand

from qwikker_loyalty.services.ledger import expire_redemptions


class Command(BaseCommand):
    help = "Mark consumed redemptions whose display window has passed as expired_display"

    def handle(self, *args, **options):
        count = expire_redemptions()
        self.stdout.write(self.style.SUCCESS(f"Expired {count} redemption display windows."))
