from django.core.management.base import BaseCommand

from services.matching import expire_stale_offers


class Command(BaseCommand):
    help = "Expire pending driver offers whose time window has passed."

    def handle(self, *args, **options):
        expired_count = expire_stale_offers()
        self.stdout.write(self.style.SUCCESS(f"Expired {expired_count} offer(s)."))
