from django.core.management.base import BaseCommand

from subscriptions.services import expire_subscriptions


class Command(BaseCommand):
    help = "Mark lapsed paid subscriptions and free grants as expired."

    def handle(self, *args, **options):
        count = expire_subscriptions()
        self.stdout.write(self.style.SUCCESS(f"Expired {count} subscription(s)."))
