from django.core.management.base import BaseCommand, CommandError

from subscriptions.exceptions import SubscriptionConfigError, SubscriptionProviderError
from subscriptions.paypal import PayPalService


class Command(BaseCommand):
    help = "Create the PayPal catalog product that driver subscription plans hang off."

    def add_arguments(self, parser):
        parser.add_argument("--name", default="Driver Subscription")
        parser.add_argument("--description", default="Monthly access for drivers")

    def handle(self, *args, **options):
        try:
            product = PayPalService().create_product(options["name"], options["description"])
        except (SubscriptionConfigError, SubscriptionProviderError) as e:
            raise CommandError(str(e))

        self.stdout.write(self.style.SUCCESS(f"Created PayPal product {product['id']}"))
        self.stdout.write("Set PAYPAL_PRODUCT_ID to this value.")
