from django.core.management.base import BaseCommand

from common.messaging import email_configured, sms_configured
from subscriptions.services import send_expiry_reminder_emails, send_expiry_reminder_sms


class Command(BaseCommand):
    help = "Email and text drivers whose subscription is about to expire."

    def add_arguments(self, parser):
        parser.add_argument("--days", type=int, default=None, help="Look-ahead window in days.")
        parser.add_argument("--channel", choices=["email", "sms", "all"], default="all")

    def handle(self, *args, **options):
        days = options["days"]
        channel = options["channel"]

        if channel in ("email", "all"):
            if email_configured():
                result = send_expiry_reminder_emails(days)
                self.stdout.write(self.style.SUCCESS(
                    f"Email: sent {result['sent']}, failed {result['failed']}, total {result['total']}"
                ))
            else:
                self.stdout.write(self.style.WARNING("Email is not configured; skipping."))

        if channel in ("sms", "all"):
            if sms_configured():
                result = send_expiry_reminder_sms(days)
                self.stdout.write(self.style.SUCCESS(
                    f"SMS: sent {result['sent']}, failed {result['failed']}, total {result['total']}"
                ))
            else:
                self.stdout.write(self.style.WARNING("SMS is not configured; skipping."))
