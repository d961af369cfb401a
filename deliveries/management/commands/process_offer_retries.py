from django.core.management.base import BaseCommand
from services.dispatch import retry_expired_offers


class Command(BaseCommand):
    help = "Widen the search for delivery offers nobody accepted in time and expire exhausted ones."

    def add_arguments(self, parser):
        parser.add_argument(
            "--batch-size",
            type=int,
            default=None,
            help="Maximum number of due offers to handle (default: DELIVERY_RETRY_BATCH_SIZE).",
        )

    def handle(self, *args, **options):
        result = retry_expired_offers(batch_size=options["batch_size"])

        self.stdout.write(
            self.style.SUCCESS(
                f"Expanded {result.expanded} offer(s); expired {result.expired}; "
                f"cancelled {result.cancelled}; skipped {result.skipped}; failed {result.failed}."
            )
        )
