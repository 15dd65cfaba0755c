"""Management command to purge expired, unclaimed stamp tokens."""

from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from stampman.conf import stampman_settings
from stampman.services import TokenAuthority


class Command(BaseCommand):
    help = "Remove stamp tokens that expired without being claimed"

    def add_arguments(self, parser):
        parser.add_argument(
            "--cafe",
            default=None,
            help="Only purge tokens of this café",
        )
        parser.add_argument(
            "--grace",
            type=int,
            default=None,
            help="Override TOKEN_CLEANUP_GRACE_SECONDS setting",
        )

    def handle(self, *args, **options):
        grace = options["grace"]
        if grace is None:
            grace = stampman_settings.TOKEN_CLEANUP_GRACE_SECONDS

        cutoff = timezone.now() - timedelta(seconds=grace)
        deleted_count = TokenAuthority().purge_expired(cafe_id=options["cafe"], now=cutoff)
        self.stdout.write(
            self.style.SUCCESS(f"Deleted {deleted_count} expired stamp tokens.")
        )
