from django.core.management.base import BaseCommand
from services import get_services
import logging

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Create the document store indexes for the users and rides collections."

    def handle(self, *args, **options):
        services = get_services()

        user_indexes = services.users.ensure_indexes()
        ride_indexes = services.rides.ensure_indexes()

        for name in user_indexes + ride_indexes:
            logger.info(f"Ensured index {name}")

        self.stdout.write(
            self.style.SUCCESS(
                f"Ensured {len(user_indexes)} user index(es) and {len(ride_indexes)} ride index(es)."
            )
        )
