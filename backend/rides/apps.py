"""Rides app configuration."""

import logging

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)


class RidesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'rides'

    def ready(self):
        if settings.RIDE_STORE.get('LOG_CONNECTION_ON_STARTUP'):
            log_store_connection()


def log_store_connection():
    """Report whether the document store is reachable. Never raises."""
    from services import get_services

    try:
        database = get_services().rides.ping()
        logger.info("Successfully connected to the ride store")
        logger.info("Database: %s", database)
    except Exception as e:
        logger.error("Failed to connect to the ride store: %s", e)
