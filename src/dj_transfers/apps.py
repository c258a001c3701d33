"""
Django app configuration for dj_transfers.
"""

from django.apps import AppConfig


class DjangoTransfersConfig(AppConfig):
    """Configuration for the Django Transfers application."""

    name = "dj_transfers"
    verbose_name = "Django Transfers"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        """Import signals when the app is ready."""
        from . import signals  # noqa: F401
