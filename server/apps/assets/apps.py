"""Django app configuration for assets app."""

from typing import override

from django.apps import AppConfig


class AssetsConfig(AppConfig):
    """Configuration for assets app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'server.apps.assets'
    verbose_name = 'Asset Library'

    @override
    def ready(self) -> None:
        """Import signal handlers when app is ready."""
        from server.apps.assets import signals  # noqa: F401
