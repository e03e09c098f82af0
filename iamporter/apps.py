from django.apps import AppConfig


class IamporterConfig(AppConfig):
    """Django app configuration for Iamporter."""

    name = "iamporter"
    verbose_name = "Iamport Payment"

    def ready(self) -> None:
        """Import signals when the app is ready."""
        from . import signals  # noqa: F401
