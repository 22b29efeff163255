from django.apps import AppConfig


class UnifiedUPIConfig(AppConfig):
    name = "unified_upi"
    verbose_name = "Unified UPI Payments"

    def ready(self):
        """
        Import system checks when the app is ready.
        This ensures the UNIFIED_UPI setting is validated on startup.
        """
        import unified_upi.checks  # noqa: F401
