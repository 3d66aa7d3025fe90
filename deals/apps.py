# deals/apps.py
from django.apps import AppConfig

class DealsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "deals"

    def ready(self):
        from . import signals  # noqa: F401  (forces signal registration)
