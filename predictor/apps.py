from django.apps import AppConfig


class PredictorConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "predictor"
    verbose_name = "Domain Value Predictor"

    def ready(self):
        # Connect signal receivers
        from . import signals  # noqa: F401
