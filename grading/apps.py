from django.apps import AppConfig


class GradingConfig(AppConfig):
    name = 'grading'
    verbose_name = 'Grading'

    def ready(self):
        from . import checks  # noqa: F401
