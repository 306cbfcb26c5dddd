from django.apps import AppConfig


class LogisticsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'logistics'
    verbose_name = 'Tugas Harian & Paket'

    def ready(self):
        # Work summary notifications on task completion
        import logistics.signals  # noqa: F401
