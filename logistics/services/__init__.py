from .daily_task import DailyTaskService, PackageNotFound  # noqa: F401
