"""Background task ownership for fire-and-forget work."""

from .background import BackgroundTasks, BackgroundTasksClosedError

__all__ = [
    "BackgroundTasks",
    "BackgroundTasksClosedError",
]
