"""Cron-driven task execution with durable run tracking."""

from c3p1.scheduler.scheduler import ScheduledTask, TaskHandler, TaskScheduler
from c3p1.scheduler.tasks import build_prompt_task, register_configured_tasks
from c3p1.scheduler.tracker import TaskContext, TaskRunTracker

__all__ = [
    "ScheduledTask",
    "TaskContext",
    "TaskHandler",
    "TaskRunTracker",
    "TaskScheduler",
    "build_prompt_task",
    "register_configured_tasks",
]
