"""The four pipeline tasks and the graph that runs them."""

from specbuild.tasks.build import Builder
from specbuild.tasks.clean import Cleaner
from specbuild.tasks.graph import Task, TaskGraph, TaskMode, TaskRunner
from specbuild.tasks.serve import LiveReloadServer, NotificationChannel, OutputNotifier
from specbuild.tasks.watch import RebuildQueue, SourceWatcher


__all__ = [
    "Builder",
    "Cleaner",
    "LiveReloadServer",
    "NotificationChannel",
    "OutputNotifier",
    "RebuildQueue",
    "SourceWatcher",
    "Task",
    "TaskGraph",
    "TaskMode",
    "TaskRunner",
]
