# Path: core/tasks/__init__.py
# Purpose: Provide execution interfaces for batch picture tasks.
# Layer: core/tasks.
# Details: Exposes context, reports, TaskManager primitives, and the hash task implementation.

from .base import TaskContext, TaskCoordinator, TaskDatabase, TaskExecutor, TaskManager, TaskReport
from .hash_tasks import DHASH_TASK, CatalogHashDatabase, CatalogTaskCoordinator, HashExecutor

__all__ = [
    "TaskContext",
    "TaskDatabase",
    "TaskCoordinator",
    "TaskExecutor",
    "TaskManager",
    "TaskReport",
    "DHASH_TASK",
    "HashExecutor",
    "CatalogHashDatabase",
    "CatalogTaskCoordinator",
]
