# Path: core/tasks/base.py
# Purpose: Define batch task interfaces for per-picture work over the catalog.
# Layer: core/tasks.
# Details: Provides TaskContext, TaskReport, the executor/database/coordinator protocols, and TaskManager.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Protocol, Tuple

logger = logging.getLogger(__name__)

PendingPicture = Tuple[int, Path]


@dataclass
class TaskContext:
    """Identifies a task run and how pending pictures are selected and batched."""

    task_name: str
    recompute_all: bool = False
    batch_size: int = 64


@dataclass
class TaskReport:
    """Per-picture outcome of one task run."""

    task_name: str
    succeeded: List[int] = field(default_factory=list)
    failures: Dict[int, str] = field(default_factory=dict)

    @property
    def processed(self) -> int:
        return len(self.succeeded) + len(self.failures)


class TaskDatabase(Protocol):
    """Writes task results back to storage."""

    def can_handle_task(self, task_name: str) -> bool:
        ...

    def prepare(self, ctx: TaskContext) -> None:
        """Called by the executor before the first result of a batch is saved."""

    def save_result(self, ctx: TaskContext, picture_id: int, result: Any) -> None:
        ...

    def finalize(self, ctx: TaskContext) -> None:
        """Called by the executor once a batch is done, even if it failed."""


class TaskCoordinator(Protocol):
    """Select the pictures a task must process and receive per-picture outcomes."""

    def get_pending_pictures(self, ctx: TaskContext) -> List[PendingPicture]:
        ...

    def mark_task_success(self, ctx: TaskContext, picture_id: int) -> None:
        ...

    def mark_task_failure(self, ctx: TaskContext, picture_id: int, error_message: str) -> None:
        ...


class TaskExecutor(Protocol):
    """Run one kind of task over a batch of pictures."""

    def can_execute(self, task_name: str) -> bool:
        ...

    def run_batch(
        self,
        ctx: TaskContext,
        pictures: Iterable[PendingPicture],
        db: TaskDatabase,
        coordinator: TaskCoordinator,
    ) -> None:
        ...


class _ReportingCoordinator:
    """Forward outcomes to the real coordinator while filling a TaskReport."""

    def __init__(self, inner: TaskCoordinator, report: TaskReport) -> None:
        self._inner = inner
        self.report = report

    def get_pending_pictures(self, ctx: TaskContext) -> List[PendingPicture]:
        return self._inner.get_pending_pictures(ctx)

    def mark_task_success(self, ctx: TaskContext, picture_id: int) -> None:
        self.report.succeeded.append(picture_id)
        self._inner.mark_task_success(ctx, picture_id)

    def mark_task_failure(self, ctx: TaskContext, picture_id: int, error_message: str) -> None:
        self.report.failures[picture_id] = error_message
        self._inner.mark_task_failure(ctx, picture_id, error_message)


class TaskManager:
    """Dispatch tasks to the matching executor and database.

    Pending pictures are handed to the executor in batches of
    ``ctx.batch_size``. The manager runs in the caller thread; executors may
    parallelize each batch internally.
    """

    def __init__(
        self,
        executors: List[TaskExecutor],
        databases: List[TaskDatabase],
        coordinator: TaskCoordinator,
    ) -> None:
        self._executors = executors
        self._databases = databases
        self._coordinator = coordinator

    def _executor_for(self, task_name: str) -> TaskExecutor:
        for executor in self._executors:
            if executor.can_execute(task_name):
                return executor
        raise RuntimeError(f"No executor found for task {task_name}")

    def _db_for(self, task_name: str) -> TaskDatabase:
        for db in self._databases:
            if db.can_handle_task(task_name):
                return db
        raise RuntimeError(f"No database handler found for task {task_name}")

    def run_task(self, ctx: TaskContext) -> TaskReport:
        """Run ``ctx.task_name`` over every pending picture."""

        executor = self._executor_for(ctx.task_name)
        db = self._db_for(ctx.task_name)
        coordinator = _ReportingCoordinator(self._coordinator, TaskReport(ctx.task_name))

        pending = coordinator.get_pending_pictures(ctx)
        logger.info("Task %s: %d pictures pending", ctx.task_name, len(pending))
        for start in range(0, len(pending), ctx.batch_size):
            executor.run_batch(ctx, pending[start : start + ctx.batch_size], db, coordinator)
            logger.debug("Task %s: %d/%d pictures done", ctx.task_name, coordinator.report.processed, len(pending))
        return coordinator.report
