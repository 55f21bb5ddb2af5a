# Path: core/tasks/hash_tasks.py
# Purpose: Implement the hash task executor and its catalog adapters.
# Layer: core/tasks.
# Details: Computes dHash values on a thread pool and writes them back through the picture catalog.

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List, Tuple

from core.catalog import PictureCatalog
from core.hashing import Hash, HashDecodeError, compute_hash

from .base import TaskContext, TaskCoordinator, TaskDatabase, TaskExecutor

logger = logging.getLogger(__name__)

DHASH_TASK = "dhash_64"


class HashExecutor(TaskExecutor):
    """Execute hash-based tasks over picture files.

    Supports:
    - dhash_64: 64-bit difference hash over a 9x8 grayscale thumbnail.
    """

    SUPPORTED_TASKS = {DHASH_TASK}

    def __init__(self, workers: int = 1) -> None:
        self.workers = workers

    def can_execute(self, task_name: str) -> bool:
        return task_name in self.SUPPORTED_TASKS

    def run_batch(
        self,
        ctx: TaskContext,
        pictures: Iterable[Tuple[int, Path]],
        db: TaskDatabase,
        coordinator: TaskCoordinator,
    ) -> None:
        pictures = list(pictures)
        db.prepare(ctx)
        try:
            with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="hash") as pool:
                outcomes = pool.map(lambda item: self._compute_safe(ctx.task_name, item[1]), pictures)
                for (picture_id, _), (result, error) in zip(pictures, outcomes):
                    if error is not None:
                        coordinator.mark_task_failure(ctx, picture_id, error)
                        continue

                    try:
                        db.save_result(ctx, picture_id, result)
                    except Exception as exc:  # noqa: BLE001 - DB-level error
                        coordinator.mark_task_failure(ctx, picture_id, f"DB error: {exc}")
                        continue

                    coordinator.mark_task_success(ctx, picture_id)
        finally:
            db.finalize(ctx)

    def _compute_safe(self, task_name: str, path: Path) -> Tuple[Hash | None, str | None]:
        try:
            return self._compute(task_name, path), None
        except HashDecodeError as exc:
            return None, str(exc)

    def _compute(self, task_name: str, path: Path) -> Hash:
        if task_name == DHASH_TASK:
            return compute_hash(path)
        raise ValueError(f"Unsupported hash task: {task_name}")


class CatalogHashDatabase(TaskDatabase):
    """TaskDatabase writing hash results into the pictures table of the catalog."""

    SUPPORTED_TASKS = {DHASH_TASK}

    def __init__(self, catalog: PictureCatalog) -> None:
        self.catalog = catalog
        self._saved = 0

    def can_handle_task(self, task_name: str) -> bool:
        return task_name in self.SUPPORTED_TASKS

    def prepare(self, ctx: TaskContext) -> None:
        self._saved = 0

    def save_result(self, ctx: TaskContext, picture_id: int, result: Hash) -> None:
        self.catalog.update_picture_hash(picture_id, result)
        self._saved += 1

    def finalize(self, ctx: TaskContext) -> None:
        logger.info("Task %s saved %d hashes", ctx.task_name, self._saved)


class CatalogTaskCoordinator(TaskCoordinator):
    """Select pictures from the catalog by hash state and log task outcomes."""

    def __init__(self, catalog: PictureCatalog) -> None:
        self.catalog = catalog

    def get_pending_pictures(self, ctx: TaskContext) -> List[Tuple[int, Path]]:
        pictures = self.catalog.iter_pictures(missing_hash_only=not ctx.recompute_all)
        return [(picture.id, picture.path) for picture in pictures]

    def mark_task_success(self, ctx: TaskContext, picture_id: int) -> None:
        logger.debug("Task %s done for picture %d", ctx.task_name, picture_id)

    def mark_task_failure(self, ctx: TaskContext, picture_id: int, error_message: str) -> None:
        logger.warning("Task %s failed for picture %d: %s", ctx.task_name, picture_id, error_message)
