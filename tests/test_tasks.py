"""Tests for the hash task manager and its catalog adapters."""

import pytest

from core.hashing import Hash
from core.tasks import (
    DHASH_TASK,
    CatalogHashDatabase,
    CatalogTaskCoordinator,
    HashExecutor,
    TaskContext,
    TaskManager,
)

ALL_ONES = (1 << 64) - 1


def _manager(catalog):
    return TaskManager(
        executors=[HashExecutor(workers=2)],
        databases=[CatalogHashDatabase(catalog)],
        coordinator=CatalogTaskCoordinator(catalog),
    )


def test_hashes_pictures_missing_a_hash(catalog, tmp_path, gradient_image, solid_image):
    gradient = catalog.insert_picture(gradient_image(tmp_path / "g.png"))
    solid = catalog.insert_picture(solid_image(tmp_path / "s.png"))

    report = _manager(catalog).run_task(TaskContext(DHASH_TASK))
    assert report.processed == 2
    assert sorted(report.succeeded) == [gradient.id, solid.id]
    assert catalog.get_picture(gradient.id).hash == Hash(ALL_ONES)
    assert catalog.get_picture(solid.id).hash == Hash(0)


def test_small_batches_cover_every_picture(catalog, tmp_path, solid_image):
    ids = [catalog.insert_picture(solid_image(tmp_path / f"{i}.png")).id for i in range(5)]
    report = _manager(catalog).run_task(TaskContext(DHASH_TASK, batch_size=2))
    assert report.succeeded == ids


def test_nothing_pending(catalog, tmp_path, gradient_image):
    catalog.insert_picture(gradient_image(tmp_path / "g.png"), Hash(ALL_ONES))
    assert _manager(catalog).run_task(TaskContext(DHASH_TASK)).processed == 0


def test_recompute_all_overwrites_stored_hashes(catalog, tmp_path, gradient_image):
    picture = catalog.insert_picture(gradient_image(tmp_path / "g.png"), Hash(42))
    report = _manager(catalog).run_task(TaskContext(DHASH_TASK, recompute_all=True))
    assert report.succeeded == [picture.id]
    assert catalog.get_picture(picture.id).hash == Hash(ALL_ONES)


def test_unreadable_file_is_reported(catalog, tmp_path):
    picture = catalog.insert_picture(tmp_path / "missing.png")
    report = _manager(catalog).run_task(TaskContext(DHASH_TASK))
    assert report.succeeded == []
    assert picture.id in report.failures
    assert catalog.get_picture(picture.id).hash is None


def test_unknown_task(catalog):
    with pytest.raises(RuntimeError):
        _manager(catalog).run_task(TaskContext("clip_embedding"))
