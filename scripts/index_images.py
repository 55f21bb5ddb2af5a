# Path: scripts/index_images.py
# Purpose: CLI tool to scan image folders and register pictures in the catalog.
# Layer: scripts.
# Details: Wires scanning, hashing, and catalog insertion; can also recompute stored hashes.

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from config import AppSettings
from core.catalog import PictureCatalog
from core.indexing import ImageScanner, PictureImporter
from core.tasks import DHASH_TASK, CatalogHashDatabase, CatalogTaskCoordinator, HashExecutor, TaskContext, TaskManager


def main() -> None:
    """Import a folder of images into the catalog."""

    parser = argparse.ArgumentParser(description="Import images into an ImgTagDB catalog")
    parser.add_argument("--folder", type=Path, default=None, help="Folder containing images to import")
    parser.add_argument("--database", type=Path, default=None, help="Path to the catalog database")
    parser.add_argument("--batch-size", type=int, default=None, help="Number of pictures hashed per batch")
    parser.add_argument("--recompute-hashes", action="store_true", help="Recompute hashes of all registered pictures")
    args = parser.parse_args()

    settings = AppSettings.from_env()
    if args.folder is not None:
        settings.image_folder = args.folder
    if args.database is not None:
        settings.database_path = args.database
    if args.batch_size is not None:
        settings.batch_size = args.batch_size
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    with PictureCatalog(settings.database_path) as catalog:
        scanner = ImageScanner(settings.image_folder)
        importer = PictureImporter(catalog, batch_size=settings.batch_size, workers=settings.hashing.workers)
        report = importer.import_paths(scanner.scan())
        print(f"Imported {len(report.imported)} pictures into {settings.database_path}")

        manager = TaskManager(
            executors=[HashExecutor(workers=settings.hashing.workers)],
            databases=[CatalogHashDatabase(catalog)],
            coordinator=CatalogTaskCoordinator(catalog),
        )
        recompute = args.recompute_hashes or settings.hashing.recompute_all
        ctx = TaskContext(task_name=DHASH_TASK, recompute_all=recompute, batch_size=settings.batch_size)
        task_report = manager.run_task(ctx)
        if task_report.processed:
            print(f"Hashed {len(task_report.succeeded)} pictures, {len(task_report.failures)} failures")


if __name__ == "__main__":
    main()
