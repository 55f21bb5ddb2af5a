# Path: core/indexing/index_builder.py
# Purpose: Register scanned image files in the picture catalog with their perceptual hashes.
# Layer: core/indexing.
# Details: Hashes batches of files on a thread pool with progress reporting, skipping known paths.

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from tqdm import tqdm

from core.catalog import PictureCatalog
from core.hashing import Hash, HashDecodeError, compute_hash
from core.models.domain import Picture

logger = logging.getLogger(__name__)


@dataclass
class ImportReport:
    """Outcome of an import run."""

    imported: List[Picture] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    failed: List[Path] = field(default_factory=list)


class PictureImporter:
    """Batch process image files to populate the picture catalog."""

    def __init__(self, catalog: PictureCatalog, batch_size: int = 8, workers: int = 4) -> None:
        self.catalog = catalog
        self.batch_size = batch_size
        self.workers = workers

    def import_paths(self, paths: Iterable[Path], progress: bool = True) -> ImportReport:
        """
        Hash and register every path not yet in the catalog.

        External calls:
        - core/hashing/dhash.py::compute_hash - computes the dHash of each file.
        - core/catalog/database.py::PictureCatalog.insert_picture - registers the picture.
        """

        report = ImportReport()
        pending: List[Path] = []
        for path in paths:
            if self.catalog.is_file_registered(path):
                report.skipped.append(path)
            else:
                pending.append(path)

        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="import") as pool:
            with tqdm(total=len(pending), desc="Importing pictures", unit="img", disable=not progress) as bar:
                for start in range(0, len(pending), self.batch_size):
                    batch = pending[start : start + self.batch_size]
                    hashes = list(pool.map(self._hash_or_none, batch))
                    self._flush(batch, hashes, report)
                    bar.update(len(batch))

        logger.info(
            "Imported %d pictures (%d already registered, %d unreadable)",
            len(report.imported),
            len(report.skipped),
            len(report.failed),
        )
        return report

    def _flush(self, paths: List[Path], hashes: List[Optional[Hash]], report: ImportReport) -> None:
        """Insert the accumulated batch into the catalog."""

        for path, hash in zip(paths, hashes):
            if hash is None:
                report.failed.append(path)
                continue
            report.imported.append(self.catalog.insert_picture(path, hash))

    @staticmethod
    def _hash_or_none(path: Path) -> Optional[Hash]:
        """Hash an image from disk, returning None if decoding fails."""

        try:
            return compute_hash(path)
        except HashDecodeError as exc:
            logger.warning("Skipping %s: %s", path, exc)
            return None
