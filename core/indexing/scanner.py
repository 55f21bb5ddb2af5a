# Path: core/indexing/scanner.py
# Purpose: Scan folders and collect image file paths.
# Layer: core/indexing.
# Details: Provides reusable filesystem scanning for picture import jobs.

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".webp"}


class ImageScanner:
    """Scan filesystem paths for supported image files."""

    def __init__(self, root: Path, recursive: bool = True) -> None:
        self.root = root
        self.recursive = recursive

    def scan(self) -> List[Path]:
        """Return discovered image paths in a stable order."""

        return sorted(self._iter_image_files())

    def _iter_image_files(self) -> Iterable[Path]:
        """Yield image files under the root directory."""

        entries = self.root.rglob("*") if self.recursive else self.root.iterdir()
        for path in entries:
            if path.is_file() and path.suffix.lower() in SUPPORTED_EXTENSIONS:
                yield path
