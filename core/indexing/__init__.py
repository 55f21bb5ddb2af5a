# Path: core/indexing/__init__.py
# Purpose: Package initializer for picture import workflows.
# Layer: core/indexing.
# Details: Exposes filesystem scanning and catalog import helpers.

from .index_builder import ImportReport, PictureImporter
from .scanner import SUPPORTED_EXTENSIONS, ImageScanner

__all__ = ["ImageScanner", "ImportReport", "PictureImporter", "SUPPORTED_EXTENSIONS"]
