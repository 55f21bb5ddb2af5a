"""
Pytest fixtures and configuration for the test suite.

- Catalogs are real SQLite databases kept in memory.
- Images are generated with Pillow under tmp_path.
"""

import sys
from pathlib import Path
from typing import Dict, FrozenSet, Optional

import numpy as np
import pytest
from PIL import Image

# Add project root to path so tests can import the core packages
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from core.catalog import PictureCatalog  # noqa: E402


class FakeLookup:
    """In-memory TagLookup used by compiler tests."""

    def __init__(self, tags: Optional[Dict[str, int]] = None, types: Optional[Dict[str, int]] = None) -> None:
        self.tags = dict(tags or {})
        self.types = dict(types or {})

    def lookup_tag_by_label(self, label: str) -> Optional[int]:
        return self.tags.get(label)

    def lookup_tag_type(self, symbol: str) -> Optional[int]:
        return self.types.get(symbol)

    def tag_type_symbols(self) -> FrozenSet[str]:
        return frozenset(self.types)


@pytest.fixture
def make_lookup():
    return FakeLookup


@pytest.fixture
def lookup():
    return FakeLookup(tags={"car": 1, "truck": 2, "vehicle": 3, "alice": 4, "t": 5}, types={"@": 7})


@pytest.fixture
def catalog():
    catalog = PictureCatalog(None)
    yield catalog
    catalog.close()


def _save_gradient(path: Path, reverse: bool = False, size=(90, 40)) -> Path:
    width, height = size
    row = np.linspace(0, 255, width).astype(np.uint8)
    if reverse:
        row = row[::-1]
    pixels = np.tile(row, (height, 1))
    rgb = np.stack([pixels] * 3, axis=-1)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(rgb).save(path)
    return path


def _save_solid(path: Path, color=(120, 30, 200), size=(40, 40)) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path)
    return path


@pytest.fixture
def gradient_image():
    """Write a left-dark/right-bright gradient image (or its mirror) to a path."""

    return _save_gradient


@pytest.fixture
def solid_image():
    return _save_solid
