# Path: core/models/domain.py
# Purpose: Define domain models shared across the catalog, query, and search workflows.
# Layer: core/models.
# Details: Lightweight dataclasses simplify serialization between API, scripts, and core services.

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from core.hashing import Hash


@dataclass(frozen=True)
class TagType:
    """Category of tags, referenced in queries by its single-character symbol."""

    id: int
    label: str
    symbol: str
    color: int = 0


@dataclass(frozen=True)
class Tag:
    """A tag label, optionally typed; compound tags carry a definition."""

    id: int
    label: str
    type_id: Optional[int] = None
    definition: Optional[str] = None

    @property
    def is_compound(self) -> bool:
        return self.definition is not None


@dataclass(frozen=True)
class Picture:
    """A picture registered in the catalog."""

    id: int
    path: Path
    hash: Optional[Hash] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "path": str(self.path),
            "hash": str(self.hash) if self.hash is not None else None,
        }


@dataclass(frozen=True)
class SimilarPicture:
    """A picture whose hash is close to a reference hash."""

    picture: Picture
    distance: int
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {**self.picture.to_dict(), "distance": self.distance, "confidence": self.confidence}
