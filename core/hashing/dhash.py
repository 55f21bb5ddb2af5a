# Path: core/hashing/dhash.py
# Purpose: Compute 64-bit difference hashes of images and compare them.
# Layer: core/hashing.
# Details: dHash over a 9x8 grayscale thumbnail via imagehash; similarity is Hamming distance plus confidence.

"""Perceptual difference hash (dHash).

The image is resampled to 9 columns by 8 rows and converted to grayscale with
the ITU-R 601-2 luma weights (0.299, 0.587, 0.114). For every row, bit
``p = 8 * y + x`` is set when pixel ``x`` is strictly darker than pixel
``x + 1``. See http://www.hackerfactor.com/blog/index.php?/archives/529-Kind-of-Like-That.html
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

import imagehash
import numpy as np
from PIL import Image, UnidentifiedImageError

HASH_SIZE = 8

# Hamming distance at or under which two hashes are considered similar.
SIMILARITY_THRESHOLD = 10

_MASK = (1 << 64) - 1


class HashDecodeError(Exception):
    """Raised when an image cannot be read or decoded."""


@dataclass(frozen=True)
class Similarity:
    """Hamming distance between two hashes and the derived confidence index."""

    distance: int
    confidence: float

    @property
    def is_similar(self) -> bool:
        return self.distance <= SIMILARITY_THRESHOLD


@dataclass(frozen=True)
class Hash:
    """An unsigned 64-bit dHash value."""

    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value <= _MASK:
            raise ValueError(f"Hash value out of 64-bit range: {self.value}")

    @classmethod
    def from_signed(cls, value: int) -> "Hash":
        """Build a hash from its signed 64-bit storage representation."""

        return cls(value & _MASK)

    def to_signed(self) -> int:
        """Return the signed 64-bit representation used by SQLite INTEGER columns."""

        return self.value - (1 << 64) if self.value >= 1 << 63 else self.value

    def hamming_distance(self, other: "Hash") -> int:
        return bin(self.value ^ other.value).count("1")

    def similarity(self, other: "Hash") -> Similarity:
        """Compare this hash with ``other``.

        The confidence is ``(11 - d - 0.1) / 11`` for a distance ``d`` up to the
        threshold and 0 beyond it. 0.1 is subtracted because even identical
        hashes do not prove identical images; 11 is used instead of 10 so the
        confidence stays positive at the threshold.
        """

        distance = self.hamming_distance(other)
        if distance > SIMILARITY_THRESHOLD:
            return Similarity(distance=distance, confidence=0.0)
        confidence = ((SIMILARITY_THRESHOLD + 1) - distance - 0.1) / (SIMILARITY_THRESHOLD + 1)
        return Similarity(distance=distance, confidence=confidence)

    def __str__(self) -> str:
        return f"{self.value:016x}"


def similarity(a: Hash, b: Hash) -> Similarity:
    """Return the similarity between two hashes."""

    return a.similarity(b)


def hash_image(image: Image.Image) -> Hash:
    """Compute the dHash of an already opened image."""

    diff = imagehash.dhash(image.convert("RGB"), hash_size=HASH_SIZE)
    bits = np.asarray(diff.hash, dtype=bool).flatten()
    packed = np.packbits(bits, bitorder="little")
    return Hash(int.from_bytes(packed.tobytes(), "little"))


def compute_hash(source: Union[Path, str, Image.Image]) -> Hash:
    """Compute the dHash of an image file or image object.

    Raises:
        HashDecodeError: If the file cannot be read or is not a decodable image.
    """

    if isinstance(source, Image.Image):
        return hash_image(source)
    try:
        with Image.open(source) as img:
            img.load()
            return hash_image(img)
    except (UnidentifiedImageError, OSError) as exc:
        raise HashDecodeError(f"Could not read image at {source}: {exc}") from exc


__all__ = [
    "Hash",
    "HashDecodeError",
    "Similarity",
    "SIMILARITY_THRESHOLD",
    "compute_hash",
    "hash_image",
    "similarity",
]
