# Path: core/hashing/__init__.py
# Purpose: Package initializer for perceptual hashing.
# Layer: core/hashing.
# Details: Exposes the dHash value type, similarity metric, and hash computation helpers.

from .dhash import SIMILARITY_THRESHOLD, Hash, HashDecodeError, Similarity, compute_hash, hash_image, similarity

__all__ = [
    "SIMILARITY_THRESHOLD",
    "Hash",
    "HashDecodeError",
    "Similarity",
    "compute_hash",
    "hash_image",
    "similarity",
]
