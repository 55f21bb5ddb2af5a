# Path: core/models/__init__.py
# Purpose: Package initializer for domain models.
# Layer: core/models.
# Details: Provides dataclasses for pictures, tags, and tag types.

from .domain import Picture, SimilarPicture, Tag, TagType

__all__ = ["Picture", "SimilarPicture", "Tag", "TagType"]
