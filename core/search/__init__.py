# Path: core/search/__init__.py
# Purpose: Package initializer for search orchestration.
# Layer: core/search.
# Details: Exposes the tag search pipeline and its asynchronous search handle.

from .pipeline import SearchCancelledError, SearchHandle, SearchPipeline

__all__ = [
    "SearchCancelledError",
    "SearchHandle",
    "SearchPipeline",
]
