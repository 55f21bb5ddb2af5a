# Path: config/settings.py
# Purpose: Provide typed application configuration models.
# Layer: config.
# Details: Centralizes settings for the catalog location, query compilation, hashing, and logging.

import os
from pathlib import Path

from pydantic import BaseModel, Field

ENV_PREFIX = "IMGTAGDB_"


class QuerySettings(BaseModel):
    """Settings controlling tag query compilation."""

    max_nodes: int = Field(default=1000, gt=0, description="Maximum node count of an expanded query.")
    case_sensitive_default: bool = Field(
        default=False, description="Case sensitivity of pattern pseudo-tags without an explicit flag."
    )
    prune_budget: int = Field(
        default=4096, ge=0, description="Maximum split steps spent proving a query unsatisfiable."
    )
    max_depth: int = Field(
        default=200, gt=0, description="Maximum nesting of an expanded query, counting each definition substitution."
    )


class HashSettings(BaseModel):
    """Settings controlling perceptual hash computation."""

    workers: int = Field(default=4, gt=0, description="Number of threads used to hash pictures.")
    recompute_all: bool = Field(default=False, description="Recompute hashes of pictures that already have one.")


class AppSettings(BaseModel):
    """Top-level application settings shared across services and interfaces."""

    image_folder: Path = Field(default=Path("storage/images"), description="Root folder containing user images.")
    database_path: Path = Field(default=Path("storage/db/catalog.sqlite3"), description="Path to the picture catalog.")
    batch_size: int = Field(default=8, gt=0, description="Number of pictures imported per batch.")
    search_workers: int = Field(default=1, gt=0, description="Worker threads running catalog searches.")
    query: QuerySettings = Field(default_factory=QuerySettings)
    hashing: HashSettings = Field(default_factory=HashSettings)
    api_enabled: bool = Field(default=False, description="Flag indicating if the HTTP API should be initialized.")
    log_level: str = Field(default="INFO", description="Verbosity level for application logs.")

    @classmethod
    def from_env(cls) -> "AppSettings":
        """Instantiate settings, applying IMGTAGDB_* environment overrides when present."""

        overrides = {}
        for name in ("image_folder", "database_path", "batch_size", "search_workers", "log_level"):
            value = os.environ.get(ENV_PREFIX + name.upper())
            if value is not None:
                overrides[name] = value
        query = {}
        for name in ("max_nodes", "case_sensitive_default", "prune_budget", "max_depth"):
            value = os.environ.get(f"{ENV_PREFIX}QUERY_{name.upper()}")
            if value is not None:
                query[name] = value
        if query:
            overrides["query"] = query
        return cls.model_validate(overrides)


__all__ = ["AppSettings", "HashSettings", "QuerySettings"]
