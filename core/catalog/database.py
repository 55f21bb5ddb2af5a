# Path: core/catalog/database.py
# Purpose: Persist pictures, tags, and tag types in SQLite and execute compiled tag queries.
# Layer: core/catalog.
# Details: Implements the read-only lookups used by the query compiler and cooperative query cancellation.

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Set

from core.hashing import Hash
from core.models.domain import Picture, SimilarPicture, Tag, TagType
from core.query import PSEUDO_TAGS, CompiledQuery, is_label_valid, is_symbol_valid, parse

from .sql_functions import register_functions

logger = logging.getLogger(__name__)

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS tag_types (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        label TEXT NOT NULL UNIQUE,
        symbol TEXT NOT NULL UNIQUE,
        color INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tags (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        label TEXT NOT NULL UNIQUE,
        type_id INTEGER REFERENCES tag_types(id) ON DELETE SET NULL,
        definition TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pictures (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        path TEXT NOT NULL UNIQUE,
        hash INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS picture_tag (
        picture_id INTEGER NOT NULL REFERENCES pictures(id) ON DELETE CASCADE,
        tag_id INTEGER NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
        PRIMARY KEY (picture_id, tag_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_picture_tag_tag ON picture_tag(tag_id)",
    "CREATE INDEX IF NOT EXISTS idx_pictures_hash ON pictures(hash)",
)

SELECT_SIMILAR_PICTURES_QUERY = """
    SELECT id, path, hash, SIMILARITY_CONFIDENCE(hash, ?1) AS confidence
    FROM pictures
    WHERE id != ?2
      AND hash IS NOT NULL
      AND SIMILAR_HASHES(hash, ?1) = 1
    ORDER BY confidence DESC, path
"""


class CatalogError(Exception):
    """Raised when a catalog operation would break a data invariant."""


class QueryCancelledError(Exception):
    """Raised when a running picture query is cancelled by its caller."""


@dataclass(frozen=True)
class CatalogSnapshot:
    """Immutable copy of the tag data a query compilation needs.

    Implements the compiler's ``TagLookup`` protocol without touching the
    database, so it can be used from any thread.
    """

    tag_ids: Mapping[str, int] = field(default_factory=dict)
    type_ids: Mapping[str, int] = field(default_factory=dict)
    definitions: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("tag_ids", "type_ids", "definitions"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    def lookup_tag_by_label(self, label: str) -> Optional[int]:
        return self.tag_ids.get(label)

    def lookup_tag_type(self, symbol: str) -> Optional[int]:
        return self.type_ids.get(symbol)

    def tag_type_symbols(self) -> FrozenSet[str]:
        return frozenset(self.type_ids)

    def definition_of(self, label: str) -> Optional[str]:
        return self.definitions.get(label)


class PictureCatalog:
    """Access point to an SQLite catalog of tagged pictures.

    Pass ``None`` as path to keep the catalog in memory. A single connection is
    shared and guarded by a lock so queries may run on worker threads.
    """

    def __init__(self, path: Optional[Path | str] = None) -> None:
        self.path = Path(path) if path is not None else None
        name = str(self.path) if self.path is not None else ":memory:"
        logger.info("Connecting to catalog at %s", name)
        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._conn = self._connect_sqlite(name)
        self._ensure_schema()
        logger.info("Catalog connection established.")

    # SQLite helpers
    @staticmethod
    def _connect_sqlite(name: str) -> sqlite3.Connection:
        """Create a SQLite connection with foreign keys enabled and custom functions injected."""

        conn = sqlite3.connect(name, check_same_thread=False)
        conn.execute("PRAGMA foreign_keys = ON")
        register_functions(conn)
        return conn

    def _ensure_schema(self) -> None:
        with self._lock, self._conn:
            for statement in SCHEMA:
                self._conn.execute(statement)

    def close(self) -> None:
        with self._lock:
            self._conn.close()
        logger.info("Catalog connection closed.")

    def __enter__(self) -> "PictureCatalog":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Tag types
    def insert_tag_type(self, label: str, symbol: str, color: int = 0) -> TagType:
        """Create a tag type; its symbol becomes a label prefix in queries."""

        if not is_symbol_valid(symbol):
            raise CatalogError(f"Invalid tag type symbol: {symbol!r}")
        with self._lock, self._conn:
            cursor = self._conn.execute(
                "INSERT INTO tag_types (label, symbol, color) VALUES (?, ?, ?)",
                (label, symbol, color),
            )
        return TagType(id=int(cursor.lastrowid), label=label, symbol=symbol, color=color)

    def get_tag_types(self) -> List[TagType]:
        with self._lock:
            rows = self._conn.execute("SELECT id, label, symbol, color FROM tag_types ORDER BY id").fetchall()
        return [TagType(id=row[0], label=row[1], symbol=row[2], color=row[3]) for row in rows]

    # Tags
    def insert_tag(self, label: str, type_id: Optional[int] = None, definition: Optional[str] = None) -> Tag:
        """Create a tag. A tag with a definition is compound and cannot be attached to pictures."""

        if not is_label_valid(label):
            raise CatalogError(f"Invalid tag label: {label!r}")
        if definition is not None:
            self._check_definition(definition)
        with self._lock, self._conn:
            cursor = self._conn.execute(
                "INSERT INTO tags (label, type_id, definition) VALUES (?, ?, ?)",
                (label, type_id, definition),
            )
        return Tag(id=int(cursor.lastrowid), label=label, type_id=type_id, definition=definition)

    def set_tag_definition(self, tag_id: int, definition: Optional[str]) -> None:
        """Change the definition of a tag; only tags not attached to any picture may get one."""

        if definition is not None:
            self._check_definition(definition)
            if self._is_tag_used(tag_id):
                raise CatalogError(f"Tag {tag_id} is attached to pictures and cannot become compound")
        with self._lock, self._conn:
            self._conn.execute("UPDATE tags SET definition = ? WHERE id = ?", (definition, tag_id))

    def _check_definition(self, definition: str) -> None:
        parse(definition, type_symbols=self.tag_type_symbols(), pseudo_tags=PSEUDO_TAGS)

    def _is_tag_used(self, tag_id: int) -> bool:
        with self._lock:
            row = self._conn.execute("SELECT 1 FROM picture_tag WHERE tag_id = ? LIMIT 1", (tag_id,)).fetchone()
        return row is not None

    def get_tags(self) -> List[Tag]:
        with self._lock:
            rows = self._conn.execute("SELECT id, label, type_id, definition FROM tags ORDER BY id").fetchall()
        return [Tag(id=row[0], label=row[1], type_id=row[2], definition=row[3]) for row in rows]

    # Lookups consumed by the query compiler
    def lookup_tag_by_label(self, label: str) -> Optional[int]:
        with self._lock:
            row = self._conn.execute("SELECT id FROM tags WHERE label = ?", (label,)).fetchone()
        return row[0] if row else None

    def lookup_tag_type(self, symbol: str) -> Optional[int]:
        with self._lock:
            row = self._conn.execute("SELECT id FROM tag_types WHERE symbol = ?", (symbol,)).fetchone()
        return row[0] if row else None

    def tag_type_symbols(self) -> FrozenSet[str]:
        with self._lock:
            rows = self._conn.execute("SELECT symbol FROM tag_types").fetchall()
        return frozenset(row[0] for row in rows)

    def definition_of(self, label: str) -> Optional[str]:
        with self._lock:
            row = self._conn.execute("SELECT definition FROM tags WHERE label = ?", (label,)).fetchone()
        return row[0] if row else None

    def tag_definitions(self) -> Dict[str, str]:
        """Return a copy of the label -> definition map of all compound tags."""

        with self._lock:
            rows = self._conn.execute("SELECT label, definition FROM tags WHERE definition IS NOT NULL").fetchall()
        return {label: definition for label, definition in rows}

    def snapshot(self) -> CatalogSnapshot:
        """Take an immutable snapshot of tags, tag types, and definitions for compilation."""

        with self._lock:
            tags = self._conn.execute("SELECT label, id, definition FROM tags").fetchall()
            types = self._conn.execute("SELECT symbol, id FROM tag_types").fetchall()
        return CatalogSnapshot(
            tag_ids={label: tag_id for label, tag_id, _ in tags},
            type_ids={symbol: type_id for symbol, type_id in types},
            definitions={label: definition for label, _, definition in tags if definition is not None},
        )

    # Pictures
    def insert_picture(self, path: Path | str, hash: Optional[Hash] = None) -> Picture:
        path = Path(path)
        with self._lock, self._conn:
            cursor = self._conn.execute(
                "INSERT INTO pictures (path, hash) VALUES (?, ?)",
                (str(path), hash.to_signed() if hash is not None else None),
            )
        return Picture(id=int(cursor.lastrowid), path=path, hash=hash)

    def update_picture_hash(self, picture_id: int, hash: Optional[Hash]) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE pictures SET hash = ? WHERE id = ?",
                (hash.to_signed() if hash is not None else None, picture_id),
            )

    def get_picture(self, picture_id: int) -> Optional[Picture]:
        with self._lock:
            row = self._conn.execute("SELECT id, path, hash FROM pictures WHERE id = ?", (picture_id,)).fetchone()
        return self._picture_from_row(row) if row else None

    def get_picture_by_path(self, path: Path | str) -> Optional[Picture]:
        with self._lock:
            row = self._conn.execute("SELECT id, path, hash FROM pictures WHERE path = ?", (str(path),)).fetchone()
        return self._picture_from_row(row) if row else None

    def is_file_registered(self, path: Path | str) -> bool:
        return self.get_picture_by_path(path) is not None

    def iter_pictures(self, missing_hash_only: bool = False) -> Iterator[Picture]:
        sql = "SELECT id, path, hash FROM pictures"
        if missing_hash_only:
            sql += " WHERE hash IS NULL"
        with self._lock:
            rows = self._conn.execute(sql + " ORDER BY id").fetchall()
        for row in rows:
            yield self._picture_from_row(row)

    def attach_tags(self, picture_id: int, tag_ids: Iterable[int]) -> None:
        """Attach leaf tags to a picture; compound tags are rejected."""

        tag_ids = list(tag_ids)
        with self._lock, self._conn:
            for tag_id in tag_ids:
                row = self._conn.execute("SELECT definition FROM tags WHERE id = ?", (tag_id,)).fetchone()
                if row is None:
                    raise CatalogError(f"Tag {tag_id} does not exist")
                if row[0] is not None:
                    raise CatalogError(f"Tag {tag_id} is compound and cannot be attached to a picture")
                self._conn.execute(
                    "INSERT OR IGNORE INTO picture_tag (picture_id, tag_id) VALUES (?, ?)",
                    (picture_id, tag_id),
                )

    def detach_tags(self, picture_id: int, tag_ids: Iterable[int]) -> None:
        with self._lock, self._conn:
            self._conn.executemany(
                "DELETE FROM picture_tag WHERE picture_id = ? AND tag_id = ?",
                [(picture_id, tag_id) for tag_id in tag_ids],
            )

    def get_picture_tags(self, picture_id: int) -> Set[Tag]:
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT t.id, t.label, t.type_id, t.definition
                FROM tags AS t
                JOIN picture_tag AS pt ON pt.tag_id = t.id
                WHERE pt.picture_id = ?
                """,
                (picture_id,),
            ).fetchall()
        return {Tag(id=row[0], label=row[1], type_id=row[2], definition=row[3]) for row in rows}

    # Queries
    def query_pictures(self, query: CompiledQuery, cancel: Optional[threading.Event] = None) -> List[Picture]:
        """Run a compiled tag query.

        A query proven empty returns immediately. ``cancel`` is polled between
        fetched rows; once set, QueryCancelledError is raised.
        """

        sql = query.query_text()
        if sql is None:
            logger.debug("Query %r is provably empty", query.text)
            return []

        pictures: List[Picture] = []
        with self._lock:
            cursor = self._conn.execute(sql)
            try:
                for row in cursor:
                    if cancel is not None and cancel.is_set():
                        raise QueryCancelledError(f"Query {query.text!r} was cancelled")
                    pictures.append(self._picture_from_row(row))
            finally:
                cursor.close()
        logger.debug("Query %r matched %d pictures", query.text, len(pictures))
        return pictures

    def get_similar_pictures(self, hash: Hash, exclude: Optional[Picture] = None) -> List[SimilarPicture]:
        """Return pictures whose hash is similar to ``hash``, most confident first."""

        exclude_id = exclude.id if exclude is not None else -1
        with self._lock:
            rows = self._conn.execute(SELECT_SIMILAR_PICTURES_QUERY, (hash.to_signed(), exclude_id)).fetchall()
        results = []
        for row in rows:
            picture = self._picture_from_row(row[:3])
            distance = hash.hamming_distance(picture.hash) if picture.hash is not None else 64
            results.append(SimilarPicture(picture=picture, distance=distance, confidence=float(row[3])))
        return results

    @staticmethod
    def _picture_from_row(row) -> Picture:
        return Picture(
            id=int(row[0]),
            path=Path(row[1]),
            hash=Hash.from_signed(row[2]) if row[2] is not None else None,
        )


__all__ = ["PictureCatalog", "CatalogSnapshot", "CatalogError", "QueryCancelledError"]
