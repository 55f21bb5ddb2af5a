# Path: core/search/pipeline.py
# Purpose: Orchestrate tag searches by compiling queries and running them against the catalog.
# Layer: core/search.
# Details: Compiles against an immutable catalog snapshot, then executes synchronously or on a worker thread.

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Mapping, Optional

from config.settings import QuerySettings
from core.catalog import PictureCatalog, QueryCancelledError
from core.models.domain import Picture, SimilarPicture
from core.query import PSEUDO_TAGS, CompiledQuery, PseudoTag, compile_query

logger = logging.getLogger(__name__)

SearchCancelledError = QueryCancelledError


@dataclass
class SearchHandle:
    """A search running on a worker thread."""

    query: CompiledQuery
    future: "Future[List[Picture]]"
    cancel_event: threading.Event

    def cancel(self) -> None:
        """Ask the running search to stop at the next fetched row."""

        self.cancel_event.set()
        self.future.cancel()

    def result(self, timeout: Optional[float] = None) -> List[Picture]:
        return self.future.result(timeout=timeout)


class SearchPipeline:
    """High-level service bridging API and scripts with the query compiler and the catalog."""

    def __init__(
        self,
        catalog: PictureCatalog,
        settings: Optional[QuerySettings] = None,
        pseudo_tags: Mapping[str, PseudoTag] = PSEUDO_TAGS,
        max_workers: int = 1,
    ) -> None:
        self.catalog = catalog
        self.settings = settings or QuerySettings()
        self.pseudo_tags = pseudo_tags
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="search")

    def compile(self, text: str) -> CompiledQuery:
        """
        Compile a tag query against a fresh snapshot of the catalog.

        External calls:
        - core/catalog/database.py::PictureCatalog.snapshot - copies tags, tag types, and definitions.
        - core/query/compiler.py::compile_query - parses, expands, prunes, and emits SQL.
        """

        snapshot = self.catalog.snapshot()
        return compile_query(
            text,
            snapshot.definitions,
            snapshot,
            pseudo_tags=self.pseudo_tags,
            case_sensitive_default=self.settings.case_sensitive_default,
            max_nodes=self.settings.max_nodes,
            prune_budget=self.settings.prune_budget,
            max_depth=self.settings.max_depth,
        )

    def search(self, text: str) -> List[Picture]:
        """Compile and run a query in the calling thread."""

        query = self.compile(text)
        return self.catalog.query_pictures(query)

    def submit(self, text: str) -> SearchHandle:
        """Compile a query in the calling thread and run it on a worker thread.

        Compilation errors are raised immediately; storage errors and
        cancellation surface through the returned handle.
        """

        query = self.compile(text)
        cancel_event = threading.Event()
        future = self._executor.submit(self._run, query, cancel_event)
        return SearchHandle(query=query, future=future, cancel_event=cancel_event)

    def _run(self, query: CompiledQuery, cancel_event: threading.Event) -> List[Picture]:
        try:
            return self.catalog.query_pictures(query, cancel=cancel_event)
        except QueryCancelledError:
            logger.info("Search %r cancelled", query.text)
            raise
        except Exception:
            logger.exception("Search %r failed", query.text)
            raise

    def similar_to(self, picture: Picture) -> List[SimilarPicture]:
        """Return the pictures similar to ``picture``, excluding itself."""

        if picture.hash is None:
            return []
        return self.catalog.get_similar_pictures(picture.hash, exclude=picture)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
