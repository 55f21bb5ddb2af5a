# Path: api/app.py
# Purpose: Expose a FastAPI application for tag query search operations.
# Layer: api.
# Details: Provides health checks, a tag query search endpoint, and a similar-pictures endpoint.

from __future__ import annotations

from typing import Any, Dict, Optional

from core.query import InvalidPseudoTagError, TagQueryError, TagQuerySyntaxError, TagQueryTooLargeError
from core.search.pipeline import SearchPipeline


def _error_kind(exc: TagQueryError) -> str:
    if isinstance(exc, TagQuerySyntaxError):
        return "syntax_error"
    if isinstance(exc, InvalidPseudoTagError):
        return "invalid_pseudo_tag"
    if isinstance(exc, TagQueryTooLargeError):
        return "too_large"
    return "query_error"


def create_app(pipeline: Optional[SearchPipeline] = None):  # type: ignore[override]
    """Create a FastAPI app instance configured with the provided search pipeline."""

    from fastapi import FastAPI, HTTPException

    app = FastAPI(title="ImgTagDB API", version="0.1.0")

    @app.get("/health")
    def health() -> Dict[str, str]:
        """Return a simple health status payload."""

        return {"status": "ok"}

    @app.post("/search")
    def search(payload: Dict[str, Any]):
        """Run a tag query using the configured pipeline."""

        if pipeline is None:
            raise HTTPException(status_code=500, detail="Search pipeline is not configured.")

        text = str(payload.get("query") or "").strip()
        if not text:
            raise HTTPException(status_code=400, detail={"kind": "syntax_error", "message": "Query cannot be empty"})
        try:
            compiled = pipeline.compile(text)
        except TagQueryError as exc:
            detail = {"kind": _error_kind(exc), "message": str(exc)}
            if isinstance(exc, InvalidPseudoTagError):
                detail["pseudo_tag"] = exc.name
            raise HTTPException(status_code=400, detail=detail) from exc

        pictures = pipeline.catalog.query_pictures(compiled)
        return {"results": [picture.to_dict() for picture in pictures], "pruned": compiled.is_empty}

    @app.post("/similar")
    def similar(payload: Dict[str, Any]):
        """Return pictures similar to the registered picture at the given path."""

        if pipeline is None:
            raise HTTPException(status_code=500, detail="Search pipeline is not configured.")

        picture = pipeline.catalog.get_picture_by_path(str(payload.get("path", "")))
        if picture is None:
            raise HTTPException(status_code=404, detail="Picture is not registered.")
        return {"results": [item.to_dict() for item in pipeline.similar_to(picture)]}

    return app
