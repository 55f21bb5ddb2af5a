# Path: api/__init__.py
# Purpose: Package initializer for the HTTP search API.
# Layer: api.
# Details: Exposes the FastAPI application factory serving tag searches.

from .app import create_app

__all__ = ["create_app"]
