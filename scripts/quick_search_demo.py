# Path: scripts/quick_search_demo.py
# Purpose: Simple CLI to run a tag query against a picture catalog.
# Layer: scripts.
# Details: Compiles the query, optionally prints the generated SQL, and lists matching pictures.

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import AppSettings
from core.catalog import PictureCatalog
from core.query import InvalidPseudoTagError, TagQuerySyntaxError, TagQueryTooLargeError
from core.search.pipeline import SearchPipeline


def main() -> int:
    """Execute a tag query from the command line."""

    parser = argparse.ArgumentParser(description="Run a tag query against an ImgTagDB catalog")
    parser.add_argument("query", type=str, help="Tag query to run")
    parser.add_argument("--database", type=Path, default=None, help="Path to the catalog database")
    parser.add_argument("--show-sql", action="store_true", help="Print the compiled SQL query")
    args = parser.parse_args()

    settings = AppSettings.from_env()
    if args.database is not None:
        settings.database_path = args.database
    logging.basicConfig(level=settings.log_level)

    with PictureCatalog(settings.database_path) as catalog:
        pipeline = SearchPipeline(catalog, settings=settings.query, max_workers=settings.search_workers)
        try:
            compiled = pipeline.compile(args.query)
        except TagQueryTooLargeError:
            print("Query is too large or tag definitions are recursive.", file=sys.stderr)
            return 2
        except TagQuerySyntaxError as exc:
            print(f"Syntax error: {exc}", file=sys.stderr)
            return 2
        except InvalidPseudoTagError as exc:
            print(f"Invalid pseudo-tag: {exc.name}", file=sys.stderr)
            return 2
        finally:
            pipeline.shutdown()

        if args.show_sql:
            print(compiled.query_text() or "-- query can never match")
        pictures = catalog.query_pictures(compiled)

    for picture in pictures:
        print(f"id={picture.id} hash={picture.hash or 'n/a'} path={picture.path}")
    print(f"{len(pictures)} pictures")
    return 0


if __name__ == "__main__":
    sys.exit(main())
