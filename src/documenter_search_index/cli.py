"""Command line interface for querying and indexing Documenter search indexes."""

import argparse
import itertools
import json
import logging
import sqlite3
import sys
from collections.abc import Sequence
from pathlib import Path

from documenter_search_index.config import Settings, get_settings
from documenter_search_index.database import SearchIndexDatabase
from documenter_search_index.indexer import DocumenterSiteIndexer
from documenter_search_index.models import Category, MalformedIndex
from documenter_search_index.store import SearchIndexStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with its sub-commands."""
    parser = argparse.ArgumentParser(prog="documenter-search", description="Query Documenter search indexes")
    parser.add_argument("--db", type=Path, default=None, help="SQLite database (overrides settings)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    query = subparsers.add_parser("query", help="query a single search_index.js file")
    query.add_argument("file", type=Path)
    query.add_argument("term")
    query.add_argument("--limit", type=int, default=None, help="maximum number of records to print")
    query.add_argument("--json", action="store_true", help="print records as JSON")

    index = subparsers.add_parser("index", help="load a built site into the database")
    index.add_argument("site_path", type=Path, nargs="?", default=None)
    index.add_argument("--git", dest="repository", default=None, help="clone the site from this repository")
    index.add_argument("--branch", default=None, help="branch holding the built site")
    index.add_argument("--rebuild", action="store_true", help="clear the database first")

    search = subparsers.add_parser("search", help="full-text search the database")
    search.add_argument("term")
    search.add_argument("--version", dest="doc_version", default=None)
    search.add_argument("--category", choices=[c.value for c in Category], default=None)
    search.add_argument("--limit", type=int, default=10)

    return parser


def _run_query(args: argparse.Namespace, settings: Settings) -> int:
    store = SearchIndexStore.from_path(args.file)
    records = list(itertools.islice(store.query(args.term), args.limit))
    if args.json:
        print(json.dumps([record.to_dict() for record in records], ensure_ascii=False, indent=2))
        return 0
    for record in records:
        print(f"[{record.category.value}] {record.title}  {record.url(settings.site_url)}")
    return 0


def _run_index(args: argparse.Namespace, settings: Settings, database: SearchIndexDatabase) -> int:
    indexer = DocumenterSiteIndexer(database, settings.index_filename)
    repository = args.repository or (None if args.site_path else settings.repository)
    branch = args.branch or settings.branch

    if args.rebuild:
        database.clear()

    if repository:
        indexed = indexer.index_from_git(repository, branch)
    elif args.site_path:
        indexed = indexer.index_from_path(args.site_path)
    else:
        logger.error("Provide a site path or a repository to index")
        return 1

    for version, count in indexed.items():
        print(f"{version or '.'}: {count} records")
    return 0


def _run_search(args: argparse.Namespace, database: SearchIndexDatabase) -> int:
    results = database.search(args.term, version=args.doc_version, category=args.category, limit=args.limit)
    for result in results:
        print(f"{result.score:.3f}  [{result.version or '.'}] {result.title}  {result.url}")
        print(f"    {result.snippet}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line interface.

    Args:
        argv: Arguments, ``sys.argv[1:]`` when omitted.

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "query":
            return _run_query(args, settings)
        database = SearchIndexDatabase(args.db or settings.db_path, base_url=settings.site_url)
        if args.command == "index":
            return _run_index(args, settings, database)
        return _run_search(args, database)
    except MalformedIndex as exc:
        logger.error("Malformed search index: %s", exc)
        return 1
    except (OSError, ValueError, sqlite3.Error) as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
