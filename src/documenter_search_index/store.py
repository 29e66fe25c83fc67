"""Immutable in-memory search index."""

import logging
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

from documenter_search_index.models import SearchRecord
from documenter_search_index.parser import SearchIndexParser

logger = logging.getLogger(__name__)


class QueryResult:
    """Lazy, restartable view of the records matching a term.

    Each iteration rescans the store, so the same query always yields the
    same ordered sequence: title matches first, then records matched only in
    their text, both in insertion order.
    """

    def __init__(self, records: tuple[SearchRecord, ...], term: str) -> None:
        """Initialise query result.

        Args:
            records: Records to scan.
            term: Query term, matched case-insensitively.
        """
        self._records = records
        self.term = term
        self._needle = term.casefold()

    def __iter__(self) -> Iterator[SearchRecord]:
        text_matches = []
        for record in self._records:
            if self._needle in record.title.casefold():
                yield record
            elif self._needle in record.text.casefold():
                text_matches.append(record)
        yield from text_matches

    def __repr__(self) -> str:
        return f"QueryResult(term={self.term!r})"


class SearchIndexStore:
    """Holds one snapshot of a search index and answers substring queries."""

    def __init__(self, records: Iterable[SearchRecord] = ()) -> None:
        """Initialise store from already validated records.

        Args:
            records: Records in display order.
        """
        self._records = tuple(records)

    @classmethod
    def load(cls, raw: str | bytes | Mapping[str, Any] | Iterable[Any]) -> "SearchIndexStore":
        """Parse a serialized index into a store.

        Args:
            raw: Serialized index, see ``SearchIndexParser.decode``.

        Returns:
            SearchIndexStore instance.

        Raises:
            MalformedIndex: If any part of the payload is invalid.
        """
        records = SearchIndexParser().decode(raw)
        logger.info("Loaded search index with %d records", len(records))
        return cls(records)

    @classmethod
    def from_path(cls, path: Path) -> "SearchIndexStore":
        """Load a store from a ``search_index.js`` file.

        Args:
            path: Path to the index file.

        Returns:
            SearchIndexStore instance.
        """
        return cls.load(path.read_bytes())

    @property
    def records(self) -> tuple[SearchRecord, ...]:
        """All records in insertion order."""
        return self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[SearchRecord]:
        return iter(self._records)

    def query(self, term: str) -> QueryResult:
        """Find records whose title or text contains a term.

        Args:
            term: Case-insensitive substring; empty matches every record.

        Returns:
            Lazy result, empty when nothing matches.
        """
        return QueryResult(self._records, term)

    def pages(self) -> list[str]:
        """Return distinct page names in order of first appearance."""
        return list(dict.fromkeys(record.page for record in self._records))

    def dumps(self) -> str:
        """Serialise the store back to Documenter's script format."""
        return SearchIndexParser().encode(self._records)


def load(raw: str | bytes | Mapping[str, Any] | Iterable[Any]) -> SearchIndexStore:
    """Parse a serialized index into a store.

    Args:
        raw: Serialized index.

    Returns:
        SearchIndexStore instance.
    """
    return SearchIndexStore.load(raw)
