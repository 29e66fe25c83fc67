"""SQLite FTS5 database operations for Documenter search indexes."""

import logging
import re
import sqlite3
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from pathlib import Path

from documenter_search_index.models import Category, SearchRecord, SearchResult
from documenter_search_index.store import SearchIndexStore

logger = logging.getLogger(__name__)


class SearchIndexDatabase:
    """Manages the SQLite FTS5 mirror of one or more documentation versions."""

    def __init__(self, db_path: Path, base_url: str = "") -> None:
        """Initialise database with the given path.

        Args:
            db_path: Path to the SQLite database file.
            base_url: Root URL of the deployed documentation site, used for result links.
        """
        self.db_path = db_path
        self.base_url = base_url
        self._initialise_schema()

    @staticmethod
    def _sanitise_query(query: str) -> str:
        """Sanitise user query for FTS5 MATCH clause.

        FTS5 barewords may only contain letters, digits and underscores, and
        AND/OR/NOT are operators. Anything else is quoted as a literal phrase.

        Args:
            query: Raw user query string.

        Returns:
            Sanitised query string safe for FTS5 MATCH.
        """
        fts5_operators = re.compile(r"\b(AND|OR|NOT|NEAR)\b", re.IGNORECASE)

        if re.search(r"[^\w\s]", query) or fts5_operators.search(query):
            query = query.replace('"', '""')
            return f'"{query}"'

        return query

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections.

        Yields:
            SQLite connection with Row factory enabled.
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _initialise_schema(self) -> None:
        """Create database schema if it doesn't exist."""
        with self._get_connection() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    version TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    location TEXT NOT NULL,
                    page TEXT NOT NULL,
                    title TEXT NOT NULL,
                    text TEXT NOT NULL,
                    category TEXT NOT NULL,
                    UNIQUE (version, position)
                );

                CREATE VIRTUAL TABLE IF NOT EXISTS records_fts USING fts5(
                    title,
                    text,
                    content='records',
                    content_rowid='id',
                    tokenize='porter unicode61'
                );

                CREATE TRIGGER IF NOT EXISTS records_ai AFTER INSERT ON records BEGIN
                    INSERT INTO records_fts(rowid, title, text)
                    VALUES (new.id, new.title, new.text);
                END;

                CREATE TRIGGER IF NOT EXISTS records_ad AFTER DELETE ON records BEGIN
                    INSERT INTO records_fts(records_fts, rowid, title, text)
                    VALUES ('delete', old.id, old.title, old.text);
                END;

                CREATE INDEX IF NOT EXISTS idx_records_version ON records(version);
            """)
            conn.commit()

    def replace_version(self, version: str, records: Iterable[SearchRecord]) -> int:
        """Replace the stored snapshot of a documentation version.

        Args:
            version: Version directory, e.g. ``dev`` or ``previews/PR9``.
            records: Records of the new snapshot in display order.

        Returns:
            Number of records stored.
        """
        rows = [
            (version, position, r.location, r.page, r.title, r.text, r.category.value)
            for position, r in enumerate(records)
        ]
        with self._get_connection() as conn:
            conn.execute("DELETE FROM records WHERE version = ?", (version,))
            conn.executemany(
                """
                INSERT INTO records (version, position, location, page, title, text, category)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
            conn.commit()
        logger.debug("Stored %d records for version '%s'", len(rows), version)
        return len(rows)

    def search(
        self,
        query: str,
        version: str | None = None,
        category: Category | str | None = None,
        limit: int = 10,
    ) -> list[SearchResult]:
        """Search records using FTS5.

        Args:
            query: Search query string.
            version: Optional version filter.
            category: Optional category filter.
            limit: Maximum number of results.

        Returns:
            List of SearchResult instances ordered by relevance.
        """
        if not query.strip():
            return []

        sanitised_query = self._sanitise_query(query)

        with self._get_connection() as conn:
            sql = """
                SELECT
                    r.version,
                    r.position,
                    r.location,
                    r.page,
                    r.title,
                    r.category,
                    snippet(records_fts, 1, '<mark>', '</mark>', '...', 32) as snippet,
                    bm25(records_fts, 5.0, 1.0) as score
                FROM records_fts
                JOIN records r ON records_fts.rowid = r.id
                WHERE records_fts MATCH ?
            """
            params: list[str | int] = [sanitised_query]

            if version is not None:
                sql += " AND r.version = ?"
                params.append(version)

            if category is not None:
                sql += " AND r.category = ?"
                params.append(Category(category).value)

            sql += " ORDER BY score, r.version, r.position LIMIT ?"
            params.append(limit)

            cursor = conn.execute(sql, params)
            results = []
            for row in cursor.fetchall():
                results.append(
                    SearchResult(
                        version=row["version"],
                        location=row["location"],
                        page=row["page"],
                        title=row["title"],
                        category=Category(row["category"]),
                        url=self._version_url(row["version"], row["location"]),
                        snippet=row["snippet"],
                        score=abs(row["score"]),  # BM25 returns negative scores
                    )
                )
            return results

    def load_store(self, version: str) -> SearchIndexStore | None:
        """Rebuild the in-memory store of a version.

        Args:
            version: Version directory.

        Returns:
            SearchIndexStore with records in original order, or None if the version is unknown.
        """
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                SELECT location, page, title, text, category FROM records
                WHERE version = ? ORDER BY position
                """,
                (version,),
            )
            rows = cursor.fetchall()
        if not rows:
            return None
        return SearchIndexStore(
            SearchRecord(
                location=row["location"],
                page=row["page"],
                title=row["title"],
                text=row["text"],
                category=Category(row["category"]),
            )
            for row in rows
        )

    def versions(self) -> list[str]:
        """Return the stored versions in sorted order."""
        with self._get_connection() as conn:
            cursor = conn.execute("SELECT DISTINCT version FROM records ORDER BY version")
            return [row["version"] for row in cursor.fetchall()]

    def clear(self) -> None:
        """Clear all records from the database."""
        with self._get_connection() as conn:
            conn.execute("DELETE FROM records")
            conn.commit()

    def get_record_count(self, version: str | None = None) -> int:
        """Return the number of stored records.

        Args:
            version: Optional version to count; all versions when omitted.

        Returns:
            Count of records in the database.
        """
        with self._get_connection() as conn:
            if version is None:
                cursor = conn.execute("SELECT COUNT(*) FROM records")
            else:
                cursor = conn.execute("SELECT COUNT(*) FROM records WHERE version = ?", (version,))
            result = cursor.fetchone()
            return int(result[0]) if result else 0

    def _version_url(self, version: str, location: str) -> str:
        """Compute the link to a record of a given version.

        Args:
            version: Version directory.
            location: Record location relative to the version root.

        Returns:
            URL, relative when no base URL is configured.
        """
        prefix = "/".join(part.strip("/") for part in (self.base_url, version) if part)
        return f"{prefix}/{location}" if prefix else location
