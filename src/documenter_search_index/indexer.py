"""Indexer for built Documenter sites, local or on a git ``gh-pages`` branch."""

import logging
import os
import subprocess
import tempfile
from pathlib import Path

from documenter_search_index.database import SearchIndexDatabase
from documenter_search_index.models import MalformedIndex
from documenter_search_index.store import SearchIndexStore

logger = logging.getLogger(__name__)


class DocumenterSiteIndexer:
    """Loads every deployed version of a Documenter site into the database."""

    INDEX_FILENAME = "search_index.js"

    def __init__(self, database: SearchIndexDatabase, index_filename: str = INDEX_FILENAME) -> None:
        """Initialise indexer with database instance.

        Args:
            database: SearchIndexDatabase instance for storing records.
            index_filename: Name of the search index file in each version directory.
        """
        self.database = database
        self.index_filename = index_filename

    def index_from_git(self, repository: str, branch: str = "gh-pages", shallow: bool = True) -> dict[str, int]:
        """Clone the site branch of a repository and index it.

        Args:
            repository: Git URL of the repository hosting the built site.
            branch: Branch holding the built site.
            shallow: Whether to do a shallow clone.

        Returns:
            Number of records indexed per version.
        """
        with tempfile.TemporaryDirectory() as temp_dir:
            site_path = Path(temp_dir) / "site"
            self._clone_repository(repository, site_path, branch, shallow)
            return self._index_directory(site_path)

    def index_from_path(self, site_path: Path) -> dict[str, int]:
        """Index a built site from a local path.

        Args:
            site_path: Root directory of the built site.

        Returns:
            Number of records indexed per version.
        """
        return self._index_directory(site_path)

    def _clone_repository(self, repository: str, target_path: Path, branch: str, shallow: bool) -> None:
        """Clone the documentation site branch.

        Args:
            repository: Git URL to clone.
            target_path: Directory to clone into.
            branch: Git branch to clone.
            shallow: Whether to do a shallow clone.
        """
        cmd = ["git", "clone"]
        if shallow:
            cmd.extend(["--depth", "1", "--single-branch"])
        cmd.extend(["--branch", branch, repository, str(target_path)])

        logger.info("Cloning %s (branch %s)...", repository, branch)
        subprocess.run(cmd, check=True, capture_output=True)  # noqa: S603
        logger.info("Repository cloned successfully")

    def _index_directory(self, site_path: Path) -> dict[str, int]:
        """Index every search index file below the site root.

        Args:
            site_path: Root directory of the built site.

        Returns:
            Number of records indexed per version.

        Raises:
            ValueError: If the site path does not exist.
        """
        if not site_path.exists():
            msg = f"Documentation site path does not exist: {site_path}"
            raise ValueError(msg)

        index_files = self._find_index_files(site_path)

        logger.info("Found %d search index files to load", len(index_files))

        indexed: dict[str, int] = {}
        for file_path in index_files:
            version = file_path.parent.relative_to(site_path).as_posix()
            if version == ".":
                version = ""
            try:
                store = SearchIndexStore.from_path(file_path)
            except MalformedIndex as exc:
                logger.warning("Skipping malformed index %s: %s", file_path, exc)
                continue
            indexed[version] = self.database.replace_version(version, store.records)
            logger.debug("Indexed version '%s': %d records", version, indexed[version])

        logger.info("Successfully indexed %d versions", len(indexed))
        return indexed

    def _find_index_files(self, site_path: Path) -> list[Path]:
        """Find the search index of every version, following symlinked versions.

        Documenter publishes aliases such as ``stable`` as symlinks to a concrete
        version directory; those are walked under their own name.

        Args:
            site_path: Root directory of the built site.

        Returns:
            Sorted index file paths, with symlinked directories kept under their link names.
        """
        index_files = []
        for dirpath, dirnames, filenames in os.walk(site_path, followlinks=True):
            current = Path(dirpath)
            resolved = current.resolve()
            # Skip .git and symlinks pointing back up the tree.
            dirnames[:] = [
                name
                for name in dirnames
                if name != ".git" and (current / name).resolve() not in (resolved, *resolved.parents)
            ]
            if self.index_filename in filenames:
                index_files.append(current / self.index_filename)
        return sorted(index_files)

    def rebuild_index(self, repository: str, branch: str = "gh-pages") -> dict[str, int]:
        """Clear existing index and rebuild from scratch.

        Args:
            repository: Git URL of the repository hosting the built site.
            branch: Branch holding the built site.

        Returns:
            Number of records indexed per version.
        """
        logger.info("Clearing existing index...")
        self.database.clear()
        return self.index_from_git(repository, branch)
