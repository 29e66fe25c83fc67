"""Tests for documentation site indexer."""

import os
import shutil
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from documenter_search_index.database import SearchIndexDatabase
from documenter_search_index.indexer import DocumenterSiteIndexer

FIXTURE = Path(__file__).parent / "fixtures" / "search_index.js"
DEV_FIXTURE = Path(__file__).parent / "fixtures" / "dev_search_index.js"
PR9_FIXTURE = Path(__file__).parent / "fixtures" / "pr9_search_index.js"


@pytest.fixture
def db(tmp_path: Path) -> SearchIndexDatabase:
    """Create a temporary database.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        SearchIndexDatabase instance.
    """
    db_path = tmp_path / "test.db"
    return SearchIndexDatabase(db_path)


@pytest.fixture
def indexer(db: SearchIndexDatabase) -> DocumenterSiteIndexer:
    """Create an indexer instance.

    Args:
        db: SearchIndexDatabase fixture.

    Returns:
        DocumenterSiteIndexer instance.
    """
    return DocumenterSiteIndexer(db)


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """Create a built site with a dev build and a preview build.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        Path to the site root.
    """
    site = tmp_path / "site"
    for version in ("dev", "previews/PR9"):
        version_dir = site / version
        version_dir.mkdir(parents=True)
        shutil.copy(FIXTURE, version_dir / "search_index.js")
    return site


def test_index_from_path(indexer: DocumenterSiteIndexer, site_dir: Path) -> None:
    """Test indexing every version of a local site."""
    indexed = indexer.index_from_path(site_dir)

    assert indexed == {"dev": 11, "previews/PR9": 11}
    assert indexer.database.versions() == ["dev", "previews/PR9"]
    assert indexer.database.get_record_count() == 22


def test_index_root_level_index(indexer: DocumenterSiteIndexer, tmp_path: Path) -> None:
    """Test a site built without version directories."""
    site = tmp_path / "build"
    site.mkdir()
    shutil.copy(FIXTURE, site / "search_index.js")

    indexed = indexer.index_from_path(site)

    assert indexed == {"": 11}


def test_index_from_path_nonexistent(indexer: DocumenterSiteIndexer, tmp_path: Path) -> None:
    """Test indexing from a nonexistent path raises error."""
    with pytest.raises(ValueError, match="Documentation site path does not exist"):
        indexer.index_from_path(tmp_path / "nonexistent")


def test_index_skips_malformed_files(indexer: DocumenterSiteIndexer, site_dir: Path) -> None:
    """Test that malformed index files are skipped gracefully."""
    broken = site_dir / "v0.1.0"
    broken.mkdir()
    (broken / "search_index.js").write_text('var documenterSearchIndex = {"docs": [{"location": ""}]}')
    (site_dir / "v0.2.0").mkdir()
    (site_dir / "v0.2.0" / "search_index.js").write_bytes(b"\xff\xfe")

    indexed = indexer.index_from_path(site_dir)

    assert set(indexed) == {"dev", "previews/PR9"}


def test_index_ignores_git_directory(indexer: DocumenterSiteIndexer, site_dir: Path) -> None:
    """Test that files inside .git are not indexed."""
    git_dir = site_dir / ".git" / "objects"
    git_dir.mkdir(parents=True)
    shutil.copy(FIXTURE, git_dir / "search_index.js")

    indexed = indexer.index_from_path(site_dir)

    assert set(indexed) == {"dev", "previews/PR9"}


def test_reindex_replaces_version(indexer: DocumenterSiteIndexer, site_dir: Path) -> None:
    """Test that re-indexing a rebuilt version replaces its records."""
    indexer.index_from_path(site_dir)
    (site_dir / "dev" / "search_index.js").write_text(
        'var documenterSearchIndex = {"docs":\n'
        '[{"location":"","page":"Home","title":"Home","text":"rebuilt","category":"page"}]\n}'
    )

    indexer.index_from_path(site_dir)

    assert indexer.database.get_record_count("dev") == 1
    assert indexer.database.get_record_count("previews/PR9") == 11


def test_custom_index_filename(db: SearchIndexDatabase, tmp_path: Path) -> None:
    """Test indexing files with a different name."""
    site = tmp_path / "site" / "stable"
    site.mkdir(parents=True)
    shutil.copy(FIXTURE, site / "index.js")

    indexed = DocumenterSiteIndexer(db, index_filename="index.js").index_from_path(tmp_path / "site")

    assert indexed == {"stable": 11}


def test_index_from_git(indexer: DocumenterSiteIndexer, site_dir: Path) -> None:
    """Test that index_from_git indexes the cloned tree."""

    def fake_clone(repository: str, target_path: Path, branch: str, shallow: bool) -> None:
        shutil.copytree(site_dir, target_path)

    with patch.object(indexer, "_clone_repository", side_effect=fake_clone) as mock_clone:
        indexed = indexer.index_from_git("https://github.com/KnutAM/Newton.jl.git")

    assert indexed == {"dev": 11, "previews/PR9": 11}
    assert mock_clone.call_args[0][2] == "gh-pages"


def test_rebuild_index_clears_existing(indexer: DocumenterSiteIndexer, site_dir: Path) -> None:
    """Test that rebuild_index clears existing data before indexing."""
    indexer.index_from_path(site_dir)

    with patch.object(indexer, "index_from_git", return_value={}) as mock_index:
        indexer.rebuild_index("https://github.com/KnutAM/Newton.jl.git")

    mock_index.assert_called_once_with("https://github.com/KnutAM/Newton.jl.git", "gh-pages")
    assert indexer.database.get_record_count() == 0


@patch("subprocess.run")
def test_clone_repository(mock_run: Mock, indexer: DocumenterSiteIndexer, tmp_path: Path) -> None:
    """Test that clone_repository runs correct git commands."""
    target_path = tmp_path / "site"

    indexer._clone_repository("https://github.com/KnutAM/Newton.jl.git", target_path, "gh-pages", shallow=True)

    assert mock_run.call_count == 1
    cmd = mock_run.call_args[0][0]
    assert cmd[:2] == ["git", "clone"]
    assert "--depth" in cmd
    assert "--branch" in cmd
    assert "gh-pages" in cmd
    assert cmd[-1] == str(target_path)


@patch("subprocess.run")
def test_clone_repository_full(mock_run: Mock, indexer: DocumenterSiteIndexer, tmp_path: Path) -> None:
    """Test clone without shallow options."""
    indexer._clone_repository("https://github.com/KnutAM/Newton.jl.git", tmp_path / "site", "gh-pages", shallow=False)

    assert "--depth" not in mock_run.call_args[0][0]


def test_index_symlinked_versions(indexer: DocumenterSiteIndexer, tmp_path: Path) -> None:
    """Test that stable/v1 aliases published as symlinks are indexed under their own names."""
    site = tmp_path / "site"
    (site / "v1.0.0").mkdir(parents=True)
    shutil.copy(DEV_FIXTURE, site / "v1.0.0" / "search_index.js")
    os.symlink("v1.0.0", site / "stable")
    os.symlink("v1.0.0", site / "v1")

    indexed = indexer.index_from_path(site)

    assert indexed == {"stable": 25, "v1": 25, "v1.0.0": 25}
    assert len(indexer.database.search("linsolve", version="stable")) == 2


def test_index_ignores_symlink_loops(indexer: DocumenterSiteIndexer, site_dir: Path) -> None:
    """Test that a symlink back to an ancestor does not recurse forever."""
    os.symlink("..", site_dir / "dev" / "parent")

    indexed = indexer.index_from_path(site_dir)

    assert set(indexed) == {"dev", "previews/PR9"}


def test_index_documenter_builds(indexer: DocumenterSiteIndexer, tmp_path: Path) -> None:
    """Test indexing the dev and PR9 preview builds of the Newton.jl docs."""
    site = tmp_path / "site"
    (site / "dev").mkdir(parents=True)
    (site / "previews" / "PR9").mkdir(parents=True)
    shutil.copy(DEV_FIXTURE, site / "dev" / "search_index.js")
    shutil.copy(PR9_FIXTURE, site / "previews" / "PR9" / "search_index.js")

    indexed = indexer.index_from_path(site)

    assert indexed == {"dev": 25, "previews/PR9": 48}
    preview = indexer.database.load_store("previews/PR9")
    assert preview is not None
    assert [r.title for r in preview.query("newtonsolve")][:2] == ["Newton.newtonsolve", "Newton.ad_newtonsolve"]
    assert [r.title for r in indexer.database.search("logging", version="previews/PR9", category="function")] == [
        "Newton.logging_mode"
    ]
