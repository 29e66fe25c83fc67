"""Data models for Documenter search indexes."""

from dataclasses import dataclass
from enum import Enum


class MalformedIndex(ValueError):  # noqa: N818
    """Raised when a serialized search index violates the data contract."""


class Category(str, Enum):
    """Kind of documentation entry a search record points at."""

    PAGE = "page"
    SECTION = "section"
    METHOD = "method"
    TYPE = "type"
    FUNCTION = "function"


@dataclass(frozen=True)
class SearchRecord:
    """Represents one entry of a search index."""

    location: str
    page: str
    title: str
    text: str
    category: Category

    @property
    def path(self) -> str:
        """Return the page path part of the location."""
        return self.location.partition("#")[0]

    @property
    def fragment(self) -> str | None:
        """Return the anchor part of the location, if any."""
        _, sep, fragment = self.location.partition("#")
        return fragment if sep else None

    def url(self, base_url: str) -> str:
        """Build an absolute link to the record.

        Args:
            base_url: Root URL of the documentation version.

        Returns:
            The location joined onto the base URL.
        """
        if not base_url:
            return self.location
        return f"{base_url.rstrip('/')}/{self.location}"

    def to_dict(self) -> dict[str, str]:
        """Return the serialized fields in Documenter's field order."""
        return {
            "location": self.location,
            "page": self.page,
            "title": self.title,
            "text": self.text,
            "category": self.category.value,
        }


@dataclass
class SearchResult:
    """Represents a database search result."""

    version: str
    location: str
    page: str
    title: str
    category: Category
    url: str
    snippet: str
    score: float
