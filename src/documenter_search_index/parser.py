"""Parser for Documenter ``search_index.js`` payloads."""

import json
import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from documenter_search_index.models import Category, MalformedIndex, SearchRecord

logger = logging.getLogger(__name__)


class SearchIndexParser:
    """Decodes and encodes the search index consumed by Documenter's search widget."""

    VARIABLE_NAME = "documenterSearchIndex"
    FIELDS = ("location", "page", "title", "text", "category")

    _ASSIGNMENT = re.compile(
        r"^\s*(?:var|let|const)\s+" + VARIABLE_NAME + r"\s*=\s*(?P<payload>.*?)\s*;?\s*$",
        re.DOTALL,
    )

    def decode(self, raw: str | bytes | Mapping[str, Any] | Iterable[Any]) -> list[SearchRecord]:
        """Decode a serialized index into validated records.

        Args:
            raw: JavaScript assignment text, JSON text, UTF-8 bytes of either,
                or an already decoded ``{"docs": [...]}`` mapping or record list.

        Returns:
            Records in their serialized order.

        Raises:
            MalformedIndex: If the payload or any record violates the format.
        """
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                msg = f"Search index is not valid UTF-8: {exc}"
                raise MalformedIndex(msg) from exc

        data = self._parse_text(raw) if isinstance(raw, str) else raw
        entries = self._extract_entries(data)
        records = [self._build_record(position, entry) for position, entry in enumerate(entries)]
        logger.debug("Decoded %d search records", len(records))
        return records

    def encode(self, records: Iterable[SearchRecord]) -> str:
        """Encode records as the JavaScript assignment Documenter emits.

        Args:
            records: Records to serialise, in display order.

        Returns:
            Script text assigning the index to ``documenterSearchIndex``. Always
            ends with a newline, so a source file written without one differs
            only in that final byte.
        """
        docs = json.dumps(
            [record.to_dict() for record in records],
            ensure_ascii=False,
            separators=(",", ":"),
        )
        return f'var {self.VARIABLE_NAME} = {{"docs":\n{docs}\n}}\n'

    def _parse_text(self, text: str) -> Any:
        """Strip the variable assignment, if present, and decode the JSON payload.

        Args:
            text: Script or JSON text.

        Returns:
            Decoded JSON value.

        Raises:
            MalformedIndex: If the payload is not valid JSON.
        """
        text = text.lstrip("\ufeff")
        match = self._ASSIGNMENT.match(text)
        payload = match.group("payload") if match else text
        try:
            return json.loads(payload)
        except (json.JSONDecodeError, RecursionError) as exc:
            msg = f"Search index payload is not valid JSON: {exc}"
            raise MalformedIndex(msg) from exc

    def _extract_entries(self, data: Any) -> list[Any]:
        """Return the outer record sequence.

        Args:
            data: Decoded payload.

        Returns:
            List of raw record entries.

        Raises:
            MalformedIndex: If the outer structure is not a sequence of records.
        """
        if isinstance(data, Mapping):
            if "docs" not in data:
                msg = "Search index object has no 'docs' entry"
                raise MalformedIndex(msg)
            data = data["docs"]

        if isinstance(data, (str, bytes, Mapping)) or not isinstance(data, Iterable):
            msg = f"Search index must be a sequence of records, got {type(data).__name__}"
            raise MalformedIndex(msg)
        return list(data)

    def _build_record(self, position: int, entry: Any) -> SearchRecord:
        """Validate one raw entry and convert it to a record.

        Args:
            position: Index of the entry in the outer sequence.
            entry: Raw entry.

        Returns:
            SearchRecord instance.

        Raises:
            MalformedIndex: If a field is missing, not a string, or the category is unknown.
        """
        if not isinstance(entry, Mapping):
            msg = f"Record {position} is not an object: {type(entry).__name__}"
            raise MalformedIndex(msg)

        for field in self.FIELDS:
            if field not in entry:
                msg = f"Record {position} is missing required field '{field}'"
                raise MalformedIndex(msg)
            if not isinstance(entry[field], str):
                msg = f"Record {position} field '{field}' must be a string"
                raise MalformedIndex(msg)

        try:
            category = Category(entry["category"])
        except ValueError as exc:
            msg = f"Record {position} has unknown category '{entry['category']}'"
            raise MalformedIndex(msg) from exc

        return SearchRecord(
            location=entry["location"],
            page=entry["page"],
            title=entry["title"],
            text=entry["text"],
            category=category,
        )
