"""Metadata store backed by YAML front matter and sibling ``.metadata`` files."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, date, datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any

import frontmatter
import yaml

from plfa_site.core.exceptions import MissingFieldError, ParseError

logger = logging.getLogger(__name__)

METADATA_SUFFIX = ".metadata"


def parse_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Parse YAML front matter using python-frontmatter.

    Args:
        content: Document text that may start with a front matter block.

    Returns:
        Tuple of (metadata dict, body string). If parsing fails or the metadata
        is not a mapping, metadata is empty and the original content is returned.

    """
    try:
        parsed = frontmatter.loads(content)
    except (yaml.YAMLError, ValueError) as exc:
        logger.warning("Failed to parse front matter: %s", exc)
        return {}, content

    raw_metadata = parsed.metadata or {}
    if not isinstance(raw_metadata, dict):
        logger.warning("Front matter is not a mapping: %s", type(raw_metadata).__name__)
        return {}, content

    body = parsed.content if isinstance(parsed.content, str) else str(parsed.content)
    return dict(raw_metadata), body


def parse_metadata_file(content: str, source: str) -> dict[str, Any]:
    """Parse a whole-file YAML metadata record."""
    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as exc:
        logger.warning("Invalid YAML in %s: %s", source, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Metadata in %s is not a mapping: %s", source, type(data).__name__)
        return {}
    return data


def read_metadata_text(path: Path, identifier: str) -> str:
    """Read a YAML metadata file, reporting undecodable bytes against ``identifier``."""
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(identifier, f"{path.name} is not valid UTF-8: {exc.reason} at byte {exc.start}") from exc


def stringify(value: Any) -> str | None:
    """Render a scalar metadata value as a string, or None for non-scalars."""
    if value is None or isinstance(value, (Mapping, list, tuple, set)):
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


class MetadataStore:
    """Loads and caches per-document metadata for one build.

    A document's record is its front matter merged over the keys of a sibling
    ``<identifier>.metadata`` file. A ``*.metadata`` file's own record is the
    whole file. Records are read once and are read-only afterwards.
    """

    def __init__(self, site_root: Path) -> None:
        self.site_root = Path(site_root)
        self._records: dict[str, Mapping[str, Any]] = {}
        self._bodies: dict[str, str] = {}

    def _source_path(self, identifier: str) -> Path:
        return self.site_root / identifier

    def _load(self, identifier: str) -> None:
        path = self._source_path(identifier)
        record: dict[str, Any] = {}
        body = ""

        if identifier.endswith(METADATA_SUFFIX):
            if path.is_file():
                body = read_metadata_text(path, identifier)
                record = parse_metadata_file(body, identifier)
        else:
            sibling = path.with_name(path.name + METADATA_SUFFIX)
            if sibling.is_file():
                record.update(parse_metadata_file(read_metadata_text(sibling, identifier), str(sibling)))
            if path.is_file():
                try:
                    text = path.read_text(encoding="utf-8")
                except UnicodeDecodeError:
                    text = None
                if text is not None:
                    header, body = parse_frontmatter(text)
                    record.update(header)

        logger.debug("Loaded metadata for %s (%d keys)", identifier, len(record))
        self._records[identifier] = MappingProxyType(record)
        self._bodies[identifier] = body

    def get_metadata(self, identifier: str) -> Mapping[str, Any]:
        if identifier not in self._records:
            self._load(identifier)
        return self._records[identifier]

    def get_body(self, identifier: str) -> str:
        """Return the source text with its front matter stripped."""
        if identifier not in self._bodies:
            self._load(identifier)
        return self._bodies[identifier]

    def get_field_or_none(self, identifier: str, key: str) -> str | None:
        return stringify(self.get_metadata(identifier).get(key))

    def get_field(self, identifier: str, key: str) -> str:
        value = self.get_field_or_none(identifier, key)
        if value is None:
            raise MissingFieldError(key, identifier, reason="not in metadata")
        return value

    def modification_time(self, identifier: str) -> datetime:
        path = self._source_path(identifier)
        return datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
