"""Core data types for the site build."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import PurePosixPath
from typing import Any, Callable


@dataclass(frozen=True)
class Item:
    """A document flowing through a compiler chain.

    The body is text for most stages, bytes for binary outputs (EPUB, copied
    files) and a dict while a document is held as a pandoc AST.
    """

    identifier: str
    body: Any = None

    def with_body(self, body: Any) -> Item:
        return replace(self, body=body)

    def map_body(self, fn: Callable[[Any], Any]) -> Item:
        return replace(self, body=fn(self.body))

    @property
    def path(self) -> PurePosixPath:
        return PurePosixPath(self.identifier)


def to_identifier(path: str | PurePosixPath) -> str:
    """Normalise a relative path into an identifier (POSIX separators, no leading ./)."""
    text = str(path).replace("\\", "/")
    while text.startswith("./"):
        text = text[2:]
    return text.lstrip("/")
