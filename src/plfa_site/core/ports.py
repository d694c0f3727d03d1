"""Protocols for the build handle and the external tools it drives."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from plfa_site.core.patterns import Pattern
from plfa_site.core.types import Item


@runtime_checkable
class BuildAccess(Protocol):
    """What field resolvers and stages may read while an item compiles.

    Reads of other items are the only suspension points: ``load`` and
    ``load_snapshot`` compile the requested item first if needed.
    """

    identifier: str

    def get_metadata(self, identifier: str) -> Mapping[str, Any]: ...
    def get_field(self, identifier: str, key: str) -> str: ...
    def get_field_or_none(self, identifier: str, key: str) -> str | None: ...
    def modification_time(self, identifier: str) -> datetime: ...
    def route_of(self, identifier: str) -> str | None: ...
    def load(self, identifier: str) -> Item: ...
    def load_all(self, pattern: str | Pattern) -> list[Item]: ...
    def load_snapshot(self, identifier: str, snapshot: str) -> Any: ...


@dataclass(frozen=True)
class ReaderOptions:
    standalone: bool = False
    strip_comments: bool = False


@dataclass(frozen=True)
class WriterOptions:
    table_of_contents: bool = False
    toc_depth: int = 3
    epub_fonts: tuple[str, ...] = ()
    epub_chapter_level: int = 1
    template: str | None = None
    epub_metadata: str | None = None
    resource_path: tuple[str, ...] = ()


@dataclass(frozen=True)
class AgdaOptions:
    include_paths: tuple[str, ...] = ()
    use_libraries: bool = False
    verbosity: int = 0
    extra_args: tuple[str, ...] = field(default=())

    def with_include_path(self, path: str) -> AgdaOptions:
        return AgdaOptions(
            include_paths=(path, *self.include_paths),
            use_libraries=self.use_libraries,
            verbosity=self.verbosity,
            extra_args=self.extra_args,
        )


@runtime_checkable
class MarkdownRenderer(Protocol):
    def render(self, markdown: str, *, path: str = "") -> str: ...


@runtime_checkable
class DocumentConverter(Protocol):
    """Pandoc-style reader/writer pair working on a JSON AST."""

    def read(self, body: str, options: ReaderOptions, *, path: str = "") -> dict[str, Any]: ...
    def write_epub(self, document: dict[str, Any], options: WriterOptions, *, path: str = "") -> bytes: ...


@runtime_checkable
class LiterateCompiler(Protocol):
    def compile(self, source: Path, options: AgdaOptions) -> str: ...


@runtime_checkable
class StylesheetCompiler(Protocol):
    def compile(self, scss: str, include_paths: Sequence[str], *, path: str = "") -> str: ...
