"""Shared fixtures: fake external tools and temporary site trees."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from plfa_site.core.config import PathsSettings, SiteConfig
from plfa_site.core.exceptions import MissingFieldError, SnapshotNotFoundError
from plfa_site.core.metadata import stringify
from plfa_site.core.patterns import Pattern, as_pattern
from plfa_site.core.ports import AgdaOptions, ReaderOptions, WriterOptions
from plfa_site.core.types import Item
from plfa_site.engine.build import Toolchain
from plfa_site.infra.converters.markdown import MarkdownItRenderer


class FakePandoc:
    """Stands in for pandoc: the AST is the body wrapped in a raw block."""

    def __init__(self) -> None:
        self.written: list[WriterOptions] = []

    def read(self, body: str, options: ReaderOptions, *, path: str = "") -> dict[str, Any]:
        return {
            "pandoc-api-version": [1, 23],
            "meta": {"standalone": options.standalone, "strip_comments": options.strip_comments},
            "blocks": [{"t": "RawBlock", "c": ["markdown", body]}],
        }

    def write_epub(self, document: dict[str, Any], options: WriterOptions, *, path: str = "") -> bytes:
        self.written.append(options)
        payload = {"template": options.template, "metadata": options.epub_metadata, "blocks": document["blocks"]}
        return json.dumps(payload).encode("utf-8")


class FakeAgda:
    """Returns the literate source unchanged and records the options used."""

    def __init__(self, site_root: Path) -> None:
        self.site_root = site_root
        self.calls: list[tuple[Path, AgdaOptions]] = []

    def compile(self, source: Path, options: AgdaOptions) -> str:
        self.calls.append((source, options))
        return (self.site_root / source).read_text(encoding="utf-8")


class FakeSass:
    def compile(self, scss: str, include_paths: Sequence[str], *, path: str = "") -> str:
        return f"/* compiled {path} */\n{scss}"


class StubBuild:
    """In-memory stand-in for the build handle seen by field resolvers."""

    identifier = "stub"

    def __init__(
        self,
        metadata: Mapping[str, Mapping[str, Any]] | None = None,
        routes: Mapping[str, str] | None = None,
        snapshots: Mapping[tuple[str, str], Any] | None = None,
        items: Mapping[str, Item] | None = None,
    ) -> None:
        self.metadata = {key: dict(value) for key, value in (metadata or {}).items()}
        self.routes = dict(routes or {})
        self.snapshots = dict(snapshots or {})
        self.items = dict(items or {})

    def get_metadata(self, identifier: str) -> Mapping[str, Any]:
        return self.metadata.get(identifier, {})

    def get_field_or_none(self, identifier: str, key: str) -> str | None:
        return stringify(self.get_metadata(identifier).get(key))

    def get_field(self, identifier: str, key: str) -> str:
        value = self.get_field_or_none(identifier, key)
        if value is None:
            raise MissingFieldError(key, identifier, reason="not in metadata")
        return value

    def modification_time(self, identifier: str) -> datetime:
        return datetime(2020, 7, 1, 12, 30, tzinfo=UTC)

    def route_of(self, identifier: str) -> str | None:
        return self.routes.get(identifier)

    def load(self, identifier: str) -> Item:
        return self.items[identifier]

    def load_all(self, pattern: str | Pattern) -> list[Item]:
        matcher = as_pattern(pattern)
        return [self.items[key] for key in sorted(self.items) if matcher.matches(key)]

    def load_snapshot(self, identifier: str, snapshot: str) -> Any:
        try:
            return self.snapshots[(identifier, snapshot)]
        except KeyError:
            raise SnapshotNotFoundError(identifier, snapshot) from None


@pytest.fixture(scope="session")
def stub_build() -> Callable[..., StubBuild]:
    return StubBuild


@pytest.fixture
def write_site(tmp_path: Path) -> Callable[[Mapping[str, str | bytes]], Path]:
    """Write a mapping of identifier -> contents under a fresh site root."""

    def write(files: Mapping[str, str | bytes]) -> Path:
        root = tmp_path / "site"
        for identifier, contents in files.items():
            path = root / identifier
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(contents, bytes):
                path.write_bytes(contents)
            else:
                path.write_text(contents, encoding="utf-8")
        root.mkdir(exist_ok=True)
        return root

    return write


@pytest.fixture
def site_config() -> Callable[..., SiteConfig]:
    def make(site_root: Path, **sections: Any) -> SiteConfig:
        return SiteConfig(paths=PathsSettings(site_root=site_root), **sections)

    return make


@pytest.fixture
def fake_tools() -> Callable[[Path], Toolchain]:
    def make(site_root: Path) -> Toolchain:
        return Toolchain(
            markdown=MarkdownItRenderer(),
            pandoc=FakePandoc(),
            agda=FakeAgda(site_root),
            sass=FakeSass(),
        )

    return make
