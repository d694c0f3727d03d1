"""Tests for the metadata store."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from plfa_site.core import metadata as metadata_module
from plfa_site.core.exceptions import MissingFieldError, ParseError
from plfa_site.core.metadata import MetadataStore, parse_frontmatter, stringify


def test_parse_frontmatter_splits_header_and_body() -> None:
    header, body = parse_frontmatter("---\ntitle: Naturals\npermalink: /Naturals/\n---\n\nBody text\n")

    assert header == {"title": "Naturals", "permalink": "/Naturals/"}
    assert body.strip() == "Body text"


def test_parse_frontmatter_tolerates_bad_yaml(caplog: pytest.LogCaptureFixture) -> None:
    content = "---\ntitle: [unclosed\n---\nBody\n"

    header, body = parse_frontmatter(content)

    assert header == {}
    assert body == content
    assert "front matter" in caplog.text


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("text", "text"),
        (3, "3"),
        (True, "true"),
        (date(2019, 7, 1), "2019-07-01"),
        (None, None),
        ({"a": 1}, None),
        ([1, 2], None),
    ],
)
def test_stringify(value, expected) -> None:
    assert stringify(value) == expected


@pytest.fixture
def site(tmp_path: Path) -> Path:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "Naturals.lagda.md").write_text(
        "---\ntitle: 'Naturals: Natural numbers'\ncount: 3\n---\nBody\n", encoding="utf-8"
    )
    (tmp_path / "src" / "Naturals.lagda.md.metadata").write_text(
        "title: Overridden by front matter\nnext: /Induction/\n", encoding="utf-8"
    )
    (tmp_path / "authors").mkdir()
    (tmp_path / "authors" / "wadler.metadata").write_text(
        "name: Philip Wadler\nemail: wadler@inf.ed.ac.uk\n", encoding="utf-8"
    )
    (tmp_path / "font.woff").write_bytes(b"\xff\xfe\x00\x01")
    return tmp_path


def test_front_matter_wins_over_sibling_metadata(site: Path) -> None:
    store = MetadataStore(site)

    record = store.get_metadata("src/Naturals.lagda.md")

    assert record["title"] == "Naturals: Natural numbers"
    assert record["next"] == "/Induction/"
    assert store.get_field("src/Naturals.lagda.md", "count") == "3"


def test_metadata_file_record_is_whole_file(site: Path) -> None:
    store = MetadataStore(site)

    assert store.get_field("authors/wadler.metadata", "name") == "Philip Wadler"
    assert "name: Philip Wadler" in store.get_body("authors/wadler.metadata")


def test_missing_key_raises_missing_field(site: Path) -> None:
    store = MetadataStore(site)

    with pytest.raises(MissingFieldError) as excinfo:
        store.get_field("src/Naturals.lagda.md", "permalink")

    assert excinfo.value.identifier == "src/Naturals.lagda.md"
    assert store.get_field_or_none("src/Naturals.lagda.md", "permalink") is None


def test_binary_and_missing_files_have_empty_records(site: Path) -> None:
    store = MetadataStore(site)

    assert dict(store.get_metadata("font.woff")) == {}
    assert dict(store.get_metadata("public/css/style.css")) == {}


def test_undecodable_metadata_files_raise_parse_error(site: Path) -> None:
    (site / "src" / "Lists.lagda.md").write_text("---\ntitle: Lists\n---\n", encoding="utf-8")
    (site / "src" / "Lists.lagda.md.metadata").write_bytes(b"title: \xff\xfe bad\n")
    (site / "authors" / "broken.metadata").write_bytes(b"name: \xff\n")
    store = MetadataStore(site)

    with pytest.raises(ParseError, match="not valid UTF-8") as excinfo:
        store.get_metadata("src/Lists.lagda.md")
    assert excinfo.value.path == "src/Lists.lagda.md"

    with pytest.raises(ParseError):
        store.get_body("authors/broken.metadata")


def test_records_are_read_only(site: Path) -> None:
    record = MetadataStore(site).get_metadata("src/Naturals.lagda.md")

    with pytest.raises(TypeError):
        record["title"] = "changed"  # type: ignore[index]


def test_records_are_parsed_once(site: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []
    original = metadata_module.parse_frontmatter

    def counting(content: str):
        calls.append(content)
        return original(content)

    monkeypatch.setattr(metadata_module, "parse_frontmatter", counting)
    store = MetadataStore(site)

    store.get_field("src/Naturals.lagda.md", "title")
    store.get_field("src/Naturals.lagda.md", "count")
    store.get_body("src/Naturals.lagda.md")
    (site / "src" / "Naturals.lagda.md").write_text("---\ntitle: Changed\n---\n", encoding="utf-8")

    assert store.get_field("src/Naturals.lagda.md", "title") == "Naturals: Natural numbers"
    assert len(calls) == 1


def test_modification_time_is_utc(site: Path) -> None:
    modified = MetadataStore(site).modification_time("src/Naturals.lagda.md")

    assert modified.utcoffset() is not None
    assert modified.utcoffset().total_seconds() == 0
