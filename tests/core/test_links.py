"""Tests for URL rewriting in rendered HTML."""

from __future__ import annotations

from pathlib import Path

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from plfa_site.core.links import (
    LocalLinkFixer,
    StdlibLinkFixer,
    module_name,
    relativize_url,
    relativize_urls,
    to_site_root,
    with_urls,
)
from plfa_site.core.metadata import MetadataStore


@pytest.fixture
def stdlib(tmp_path: Path) -> StdlibLinkFixer:
    root = tmp_path / "standard-library"
    (root / "src" / "Data").mkdir(parents=True)
    (root / "src" / "Relation").mkdir()
    (root / "src" / "Level.agda").write_text("module Level where\n")
    (root / "standard-library.agda-lib").write_text("name: standard-library-1.7\ninclude: src\n")
    return StdlibLinkFixer(root)


@pytest.fixture
def local(tmp_path: Path) -> LocalLinkFixer:
    part1 = tmp_path / "src" / "plfa" / "part1"
    part1.mkdir(parents=True)
    (part1 / "Naturals.lagda.md").write_text("---\ntitle: Naturals\npermalink: /Naturals/\n---\n")
    (part1 / "Lists.lagda.md").write_text("---\ntitle: Lists\npermalink: /Lists/\n---\n")
    (part1 / "Draft.lagda.md").write_text("no front matter\n")
    return LocalLinkFixer("src", MetadataStore(tmp_path))


def _link(url: str) -> str:
    return f'<a href="{url}" class="Function">x</a>'


url_text = st.text(alphabet=st.characters(blacklist_characters="\"'<>", blacklist_categories=("Cs",)), max_size=40)


# ========== Attribute rewriting ==========


def test_with_urls_touches_only_url_attributes() -> None:
    html = '<a href="a.html" title="a.html"><img src=\'b.png\'></a> a.html'

    rewritten = with_urls(html, lambda url: "X/" + url)

    assert rewritten == '<a href="X/a.html" title="a.html"><img src=\'X/b.png\'></a> a.html'


def test_with_urls_rewrites_data_and_poster_but_not_data_dash_attributes() -> None:
    html = '<object data="o.svg"></object><video poster="p.png" data-src="v.mp4" data-href="h.html"></video>'

    rewritten = with_urls(html, lambda url: "X/" + url)

    assert rewritten == (
        '<object data="X/o.svg"></object><video poster="X/p.png" data-src="v.mp4" data-href="h.html"></video>'
    )


@given(url=url_text)
def test_identity_rewrite_preserves_text(url: str) -> None:
    html = f"<p>{url}</p>" + _link(url)

    assert with_urls(html, lambda found: found) == html


# ========== Standard library links ==========


def test_stdlib_version_and_top_modules(stdlib: StdlibLinkFixer) -> None:
    assert stdlib.version == "v1.7"
    assert {"Agda", "Data", "Relation", "Level"} <= stdlib.top_modules


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("Data.Nat.html#1234", "https://agda.github.io/agda-stdlib/v1.7/Data.Nat.html#1234"),
        ("Agda.Builtin.Equality.html", "https://agda.github.io/agda-stdlib/v1.7/Agda.Builtin.Equality.html"),
        ("plfa.part1.Naturals.html#10", "plfa.part1.Naturals.html#10"),
        ("https://example.org/Data.Nat.html", "https://example.org/Data.Nat.html"),
        ("/Data.Nat.html", "/Data.Nat.html"),
    ],
)
def test_stdlib_links(stdlib: StdlibLinkFixer, url: str, expected: str) -> None:
    assert stdlib(url) == expected


def test_stdlib_without_agda_lib_links_unversioned(tmp_path: Path) -> None:
    fixer = StdlibLinkFixer(tmp_path / "missing")

    assert fixer.version is None
    assert fixer("Agda.Primitive.html") == "https://agda.github.io/agda-stdlib/Agda.Primitive.html"


# ========== Local module links ==========


def test_module_name() -> None:
    assert module_name("plfa/part1/Naturals.lagda.md") == "plfa.part1.Naturals"
    assert module_name("plfa/index.md") is None


def test_local_links_point_at_permalinks(local: LocalLinkFixer) -> None:
    assert local("plfa.part1.Lists.html#5012") == "/Lists/#5012"
    assert local("plfa.part1.Naturals.html") == "/Naturals/"
    assert local("plfa.part1.Draft.html#1") == "plfa.part1.Draft.html#1"
    assert local("Data.Nat.html#1") == "Data.Nat.html#1"


@settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(url=url_text)
def test_rewrites_are_idempotent(stdlib: StdlibLinkFixer, local: LocalLinkFixer, url: str) -> None:
    html = _link(url) + _link("Data.Nat.html#1") + _link("plfa.part1.Lists.html#2")

    def rewrite(text: str) -> str:
        return with_urls(with_urls(text, stdlib), local)

    once = rewrite(html)

    assert rewrite(once) == once


@settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(url=st.sampled_from(["https://plfa.github.io/", "mailto:someone@example.org", "#anchor", "../x.html"]))
def test_rewrites_leave_other_urls_unchanged(stdlib: StdlibLinkFixer, local: LocalLinkFixer, url: str) -> None:
    html = _link(url)

    assert with_urls(with_urls(html, stdlib), local) == html


# ========== Relativisation ==========


@pytest.mark.parametrize(
    ("route", "expected"),
    [("index.html", "."), ("Naturals/index.html", ".."), ("19.08/part1/index.html", "../..")],
)
def test_to_site_root(route: str, expected: str) -> None:
    assert to_site_root(route) == expected


def test_relativize_url_only_changes_root_relative_urls() -> None:
    assert relativize_url("/css/style.css", "Naturals/index.html") == "../css/style.css"
    assert relativize_url("//cdn.example.org/a.js", "Naturals/index.html") == "//cdn.example.org/a.js"
    assert relativize_url("https://plfa.github.io/", "Naturals/index.html") == "https://plfa.github.io/"
    assert relativize_url("other.html", "Naturals/index.html") == "other.html"


def test_relativize_urls_in_html() -> None:
    html = '<link href="/public/css/style.css"><a href="/Lists/">Lists</a>'

    assert relativize_urls(html, "index.html") == '<link href="./public/css/style.css"><a href="./Lists/">Lists</a>'
    assert relativize_urls(html, "Naturals/index.html") == (
        '<link href="../public/css/style.css"><a href="../Lists/">Lists</a>'
    )
