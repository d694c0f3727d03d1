"""Tests for rendering templates against field contexts."""

from __future__ import annotations

from datetime import datetime

import pytest

from plfa_site.core.context import Context, const_field, default_context, list_field, toc_context
from plfa_site.core.exceptions import MissingFieldError, NoTitleSubtitleDistinctionError, ParseError
from plfa_site.core.fields import subtitle_field, titlerunning_field
from plfa_site.core.types import Item
from plfa_site.engine.filters import format_datetime, pretty_url
from plfa_site.engine.template_loader import TemplateLoader

TEMPLATES = {
    "templates/page.html": "<h1>{{ title }}</h1>{% if subtitle %}<h2>{{ subtitle }}</h2>{% endif %}{{ body }}",
    "templates/broken.html": "{% for x in %}",
}


@pytest.fixture
def loader() -> TemplateLoader:
    return TemplateLoader(TEMPLATES.__getitem__)


def _render(loader: TemplateLoader, text: str, context: Context, item: Item, build) -> str:
    return loader.render(loader.from_string(text, name=item.identifier), context, item, build)


def test_fields_resolve_lazily(loader, stub_build) -> None:
    build = stub_build(metadata={"a.md": {"title": "Preface"}})
    template = loader.load_template("templates/page.html")

    html = loader.render(template, default_context(), Item("a.md", "<p>Hi</p>"), build)

    assert html == "<h1>Preface</h1><p>Hi</p>"


def test_missing_field_is_false_in_conditionals(loader, stub_build) -> None:
    build = stub_build(metadata={"a.md": {"title": "Preface"}})
    context = Context.compose(subtitle_field(), default_context())

    html = _render(loader, "{% if subtitle %}yes{% else %}no{% endif %}", context, Item("a.md"), build)

    assert html == "no"


def test_printing_missing_field_raises_resolver_error(loader, stub_build) -> None:
    build = stub_build(metadata={"a.md": {"title": "Preface"}})
    context = Context.compose(titlerunning_field(), default_context())

    with pytest.raises(NoTitleSubtitleDistinctionError):
        _render(loader, "{{ titlerunning }}", context, Item("a.md"), build)


def test_printing_unknown_field_raises_missing_field(loader, stub_build) -> None:
    with pytest.raises(MissingFieldError) as excinfo:
        _render(loader, "{{ nonsense }}", default_context(), Item("a.md", "x"), stub_build())

    assert excinfo.value.key == "nonsense"


def test_list_items_use_their_own_context(loader, stub_build) -> None:
    build = stub_build(metadata={"b.md": {"title": "B"}, "a.md": {"title": "A"}})
    context = Context.compose(
        list_field("posts", default_context(), lambda item, build: [Item("b.md"), Item("a.md")]),
        default_context(),
    )

    html = _render(loader, "{% for post in posts %}[{{ post.title }}]{% endfor %}", context, Item("index.md"), build)

    assert html == "[B][A]"


def test_nested_toc_objects(loader, stub_build) -> None:
    build = stub_build(
        metadata={
            "toc.metadata": {
                "parts": [{"title": "Part 1", "sections": [{"include": "Lists.lagda.md"}]}],
            },
            "Lists.lagda.md": {"title": "Lists: Lists and Higher-Order Functions"},
        },
        routes={"Lists.lagda.md": "Lists/index.html"},
    )
    section_context = Context.compose(titlerunning_field(), subtitle_field(), default_context())
    text = (
        "{% for part in parts %}{{ part.title }}:"
        "{% for section in part.sections %}"
        '<a href="{{ section.url }}">{{ section.titlerunning }}</a> {{ section.subtitle }}'
        "{% endfor %}{% endfor %}"
    )

    html = _render(loader, text, toc_context(section_context, "toc.metadata"), Item("index.md"), build)

    assert html == 'Part 1:<a href="/Lists/">Lists</a> Lists and Higher-Order Functions'


def test_template_syntax_error_is_parse_error(loader) -> None:
    with pytest.raises(ParseError) as excinfo:
        loader.load_template("templates/broken.html")

    assert excinfo.value.path == "templates/broken.html"


def test_inline_syntax_error_names_item(loader) -> None:
    with pytest.raises(ParseError, match="a.md"):
        loader.from_string("{{ unclosed", name="a.md")


def test_filters_are_registered(loader, stub_build) -> None:
    context = Context.compose(const_field("published", "2019-07-01"), const_field("link", "/Naturals/index.html"))

    html = _render(
        loader,
        "{{ published | format_datetime('%B %e, %Y') }} {{ link | pretty_url }}",
        context,
        Item("a.md"),
        stub_build(),
    )

    assert html == "July  1, 2019 /Naturals/"


def test_format_datetime_passes_through_non_dates() -> None:
    assert format_datetime("not a date") == "not a date"
    assert format_datetime(datetime(2020, 7, 1), "%Y") == "2020"
    assert pretty_url("Naturals/index.html") == "Naturals/"
