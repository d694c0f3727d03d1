"""Compiler stages.

A compiler chain is a sequence of stages, each ``stage(item, compilation) ->
item``. Stages only read the build through the :class:`Compilation` handle and
only write through :meth:`Compilation.save_snapshot`, whose snapshots are
published when the whole chain succeeds. An aborted chain leaves nothing
behind.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any

from plfa_site.core.context import Context
from plfa_site.core.exceptions import ParseError, SnapshotExistsError
from plfa_site.core.links import relativize_urls as relativize_html
from plfa_site.core.links import with_urls
from plfa_site.core.metadata import parse_frontmatter
from plfa_site.core.patterns import Pattern
from plfa_site.core.ports import AgdaOptions, ReaderOptions, WriterOptions
from plfa_site.core.types import Item
from plfa_site.infra.converters.sass import compress_css

if TYPE_CHECKING:
    from plfa_site.engine.build import Build, Toolchain
    from plfa_site.engine.template_loader import TemplateLoader

logger = logging.getLogger(__name__)

Stage = Callable[[Item, "Compilation"], Item]
PandocFilter = Callable[[dict[str, Any]], dict[str, Any]]


class Compilation:
    """Per-item handle given to stages and field resolvers."""

    def __init__(self, build: Build, identifier: str) -> None:
        self._build = build
        self.identifier = identifier
        self._snapshots: dict[str, Any] = {}

    # --- reads ---------------------------------------------------------------

    @property
    def tools(self) -> Toolchain:
        return self._build.tools

    @property
    def site_root(self) -> Path:
        return self._build.site_root

    @property
    def templates(self) -> TemplateLoader:
        return self._build.templates

    @property
    def route(self) -> str | None:
        return self.route_of(self.identifier)

    def resource_body(self) -> str:
        return self._build.metadata.get_body(self.identifier)

    def resource_bytes(self) -> bytes:
        return (self.site_root / self.identifier).read_bytes()

    def get_metadata(self, identifier: str) -> Mapping[str, Any]:
        return self._build.metadata.get_metadata(identifier)

    def get_field(self, identifier: str, key: str) -> str:
        return self._build.metadata.get_field(identifier, key)

    def get_field_or_none(self, identifier: str, key: str) -> str | None:
        return self._build.metadata.get_field_or_none(identifier, key)

    def modification_time(self, identifier: str) -> datetime:
        return self._build.metadata.modification_time(identifier)

    def route_of(self, identifier: str) -> str | None:
        return self._build.route_of(identifier)

    def load(self, identifier: str) -> Item:
        return self._build.load(identifier)

    def load_all(self, pattern: str | Pattern) -> list[Item]:
        return [self._build.load(identifier) for identifier in self._build.matching(pattern)]

    def load_body(self, identifier: str) -> Any:
        return self.load(identifier).body

    def load_snapshot(self, identifier: str, snapshot: str) -> Any:
        if identifier == self.identifier and snapshot in self._snapshots:
            return self._snapshots[snapshot]
        return self._build.load_snapshot(identifier, snapshot)

    # --- writes --------------------------------------------------------------

    def save_snapshot(self, name: str, body: Any) -> None:
        if name in self._snapshots:
            raise SnapshotExistsError(self.identifier, name)
        self._snapshots[name] = body

    @property
    def pending_snapshots(self) -> dict[str, Any]:
        return dict(self._snapshots)


def run_chain(chain: Sequence[Stage], compilation: Compilation) -> Item:
    item = Item(compilation.identifier)
    for stage in chain:
        item = stage(item, compilation)
    return item


def sequence(*stages: Stage) -> Stage:
    def run(item: Item, compilation: Compilation) -> Item:
        for stage in stages:
            item = stage(item, compilation)
        return item

    return run


# --- Sources ----------------------------------------------------------------


def get_resource_body(item: Item, compilation: Compilation) -> Item:
    """The source text, front matter removed."""
    return item.with_body(compilation.resource_body())


def copy_file_compiler(item: Item, compilation: Compilation) -> Item:
    return item.with_body(compilation.resource_bytes())


template_body_compiler = get_resource_body


def make_item(body: Any) -> Stage:
    return lambda item, compilation: item.with_body(body)


def concat_loaded(pattern: str | Pattern, separator: str = "\n") -> Stage:
    """Body = bodies of all compiled items matching ``pattern``, in identifier order."""

    def concat(item: Item, compilation: Compilation) -> Item:
        bodies = [str(loaded.body) + separator for loaded in compilation.load_all(pattern)]
        return item.with_body("".join(bodies))

    return concat


# --- Conversion -------------------------------------------------------------


def render_pandoc(item: Item, compilation: Compilation) -> Item:
    """Render the body to HTML according to the identifier's extension."""
    suffix = PurePosixPath(item.identifier).suffix.lower()
    if suffix in (".html", ".htm"):
        return item
    return item.with_body(compilation.tools.markdown.render(str(item.body), path=item.identifier))


pandoc_compiler = sequence(get_resource_body, render_pandoc)


def agda_compiler(options: AgdaOptions, *, include_item_dir: bool = False) -> Stage:
    """Check a literate Agda file and return its highlighted Markdown.

    With ``include_item_dir`` the item's own directory is put first on the
    include path (course pages import their siblings).
    """

    def compile_agda(item: Item, compilation: Compilation) -> Item:
        opts = options
        if include_item_dir:
            opts = options.with_include_path(str(PurePosixPath(item.identifier).parent))
        highlighted = compilation.tools.agda.compile(Path(item.identifier), opts)
        # Agda copies the front matter through; metadata comes from the source.
        _, body = parse_frontmatter(highlighted)
        return item.with_body(body)

    return compile_agda


def fix_links(fn: Callable[[str], str]) -> Stage:
    return lambda item, compilation: item.map_body(lambda body: with_urls(body, fn))


def read_pandoc(options: ReaderOptions) -> Stage:
    def read(item: Item, compilation: Compilation) -> Item:
        return item.with_body(compilation.tools.pandoc.read(str(item.body), options, path=item.identifier))

    return read


def apply_pandoc_filters(filters: Sequence[PandocFilter]) -> Stage:
    def apply(item: Item, compilation: Compilation) -> Item:
        document = item.body
        if not isinstance(document, dict):
            raise ParseError(item.identifier, "pandoc filters need a pandoc document")
        for pandoc_filter in filters:
            document = pandoc_filter(document)
        return item.with_body(document)

    return apply


def write_epub(options: WriterOptions, *, template: str | None = None, metadata: str | None = None) -> Stage:
    """Write the pandoc document as EPUB3.

    ``template`` and ``metadata`` name compiled items whose bodies become the
    pandoc template and the EPUB metadata XML.
    """

    def write(item: Item, compilation: Compilation) -> Item:
        opts = options
        if template is not None:
            opts = dataclasses.replace(opts, template=str(compilation.load_body(template)))
        if metadata is not None:
            opts = dataclasses.replace(opts, epub_metadata=str(compilation.load_body(metadata)))
        return item.with_body(compilation.tools.pandoc.write_epub(item.body, opts, path=item.identifier))

    return write


def sass_compiler(include_paths: Sequence[str]) -> Stage:
    def compile_scss(item: Item, compilation: Compilation) -> Item:
        source = compilation.resource_body()
        css = compilation.tools.sass.compile(source, include_paths, path=item.identifier)
        return item.with_body(css)

    return compile_scss


def compress_css_compiler(item: Item, compilation: Compilation) -> Item:
    return item.with_body(compress_css(compilation.resource_body()))


# --- Snapshots and templates ------------------------------------------------


def save_snapshot(name: str) -> Stage:
    def save(item: Item, compilation: Compilation) -> Item:
        compilation.save_snapshot(name, item.body)
        return item

    return save


def apply_as_template(context: Context) -> Stage:
    """Render the item's own body as a template."""

    def apply(item: Item, compilation: Compilation) -> Item:
        templates = compilation.templates
        template = templates.from_string(str(item.body), name=item.identifier)
        return item.with_body(templates.render(template, context, item, compilation))

    return apply


def load_and_apply_template(template_identifier: str, context: Context) -> Stage:
    def apply(item: Item, compilation: Compilation) -> Item:
        templates = compilation.templates
        template = templates.load_template(template_identifier)
        return item.with_body(templates.render(template, context, item, compilation))

    return apply


def relativize_urls(item: Item, compilation: Compilation) -> Item:
    """Rewrite root-relative links relative to the item's output location."""
    route = compilation.route
    if route is None:
        return item
    return item.map_body(lambda body: relativize_html(body, route))
