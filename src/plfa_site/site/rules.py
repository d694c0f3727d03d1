"""The PLFA site's rule table.

Rule order matters: the first matching rule wins, so special cases such as
``src/plfa/epub.md`` and ``src/plfa/index.md`` must come before the general
``src/**.md`` rule that would otherwise claim them. Reordering shows up as a
warning from :meth:`~plfa_site.core.rules.RuleTable.shadowed_rules` when a rule
stops applying to any file.
"""

from __future__ import annotations

import logging

from plfa_site.core.config import SiteConfig
from plfa_site.core.context import Context
from plfa_site.core.links import LocalLinkFixer, StdlibLinkFixer
from plfa_site.core.metadata import MetadataStore
from plfa_site.core.patterns import glob
from plfa_site.core.ports import AgdaOptions, ReaderOptions, WriterOptions
from plfa_site.core.routes import const_route, gsub_route, id_route, permalink_route, set_extension
from plfa_site.core.rules import Rule, RuleTable
from plfa_site.engine.build import Build, Toolchain
from plfa_site.engine.compiler import (
    Stage,
    agda_compiler,
    apply_as_template,
    apply_pandoc_filters,
    compress_css_compiler,
    concat_loaded,
    copy_file_compiler,
    fix_links,
    get_resource_body,
    load_and_apply_template,
    pandoc_compiler,
    read_pandoc,
    relativize_urls,
    render_pandoc,
    sass_compiler,
    save_snapshot,
    template_body_compiler,
    write_epub,
)
from plfa_site.infra.sinks.filesystem import FileSystemSink
from plfa_site.site.contexts import (
    CONTENT_SNAPSHOT,
    acknowledgements_context,
    epub_context,
    post_context,
    post_list_context,
    site_context,
    table_of_contents_context,
)

logger = logging.getLogger(__name__)

PAGE_TEMPLATE = "templates/page.html"
POST_TEMPLATE = "templates/post.html"
DEFAULT_TEMPLATE = "templates/default.html"
EPUB_TEMPLATE = "templates/epub.html"
EPUB_METADATA = "src/plfa/meta.xml"
STYLESHEET = "public/css/style.css"

EPUB_READER_OPTIONS = ReaderOptions(standalone=True, strip_comments=True)


def agda_options(config: SiteConfig) -> AgdaOptions:
    return AgdaOptions(
        include_paths=tuple(config.agda.include_paths),
        use_libraries=config.agda.use_libraries,
        verbosity=config.agda.verbosity,
    )


def epub_writer_options(config: SiteConfig) -> WriterOptions:
    return WriterOptions(
        table_of_contents=True,
        toc_depth=config.pandoc.toc_depth,
        epub_fonts=tuple(config.pandoc.epub_fonts),
        epub_chapter_level=config.pandoc.epub_chapter_level,
    )


def with_page_templates(site: Context, *, template: str = PAGE_TEMPLATE, context: Context | None = None) -> list[Stage]:
    """Wrap a rendered body in its page template, then the default layout."""
    return [
        load_and_apply_template(template, context or site),
        load_and_apply_template(DEFAULT_TEMPLATE, site),
        relativize_urls,
    ]


def plfa_rules(config: SiteConfig, metadata: MetadataStore) -> RuleTable:
    """Build the ordered rule table for the site.

    ``metadata`` is the build's store; local module links are resolved from the
    ``permalink`` metadata of every literate Agda source.
    """
    settings = config.site
    toc = config.paths.toc_metadata
    site = site_context(settings)

    fix_stdlib_link = StdlibLinkFixer(config.paths.abs_stdlib_dir, config.build.stdlib_url)
    fix_local_link = LocalLinkFixer(config.paths.source_dir, metadata)

    page_compiler = [pandoc_compiler, save_snapshot(CONTENT_SNAPSHOT), *with_page_templates(site)]

    def page_with_agda_compiler(options: AgdaOptions, *, include_item_dir: bool = False) -> list[Stage]:
        return [
            agda_compiler(options, include_item_dir=include_item_dir),
            fix_links(fix_stdlib_link),
            fix_links(fix_local_link),
            render_pandoc,
            save_snapshot(CONTENT_SNAPSHOT),
            *with_page_templates(site),
        ]

    options = agda_options(config)
    rules = RuleTable()

    # EPUB
    rules.add(
        Rule.match(
            "src/plfa/epub.md",
            [
                get_resource_body,
                apply_as_template(epub_context(toc)),
                read_pandoc(EPUB_READER_OPTIONS),
                apply_pandoc_filters([]),
                write_epub(epub_writer_options(config), template=EPUB_TEMPLATE, metadata=EPUB_METADATA),
            ],
            const_route("plfa.epub"),
        )
    )
    rules.add(Rule.match(EPUB_TEMPLATE, [get_resource_body, apply_as_template(site)]))
    rules.add(Rule.match(EPUB_METADATA, [get_resource_body, apply_as_template(site)]))

    # Table of contents
    rules.add(
        Rule.match(
            "src/plfa/index.md",
            [
                get_resource_body,
                apply_as_template(table_of_contents_context(settings, toc)),
                render_pandoc,
                *with_page_templates(site),
            ],
            permalink_route,
        )
    )
    rules.add(Rule.match("src/**.metadata", [get_resource_body]))

    # Acknowledgements
    rules.add(
        Rule.match(
            "src/plfa/backmatter/acknowledgements.md",
            [
                get_resource_body,
                apply_as_template(acknowledgements_context(settings)),
                render_pandoc,
                save_snapshot(CONTENT_SNAPSHOT),
                *with_page_templates(site),
            ],
            permalink_route,
        )
    )
    rules.add(Rule.match("authors/*.metadata", [get_resource_body]))
    rules.add(Rule.match("contributors/*.metadata", [get_resource_body]))

    # Announcements and posts
    rules.add(
        Rule.match(
            "src/pages/announcements.html",
            [get_resource_body, apply_as_template(post_list_context(settings)), *with_page_templates(site)],
            permalink_route,
        )
    )
    rules.add(
        Rule.match(
            "posts/*",
            [
                pandoc_compiler,
                save_snapshot(CONTENT_SNAPSHOT),
                *with_page_templates(site, template=POST_TEMPLATE, context=post_context(settings)),
            ],
            set_extension("html"),
        )
    )

    # Book chapters and other pages
    rules.add(Rule.match("src/**.lagda.md", page_with_agda_compiler(options), permalink_route))
    rules.add(Rule.match(glob("README.md") | glob("src/**.md"), page_compiler, permalink_route))

    # Courses
    rules.add(
        Rule.match("courses/**.lagda.md", page_with_agda_compiler(options, include_item_dir=True), permalink_route)
    )
    rules.add(Rule.match("courses/**.md", page_compiler, permalink_route))
    rules.add(Rule.match("courses/**.pdf", [copy_file_compiler], id_route))

    rules.add(
        Rule.match(
            "404.html",
            [pandoc_compiler, load_and_apply_template(DEFAULT_TEMPLATE, site)],
            id_route,
        )
    )
    rules.add(Rule.match("templates/*", [template_body_compiler]))
    rules.add(Rule.match("public/**", [copy_file_compiler], id_route))

    # Stylesheets
    rules.add(Rule.match("css/*.css", [compress_css_compiler]))
    rules.add(Rule.match("css/minima.scss", [sass_compiler(config.sass.include_paths)]))
    rules.add(
        Rule.create(
            [STYLESHEET],
            [concat_loaded((glob("css/*.css") | glob("css/*.scss")) & ~glob("css/epub.css"))],
            id_route,
        )
    )

    # Archived versions
    strip_versions = gsub_route(r"^versions/", "")
    for version in config.build.versions:
        rules.add(Rule.match(f"versions/{version}/**.html", [get_resource_body, relativize_urls], strip_versions))
        rules.add(Rule.match(f"versions/{version}/**", [copy_file_compiler], strip_versions))

    logger.debug("Declared %d rules", len(rules))
    return rules


def create_build(config: SiteConfig, tools: Toolchain | None = None, sink: FileSystemSink | None = None) -> Build:
    """Assemble a build of the PLFA site from its configuration."""
    metadata = MetadataStore(config.paths.site_root)
    rules = plfa_rules(config, metadata)
    return Build(config, rules, tools or Toolchain.from_config(config), sink=sink, metadata=metadata)
