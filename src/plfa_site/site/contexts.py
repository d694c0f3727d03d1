"""Template contexts for the PLFA site's page classes."""

from __future__ import annotations

from plfa_site.core.config import SiteSettings
from plfa_site.core.context import (
    Context,
    const_field,
    default_context,
    field,
    list_field,
    toc_context,
)
from plfa_site.core.fields import (
    by_numeric_field_desc,
    content_field,
    date_field,
    modification_time_field,
    recent_first,
    subtitle_field,
    teaser_field,
    titlerunning_field,
)

CONTENT_SNAPSHOT = "content"
MODIFIED_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
POST_DATE_FORMAT = "%B %e, %Y"


def site_context(settings: SiteSettings) -> Context:
    """Site-wide fields, then the default fields of the item itself."""
    authors = tuple(settings.authors)
    return Context.compose(
        const_field("pagetitle", settings.pagetitle),
        const_field("pageurl", settings.pageurl),
        const_field("description", settings.description),
        const_field("language", settings.language),
        const_field("rights", settings.rights),
        const_field("rights_url", settings.rights_url),
        const_field("repository", settings.repository),
        const_field("branch", settings.branch),
        modification_time_field("modified", MODIFIED_FORMAT),
        field("source", lambda item, build: item.identifier),
        list_field("authors", default_context(), lambda item, build: [build.load(author) for author in authors]),
        const_field("google_analytics", settings.google_analytics),
        default_context(),
    )


def site_section_context(settings: SiteSettings) -> Context:
    return Context.compose(titlerunning_field(), subtitle_field(), site_context(settings))


def acknowledgements_context(settings: SiteSettings) -> Context:
    """Contributors, most contributions first."""
    return Context.compose(
        list_field(
            "contributors",
            default_context(),
            lambda item, build: by_numeric_field_desc(build.load_all("contributors/*.metadata"), "count", build),
        ),
        site_context(settings),
    )


def post_context(settings: SiteSettings) -> Context:
    return Context.compose(date_field("date", POST_DATE_FORMAT), site_context(settings))


def post_list_context(settings: SiteSettings) -> Context:
    post_item_context = Context.compose(
        teaser_field("teaser", CONTENT_SNAPSHOT),
        content_field("content", CONTENT_SNAPSHOT),
        post_context(settings),
    )
    return Context.compose(
        list_field("posts", post_item_context, lambda item, build: recent_first(build.load_all("posts/*"), build)),
        site_context(settings),
    )


def epub_section_context() -> Context:
    """Fields of a chapter as it appears inside the EPUB."""
    return Context.compose(
        content_field("content", CONTENT_SNAPSHOT),
        titlerunning_field(),
        subtitle_field(),
    )


def epub_context(toc_identifier: str) -> Context:
    return toc_context(epub_section_context(), toc_identifier)


def table_of_contents_context(settings: SiteSettings, toc_identifier: str) -> Context:
    return toc_context(site_section_context(settings), toc_identifier)
