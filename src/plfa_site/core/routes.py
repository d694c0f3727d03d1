"""Routes map a matched identifier (and its metadata) to an output path."""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from pathlib import PurePosixPath
from typing import Any

from plfa_site.core.exceptions import RouteError

Route = Callable[[str, Mapping[str, Any]], str]


def id_route(identifier: str, metadata: Mapping[str, Any]) -> str:
    return identifier


def set_extension(extension: str) -> Route:
    """Replace the final extension: ``posts/a.md`` -> ``posts/a.html``."""
    suffix = "." + extension.lstrip(".") if extension else ""

    def route(identifier: str, metadata: Mapping[str, Any]) -> str:
        path = PurePosixPath(identifier)
        return str(path.with_suffix(suffix)) if path.suffix else identifier + suffix

    return route


def const_route(output: str) -> Route:
    def route(identifier: str, metadata: Mapping[str, Any]) -> str:
        return output

    return route


def gsub_route(pattern: str, replacement: str) -> Route:
    regex = re.compile(pattern)

    def route(identifier: str, metadata: Mapping[str, Any]) -> str:
        return regex.sub(replacement, identifier)

    return route


def compose_routes(*routes: Route) -> Route:
    def route(identifier: str, metadata: Mapping[str, Any]) -> str:
        output = identifier
        for step in routes:
            output = step(output, metadata)
        return output

    return route


def permalink_to_path(permalink: str) -> str:
    """Turn a permalink into an output file path.

    >>> permalink_to_path("/Naturals/")
    'Naturals/index.html'
    >>> permalink_to_path("/404.html")
    '404.html'
    """
    path = permalink.strip().lstrip("/")
    if not path or path.endswith("/"):
        return path + "index.html"
    return path


def permalink_route(identifier: str, metadata: Mapping[str, Any]) -> str:
    permalink = metadata.get("permalink")
    if not isinstance(permalink, str) or not permalink.strip():
        raise RouteError(identifier, "missing 'permalink' metadata")
    return permalink_to_path(permalink)


def route_to_url(route: str) -> str:
    """Public URL of a route, dropping a trailing ``index.html``."""
    url = "/" + route.lstrip("/")
    if url.endswith("/index.html"):
        return url[: -len("index.html")]
    return url
