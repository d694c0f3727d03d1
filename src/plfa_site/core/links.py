"""URL rewriting in rendered HTML: library links, local module links, relativisation."""

from __future__ import annotations

import logging
import posixpath
import re
from collections.abc import Callable
from pathlib import Path

from plfa_site.core.metadata import MetadataStore
from plfa_site.core.types import to_identifier

logger = logging.getLogger(__name__)

# Values of the URL attributes href, src, data and poster. data-src and friends
# are plain attributes.
_URL_ATTRIBUTE = re.compile(
    r"""(?P<prefix>(?<![\w-])(?:href|src|data|poster)\s*=\s*)(?P<quote>["'])(?P<url>.*?)(?P=quote)""",
    re.IGNORECASE | re.DOTALL,
)
_AGDA_LIB_NAME = re.compile(r"^\s*name\s*:\s*(?P<name>\S+)\s*$", re.MULTILINE)
_LIBRARY_VERSION = re.compile(r"-(?P<version>\d+(?:\.\d+)*)$")
_MODULE_HTML = re.compile(r"^(?P<module>[A-Za-z][\w']*(?:\.[A-Za-z][\w']*)*)\.html(?P<anchor>#.*)?$")
_AGDA_SOURCE_SUFFIXES = (".lagda.md", ".agda", ".lagda")


def with_urls(html: str, fn: Callable[[str], str]) -> str:
    """Apply ``fn`` to every URL attribute value, leaving all other text untouched."""

    def replace(match: re.Match[str]) -> str:
        url = match.group("url")
        rewritten = fn(url)
        if rewritten == url:
            return match.group(0)
        return f"{match.group('prefix')}{match.group('quote')}{rewritten}{match.group('quote')}"

    return _URL_ATTRIBUTE.sub(replace, html)


def is_external(url: str) -> bool:
    return "://" in url or url.startswith(("//", "mailto:", "data:", "javascript:"))


def to_site_root(route: str) -> str:
    """Relative path from a route's directory back to the site root."""
    depth = len([part for part in posixpath.dirname(route).split("/") if part])
    return "/".join([".."] * depth) or "."


def relativize_url(url: str, route: str) -> str:
    if url.startswith("/") and not url.startswith("//"):
        return to_site_root(route) + url
    return url


def relativize_urls(html: str, route: str) -> str:
    """Make root-relative URLs relative to the route's own location."""
    return with_urls(html, lambda url: relativize_url(url, route))


def module_name(relative_path: str) -> str | None:
    """``plfa/part1/Naturals.lagda.md`` -> ``plfa.part1.Naturals``."""
    for suffix in _AGDA_SOURCE_SUFFIXES:
        if relative_path.endswith(suffix):
            return relative_path[: -len(suffix)].replace("/", ".")
    return None


class StdlibLinkFixer:
    """Point links to Agda standard library modules at the published library docs."""

    def __init__(self, stdlib_dir: Path, base_url: str = "https://agda.github.io/agda-stdlib") -> None:
        self.stdlib_dir = Path(stdlib_dir)
        self.base_url = base_url.rstrip("/")
        self.version = self._read_version()
        self.top_modules = self._read_top_modules()
        logger.debug(
            "Standard library %s with %d top-level modules", self.version or "(unversioned)", len(self.top_modules)
        )

    def _read_version(self) -> str | None:
        lib_files = sorted(self.stdlib_dir.glob("*.agda-lib"))
        if not lib_files:
            logger.warning("No .agda-lib file in %s; library links keep no version", self.stdlib_dir)
            return None
        match = _AGDA_LIB_NAME.search(lib_files[0].read_text(encoding="utf-8"))
        if not match:
            return None
        version = _LIBRARY_VERSION.search(match.group("name"))
        return f"v{version.group('version')}" if version else None

    def _read_top_modules(self) -> frozenset[str]:
        src = self.stdlib_dir / "src"
        modules = {"Agda"}
        if src.is_dir():
            for entry in src.iterdir():
                if entry.is_dir():
                    modules.add(entry.name)
                elif module_name(entry.name):
                    modules.add(module_name(entry.name))
        return frozenset(modules)

    @property
    def library_url(self) -> str:
        return f"{self.base_url}/{self.version}" if self.version else self.base_url

    def __call__(self, url: str) -> str:
        match = _MODULE_HTML.match(url)
        if not match:
            return url
        top = match.group("module").split(".", 1)[0]
        if top not in self.top_modules:
            return url
        return f"{self.library_url}/{url}"


class LocalLinkFixer:
    """Point links to this book's own Agda modules at the modules' permalinks."""

    def __init__(self, source_dir: str, metadata: MetadataStore) -> None:
        self.source_dir = to_identifier(source_dir).rstrip("/")
        self.permalinks = self._collect_permalinks(metadata)
        logger.debug("Local link table has %d modules", len(self.permalinks))

    def _collect_permalinks(self, metadata: MetadataStore) -> dict[str, str]:
        root = metadata.site_root / self.source_dir
        permalinks: dict[str, str] = {}
        if not root.is_dir():
            logger.warning("Source directory %s does not exist", root)
            return permalinks
        for path in sorted(root.rglob("*")):
            relative = path.relative_to(root).as_posix()
            name = module_name(relative)
            if name is None or not path.is_file():
                continue
            identifier = f"{self.source_dir}/{relative}"
            permalink = metadata.get_field_or_none(identifier, "permalink")
            if permalink:
                permalinks[name] = permalink
        return permalinks

    def __call__(self, url: str) -> str:
        match = _MODULE_HTML.match(url)
        if not match:
            return url
        permalink = self.permalinks.get(match.group("module"))
        if permalink is None:
            return url
        return permalink + (match.group("anchor") or "")
