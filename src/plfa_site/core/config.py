"""Typed build settings, overridable through ``PLFA_SITE_*`` environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SiteSettings(BaseModel):
    """Values shown on every page."""

    pagetitle: str = Field(default="Programming Language Foundations in Agda", description="Site title")
    pageurl: str = Field(default="https://plfa.github.io", description="Public base URL")
    description: str = Field(
        default="An introduction to programming language theory using the proof assistant Agda.",
        description="Site description",
    )
    language: str = Field(default="en-US")
    rights: str = Field(default="Creative Commons Attribution 4.0 International License")
    rights_url: str = Field(default="https://creativecommons.org/licenses/by/4.0/")
    repository: str = Field(default="plfa/plfa.github.io", description="GitHub owner/name")
    branch: str = Field(default="dev", description="Branch linked from 'edit this page'")
    google_analytics: str = Field(default="UA-125055580-1")
    authors: list[str] = Field(
        default_factory=lambda: [
            "authors/wadler.metadata",
            "authors/wenkokke.metadata",
            "authors/jsiek.metadata",
        ],
        description="Author metadata files, in display order",
    )


class PathsSettings(BaseModel):
    """Path configuration.

    All paths are relative to 'site_root' unless absolute.
    """

    site_root: Path = Field(default_factory=Path.cwd, description="Root of the site sources")
    output_dir: Path = Field(default=Path("_site"), description="Where the built site is written")
    source_dir: str = Field(default="src", description="Book sources, used for local module links")
    stdlib_dir: Path = Field(default=Path("standard-library"), description="Agda standard library checkout")
    toc_metadata: str = Field(default="src/plfa/toc.metadata", description="Table of contents metadata")

    @property
    def abs_output_dir(self) -> Path:
        return self._resolve(self.output_dir)

    @property
    def abs_stdlib_dir(self) -> Path:
        return self._resolve(self.stdlib_dir)

    def _resolve(self, path: Path) -> Path:
        if path.is_absolute():
            return path
        return self.site_root / path


class AgdaSettings(BaseModel):
    executable: str = Field(default="agda")
    include_paths: list[str] = Field(
        default_factory=lambda: ["standard-library/src", "src"],
        description="Agda include paths, relative to site_root",
    )
    use_libraries: bool = Field(default=False)
    verbosity: int = Field(default=0, ge=0)
    timeout: float | None = Field(default=None, description="Seconds before an Agda run is abandoned")


class PandocSettings(BaseModel):
    executable: str = Field(default="pandoc")
    toc_depth: int = Field(default=2, ge=1)
    epub_chapter_level: int = Field(default=2, ge=1)
    epub_fonts: list[str] = Field(
        default_factory=lambda: [
            "public/webfonts/DejaVuSansMono.woff",
            "public/webfonts/FreeMono.woff",
            "public/webfonts/mononoki.woff",
        ]
    )


class SassSettings(BaseModel):
    executable: str = Field(default="sass")
    include_paths: list[str] = Field(default_factory=lambda: ["css"])


class BuildSettings(BaseModel):
    versions: list[str] = Field(default_factory=lambda: ["19.08", "20.07"], description="Archived book versions")
    stdlib_url: str = Field(default="https://agda.github.io/agda-stdlib")
    fail_on_shadowed_rules: bool = Field(
        default=False, description="Refuse to build when a rule matches files but never applies"
    )
    watch_debounce: float = Field(default=0.5, ge=0.0, description="Seconds to wait for more changes")


class SiteConfig(BaseSettings):
    """Root configuration for the site build.

    Supports environment variable overrides with the pattern:
    PLFA_SITE_SECTION__KEY (e.g., PLFA_SITE_AGDA__EXECUTABLE)
    """

    site: SiteSettings = Field(default_factory=SiteSettings)
    paths: PathsSettings = Field(default_factory=PathsSettings)
    agda: AgdaSettings = Field(default_factory=AgdaSettings)
    pandoc: PandocSettings = Field(default_factory=PandocSettings)
    sass: SassSettings = Field(default_factory=SassSettings)
    build: BuildSettings = Field(default_factory=BuildSettings)

    model_config = SettingsConfigDict(
        extra="ignore",
        env_prefix="PLFA_SITE_",
        env_nested_delimiter="__",
    )
