"""Demand-driven site build.

A :class:`Build` is assembled once per invocation from a config, an ordered
:class:`~plfa_site.core.rules.RuleTable` and a :class:`Toolchain`. Running it:

1. discovers identifiers under the site root (hidden directories and the output
   directory are skipped) and matches each against the rule table;
2. compiles every routed item, compiling dependencies first whenever a chain
   loads another item or reads its snapshot;
3. writes each completed item through the sink.

A failing chain fails its own document (and documents that load it); all other
documents still build.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from plfa_site.core.config import SiteConfig
from plfa_site.core.exceptions import (
    DependencyCycleError,
    DocumentNotFoundError,
    PlfaSiteError,
    ShadowedRuleError,
)
from plfa_site.core.metadata import MetadataStore
from plfa_site.core.patterns import Pattern, as_pattern
from plfa_site.core.ports import DocumentConverter, LiterateCompiler, MarkdownRenderer, StylesheetCompiler
from plfa_site.core.rules import Rule, RuleTable
from plfa_site.core.snapshots import SnapshotStore
from plfa_site.core.types import Item, to_identifier
from plfa_site.engine.compiler import Compilation, run_chain
from plfa_site.engine.template_loader import TemplateLoader
from plfa_site.infra.converters.agda import AgdaHtmlCompiler
from plfa_site.infra.converters.markdown import MarkdownItRenderer
from plfa_site.infra.converters.pandoc import PandocConverter
from plfa_site.infra.converters.sass import SassCommandCompiler
from plfa_site.infra.sinks.filesystem import FileSystemSink

logger = logging.getLogger(__name__)

# Failures a single document may raise without stopping the build.
DOCUMENT_ERRORS = (PlfaSiteError, OSError)


@dataclass
class Toolchain:
    """The external converters a build drives."""

    markdown: MarkdownRenderer
    pandoc: DocumentConverter
    agda: LiterateCompiler
    sass: StylesheetCompiler

    @classmethod
    def from_config(cls, config: SiteConfig) -> Toolchain:
        root = config.paths.site_root
        return cls(
            markdown=MarkdownItRenderer(),
            pandoc=PandocConverter(config.pandoc.executable, working_dir=root),
            agda=AgdaHtmlCompiler(config.agda.executable, working_dir=root, timeout=config.agda.timeout),
            sass=SassCommandCompiler(config.sass.executable, working_dir=root),
        )


@dataclass
class DocumentFailure:
    """A routed document whose chain did not complete."""

    identifier: str
    error: Exception

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass
class BuildReport:
    """Result of one full build."""

    outputs: dict[str, str] = field(default_factory=dict)
    failures: list[DocumentFailure] = field(default_factory=list)
    unmatched: list[str] = field(default_factory=list)
    shadowed: dict[str, list[str]] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.failures


class Build:
    """One build of the site: rule assignment, compiled items and snapshots."""

    def __init__(
        self,
        config: SiteConfig,
        rules: RuleTable,
        tools: Toolchain,
        sink: FileSystemSink | None = None,
        metadata: MetadataStore | None = None,
    ) -> None:
        self.config = config
        self.rules = rules
        self.tools = tools
        self.site_root = Path(config.paths.site_root)
        self.output_dir = config.paths.abs_output_dir
        self.sink = sink or FileSystemSink(self.output_dir)
        self.metadata = metadata or MetadataStore(self.site_root)
        self.snapshots = SnapshotStore()
        self.templates = TemplateLoader(self._template_source)

        self._assigned: dict[str, Rule] = {}
        self._unmatched: list[str] = []
        self._shadowed: dict[str, list[str]] = {}
        self._prepared = False

        self._routes: dict[str, str | None] = {}
        self._compiled: dict[str, Item] = {}
        self._failed: dict[str, Exception] = {}
        self._in_progress: list[str] = []

    # --- Discovery ----------------------------------------------------------

    def discover(self) -> list[str]:
        """All source identifiers under the site root, sorted."""
        output_dir = self.output_dir.resolve()
        identifiers: list[str] = []
        for dirpath, dirnames, filenames in os.walk(self.site_root):
            current = Path(dirpath)
            dirnames[:] = [
                name
                for name in sorted(dirnames)
                if not name.startswith(".") and (current / name).resolve() != output_dir
            ]
            for name in filenames:
                if name.startswith("."):
                    continue
                identifiers.append(to_identifier((current / name).relative_to(self.site_root).as_posix()))
        return sorted(identifiers)

    def prepare(self) -> None:
        """Match every identifier against the rule table.

        Raises:
            ShadowedRuleError: a rule matches files but never applies and
                ``build.fail_on_shadowed_rules`` is set

        """
        identifiers = self.discover()
        self._assigned, self._unmatched = self.rules.assign(identifiers)
        self._shadowed = self.rules.shadowed_rules(identifiers)
        if self._shadowed:
            if self.config.build.fail_on_shadowed_rules:
                raise ShadowedRuleError(self._shadowed)
            for name, matched in self._shadowed.items():
                logger.warning("Rule %s never applies (%d files match earlier rules)", name, len(matched))

        logger.info(
            "Matched %d of %d identifiers (%d unmatched)",
            len(self._assigned),
            len(identifiers),
            len(self._unmatched),
        )
        for identifier in self._unmatched:
            logger.debug("No rule for %s", identifier)
        self._prepared = True

    @property
    def assignments(self) -> Mapping[str, Rule]:
        if not self._prepared:
            self.prepare()
        return dict(self._assigned)

    @property
    def unmatched(self) -> list[str]:
        return list(self._unmatched)

    @property
    def shadowed(self) -> dict[str, list[str]]:
        return dict(self._shadowed)

    # --- Reads used by compilations -----------------------------------------

    def route_of(self, identifier: str) -> str | None:
        if identifier in self._routes:
            return self._routes[identifier]
        rule = self._assigned.get(identifier)
        route = None
        if rule is not None and rule.route is not None:
            route = rule.route(identifier, self.metadata.get_metadata(identifier))
        self._routes[identifier] = route
        return route

    def matching(self, pattern: str | Pattern) -> list[str]:
        """Sorted identifiers that a rule compiles and ``pattern`` matches."""
        return sorted(as_pattern(pattern).filter(self._assigned))

    def modification_time(self, identifier: str) -> datetime:
        return self.metadata.modification_time(identifier)

    def load(self, identifier: str) -> Item:
        """The compiled item, compiling it first if needed."""
        if identifier in self._compiled:
            return self._compiled[identifier]
        if identifier in self._failed:
            raise self._failed[identifier]
        if identifier in self._in_progress:
            start = self._in_progress.index(identifier)
            raise DependencyCycleError([*self._in_progress[start:], identifier])

        rule = self._assigned.get(identifier)
        if rule is None:
            raise DocumentNotFoundError(identifier)
        return self._compile(identifier, rule)

    def load_snapshot(self, identifier: str, snapshot: str) -> Any:
        if not self.snapshots.has(identifier, snapshot) and identifier not in self._compiled:
            self.load(identifier)
        return self.snapshots.load(identifier, snapshot)

    def _compile(self, identifier: str, rule: Rule) -> Item:
        logger.debug("Compiling %s with %s", identifier, rule)
        compilation = Compilation(self, identifier)
        self._in_progress.append(identifier)
        try:
            item = run_chain(rule.chain, compilation)
        except DOCUMENT_ERRORS as exc:
            self._failed[identifier] = exc
            raise
        finally:
            self._in_progress.pop()

        for name, body in compilation.pending_snapshots.items():
            self.snapshots.save(identifier, name, body)
        self._compiled[identifier] = item
        return item

    def _template_source(self, identifier: str) -> str:
        return str(self.load(identifier).body)

    # --- Running ------------------------------------------------------------

    def run(self) -> BuildReport:
        """Compile and write every routed item."""
        started = time.perf_counter()
        if not self._prepared:
            self.prepare()
        report = BuildReport(unmatched=list(self._unmatched), shadowed=dict(self._shadowed))

        for identifier in sorted(self._assigned):
            if not self._assigned[identifier].routed:
                continue
            try:
                route = self.route_of(identifier)
                item = self.load(identifier)
                if route is not None:
                    self.sink.write(route, item.body)
            except DOCUMENT_ERRORS as exc:
                logger.error("Failed to build %s: %s", identifier, exc)
                report.failures.append(DocumentFailure(identifier, exc))
                continue
            if route is not None:
                report.outputs[identifier] = route

        report.duration_seconds = time.perf_counter() - started
        logger.info(
            "Built %d outputs, %d failures in %.2fs",
            len(report.outputs),
            len(report.failures),
            report.duration_seconds,
        )
        return report
