"""Pandoc reader and EPUB3 writer, exchanging pandoc's JSON AST."""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
from typing import Any

from plfa_site.core.exceptions import CompileError, ParseError
from plfa_site.core.ports import ReaderOptions, WriterOptions
from plfa_site.infra.converters.process import run_tool

logger = logging.getLogger(__name__)


class PandocConverter:
    def __init__(self, executable: str = "pandoc", working_dir: Path | None = None) -> None:
        self.executable = executable
        self.working_dir = working_dir

    def reader_args(self, options: ReaderOptions, source_format: str = "markdown") -> list[str]:
        args = [self.executable, "--from", source_format, "--to", "json"]
        if options.standalone:
            args.append("--standalone")
        if options.strip_comments:
            args.append("--strip-comments")
        return args

    def writer_args(self, options: WriterOptions, output: Path) -> list[str]:
        args = [self.executable, "--from", "json", "--to", "epub3", "--output", str(output)]
        if options.table_of_contents:
            args += ["--toc", f"--toc-depth={options.toc_depth}"]
        args.append(f"--split-level={options.epub_chapter_level}")
        args += [f"--epub-embed-font={font}" for font in options.epub_fonts]
        if options.resource_path:
            args.append("--resource-path=" + ":".join(options.resource_path))
        return args

    def read(self, body: str, options: ReaderOptions, *, path: str = "") -> dict[str, Any]:
        stdout = run_tool(
            self.reader_args(options),
            path=path,
            error=ParseError,
            input=body.encode("utf-8"),
            cwd=self.working_dir,
        )
        try:
            document = json.loads(stdout)
        except json.JSONDecodeError as exc:
            raise ParseError(path, f"pandoc produced invalid JSON: {exc}") from exc
        if not isinstance(document, dict) or "blocks" not in document:
            raise ParseError(path, "pandoc JSON has no 'blocks'")
        return document

    def write_epub(self, document: dict[str, Any], options: WriterOptions, *, path: str = "") -> bytes:
        with tempfile.TemporaryDirectory(prefix="plfa-epub-") as tmp:
            workdir = Path(tmp)
            output = workdir / "book.epub"
            args = self.writer_args(options, output)
            if options.template is not None:
                template = workdir / "template.html"
                template.write_text(options.template, encoding="utf-8")
                args.append(f"--template={template}")
            if options.epub_metadata is not None:
                metadata = workdir / "metadata.xml"
                metadata.write_text(options.epub_metadata, encoding="utf-8")
                args.append(f"--epub-metadata={metadata}")

            run_tool(
                args,
                path=path,
                error=CompileError,
                input=json.dumps(document).encode("utf-8"),
                cwd=self.working_dir,
            )
            if not output.is_file():
                raise CompileError(path, "pandoc did not write the EPUB file")
            data = output.read_bytes()

        logger.info("Wrote EPUB for %s (%d bytes)", path, len(data))
        return data
