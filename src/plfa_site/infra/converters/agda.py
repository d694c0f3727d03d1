"""Literate Agda to highlighted Markdown via ``agda --html``."""

from __future__ import annotations

import logging
import re
import tempfile
from pathlib import Path

from plfa_site.core.exceptions import CompileError
from plfa_site.core.ports import AgdaOptions
from plfa_site.infra.converters.process import run_tool

logger = logging.getLogger(__name__)

_MODULE_DECLARATION = re.compile(r"^\s*module\s+(?P<name>[^\s(]+)", re.MULTILINE)


def declared_module(source: str) -> str | None:
    """Name of the top-level module declared in an Agda source."""
    match = _MODULE_DECLARATION.search(source)
    return match.group("name") if match else None


class AgdaHtmlCompiler:
    """Type-checks a literate Agda file and returns its highlighted Markdown.

    Agda writes one file per checked module into a scratch ``--html-dir``; for
    ``.lagda.md`` sources the requested module comes back as ``<Module>.md`` with
    the code blocks replaced by highlighted HTML.
    """

    def __init__(self, executable: str = "agda", working_dir: Path | None = None, timeout: float | None = None):
        self.executable = executable
        self.working_dir = working_dir
        self.timeout = timeout

    def args(self, source: Path, options: AgdaOptions, html_dir: Path) -> list[str]:
        args = [
            self.executable,
            "--html",
            "--html-highlight=code",
            f"--html-dir={html_dir}",
            f"--verbose={options.verbosity}",
        ]
        if not options.use_libraries:
            args.append("--no-libraries")
        args += [f"--include-path={path}" for path in options.include_paths]
        args += list(options.extra_args)
        args.append(str(source))
        return args

    def compile(self, source: Path, options: AgdaOptions) -> str:
        path = str(source)
        try:
            text = (self._resolve(source)).read_text(encoding="utf-8")
        except OSError as exc:
            raise CompileError(path, f"cannot read source: {exc}") from exc
        module = declared_module(text)
        if module is None:
            raise CompileError(path, "no top-level module declaration")

        with tempfile.TemporaryDirectory(prefix="plfa-agda-") as tmp:
            html_dir = Path(tmp)
            run_tool(
                self.args(source, options, html_dir),
                path=path,
                error=CompileError,
                cwd=self.working_dir,
                timeout=self.timeout,
            )
            output = html_dir / f"{module}.md"
            if not output.is_file():
                raise CompileError(path, f"agda did not produce {output.name}")
            highlighted = output.read_text(encoding="utf-8")

        logger.info("Checked %s", module)
        return highlighted

    def _resolve(self, source: Path) -> Path:
        if source.is_absolute() or self.working_dir is None:
            return source
        return self.working_dir / source
