"""SCSS compilation through the ``sass`` command and a small CSS minifier."""

from __future__ import annotations

import re
from collections.abc import Sequence
from pathlib import Path

from plfa_site.core.exceptions import CompileError
from plfa_site.infra.converters.process import run_tool

_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_WHITESPACE = re.compile(r"\s+")
_AROUND_PUNCTUATION = re.compile(r"\s*([{};,>])\s*")
_AFTER_COLON = re.compile(r":\s+")


class SassCommandCompiler:
    def __init__(self, executable: str = "sass", working_dir: Path | None = None) -> None:
        self.executable = executable
        self.working_dir = working_dir

    def compile(self, scss: str, include_paths: Sequence[str], *, path: str = "") -> str:
        args = [self.executable, "--stdin", "--no-source-map"]
        args += [f"--load-path={include}" for include in include_paths]
        stdout = run_tool(args, path=path, error=CompileError, input=scss.encode("utf-8"), cwd=self.working_dir)
        return stdout.decode("utf-8")


def compress_css(css: str) -> str:
    """Drop comments, redundant whitespace and the last ``;`` of each block."""
    css = _COMMENT.sub("", css)
    css = _WHITESPACE.sub(" ", css)
    css = _AROUND_PUNCTUATION.sub(r"\1", css)
    css = _AFTER_COLON.sub(":", css)
    css = css.replace(";}", "}")
    return css.strip()
