"""Running external build tools."""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path

from plfa_site.core.exceptions import ToolError

logger = logging.getLogger(__name__)


def run_tool(
    args: Sequence[str],
    *,
    path: str,
    error: type[ToolError],
    input: bytes | None = None,
    cwd: Path | None = None,
    timeout: float | None = None,
) -> bytes:
    """Run a tool and return its stdout, raising ``error`` on any failure."""
    executable = args[0]
    if shutil.which(executable) is None:
        raise error(path, f"'{executable}' was not found on PATH")

    logger.debug("Running %s", " ".join(args))
    try:
        result = subprocess.run(
            list(args),
            input=input,
            capture_output=True,
            cwd=cwd,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise error(path, f"'{executable}' timed out after {timeout}s") from exc
    except OSError as exc:
        raise error(path, f"could not run '{executable}': {exc}") from exc

    if result.returncode != 0:
        diagnostic = result.stderr.decode("utf-8", errors="replace").strip()
        if not diagnostic:
            diagnostic = result.stdout.decode("utf-8", errors="replace").strip()
        raise error(path, diagnostic or f"'{executable}' exited with status {result.returncode}")
    return result.stdout
