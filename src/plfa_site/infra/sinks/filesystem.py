"""Output sink writing compiled items to the site directory."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any

from plfa_site.core.exceptions import RouteError

logger = logging.getLogger(__name__)


class FileSystemSink:
    """Writes routed item bodies under an output directory.

    Text bodies are written as UTF-8; bytes are written verbatim. Routes are
    confined to the output directory.
    """

    def __init__(self, output_dir: Path) -> None:
        """Initialize the sink.

        Args:
            output_dir: Directory where routed files will be written

        """
        self.output_dir = Path(output_dir)

    def target(self, route: str) -> Path:
        target = (self.output_dir / route).resolve()
        root = self.output_dir.resolve()
        if target != root and root not in target.parents:
            raise RouteError(route, "route escapes the output directory")
        return target

    def write(self, route: str, body: Any) -> Path:
        target = self.target(route)
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(body, bytes):
            target.write_bytes(body)
        else:
            target.write_text(str(body), encoding="utf-8")
        logger.debug("Wrote %s", target)
        return target

    def clean(self) -> None:
        """Remove the output directory and everything in it."""
        if self.output_dir.exists():
            logger.info("Removing %s", self.output_dir)
            shutil.rmtree(self.output_dir)
