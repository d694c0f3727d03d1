"""Write-once store of named item snapshots, keyed by (identifier, name)."""

from __future__ import annotations

import logging
from typing import Any

from plfa_site.core.exceptions import SnapshotExistsError, SnapshotNotFoundError

logger = logging.getLogger(__name__)


class SnapshotStore:
    def __init__(self) -> None:
        self._snapshots: dict[tuple[str, str], Any] = {}

    def save(self, identifier: str, name: str, body: Any) -> None:
        key = (identifier, name)
        if key in self._snapshots:
            raise SnapshotExistsError(identifier, name)
        logger.debug("Saved snapshot %s of %s", name, identifier)
        self._snapshots[key] = body

    def load(self, identifier: str, name: str) -> Any:
        try:
            return self._snapshots[(identifier, name)]
        except KeyError:
            raise SnapshotNotFoundError(identifier, name) from None

    def has(self, identifier: str, name: str) -> bool:
        return (identifier, name) in self._snapshots

    def names(self, identifier: str) -> list[str]:
        return [name for (owner, name) in self._snapshots if owner == identifier]
