"""Core exceptions for the plfa-site build."""

from __future__ import annotations


class PlfaSiteError(Exception):
    """Base exception for all plfa-site errors."""


class MissingFieldError(PlfaSiteError):
    """Raised when no context layer can resolve a requested field."""

    def __init__(self, key: str, identifier: str | None = None, reason: str | None = None) -> None:
        self.key = key
        self.identifier = identifier
        self.reason = reason
        message = f"Missing field '{key}'"
        if identifier is not None:
            message += f" in context for item '{identifier}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class NoTitleSubtitleDistinctionError(MissingFieldError):
    """Raised when a title has no colon separating running title and subtitle."""

    def __init__(self, key: str, title: str, identifier: str | None = None) -> None:
        self.title = title
        super().__init__(key, identifier, reason=f"no titlerunning/subtitle distinction in {title!r}")


class SnapshotNotFoundError(PlfaSiteError):
    """Raised when a snapshot is read before (or without) being saved."""

    def __init__(self, identifier: str, snapshot: str) -> None:
        self.identifier = identifier
        self.snapshot = snapshot
        super().__init__(f"Snapshot '{snapshot}' was never saved for '{identifier}'")


class SnapshotExistsError(PlfaSiteError):
    """Raised when a snapshot name is saved twice for the same item."""

    def __init__(self, identifier: str, snapshot: str) -> None:
        self.identifier = identifier
        self.snapshot = snapshot
        super().__init__(f"Snapshot '{snapshot}' for '{identifier}' is already saved")


class ToolError(PlfaSiteError):
    """Base class for failures reported by an external tool."""

    def __init__(self, path: str, diagnostic: str) -> None:
        self.path = path
        self.diagnostic = diagnostic
        super().__init__(f"{self.kind} in '{path}': {diagnostic}")

    kind = "Tool error"


class ParseError(ToolError):
    """Raised when a document converter cannot parse its input."""

    kind = "Parse error"


class CompileError(ToolError):
    """Raised when Agda, Sass or the EPUB writer fail."""

    kind = "Compile error"


class RouteError(PlfaSiteError):
    """Raised when a route cannot be computed for a matched item."""

    def __init__(self, identifier: str, reason: str) -> None:
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"Cannot route '{identifier}': {reason}")


class DocumentNotFoundError(PlfaSiteError):
    """Raised when an item is loaded that no rule compiles."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"No rule compiles '{identifier}'")


class DependencyCycleError(PlfaSiteError):
    """Raised when items load each other in a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__("Dependency cycle: " + " -> ".join(cycle))


class ShadowedRuleError(PlfaSiteError):
    """Raised when a rule matches files but an earlier rule always wins."""

    def __init__(self, shadowed: dict[str, list[str]]) -> None:
        self.shadowed = shadowed
        details = "; ".join(f"{rule} (e.g. {ids[0]})" for rule, ids in shadowed.items())
        super().__init__(f"Rules never applied because earlier rules match first: {details}")


class ConfigLoadError(PlfaSiteError):
    """Raised when a configuration file cannot be loaded or parsed."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load or parse config at '{path}': {reason}")
