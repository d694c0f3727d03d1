"""Glob patterns over identifiers with ``|``, ``&`` and ``~`` combinators.

``*`` and ``?`` never cross a ``/``; ``**`` matches any number of characters
including separators, so ``src/**.md`` matches ``src/a.md`` and
``src/plfa/part1/Naturals.lagda.md``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from functools import cached_property


class Pattern:
    """Base class for identifier patterns."""

    def matches(self, identifier: str) -> bool:
        raise NotImplementedError

    def filter(self, identifiers: Iterable[str]) -> list[str]:
        return [identifier for identifier in identifiers if self.matches(identifier)]

    def __or__(self, other: Pattern) -> Pattern:
        return AnyOf((self, other))

    def __and__(self, other: Pattern) -> Pattern:
        return AllOf((self, other))

    def __invert__(self) -> Pattern:
        return Complement(self)


def _glob_to_regex(glob: str) -> str:
    parts: list[str] = []
    i = 0
    while i < len(glob):
        char = glob[i]
        if glob.startswith("**", i):
            parts.append(".*")
            i += 2
            continue
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
        i += 1
    return "".join(parts)


@dataclass(frozen=True)
class Glob(Pattern):
    glob: str

    @cached_property
    def _regex(self) -> re.Pattern[str]:
        return re.compile(_glob_to_regex(self.glob))

    @property
    def is_literal(self) -> bool:
        return not any(char in self.glob for char in "*?")

    def matches(self, identifier: str) -> bool:
        return self._regex.fullmatch(identifier) is not None

    def __str__(self) -> str:
        return self.glob


@dataclass(frozen=True)
class FromList(Pattern):
    identifiers: frozenset[str]

    def matches(self, identifier: str) -> bool:
        return identifier in self.identifiers

    def __str__(self) -> str:
        return "[" + ", ".join(sorted(self.identifiers)) + "]"


@dataclass(frozen=True)
class AnyOf(Pattern):
    patterns: tuple[Pattern, ...]

    def matches(self, identifier: str) -> bool:
        return any(pattern.matches(identifier) for pattern in self.patterns)

    def __str__(self) -> str:
        return "(" + " | ".join(str(pattern) for pattern in self.patterns) + ")"


@dataclass(frozen=True)
class AllOf(Pattern):
    patterns: tuple[Pattern, ...]

    def matches(self, identifier: str) -> bool:
        return all(pattern.matches(identifier) for pattern in self.patterns)

    def __str__(self) -> str:
        return "(" + " & ".join(str(pattern) for pattern in self.patterns) + ")"


@dataclass(frozen=True)
class Complement(Pattern):
    pattern: Pattern

    def matches(self, identifier: str) -> bool:
        return not self.pattern.matches(identifier)

    def __str__(self) -> str:
        return f"~{self.pattern}"


def glob(pattern: str) -> Glob:
    return Glob(pattern)


def from_list(identifiers: Iterable[str]) -> FromList:
    return FromList(frozenset(identifiers))


def as_pattern(value: str | Pattern) -> Pattern:
    return value if isinstance(value, Pattern) else Glob(value)
