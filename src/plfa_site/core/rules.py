"""Ordered rule table: first matching rule wins.

Rules that overlap must be declared most-specific-first; for example
``src/plfa/epub.md`` has to come before ``src/**.md``. The matcher does not
reorder anything. :meth:`RuleTable.shadowed_rules` finds rules that match
files but never win, which is what an accidental reordering produces.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field

from plfa_site.core.exceptions import ShadowedRuleError
from plfa_site.core.patterns import Pattern, as_pattern, from_list
from plfa_site.core.routes import Route

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rule:
    """A pattern bound to an optional route and a compiler chain.

    ``creates`` lists identifiers the rule produces without a source file.
    """

    pattern: Pattern
    chain: Sequence
    route: Route | None = None
    name: str = ""
    creates: tuple[str, ...] = field(default=())

    @classmethod
    def match(cls, pattern: str | Pattern, chain: Sequence, route: Route | None = None, name: str = "") -> Rule:
        pattern = as_pattern(pattern)
        return cls(pattern=pattern, chain=tuple(chain), route=route, name=name or str(pattern))

    @classmethod
    def create(cls, identifiers: Iterable[str], chain: Sequence, route: Route | None = None, name: str = "") -> Rule:
        created = tuple(identifiers)
        return cls(
            pattern=from_list(created),
            chain=tuple(chain),
            route=route,
            name=name or "create " + ", ".join(created),
            creates=created,
        )

    @property
    def routed(self) -> bool:
        return self.route is not None

    def __str__(self) -> str:
        return self.name


class RuleTable:
    """An explicit, ordered list of rules."""

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules: list[Rule] = list(rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def add(self, rule: Rule) -> Rule:
        self._rules.append(rule)
        return rule

    def match(self, identifier: str) -> Rule | None:
        for rule in self._rules:
            if rule.creates:
                continue
            if rule.pattern.matches(identifier):
                return rule
        return None

    def created_identifiers(self) -> list[str]:
        return [identifier for rule in self._rules for identifier in rule.creates]

    def assign(self, identifiers: Iterable[str]) -> tuple[dict[str, Rule], list[str]]:
        """Match every identifier; return (identifier -> rule, unmatched).

        Identifiers produced by a ``create`` rule are bound to that rule even
        when a file of the same name exists.
        """
        created = {identifier: rule for rule in self._rules for identifier in rule.creates}
        matched: dict[str, Rule] = dict(created)
        unmatched: list[str] = []
        for identifier in identifiers:
            if identifier in created:
                continue
            rule = self.match(identifier)
            if rule is None:
                unmatched.append(identifier)
            else:
                matched[identifier] = rule
        return matched, unmatched

    def shadowed_rules(self, identifiers: Iterable[str]) -> dict[str, list[str]]:
        """Rules that match some identifier yet win for none of them.

        Returns a mapping of rule name to the identifiers it would have matched.
        """
        winners: set[int] = set()
        candidates: dict[int, list[str]] = {}
        for identifier in identifiers:
            first = True
            for index, rule in enumerate(self._rules):
                if rule.creates or not rule.pattern.matches(identifier):
                    continue
                if first:
                    winners.add(index)
                    first = False
                else:
                    candidates.setdefault(index, []).append(identifier)

        return {
            self._rules[index].name: ids
            for index, ids in sorted(candidates.items())
            if index not in winners
        }

    def check_shadowing(self, identifiers: Iterable[str]) -> None:
        shadowed = self.shadowed_rules(identifiers)
        if shadowed:
            raise ShadowedRuleError(shadowed)
