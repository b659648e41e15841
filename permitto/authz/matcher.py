"""Slot patterns and per-attribute matchers.

A pattern describes what one slot of a term must look like. An
`AttributeMatcher` answers "does the rule set contain a term whose slot at
my level matches this pattern, given the patterns already chosen for the
earlier levels?".

For the role level the context is empty. For the membership level the
context holds the role pattern, so `MATCHERS["membership"]` with
pattern `Exact("basic")` and context `(Exact("user"),)` looks for a
`user(basic)` term.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from permitto.authz.models import RuleSet, Slot, Term


class SlotPattern(ABC):
    """Predicate over a single slot."""

    @abstractmethod
    def matches(self, slot: Slot) -> bool:
        pass


@dataclass(frozen=True)
class Exact(SlotPattern):
    """A specific identifier, optionally negated: `user` or `!user`."""

    name: str
    negated: bool = False

    def matches(self, slot: Slot) -> bool:
        return slot.negated == self.negated and slot.name == self.name

    def __str__(self) -> str:
        return f"{'!' if self.negated else ''}{self.name}"


@dataclass(frozen=True)
class Wildcard(SlotPattern):
    """Any identifier with the given polarity."""

    negated: bool = False

    def matches(self, slot: Slot) -> bool:
        return slot.negated == self.negated and bool(slot.name)

    def __str__(self) -> str:
        return "!*" if self.negated else "*"


@dataclass(frozen=True)
class BareNegation(SlotPattern):
    """A lone `!` with no identifier."""

    def matches(self, slot: Slot) -> bool:
        return slot.is_bare_negation

    def __str__(self) -> str:
        return "!"


@dataclass(frozen=True)
class AnyIdentifier(SlotPattern):
    """Any identifier, negated or not. Used when a level imposes no constraint."""

    def matches(self, slot: Slot) -> bool:
        return bool(slot.name)

    def __str__(self) -> str:
        return "?*"


POSITIVE = Wildcard(negated=False)
NEGATIVE = Wildcard(negated=True)
BARE = BareNegation()
ANY = AnyIdentifier()


class AttributeMatcher:
    """Matches patterns against one attribute level of a RuleSet.

    Level 0 is the role slot, level 1 the membership clause.
    """

    def __init__(self, level: int):
        self.level = level

    def matches(
        self,
        rule_set: RuleSet,
        pattern: SlotPattern,
        context: tuple[SlotPattern, ...] = (),
        unqualified_only: bool = False,
    ) -> bool:
        """Check if any term matches `pattern` at this level.

        Args:
            rule_set: Parsed rules to search
            pattern: Pattern for the slot at this level
            context: Patterns the earlier levels' slots must match;
                missing entries accept any identifier
            unqualified_only: Only consider terms with no clause
                beyond this level
        """
        context = context[:self.level] + (ANY,) * (self.level - len(context))
        return any(
            self._term_matches(term, pattern, context, unqualified_only)
            for term in rule_set.terms
        )

    def _term_matches(
        self,
        term: Term,
        pattern: SlotPattern,
        context: tuple[SlotPattern, ...],
        unqualified_only: bool,
    ) -> bool:
        slots = term.slots
        if len(slots) <= self.level:
            return False
        if unqualified_only and len(slots) > self.level + 1:
            return False
        for outer, slot in zip(context, slots):
            if not outer.matches(slot):
                return False
        return pattern.matches(slots[self.level])

    def __repr__(self) -> str:
        return f"AttributeMatcher(level={self.level})"


# Resolution order and the matcher for each attribute
ATTRIBUTES: tuple[str, ...] = ("role", "membership")

MATCHERS: dict[str, AttributeMatcher] = {
    "role": AttributeMatcher(level=0),
    "membership": AttributeMatcher(level=1),
}
