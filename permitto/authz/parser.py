"""Normalizer and parser for permission rule expressions.

Turns the raw strings handed to `permit_to(...)` into a `RuleSet`:

    normalize_rules("Admin", " user (basic)")  -> "admin,user(basic)"
    parse_rules("admin,user(basic)")           -> RuleSet of two terms
"""

import logging
import re

from permitto.authz.models import RuleSet, RuleSyntaxError, Slot, Term

logger = logging.getLogger(__name__)

TERM_SEPARATOR = ","

_TERM_PATTERN = re.compile(
    r"^(?P<role_neg>!?)(?P<role>[a-z]*)"
    r"(?:\((?P<membership_neg>!?)(?P<membership>[a-z]*)\))?$"
)


def normalize_rules(*rules: str) -> str:
    """Join raw rule strings into one lower-cased expression without whitespace."""
    joined = TERM_SEPARATOR.join(rules).lower()
    return "".join(joined.split())


def parse_rules(expression: str) -> RuleSet:
    """Parse a normalized expression into a RuleSet.

    Empty terms (stray or trailing commas) are skipped.

    Raises:
        RuleSyntaxError: If a term does not follow the wire format
    """
    terms = []
    for index, raw in enumerate(expression.split(TERM_SEPARATOR)):
        if not raw:
            continue
        terms.append(_parse_term(raw, index))

    logger.debug("Parsed %d permission terms from %r", len(terms), expression)
    return RuleSet(terms=tuple(terms))


def compile_rules(*rules: str) -> RuleSet:
    """Normalize and parse raw rule strings in one step."""
    return parse_rules(normalize_rules(*rules))


def _parse_term(raw: str, index: int) -> Term:
    match = _TERM_PATTERN.match(raw)
    if match is None:
        raise RuleSyntaxError(raw, index, _describe_failure(raw))

    role = Slot(negated=bool(match["role_neg"]), name=match["role"])
    if not role.negated and not role.name:
        raise RuleSyntaxError(raw, index, "missing role name")

    membership = None
    if match["membership_neg"] is not None:
        membership = Slot(
            negated=bool(match["membership_neg"]),
            name=match["membership"],
        )
        if not membership.negated and not membership.name:
            raise RuleSyntaxError(raw, index, "empty membership clause")

    return Term(role=role, membership=membership)


def _describe_failure(raw: str) -> str:
    opening, closing = raw.count("("), raw.count(")")
    if opening > 1 or closing > 1:
        return "only one membership clause is allowed per role"
    if opening != closing or (opening and not raw.endswith(")")):
        return "unbalanced or misplaced parentheses"
    return "identifiers must be alphabetic"
