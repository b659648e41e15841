"""Permission rule engine.

Evaluates a rule expression such as "admin,user(basic),!guest" against a
subject's (role, membership) pair.

Attributes are resolved one level at a time, role first. At each level
the first applicable step wins:

1. A term names the subject's own value: descend with that value as
   context.
2. An unqualified positive term grants some other value: the subject is
   excluded, so negate the descent with a "some identifier" context.
3. A negative term exists: if it names the subject's value, negate the
   descent with that negated value; otherwise descend with a
   "some negated identifier" context.
4. A bare `!` term exists: negate the descent with a bare context.
5. Nothing constrains this level: descend with the subject's own value
   as context, so clauses written for other values are ignored.

An absent attribute value, or running out of attributes, resolves to
allowed.
"""

import logging
from enum import Enum

from permitto.auth.models import Subject
from permitto.authz.matcher import (
    ATTRIBUTES,
    BARE,
    MATCHERS,
    NEGATIVE,
    POSITIVE,
    AttributeMatcher,
    Exact,
    SlotPattern,
)
from permitto.authz.messages import USER_RESTRICTED
from permitto.authz.models import (
    AccessDeniedError,
    AuthzDecision,
    ConfigurationError,
    RuleSet,
)
from permitto.authz.parser import compile_rules

logger = logging.getLogger(__name__)


class ResolutionStep(str, Enum):
    """Precedence step taken when resolving one attribute."""

    ABSENT = "absent"
    EXACT_MATCH = "exact_match"
    EXCLUDED = "excluded"
    NEGATED_MATCH = "negated_match"
    NOT_NEGATED = "not_negated"
    BARE_NEGATION = "bare_negation"
    UNCONSTRAINED = "unconstrained"


class PermitEngine:
    """Stateless evaluator for permission rule expressions.

    Usage:
        engine = PermitEngine()

        decision = engine.evaluate(subject, "admin", "user(basic)")
        if decision.allowed:
            # Proceed
        else:
            # Reject with decision.reason

        engine.check(subject, "!guest")  # raises AccessDeniedError
    """

    def __init__(
        self,
        matchers: dict[str, AttributeMatcher] | None = None,
        attributes: tuple[str, ...] = ATTRIBUTES,
    ):
        """Initialize the engine.

        Args:
            matchers: Matcher per attribute name (default: role and membership)
            attributes: Resolution order of attribute names
        """
        self.matchers = dict(MATCHERS if matchers is None else matchers)
        self.attributes = tuple(attributes)

    def evaluate(self, subject: Subject, *rules: str) -> AuthzDecision:
        """Evaluate raw rule strings against a subject.

        No rules at all means no restriction is configured.

        Raises:
            RuleSyntaxError: If a rule does not follow the wire format
            ConfigurationError: If an attribute has no matcher
        """
        if not rules:
            return self._unrestricted(subject, "")
        return self.evaluate_rule_set(subject, compile_rules(*rules))

    def evaluate_rule_set(self, subject: Subject, rule_set: RuleSet) -> AuthzDecision:
        """Evaluate an already parsed RuleSet against a subject."""
        expression = str(rule_set)
        if rule_set.is_empty:
            return self._unrestricted(subject, expression)

        trace: list[str] = []
        allowed = self.resolve(
            rule_set, subject.attribute_values(), self.attributes, (), trace
        )

        decision = AuthzDecision(
            allowed=allowed,
            expression=expression,
            role=subject.role,
            membership=subject.membership,
            reason=self._reason(allowed, expression, trace),
            trace=trace,
        )

        if allowed:
            logger.debug(
                "Access ALLOWED: user=%s role=%s membership=%s rules=%s trace=%s",
                subject.user_id, subject.role, subject.membership, expression, trace
            )
        else:
            logger.info(
                "Access DENIED: user=%s role=%s membership=%s rules=%s trace=%s",
                subject.user_id, subject.role, subject.membership, expression, trace
            )
        return decision

    def is_permitted(self, subject: Subject, *rules: str) -> bool:
        """Check if the subject satisfies the rules."""
        return self.evaluate(subject, *rules).allowed

    def check(self, subject: Subject, *rules: str) -> AuthzDecision:
        """Evaluate rules and raise if the subject is denied.

        Raises:
            AccessDeniedError: If the decision is a denial
        """
        decision = self.evaluate(subject, *rules)
        if not decision.allowed:
            raise AccessDeniedError(decision, USER_RESTRICTED)
        return decision

    def resolve(
        self,
        rule_set: RuleSet,
        values: dict[str, str | None],
        attributes: tuple[str, ...],
        context: tuple[SlotPattern, ...],
        trace: list[str] | None = None,
    ) -> bool:
        """Resolve the remaining attributes into a single boolean.

        Args:
            rule_set: Parsed rules
            values: Lower-cased subject value per attribute name
            attributes: Attribute names still to resolve, outermost first
            context: Patterns chosen for the attributes already resolved
            trace: If given, receives one 'attribute:step' entry per level

        Raises:
            ConfigurationError: If an attribute has no registered matcher
        """
        if not attributes:
            return True

        name, remaining = attributes[0], attributes[1:]
        matcher = self.matchers.get(name)
        if matcher is None:
            logger.error(
                "No matcher registered for attribute %r (registered: %s)",
                name, sorted(self.matchers)
            )
            raise ConfigurationError(
                f"No matcher registered for attribute '{name}'"
            )

        value = values.get(name)
        if not value:
            self._record(trace, name, ResolutionStep.ABSENT)
            return True

        def found(pattern: SlotPattern, unqualified_only: bool = False) -> bool:
            return matcher.matches(rule_set, pattern, context, unqualified_only)

        def descend(pattern: SlotPattern) -> bool:
            return self.resolve(
                rule_set, values, remaining, context + (pattern,), trace
            )

        own = Exact(value)
        if found(own):
            self._record(trace, name, ResolutionStep.EXACT_MATCH)
            return descend(own)

        if found(POSITIVE, unqualified_only=True):
            self._record(trace, name, ResolutionStep.EXCLUDED)
            return not descend(POSITIVE)

        if found(NEGATIVE):
            negated_own = Exact(value, negated=True)
            if found(negated_own):
                self._record(trace, name, ResolutionStep.NEGATED_MATCH)
                return not descend(negated_own)
            self._record(trace, name, ResolutionStep.NOT_NEGATED)
            return descend(NEGATIVE)

        if found(BARE):
            self._record(trace, name, ResolutionStep.BARE_NEGATION)
            return not descend(BARE)

        # Only qualified grants for other values remain; their deeper clauses
        # do not apply to this subject.
        self._record(trace, name, ResolutionStep.UNCONSTRAINED)
        return descend(own)

    @staticmethod
    def _record(trace: list[str] | None, name: str, step: ResolutionStep) -> None:
        if trace is not None:
            trace.append(f"{name}:{step.value}")

    @staticmethod
    def _reason(allowed: bool, expression: str, trace: list[str]) -> str:
        verdict = "Permitted" if allowed else "Denied"
        if not trace:
            return f"{verdict} by rules: {expression}"
        return f"{verdict} by rules: {expression} ({trace[0]})"

    @staticmethod
    def _unrestricted(subject: Subject, expression: str) -> AuthzDecision:
        return AuthzDecision(
            allowed=True,
            expression=expression,
            role=subject.role,
            membership=subject.membership,
            reason="No restriction configured",
        )


# Shared instance; the engine holds no mutable state
_permit_engine: PermitEngine | None = None


def get_permit_engine() -> PermitEngine:
    """Get the default permit engine."""
    global _permit_engine
    if _permit_engine is None:
        _permit_engine = PermitEngine()
    return _permit_engine


# FastAPI dependency helpers
def permit_to(*rules: str):
    """FastAPI dependency to restrict a route to subjects matching `rules`.

    Rules are parsed when the dependency is declared, so a malformed rule
    fails at startup rather than on the first request.

    Usage:
        @app.get("/reports", dependencies=[Depends(permit_to("admin", "user(gold)"))])
        async def reports():
            pass
    """
    from fastapi import Depends, HTTPException

    from permitto.auth.middleware import get_current_subject

    rule_set = compile_rules(*rules)

    def check(subject: Subject = Depends(get_current_subject)) -> AuthzDecision:
        engine = get_permit_engine()
        decision = engine.evaluate_rule_set(subject, rule_set)

        if not decision.allowed:
            raise HTTPException(
                status_code=USER_RESTRICTED.status_code,
                detail={
                    "error": USER_RESTRICTED.code,
                    "message": USER_RESTRICTED.message,
                },
            )

        return decision

    return check
