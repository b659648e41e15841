"""Authorization data models.

Defines the parsed form of a permission rule expression, the decision
returned by the engine, and the errors the authz package raises.

Wire format:
    expression := term (',' term)*
    term       := ['!'] identifier [ '(' ['!'] identifier ')' ]

Examples:
    - "admin": allow any admin
    - "user(basic)": allow only basic members with role user
    - "!user(basic)": deny basic users
    - "distributors(!basic)": allow distributors except basic members
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from permitto.authz.messages import USER_RESTRICTED, ErrorMessage


class TermKind(str, Enum):
    """Whether a term grants or negates its role."""

    POSITIVE_ROLE = "positive_role"
    NEGATIVE_ROLE = "negative_role"


class Slot(BaseModel):
    """One identifier position of a term, e.g. the `!basic` in `user(!basic)`.

    A negated slot with an empty name is a bare negation (`!`).
    """

    model_config = ConfigDict(frozen=True)

    negated: bool = Field(default=False, description="Slot is prefixed with '!'")
    name: str = Field(default="", description="Lower-cased identifier, empty for bare '!'")

    @property
    def is_bare_negation(self) -> bool:
        return self.negated and not self.name

    def __str__(self) -> str:
        return f"{'!' if self.negated else ''}{self.name}"


class Term(BaseModel):
    """A single clause of a rule expression.

    The role slot is always present. The membership slot is present when
    the term carries a parenthesized clause.
    """

    model_config = ConfigDict(frozen=True)

    role: Slot = Field(description="Role part of the term")
    membership: Slot | None = Field(
        default=None,
        description="Parenthesized membership clause, if any"
    )

    @property
    def kind(self) -> TermKind:
        if self.role.negated:
            return TermKind.NEGATIVE_ROLE
        return TermKind.POSITIVE_ROLE

    @property
    def qualified(self) -> bool:
        """Check if the term narrows its role with a membership clause."""
        return self.membership is not None

    @property
    def slots(self) -> tuple[Slot, ...]:
        """Slots in attribute order: role first, then membership."""
        if self.membership is None:
            return (self.role,)
        return (self.role, self.membership)

    def __str__(self) -> str:
        if self.membership is None:
            return str(self.role)
        return f"{self.role}({self.membership})"


class RuleSet(BaseModel):
    """Parsed rule expression.

    Terms keep their written order for display, but decisions only depend
    on which term shapes are present.
    """

    model_config = ConfigDict(frozen=True)

    terms: tuple[Term, ...] = Field(default=(), description="Parsed terms")

    @property
    def is_empty(self) -> bool:
        return not self.terms

    def __len__(self) -> int:
        return len(self.terms)

    def __iter__(self):  # type: ignore[override]
        return iter(self.terms)

    def __str__(self) -> str:
        return ",".join(str(term) for term in self.terms)


class AuthzDecision(BaseModel):
    """Result of evaluating a rule expression against a subject."""

    allowed: bool = Field(description="Whether access is allowed")
    expression: str = Field(default="", description="Normalized rule expression")
    role: str | None = Field(default=None, description="Subject role that was checked")
    membership: str | None = Field(
        default=None,
        description="Subject membership that was checked"
    )
    reason: str = Field(default="", description="Explanation of decision")
    trace: list[str] = Field(
        default_factory=list,
        description="Precedence step taken per attribute, as 'attribute:step'"
    )


class AuthzError(Exception):
    """Base class for authorization errors."""

    def __init__(self, message: str, code: str = "authz_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class AccessDeniedError(AuthzError):
    """Raised when a subject does not satisfy a rule expression."""

    def __init__(
        self,
        decision: AuthzDecision,
        catalog_entry: ErrorMessage = USER_RESTRICTED,
    ):
        self.decision = decision
        self.status_code = catalog_entry.status_code
        super().__init__(catalog_entry.message, catalog_entry.code)


class ConfigurationError(AuthzError):
    """Raised when the authz wiring itself is broken.

    Never a subject-driven outcome; callers must not retry or swallow it.
    """

    def __init__(self, message: str, code: str = "authz_misconfigured"):
        super().__init__(message, code)


class RuleSyntaxError(ConfigurationError):
    """Raised when a rule expression does not follow the wire format."""

    def __init__(self, term: str, index: int, reason: str):
        self.term = term
        self.index = index
        self.reason = reason
        super().__init__(
            f"Invalid permission term #{index} {term!r}: {reason}",
            "invalid_rules",
        )
