"""Authorization decision API endpoints.

Lets other services ask for a decision without linking the engine:

- POST /authz/evaluate: decide for a subject given in the body
- POST /authz/parse: show how a rule expression is understood
- GET /authz/me: decide for the caller attached by the subject middleware
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator

from permitto.auth.middleware import get_current_subject
from permitto.auth.models import Subject
from permitto.authz.engine import get_permit_engine
from permitto.authz.messages import INVALID_RULES
from permitto.authz.models import (
    AccessDeniedError,
    AuthzDecision,
    RuleSyntaxError,
    TermKind,
)
from permitto.authz.parser import compile_rules

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/authz", tags=["Authorization"])


# =============================================================================
# Request/Response Models
# =============================================================================


class EvaluateRequest(BaseModel):
    """Request to evaluate rules for a subject."""

    rules: list[str] = Field(
        default_factory=list,
        max_length=50,
        description="Raw permission rules, e.g. ['admin', 'user(basic)']",
    )
    role: str = Field(..., min_length=1, max_length=64, description="Subject role")
    membership: str | None = Field(
        default=None, max_length=64, description="Subject membership"
    )
    user_id: str | None = Field(default=None, max_length=64, description="Caller id")

    @field_validator("role")
    @classmethod
    def role_is_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("role must not be blank")
        return value


class ParseRequest(BaseModel):
    """Request to parse rules."""

    rules: list[str] = Field(default_factory=list, max_length=50)


class TermResponse(BaseModel):
    """One parsed term."""

    text: str
    kind: TermKind
    role: str
    role_negated: bool
    membership: str | None = None
    membership_negated: bool | None = None


class ParseResponse(BaseModel):
    """Parsed form of a rule expression."""

    expression: str
    terms: list[TermResponse]


def _invalid_rules(error: RuleSyntaxError) -> HTTPException:
    logger.warning("Rejected malformed rules: %s", error.message)
    return HTTPException(
        status_code=INVALID_RULES.status_code,
        detail={
            "error": INVALID_RULES.code,
            "message": INVALID_RULES.message,
            "reason": error.reason,
            "term": error.term,
            "index": error.index,
        },
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/evaluate", response_model=AuthzDecision)
async def evaluate(request: EvaluateRequest) -> AuthzDecision:
    """Evaluate rules for the subject described in the body.

    A denial is a normal outcome here and is returned, not raised.
    """
    subject = Subject(
        role=request.role,
        membership=request.membership,
        user_id=request.user_id,
    )
    try:
        return get_permit_engine().evaluate(subject, *request.rules)
    except RuleSyntaxError as e:
        raise _invalid_rules(e)


@router.post("/parse", response_model=ParseResponse)
async def parse(request: ParseRequest) -> ParseResponse:
    """Normalize and parse rules without evaluating them."""
    try:
        rule_set = compile_rules(*request.rules)
    except RuleSyntaxError as e:
        raise _invalid_rules(e)

    return ParseResponse(
        expression=str(rule_set),
        terms=[
            TermResponse(
                text=str(term),
                kind=term.kind,
                role=term.role.name,
                role_negated=term.role.negated,
                membership=term.membership.name if term.membership else None,
                membership_negated=term.membership.negated if term.membership else None,
            )
            for term in rule_set.terms
        ],
    )


@router.get("/me", response_model=AuthzDecision)
async def check_me(
    rules: list[str] = Query(default=[]),
    subject: Subject = Depends(get_current_subject),
) -> AuthzDecision:
    """Check the calling subject against rules given as query parameters."""
    try:
        return get_permit_engine().check(subject, *rules)
    except RuleSyntaxError as e:
        raise _invalid_rules(e)
    except AccessDeniedError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail={
                "error": e.code,
                "message": e.message,
                "trace": e.decision.trace,
            },
        )
