"""Permission rule authorization package.

Evaluates comma-joined permission rules against a subject's role and
membership.

Usage:
    from permitto.authz import Subject, get_permit_engine, permit_to

    engine = get_permit_engine()

    # Check a subject directly
    if engine.is_permitted(subject, "admin", "distributors(!basic)"):
        # Allowed
        pass

    # Or guard a FastAPI route
    @app.get("/reports", dependencies=[Depends(permit_to("admin"))])
    async def reports(): ...
"""

from permitto.auth.models import Subject
from permitto.authz.models import (
    AccessDeniedError,
    AuthzDecision,
    AuthzError,
    ConfigurationError,
    RuleSet,
    RuleSyntaxError,
    Slot,
    Term,
    TermKind,
)
from permitto.authz.parser import compile_rules, normalize_rules, parse_rules
from permitto.authz.engine import PermitEngine, get_permit_engine, permit_to

__all__ = [
    "Subject",
    "AccessDeniedError",
    "AuthzDecision",
    "AuthzError",
    "ConfigurationError",
    "RuleSet",
    "RuleSyntaxError",
    "Slot",
    "Term",
    "TermKind",
    "compile_rules",
    "normalize_rules",
    "parse_rules",
    "PermitEngine",
    "get_permit_engine",
    "permit_to",
]
