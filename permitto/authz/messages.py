"""Message catalog for authorization failures.

Fixed, user-facing texts paired with the HTTP status each one is
surfaced with.
"""

from pydantic import BaseModel, ConfigDict, Field


class ErrorMessage(BaseModel):
    """A catalog entry: stable code, user-facing text, HTTP status."""

    model_config = ConfigDict(frozen=True)

    code: str = Field(description="Stable machine-readable code")
    message: str = Field(description="Text shown to the end user")
    status_code: int = Field(description="HTTP status the failure maps to")


USER_RESTRICTED = ErrorMessage(
    code="user_restricted",
    message="You do not have permission to perform this action.",
    status_code=403,
)

SUBJECT_REQUIRED = ErrorMessage(
    code="subject_required",
    message="No authenticated subject in request context",
    status_code=401,
)

INVALID_RULES = ErrorMessage(
    code="invalid_rules",
    message="Permission rules could not be parsed",
    status_code=422,
)
