"""Subject models.

The subject is the verified caller an authorization decision is made
for: a role and an optional membership.
"""

from pydantic import BaseModel, Field, field_validator


class Subject(BaseModel):
    """Authenticated caller as seen by the authz engine.

    Role is always present for an authenticated caller. Membership may be
    absent; a blank membership is treated as absent.
    """

    role: str = Field(min_length=1, description="Primary classification, e.g. 'admin'")
    membership: str | None = Field(
        default=None,
        description="Secondary classification qualifying the role, e.g. 'basic'"
    )
    user_id: str | None = Field(default=None, description="Caller identifier, for logs")

    @field_validator("role")
    @classmethod
    def role_is_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("role must not be blank")
        return value

    @field_validator("membership")
    @classmethod
    def blank_membership_is_absent(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value

    def attribute_values(self) -> dict[str, str | None]:
        """Lower-cased attribute values keyed by attribute name."""
        return {
            "role": self.role.strip().lower(),
            "membership": self.membership.strip().lower() if self.membership else None,
        }
