"""The authenticated actor of a session."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

ADMIN_ROLES = frozenset({"ADMIN", "ROLE_ADMIN"})


class Principal(BaseModel):
    """Identity, roles, department memberships and credential of the logged-in user.

    Immutable for the lifetime of a session. A new login replaces it wholesale.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    display_name: str = ""
    roles: frozenset[str] = Field(default_factory=frozenset)
    departments: frozenset[int] = Field(default_factory=frozenset)
    token: str | None = None

    @field_validator("roles", mode="before")
    @classmethod
    def _normalize_roles(cls, value):
        if value is None:
            return frozenset()
        return frozenset(str(role).strip().upper() for role in value if str(role).strip())

    @field_validator("departments", mode="before")
    @classmethod
    def _normalize_departments(cls, value):
        if value is None:
            return frozenset()
        return frozenset(value)

    def with_departments(self, departments: set[int] | frozenset[int]) -> "Principal":
        """Returns a copy of this principal with a freshly resolved membership set."""
        return self.model_copy(update={"departments": frozenset(departments)})
