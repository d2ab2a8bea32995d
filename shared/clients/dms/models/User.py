"""Generic DMS user model, independent of the remote backend."""

from pydantic import BaseModel


class User(BaseModel):
    """
    Represents a single user account with its department memberships, as returned by a DMS client.
    """
    engine: str
    id: int
    full_name: str | None = None
    email: str | None = None
    roles: list[str] = []
    departments: list[int] = []
