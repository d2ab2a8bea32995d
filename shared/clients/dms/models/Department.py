"""Generic DMS department model, independent of the remote backend."""

from pydantic import BaseModel


class Department(BaseModel):
    """
    Represents a single department, as returned by a DMS client.
    """
    engine: str
    id: int
    name: str
    description: str | None = None
