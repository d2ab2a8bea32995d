"""Generic DMS category model, independent of the remote backend."""

from pydantic import BaseModel


class Category(BaseModel):
    """
    Represents a single document category, as returned by a DMS client.
    """
    engine: str
    id: int
    name: str
    description: str | None = None
