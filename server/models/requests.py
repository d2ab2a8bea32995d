from pydantic import BaseModel

from shared.clients.dms.models.Document import DocumentStatus


class SessionRequest(BaseModel):
    id: int
    token: str
    display_name: str = ""
    roles: list[str] = []
    departments: list[int] = []
    resolve_departments: bool = False


class DocumentCreateRequest(BaseModel):
    title: str
    description: str | None = None
    content: str | None = None
    status: DocumentStatus | None = None
    tags: list[str] = []
    department_id: int | None = None
    category_id: int | None = None


class DocumentUpdateRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    content: str | None = None
    status: DocumentStatus | None = None
    tags: list[str] | None = None
    department_id: int | None = None
    category_id: int | None = None
