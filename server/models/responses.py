from pydantic import BaseModel

from shared.clients.dms.models.Department import Department
from shared.clients.dms.models.Document import Document


class SessionResponse(BaseModel):
    principal_id: int
    display_name: str
    roles: list[str]
    departments: list[int]


class UserDepartmentsResponse(BaseModel):
    principal_id: int
    departments: list[Department]


class DeleteResponse(BaseModel):
    status: str = "deleted"
    collection: str
    id: int


class DashboardResponse(BaseModel):
    status_counts: dict[str, int]
    recent: list[Document]


class ErrorResponse(BaseModel):
    kind: str
    detail: str
    retryable: bool
