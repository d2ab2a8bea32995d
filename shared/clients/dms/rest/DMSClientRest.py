from typing import Any

from shared.clients.dms.DMSClientInterface import DMSClientInterface, DOCUMENTS, CATEGORIES
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.clients.dms.models.Document import AttachedFile, Document, DocumentStatus
from shared.clients.dms.models.Department import Department
from shared.clients.dms.models.Category import Category
from shared.clients.dms.models.User import User

_DOCUMENT_WIRE_KEYS = {
    "title": "title",
    "description": "description",
    "content": "content",
    "status": "status",
    "tags": "tags",
    "department_id": "departmentId",
    "category_id": "categoryId",
    "created_by": "createdBy",
}

_USER_WIRE_KEYS = {
    "full_name": "fullName",
    "email": "email",
    "password": "password",
    "roles": "roles",
}


class DMSClientRest(DMSClientInterface):
    """
    Client for the REST backend split into a documents service (documents, categories)
    and an organisation service (departments, users).
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._docs_base_url = self.get_config_val("DOCS_BASE_URL", default=None, val_type="string")
        self._org_base_url = self.get_config_val("ORG_BASE_URL", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Rest"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="DOCS_BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="ORG_BASE_URL", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self, token: str | None) -> dict:
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._docs_base_url

    def _get_service_url(self, collection: str) -> str:
        if collection in (DOCUMENTS, CATEGORIES):
            return self._docs_base_url
        return self._org_base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/actuator/health"

    def _get_endpoint_collection(self, collection: str) -> str:
        return f"/api/{collection}"

    def _get_endpoint_entity(self, collection: str, entity_id: int) -> str:
        return f"/api/{collection}/{entity_id}"

    def _get_endpoint_documents_query(self) -> str:
        return "/api/documents/query"

    def _get_endpoint_user_department(self, user_id: int, department_id: int, remove: bool = False) -> str:
        # the organisation service uses the plural segment only for removal
        if remove:
            return f"/api/users/{user_id}/departments/{department_id}"
        return f"/api/users/{user_id}/department/{department_id}"

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_endpoint_document(self, response: dict) -> Document:
        file_name = response.get("fileName")
        return Document(
                #base
                engine=self._get_engine_name(),
                id=response.get("id"),

                #details
                title=response.get("title"),
                description=response.get("description"),
                content=response.get("content"),
                status=response.get("status"),
                tags=response.get("tags"),
                department_id=response.get("departmentId"),
                category_id=response.get("categoryId"),
                created_by=response.get("createdBy"),
                created_at=response.get("createdAt"),
                updated_at=response.get("updatedAt"),
                file=AttachedFile(name=file_name, media_type=response.get("fileType")) if file_name else None,
            )

    def _parse_endpoint_department(self, response: dict) -> Department:
        return Department(
                engine=self._get_engine_name(),
                id=response.get("id"),
                name=response.get("name"),
                description=response.get("description"),
            )

    def _parse_endpoint_category(self, response: dict) -> Category:
        return Category(
                engine=self._get_engine_name(),
                id=response.get("id"),
                name=response.get("name"),
                description=response.get("description"),
            )

    def _parse_endpoint_user(self, response: dict) -> User:
        roles = response.get("roles")
        if roles is None and response.get("role"):
            roles = [response.get("role")]
        return User(
                engine=self._get_engine_name(),
                id=response.get("id"),
                full_name=response.get("fullName"),
                email=response.get("email"),
                roles=roles or [],
                departments=[department.id for department in self._parse_embedded_departments(response.get("departments"))],
            )

    def _parse_embedded_departments(self, raw: Any) -> list[Department]:
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise ValueError("departments must be a list")
        departments = []
        for item in raw:
            # embedded departments are bare ids or objects that may omit the name
            if isinstance(item, dict):
                departments.append(Department(engine=self._get_engine_name(), id=item.get("id"), name=item.get("name") or "", description=item.get("description")))
            else:
                departments.append(Department(engine=self._get_engine_name(), id=item, name=""))
        return departments

    ##########################################
    ########### REQUEST SERIALIZER ###########
    ##########################################

    def _serialize_document(self, payload: dict) -> dict:
        body = {}
        for field, wire_key in _DOCUMENT_WIRE_KEYS.items():
            if field not in payload:
                continue
            value = payload[field]
            if isinstance(value, DocumentStatus):
                value = value.value
            body[wire_key] = value
        if "file" in payload:
            file = payload["file"]
            body["fileName"] = file.name if file else None
            body["fileType"] = file.media_type if file else None
        return body

    def _serialize_user(self, payload: dict) -> dict:
        return {wire_key: payload[field] for field, wire_key in _USER_WIRE_KEYS.items() if field in payload}
