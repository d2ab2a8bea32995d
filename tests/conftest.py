import asyncio
import json
import logging
from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio

from services.session.SessionContext import SessionContext
from services.sync.SyncService import SyncService
from shared.clients.blob.rest.BlobClientRest import BlobClientRest
from shared.clients.dms.models.Document import Document
from shared.clients.dms.rest.DMSClientRest import DMSClientRest
from shared.helper.HelperConfig import HelperConfig
from shared.models.principal import Principal

DOCS_URL = "http://docs.test"
ORG_URL = "http://org.test"
BLOB_URL = "http://blob.test"

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)

CONFIG = {
    "DMS_ENGINE": "rest",
    "DMS_REST_DOCS_BASE_URL": DOCS_URL,
    "DMS_REST_ORG_BASE_URL": ORG_URL,
    "BLOB_REST_BASE_URL": BLOB_URL,
    "BLOB_REST_MAX_FILE_SIZE": "1024",
    "APP_API_KEY": "test-key",
    "QUERY_DEFAULT_PAGE_SIZE": "15",
    "QUERY_MAX_PAGE_SIZE": "100",
}


def iso(minutes: int) -> str:
    return (BASE_TIME + timedelta(minutes=minutes)).isoformat().replace("+00:00", "Z")


class FakeBackend:
    """
    In-memory documents, organisation and blob services behind an httpx.MockTransport.

    Responses are computed when the request arrives. ``hold`` parks the next matching
    request until the returned event is set, so tests can reorder responses.
    """

    def __init__(self):
        self.collections: dict[str, dict[int, dict]] = {
            "documents": {},
            "categories": {},
            "departments": {},
            "users": {},
        }
        self.files: dict[str, bytes] = {}
        self.requests: list[httpx.Request] = []
        self.overrides: dict[tuple[str, str], list[httpx.Response]] = {}
        self._holds: dict[tuple[str, str], list[asyncio.Event]] = {}
        self._next_id = 100
        self._clock = 1000

    ############# SEEDING ##############
    def add_document(self, id: int, title: str, **fields) -> dict:
        wire = {
            "id": id,
            "title": title,
            "description": fields.pop("description", None),
            "content": fields.pop("content", None),
            "status": fields.pop("status", "draft"),
            "tags": fields.pop("tags", []),
            "departmentId": fields.pop("departmentId", None),
            "categoryId": fields.pop("categoryId", None),
            "createdBy": fields.pop("createdBy", 1),
            "createdAt": fields.pop("createdAt", iso(id)),
            "updatedAt": fields.pop("updatedAt", iso(id)),
        }
        wire.update(fields)
        self.collections["documents"][id] = wire
        return wire

    def add_department(self, id: int, name: str) -> dict:
        self.collections["departments"][id] = {"id": id, "name": name, "description": None}
        return self.collections["departments"][id]

    def add_category(self, id: int, name: str) -> dict:
        self.collections["categories"][id] = {"id": id, "name": name, "description": None}
        return self.collections["categories"][id]

    def add_user(self, id: int, full_name: str, departments: list[int], role: str = "USER") -> dict:
        self.collections["users"][id] = {
            "id": id,
            "fullName": full_name,
            "email": f"user{id}@example.org",
            "role": role,
            "departments": [{"id": department_id} for department_id in departments],
        }
        return self.collections["users"][id]

    ############# CONTROL ##############
    def hold(self, method: str, path: str) -> asyncio.Event:
        event = asyncio.Event()
        self._holds.setdefault((method, path), []).append(event)
        return event

    def override(self, method: str, path: str, response: httpx.Response) -> None:
        self.overrides.setdefault((method, path), []).append(response)

    def calls(self, method: str | None = None, path: str | None = None) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if (method is None or request.method == method) and (path is None or request.url.path == path)
        ]

    ############# TRANSPORT ##############
    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if self.overrides.get(key):
            response = self.overrides[key].pop(0)
        else:
            response = self._route(request)
        holds = self._holds.get(key)
        if holds:
            await holds.pop(0).wait()
        return response

    def _tick(self) -> str:
        self._clock += 1
        return iso(self._clock)

    def _route(self, request: httpx.Request) -> httpx.Response:
        parts = [part for part in request.url.path.split("/") if part]
        if parts == ["actuator", "health"]:
            return httpx.Response(200, json={"status": "UP"})
        if request.url.host == "blob.test":
            return self._route_blob(request, parts)
        if parts == ["api", "documents", "query"] and request.method == "POST":
            return self._query(request)
        if len(parts) == 5 and parts[:2] == ["api", "users"] and parts[3] in ("department", "departments"):
            return self._membership(request, int(parts[2]), int(parts[4]))
        if len(parts) in (2, 3) and parts[0] == "api" and parts[1] in self.collections:
            entity_id = int(parts[2]) if len(parts) == 3 else None
            return self._collection(request, parts[1], entity_id)
        return httpx.Response(404, json={"error": "no route"})

    def _collection(self, request: httpx.Request, name: str, entity_id: int | None) -> httpx.Response:
        store = self.collections[name]
        if entity_id is None:
            if request.method == "GET":
                return httpx.Response(200, json=list(store.values()))
            body = json.loads(request.content)
            self._next_id += 1
            entity = {**body, "id": self._next_id}
            if name == "documents":
                entity["createdAt"] = entity["updatedAt"] = self._tick()
            store[self._next_id] = entity
            return httpx.Response(201, json=entity)
        if entity_id not in store:
            return httpx.Response(404, json={"error": "not found"})
        if request.method == "GET":
            return httpx.Response(200, json=store[entity_id])
        if request.method == "PUT":
            store[entity_id] = {**store[entity_id], **json.loads(request.content)}
            if name == "documents":
                store[entity_id]["updatedAt"] = self._tick()
            return httpx.Response(200, json=store[entity_id])
        del store[entity_id]
        return httpx.Response(204)

    def _membership(self, request: httpx.Request, user_id: int, department_id: int) -> httpx.Response:
        user = self.collections["users"].get(user_id)
        if user is None:
            return httpx.Response(404, json={"error": "not found"})
        ids = [item["id"] for item in user["departments"]]
        if request.method == "PUT" and department_id not in ids:
            ids.append(department_id)
        if request.method == "DELETE":
            ids = [item for item in ids if item != department_id]
        user["departments"] = [{"id": item} for item in ids]
        return httpx.Response(200)

    def _query(self, request: httpx.Request) -> httpx.Response:
        page = int(request.url.params.get("page", 1))
        per_page = int(request.url.params.get("per_page", 15))
        documents = [self.collections["documents"][key] for key in sorted(self.collections["documents"])]
        total = len(documents)
        total_pages = -(-total // per_page)
        return httpx.Response(200, json={
            "data": documents[(page - 1) * per_page:page * per_page],
            "pagination": {
                "current_page": page,
                "has_next": page < total_pages,
                "has_prev": page > 1,
                "per_page": per_page,
                "total_pages": total_pages,
                "total_records": total,
            },
            "filters": json.loads(request.content or b"[]"),
            "sort": {"sort_by": request.url.params.get("sort_by"), "order": request.url.params.get("order")},
            "status": "success",
        })

    def _route_blob(self, request: httpx.Request, parts: list[str]) -> httpx.Response:
        if request.method == "POST":
            name = f"stored-{len(self.files) + 1}"
            self.files[name] = request.content
            return httpx.Response(201, json={"filename": name})
        name = parts[-1]
        if name not in self.files:
            return httpx.Response(404)
        return httpx.Response(200, content=self.files[name])


##########################################
################ FIXTURES ################
##########################################

@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("docscope.tests")


@pytest.fixture
def helper_config(logger) -> HelperConfig:
    return HelperConfig(logger=logger, overrides=CONFIG)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def rest_client(helper_config) -> DMSClientRest:
    return DMSClientRest(helper_config=helper_config)


@pytest_asyncio.fixture
async def dms_client(helper_config, backend):
    client = DMSClientRest(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(backend))
    yield client
    await client.close()


@pytest_asyncio.fixture
async def blob_client(helper_config, backend):
    client = BlobClientRest(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(backend))
    yield client
    await client.close()


@pytest.fixture
def sync_service(helper_config, dms_client, blob_client) -> SyncService:
    return SyncService(helper_config=helper_config, dms_client=dms_client, blob_client=blob_client)


@pytest.fixture
def session(helper_config) -> SessionContext:
    return SessionContext(helper_config=helper_config)


@pytest.fixture
def member() -> Principal:
    return Principal(id=2, display_name="Member", roles={"USER"}, departments={7}, token="member-token")


@pytest.fixture
def admin() -> Principal:
    return Principal(id=1, display_name="Admin", roles={"ROLE_ADMIN"}, departments=set(), token="admin-token")


@pytest.fixture
def member_session(session, member) -> SessionContext:
    session.init(member)
    return session


@pytest.fixture
def admin_session(session, admin) -> SessionContext:
    session.init(admin)
    return session


@pytest.fixture
def make_document():
    def _make(id: int, title: str = "", **fields) -> Document:
        fields.setdefault("created_at", BASE_TIME + timedelta(minutes=id))
        fields.setdefault("updated_at", fields["created_at"])
        return Document(engine="Rest", id=id, title=title or f"Document {id}", **fields)

    return _make
