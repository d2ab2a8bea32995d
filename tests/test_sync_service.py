import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from services.sync.SyncService import FileUpload
from shared.clients.dms.DMSClientInterface import DOCUMENTS
from shared.models.errors import (
    ForbiddenError,
    NotFoundError,
    ShapeMismatchError,
    UnauthenticatedError,
    ValidationFailedError,
)
from shared.models.principal import Principal
from shared.models.query import QuerySpec
from tests.conftest import iso


async def _arrived(backend, method: str, path: str) -> None:
    async def _poll():
        while not backend.calls(method, path):
            await asyncio.sleep(0)

    await asyncio.wait_for(_poll(), timeout=1)


async def _arrived_count(backend, method: str, path: str, count: int) -> None:
    async def _poll():
        while len(backend.calls(method, path)) < count:
            await asyncio.sleep(0)

    await asyncio.wait_for(_poll(), timeout=1)


@pytest.fixture
def seeded(backend):
    backend.add_document(1, "Global memo", departmentId=None)
    backend.add_document(2, "Finance plan", departmentId=9)
    backend.add_document(3, "Legal review", departmentId=7, createdBy=99)
    return backend


##########################################
########## SESSION AND GATES #############
##########################################

@pytest.mark.asyncio
async def test_calls_without_session_are_unauthenticated(sync_service, session, seeded):
    with pytest.raises(UnauthenticatedError):
        await sync_service.documents.list(session)
    session.init(Principal(id=2, roles={"USER"}, departments={7}, token=None))
    with pytest.raises(UnauthenticatedError):
        await sync_service.departments.create(session, {"name": "Ops"})
    assert seeded.requests == []


@pytest.mark.asyncio
async def test_list_returns_only_visible_documents(sync_service, member_session, seeded):
    documents = await sync_service.documents.list(member_session)
    assert [document.id for document in documents] == [1, 3]
    # the cache mirrors the remote, visibility is applied on read
    assert len(member_session.store.all(DOCUMENTS)) == 3


@pytest.mark.asyncio
async def test_forbidden_create_sends_nothing(sync_service, member_session, seeded):
    with pytest.raises(ForbiddenError):
        await sync_service.documents.create(member_session, {"title": "Budget", "department_id": 9})
    with pytest.raises(ForbiddenError):
        await sync_service.documents.create(member_session, {"title": "Budget"})
    assert seeded.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"title": "   ", "department_id": 7},
        {"department_id": 7},
        {"title": "Memo", "department_id": 7, "status": "archived"},
        {"title": "Memo", "department_id": 7, "tags": "a,b"},
        {"title": "Memo", "department_id": "seven"},
        {"title": "Memo", "department_id": 7, "owner": 3},
    ],
)
async def test_invalid_document_payload_sends_nothing(sync_service, member_session, seeded, payload):
    with pytest.raises(ValidationFailedError):
        await sync_service.documents.create(member_session, payload)
    assert seeded.requests == []


##########################################
############ DOCUMENT CRUD ###############
##########################################

@pytest.mark.asyncio
async def test_create_commits_server_canonical_document(sync_service, member_session, backend):
    document = await sync_service.documents.create(
        member_session, {"title": "  Memo ", "department_id": 7, "tags": ["a", "a", ""]}
    )
    assert document.id == 101
    assert document.title == "Memo"
    assert document.tags == ["a"]
    assert document.created_by == 2
    assert document.created_at == datetime(2024, 1, 1, 16, 41, tzinfo=timezone.utc)
    assert member_session.store.current_document == document


@pytest.mark.asyncio
async def test_update_loads_uncached_document_first(sync_service, member_session, seeded):
    updated = await sync_service.documents.update(member_session, 3, {"title": "Legal review v2"})
    assert [(request.method, request.url.path) for request in seeded.requests] == [
        ("GET", "/api/documents/3"),
        ("PUT", "/api/documents/3"),
    ]
    assert updated.title == "Legal review v2"
    assert updated.updated_at > updated.created_at
    assert member_session.store.current_document.title == "Legal review v2"


@pytest.mark.asyncio
async def test_moving_to_foreign_department_is_forbidden(sync_service, member_session, seeded):
    with pytest.raises(ForbiddenError):
        await sync_service.documents.update(member_session, 3, {"department_id": 9})
    assert seeded.calls("PUT") == []


@pytest.mark.asyncio
async def test_update_response_with_new_creation_time_is_rejected(sync_service, member_session, seeded):
    await sync_service.documents.list(member_session)
    seeded.override("PUT", "/api/documents/3", httpx.Response(200, json={
        **seeded.collections["documents"][3], "title": "changed", "createdAt": iso(500), "updatedAt": iso(600),
    }))
    with pytest.raises(ShapeMismatchError):
        await sync_service.documents.update(member_session, 3, {"title": "changed"})
    assert member_session.store.get(DOCUMENTS, 3).title == "Legal review"


@pytest.mark.asyncio
async def test_update_response_older_than_cache_is_rejected(sync_service, member_session, seeded):
    await sync_service.documents.list(member_session)
    seeded.override("PUT", "/api/documents/3", httpx.Response(200, json={
        **seeded.collections["documents"][3], "updatedAt": "2023-12-31T00:00:00Z",
    }))
    with pytest.raises(ShapeMismatchError):
        await sync_service.documents.update(member_session, 3, {"title": "changed"})


@pytest.mark.asyncio
async def test_delete_prunes_cache_and_current(sync_service, member_session, seeded):
    await sync_service.documents.list(member_session)
    await sync_service.documents.get_by_id(member_session, 3)
    await sync_service.documents.delete(member_session, 3)
    assert member_session.store.get(DOCUMENTS, 3) is None
    assert member_session.store.current_document is None
    assert 3 not in seeded.collections["documents"]


@pytest.mark.asyncio
async def test_delete_of_remotely_missing_document_leaves_cache(sync_service, member_session, seeded):
    await sync_service.documents.list(member_session)
    del seeded.collections["documents"][3]
    with pytest.raises(NotFoundError):
        await sync_service.documents.delete(member_session, 3)
    assert member_session.store.get(DOCUMENTS, 3) is not None


@pytest.mark.asyncio
async def test_delete_of_unknown_id_is_not_found(sync_service, member_session, seeded):
    with pytest.raises(NotFoundError):
        await sync_service.documents.delete(member_session, 77)
    assert seeded.calls("DELETE") == []


@pytest.mark.asyncio
async def test_get_by_id_of_vanished_document_drops_it(sync_service, member_session, seeded):
    await sync_service.documents.list(member_session)
    del seeded.collections["documents"][1]
    assert await sync_service.documents.get_by_id(member_session, 1) is None
    assert member_session.store.get(DOCUMENTS, 1) is None


@pytest.mark.asyncio
async def test_get_by_id_of_foreign_document_is_forbidden(sync_service, member_session, seeded):
    with pytest.raises(ForbiddenError):
        await sync_service.documents.get_by_id(member_session, 2)
    assert member_session.store.current_document is None


##########################################
################ RACES ###################
##########################################

@pytest.mark.asyncio
async def test_superseded_list_never_overwrites_newer_one(sync_service, member_session, seeded):
    release = seeded.hold("GET", "/api/documents")
    first = asyncio.create_task(sync_service.documents.list(member_session))
    await _arrived(seeded, "GET", "/api/documents")

    seeded.collections["documents"][1]["title"] = "Global memo v2"
    second = await sync_service.documents.list(member_session)
    release.set()
    first_result = await first

    assert second[0].title == "Global memo v2"
    assert first_result[0].title == "Global memo v2"
    assert member_session.store.get(DOCUMENTS, 1).title == "Global memo v2"


@pytest.mark.asyncio
async def test_get_racing_delete_does_not_resurrect(sync_service, member_session, seeded):
    await sync_service.documents.list(member_session)
    release = seeded.hold("GET", "/api/documents/3")
    pending_get = asyncio.create_task(sync_service.documents.get_by_id(member_session, 3))
    await _arrived(seeded, "GET", "/api/documents/3")

    await sync_service.documents.delete(member_session, 3)
    release.set()

    assert await pending_get is None
    assert member_session.store.get(DOCUMENTS, 3) is None


@pytest.mark.asyncio
async def test_logout_discards_requests_in_flight(sync_service, member_session, seeded):
    release = seeded.hold("GET", "/api/documents")
    pending = asyncio.create_task(sync_service.documents.list(member_session))
    await _arrived(seeded, "GET", "/api/documents")

    member_session.teardown()
    release.set()

    assert await pending == []
    assert not member_session.store.is_loaded(DOCUMENTS)
    assert member_session.principal is None


@pytest.mark.asyncio
async def test_late_response_does_not_replace_newer_current(sync_service, member_session, seeded):
    release = seeded.hold("GET", "/api/documents/1")
    first = asyncio.create_task(sync_service.documents.get_by_id(member_session, 1))
    await _arrived(seeded, "GET", "/api/documents/1")

    await sync_service.documents.get_by_id(member_session, 3)
    release.set()

    assert (await first).id == 1
    assert member_session.store.current_document.id == 3


@pytest.mark.asyncio
async def test_late_open_does_not_replace_newer_current(sync_service, member_session, seeded):
    seeded.add_user(2, "Member", departments=[7])
    release = seeded.hold("GET", "/api/documents/1")
    first = asyncio.create_task(sync_service.documents.open_document(member_session, 1))
    await _arrived(seeded, "GET", "/api/documents/1")

    await sync_service.documents.open_document(member_session, 3)
    release.set()
    await first

    assert member_session.store.current_document.id == 3


@pytest.mark.asyncio
async def test_leaving_the_view_discards_pending_open(sync_service, member_session, seeded):
    release = seeded.hold("GET", "/api/documents/3")
    pending = asyncio.create_task(sync_service.documents.get_by_id(member_session, 3))
    await _arrived(seeded, "GET", "/api/documents/3")

    sync_service.documents.clear_current(member_session)
    release.set()

    assert (await pending).id == 3
    assert member_session.store.current_document is None


@pytest.mark.asyncio
async def test_superseded_query_never_returns_an_older_page(sync_service, member_session, seeded):
    state = sync_service.documents.new_query_state(member_session, QuerySpec(page_size=1))
    older = await sync_service.documents.query(member_session, state.spec)
    assert older.per_page == 1

    state.set_page_size(2)
    release = seeded.hold("POST", "/api/documents/query")
    pending = asyncio.create_task(sync_service.documents.query(member_session, state.spec))
    await _arrived_count(seeded, "POST", "/api/documents/query", 2)

    state.set_search("memo")
    release.set()

    assert await pending is None
    assert member_session.store.last_page == older


@pytest.mark.asyncio
async def test_page_reloads_when_its_list_was_superseded(sync_service, member_session, seeded):
    release = seeded.hold("GET", "/api/documents")
    pending = asyncio.create_task(sync_service.documents.page(member_session, QuerySpec(page_size=5)))
    await _arrived(seeded, "GET", "/api/documents")

    member_session.tracker.invalidate(DOCUMENTS)
    release.set()
    page = await pending

    assert [document.id for document in page.items] == [1, 3]
    assert len(seeded.calls("GET", "/api/documents")) == 2


@pytest.mark.asyncio
async def test_query_superseded_by_spec_change(sync_service, member_session, seeded):
    state = sync_service.documents.new_query_state(member_session)
    release = seeded.hold("POST", "/api/documents/query")
    pending = asyncio.create_task(sync_service.documents.query(member_session, state.spec))
    await _arrived(seeded, "POST", "/api/documents/query")

    state.set_search("memo")
    release.set()
    assert await pending is None

    page = await sync_service.documents.query(member_session, state.spec)
    assert page.total_records == 3
    assert member_session.store.last_page == page
    assert seeded.calls("POST", "/api/documents/query")[-1].url.params["search"] == "memo"


##########################################
############# QUERY MODES ################
##########################################

@pytest.mark.asyncio
async def test_page_loads_collection_once(sync_service, member_session, seeded):
    first = await sync_service.documents.page(member_session, QuerySpec(page_size=1))
    second = await sync_service.documents.page(member_session, QuerySpec(page=2, page_size=1))
    assert [document.id for document in first.items + second.items] == [1, 3]
    assert first.total_pages == 2
    assert len(seeded.calls("GET", "/api/documents")) == 1


@pytest.mark.asyncio
async def test_invalid_query_sends_nothing(sync_service, member_session, seeded):
    with pytest.raises(ValidationFailedError):
        await sync_service.documents.query(member_session, QuerySpec(sort_by="owner"))
    with pytest.raises(ValidationFailedError):
        await sync_service.documents.page(member_session, QuerySpec(page_size=500))
    assert seeded.requests == []


##########################################
########### DETAIL AND FILES #############
##########################################

@pytest.mark.asyncio
async def test_open_document_uses_fresh_memberships(sync_service, member_session, seeded):
    seeded.add_user(2, "Member", departments=[7, 9])
    document = await sync_service.documents.open_document(member_session, 2)
    assert document.id == 2
    assert member_session.principal.departments == frozenset({7, 9})
    assert [department.id for department in member_session.store.user_departments] == [7, 9]


@pytest.mark.asyncio
async def test_open_document_denied_after_both_loads(sync_service, member_session, seeded):
    seeded.add_user(2, "Member", departments=[7])
    with pytest.raises(ForbiddenError):
        await sync_service.documents.open_document(member_session, 2)
    assert len(seeded.calls("GET", "/api/users/2")) == 1


@pytest.mark.asyncio
async def test_create_with_attachment(sync_service, member_session, backend):
    upload = FileUpload(name="report.pdf", media_type="application/pdf", content=b"%PDF-1.4")
    document = await sync_service.documents.create(member_session, {"title": "Report", "department_id": 7}, upload=upload)
    assert document.file.name == "stored-1"
    assert document.file.media_type == "application/pdf"
    assert [request.url.host for request in backend.requests] == ["blob.test", "docs.test"]


@pytest.mark.asyncio
async def test_rejected_attachment_sends_nothing(sync_service, member_session, backend):
    with pytest.raises(ValidationFailedError):
        await sync_service.documents.create(
            member_session,
            {"title": "Script", "department_id": 7},
            upload=FileUpload(name="run.sh", media_type="application/x-sh", content=b"echo"),
        )
    with pytest.raises(ForbiddenError):
        await sync_service.documents.create(
            member_session,
            {"title": "Report", "department_id": 9},
            upload=FileUpload(name="report.pdf", media_type="application/pdf", content=b"%PDF"),
        )
    assert backend.requests == []


@pytest.mark.asyncio
async def test_download_attachment(sync_service, member_session, backend):
    backend.add_document(5, "Scan", departmentId=7, fileName="stored-5", fileType="image/png")
    backend.files["stored-5"] = b"\x89PNG"
    attachment, stream = await sync_service.documents.download(member_session, 5)
    assert attachment.media_type == "image/png"
    assert b"".join([chunk async for chunk in stream]) == b"\x89PNG"


@pytest.mark.asyncio
async def test_download_without_attachment(sync_service, member_session, seeded):
    with pytest.raises(NotFoundError):
        await sync_service.documents.download(member_session, 1)


##########################################
############### DIRECTORY ################
##########################################

@pytest.mark.asyncio
async def test_directory_management_is_admin_only(sync_service, member_session, backend):
    backend.add_department(7, "Legal")
    with pytest.raises(ForbiddenError):
        await sync_service.departments.create(member_session, {"name": "Ops"})
    with pytest.raises(ForbiddenError):
        await sync_service.categories.delete(member_session, 1)
    with pytest.raises(ForbiddenError):
        await sync_service.users.list(member_session)
    assert backend.requests == []

    departments = await sync_service.departments.list(member_session)
    assert [department.name for department in departments] == ["Legal"]


@pytest.mark.asyncio
async def test_admin_manages_departments(sync_service, admin_session, backend):
    created = await sync_service.departments.create(admin_session, {"name": " Ops ", "description": "Operations"})
    assert created.name == "Ops"
    renamed = await sync_service.departments.update(admin_session, created.id, {"name": "Operations"})
    assert renamed.name == "Operations"
    assert admin_session.store.current_department == renamed
    with pytest.raises(ValidationFailedError):
        await sync_service.departments.update(admin_session, created.id, {"name": ""})
    await sync_service.departments.delete(admin_session, created.id)
    assert backend.collections["departments"] == {}


@pytest.mark.asyncio
async def test_users_see_only_themselves(sync_service, member_session, backend):
    backend.add_user(2, "Member", departments=[7])
    backend.add_user(3, "Other", departments=[8])
    own = await sync_service.users.get_by_id(member_session, 2)
    assert own.full_name == "Member"
    with pytest.raises(ForbiddenError):
        await sync_service.users.get_by_id(member_session, 3)


@pytest.mark.asyncio
async def test_admin_assigns_and_removes_departments(sync_service, admin_session, backend):
    backend.add_user(2, "Member", departments=[7])
    user = await sync_service.users.assign_department(admin_session, 2, 8)
    assert user.departments == [7, 8]
    user = await sync_service.users.remove_department(admin_session, 2, 7)
    assert user.departments == [8]


@pytest.mark.asyncio
async def test_member_cannot_change_memberships(sync_service, member_session, backend):
    with pytest.raises(ForbiddenError):
        await sync_service.users.assign_department(member_session, 2, 9)
    assert backend.requests == []
