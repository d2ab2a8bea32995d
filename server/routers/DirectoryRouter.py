from enum import Enum
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from server.dependencies.auth import get_session, get_sync_service, verify_api_key
from server.models.responses import DeleteResponse
from services.session.SessionContext import SessionContext
from services.sync.SyncService import SyncService
from shared.clients.dms.DMSClientInterface import CATEGORIES, DEPARTMENTS, USERS
from shared.clients.dms.models.User import User

router = APIRouter(tags=["directory"], dependencies=[Depends(verify_api_key)])


class DirectoryCollection(str, Enum):
    DEPARTMENTS = DEPARTMENTS
    CATEGORIES = CATEGORIES
    USERS = USERS


@router.put("/users/{user_id}/departments/{department_id}")
async def assign_user_department(
    user_id: int,
    department_id: int,
    session: SessionContext = Depends(get_session),
    sync_service: SyncService = Depends(get_sync_service),
) -> User | None:
    return await sync_service.users.assign_department(session, user_id, department_id)


@router.delete("/users/{user_id}/departments/{department_id}")
async def remove_user_department(
    user_id: int,
    department_id: int,
    session: SessionContext = Depends(get_session),
    sync_service: SyncService = Depends(get_sync_service),
) -> User | None:
    return await sync_service.users.remove_department(session, user_id, department_id)


@router.get("/{collection}")
async def list_entries(
    collection: DirectoryCollection,
    session: SessionContext = Depends(get_session),
    sync_service: SyncService = Depends(get_sync_service),
) -> list[dict]:
    """List all departments, categories or users.

    Args:
        collection (DirectoryCollection): The directory collection to list.

    Returns:
        list[dict]: The cached collection after the remote list was committed.
    """
    entries = await sync_service.for_kind(collection.value).list(session)
    return [entry.model_dump(mode="json") for entry in entries]


@router.get("/{collection}/{entry_id}")
async def get_entry(
    collection: DirectoryCollection,
    entry_id: int,
    session: SessionContext = Depends(get_session),
    sync_service: SyncService = Depends(get_sync_service),
) -> dict:
    entry = await sync_service.for_kind(collection.value).get_by_id(session, entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"{collection.value} entry {entry_id} not found")
    return entry.model_dump(mode="json")


@router.post("/{collection}")
async def create_entry(
    collection: DirectoryCollection,
    body: dict[str, Any] = Body(...),
    session: SessionContext = Depends(get_session),
    sync_service: SyncService = Depends(get_sync_service),
) -> dict:
    entry = await sync_service.for_kind(collection.value).create(session, body)
    return entry.model_dump(mode="json")


@router.put("/{collection}/{entry_id}")
async def update_entry(
    collection: DirectoryCollection,
    entry_id: int,
    body: dict[str, Any] = Body(...),
    session: SessionContext = Depends(get_session),
    sync_service: SyncService = Depends(get_sync_service),
) -> dict:
    entry = await sync_service.for_kind(collection.value).update(session, entry_id, body)
    return entry.model_dump(mode="json")


@router.delete("/{collection}/{entry_id}")
async def delete_entry(
    collection: DirectoryCollection,
    entry_id: int,
    session: SessionContext = Depends(get_session),
    sync_service: SyncService = Depends(get_sync_service),
) -> DeleteResponse:
    await sync_service.for_kind(collection.value).delete(session, entry_id)
    return DeleteResponse(collection=collection.value, id=entry_id)
