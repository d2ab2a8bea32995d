from fastapi import APIRouter, Depends

from server.dependencies.auth import get_session, get_sync_service, verify_api_key
from server.models.requests import SessionRequest
from server.models.responses import SessionResponse, UserDepartmentsResponse
from services.session.SessionContext import SessionContext
from services.sync.SyncService import SyncService
from shared.models.principal import Principal

router = APIRouter(prefix="/session", tags=["session"], dependencies=[Depends(verify_api_key)])


def _session_response(principal: Principal) -> SessionResponse:
    return SessionResponse(
        principal_id=principal.id,
        display_name=principal.display_name,
        roles=sorted(principal.roles),
        departments=sorted(principal.departments),
    )


@router.post("")
async def start_session(
    body: SessionRequest,
    session: SessionContext = Depends(get_session),
    sync_service: SyncService = Depends(get_sync_service),
) -> SessionResponse:
    """Sign a principal in, replacing any running session.

    Args:
        body (SessionRequest): Identity, roles, memberships and bearer credential of the principal.
        session (SessionContext): The bridge's session context.
        sync_service (SyncService): Used to resolve memberships from the organisation service.

    Returns:
        SessionResponse: The principal as the session now sees it.
    """
    session.init(
        Principal(
            id=body.id,
            display_name=body.display_name,
            roles=body.roles,
            departments=body.departments,
            token=body.token,
        )
    )
    if body.resolve_departments:
        await sync_service.users.load_user_departments(session)
    return _session_response(session.require_principal())


@router.delete("")
async def end_session(session: SessionContext = Depends(get_session)) -> dict:
    session.teardown()
    return {"status": "signed_out"}


@router.get("/departments")
async def session_departments(
    session: SessionContext = Depends(get_session),
    sync_service: SyncService = Depends(get_sync_service),
) -> UserDepartmentsResponse:
    departments = await sync_service.users.load_user_departments(session)
    return UserDepartmentsResponse(principal_id=session.require_principal().id, departments=departments)
