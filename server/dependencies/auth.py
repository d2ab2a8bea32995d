from fastapi import Header, HTTPException, Request

from services.session.SessionContext import SessionContext
from services.sync.SyncService import SyncService


async def verify_api_key(request: Request, x_api_key: str | None = Header(default=None)) -> None:
    """Verify the X-Api-Key header against the configured API key.

    Args:
        request (Request): The FastAPI request object (provides app.state).
        x_api_key (str | None): The value of the X-Api-Key header.

    Raises:
        HTTPException: 401 if the key is missing or does not match.
    """
    helper_config = request.app.state.helper_config
    expected_key = helper_config.get_string_val("APP_API_KEY")
    if not x_api_key or x_api_key != expected_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


def get_session(request: Request) -> SessionContext:
    return request.app.state.session


def get_sync_service(request: Request) -> SyncService:
    return request.app.state.sync_service
