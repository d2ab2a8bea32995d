"""FastAPI application entry point for the docscope bridge API."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface
from shared.clients.dms.DMSClientManager import DMSClientManager
from shared.clients.blob.rest.BlobClientRest import BlobClientRest
from shared.models.errors import DMSError
from server.models.responses import ErrorResponse
from services.session.SessionContext import SessionContext
from services.sync.SyncService import SyncService
from server.routers.SessionRouter import router as session_router
from server.routers.DocumentRouter import router as document_router
from server.routers.DirectoryRouter import router as directory_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")

ERROR_STATUS = {
    "unauthenticated": 401,
    "forbidden": 403,
    "not_found": 404,
    "validation_failed": 422,
    "remote_unavailable": 503,
    "shape_mismatch": 502,
}


def create_app(helper_config: HelperConfig | None = None, transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    """Build the bridge application.

    Args:
        helper_config (HelperConfig | None): Configuration source. Defaults to the environment.
        transport (httpx.AsyncBaseTransport | None): Transport for all remote clients, e.g. a mock in tests.

    Returns:
        FastAPI: The configured application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # when the app starts
        app.state.logging = logging
        app.state.helper_config = helper_config or HelperConfig(logger=logging)

        dms_client = DMSClientManager(helper_config=app.state.helper_config).get_client()
        blob_client = BlobClientRest(helper_config=app.state.helper_config)

        logging.info("Booting all clients...")
        for client in [dms_client, blob_client]:
            await client.boot(transport=transport)
        logging.info("All clients booted successfully.")

        app.state.session = SessionContext(helper_config=app.state.helper_config)
        app.state.sync_service = SyncService(
            helper_config=app.state.helper_config,
            dms_client=dms_client,
            blob_client=blob_client,
        )

        await check_connections([dms_client, blob_client])

        # while the app is running...
        yield

        # when the app shuts down, drop the session and close all client connections
        logging.info("Shutting down, closing all clients...")
        app.state.session.teardown()
        for client in [dms_client, blob_client]:
            await client.close()
        logging.info("All clients closed.")

    app = FastAPI(
        title="docscope",
        description=(
            "Department-scoped document client. Wraps the documents and organisation services "
            "with per-department authorization, a local entity cache and consistent "
            "filtering, sorting and pagination."
        ),
        version=app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DMSError)
    async def handle_dms_error(request: Request, exc: DMSError) -> JSONResponse:
        status_code = ERROR_STATUS.get(exc.kind, 500)
        if status_code >= 500:
            logging.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.kind)
        body = ErrorResponse(kind=exc.kind, detail=exc.message, retryable=exc.retryable)
        return JSONResponse(status_code=status_code, content=body.model_dump())

    app.include_router(session_router)
    app.include_router(document_router)
    app.include_router(directory_router)
    return app


async def check_connections(clients: list[ClientInterface]) -> None:
    """Check connectivity to all configured backends on startup.

    Failures are non-fatal: the bridge stays up and requests fail with remote_unavailable later.
    """
    for client in clients:
        try:
            result: httpx.Response = await client.do_healthcheck()
        except DMSError as exc:
            logging.warning("%s client '%s' is not reachable: %s", client.get_client_type().upper(), client.__class__.__name__, exc)
            continue
        if not result.is_success:
            logging.warning(
                "%s client '%s' is not reachable (status %d). Requests may fail.",
                client.get_client_type().upper(),
                client.__class__.__name__,
                result.status_code,
            )


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting docscope API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
