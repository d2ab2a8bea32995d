from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from server.dependencies.auth import get_session, get_sync_service, verify_api_key
from server.models.requests import DocumentCreateRequest, DocumentUpdateRequest
from server.models.responses import DashboardResponse, DeleteResponse
from services.query.QueryEngine import recent_documents, status_counts
from services.session.SessionContext import SessionContext
from services.sync.SyncService import SyncService
from shared.clients.dms.DMSClientInterface import DOCUMENTS
from shared.clients.dms.models.Document import Document
from shared.models.query import PageResult, QuerySpec

router = APIRouter(prefix="/documents", tags=["documents"], dependencies=[Depends(verify_api_key)])


@router.get("")
async def list_documents(
    session: SessionContext = Depends(get_session),
    sync_service: SyncService = Depends(get_sync_service),
) -> list[Document]:
    return await sync_service.documents.list(session)


@router.post("/page")
async def page_documents(
    spec: QuerySpec,
    session: SessionContext = Depends(get_session),
    sync_service: SyncService = Depends(get_sync_service),
) -> PageResult:
    """Filter, sort and paginate the cached document collection.

    Args:
        spec (QuerySpec): Search, filter clauses, sort and page of the view.

    Returns:
        PageResult: The requested page of documents the principal may view.
    """
    return await sync_service.documents.page(session, spec)


@router.post("/query")
async def query_documents(
    spec: QuerySpec,
    session: SessionContext = Depends(get_session),
    sync_service: SyncService = Depends(get_sync_service),
) -> PageResult:
    """Run a server-paginated query against the documents service.

    Raises:
        HTTPException: 409 if the query was superseded before a page arrived.
    """
    page = await sync_service.documents.query(session, spec)
    if page is None:
        raise HTTPException(status_code=409, detail="Query was superseded")
    return page


@router.get("/dashboard")
async def dashboard(
    limit: int = 5,
    session: SessionContext = Depends(get_session),
    sync_service: SyncService = Depends(get_sync_service),
) -> DashboardResponse:
    principal = session.require_principal()
    if not session.store.is_loaded(DOCUMENTS):
        await sync_service.documents.list(session)
    documents = session.store.all(DOCUMENTS)
    return DashboardResponse(
        status_counts=status_counts(principal, documents),
        recent=recent_documents(principal, documents, limit=limit),
    )


@router.post("")
async def create_document(
    body: DocumentCreateRequest,
    session: SessionContext = Depends(get_session),
    sync_service: SyncService = Depends(get_sync_service),
) -> Document:
    return await sync_service.documents.create(session, body.model_dump(exclude_none=True))


@router.get("/{document_id}")
async def get_document(
    document_id: int,
    session: SessionContext = Depends(get_session),
    sync_service: SyncService = Depends(get_sync_service),
) -> Document:
    """Open a document for the detail view, together with the principal's departments.

    Raises:
        HTTPException: 404 if the document does not exist.
    """
    document = await sync_service.documents.open_document(session, document_id)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")
    return document


@router.get("/{document_id}/file")
async def download_document_file(
    document_id: int,
    session: SessionContext = Depends(get_session),
    sync_service: SyncService = Depends(get_sync_service),
) -> StreamingResponse:
    attachment, stream = await sync_service.documents.download(session, document_id)
    return StreamingResponse(
        stream,
        media_type=attachment.media_type or "application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{attachment.name}"'},
    )


@router.put("/{document_id}")
async def update_document(
    document_id: int,
    body: DocumentUpdateRequest,
    session: SessionContext = Depends(get_session),
    sync_service: SyncService = Depends(get_sync_service),
) -> Document:
    # only fields sent by the caller are patched; an explicit null clears the field
    return await sync_service.documents.update(session, document_id, body.model_dump(exclude_unset=True))


@router.delete("/{document_id}")
async def delete_document(
    document_id: int,
    session: SessionContext = Depends(get_session),
    sync_service: SyncService = Depends(get_sync_service),
) -> DeleteResponse:
    await sync_service.documents.delete(session, document_id)
    return DeleteResponse(collection=DOCUMENTS, id=document_id)
