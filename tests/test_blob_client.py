import httpx
import pytest

from shared.clients.blob.rest.BlobClientRest import BlobClientRest
from shared.models.errors import NotFoundError, RemoteUnavailableError, ValidationFailedError


@pytest.mark.parametrize(
    "name, media_type, size",
    [
        ("", "application/pdf", 10),
        ("report.pdf", "application/pdf", 0),
        ("report.pdf", "application/pdf", 1025),
        ("script.sh", "application/x-sh", 10),
        ("unknown", None, 10),
    ],
)
def test_rejected_files(helper_config, name, media_type, size):
    client = BlobClientRest(helper_config=helper_config)
    with pytest.raises(ValidationFailedError):
        client.validate_file(name, media_type, size)


@pytest.mark.asyncio
async def test_upload_returns_stored_filename(blob_client, backend):
    filename = await blob_client.do_upload("report.pdf", "application/pdf", b"%PDF-1.4", "t")
    assert filename == "stored-1"
    request = backend.calls("POST", "/api/files")[0]
    assert request.url.host == "blob.test"
    assert b"report.pdf" in request.content


@pytest.mark.asyncio
async def test_invalid_upload_never_reaches_the_network(blob_client, backend):
    with pytest.raises(ValidationFailedError):
        await blob_client.do_upload("huge.pdf", "application/pdf", b"x" * 2048, "t")
    assert backend.requests == []


@pytest.mark.asyncio
async def test_download_streams_bytes(blob_client, backend):
    backend.files["stored-9"] = b"hello world"
    response = await blob_client.open_download("stored-9", "t")
    chunks = [chunk async for chunk in blob_client.iter_download(response)]
    assert b"".join(chunks) == b"hello world"
    assert response.is_closed


@pytest.mark.asyncio
async def test_download_of_unknown_file_fails_before_streaming(blob_client):
    with pytest.raises(NotFoundError):
        await blob_client.open_download("missing", "t")


@pytest.mark.asyncio
async def test_download_server_error(blob_client, backend):
    backend.override("GET", "/api/files/stored-1", httpx.Response(500))
    with pytest.raises(RemoteUnavailableError):
        await blob_client.open_download("stored-1", "t")


@pytest.mark.asyncio
async def test_download_transport_error(helper_config):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = BlobClientRest(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(refuse))
    with pytest.raises(RemoteUnavailableError):
        await client.open_download("stored-1", "t")
    await client.close()
