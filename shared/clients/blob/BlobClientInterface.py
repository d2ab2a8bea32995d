from abc import abstractmethod
from typing import AsyncIterator

import httpx

from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface
from shared.models.errors import (
    NotFoundError,
    RemoteUnavailableError,
    ShapeMismatchError,
    ValidationFailedError,
)

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
DEFAULT_ALLOWED_MEDIA_TYPES = [
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
    "image/png",
    "image/jpeg",
]


class BlobClientInterface(ClientInterface):
    """
    Opaque file storage collaborator. The core only keeps the filename it hands back.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.max_file_size = self.get_config_val("MAX_FILE_SIZE", default=DEFAULT_MAX_FILE_SIZE, val_type="number")
        self.allowed_media_types = [
            media_type.lower() for media_type in self.get_config_val("ALLOWED_MEDIA_TYPES", default=DEFAULT_ALLOWED_MEDIA_TYPES, val_type="list")
        ]

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_file(self, name: str, media_type: str | None, size: int) -> None:
        """
        Checks a file before it is uploaded.

        Raises:
            ValidationFailedError: If the name is empty, the file is empty or too large, or the media type is not allowed.
        """
        if not name or not name.strip():
            raise ValidationFailedError("File name must not be empty")
        if size <= 0:
            raise ValidationFailedError(f"File '{name}' is empty")
        if size > self.max_file_size:
            raise ValidationFailedError(f"File '{name}' exceeds the maximum size of {self.max_file_size} bytes")
        if (media_type or "").lower() not in self.allowed_media_types:
            raise ValidationFailedError(f"Media type '{media_type}' of file '{name}' is not allowed")

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_client_type(self) -> str:
        return "blob"

    @abstractmethod
    def _get_endpoint_upload(self) -> str:
        """
        Returns the endpoint path for uploads (e.g. "/api/files").
        """
        pass

    @abstractmethod
    def _get_endpoint_download(self, filename: str) -> str:
        """
        Returns the endpoint path for downloading a stored file.
        """
        pass

    @abstractmethod
    def _parse_upload_response(self, response: dict) -> str:
        """
        Extracts the stored filename from the upload response.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_upload(self, name: str, media_type: str | None, content: bytes, token: str | None) -> str:
        """
        Validates and uploads a file.

        Returns:
            str: The filename under which the storage keeps the file.

        Raises:
            ValidationFailedError: If the file is rejected locally. No request is sent in that case.
            ShapeMismatchError: If the response carries no filename.
        """
        self.validate_file(name, media_type, len(content))
        resp = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_upload(),
            files={"file": (name, content, media_type)},
            token=token,
        )
        payload = self.parse_json(resp)
        if not isinstance(payload, dict):
            raise ShapeMismatchError("Upload response is not an object")
        filename = self._parse_upload_response(payload)
        if not filename:
            raise ShapeMismatchError("Upload response carries no filename")
        self.logging.info("Uploaded '%s' (%d bytes) as '%s'", name, len(content), filename)
        return filename

    async def open_download(self, filename: str, token: str | None) -> httpx.Response:
        """
        Opens a stored file for streaming. The status is checked before any byte is read.

        Returns:
            httpx.Response: The open streamed response. Read it with iter_download, which closes it.

        Raises:
            NotFoundError: If the storage does not know the file.
            RemoteUnavailableError: On transport errors or other failures.
        """
        if self._client is None:
            raise RuntimeError("HTTP client not initialised. Call boot() before making requests.")
        url = f"{self._get_base_url().rstrip('/')}{self._get_endpoint_download(filename)}"
        request = self._client.build_request("GET", url, headers=self._get_auth_header(token))
        try:
            response = await self._client.send(request, stream=True)
        except httpx.TransportError as exc:
            self.logging.error("Download of '%s' failed: %s", filename, exc)
            raise RemoteUnavailableError(f"Blob storage unreachable: {exc}") from exc
        if response.status_code < 300:
            return response
        await response.aclose()
        if response.status_code == 404:
            raise NotFoundError(f"File '{filename}' not found", status_code=404)
        self.logging.error("Download of '%s' failed with status %d", filename, response.status_code)
        raise RemoteUnavailableError(f"Download of '{filename}' failed", status_code=response.status_code)

    async def iter_download(self, response: httpx.Response) -> AsyncIterator[bytes]:
        """
        Yields the chunks of a response from open_download and closes it afterwards.

        Raises:
            RemoteUnavailableError: If the connection breaks mid-stream.
        """
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.TransportError as exc:
            self.logging.error("Download from %s broke off: %s", response.url, exc)
            raise RemoteUnavailableError(f"Blob storage connection lost: {exc}") from exc
        finally:
            await response.aclose()
