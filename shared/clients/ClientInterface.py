from abc import ABC, abstractmethod

import httpx
from httpx._types import QueryParamTypes, RequestContent, RequestData, RequestFiles
from typing import Any
from shared.models.config import EnvConfig
from shared.models.errors import (
    DMSError,
    ForbiddenError,
    NotFoundError,
    RemoteUnavailableError,
    ShapeMismatchError,
    UnauthenticatedError,
    ValidationFailedError,
)

from shared.helper.HelperConfig import HelperConfig

_STATUS_ERRORS: dict[int, type[DMSError]] = {
    400: ValidationFailedError,
    401: UnauthenticatedError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ValidationFailedError,
    422: ValidationFailedError,
}


class ClientInterface(ABC):
    """
    Base of every remote client: one httpx connection pool, settings read as
    ``<TYPE>_<ENGINE>_<KEY>`` and failures mapped to the DMSError kinds.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)

        # created by boot(), released by close()
        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Reads every setting the engine declares.

        Raises:
            ValueError: If a required setting is missing or does not parse.
        """
        for setting in self._get_required_config():
            self.get_config_val(raw_key=setting.env_key, default=setting.default, val_type=setting.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """Client family in lowercase, e.g. "dms" or "blob"."""
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        pass

    def get_engine_name(self) -> str:
        """Engine in lowercase, e.g. "rest"."""
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """Settings of the engine, without the "<TYPE>_<ENGINE>_" prefix."""
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        return "_".join([self.get_client_type(), self.get_engine_name(), raw_key]).upper()

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Reads one engine setting, e.g. raw_key "BASE_URL" of the blob REST client
        reads BLOB_REST_BASE_URL.

        Args:
            raw_key (str): Setting name without prefix.
            default (Any): Fallback if unset. None makes the setting required.
            val_type (str): "string", "number", "bool" or "list".

        Raises:
            ValueError: If the setting is required and missing, or val_type is unknown.
        """
        getters = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }
        if val_type not in getters:
            raise ValueError(f"Unsupported setting type '{val_type}' for '{raw_key}' of {self.get_client_type().upper()} engine '{self.get_engine_name()}'.")
        return getters[val_type](self._get_config_key_name(raw_key), default=default)

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self, token: str | None) -> dict:
        """Headers carrying the principal's bearer credential. Empty without one."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """Default host of the engine, e.g. "http://localhost:8083"."""
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """Probes the backend. Error statuses are returned, not raised."""
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck(), raise_on_error=False)

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialise the HTTP client.

        Args:
            transport: Optional transport, e.g. an ``httpx.MockTransport`` in tests.
        """
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        """Close the HTTP client and any other resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        data: RequestData | None = None,
        files: RequestFiles | None = None,
        json: Any = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        token: str | None = None,
        base_url: str | None = None,
        additional_headers: dict | None = None,
        raise_on_error: bool = True,
    ) -> httpx.Response:
        """Send an HTTP request to the client backend.

        Args:
            method: HTTP method (GET, POST, PUT or DELETE).
            content: Raw bytes / stream body.
            data: Form-encoded body (dict or list of tuples).
            files: Multipart file upload.
            json: JSON-serialisable body (sets Content-Type automatically).
            params: URL query parameters.
            endpoint: Path to append to the base URL (leading slash optional).
            token: Bearer credential of the current principal.
            base_url: Overrides the default base URL (backends split over several services).
            additional_headers: Extra headers that override the defaults.
            raise_on_error: Map non-2xx responses to DMSError subclasses.

        Returns:
            The raw httpx.Response.

        Raises:
            RemoteUnavailableError: On transport errors, timeouts, 5xx and unexpected statuses.
            UnauthenticatedError, ForbiddenError, NotFoundError, ValidationFailedError: On the matching 4xx status.
        """
        if self._client is None:
            raise RuntimeError("HTTP client not initialised. Call boot() before making requests.")

        endpoint = "/" + endpoint.strip().lstrip("/") if endpoint.strip() else ""
        url = f"{(base_url or self._get_base_url()).rstrip('/')}{endpoint}"

        # Do NOT set a default Content-Type: httpx sets it automatically for json/data/files.
        headers: dict = {}
        headers.update(self._get_auth_header(token))
        if additional_headers:
            headers.update(additional_headers)

        kwargs: dict = {
            "url": url,
            "headers": headers,
            "timeout": self.timeout,
            "params": params,
        }

        # add exactly one body argument
        if content is not None:
            kwargs["content"] = content
        elif data is not None:
            kwargs["data"] = data
        elif files is not None:
            kwargs["files"] = files
        elif json is not None:
            kwargs["json"] = json

        try:
            response = await self._client.request(method, **kwargs)
        except httpx.TransportError as exc:
            self.logging.error("Request %s %s failed: %s", method, url, exc)
            raise RemoteUnavailableError(f"{self._get_engine_name()} backend unreachable: {exc}") from exc

        if raise_on_error and response.status_code >= 300:
            error_class = _STATUS_ERRORS.get(response.status_code, RemoteUnavailableError)
            log = self.logging.warning if response.status_code < 500 else self.logging.error
            log("Request %s %s failed with status %d: %s", method, url, response.status_code, response.text[:300])
            raise error_class(
                f"Request {method} {url} failed with status {response.status_code}",
                status_code=response.status_code,
            )

        return response

    def parse_json(self, response: httpx.Response) -> Any:
        """Decode a JSON response body.

        Raises:
            ShapeMismatchError: If the body is not valid JSON.
        """
        try:
            return response.json()
        except ValueError as exc:
            self.logging.error("Response from %s is not valid JSON: %s", response.request.url, exc)
            raise ShapeMismatchError(f"Response from {response.request.url} is not valid JSON") from exc
