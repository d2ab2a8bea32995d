from abc import abstractmethod
from typing import Any, Callable, TypeVar

from pydantic import ValidationError

from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface
from shared.clients.dms.models.Document import Document
from shared.clients.dms.models.Department import Department
from shared.clients.dms.models.Category import Category
from shared.clients.dms.models.User import User
from shared.models.errors import ShapeMismatchError

T = TypeVar("T")

DOCUMENTS = "documents"
DEPARTMENTS = "departments"
CATEGORIES = "categories"
USERS = "users"
COLLECTIONS = (DOCUMENTS, DEPARTMENTS, CATEGORIES, USERS)


class DMSClientInterface(ClientInterface):
    """
    Remote document, category, department and user APIs.

    The client is stateless: it turns requests into typed entities and never caches.
    Caching is the job of the synchronizer's entity store.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "dms"
        """
        return "dms"

    @abstractmethod
    def _get_service_url(self, collection: str) -> str:
        """
        Returns the base URL of the service owning a collection.

        Args:
            collection (str): One of "documents", "departments", "categories", "users".

        Returns:
            str: The base URL (e.g. "http://localhost:8083")
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_collection(self, collection: str) -> str:
        """
        Returns the endpoint path for listing and creating entities of a collection (e.g. "/api/documents").
        """
        pass

    @abstractmethod
    def _get_endpoint_entity(self, collection: str, entity_id: int) -> str:
        """
        Returns the endpoint path for a single entity of a collection (e.g. "/api/documents/{id}").
        """
        pass

    @abstractmethod
    def _get_endpoint_documents_query(self) -> str:
        """
        Returns the endpoint path of the server-paginated document query (e.g. "/api/documents/query").
        """
        pass

    @abstractmethod
    def _get_endpoint_user_department(self, user_id: int, department_id: int, remove: bool = False) -> str:
        """
        Returns the endpoint path for assigning a user to (or removing a user from) a department.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _fetch_list(self, collection: str, token: str | None, parser: Callable[[dict], T]) -> list[T]:
        resp = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_collection(collection),
            base_url=self._get_service_url(collection),
            token=token,
        )
        payload = self.parse_json(resp)
        if not isinstance(payload, list):
            raise ShapeMismatchError(f"Listing {collection} from {self._get_engine_name()} did not return a list")
        items = [parser(item) for item in payload]
        self.logging.info("Fetched %d %s from %s", len(items), collection, self._get_engine_name())
        return items

    async def _fetch_one(self, collection: str, entity_id: int, token: str | None, parser: Callable[[dict], T]) -> T:
        resp = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_entity(collection, entity_id),
            base_url=self._get_service_url(collection),
            token=token,
        )
        return parser(self.parse_json(resp))

    async def _send(self, method: str, collection: str, entity_id: int | None, body: dict, token: str | None, parser: Callable[[dict], T]) -> T:
        endpoint = self._get_endpoint_collection(collection) if entity_id is None else self._get_endpoint_entity(collection, entity_id)
        resp = await self.do_request(
            method=method,
            endpoint=endpoint,
            base_url=self._get_service_url(collection),
            json=body,
            token=token,
        )
        return parser(self.parse_json(resp))

    async def _delete(self, collection: str, entity_id: int, token: str | None) -> None:
        await self.do_request(
            method="DELETE",
            endpoint=self._get_endpoint_entity(collection, entity_id),
            base_url=self._get_service_url(collection),
            token=token,
        )
        self.logging.info("Deleted %s id=%s on %s", collection, entity_id, self._get_engine_name())

    ############# DOCUMENTS ##############
    async def do_fetch_documents(self, token: str | None) -> list[Document]:
        """
        Fetches all documents from the documents service in one bulk payload.

        Raises:
            ShapeMismatchError: If the response is not a list of valid documents.
        """
        return await self._fetch_list(DOCUMENTS, token, self.parse_document)

    async def do_fetch_document(self, document_id: int, token: str | None) -> Document:
        """
        Fetches a single document.

        Raises:
            NotFoundError: If the document does not exist (anymore).
        """
        return await self._fetch_one(DOCUMENTS, document_id, token, self.parse_document)

    async def do_create_document(self, payload: dict, token: str | None) -> Document:
        """
        Creates a document and returns the server's canonical version (generated id, timestamps).
        """
        return await self._send("POST", DOCUMENTS, None, self._serialize_document(payload), token, self.parse_document)

    async def do_update_document(self, document_id: int, patch: dict, token: str | None) -> Document:
        """
        Updates a document and returns the server's canonical version.
        """
        return await self._send("PUT", DOCUMENTS, document_id, self._serialize_document(patch), token, self.parse_document)

    async def do_delete_document(self, document_id: int, token: str | None) -> None:
        await self._delete(DOCUMENTS, document_id, token)

    async def do_query_documents(self, params: dict, body: list[dict], token: str | None) -> Any:
        """
        Runs a server-paginated document query.

        Args:
            params (dict): Pagination and sort query parameters.
            body (list[dict]): Filter clauses, sent as the request body.

        Returns:
            Any: The decoded JSON envelope. Callers validate it before use.
        """
        resp = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_documents_query(),
            base_url=self._get_service_url(DOCUMENTS),
            params=params,
            json=body,
            token=token,
        )
        return self.parse_json(resp)

    ############# DEPARTMENTS ##############
    async def do_fetch_departments(self, token: str | None) -> list[Department]:
        return await self._fetch_list(DEPARTMENTS, token, self.parse_department)

    async def do_fetch_department(self, department_id: int, token: str | None) -> Department:
        return await self._fetch_one(DEPARTMENTS, department_id, token, self.parse_department)

    async def do_create_department(self, payload: dict, token: str | None) -> Department:
        return await self._send("POST", DEPARTMENTS, None, payload, token, self.parse_department)

    async def do_update_department(self, department_id: int, patch: dict, token: str | None) -> Department:
        return await self._send("PUT", DEPARTMENTS, department_id, patch, token, self.parse_department)

    async def do_delete_department(self, department_id: int, token: str | None) -> None:
        await self._delete(DEPARTMENTS, department_id, token)

    ############# CATEGORIES ##############
    async def do_fetch_categories(self, token: str | None) -> list[Category]:
        return await self._fetch_list(CATEGORIES, token, self.parse_category)

    async def do_fetch_category(self, category_id: int, token: str | None) -> Category:
        return await self._fetch_one(CATEGORIES, category_id, token, self.parse_category)

    async def do_create_category(self, payload: dict, token: str | None) -> Category:
        return await self._send("POST", CATEGORIES, None, payload, token, self.parse_category)

    async def do_update_category(self, category_id: int, patch: dict, token: str | None) -> Category:
        return await self._send("PUT", CATEGORIES, category_id, patch, token, self.parse_category)

    async def do_delete_category(self, category_id: int, token: str | None) -> None:
        await self._delete(CATEGORIES, category_id, token)

    ############# USERS ##############
    async def do_fetch_users(self, token: str | None) -> list[User]:
        return await self._fetch_list(USERS, token, self.parse_user)

    async def do_fetch_user(self, user_id: int, token: str | None) -> User:
        return await self._fetch_one(USERS, user_id, token, self.parse_user)

    async def do_create_user(self, payload: dict, token: str | None) -> User:
        return await self._send("POST", USERS, None, self._serialize_user(payload), token, self.parse_user)

    async def do_update_user(self, user_id: int, patch: dict, token: str | None) -> User:
        return await self._send("PUT", USERS, user_id, self._serialize_user(patch), token, self.parse_user)

    async def do_delete_user(self, user_id: int, token: str | None) -> None:
        await self._delete(USERS, user_id, token)

    async def do_fetch_user_departments(self, user_id: int, token: str | None) -> list[Department]:
        """
        Fetches the departments a user belongs to, as embedded in the user record.

        Returns:
            list[Department]: The user's departments. Entries that are bare ids carry an empty name.
        """
        resp = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_entity(USERS, user_id),
            base_url=self._get_service_url(USERS),
            token=token,
        )
        payload = self.parse_json(resp)
        if not isinstance(payload, dict):
            raise ShapeMismatchError(f"User {user_id} response is not an object")
        try:
            return self._parse_embedded_departments(payload.get("departments"))
        except (ValidationError, TypeError, ValueError) as exc:
            raise ShapeMismatchError(f"Malformed departments of user {user_id}: {exc}") from exc

    async def do_assign_user_department(self, user_id: int, department_id: int, token: str | None) -> None:
        await self.do_request(
            method="PUT",
            endpoint=self._get_endpoint_user_department(user_id, department_id),
            base_url=self._get_service_url(USERS),
            token=token,
        )
        self.logging.info("Assigned user id=%s to department id=%s", user_id, department_id)

    async def do_remove_user_department(self, user_id: int, department_id: int, token: str | None) -> None:
        await self.do_request(
            method="DELETE",
            endpoint=self._get_endpoint_user_department(user_id, department_id, remove=True),
            base_url=self._get_service_url(USERS),
            token=token,
        )
        self.logging.info("Removed user id=%s from department id=%s", user_id, department_id)

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_checked(self, parser: Callable[[dict], T], response: Any, label: str) -> T:
        if not isinstance(response, dict):
            raise ShapeMismatchError(f"{label} payload from {self._get_engine_name()} is not an object")
        try:
            return parser(response)
        except (ValidationError, TypeError, ValueError) as exc:
            self.logging.error("Malformed %s payload from %s: %s", label, self._get_engine_name(), exc)
            raise ShapeMismatchError(f"Malformed {label} payload: {exc}") from exc

    def parse_document(self, response: Any) -> Document:
        """
        Parses a raw document payload into a Document.

        Raises:
            ShapeMismatchError: If required fields are missing or malformed.
        """
        return self._parse_checked(self._parse_endpoint_document, response, "document")

    def parse_department(self, response: Any) -> Department:
        return self._parse_checked(self._parse_endpoint_department, response, "department")

    def parse_category(self, response: Any) -> Category:
        return self._parse_checked(self._parse_endpoint_category, response, "category")

    def parse_user(self, response: Any) -> User:
        return self._parse_checked(self._parse_endpoint_user, response, "user")

    @abstractmethod
    def _parse_endpoint_document(self, response: dict) -> Document:
        """
        Parses a raw document dict from the backend API into a Document object.
        """
        pass

    @abstractmethod
    def _parse_endpoint_department(self, response: dict) -> Department:
        pass

    @abstractmethod
    def _parse_endpoint_category(self, response: dict) -> Category:
        pass

    @abstractmethod
    def _parse_endpoint_user(self, response: dict) -> User:
        pass

    @abstractmethod
    def _parse_embedded_departments(self, raw: Any) -> list[Department]:
        """
        Parses the departments embedded in a user record.
        """
        pass

    ##########################################
    ########### REQUEST SERIALIZER ###########
    ##########################################

    @abstractmethod
    def _serialize_document(self, payload: dict) -> dict:
        """
        Translates a document payload/patch in model field names into the backend's wire format.
        """
        pass

    @abstractmethod
    def _serialize_user(self, payload: dict) -> dict:
        """
        Translates a user payload/patch in model field names into the backend's wire format.
        """
        pass
