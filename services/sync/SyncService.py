"""Remote synchronizer.

Runs create/read/update/delete against the remote collections on behalf of the
signed-in principal and mirrors the server's answers into the session's entity
store. Every mutation is authorized and validated before a request is sent;
every response is committed through the sequence tracker so late answers of
superseded requests never overwrite newer state.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator

from services.authorization.AuthorizationEngine import (
    Action,
    AuthorizationDecision,
    NewDocument,
    authorize,
    authorize_update,
    visible_documents,
)
from services.query.QueryEngine import build_remote_request, parse_remote_page, run_query, validate_spec
from services.query.QueryState import QueryState
from services.session.SessionContext import SessionContext
from services.sync.EntityStore import current_channel
from shared.clients.blob.BlobClientInterface import BlobClientInterface
from shared.clients.dms.DMSClientInterface import CATEGORIES, DEPARTMENTS, DOCUMENTS, USERS, DMSClientInterface
from shared.clients.dms.models.Category import Category
from shared.clients.dms.models.Department import Department
from shared.clients.dms.models.Document import AttachedFile, Document, DocumentStatus, normalize_tags
from shared.clients.dms.models.User import User
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import ForbiddenError, NotFoundError, RemoteUnavailableError, ShapeMismatchError, ValidationFailedError
from shared.models.principal import Principal
from shared.models.query import PageResult, QuerySpec

QUERY_CHANNEL = "documents/query"
USER_DEPARTMENTS_CHANNEL = "users/departments"
# loads page() starts before giving up on a collection whose lists keep being superseded
MAX_LOAD_ATTEMPTS = 3


@dataclass(frozen=True)
class FileUpload:
    """A file to attach to a new document."""

    name: str
    media_type: str | None
    content: bytes


def _require_name(payload: dict, partial: bool, label: str) -> dict:
    data = dict(payload)
    if "name" in data or not partial:
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationFailedError(f"{label} name must not be empty")
        data["name"] = name.strip()
    return data


def _reject_unknown(payload: dict, allowed: frozenset[str], label: str) -> None:
    unknown = set(payload) - allowed
    if unknown:
        raise ValidationFailedError(f"Unknown {label} field(s): {', '.join(sorted(unknown))}")


def _optional_id(data: dict, key: str) -> None:
    value = data.get(key)
    if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
        raise ValidationFailedError(f"'{key}' must be an integer id, got {value!r}")


class EntitySynchronizer:
    """
    list / get_by_id / create / update / delete of one remote collection.

    Subclasses bind the collection: its kind, model class, client calls, payload
    validation and (for documents) entity-dependent authorization.
    """

    kind: str = ""
    model: type = object
    label: str = "entity"
    # authorization of update/delete looks at the stored entity
    needs_entity_for_mutation: bool = False

    def __init__(self, helper_config: HelperConfig, dms_client: DMSClientInterface):
        self.logging = helper_config.get_logger()
        self._client = dms_client

    ##########################################
    ############ CLIENT BINDINGS #############
    ##########################################

    async def _fetch_all(self, token: str) -> list:
        raise NotImplementedError

    async def _fetch_one(self, entity_id: int, token: str):
        raise NotImplementedError

    async def _create(self, payload: dict, token: str):
        raise NotImplementedError

    async def _update(self, entity_id: int, patch: dict, token: str):
        raise NotImplementedError

    async def _delete(self, entity_id: int, token: str) -> None:
        raise NotImplementedError

    def _validate_payload(self, payload: dict, partial: bool) -> dict:
        """Returns the cleaned payload. Raises ValidationFailedError."""
        return dict(payload)

    ##########################################
    ############ AUTHORIZATION ###############
    ##########################################

    def _authorize_create(self, principal: Principal, payload: dict) -> AuthorizationDecision:
        return authorize(principal, Action.CREATE, self.model)

    def _authorize_mutation(self, principal: Principal, action: Action, entity, patch: dict | None) -> AuthorizationDecision:
        return authorize(principal, action, entity if entity is not None else self.model)

    def _enforce(self, decision: AuthorizationDecision, principal: Principal, action: Action, entity_id: int | None = None) -> None:
        if not decision:
            self.logging.warning(
                "Denied %s of %s id=%s for principal id=%s: %s",
                action.value, self.label, entity_id, principal.id, decision.reason,
            )
            raise ForbiddenError(f"Not allowed to {action.value} {self.label}: {decision.reason}")

    ##########################################
    ############## READ MODELS ###############
    ##########################################

    def _entity_channel(self, entity_id: int) -> str:
        return f"{self.kind}/{entity_id}"

    def _read_model(self, ctx: SessionContext, entity_id: int):
        cached = ctx.store.get(self.kind, entity_id)
        if cached is not None:
            return cached
        current = ctx.store.current(self.kind)
        if current is not None and current.id == entity_id:
            return current
        return None

    def _begin_view(self, ctx: SessionContext) -> int:
        return ctx.tracker.issue(current_channel(self.kind))

    def _show(self, ctx: SessionContext, entity, view: int) -> None:
        if not ctx.store.commit_current(self.kind, entity, view):
            self.logging.debug("A later view replaced %s id=%s as the current one", self.label, entity.id)

    def clear_current(self, ctx: SessionContext) -> None:
        """Leaves the detail view. Views still loading no longer become current."""
        ctx.store.commit_current(self.kind, None, self._begin_view(ctx))

    async def _load(self, ctx: SessionContext, entity_id: int, token: str, forget_missing: bool = True):
        """
        Fetches one entity and commits it.

        Returns the committed entity, or the newer cached state if the response was
        superseded, or None if the remote does not know the id.
        """
        seq = ctx.tracker.issue(self._entity_channel(entity_id))
        try:
            entity = await self._fetch_one(entity_id, token)
        except NotFoundError:
            if not forget_missing:
                raise
            if ctx.store.commit_removal(self.kind, entity_id, seq):
                self.logging.info("%s id=%s no longer exists, dropped from cache", self.label.capitalize(), entity_id)
            return None
        if entity.id != entity_id:
            raise ShapeMismatchError(f"Requested {self.label} {entity_id} but received {entity.id}")
        if ctx.store.commit_entity(self.kind, entity, seq):
            return entity
        self.logging.debug("Discarded stale %s id=%s response", self.label, entity_id)
        return self._read_model(ctx, entity_id)

    ##########################################
    ################ READS ###################
    ##########################################

    def _visible(self, principal: Principal, entities: list) -> list:
        return entities

    async def list(self, ctx: SessionContext) -> list:
        """
        Loads the whole collection.

        Returns:
            list: The cached collection after the commit, ordered by id.

        Raises:
            UnauthenticatedError: If no credential is available. Nothing is sent.
            ForbiddenError: If the principal may not list the collection. Nothing is sent.
        """
        principal = ctx.require_principal()
        self._enforce(authorize(principal, Action.VIEW, self.model), principal, Action.VIEW)
        seq = ctx.tracker.issue(self.kind)
        items = await self._fetch_all(principal.token)
        if not ctx.store.commit_list(self.kind, items, seq):
            self.logging.debug("Discarded superseded %s list response (token %d)", self.label, seq)
        return self._visible(principal, ctx.store.all(self.kind))

    async def get_by_id(self, ctx: SessionContext, entity_id: int):
        """
        Loads one entity and makes it the current one, unless another
        entity was opened after this call started.

        Returns:
            The entity, or None if it does not exist on the remote.

        Raises:
            ForbiddenError: If the principal may not view it.
        """
        principal = ctx.require_principal()
        view = self._begin_view(ctx)
        entity = await self._load(ctx, entity_id, principal.token)
        if entity is None:
            return None
        self._enforce(authorize(principal, Action.VIEW, entity), principal, Action.VIEW, entity_id)
        self._show(ctx, entity, view)
        return entity

    ##########################################
    ############### MUTATIONS ################
    ##########################################

    async def _entity_for_mutation(self, ctx: SessionContext, entity_id: int, token: str):
        if not self.needs_entity_for_mutation:
            return self._read_model(ctx, entity_id)
        entity = self._read_model(ctx, entity_id)
        if entity is None:
            entity = await self._load(ctx, entity_id, token, forget_missing=False)
        if entity is None:
            raise NotFoundError(f"{self.label.capitalize()} {entity_id} not found", status_code=404)
        return entity

    def _check_update_response(self, before, after) -> None:
        pass

    async def create(self, ctx: SessionContext, payload: dict):
        """
        Creates an entity and stores the server's canonical version.

        Raises:
            ValidationFailedError: If the payload is invalid. Nothing is sent.
            ForbiddenError: If the principal may not create it. Nothing is sent.
        """
        principal = ctx.require_principal()
        data = self._validate_payload(payload, partial=False)
        self._enforce(self._authorize_create(principal, data), principal, Action.CREATE)
        return await self._send_create(ctx, principal, data)

    async def _send_create(self, ctx: SessionContext, principal: Principal, data: dict):
        # the collection channel stays untouched so lists in flight still commit
        seq = ctx.tracker.issue(f"{self.kind}/new")
        view = self._begin_view(ctx)
        entity = await self._create(data, principal.token)
        if ctx.store.commit_entity(self.kind, entity, seq):
            self._show(ctx, entity, view)
        self.logging.info("Created %s id=%s", self.label, entity.id)
        return entity

    async def update(self, ctx: SessionContext, entity_id: int, patch: dict):
        """
        Updates an entity and stores the server's canonical version.

        Raises:
            ValidationFailedError: If the patch is invalid. Nothing is sent.
            ForbiddenError: If the principal may not update it. Nothing is sent.
            NotFoundError: If the entity does not exist.
            ShapeMismatchError: If the response contradicts the stored entity.
        """
        principal = ctx.require_principal()
        data = self._validate_payload(patch, partial=True)
        before = await self._entity_for_mutation(ctx, entity_id, principal.token)
        self._enforce(self._authorize_mutation(principal, Action.UPDATE, before, data), principal, Action.UPDATE, entity_id)

        seq = ctx.tracker.issue(self._entity_channel(entity_id))
        view = self._begin_view(ctx)
        entity = await self._update(entity_id, data, principal.token)
        if entity.id != entity_id:
            raise ShapeMismatchError(f"Updated {self.label} {entity_id} but received {entity.id}")
        if before is not None:
            self._check_update_response(before, entity)
        if ctx.store.commit_entity(self.kind, entity, seq):
            self._show(ctx, entity, view)
        else:
            self.logging.debug("Discarded stale %s id=%s update response", self.label, entity_id)
            newer = self._read_model(ctx, entity_id)
            if newer is not None:
                self._show(ctx, newer, view)
        self.logging.info("Updated %s id=%s", self.label, entity_id)
        return entity

    async def delete(self, ctx: SessionContext, entity_id: int) -> None:
        """
        Deletes an entity and prunes it from every cached read-model.

        Raises:
            ForbiddenError: If the principal may not delete it. Nothing is sent.
            NotFoundError: If the remote does not know the id. The cache is left untouched.
        """
        principal = ctx.require_principal()
        before = await self._entity_for_mutation(ctx, entity_id, principal.token)
        self._enforce(self._authorize_mutation(principal, Action.DELETE, before, None), principal, Action.DELETE, entity_id)

        seq = ctx.tracker.issue(self._entity_channel(entity_id))
        await self._delete(entity_id, principal.token)
        if not ctx.store.commit_removal(self.kind, entity_id, seq):
            self.logging.debug("Discarded stale %s id=%s delete", self.label, entity_id)
        self.logging.info("Deleted %s id=%s", self.label, entity_id)


##########################################
############### DIRECTORY ################
##########################################

class DepartmentSynchronizer(EntitySynchronizer):
    kind = DEPARTMENTS
    model = Department
    label = "department"

    async def _fetch_all(self, token):
        return await self._client.do_fetch_departments(token)

    async def _fetch_one(self, entity_id, token):
        return await self._client.do_fetch_department(entity_id, token)

    async def _create(self, payload, token):
        return await self._client.do_create_department(payload, token)

    async def _update(self, entity_id, patch, token):
        return await self._client.do_update_department(entity_id, patch, token)

    async def _delete(self, entity_id, token):
        await self._client.do_delete_department(entity_id, token)

    def _validate_payload(self, payload, partial):
        _reject_unknown(payload, frozenset({"name", "description"}), self.label)
        return _require_name(payload, partial, "Department")


class CategorySynchronizer(EntitySynchronizer):
    kind = CATEGORIES
    model = Category
    label = "category"

    async def _fetch_all(self, token):
        return await self._client.do_fetch_categories(token)

    async def _fetch_one(self, entity_id, token):
        return await self._client.do_fetch_category(entity_id, token)

    async def _create(self, payload, token):
        return await self._client.do_create_category(payload, token)

    async def _update(self, entity_id, patch, token):
        return await self._client.do_update_category(entity_id, patch, token)

    async def _delete(self, entity_id, token):
        await self._client.do_delete_category(entity_id, token)

    def _validate_payload(self, payload, partial):
        _reject_unknown(payload, frozenset({"name", "description"}), self.label)
        return _require_name(payload, partial, "Category")


class UserSynchronizer(EntitySynchronizer):
    kind = USERS
    model = User
    label = "user"

    async def _fetch_all(self, token):
        return await self._client.do_fetch_users(token)

    async def _fetch_one(self, entity_id, token):
        return await self._client.do_fetch_user(entity_id, token)

    async def _create(self, payload, token):
        return await self._client.do_create_user(payload, token)

    async def _update(self, entity_id, patch, token):
        return await self._client.do_update_user(entity_id, patch, token)

    async def _delete(self, entity_id, token):
        await self._client.do_delete_user(entity_id, token)

    def _validate_payload(self, payload, partial):
        _reject_unknown(payload, frozenset({"full_name", "email", "password", "roles"}), self.label)
        data = dict(payload)
        if "email" in data or not partial:
            email = data.get("email")
            if not isinstance(email, str) or "@" not in email:
                raise ValidationFailedError(f"Invalid email address {email!r}")
            data["email"] = email.strip()
        if "roles" in data:
            roles = data["roles"]
            if isinstance(roles, str) or not isinstance(roles, list) or not all(isinstance(role, str) and role.strip() for role in roles):
                raise ValidationFailedError("roles must be a list of non-empty strings")
            data["roles"] = [role.strip() for role in roles]
        return data

    ############# DEPARTMENT MEMBERSHIP ##############
    async def load_user_departments(self, ctx: SessionContext) -> list[Department]:
        """
        Loads the departments of the signed-in principal and refreshes its memberships.

        Returns:
            list[Department]: The departments read-model after the commit.
        """
        principal = ctx.require_principal()
        seq = ctx.tracker.issue(USER_DEPARTMENTS_CHANNEL)
        departments = await self._client.do_fetch_user_departments(principal.id, principal.token)
        if ctx.store.commit_user_departments(departments, USER_DEPARTMENTS_CHANNEL, seq):
            ctx.update_principal(principal.with_departments({department.id for department in departments}))
            self.logging.info("Principal id=%s belongs to %d department(s)", principal.id, len(departments))
        else:
            self.logging.debug("Discarded superseded department list of principal id=%s", principal.id)
        return list(ctx.store.user_departments or [])

    async def _change_membership(self, ctx: SessionContext, user_id: int, department_id: int, remove: bool) -> User | None:
        principal = ctx.require_principal()
        action = Action.UPDATE
        self._enforce(authorize(principal, action, self.model), principal, action, user_id)
        if remove:
            await self._client.do_remove_user_department(user_id, department_id, principal.token)
        else:
            await self._client.do_assign_user_department(user_id, department_id, principal.token)
        if user_id == principal.id:
            await self.load_user_departments(ctx)
        # membership endpoints return no body, the canonical user is fetched again
        return await self._load(ctx, user_id, principal.token)

    async def assign_department(self, ctx: SessionContext, user_id: int, department_id: int) -> User | None:
        return await self._change_membership(ctx, user_id, department_id, remove=False)

    async def remove_department(self, ctx: SessionContext, user_id: int, department_id: int) -> User | None:
        return await self._change_membership(ctx, user_id, department_id, remove=True)


##########################################
############### DOCUMENTS ################
##########################################

_DOCUMENT_FIELDS = frozenset({"title", "description", "content", "status", "tags", "department_id", "category_id", "file"})


class DocumentSynchronizer(EntitySynchronizer):
    kind = DOCUMENTS
    model = Document
    label = "document"
    needs_entity_for_mutation = True

    def __init__(
        self,
        helper_config: HelperConfig,
        dms_client: DMSClientInterface,
        users: UserSynchronizer,
        blob_client: BlobClientInterface | None = None,
    ):
        super().__init__(helper_config=helper_config, dms_client=dms_client)
        self._users = users
        self._blob_client = blob_client
        self.default_page_size = int(helper_config.get_number_val("QUERY_DEFAULT_PAGE_SIZE", default=15))
        self.max_page_size = int(helper_config.get_number_val("QUERY_MAX_PAGE_SIZE", default=100))

    async def _fetch_all(self, token):
        return await self._client.do_fetch_documents(token)

    async def _fetch_one(self, entity_id, token):
        return await self._client.do_fetch_document(entity_id, token)

    async def _create(self, payload, token):
        return await self._client.do_create_document(payload, token)

    async def _update(self, entity_id, patch, token):
        return await self._client.do_update_document(entity_id, patch, token)

    async def _delete(self, entity_id, token):
        await self._client.do_delete_document(entity_id, token)

    def _validate_payload(self, payload, partial):
        _reject_unknown(payload, _DOCUMENT_FIELDS, self.label)
        data = dict(payload)
        if "title" in data or not partial:
            title = data.get("title")
            if not isinstance(title, str) or not title.strip():
                raise ValidationFailedError("Document title must not be empty")
            data["title"] = title.strip()
        if "status" in data:
            try:
                data["status"] = DocumentStatus(str(data["status"]).lower())
            except ValueError:
                raise ValidationFailedError(f"Unknown document status {data['status']!r}")
        if "tags" in data:
            try:
                data["tags"] = normalize_tags(data["tags"])
            except ValueError as exc:
                raise ValidationFailedError(str(exc))
        _optional_id(data, "department_id")
        _optional_id(data, "category_id")
        if data.get("file") is not None and not isinstance(data["file"], AttachedFile):
            raise ValidationFailedError("file must be an attached file descriptor")
        return data

    def _authorize_create(self, principal, payload):
        return authorize(principal, Action.CREATE, NewDocument(department_id=payload.get("department_id")))

    def _authorize_mutation(self, principal, action, entity, patch):
        if action == Action.UPDATE:
            return authorize_update(principal, entity, patch or {})
        return authorize(principal, action, entity)

    def _check_update_response(self, before: Document, after: Document) -> None:
        if after.created_at != before.created_at:
            raise ShapeMismatchError(f"Document {after.id} changed its creation time on update")
        if after.updated_at < before.updated_at:
            raise ShapeMismatchError(f"Document {after.id} update response is older than the stored version")

    def _visible(self, principal, entities):
        return visible_documents(principal, entities)

    async def create(self, ctx: SessionContext, payload: dict, upload: FileUpload | None = None) -> Document:
        """
        Creates a document, optionally uploading an attachment first.

        The creator is the signed-in principal. Only the filename the storage hands
        back is kept on the document.

        Raises:
            ValidationFailedError: If the payload or the file is invalid. Nothing is sent.
            ForbiddenError: If the principal may not create documents in the target department.
        """
        principal = ctx.require_principal()
        data = self._validate_payload(payload, partial=False)
        data.setdefault("status", DocumentStatus.DRAFT)
        data["created_by"] = principal.id
        if upload is not None:
            if self._blob_client is None:
                raise ValidationFailedError("No file storage configured for attachments")
            self._blob_client.validate_file(upload.name, upload.media_type, len(upload.content))
        self._enforce(self._authorize_create(principal, data), principal, Action.CREATE)

        if upload is not None:
            filename = await self._blob_client.do_upload(upload.name, upload.media_type, upload.content, principal.token)
            data["file"] = AttachedFile(name=filename, media_type=upload.media_type)
        return await self._send_create(ctx, principal, data)

    ############# QUERIES ##############
    def new_query_state(self, ctx: SessionContext, spec: QuerySpec | None = None) -> QueryState:
        """A query state whose changes supersede remote queries still in flight."""
        return QueryState(
            spec=spec or QuerySpec(page_size=self.default_page_size),
            on_change=lambda _spec: ctx.tracker.invalidate(QUERY_CHANNEL),
            max_page_size=self.max_page_size,
        )

    def _check_page_size(self, spec: QuerySpec) -> None:
        if spec.page_size > self.max_page_size:
            raise ValidationFailedError(f"Page size {spec.page_size} exceeds the maximum of {self.max_page_size}")

    async def query(self, ctx: SessionContext, spec: QuerySpec) -> PageResult | None:
        """
        Runs a server-paginated query. Results are taken as the server returns them.

        Returns:
            PageResult | None: The page of this query. None if the query was superseded
                while it was in flight.

        Raises:
            ValidationFailedError: If the spec is invalid. Nothing is sent.
            ShapeMismatchError: If the page envelope is malformed.
        """
        principal = ctx.require_principal()
        self._check_page_size(spec)
        params, body = build_remote_request(spec)
        seq = ctx.tracker.issue(QUERY_CHANNEL)
        payload = await self._client.do_query_documents(params, body, principal.token)
        page = parse_remote_page(payload, self._client.parse_document)
        if not ctx.store.commit_page(page, QUERY_CHANNEL, seq):
            self.logging.debug("Discarded superseded query page (token %d)", seq)
            return None
        self.logging.info("Query page %d/%d with %d of %d documents", page.current_page, page.total_pages, len(page.items), page.total_records)
        return page

    async def page(self, ctx: SessionContext, spec: QuerySpec) -> PageResult:
        """
        Runs a query over the cached collection, loading it first if it was never loaded.

        Raises:
            ValidationFailedError: If the spec is invalid. Nothing is sent.
            RemoteUnavailableError: If every load of the collection was superseded.
        """
        principal = ctx.require_principal()
        self._check_page_size(spec)
        validate_spec(spec)
        for _attempt in range(MAX_LOAD_ATTEMPTS):
            if ctx.store.is_loaded(self.kind):
                break
            await self.list(ctx)
        if not ctx.store.is_loaded(self.kind):
            raise RemoteUnavailableError(f"Loading {self.kind} was superseded {MAX_LOAD_ATTEMPTS} times")
        return run_query(ctx.principal or principal, ctx.store.all(self.kind), spec)

    ############# DETAIL VIEW ##############
    async def open_document(self, ctx: SessionContext, document_id: int) -> Document | None:
        """
        Loads a document together with the principal's departments and decides visibility
        only once both arrived.

        Returns:
            Document | None: The document, or None if it does not exist.

        Raises:
            ForbiddenError: If the principal may not view the document.
        """
        principal = ctx.require_principal()
        view = self._begin_view(ctx)
        document, _departments = await asyncio.gather(
            self._load(ctx, document_id, principal.token),
            self._users.load_user_departments(ctx),
        )
        if document is None:
            return None
        principal = ctx.principal or principal
        self._enforce(authorize(principal, Action.VIEW, document), principal, Action.VIEW, document_id)
        self._show(ctx, document, view)
        return document

    async def download(self, ctx: SessionContext, document_id: int) -> tuple[AttachedFile, AsyncIterator[bytes]]:
        """
        Resolves the attachment of a document the principal may view.

        Returns:
            tuple[AttachedFile, AsyncIterator[bytes]]: The attachment descriptor and its byte stream.

        Raises:
            NotFoundError: If the document does not exist, has no attachment or the
                storage lost the file.
            RemoteUnavailableError: If the storage fails before the first byte.
            ForbiddenError: If the principal may not view the document.
        """
        principal = ctx.require_principal()
        if self._blob_client is None:
            raise NotFoundError("No file storage configured")
        document = self._read_model(ctx, document_id)
        if document is None:
            document = await self._load(ctx, document_id, principal.token)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found", status_code=404)
        self._enforce(authorize(principal, Action.VIEW, document), principal, Action.VIEW, document_id)
        if document.file is None:
            raise NotFoundError(f"Document {document_id} has no attachment")
        response = await self._blob_client.open_download(document.file.name, principal.token)
        return document.file, self._blob_client.iter_download(response)


class SyncService:
    """Bundles the synchronizers of all collections."""

    def __init__(
        self,
        helper_config: HelperConfig,
        dms_client: DMSClientInterface,
        blob_client: BlobClientInterface | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self.departments = DepartmentSynchronizer(helper_config, dms_client)
        self.categories = CategorySynchronizer(helper_config, dms_client)
        self.users = UserSynchronizer(helper_config, dms_client)
        self.documents = DocumentSynchronizer(helper_config, dms_client, self.users, blob_client)

    def for_kind(self, kind: str) -> EntitySynchronizer:
        synchronizers: dict[str, Any] = {
            DOCUMENTS: self.documents,
            DEPARTMENTS: self.departments,
            CATEGORIES: self.categories,
            USERS: self.users,
        }
        if kind not in synchronizers:
            raise ValueError(f"Unknown collection '{kind}'")
        return synchronizers[kind]
