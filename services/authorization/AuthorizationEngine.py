"""
Authorization engine.

Answers "may principal P perform action A on entity E" for documents and the
directory entities (departments, categories, users). Every role or department
check of the client goes through this module.

Document rules, evaluated in order, first match wins:
    1. administrators may do everything
    2. view:   the document has no department, or the principal is a member of it
    3. create: the target department is one of the principal's departments
    4. update/delete: the principal created the document, or is a member of its department
    5. otherwise denied

Denials are returned, not raised. The module performs no I/O.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from shared.clients.dms.models.Category import Category
from shared.clients.dms.models.Department import Department
from shared.clients.dms.models.Document import Document
from shared.clients.dms.models.User import User
from shared.models.principal import ADMIN_ROLES, Principal


class Action(str, Enum):
    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class AuthorizationDecision:
    """Outcome of an authorization check. Truthy iff allowed."""

    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


@dataclass(frozen=True)
class NewDocument:
    """Target of a document create: the department the document will belong to."""

    department_id: int | None


def _allow(reason: str) -> AuthorizationDecision:
    return AuthorizationDecision(allowed=True, reason=reason)


def _deny(reason: str) -> AuthorizationDecision:
    return AuthorizationDecision(allowed=False, reason=reason)


def is_admin(principal: Principal | None) -> bool:
    if principal is None:
        return False
    return not ADMIN_ROLES.isdisjoint(principal.roles)


# ---- Documents ------------------------------------------------------------------------


def _authorize_document(principal: Principal, action: Action, document: Document) -> AuthorizationDecision:
    if action == Action.VIEW:
        if document.department_id is None:
            return _allow("document is not department-scoped")
        if document.department_id in principal.departments:
            return _allow("member of the document's department")
        return _deny(f"not a member of department {document.department_id}")

    if action in (Action.UPDATE, Action.DELETE):
        if document.created_by is not None and document.created_by == principal.id:
            return _allow("creator of the document")
        if document.department_id is not None and document.department_id in principal.departments:
            return _allow("member of the document's department")
        return _deny(f"neither creator nor member of the document's department ({action.value})")

    return _deny(f"action {action.value!r} needs a create target, not an existing document")


def _authorize_new_document(principal: Principal, target: NewDocument) -> AuthorizationDecision:
    if target.department_id is None:
        return _deny("only administrators may create documents without a department")
    if target.department_id in principal.departments:
        return _allow("member of the target department")
    return _deny(f"not a member of target department {target.department_id}")


# ---- Directory entities ---------------------------------------------------------------


def _authorize_directory(principal: Principal, action: Action, entity) -> AuthorizationDecision:
    if isinstance(entity, User) or entity is User:
        if action == Action.VIEW and isinstance(entity, User) and entity.id == principal.id:
            return _allow("own user record")
        return _deny("user management is restricted to administrators")
    if action == Action.VIEW:
        return _allow("directory entries are readable by every authenticated principal")
    return _deny("directory management is restricted to administrators")


# ---- Entry points ---------------------------------------------------------------------


def authorize(principal: Principal | None, action: Action, entity) -> AuthorizationDecision:
    """
    Decide whether principal may perform action on entity.

    entity is one of:
        Document                      view/update/delete of an existing document
        Document (the class)          listing documents, filtered afterwards by visible_documents
        NewDocument                   create of a document in a target department
        Department | Category | User  view/update/delete of an existing directory entry
        Department | Category | User  (the class) create of a directory entry
    """

    if principal is None:
        return _deny("not authenticated")
    if is_admin(principal):
        return _allow("administrator")

    if isinstance(entity, Document):
        return _authorize_document(principal, action, entity)
    if entity is Document:
        if action == Action.VIEW:
            return _allow("document listings are restricted per document")
        return _deny(f"action {action.value!r} needs a document or a create target")
    if isinstance(entity, NewDocument):
        if action != Action.CREATE:
            return _deny(f"action {action.value!r} is not valid for a create target")
        return _authorize_new_document(principal, entity)
    if isinstance(entity, (Department, Category, User)) or entity in (Department, Category, User):
        return _authorize_directory(principal, action, entity)
    return _deny(f"unknown entity type {type(entity).__name__}")


def authorize_update(principal: Principal | None, document: Document, patch: dict) -> AuthorizationDecision:
    """
    Update check that also covers moving a document: a patch that changes the department
    needs create permission on the new department.
    """

    decision = authorize(principal, Action.UPDATE, document)
    if not decision:
        return decision
    if "department_id" in patch and patch["department_id"] != document.department_id:
        move = authorize(principal, Action.CREATE, NewDocument(department_id=patch["department_id"]))
        if not move:
            return _deny(f"cannot move document: {move.reason}")
    return decision


def visible_documents(principal: Principal | None, documents: Iterable[Document]) -> list[Document]:
    """Documents of the collection the principal may view, in input order."""

    return [document for document in documents if authorize(principal, Action.VIEW, document)]
