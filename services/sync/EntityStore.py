from typing import Any, Iterable

from services.sync.SequenceTracker import SequenceTracker
from shared.clients.dms.DMSClientInterface import CATEGORIES, COLLECTIONS, DEPARTMENTS, DOCUMENTS, USERS
from shared.clients.dms.models.Department import Department
from shared.clients.dms.models.Document import Document
from shared.models.query import PageResult


def current_channel(kind: str) -> str:
    """Channel of the requests that decide which entity a detail view shows."""
    return f"{kind}/current"


class EntityStore:
    """
    In-memory copy of the remote entities of one session.

    One map per collection (None until the collection was loaded once), a "current"
    entity per collection for detail views, the last remote document page and the
    principal's departments. Only the synchronizer writes here; every commit is
    checked against the sequence tracker first and reports whether it was applied.
    """

    def __init__(self, tracker: SequenceTracker):
        self._tracker = tracker
        self._cache: dict[str, dict[int, Any] | None] = {}
        self._current: dict[str, Any] = {}
        self.last_page: PageResult | None = None
        self.user_departments: list[Department] | None = None
        self.clear()

    ##########################################
    ################ GETTER ##################
    ##########################################

    def is_loaded(self, kind: str) -> bool:
        return self._cache[kind] is not None

    def all(self, kind: str) -> list[Any]:
        """Cached entities of a collection ordered by id. Empty if never loaded."""
        cached = self._cache[kind] or {}
        return [cached[entity_id] for entity_id in sorted(cached)]

    def get(self, kind: str, entity_id: int) -> Any | None:
        return (self._cache[kind] or {}).get(entity_id)

    def current(self, kind: str) -> Any | None:
        return self._current.get(kind)

    @property
    def current_document(self) -> Document | None:
        return self._current.get(DOCUMENTS)

    @property
    def current_department(self):
        return self._current.get(DEPARTMENTS)

    @property
    def current_category(self):
        return self._current.get(CATEGORIES)

    @property
    def current_user(self):
        return self._current.get(USERS)

    ##########################################
    ################ COMMITS #################
    ##########################################

    def commit_list(self, kind: str, items: Iterable[Any], token: int) -> bool:
        """
        Replaces a collection with a list response.

        Dropped entirely if a newer list was issued on the channel meanwhile. Items whose
        id saw a newer entity commit (update, create, delete) keep their cached state.
        """
        if not self._tracker.is_latest(kind, token):
            return False
        previous = dict(self._cache[kind] or {})
        current = self._current.get(kind)
        if current is not None and current.id not in previous:
            previous[current.id] = current
        merged: dict[int, Any] = {}
        listed = set()
        for item in items:
            listed.add(item.id)
            if self._tracker.can_apply(kind, item.id, token):
                merged[item.id] = item
                self._tracker.mark_applied(kind, item.id, token)
            elif item.id in previous:
                merged[item.id] = previous[item.id]
        for entity_id, entity in previous.items():
            if entity_id not in listed and not self._tracker.can_apply(kind, entity_id, token):
                merged[entity_id] = entity
        self._cache[kind] = merged
        self._refresh_current(kind)
        return True

    def commit_entity(self, kind: str, entity: Any, token: int) -> bool:
        """Stores one server-canonical entity if no newer commit reached its id."""
        if not self._tracker.can_apply(kind, entity.id, token):
            return False
        self._tracker.mark_applied(kind, entity.id, token)
        if self._cache[kind] is not None:
            self._cache[kind][entity.id] = entity
        current = self._current.get(kind)
        if current is not None and current.id == entity.id:
            self._current[kind] = entity
        if kind == DOCUMENTS and self.last_page is not None:
            items = [entity if item.id == entity.id else item for item in self.last_page.items]
            self.last_page = self.last_page.model_copy(update={"items": items})
        if kind == DEPARTMENTS and self.user_departments is not None:
            self.user_departments = [entity if item.id == entity.id else item for item in self.user_departments]
        return True

    def commit_removal(self, kind: str, entity_id: int, token: int) -> bool:
        """
        Forgets an entity: drops it from the collection map, clears the current
        read-model pointing at it and prunes it from the last page and the user's departments.
        """
        if not self._tracker.can_apply(kind, entity_id, token):
            return False
        self._tracker.mark_applied(kind, entity_id, token)
        if self._cache[kind] is not None:
            self._cache[kind].pop(entity_id, None)
        current = self._current.get(kind)
        if current is not None and current.id == entity_id:
            self._current[kind] = None
        if kind == DOCUMENTS and self.last_page is not None:
            items = [item for item in self.last_page.items if item.id != entity_id]
            self.last_page = self.last_page.model_copy(update={"items": items})
        if kind == DEPARTMENTS and self.user_departments is not None:
            self.user_departments = [item for item in self.user_departments if item.id != entity_id]
        return True

    def commit_page(self, page: PageResult, channel: str, token: int) -> bool:
        """Stores a remote document page. Pages of a superseded query are dropped."""
        if not self._tracker.is_latest(channel, token):
            return False
        self.last_page = page
        return True

    def commit_user_departments(self, departments: list[Department], channel: str, token: int) -> bool:
        if not self._tracker.is_latest(channel, token):
            return False
        self.user_departments = list(departments)
        return True

    def commit_current(self, kind: str, entity: Any | None, token: int) -> bool:
        """Makes entity the current one of its kind unless a later view request was issued."""
        if not self._tracker.is_latest(current_channel(kind), token):
            return False
        self._current[kind] = entity
        return True

    def clear(self) -> None:
        self._cache = {kind: None for kind in COLLECTIONS}
        self._current = {kind: None for kind in COLLECTIONS}
        self.last_page = None
        self.user_departments = None

    def _refresh_current(self, kind: str) -> None:
        current = self._current.get(kind)
        if current is None:
            return
        # an entity the server stopped listing is gone
        self._current[kind] = self._cache[kind].get(current.id)
