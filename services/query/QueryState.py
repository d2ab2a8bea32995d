"""Mutable query spec of one document view."""

from typing import Callable

from pydantic import ValidationError

from services.query.QueryEngine import validate_spec
from shared.clients.dms.models.Document import DocumentStatus
from shared.models.errors import ValidationFailedError
from shared.models.query import FilterClause, FilterOperator, QuerySpec, SortOrder


class QueryState:
    """Holds the active QuerySpec of a view and applies user intents to it.

    Every intent except ``set_page`` sends the view back to page 1. Each change is
    validated before it is applied, so an invalid intent leaves the state untouched,
    and is reported to ``on_change`` (the synchronizer uses it to drop in-flight
    queries of the previous spec).
    """

    def __init__(
        self,
        spec: QuerySpec | None = None,
        on_change: Callable[[QuerySpec], None] | None = None,
        max_page_size: int = 100,
    ) -> None:
        self._spec = spec or QuerySpec()
        self._on_change = on_change
        self._max_page_size = max_page_size

    @property
    def spec(self) -> QuerySpec:
        return self._spec

    def _apply(self, **changes) -> QuerySpec:
        if set(changes) != {"page"}:
            changes["page"] = 1
        try:
            spec = QuerySpec.model_validate({**self._spec.model_dump(), **changes})
        except ValidationError as exc:
            raise ValidationFailedError(f"Invalid query: {exc.errors()[0]['msg']}") from exc
        validate_spec(spec)
        self._spec = spec
        if self._on_change:
            self._on_change(spec)
        return spec

    ################ SEARCH ##################
    def set_search(self, text: str) -> QuerySpec:
        return self._apply(search=text.strip())

    ################ FILTERS ##################
    def add_filter(self, key: str, op: FilterOperator | str, value: str) -> QuerySpec:
        try:
            clause = FilterClause(key=key, op=op, value=value)
        except ValidationError as exc:
            raise ValidationFailedError(f"Invalid filter on '{key}': {exc.errors()[0]['msg']}") from exc
        return self._apply(filters=[*self._spec.filters, clause])

    def remove_filter(self, index: int) -> QuerySpec:
        if not 0 <= index < len(self._spec.filters):
            raise ValidationFailedError(f"No filter at position {index}")
        filters = [clause for i, clause in enumerate(self._spec.filters) if i != index]
        return self._apply(filters=filters)

    def set_filters(self, clauses: list[FilterClause]) -> QuerySpec:
        return self._apply(filters=list(clauses))

    def clear_filters(self) -> QuerySpec:
        return self._apply(filters=[])

    def set_status_filter(self, status: DocumentStatus | str | None) -> QuerySpec:
        """Status picker: replaces any status clause. None removes it."""
        filters = [clause for clause in self._spec.filters if clause.key != "status"]
        if status is not None:
            value = status.value if isinstance(status, DocumentStatus) else str(status)
            filters.append(FilterClause(key="status", op=FilterOperator.EQ, value=value))
        return self._apply(filters=filters)

    def set_tag_filter(self, tags: list[str]) -> QuerySpec:
        """Tag picker: one eq clause per selected tag, replacing the previous selection."""
        filters = [clause for clause in self._spec.filters if clause.key != "tags"]
        for tag in dict.fromkeys(tag.strip() for tag in tags if tag.strip()):
            filters.append(FilterClause(key="tags", op=FilterOperator.EQ, value=tag))
        return self._apply(filters=filters)

    ################ SORT ##################
    def set_sort(self, field: str, order: SortOrder | str | None = None) -> QuerySpec:
        """Sort by field. Without an explicit order, choosing the current field again flips direction."""
        if order is None:
            if field == self._spec.sort_by and self._spec.order == SortOrder.ASC:
                order = SortOrder.DESC
            else:
                order = SortOrder.ASC
        return self._apply(sort_by=field, order=order)

    ################ PAGINATION ##################
    def set_page_size(self, page_size: int) -> QuerySpec:
        if page_size > self._max_page_size:
            raise ValidationFailedError(f"Page size {page_size} exceeds the maximum of {self._max_page_size}")
        return self._apply(page_size=page_size)

    def set_page(self, page: int) -> QuerySpec:
        return self._apply(page=page)

    def reset(self) -> QuerySpec:
        return self._apply(**{**QuerySpec().model_dump(), "page_size": self._spec.page_size})
