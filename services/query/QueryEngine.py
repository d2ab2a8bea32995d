"""Query engine: filter, sort and paginate document collections.

In-memory mode runs the whole pipeline over the cached collection:
    visibility -> search -> filter clauses -> sort -> page slice.

Remote-paginated mode only shapes the request (query params + filter body) and
validates the envelope that comes back. It never re-filters remote results.
"""

import math
from datetime import datetime, timezone
from typing import Any, Callable, Iterable

from services.authorization.AuthorizationEngine import visible_documents
from shared.clients.dms.models.Document import Document, DocumentStatus
from shared.models.errors import ShapeMismatchError, ValidationFailedError
from shared.models.principal import Principal
from shared.models.query import FilterClause, FilterOperator, PageResult, QuerySpec, SortOrder

STRING_FIELDS = frozenset({"title", "description", "content", "status"})
INTEGER_FIELDS = frozenset({"id", "department_id", "category_id", "created_by"})
DATE_FIELDS = frozenset({"created_at", "updated_at"})
LIST_FIELDS = frozenset({"tags"})
QUERY_FIELDS = STRING_FIELDS | INTEGER_FIELDS | DATE_FIELDS | LIST_FIELDS

REMOTE_OK_STATUSES = frozenset({"success", "ok"})


##########################################
############### VALIDATION ###############
##########################################

def parse_instant(value: str) -> datetime:
    """Parses an ISO date or timestamp. Naive values are taken as UTC.

    Raises:
        ValueError: If the value is not ISO formatted.
    """
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_operand(clause: FilterClause) -> Any:
    """Converts a clause value into the type of its field for eq/gt/lt comparisons."""
    value = clause.value.strip()
    if clause.op == FilterOperator.CONTAINS:
        return value.casefold()
    if clause.key in INTEGER_FIELDS:
        try:
            return int(value)
        except ValueError:
            raise ValidationFailedError(f"Filter value {clause.value!r} for '{clause.key}' is not a number")
    if clause.key in DATE_FIELDS:
        try:
            return parse_instant(value)
        except ValueError:
            raise ValidationFailedError(f"Filter value {clause.value!r} for '{clause.key}' is not an ISO date")
    return value.casefold()


def validate_spec(spec: QuerySpec) -> None:
    """
    Rejects query specs the engine cannot run.

    Raises:
        ValidationFailedError: On unknown fields, empty clause values, unsupported operators
            or values that do not parse for their field type.
    """
    if spec.sort_by not in QUERY_FIELDS:
        raise ValidationFailedError(f"Cannot sort by unknown field '{spec.sort_by}'")
    for clause in spec.filters:
        if clause.key not in QUERY_FIELDS:
            raise ValidationFailedError(f"Cannot filter by unknown field '{clause.key}'")
        if not clause.value or not clause.value.strip():
            raise ValidationFailedError(f"Filter on '{clause.key}' has an empty value")
        if clause.key in LIST_FIELDS and clause.op in (FilterOperator.GT, FilterOperator.LT):
            raise ValidationFailedError(f"Operator '{clause.op.value}' is not supported for '{clause.key}'")
        _parse_operand(clause)


##########################################
################ FILTER ##################
##########################################

def _field_value(document: Document, key: str) -> Any:
    value = getattr(document, key)
    if isinstance(value, DocumentStatus):
        return value.value
    return value


def matches_search(document: Document, search: str) -> bool:
    """Case-insensitive substring match over title and description. Empty search matches all."""
    needle = search.strip().casefold()
    if not needle:
        return True
    return needle in (document.title or "").casefold() or needle in (document.description or "").casefold()


def _compare(value: Any, op: FilterOperator, operand: Any) -> bool:
    if isinstance(value, str):
        value = value.casefold()
    if op == FilterOperator.EQ:
        return value == operand
    if op == FilterOperator.GT:
        return value > operand
    return value < operand


def matches_clause(document: Document, clause: FilterClause) -> bool:
    """Applies one filter clause. Documents missing the field never match."""
    value = _field_value(document, clause.key)
    operand = _parse_operand(clause)

    if clause.key in LIST_FIELDS:
        tags = [tag.casefold() for tag in value]
        if clause.op == FilterOperator.CONTAINS:
            return any(operand in tag for tag in tags)
        return operand in tags

    if value is None:
        return False
    if clause.op == FilterOperator.CONTAINS:
        text = value.isoformat() if isinstance(value, datetime) else str(value)
        return operand in text.casefold()
    return _compare(value, clause.op, operand)


def filter_documents(documents: Iterable[Document], spec: QuerySpec) -> list[Document]:
    """Search plus all filter clauses (ANDed), in input order."""
    return [
        document
        for document in documents
        if matches_search(document, spec.search) and all(matches_clause(document, clause) for clause in spec.filters)
    ]


##########################################
################# SORT ###################
##########################################

def _sort_value(document: Document, field: str) -> Any:
    value = _field_value(document, field)
    if field in LIST_FIELDS:
        return tuple(sorted(tag.casefold() for tag in value)) or None
    if isinstance(value, str):
        return value.casefold()
    return value


def sort_documents(documents: Iterable[Document], sort_by: str, order: SortOrder) -> list[Document]:
    """
    Sorts by one field. Ties keep id ascending in both directions; documents
    without a value for the field go last.
    """
    by_id = sorted(documents, key=lambda document: document.id)
    present = [document for document in by_id if _sort_value(document, sort_by) is not None]
    missing = [document for document in by_id if _sort_value(document, sort_by) is None]
    # equal keys keep id order in both directions
    present = sorted(present, key=lambda document: _sort_value(document, sort_by), reverse=order == SortOrder.DESC)
    return present + missing


##########################################
############### PAGINATION ###############
##########################################

def paginate(documents: list[Document], page: int, page_size: int) -> PageResult:
    """Slices one page. The requested page is clamped into [1, max(total_pages, 1)]."""
    total_records = len(documents)
    total_pages = math.ceil(total_records / page_size)
    current_page = min(max(page, 1), max(total_pages, 1))
    start = (current_page - 1) * page_size
    return PageResult(
        items=documents[start:start + page_size],
        current_page=current_page,
        total_pages=total_pages,
        total_records=total_records,
        per_page=page_size,
        has_prev=current_page > 1,
        has_next=current_page < total_pages,
    )


def run_query(principal: Principal | None, documents: Iterable[Document], spec: QuerySpec) -> PageResult:
    """
    In-memory mode: the page of documents the principal may view that match the spec.

    Raises:
        ValidationFailedError: If the spec is invalid.
    """
    validate_spec(spec)
    visible = visible_documents(principal, documents)
    matching = filter_documents(visible, spec)
    ordered = sort_documents(matching, spec.sort_by, spec.order)
    return paginate(ordered, spec.page, spec.page_size)


##########################################
############ REMOTE PAGINATION ###########
##########################################

def build_remote_request(spec: QuerySpec) -> tuple[dict, list[dict]]:
    """
    Shapes a server-paginated query.

    Returns:
        tuple[dict, list[dict]]: Query parameters (page, per_page, sort_by, order and search
            when set) and the filter clauses for the request body.

    Raises:
        ValidationFailedError: If the spec is invalid. Nothing is sent in that case.
    """
    validate_spec(spec)
    params = {
        "page": spec.page,
        "per_page": spec.page_size,
        "sort_by": spec.sort_by,
        "order": spec.order.value,
    }
    if spec.search.strip():
        params["search"] = spec.search.strip()
    body = [{"key": clause.key, "op": clause.op.value, "value": clause.value.strip()} for clause in spec.filters]
    return params, body


def _require_int(pagination: dict, key: str) -> int:
    value = pagination.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ShapeMismatchError(f"pagination.{key} must be an integer, got {value!r}")
    return value


def _require_bool(pagination: dict, key: str) -> bool:
    value = pagination.get(key)
    if not isinstance(value, bool):
        raise ShapeMismatchError(f"pagination.{key} must be a boolean, got {value!r}")
    return value


def parse_remote_page(payload: Any, parse_document: Callable[[Any], Document]) -> PageResult:
    """
    Validates a remote page envelope {data, pagination, filters, sort, status}.

    Raises:
        ShapeMismatchError: If the envelope, any document or the pagination block is malformed
            or inconsistent.
    """
    if not isinstance(payload, dict):
        raise ShapeMismatchError("Page response is not an object")
    status = payload.get("status")
    if status is not None and str(status).lower() not in REMOTE_OK_STATUSES:
        raise ShapeMismatchError(f"Page response reports status {status!r}")
    data = payload.get("data")
    pagination = payload.get("pagination")
    if not isinstance(data, list):
        raise ShapeMismatchError("Page response has no data list")
    if not isinstance(pagination, dict):
        raise ShapeMismatchError("Page response has no pagination block")

    items = [parse_document(item) for item in data]
    current_page = _require_int(pagination, "current_page")
    total_pages = _require_int(pagination, "total_pages")
    total_records = _require_int(pagination, "total_records")
    per_page = _require_int(pagination, "per_page")
    has_prev = _require_bool(pagination, "has_prev")
    has_next = _require_bool(pagination, "has_next")

    if per_page <= 0 or total_pages != math.ceil(total_records / per_page):
        raise ShapeMismatchError(f"total_pages {total_pages} does not fit {total_records} records of {per_page} per page")
    if total_records:
        expected = per_page if current_page < total_pages else total_records - (total_pages - 1) * per_page
        if len(items) != expected:
            raise ShapeMismatchError(f"Page {current_page} holds {len(items)} documents, expected {expected}")
    elif items:
        raise ShapeMismatchError("Empty result reports documents")

    try:
        return PageResult(
            items=items,
            current_page=current_page,
            total_pages=total_pages,
            total_records=total_records,
            per_page=per_page,
            has_prev=has_prev,
            has_next=has_next,
        )
    except ValueError as exc:
        raise ShapeMismatchError(f"Inconsistent pagination: {exc}") from exc


##########################################
############### DASHBOARD ################
##########################################

def status_counts(principal: Principal | None, documents: Iterable[Document]) -> dict[str, int]:
    """Number of visible documents per status. Every status is present, possibly with 0."""
    counts = {status.value: 0 for status in DocumentStatus}
    for document in visible_documents(principal, documents):
        counts[document.status.value] += 1
    return counts


def recent_documents(principal: Principal | None, documents: Iterable[Document], limit: int = 5) -> list[Document]:
    """The most recently updated visible documents."""
    ordered = sort_documents(visible_documents(principal, documents), "updated_at", SortOrder.DESC)
    return ordered[:limit]
