"""Pydantic models for document queries and paginated results."""

from enum import Enum

from pydantic import BaseModel, Field, model_validator

from shared.clients.dms.models.Document import Document


class FilterOperator(str, Enum):
    CONTAINS = "contains"
    EQ = "eq"
    GT = "gt"
    LT = "lt"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class FilterClause(BaseModel):
    """A single (field, operator, value) restriction. Clauses of a query are ANDed."""

    key: str
    op: FilterOperator
    value: str


class QuerySpec(BaseModel):
    """Search, filter, sort and pagination parameters of one view. Never persisted."""

    search: str = ""
    filters: list[FilterClause] = []
    sort_by: str = "title"
    order: SortOrder = SortOrder.ASC
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=15, gt=0)


class PageResult(BaseModel):
    """One page of a filtered and sorted document collection.

    The pagination fields are validated against each other on construction, so an
    inconsistent remote payload can never be turned into a PageResult.
    """

    items: list[Document] = []
    current_page: int
    total_pages: int
    total_records: int
    per_page: int
    has_prev: bool
    has_next: bool

    @model_validator(mode="after")
    def _check_consistency(self) -> "PageResult":
        if self.total_records < 0 or self.total_pages < 0 or self.per_page <= 0:
            raise ValueError("pagination counters must not be negative")
        if (self.total_records == 0) != (self.total_pages == 0):
            raise ValueError("total_pages must be 0 exactly when total_records is 0")
        upper = max(self.total_pages, 1)
        if not 1 <= self.current_page <= upper:
            raise ValueError(f"current_page {self.current_page} outside [1, {upper}]")
        if self.has_prev != (self.current_page > 1):
            raise ValueError("has_prev does not match current_page")
        if self.has_next != (self.current_page < self.total_pages):
            raise ValueError("has_next does not match current_page")
        if len(self.items) > self.per_page:
            raise ValueError("page holds more items than per_page")
        return self
