# src/store/models.py - v1
"""Aggregate data-store query models: QueryFilter, Aggregation, GroupRow, OrderBy.

These describe what a report asks of the data store. They are engine-neutral:
the in-memory store evaluates them directly, an ORM adapter translates them.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

EntityName = Literal[
    "Student",
    "Document",
    "Department",
    "Faculty",
    "AcademicYear",
    "AuditLog",
    "User",
]

StudentStatus = Literal["CLEARED", "UN_CLEARED"]
Gender = Literal["MALE", "FEMALE"]
DocumentType = Literal["PHOTO", "TRANSCRIPT", "CERTIFICATE", "SUPPORTING"]

# Free-text student search matches these fields.
STUDENT_SEARCH_FIELDS: list[str] = ["full_name", "registration_id", "certificate_id"]


class FieldRange(BaseModel):
    """Inclusive/exclusive bounds on a comparable field (numbers or datetimes)."""

    gte: Any = None
    gt: Any = None
    lte: Any = None
    lt: Any = None


class TextSearch(BaseModel):
    """Case-insensitive substring match of ``term`` against any of ``fields``."""

    term: str
    fields: list[str]


class QueryFilter(BaseModel):
    """Conjunction of simple predicates over one entity."""

    equals: dict[str, Any] = {}
    in_: dict[str, list[Any]] = Field(default={}, alias="in")
    not_null: list[str] = []
    ranges: dict[str, FieldRange] = {}
    search: TextSearch | None = None

    model_config = {"populate_by_name": True}

    @property
    def is_empty(self) -> bool:
        return not (
            self.equals or self.in_ or self.not_null or self.ranges or self.search
        )


class Aggregation(BaseModel):
    """Aggregates computed per group."""

    count: bool = True
    avg: list[str] = []
    sum: list[str] = []


class GroupRow(BaseModel):
    """One group-by result row."""

    keys: dict[str, Any]
    count: int = 0
    avg: dict[str, float | None] = {}
    sum: dict[str, float | None] = {}


class OrderBy(BaseModel):
    """Single sort key."""

    field: str
    direction: Literal["asc", "desc"] = "asc"
